import math
from datetime import date

from flask import current_app, jsonify, make_response, request
from flask_restx import Namespace, Resource
from sqlalchemy.engine import RowMapping

import issuance.p_models as pmd
from issuance.catalog import store
from issuance.errors import InvalidInput, IssuanceError
from issuance.reports import views
from issuance.utils import error_response, parse_date, sql_compile

reports_namespace = Namespace("Reports", description="Reports operations", path="/reports")


def report_date(name: str = "now") -> date:
    value = request.args.get(name)
    return parse_date(value, name) if value else date.today()


def number_arg(name: str, default, cast=int):
    value = request.args.get(name)
    if value is None:
        return default
    try:
        number = cast(value)
    except ValueError as e:
        raise InvalidInput(f"{name} must be a number", field=name) from e
    if not math.isfinite(number):
        raise InvalidInput(f"{name} must be a finite number", field=name)
    if number < 0:
        raise InvalidInput(f"{name} must not be negative", field=name)
    return number


def report_response(key, stmt, rows, schema, **extra):
    rows = [
        schema.model_validate(dict(row) if isinstance(row, RowMapping) else row) for row in rows
    ]
    return make_response(
        jsonify(
            {
                key: [row.model_dump(mode="json") for row in rows],
                **extra,
                "queries": [sql_compile(stmt)],
            }
        )
    )


@reports_namespace.route("/overdue")
class OverdueReport(Resource):
    @reports_namespace.doc(
        params={"now": "Report date (YYYY-MM-DD), default today", "grace_days": "Loan period"}
    )
    def get(self):
        try:
            now = report_date()
            grace_days = number_arg("grace_days", current_app.config["OVERDUE_GRACE_DAYS"])
        except IssuanceError as e:
            return error_response(e)
        stmt, overdue = views.overdue_report(now, grace_days)
        return make_response(
            jsonify(
                {
                    "overdue": [loan.model_dump(mode="json") for loan in overdue],
                    "now": now.isoformat(),
                    "grace_days": grace_days,
                    "queries": [sql_compile(stmt)],
                }
            )
        )


@reports_namespace.route("/revenue-by-category")
class RevenueByCategory(Resource):
    def get(self):
        stmt, rows = views.revenue_by_category()
        return report_response("categories", stmt, rows, pmd.RevenueByCategorySchema)


@reports_namespace.route("/branch-performance")
class BranchPerformance(Resource):
    def get(self):
        stmt, rows = views.branch_performance()
        return report_response("branches", stmt, rows, pmd.BranchPerformanceSchema)


@reports_namespace.route("/top-employees")
class TopEmployees(Resource):
    @reports_namespace.doc(params={"limit": "Number of employees"})
    def get(self):
        try:
            limit = number_arg("limit", current_app.config["TOP_EMPLOYEES_LIMIT"])
        except IssuanceError as e:
            return error_response(e)
        stmt, rows = views.top_employees(limit)
        return report_response("employees", stmt, rows, pmd.TopEmployeeSchema)


@reports_namespace.route("/active-members")
class ActiveMembers(Resource):
    @reports_namespace.doc(
        params={"now": "Report date (YYYY-MM-DD)", "window_days": "Trailing window in days"}
    )
    def get(self):
        try:
            now = report_date()
            window_days = number_arg(
                "window_days", current_app.config["ACTIVE_MEMBER_WINDOW_DAYS"]
            )
        except IssuanceError as e:
            return error_response(e)
        stmt, rows = views.active_members(now, window_days)
        return report_response(
            "members", stmt, rows, pmd.MemberSchema, window_days=window_days
        )


@reports_namespace.route("/frequent-members")
class FrequentMembers(Resource):
    @reports_namespace.doc(params={"more_than": "Minimum number of issues, exclusive"})
    def get(self):
        try:
            more_than = number_arg("more_than", 1)
        except IssuanceError as e:
            return error_response(e)
        stmt, rows = views.frequent_members(more_than)
        return report_response("members", stmt, rows, pmd.FrequentMemberSchema)


@reports_namespace.route("/book-issue-counts")
class BookIssueCounts(Resource):
    def get(self):
        stmt, rows = views.book_issue_counts()
        return report_response("books", stmt, rows, pmd.BookIssueCountSchema)


@reports_namespace.route("/books-by-category")
class BooksByCategory(Resource):
    @reports_namespace.doc(params={"category": "Category, may be repeated"})
    def get(self):
        categories = request.args.getlist("category")
        if not categories:
            return error_response(InvalidInput("At least one category is required"))
        stmt, rows = store.list_books(categories)
        return report_response("books", stmt, rows, pmd.BookSchema)


@reports_namespace.route("/recent-members")
class RecentMembers(Resource):
    @reports_namespace.doc(params={"now": "Report date (YYYY-MM-DD)", "days": "Days back"})
    def get(self):
        try:
            now = report_date()
            days = number_arg("days", current_app.config["RECENT_MEMBER_DAYS"])
        except IssuanceError as e:
            return error_response(e)
        stmt, rows = views.recent_members(now, days)
        return report_response("members", stmt, rows, pmd.MemberSchema)


@reports_namespace.route("/employee-directory")
class EmployeeDirectory(Resource):
    def get(self):
        stmt, rows = views.employee_directory()
        return report_response("employees", stmt, rows, pmd.EmployeeDirectorySchema)


@reports_namespace.route("/expensive-books")
class ExpensiveBooks(Resource):
    @reports_namespace.doc(params={"threshold": "Rental price threshold, exclusive"})
    def get(self):
        try:
            threshold = number_arg(
                "threshold", current_app.config["EXPENSIVE_BOOK_THRESHOLD"], cast=float
            )
        except IssuanceError as e:
            return error_response(e)
        stmt, rows = views.expensive_books(threshold)
        return report_response("books", stmt, rows, pmd.BookSchema, threshold=threshold)


@reports_namespace.route("/unreturned-books")
class UnreturnedBooks(Resource):
    def get(self):
        stmt, rows = views.unreturned_books()
        return report_response("books", stmt, rows, pmd.UnreturnedBookSchema)
