from http import HTTPStatus

from flask import current_app, jsonify, make_response, request
from flask_restx import Namespace, Resource, fields

import issuance.p_models as pmd
from issuance.auth.oauth import staff_required
from issuance.errors import IssuanceError
from issuance.loans import tracker
from issuance.overdue import due_date
from issuance.utils import error_response, json_body, require_fields, sql_compile

loans_namespace = Namespace("Loans", description="Issue / Return operations", path="/")

issue_book_input = loans_namespace.model(
    "IssueBookInput",
    {
        "issued_id": fields.String(required=True, description="New issued record ID"),
        "book_isbn": fields.String(required=True, description="Book ISBN"),
        "member_id": fields.String(required=True, description="Member ID"),
        "employee_id": fields.String(required=True, description="Issuing employee ID"),
        "issued_date": fields.Date(required=True, description="Issue date (YYYY-MM-DD)"),
    },
)

return_book_input = loans_namespace.model(
    "ReturnBookInput",
    {
        "return_id": fields.String(required=True, description="New return record ID"),
        "issued_id": fields.String(required=True, description="Issued record ID"),
        "return_date": fields.Date(required=True, description="Return date (YYYY-MM-DD)"),
    },
)


@loans_namespace.route("/issue-book")
class IssueBook(Resource):
    @loans_namespace.expect(issue_book_input)
    @staff_required
    def post(self):
        try:
            data = json_body()
            record = tracker.issue_book(
                **require_fields(
                    data, "book_isbn", "member_id", "employee_id", "issued_id", "issued_date"
                )
            )
        except IssuanceError as e:
            return error_response(e)
        record = pmd.IssuedRecordSchema.model_validate(record)
        due = due_date(record.issued_date, current_app.config["OVERDUE_GRACE_DAYS"])
        return make_response(
            jsonify(
                message=f"Book issued successfully. ISBN: {record.book_isbn}",
                issued=record.model_dump(mode="json"),
                due_date=due.isoformat(),
            ),
            HTTPStatus.CREATED,
        )


@loans_namespace.route("/return-book")
class ReturnBook(Resource):
    @loans_namespace.expect(return_book_input)
    @staff_required
    def post(self):
        try:
            data = json_body()
            record = tracker.return_book(
                **require_fields(data, "issued_id", "return_id", "return_date")
            )
        except IssuanceError as e:
            return error_response(e)
        record = pmd.ReturnRecordSchema.model_validate(record)
        return make_response(
            jsonify(message="Book returned successfully", returned=record.model_dump(mode="json")),
            HTTPStatus.CREATED,
        )


@loans_namespace.route("/issued")
class Issued(Resource):
    @loans_namespace.doc(
        params={
            "member_id": "Only loans of this member",
            "employee_id": "Only loans handed out by this employee",
            "isbn": "Only loans of this book",
        }
    )
    def get(self):
        stmt, records = tracker.issued_history(
            member_id=request.args.get("member_id"),
            employee_id=request.args.get("employee_id"),
            book_isbn=request.args.get("isbn"),
        )
        records = [pmd.IssuedRecordDetailSchema.model_validate(record) for record in records]
        return make_response(
            jsonify(
                {
                    "issued": [record.model_dump(mode="json") for record in records],
                    "queries": [sql_compile(stmt)],
                }
            )
        )


@loans_namespace.route("/returns")
class Returns(Resource):
    @loans_namespace.doc(params={"isbn": "Only returns of this book"})
    def get(self):
        stmt, records = tracker.return_history(book_isbn=request.args.get("isbn"))
        records = [pmd.ReturnRecordSchema.model_validate(record) for record in records]
        return make_response(
            jsonify(
                {
                    "returns": [record.model_dump(mode="json") for record in records],
                    "queries": [sql_compile(stmt)],
                }
            )
        )


@loans_namespace.route("/open-loans")
class OpenLoans(Resource):
    def get(self):
        stmt, records = tracker.open_loans()
        records = [pmd.IssuedRecordDetailSchema.model_validate(record) for record in records]
        return make_response(
            jsonify(
                {
                    "open_loans": [record.model_dump(mode="json") for record in records],
                    "queries": [sql_compile(stmt)],
                }
            )
        )


@loans_namespace.route("/books/<string:isbn>/availability")
@loans_namespace.doc(params={"isbn": "ISBN"})
class BookAvailability(Resource):
    def get(self, isbn):
        try:
            status = tracker.availability(isbn)
        except IssuanceError as e:
            return error_response(e)
        data = pmd.AvailabilitySchema(isbn=isbn, availability=status)
        return make_response(jsonify(data.model_dump(mode="json")))


@loans_namespace.route("/availability-audit")
class AvailabilityAudit(Resource):
    def get(self):
        mismatches = tracker.audit_availability()
        return make_response(
            jsonify(
                consistent=not mismatches,
                mismatches=[mismatch.model_dump(mode="json") for mismatch in mismatches],
            )
        )
