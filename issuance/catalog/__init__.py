from http import HTTPStatus

from flask import jsonify, make_response, request
from flask_restx import Namespace, Resource, fields

import issuance.p_models as pmd
from issuance.auth.oauth import staff_required
from issuance.catalog import store
from issuance.errors import InvalidInput, IssuanceError
from issuance.models import Availability
from issuance.utils import error_response, json_body, require_fields, sql_compile

catalog_namespace = Namespace("Catalog", description="Books, members, staff and branches", path="/")

new_book_input = catalog_namespace.model(
    "NewBookInput",
    {
        "isbn": fields.String(required=True, description="ISBN"),
        "title": fields.String(required=True, description="Title"),
        "category": fields.String(required=True, description="Category"),
        "rental_price": fields.Float(required=True, description="Rental price"),
        "author": fields.String(required=True, description="Author"),
        "publisher": fields.String(required=True, description="Publisher"),
    },
)

update_book_input = catalog_namespace.model(
    "UpdateBookInput",
    {
        "title": fields.String(description="Title"),
        "category": fields.String(description="Category"),
        "rental_price": fields.Float(description="Rental price"),
        "author": fields.String(description="Author"),
        "publisher": fields.String(description="Publisher"),
    },
)

new_member_input = catalog_namespace.model(
    "NewMemberInput",
    {
        "member_id": fields.String(required=True, description="Member ID"),
        "name": fields.String(required=True, description="Name"),
        "address": fields.String(required=True, description="Address"),
        "registration_date": fields.Date(required=True, description="Registration date"),
    },
)

update_member_input = catalog_namespace.model(
    "UpdateMemberInput",
    {
        "name": fields.String(description="Name"),
        "address": fields.String(description="Address"),
    },
)

new_employee_input = catalog_namespace.model(
    "NewEmployeeInput",
    {
        "emp_id": fields.String(required=True, description="Employee ID"),
        "name": fields.String(required=True, description="Name"),
        "position": fields.String(required=True, description="Position"),
        "salary": fields.Float(required=True, description="Salary"),
        "branch_id": fields.String(required=True, description="Branch ID"),
    },
)

new_branch_input = catalog_namespace.model(
    "NewBranchInput",
    {
        "branch_id": fields.String(required=True, description="Branch ID"),
        "address": fields.String(required=True, description="Address"),
        "contact": fields.String(required=True, description="Contact number"),
        "manager_id": fields.String(description="Manager employee ID"),
    },
)

assign_manager_input = catalog_namespace.model(
    "AssignManagerInput",
    {
        "manager_id": fields.String(required=True, description="Manager employee ID"),
    },
)


@catalog_namespace.route("/books")
class Books(Resource):
    @catalog_namespace.doc(
        params={
            "category": "Filter by category, may be repeated",
            "availability": "Available or Issued",
        }
    )
    def get(self):
        categories = request.args.getlist("category")
        availability = request.args.get("availability")
        if availability and availability not in Availability.__members__:
            return error_response(InvalidInput("availability must be Available or Issued"))
        stmt, books = store.list_books(categories, availability)
        books = [pmd.BookSchema.model_validate(book) for book in books]
        return make_response(
            jsonify(
                {
                    "books": [book.model_dump(mode="json") for book in books],
                    "queries": [sql_compile(stmt)],
                }
            )
        )

    @catalog_namespace.expect(new_book_input)
    @staff_required
    def post(self):
        try:
            data = json_body()
            book = store.add_book(
                **require_fields(
                    data, "isbn", "title", "category", "rental_price", "author", "publisher"
                )
            )
        except IssuanceError as e:
            return error_response(e)
        book = pmd.BookSchema.model_validate(book)
        return make_response(
            jsonify(message="Book added successfully", book=book.model_dump(mode="json")),
            HTTPStatus.CREATED,
        )


@catalog_namespace.route("/books/<string:isbn>")
@catalog_namespace.doc(params={"isbn": "ISBN"})
class Book(Resource):
    def get(self, isbn):
        try:
            book = store.get_book(isbn)
        except IssuanceError as e:
            return error_response(e)
        book = pmd.BookSchema.model_validate(book)
        return make_response(jsonify(book=book.model_dump(mode="json")))

    @catalog_namespace.expect(update_book_input)
    @staff_required
    def put(self, isbn):
        try:
            data = json_body()
            if not data:
                raise InvalidInput("No fields to update")
            book = store.update_book(isbn, **data)
        except IssuanceError as e:
            return error_response(e)
        book = pmd.BookSchema.model_validate(book)
        return make_response(
            jsonify(message="Book updated successfully", book=book.model_dump(mode="json"))
        )


@catalog_namespace.route("/members")
class Members(Resource):
    def get(self):
        stmt, members = store.list_members()
        members = [pmd.MemberSchema.model_validate(member) for member in members]
        return make_response(
            jsonify(
                {
                    "members": [member.model_dump(mode="json") for member in members],
                    "queries": [sql_compile(stmt)],
                }
            )
        )

    @catalog_namespace.expect(new_member_input)
    @staff_required
    def post(self):
        try:
            data = json_body()
            member = store.register_member(
                **require_fields(data, "member_id", "name", "address", "registration_date")
            )
        except IssuanceError as e:
            return error_response(e)
        member = pmd.MemberSchema.model_validate(member)
        return make_response(
            jsonify(message="Member registered", member=member.model_dump(mode="json")),
            HTTPStatus.CREATED,
        )


@catalog_namespace.route("/members/<string:member_id>")
@catalog_namespace.doc(params={"member_id": "Member ID"})
class Member(Resource):
    def get(self, member_id):
        try:
            member = store.get_member(member_id)
        except IssuanceError as e:
            return error_response(e)
        member = pmd.MemberSchema.model_validate(member)
        return make_response(jsonify(member=member.model_dump(mode="json")))

    @catalog_namespace.expect(update_member_input)
    @staff_required
    def put(self, member_id):
        try:
            data = json_body()
            member = store.update_member(
                member_id, address=data.get("address"), name=data.get("name")
            )
        except IssuanceError as e:
            return error_response(e)
        member = pmd.MemberSchema.model_validate(member)
        return make_response(
            jsonify(message="Member updated", member=member.model_dump(mode="json"))
        )


@catalog_namespace.route("/employees")
class Employees(Resource):
    @catalog_namespace.doc(params={"branch_id": "Only staff of this branch"})
    def get(self):
        stmt, employees = store.list_employees(request.args.get("branch_id"))
        employees = [pmd.EmployeeSchema.model_validate(employee) for employee in employees]
        return make_response(
            jsonify(
                {
                    "employees": [employee.model_dump(mode="json") for employee in employees],
                    "queries": [sql_compile(stmt)],
                }
            )
        )

    @catalog_namespace.expect(new_employee_input)
    @staff_required
    def post(self):
        try:
            data = json_body()
            employee = store.add_employee(
                **require_fields(data, "emp_id", "name", "position", "salary", "branch_id")
            )
        except IssuanceError as e:
            return error_response(e)
        employee = pmd.EmployeeSchema.model_validate(employee)
        return make_response(
            jsonify(message="Employee added", employee=employee.model_dump(mode="json")),
            HTTPStatus.CREATED,
        )


@catalog_namespace.route("/branches")
class Branches(Resource):
    def get(self):
        stmt, branches = store.list_branches()
        branches = [pmd.BranchSchema.model_validate(branch) for branch in branches]
        return make_response(
            jsonify(
                {
                    "branches": [branch.model_dump(mode="json") for branch in branches],
                    "queries": [sql_compile(stmt)],
                }
            )
        )

    @catalog_namespace.expect(new_branch_input)
    @staff_required
    def post(self):
        try:
            data = json_body()
            branch = store.add_branch(
                **require_fields(data, "branch_id", "address", "contact"),
                manager_id=data.get("manager_id"),
            )
        except IssuanceError as e:
            return error_response(e)
        branch = pmd.BranchSchema.model_validate(branch)
        return make_response(
            jsonify(message="Branch opened", branch=branch.model_dump(mode="json")),
            HTTPStatus.CREATED,
        )


@catalog_namespace.route("/branches/<string:branch_id>/manager")
@catalog_namespace.doc(params={"branch_id": "Branch ID"})
class BranchManager(Resource):
    @catalog_namespace.expect(assign_manager_input)
    @staff_required
    def put(self, branch_id):
        try:
            data = json_body()
            branch = store.assign_manager(branch_id, **require_fields(data, "manager_id"))
        except IssuanceError as e:
            return error_response(e)
        branch = pmd.BranchSchema.model_validate(branch)
        return make_response(
            jsonify(message="Manager assigned", branch=branch.model_dump(mode="json"))
        )
