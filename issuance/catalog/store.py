"""Reference data: books, members, employees and branches.

Records are created and updated here but never deleted. A book's
availability is owned by :mod:`issuance.loans.tracker` and cannot be
changed through this module.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from sqlalchemy import select

import issuance.models as md
from issuance.errors import ConstraintViolation, InvalidInput, NotFound
from issuance.utils import atomic_transaction, parse_date, session

logger = logging.getLogger(__name__)

BOOK_FIELDS = ("title", "category", "rental_price", "author", "publisher")


def _amount(value, field: str) -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError) as e:
        raise InvalidInput(f"{field} must be a number", field=field) from e
    if not amount.is_finite():
        raise InvalidInput(f"{field} must be a number", field=field)
    if amount < 0:
        raise ConstraintViolation(f"{field} must not be negative", field=field)
    return amount


def get_book(isbn: str) -> md.Book:
    book = session.get(md.Book, isbn)
    if book is None:
        raise NotFound("Book", isbn)
    return book


def list_books(categories: Optional[Iterable[str]] = None, availability=None):
    stmt = select(md.Book)
    if categories:
        stmt = stmt.where(md.Book.category.in_(list(categories)))
    if availability is not None:
        stmt = stmt.where(md.Book.availability == md.Availability(availability))
    stmt = stmt.order_by(md.Book.title.asc())
    return stmt, session.execute(stmt).scalars().all()


@atomic_transaction
def add_book(isbn, title, category, rental_price, author, publisher) -> md.Book:
    """Catalogue a new book. New books are always Available."""
    if session.get(md.Book, isbn) is not None:
        raise ConstraintViolation(f"Book {isbn!r} is already catalogued", isbn=isbn)
    book = md.Book(
        isbn=isbn,
        title=title,
        category=category,
        rental_price=_amount(rental_price, "rental_price"),
        availability=md.Availability.Available,
        author=author,
        publisher=publisher,
    )
    session.add(book)
    session.flush()
    logger.info("Catalogued book %s (%s)", isbn, title)
    return book


@atomic_transaction
def update_book(isbn: str, /, **changes) -> md.Book:
    if "availability" in changes:
        raise ConstraintViolation(
            "Availability changes only through issue and return", field="availability"
        )
    unknown = set(changes) - set(BOOK_FIELDS)
    if unknown:
        raise InvalidInput(f"Unknown book fields: {', '.join(sorted(unknown))}")
    book = get_book(isbn)
    for field, value in changes.items():
        if value is None:
            continue
        if field == "rental_price":
            value = _amount(value, field)
        setattr(book, field, value)
    logger.info("Updated book %s: %s", isbn, sorted(changes))
    return book


def get_member(member_id: str) -> md.Member:
    member = session.get(md.Member, member_id)
    if member is None:
        raise NotFound("Member", member_id)
    return member


def list_members():
    stmt = select(md.Member).order_by(md.Member.id.asc())
    return stmt, session.execute(stmt).scalars().all()


@atomic_transaction
def register_member(member_id, name, address, registration_date) -> md.Member:
    if session.get(md.Member, member_id) is not None:
        raise ConstraintViolation(f"Member {member_id!r} already exists", member_id=member_id)
    member = md.Member(
        id=member_id,
        name=name,
        address=address,
        registration_date=parse_date(registration_date, "registration_date"),
    )
    session.add(member)
    session.flush()
    logger.info("Registered member %s", member_id)
    return member


@atomic_transaction
def update_member(member_id: str, address: Optional[str] = None, name: Optional[str] = None):
    member = get_member(member_id)
    if address is not None:
        member.address = address
    if name is not None:
        member.name = name
    logger.info("Updated member %s", member_id)
    return member


def get_employee(emp_id: str) -> md.Employee:
    employee = session.get(md.Employee, emp_id)
    if employee is None:
        raise NotFound("Employee", emp_id)
    return employee


def list_employees(branch_id: Optional[str] = None):
    stmt = select(md.Employee)
    if branch_id:
        stmt = stmt.where(md.Employee.branch_id == branch_id)
    stmt = stmt.order_by(md.Employee.id.asc())
    return stmt, session.execute(stmt).scalars().all()


@atomic_transaction
def add_employee(emp_id, name, position, salary, branch_id) -> md.Employee:
    if session.get(md.Employee, emp_id) is not None:
        raise ConstraintViolation(f"Employee {emp_id!r} already exists", emp_id=emp_id)
    get_branch(branch_id)
    employee = md.Employee(
        id=emp_id,
        name=name,
        position=position,
        salary=_amount(salary, "salary"),
        branch_id=branch_id,
    )
    session.add(employee)
    session.flush()
    logger.info("Added employee %s at branch %s", emp_id, branch_id)
    return employee


def get_branch(branch_id: str) -> md.Branch:
    branch = session.get(md.Branch, branch_id)
    if branch is None:
        raise NotFound("Branch", branch_id)
    return branch


def list_branches():
    stmt = select(md.Branch).order_by(md.Branch.id.asc())
    return stmt, session.execute(stmt).scalars().all()


@atomic_transaction
def add_branch(branch_id, address, contact, manager_id=None) -> md.Branch:
    """Open a branch. The manager can be named now or assigned later."""
    if session.get(md.Branch, branch_id) is not None:
        raise ConstraintViolation(f"Branch {branch_id!r} already exists", branch_id=branch_id)
    if manager_id is not None:
        get_employee(manager_id)
    branch = md.Branch(id=branch_id, address=address, contact=contact, manager_id=manager_id)
    session.add(branch)
    session.flush()
    logger.info("Opened branch %s", branch_id)
    return branch


@atomic_transaction
def assign_manager(branch_id: str, manager_id: str) -> md.Branch:
    branch = get_branch(branch_id)
    get_employee(manager_id)
    branch.manager_id = manager_id
    logger.info("Branch %s is now managed by %s", branch_id, manager_id)
    return branch