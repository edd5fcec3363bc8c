"""Book availability state machine.

Every book is either ``Available`` or ``Issued``. ``issue_book`` moves a book
from Available to Issued and appends an IssuedRecord; ``return_book`` appends
a ReturnRecord and moves it back. Both steps of each transition commit
together or not at all.

Transitions on the same ISBN are serialized: the process-wide lock in
:data:`issuance.utils.book_locks` is held for the whole transaction, the book
row is read ``FOR UPDATE`` and the flag is flipped with a conditional UPDATE
whose row count is checked.
"""

import logging
from collections import Counter
from datetime import date
from typing import Optional

from sqlalchemy import select, update

import issuance.models as md
from issuance.errors import AlreadyIssued, AlreadyReturned, ConstraintViolation, NotFound
from issuance.p_models import AvailabilityMismatchSchema
from issuance.utils import atomic_transaction, book_locks, parse_date, session

logger = logging.getLogger(__name__)


def _locked_book(isbn: str) -> md.Book:
    stmt = (
        select(md.Book)
        .where(md.Book.isbn == isbn)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    book = session.execute(stmt).scalar_one_or_none()
    if book is None:
        raise NotFound("Book", isbn)
    return book


def issue_book(book_isbn, member_id, employee_id, issued_id, issued_date) -> md.IssuedRecord:
    """
    Issue an available book to a member.

    Args:
        book_isbn (str): The book to loan.
        member_id (str): The borrowing member.
        employee_id (str): The employee handing the book out.
        issued_id (str): Caller-chosen id of the new IssuedRecord.
        issued_date (date | str): Loan date; no clock is consulted.
    Returns:
        IssuedRecord: The committed record. The book is now Issued.
    Raises:
        NotFound: The book, member or employee does not exist.
        AlreadyIssued: The book is currently on loan.
        ConstraintViolation: issued_id is taken or the database rejected the row.
    """
    issued_date = parse_date(issued_date, "issued_date")
    with book_locks.hold(book_isbn):
        return _issue(book_isbn, member_id, employee_id, issued_id, issued_date)


@atomic_transaction
def _issue(book_isbn, member_id, employee_id, issued_id, issued_date: date):
    book = _locked_book(book_isbn)
    if session.get(md.Member, member_id) is None:
        raise NotFound("Member", member_id)
    if session.get(md.Employee, employee_id) is None:
        raise NotFound("Employee", employee_id)
    if book.availability != md.Availability.Available:
        logger.warning("Refused to issue %s: book is %s", book_isbn, book.availability.value)
        raise AlreadyIssued(book_isbn)
    if session.get(md.IssuedRecord, issued_id) is not None:
        raise ConstraintViolation(
            f"Issued record {issued_id!r} already exists", issued_id=issued_id
        )

    stmt = (
        update(md.Book)
        .where(md.Book.isbn == book_isbn, md.Book.availability == md.Availability.Available)
        .values(availability=md.Availability.Issued)
    )
    if session.execute(stmt).rowcount != 1:
        logger.warning("Refused to issue %s: lost the race for the book", book_isbn)
        raise AlreadyIssued(book_isbn)

    record = md.IssuedRecord(
        id=issued_id,
        member_id=member_id,
        book_isbn=book_isbn,
        employee_id=employee_id,
        issued_date=issued_date,
    )
    session.add(record)
    session.flush()
    logger.info(
        "Book issued successfully. ISBN: %s issued_id=%s member=%s employee=%s",
        book_isbn,
        issued_id,
        member_id,
        employee_id,
    )
    return record


def return_book(issued_id, return_id, return_date) -> md.ReturnRecord:
    """
    Close an open loan and make its book Available again.

    Raises:
        NotFound: No IssuedRecord has ``issued_id``.
        AlreadyReturned: The loan already has a ReturnRecord.
        ConstraintViolation: return_id is taken or return_date precedes the loan.
    """
    return_date = parse_date(return_date, "return_date")
    book_isbn = session.scalar(
        select(md.IssuedRecord.book_isbn).where(md.IssuedRecord.id == issued_id)
    )
    if book_isbn is None:
        session.rollback()
        raise NotFound("Issued record", issued_id)
    with book_locks.hold(book_isbn):
        return _return(issued_id, return_id, return_date)


@atomic_transaction
def _return(issued_id, return_id, return_date: date):
    issued = session.execute(
        select(md.IssuedRecord)
        .where(md.IssuedRecord.id == issued_id)
        .execution_options(populate_existing=True)
    ).scalar_one()
    closed_by = session.scalar(
        select(md.ReturnRecord.id).where(md.ReturnRecord.issued_id == issued_id)
    )
    if closed_by is not None:
        logger.warning("Refused to return %s: already closed by %s", issued_id, closed_by)
        raise AlreadyReturned(issued_id)
    if session.get(md.ReturnRecord, return_id) is not None:
        raise ConstraintViolation(
            f"Return record {return_id!r} already exists", return_id=return_id
        )
    if return_date < issued.issued_date:
        raise ConstraintViolation(
            "return_date is earlier than the issue date",
            issued_date=issued.issued_date.isoformat(),
            return_date=return_date.isoformat(),
        )

    _locked_book(issued.book_isbn)
    record = md.ReturnRecord(
        id=return_id,
        issued_id=issued_id,
        book_isbn=issued.book_isbn,
        return_date=return_date,
    )
    session.add(record)
    session.flush()
    session.execute(
        update(md.Book)
        .where(md.Book.isbn == issued.book_isbn)
        .values(availability=md.Availability.Available)
    )
    logger.info(
        "Book returned. ISBN: %s issued_id=%s return_id=%s",
        issued.book_isbn,
        issued_id,
        return_id,
    )
    return record


def availability(book_isbn: str) -> md.Availability:
    status = session.scalar(select(md.Book.availability).where(md.Book.isbn == book_isbn))
    if status is None:
        raise NotFound("Book", book_isbn)
    return status


def issued_history(
    member_id: Optional[str] = None,
    employee_id: Optional[str] = None,
    book_isbn: Optional[str] = None,
):
    stmt = select(md.IssuedRecord)
    if member_id:
        stmt = stmt.where(md.IssuedRecord.member_id == member_id)
    if employee_id:
        stmt = stmt.where(md.IssuedRecord.employee_id == employee_id)
    if book_isbn:
        stmt = stmt.where(md.IssuedRecord.book_isbn == book_isbn)
    stmt = stmt.order_by(md.IssuedRecord.issued_date.asc(), md.IssuedRecord.id.asc())
    return stmt, session.execute(stmt).scalars().all()


def return_history(book_isbn: Optional[str] = None):
    stmt = select(md.ReturnRecord)
    if book_isbn:
        stmt = stmt.where(md.ReturnRecord.book_isbn == book_isbn)
    stmt = stmt.order_by(md.ReturnRecord.return_date.asc(), md.ReturnRecord.id.asc())
    return stmt, session.execute(stmt).scalars().all()


def open_loans():
    stmt = (
        select(md.IssuedRecord)
        .outerjoin(md.ReturnRecord, md.ReturnRecord.issued_id == md.IssuedRecord.id)
        .where(md.ReturnRecord.id.is_(None))
        .order_by(md.IssuedRecord.issued_date.asc(), md.IssuedRecord.id.asc())
    )
    return stmt, session.execute(stmt).scalars().all()


def audit_availability() -> list[AvailabilityMismatchSchema]:
    """
    Recompute every book's availability from the ledgers and report the books
    whose stored flag disagrees, or that have more than one open loan.
    An empty list means the catalogue and the ledgers agree.
    """
    _, loans = open_loans()
    open_counts = Counter(loan.book_isbn for loan in loans)
    books = session.execute(select(md.Book.isbn, md.Book.availability)).all()

    mismatches = []
    for isbn, stored in books:
        count = open_counts.get(isbn, 0)
        expected = md.Availability.Issued if count else md.Availability.Available
        if stored != expected or count > 1:
            mismatches.append(
                AvailabilityMismatchSchema(
                    isbn=isbn, stored=stored.value, expected=expected.value, open_loans=count
                )
            )
    if mismatches:
        logger.error("Availability audit found %d mismatched books", len(mismatches))
    return mismatches
