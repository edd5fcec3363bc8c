"""Read-only report queries over the catalogue and the two ledgers.

Each function returns ``(stmt, rows)`` so callers can show the SQL that
produced a report. None of them write.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Union

from sqlalchemy import func, select
from sqlalchemy.orm import aliased

import issuance.models as md
from issuance.config import Config
from issuance.overdue import detect_overdue
from issuance.p_models import LoanSnapshot
from issuance.utils import session


def revenue_by_category():
    revenue = func.sum(md.Book.rental_price).label("revenue")
    stmt = (
        select(
            md.Book.category,
            revenue,
            func.count(md.IssuedRecord.id).label("times_rented"),
        )
        .select_from(md.IssuedRecord)
        .join(md.Book, md.IssuedRecord.book_isbn == md.Book.isbn)
        .group_by(md.Book.category)
        .order_by(revenue.desc(), md.Book.category.asc())
    )
    return stmt, session.execute(stmt).mappings().all()


def branch_performance():
    """Issues, returns and rental revenue per branch of the issuing employee."""
    stmt = (
        select(
            md.Branch.id.label("branch_id"),
            md.Branch.address.label("branch_address"),
            func.count(md.IssuedRecord.id).label("books_issued"),
            func.count(md.ReturnRecord.id).label("books_returned"),
            func.sum(md.Book.rental_price).label("total_revenue"),
        )
        .select_from(md.IssuedRecord)
        .join(md.Employee, md.IssuedRecord.employee_id == md.Employee.id)
        .join(md.Branch, md.Employee.branch_id == md.Branch.id)
        .outerjoin(md.ReturnRecord, md.ReturnRecord.issued_id == md.IssuedRecord.id)
        .join(md.Book, md.IssuedRecord.book_isbn == md.Book.isbn)
        .group_by(md.Branch.id, md.Branch.address)
        .order_by(md.Branch.id.asc())
    )
    return stmt, session.execute(stmt).mappings().all()


def top_employees(limit: int = Config.TOP_EMPLOYEES_LIMIT):
    books_issued = func.count(md.IssuedRecord.id).label("books_issued")
    stmt = (
        select(
            md.Employee.id.label("emp_id"),
            md.Employee.name.label("emp_name"),
            md.Employee.branch_id,
            books_issued,
        )
        .join(md.IssuedRecord, md.IssuedRecord.employee_id == md.Employee.id)
        .group_by(md.Employee.id, md.Employee.name, md.Employee.branch_id)
        .order_by(books_issued.desc(), md.Employee.id.asc())
        .limit(limit)
    )
    return stmt, session.execute(stmt).mappings().all()


def active_members(now: date, window_days: int = Config.ACTIVE_MEMBER_WINDOW_DAYS):
    """Members with at least one issue in the ``window_days`` up to ``now``."""
    since = now - timedelta(days=window_days)
    recent = (
        select(md.IssuedRecord.member_id)
        .where(md.IssuedRecord.issued_date >= since, md.IssuedRecord.issued_date <= now)
        .distinct()
    )
    stmt = select(md.Member).where(md.Member.id.in_(recent)).order_by(md.Member.id.asc())
    return stmt, session.execute(stmt).scalars().all()


def frequent_members(more_than: int = 1):
    total = func.count(md.IssuedRecord.id).label("total_books_issued")
    stmt = (
        select(
            md.IssuedRecord.member_id,
            md.Member.name.label("member_name"),
            total,
        )
        .join(md.Member, md.IssuedRecord.member_id == md.Member.id)
        .group_by(md.IssuedRecord.member_id, md.Member.name)
        .having(func.count(md.IssuedRecord.id) > more_than)
        .order_by(total.desc(), md.IssuedRecord.member_id.asc())
    )
    return stmt, session.execute(stmt).mappings().all()


def book_issue_counts():
    issue_count = func.count(md.IssuedRecord.id).label("issue_count")
    stmt = (
        select(md.Book.isbn, md.Book.title, issue_count)
        .join(md.IssuedRecord, md.IssuedRecord.book_isbn == md.Book.isbn)
        .group_by(md.Book.isbn, md.Book.title)
        .order_by(issue_count.desc(), md.Book.isbn.asc())
    )
    return stmt, session.execute(stmt).mappings().all()


def recent_members(now: date, days: int = Config.RECENT_MEMBER_DAYS):
    stmt = (
        select(md.Member)
        .where(md.Member.registration_date >= now - timedelta(days=days))
        .order_by(md.Member.registration_date.desc(), md.Member.id.asc())
    )
    return stmt, session.execute(stmt).scalars().all()


def employee_directory():
    # Branches without a manager still list their staff.
    manager = aliased(md.Employee)
    stmt = (
        select(
            md.Employee.id.label("emp_id"),
            md.Employee.name.label("emp_name"),
            md.Employee.position,
            md.Employee.salary,
            md.Branch.id.label("branch_id"),
            md.Branch.address.label("branch_address"),
            manager.name.label("manager_name"),
        )
        .join(md.Branch, md.Employee.branch_id == md.Branch.id)
        .outerjoin(manager, manager.id == md.Branch.manager_id)
        .order_by(md.Employee.id.asc())
    )
    return stmt, session.execute(stmt).mappings().all()


def expensive_books(threshold: Union[float, Decimal] = Config.EXPENSIVE_BOOK_THRESHOLD):
    stmt = (
        select(md.Book)
        .where(md.Book.rental_price > Decimal(str(threshold)))
        .order_by(md.Book.rental_price.desc(), md.Book.isbn.asc())
    )
    return stmt, session.execute(stmt).scalars().all()


def unreturned_books():
    stmt = (
        select(md.Book.isbn, md.Book.title)
        .select_from(md.IssuedRecord)
        .join(md.Book, md.IssuedRecord.book_isbn == md.Book.isbn)
        .outerjoin(md.ReturnRecord, md.ReturnRecord.issued_id == md.IssuedRecord.id)
        .where(md.ReturnRecord.id.is_(None))
        .distinct()
        .order_by(md.Book.title.asc())
    )
    return stmt, session.execute(stmt).mappings().all()


def overdue_report(now: date, grace_days: int = Config.OVERDUE_GRACE_DAYS):
    """Snapshot every loan with its return (if any) and run overdue detection."""
    stmt = (
        select(
            md.IssuedRecord.id.label("issued_id"),
            md.IssuedRecord.member_id,
            md.IssuedRecord.book_isbn,
            md.IssuedRecord.issued_date,
            md.Member.name.label("member_name"),
            md.Book.title.label("book_title"),
            md.ReturnRecord.id.label("return_id"),
        )
        .join(md.Member, md.IssuedRecord.member_id == md.Member.id)
        .join(md.Book, md.IssuedRecord.book_isbn == md.Book.isbn)
        .outerjoin(md.ReturnRecord, md.ReturnRecord.issued_id == md.IssuedRecord.id)
    )
    rows = session.execute(stmt).mappings().all()
    loans = [LoanSnapshot.model_validate(dict(row)) for row in rows]
    returned_ids = [row["issued_id"] for row in rows if row["return_id"] is not None]
    return stmt, detect_overdue(loans, returned_ids, now, grace_days)
