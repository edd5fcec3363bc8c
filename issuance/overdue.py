from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

from issuance.config import Config
from issuance.p_models import LoanSnapshot, OverdueLoanSchema


def grace_period_days(grace_period: Union[int, timedelta, None]) -> int:
    if grace_period is None:
        return Config.OVERDUE_GRACE_DAYS
    if isinstance(grace_period, timedelta):
        return grace_period.days
    return int(grace_period)


def detect_overdue(
    loans: Iterable[LoanSnapshot],
    returned_ids: Iterable[str],
    now: Union[date, datetime],
    grace_period: Union[int, timedelta, None] = None,
) -> list[OverdueLoanSchema]:
    """
    Flag the open loans older than the grace period.

    A loan is open when its issued_id is not in ``returned_ids``. It is overdue
    when ``now - issued_date`` in whole days is strictly greater than the grace
    period (30 days unless given). Nothing is read from or written to the
    database.

    Returns:
        list[OverdueLoanSchema]: Ordered by member_id, then issued_date.
    """
    if isinstance(now, datetime):
        now = now.date()
    grace_days = grace_period_days(grace_period)
    returned = set(returned_ids)

    overdue = []
    for loan in loans:
        if loan.issued_id in returned:
            continue
        days_outstanding = (now - loan.issued_date).days
        if days_outstanding > grace_days:
            overdue.append(
                OverdueLoanSchema(**loan.model_dump(), days_outstanding=days_outstanding)
            )
    overdue.sort(key=lambda item: (item.member_id, item.issued_date, item.issued_id))
    return overdue


def due_date(issued_date: date, grace_period: Optional[int] = None) -> date:
    """Last day a loan issued on ``issued_date`` can be returned without being overdue."""
    return issued_date + timedelta(days=grace_period_days(grace_period))
