import threading
import unittest
from datetime import timedelta

from sqlalchemy import func, select

import issuance.models as md
from issuance.errors import (
    AlreadyIssued,
    AlreadyReturned,
    ConstraintViolation,
    InvalidInput,
    NotFound,
)
from issuance.loans import tracker
from issuance.tests.base import DAY_0, IssuanceTestCase
from issuance.utils import BookLocks, book_locks, session


def day(n):
    return DAY_0 + timedelta(days=n)


class TrackerTestCase(IssuanceTestCase):
    def assertConsistent(self):
        self.assertEqual(tracker.audit_availability(), [])

    def count(self, model):
        return session.scalar(select(func.count()).select_from(model))

    def test_issue_flips_availability(self):
        record = tracker.issue_book("978-0-1", "M1", "E1", "IS1", day(0))
        self.assertEqual(record.id, "IS1")
        self.assertEqual(record.issued_date, day(0))
        self.assertEqual(tracker.availability("978-0-1"), md.Availability.Issued)
        self.assertEqual(tracker.availability("978-0-2"), md.Availability.Available)
        self.assertConsistent()

    def test_issue_accepts_iso_dates(self):
        record = tracker.issue_book("978-0-1", "M1", "E1", "IS1", "2024-03-01")
        self.assertEqual(record.issued_date, DAY_0)

    def test_second_issue_is_rejected_without_changes(self):
        tracker.issue_book("978-0-1", "M1", "E1", "IS1", day(0))
        with self.assertRaises(AlreadyIssued):
            tracker.issue_book("978-0-1", "M2", "E2", "IS2", day(1))
        self.assertEqual(self.count(md.IssuedRecord), 1)
        self.assertIsNone(session.get(md.IssuedRecord, "IS2"))
        self.assertEqual(tracker.availability("978-0-1"), md.Availability.Issued)
        self.assertConsistent()

    def test_issue_unknown_references(self):
        with self.assertRaises(NotFound) as ctx:
            tracker.issue_book("978-9-9", "M1", "E1", "IS1", day(0))
        self.assertEqual(ctx.exception.details["entity"], "Book")
        with self.assertRaises(NotFound) as ctx:
            tracker.issue_book("978-0-1", "M9", "E1", "IS1", day(0))
        self.assertEqual(ctx.exception.details["entity"], "Member")
        with self.assertRaises(NotFound) as ctx:
            tracker.issue_book("978-0-1", "M1", "E9", "IS1", day(0))
        self.assertEqual(ctx.exception.details["entity"], "Employee")

        self.assertEqual(self.count(md.IssuedRecord), 0)
        self.assertEqual(tracker.availability("978-0-1"), md.Availability.Available)

    def test_duplicate_issued_id(self):
        tracker.issue_book("978-0-1", "M1", "E1", "IS1", day(0))
        with self.assertRaises(ConstraintViolation):
            tracker.issue_book("978-0-2", "M1", "E1", "IS1", day(0))
        self.assertEqual(tracker.availability("978-0-2"), md.Availability.Available)
        self.assertConsistent()

    def test_bad_issue_date(self):
        with self.assertRaises(InvalidInput):
            tracker.issue_book("978-0-1", "M1", "E1", "IS1", "01/03/2024")
        self.assertEqual(tracker.availability("978-0-1"), md.Availability.Available)

    def test_return_restores_availability(self):
        tracker.issue_book("978-0-1", "M1", "E1", "IS1", day(0))
        record = tracker.return_book("IS1", "RS1", day(5))
        self.assertEqual(record.book_isbn, "978-0-1")
        self.assertEqual(record.issued_id, "IS1")
        self.assertEqual(tracker.availability("978-0-1"), md.Availability.Available)
        self.assertConsistent()

    def test_second_return_is_rejected(self):
        tracker.issue_book("978-0-1", "M1", "E1", "IS1", day(0))
        tracker.return_book("IS1", "RS1", day(5))
        with self.assertRaises(AlreadyReturned):
            tracker.return_book("IS1", "RS2", day(6))
        self.assertEqual(self.count(md.ReturnRecord), 1)
        self.assertConsistent()

    def test_return_unknown_loan(self):
        with self.assertRaises(NotFound):
            tracker.return_book("IS404", "RS1", day(1))
        self.assertEqual(self.count(md.ReturnRecord), 0)

    def test_return_before_issue_date(self):
        tracker.issue_book("978-0-1", "M1", "E1", "IS1", day(3))
        with self.assertRaises(ConstraintViolation):
            tracker.return_book("IS1", "RS1", day(2))
        self.assertEqual(tracker.availability("978-0-1"), md.Availability.Issued)
        self.assertEqual(self.count(md.ReturnRecord), 0)

    def test_duplicate_return_id(self):
        tracker.issue_book("978-0-1", "M1", "E1", "IS1", day(0))
        tracker.issue_book("978-0-2", "M1", "E1", "IS2", day(0))
        tracker.return_book("IS1", "RS1", day(2))
        with self.assertRaises(ConstraintViolation):
            tracker.return_book("IS2", "RS1", day(2))
        self.assertEqual(tracker.availability("978-0-2"), md.Availability.Issued)
        self.assertConsistent()

    def test_availability_of_unknown_book(self):
        with self.assertRaises(NotFound):
            tracker.availability("nope")

    def test_end_to_end_scenario(self):
        self.assertEqual(tracker.availability("978-0-1"), md.Availability.Available)

        tracker.issue_book("978-0-1", "M1", "E1", "IS1", day(0))
        self.assertEqual(tracker.availability("978-0-1"), md.Availability.Issued)
        self.assertEqual(self.count(md.IssuedRecord), 1)

        with self.assertRaises(AlreadyIssued):
            tracker.issue_book("978-0-1", "M1", "E1", "IS2", day(1))

        tracker.return_book("IS1", "RS1", day(5))
        self.assertEqual(tracker.availability("978-0-1"), md.Availability.Available)
        self.assertEqual(self.count(md.ReturnRecord), 1)

        second = tracker.issue_book("978-0-1", "M1", "E1", "IS3", day(6))
        self.assertEqual(second.id, "IS3")
        _, history = tracker.issued_history(book_isbn="978-0-1")
        self.assertEqual([record.id for record in history], ["IS1", "IS3"])
        _, still_open = tracker.open_loans()
        self.assertEqual([record.id for record in still_open], ["IS3"])
        self.assertConsistent()

    def test_concurrent_issues_on_one_book(self):
        attempts = 8
        barrier = threading.Barrier(attempts)
        outcomes = []
        outcomes_lock = threading.Lock()

        def attempt(n):
            barrier.wait()
            try:
                tracker.issue_book("978-0-2", "M2", "E2", f"IS{n}", day(0))
                outcome = "issued"
            except AlreadyIssued:
                outcome = "already_issued"
            except Exception as e:
                outcome = type(e).__name__
            finally:
                session.remove()
            with outcomes_lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=attempt, args=(n,)) for n in range(attempts)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        self.assertEqual(len(outcomes), attempts)
        self.assertEqual(outcomes.count("issued"), 1, outcomes)
        self.assertEqual(outcomes.count("already_issued"), attempts - 1, outcomes)
        self.assertEqual(tracker.availability("978-0-2"), md.Availability.Issued)
        _, loans = tracker.open_loans()
        self.assertEqual(len(loans), 1)
        self.assertConsistent()

    def test_book_locks_are_dropped_after_use(self):
        locks = BookLocks()
        with locks.hold("978-0-1"):
            self.assertIn("978-0-1", locks._locks)
        self.assertNotIn("978-0-1", locks._locks)

        for n in range(3):
            with self.assertRaises(NotFound):
                tracker.issue_book(f"978-9-{n}", "M1", "E1", f"IS{n}", day(0))
        self.assertFalse(any(key.startswith("978-9-") for key in list(book_locks._locks.keys())))

    def test_history_filters(self):
        tracker.issue_book("978-0-1", "M1", "E1", "IS1", day(0))
        tracker.issue_book("978-0-2", "M2", "E2", "IS2", day(1))
        tracker.issue_book("978-0-3", "M1", "E2", "IS3", day(2))
        tracker.return_book("IS2", "RS2", day(4))

        _, by_employee = tracker.issued_history(employee_id="E2")
        self.assertEqual([record.id for record in by_employee], ["IS2", "IS3"])
        _, by_member = tracker.issued_history(member_id="M1")
        self.assertEqual([record.id for record in by_member], ["IS1", "IS3"])
        _, returns = tracker.return_history()
        self.assertEqual([record.id for record in returns], ["RS2"])
        _, returns = tracker.return_history(book_isbn="978-0-1")
        self.assertEqual(returns, [])

    def test_audit_reports_drift(self):
        tracker.issue_book("978-0-1", "M1", "E1", "IS1", day(0))
        # Simulate a write that bypassed the tracker.
        book = session.get(md.Book, "978-0-4")
        book.availability = md.Availability.Issued
        session.commit()

        mismatches = tracker.audit_availability()
        self.assertEqual(len(mismatches), 1)
        self.assertEqual(mismatches[0].isbn, "978-0-4")
        self.assertEqual(mismatches[0].stored, "Issued")
        self.assertEqual(mismatches[0].expected, "Available")
        self.assertEqual(mismatches[0].open_loans, 0)


if __name__ == "__main__":
    unittest.main()
