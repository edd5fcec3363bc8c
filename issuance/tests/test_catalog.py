import unittest
from datetime import date
from decimal import Decimal

import issuance.models as md
from issuance.catalog import store
from issuance.errors import ConstraintViolation, InvalidInput, NotFound
from issuance.loans import tracker
from issuance.tests.base import IssuanceTestCase, fake


class CatalogTestCase(IssuanceTestCase):
    def test_new_books_are_available(self):
        book = store.add_book(
            "978-1-60129-456-2",
            "A Tale",
            "Fiction",
            "6.5",
            fake.name()[:30],
            fake.company()[:30],
        )
        self.assertEqual(book.availability, md.Availability.Available)
        self.assertEqual(book.rental_price, Decimal("6.50"))

    def test_duplicate_isbn(self):
        with self.assertRaises(ConstraintViolation):
            store.add_book("978-0-1", "Again", "Classic", 1, "Someone", "Somewhere")

    def test_negative_and_invalid_prices(self):
        with self.assertRaises(ConstraintViolation):
            store.add_book("978-0-9", "Cheap", "Classic", -1, "Someone", "Somewhere")
        with self.assertRaises(InvalidInput):
            store.add_book("978-0-9", "Cheap", "Classic", "free", "Someone", "Somewhere")
        for price in ("NaN", "Infinity"):
            with self.assertRaises(InvalidInput):
                store.add_book("978-0-9", "Cheap", "Classic", price, "Someone", "Somewhere")
        with self.assertRaises(NotFound):
            store.get_book("978-0-9")

    def test_update_book_metadata(self):
        book = store.update_book("978-0-2", title="Dune Messiah", rental_price=9)
        self.assertEqual(book.title, "Dune Messiah")
        self.assertEqual(book.rental_price, Decimal("9.00"))

    def test_update_book_cannot_touch_availability(self):
        tracker.issue_book("978-0-2", "M1", "E1", "IS1", date(2024, 3, 1))
        with self.assertRaises(ConstraintViolation):
            store.update_book("978-0-2", availability="Available")
        self.assertEqual(tracker.availability("978-0-2"), md.Availability.Issued)
        with self.assertRaises(InvalidInput):
            store.update_book("978-0-2", isbn="978-0-99")
        self.assertEqual(store.get_book("978-0-2").isbn, "978-0-2")
        with self.assertRaises(NotFound):
            store.get_book("978-0-99")

    def test_list_books_filters(self):
        tracker.issue_book("978-0-4", "M1", "E1", "IS1", date(2024, 3, 1))
        _, classics = store.list_books(["Classic"])
        self.assertEqual([book.isbn for book in classics], ["978-0-4", "978-0-1"])
        _, issued = store.list_books(availability="Issued")
        self.assertEqual([book.isbn for book in issued], ["978-0-4"])
        _, several = store.list_books(["Classic", "History"], "Available")
        self.assertEqual({book.isbn for book in several}, {"978-0-1", "978-0-3"})

    def test_member_address_is_mutable(self):
        member = store.update_member("M1", address="125 Oak St")
        self.assertEqual(member.address, "125 Oak St")
        self.assertEqual(store.get_member("M1").registration_date, date(2023, 1, 10))
        with self.assertRaises(NotFound):
            store.update_member("M404", address="Nowhere")

    def test_register_member(self):
        member = store.register_member("C103", "Ada", "1 Main St", "2024-05-01")
        self.assertEqual(member.registration_date, date(2024, 5, 1))
        with self.assertRaises(ConstraintViolation):
            store.register_member("C103", "Ada", "1 Main St", "2024-05-01")
        with self.assertRaises(InvalidInput):
            store.register_member("C104", "Bob", "2 Main St", None)

    def test_employee_requires_branch(self):
        with self.assertRaises(NotFound):
            store.add_employee("E9", "Nobody", "Clerk", 1000, "B9")
        with self.assertRaises(ConstraintViolation):
            store.add_employee("E1", "Again", "Clerk", 1000, "B1")
        with self.assertRaises(ConstraintViolation):
            store.add_employee("E9", "Nobody", "Clerk", -5, "B1")
        _, staff = store.list_employees("B1")
        self.assertEqual([employee.id for employee in staff], ["E1", "E2"])

    def test_branch_manager_must_be_an_employee(self):
        with self.assertRaises(NotFound):
            store.add_branch("B3", "3 Side St", "555-0003", manager_id="E404")
        branch = store.add_branch("B3", "3 Side St", "555-0003", manager_id="E3")
        self.assertEqual(branch.manager_id, "E3")
        with self.assertRaises(NotFound):
            store.assign_manager("B3", "E404")
        with self.assertRaises(NotFound):
            store.assign_manager("B404", "E1")
        self.assertEqual(store.get_branch("B3").manager_id, "E3")

    def test_manager_from_another_branch(self):
        branch = store.get_branch("B2")
        self.assertEqual(branch.manager.id, "E1")
        self.assertEqual(branch.manager.branch_id, "B1")
        _, branches = store.list_branches()
        self.assertEqual([branch.id for branch in branches], ["B1", "B2"])


if __name__ == "__main__":
    unittest.main()
