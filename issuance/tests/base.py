import os
import unittest
from datetime import date

from faker import Faker

from issuance import create_app
from issuance.auth.oauth import staff_token
from issuance.catalog import store
from issuance.config import config_dict
from issuance.models import Base
from issuance.utils import session

fake = Faker()

DAY_0 = date(2024, 3, 1)


def populate_test_db():
    """Two branches, three employees, three members and four books."""
    store.add_branch("B1", fake.street_address()[:50], fake.phone_number()[:30])
    store.add_branch("B2", fake.street_address()[:50], fake.phone_number()[:30])
    employees = [
        store.add_employee("E1", fake.name()[:40], "Librarian", 52000, "B1"),
        store.add_employee("E2", fake.name()[:40], "Clerk", 31000, "B1"),
        store.add_employee("E3", fake.name()[:40], "Assistant", 28000.50, "B2"),
    ]
    store.assign_manager("B1", "E1")
    # B2 is run by an employee of another branch.
    store.assign_manager("B2", "E1")

    members = (("M1", date(2023, 1, 10)), ("M2", date(2024, 1, 5)), ("M3", date(2024, 2, 20)))
    for member_id, registered in members:
        store.register_member(member_id, fake.name()[:40], fake.street_address()[:40], registered)

    store.add_book("978-0-1", "To Kill a Mockingbird", "Classic", 6.00, "Harper Lee", "Lippincott")
    store.add_book("978-0-2", "Dune", "Science", 8.50, "Frank Herbert", "Chilton")
    store.add_book("978-0-3", "The Histories", "History", 7.00, "Herodotus", "Penguin")
    store.add_book("978-0-4", "Emma", "Classic", 5.00, "Jane Austen", "John Murray")
    return employees


class IssuanceTestCase(unittest.TestCase):
    populate = True

    def setUp(self):
        self.app = create_app(config_dict["testing"])
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.client = self.app.test_client()
        self.engine = self.app.extensions["issuance.engine"]
        if os.path.exists(self.engine.url.database):
            os.remove(self.engine.url.database)

        # Use create all to make sure the model matches the sql create statement
        if self.populate:
            Base.metadata.create_all(self.engine)
            self.employees = populate_test_db()
            self.staff_token = staff_token(self.employees[0])
            self.headers = {"Authorization": f"Bearer {self.staff_token}"}

    def tearDown(self):
        session.remove()
        self.app_context.pop()
        self.engine.dispose()
        if os.path.exists(self.engine.url.database):
            os.remove(self.engine.url.database)
