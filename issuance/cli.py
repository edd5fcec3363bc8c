import logging
from datetime import date, timedelta
from random import Random

import click
from faker import Faker
from flask import current_app
from sqlalchemy import text

from issuance.auth.oauth import staff_token
from issuance.catalog import store
from issuance.errors import IssuanceError
from issuance.loans import tracker
from issuance.sql import schema_statements
from issuance.utils import session

logger = logging.getLogger(__name__)

CATEGORIES = ("Classic", "Fiction", "History", "Science", "Mystery", "Children")
POSITIONS = ("Clerk", "Assistant", "Librarian")


def init_db():
    statements = schema_statements(current_app.config["DB"])
    for stmt in statements:
        session.execute(text(stmt))
    session.commit()
    return statements


def seed_demo(books=20, members=10, branches=2, loans=10, seed=None, today=None):
    """Fill the catalogue with Faker data and run some loans through the tracker."""
    fake = Faker()
    rng = Random(seed)
    if seed is not None:
        fake.seed_instance(seed)
    today = today or date.today()

    staff = []
    for b in range(1, branches + 1):
        branch_id = f"B{b:03d}"
        store.add_branch(branch_id, fake.street_address()[:50], fake.phone_number()[:30])
        for e in range(3):
            employee = store.add_employee(
                f"E{b}{e:02d}",
                fake.name()[:40],
                POSITIONS[e],
                rng.randint(30, 70) * 1000,
                branch_id,
            )
            staff.append(employee.id)
        # The librarian runs the branch.
        store.assign_manager(branch_id, staff[-1])

    member_ids = []
    for m in range(1, members + 1):
        member = store.register_member(
            f"C{100 + m}",
            fake.name()[:40],
            fake.street_address()[:40],
            today - timedelta(days=rng.randint(1, 720)),
        )
        member_ids.append(member.id)

    isbns = []
    for _ in range(books):
        book = store.add_book(
            fake.unique.isbn13(),
            fake.sentence(nb_words=rng.randint(2, 5)).rstrip(".")[:80],
            rng.choice(CATEGORIES),
            rng.choice((4.5, 5.0, 6.0, 7.0, 7.5, 8.0)),
            fake.name()[:30],
            fake.company()[:30],
        )
        isbns.append(book.isbn)

    issued = 0
    for n, isbn in enumerate(rng.sample(isbns, k=min(loans, len(isbns))), start=1):
        issued_date = today - timedelta(days=rng.randint(1, 60))
        record = tracker.issue_book(
            isbn, rng.choice(member_ids), rng.choice(staff), f"IS{100 + n}", issued_date
        )
        issued += 1
        if rng.random() < 0.4:
            tracker.return_book(
                record.id,
                f"RS{100 + n}",
                issued_date + timedelta(days=rng.randint(0, (today - issued_date).days)),
            )
    logger.info("Seeded %d books, %d members and %d loans", books, members, issued)
    return {
        "books": len(isbns),
        "members": len(member_ids),
        "employees": len(staff),
        "loans": issued,
    }


def register_commands(app):
    @app.cli.command("init-db")
    def init_db_command():
        """Create the tables for the configured database."""
        statements = init_db()
        click.echo(f"Executed {len(statements)} statements")

    @app.cli.command("seed-demo")
    @click.option("--books", default=20, show_default=True)
    @click.option("--members", default=10, show_default=True)
    @click.option("--branches", default=2, show_default=True)
    @click.option("--loans", default=10, show_default=True)
    @click.option("--seed", type=int, default=None)
    def seed_demo_command(books, members, branches, loans, seed):
        """Populate the database with demo data."""
        try:
            counts = seed_demo(books, members, branches, loans, seed)
        except IssuanceError as e:
            raise click.ClickException(e.message) from e
        click.echo(", ".join(f"{key}={value}" for key, value in counts.items()))

    @app.cli.command("issue-token")
    @click.argument("emp_id")
    def issue_token_command(emp_id):
        """Print a staff access token for an employee."""
        try:
            employee = store.get_employee(emp_id)
        except IssuanceError as e:
            raise click.ClickException(e.message) from e
        click.echo(staff_token(employee))
