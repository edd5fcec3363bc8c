import logging
import threading
import weakref
from contextlib import contextmanager
from datetime import date, datetime
from functools import wraps

from flask import jsonify, make_response, request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import CompileError, IntegrityError
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.sql.elements import DQLDMLClauseElement

from issuance.config import Config
from issuance.errors import ConstraintViolation, InvalidInput, IssuanceError

logger = logging.getLogger(__name__)

session = scoped_session(sessionmaker())
dialect = Config.DIALECT


def init_engine(config: type[Config]) -> Engine:
    """Create the engine for ``config`` and bind the shared session to it."""
    global dialect
    engine = create_engine(config.SQLALCHEMY_DATABASE_URI, echo=config.SQLALCHEMY_ECHO)
    if config.DB == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    dialect = config.DIALECT
    session.remove()
    session.configure(bind=engine)
    logger.debug("Bound session to %s", engine.url)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def sql_compile(clause: DQLDMLClauseElement, dialect=None) -> str:
    if isinstance(clause, str):
        clauses = clause.split("\n")
        return "\n".join([line.strip() for line in clauses if line.strip()])
    dialect = dialect or globals()["dialect"]
    try:
        return str(clause.compile(dialect=dialect(), compile_kwargs={"literal_binds": True}))
    except CompileError:
        # Some bound values have no literal form; show placeholders instead.
        return str(clause.compile(dialect=dialect()))


def atomic_transaction(func):
    """
    Decorator to wrap a function in an atomic transaction.
    Uses the global `session` object. Integrity errors raised by the
    database surface as ConstraintViolation.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            result = func(*args, **kwargs)
            session.commit()
            return result
        except IntegrityError as e:
            session.rollback()
            raise ConstraintViolation(str(e.orig)) from e
        except Exception:
            session.rollback()
            raise

    return wrapper


class BookLocks:
    """Process-wide mutual exclusion keyed by ISBN."""

    def __init__(self):
        self._lock = threading.Lock()
        # Entries disappear once no transaction holds or waits on them.
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    @contextmanager
    def hold(self, isbn: str):
        with self._lock:
            lock = self._locks.get(isbn)
            if lock is None:
                lock = self._locks[isbn] = threading.Lock()
        with lock:
            yield


book_locks = BookLocks()


def parse_date(value, field: str = "date") -> date:
    """Accept a date, a datetime or an ISO string and return a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise InvalidInput(f"{field} is required", field=field)
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise InvalidInput(f"{field} must be an ISO date (YYYY-MM-DD)", field=field) from e


def error_response(error: IssuanceError, queries=None):
    body = error.to_dict()
    if queries is not None:
        body["queries"] = queries
    return make_response(jsonify(body), error.status)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def require_fields(data: dict, *fields: str) -> dict:
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    missing = [field for field in fields if data.get(field) in (None, "")]
    if missing:
        raise InvalidInput(f"Missing required fields: {', '.join(missing)}", fields=missing)
    return {field: data[field] for field in fields}
