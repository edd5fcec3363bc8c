from http import HTTPStatus


class IssuanceError(Exception):
    """Base class for every failure the loan and catalog operations report."""

    code = "error"
    status = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, **self.details}


class NotFound(IssuanceError):
    code = "not_found"
    status = HTTPStatus.NOT_FOUND

    def __init__(self, entity: str, key: str):
        super().__init__(f"{entity} {key!r} not found", entity=entity, key=key)


class AlreadyIssued(IssuanceError):
    code = "already_issued"
    status = HTTPStatus.CONFLICT

    def __init__(self, isbn: str):
        super().__init__(f"Book is not available. ISBN: {isbn}", isbn=isbn)


class AlreadyReturned(IssuanceError):
    code = "already_returned"
    status = HTTPStatus.CONFLICT

    def __init__(self, issued_id: str):
        super().__init__(f"Issued record {issued_id!r} is already returned", issued_id=issued_id)


class ConstraintViolation(IssuanceError):
    code = "constraint_violation"
    status = HTTPStatus.CONFLICT


class InvalidInput(IssuanceError):
    code = "invalid_input"
    status = HTTPStatus.BAD_REQUEST
