from functools import wraps
from http import HTTPStatus

from flask_jwt_extended import create_access_token, get_jwt, verify_jwt_in_request
from flask_restx import abort

STAFF_ROLE = "staff"


def staff_required(fn):
    @wraps(fn)
    def decorator(*args, **kwargs):
        verify_jwt_in_request()
        claims = get_jwt()
        if claims.get("role") == STAFF_ROLE:
            return fn(*args, **kwargs)
        else:
            abort(HTTPStatus.FORBIDDEN, "Only library staff can perform this action!")

    return decorator


def staff_token(employee) -> str:
    """Mint an access token for an employee. Needs an application context."""
    return create_access_token(
        identity=employee.id,
        additional_claims={"role": STAFF_ROLE, "branch_id": employee.branch_id},
    )
