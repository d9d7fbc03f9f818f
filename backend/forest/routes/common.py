from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..errors import ConflictError, ForestError, NotFoundError, ValidationError

_STATUS_CODES = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (ValidationError, 400),
)


def http_error(db: Session, exc: ForestError) -> HTTPException:
    """Roll back the request's transaction and map a domain error onto an HTTP status."""

    db.rollback()
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
