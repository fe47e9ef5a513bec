from fastapi import HTTPException

from mockexam.utils.exceptions import (
    CatalogNotFoundError,
    EmptyCatalogError,
    ExamError,
    InvalidStateError,
    OutOfRangeError,
    SessionNotFoundError,
)

STATUS_CODES = {
    CatalogNotFoundError: 404,
    SessionNotFoundError: 404,
    InvalidStateError: 409,
    OutOfRangeError: 422,
    EmptyCatalogError: 400,
}


def to_http_exception(error: ExamError) -> HTTPException:
    """Translate a session error into the matching HTTP error"""
    status_code = STATUS_CODES.get(type(error), 400)
    return HTTPException(status_code=status_code, detail=str(error))
