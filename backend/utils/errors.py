"""
Domain errors surfaced by the API.

``QueryFailure`` is a list fetch the database could not run; the client
shows it as a banner with "retry" and "clear filters". ``ValidationFailure``
is a form constraint, shown inline next to ``field``.
"""
from fastapi import HTTPException, status
from typing import Optional


class QueryFailure(Exception):
    def __init__(self, message: str, entity: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity = entity


class ValidationFailure(Exception):
    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


def query_failure_exception(error: QueryFailure, clear_href: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={
            "message": error.message,
            "retry": True,
            "clear_filters_href": clear_href,
        }
    )


def validation_failure_exception(error: ValidationFailure) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"field": error.field, "message": error.message}
    )
