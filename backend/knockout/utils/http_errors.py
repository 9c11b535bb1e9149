"""
Translate bracket service errors into HTTP errors.

- EventNotFoundError / MatchNotFoundError -> 404
- ConcurrentUpdateError -> 409
- BracketError (precondition) -> 400
"""

from fastapi import HTTPException

from knockout.services.bracket_errors import (
    BracketError,
    ConcurrentUpdateError,
    EventNotFoundError,
    MatchNotFoundError,
)


def to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (EventNotFoundError, MatchNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConcurrentUpdateError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, BracketError):
        return HTTPException(status_code=400, detail=str(exc))
    raise TypeError(f"Not a bracket error: {exc!r}")
