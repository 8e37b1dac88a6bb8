from fastapi import HTTPException, status

from ..domain.errors import (
    CommitConflictError,
    DateUnavailableError,
    FacilityNotFoundError,
    FullyBookedRangeError,
    IdempotencyKeyReusedError,
    ReservationError,
)


def to_http_exception(exc: ReservationError) -> HTTPException:
    detail: dict[str, object] = {"kind": exc.kind, "message": str(exc)}
    if isinstance(exc, FacilityNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    if isinstance(exc, CommitConflictError):
        detail["action"] = "requote"
        detail["conflicting_dates"] = [day.isoformat() for day in exc.conflicting_dates]
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
    if isinstance(exc, (FullyBookedRangeError, DateUnavailableError, IdempotencyKeyReusedError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)
