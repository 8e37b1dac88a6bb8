class ReservationError(Exception):
    """Base class for booking failures. `kind` is the stable code sent to clients."""

    kind = "reservation_error"


class InvalidRangeError(ReservationError):
    kind = "invalid_range"


class DateUnavailableError(ReservationError):
    kind = "date_unavailable"


class InvalidDateOrderError(ReservationError):
    kind = "invalid_date_order"


class InvalidTimeOrderError(ReservationError):
    kind = "invalid_time_order"


class PastDateError(ReservationError):
    kind = "past_date"


class PastTimeError(ReservationError):
    kind = "past_time"


class IncompleteRequestError(ReservationError):
    kind = "incomplete_request"


class FullyBookedRangeError(ReservationError):
    kind = "fully_booked_range"


class FacilityClosedError(ReservationError):
    kind = "facility_closed"


class FacilityNotFoundError(ReservationError):
    kind = "facility_not_found"


class QuoteStateError(ReservationError):
    kind = "quote_state"


class CommitConflictError(ReservationError):
    """A date filled up between validation and commit; the caller must re-quote."""

    kind = "commit_conflict"

    def __init__(self, message: str, conflicting_dates: tuple = ()) -> None:
        super().__init__(message)
        self.conflicting_dates = conflicting_dates


class InvalidDiscountError(ReservationError):
    kind = "invalid_discount"


class IdempotencyKeyReusedError(ReservationError):
    """The idempotency key was already used by this user for a different booking."""

    kind = "idempotency_key_reused"
