class BookingError(Exception):
    """Base class for every failure the booking core reports to its caller."""

    code = "booking_error"


class ValidationError(BookingError):
    code = "validation_error"


class UnauthorizedError(BookingError):
    code = "unauthorized"


class SlotClosedError(BookingError):
    code = "slot_closed"


class SlotTakenError(BookingError):
    code = "slot_taken"


class HorizonExceededError(BookingError):
    code = "horizon_exceeded"


class RangeInvalidError(BookingError):
    code = "range_invalid"


class NotFoundError(BookingError):
    code = "not_found"


class InvalidTransitionError(BookingError):
    code = "invalid_transition"


class ArtistNotApprovedError(BookingError):
    code = "artist_not_approved"
