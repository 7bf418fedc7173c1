"""Error taxonomy shared by the availability engine, the booking store and the API."""


class AvailabilityError(Exception):
    """Base class for availability errors."""


class InvalidInput(AvailabilityError, ValueError):
    """A required parameter is missing or malformed. Reported as a client error."""


class MalformedBookingRecord(AvailabilityError, ValueError):
    """A single booking row cannot be projected. Recovered by skipping the row."""

    def __init__(self, message: str, booking_id: str | None = None) -> None:
        super().__init__(message)
        self.booking_id = booking_id


class UpstreamUnavailable(AvailabilityError, RuntimeError):
    """The booking store could not be reached. Reported as a server error."""
