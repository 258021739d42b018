"""Error taxonomy for the tracking engine.

Each error carries the HTTP status it maps to at the API boundary.
Referenced-entity misses map to 500 rather than 404 so untrusted
click and conversion callers cannot probe which ids exist.
"""


class TrackingError(Exception):
    """Base class for tracking errors surfaced to callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TrackingError):
    """Caller-supplied request is missing a required field."""

    status_code = 400


class NotFoundError(TrackingError):
    """A referenced offer, question or click record does not exist."""


class StoreError(TrackingError):
    """The persistence layer failed; nothing was committed."""


class TemplatingError(Exception):
    """A URL template is syntactically malformed."""


class MalformedInputError(ValueError):
    """An optional input (timestamp, revenue) could not be parsed."""


class OperationFailedError(TrackingError):
    """Caller-facing internal failure with a generic, operation-level message."""
