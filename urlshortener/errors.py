"""Failure taxonomy shared by the gateway, the workflows and the HTTP layer.

Only ``ValidationError`` and ``NotFound`` carry a message meant for the
client. Everything else is logged and answered with a generic 500.
"""


class ShortenerError(Exception):
    status_code = 500
    public_message = "Internal server error"


class ValidationError(ShortenerError):
    status_code = 400

    @property
    def public_message(self):
        return str(self)


class NotFound(ShortenerError):
    status_code = 404
    public_message = "404 page not found"


class ConstraintViolation(ShortenerError):
    """Insert rejected by a store constraint, e.g. a duplicate short code."""


class StoreUnavailable(ShortenerError):
    """Connectivity or query failure."""


class DegradedSideEffect(ShortenerError):
    """A bookkeeping write failed. Never surfaced to the client."""
