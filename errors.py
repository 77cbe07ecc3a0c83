"""Error kinds raised by the FoodLink services.

Every error carries the HTTP status it maps to and a user-facing message
that is shown to the end user as a transient notice.
"""


class FoodLinkError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(FoodLinkError):
    """Bad input, recoverable by the user correcting it."""

    status_code = 400
    default_message = "Invalid input"


class AuthError(FoodLinkError):
    """Credential rejection or missing session."""

    status_code = 401
    default_message = "Not logged in"


class AccessDeniedError(FoodLinkError):
    """The row access policy refuses this caller."""

    status_code = 403
    default_message = "You are not allowed to do that"


class NotFoundError(FoodLinkError):
    status_code = 404
    default_message = "Not found"


class PaymentError(FoodLinkError):
    """Bridge rejection or user cancellation. No donation is recorded."""

    status_code = 402
    default_message = "Payment failed"


class PersistenceError(FoodLinkError):
    """Store read/write failure. Never retried automatically."""

    status_code = 500
    default_message = "Could not save your changes"


class ConfigError(RuntimeError):
    """Missing startup configuration. Fatal."""
