"""Service error hierarchy for the upload and moderation workflow.

Every error carries the HTTP status code it maps to:
- ValidationError, RateLimitError, InvalidKeyError, InvalidStatusError: 400
- NotFoundError: 404
- NotEditableError: 403
- StorageError: 500 (message is opaque to the client, detail is logged)

No error in this hierarchy is retried automatically; the caller resubmits.
"""


class PinwallError(Exception):
    """Base exception for all service errors."""

    status_code = 500
    public_message: str | None = None

    @property
    def detail(self) -> str:
        """Message safe to return to the client."""
        return self.public_message or str(self)


class ValidationError(PinwallError):
    """Malformed or missing input (empty caption, missing file, bad extension)."""

    status_code = 400


class RateLimitError(PinwallError):
    """Identity already uploaded a record today."""

    status_code = 400


class InvalidKeyError(PinwallError):
    """Upload key missing, bound to another identity, consumed, or issued on a prior day."""

    status_code = 400


class NotFoundError(PinwallError):
    """Unknown record id, or record not visible for the requested operation."""

    status_code = 404


class InvalidStatusError(PinwallError):
    """Review status outside {approved, rejected}."""

    status_code = 400


class NotEditableError(PinwallError):
    """Edit attempted on a record that is not approved or is locked."""

    status_code = 403


class StorageError(PinwallError):
    """File or persistence failure."""

    status_code = 500
    public_message = "Internal storage error. Please try again later."
