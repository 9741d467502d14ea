"""
Error types shared by the store, the AI integrations and the HTTP layer.

Every error carries the HTTP status the API answers with; the FastAPI
handlers in iforgot.api.main turn them into the {"success": false, "error": ...}
envelope.
"""

from typing import Optional

FOREIGN_KEY_PATTERNS = ("foreign key constraint", "_fkey")

OWNER_MISSING_MESSAGE = (
    "Database setup incomplete: owner {owner_id} was not found. "
    "Create the owner row (or enable SEED_DEMO_OWNER) before saving notes."
)


class IForgotError(Exception):
    """Base class for all application errors."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(IForgotError):
    """A required request field is missing or malformed."""

    status_code = 400


class NotFoundError(IForgotError):
    """The requested row does not exist or belongs to another owner."""

    status_code = 404


class StoreError(IForgotError):
    """The database rejected or failed an operation."""

    status_code = 500

    @classmethod
    def from_exception(cls, exc: Exception, owner_id: Optional[str] = None) -> "StoreError":
        """Wrap a driver/ORM exception, rewriting foreign key violations into a helpful message."""
        original = getattr(exc, "orig", None) or exc
        message = str(original)
        if is_foreign_key_violation(message):
            return cls(OWNER_MISSING_MESSAGE.format(owner_id=owner_id or "(unknown)"))
        return cls(message)


class ClassifierError(IForgotError):
    """The LLM classifier could not produce a judgment."""

    status_code = 502


class TranscriptionError(IForgotError):
    """Speech-to-text failed or no provider is configured."""

    status_code = 500


# PUBLIC_INTERFACE
def is_foreign_key_violation(message: str) -> bool:
    """True when a database error message looks like a foreign key violation."""
    lowered = (message or "").lower()
    return any(pattern in lowered for pattern in FOREIGN_KEY_PATTERNS)
