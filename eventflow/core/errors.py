"""
Error taxonomy for the event registration and check-in core.

Every error carries a stable `kind` so callers can branch on it
instead of matching message text.
"""
from enum import Enum
from typing import List, Optional, Sequence


class EventFlowError(Exception):
    kind: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(EventFlowError):
    """
    Submitted data is incomplete or malformed.

    `missing` holds the labels of every empty required field,
    `invalid` the labels of every field whose value has the wrong shape.
    """
    kind = "validation"

    def __init__(
        self,
        missing: Sequence[str] = (),
        invalid: Sequence[str] = (),
        message: Optional[str] = None,
    ) -> None:
        self.missing: List[str] = list(missing)
        self.invalid: List[str] = list(invalid)
        if message is None:
            parts = []
            if self.missing:
                parts.append(f"Please fill in: {', '.join(self.missing)}")
            if self.invalid:
                parts.append(f"Invalid value for: {', '.join(self.invalid)}")
            message = ". ".join(parts) or "Invalid submission"
        super().__init__(message)


class DuplicateKind(str, Enum):
    EMAIL = "email"
    TEAM = "team"


class DuplicateError(EventFlowError):
    kind = "duplicate"

    MESSAGES = {
        DuplicateKind.EMAIL: "You are already registered for this event.",
        DuplicateKind.TEAM: "This team is already registered for this event.",
    }

    def __init__(self, duplicate: DuplicateKind) -> None:
        self.duplicate = duplicate
        super().__init__(self.MESSAGES[duplicate])


class NotFoundError(EventFlowError):
    kind = "not_found"

    def __init__(self, entity: str, key: str, message: Optional[str] = None) -> None:
        self.entity = entity
        self.key = key
        super().__init__(message or f"{entity} not found: {key}")


class InvalidTokenError(NotFoundError):
    """
    Unknown, blank or malformed entry token.

    The message is identical in every case so a caller cannot tell
    a malformed token from one that simply does not exist.
    """
    kind = "invalid_token"

    def __init__(self) -> None:
        super().__init__("Participant", "<token>", "Invalid entry pass. Access denied.")


class IdentityErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_EXISTS = "account_exists"
    WEAK_PASSWORD = "weak_password"
    NOT_SIGNED_IN = "not_signed_in"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    UNKNOWN = "unknown"


class IdentityError(EventFlowError):
    kind = "identity"

    def __init__(self, error_kind: IdentityErrorKind, message: str) -> None:
        self.error_kind = error_kind
        super().__init__(message)
