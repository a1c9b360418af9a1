"""
RiskVault error taxonomy.

Every failure of a ledger operation is raised as a RiskVaultError subclass
carrying a stable ErrorCode. Errors are local to the operation that raised
them: no state is partially applied.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Stable failure codes."""
    NOT_FOUND = "NOT_FOUND"
    ALREADY_FINALIZED = "ALREADY_FINALIZED"
    UNKNOWN_REQUEST = "UNKNOWN_REQUEST"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    DUPLICATE_REQUEST = "DUPLICATE_REQUEST"
    MALFORMED_PLAINTEXT = "MALFORMED_PLAINTEXT"
    REQUEST_ID_COLLISION = "REQUEST_ID_COLLISION"


class RiskVaultError(Exception):
    """Base class for all ledger errors."""

    code: ErrorCode = ErrorCode.NOT_FOUND
    # Whether a corrected retry of the same call can still succeed
    retryable: bool = False

    def __init__(self, message: str, subject: Optional[Any] = None):
        self.message = message
        self.subject = subject
        super().__init__(f"{self.code.value}: {message}")

    def to_dict(self) -> dict:
        d = {"code": self.code.value, "message": self.message, "retryable": self.retryable}
        if self.subject is not None:
            d["subject"] = str(self.subject)
        return d


class NotFound(RiskVaultError):
    """Unknown record id, or a counter that was never initialized."""
    code = ErrorCode.NOT_FOUND


class AlreadyFinalized(RiskVaultError):
    """The assessment has already been revealed."""
    code = ErrorCode.ALREADY_FINALIZED


class UnknownRequest(RiskVaultError):
    """Callback for a request id that was never issued or is already spent."""
    code = ErrorCode.UNKNOWN_REQUEST


class AuthenticationFailed(RiskVaultError):
    """The decryption proof did not verify."""
    code = ErrorCode.AUTHENTICATION_FAILED
    retryable = True


class CategoryNotFound(RiskVaultError):
    """Category never initialized, or a digest that matches no registry entry."""
    code = ErrorCode.CATEGORY_NOT_FOUND


class DuplicateRequest(RiskVaultError):
    """A live pending request already exists for the target."""
    code = ErrorCode.DUPLICATE_REQUEST


class MalformedPlaintext(RiskVaultError):
    """Authenticated plaintext does not decode to the expected uint32 layout."""
    code = ErrorCode.MALFORMED_PLAINTEXT
    retryable = True


class RequestIdCollision(RiskVaultError):
    """The oracle returned a request id that is still live."""
    code = ErrorCode.REQUEST_ID_COLLISION
