"""
Ledger-specific exception hierarchy for TokenLedger.

Every failed ledger operation raises exactly one of these. The three families
mirror how a caller should react:

- AccessError: caller lacks authorization; retrying will not help.
- InitError: lifecycle violation around one-time initialization.
- InputError: malformed or unsatisfiable request; a retry with different
  arguments may succeed.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class LedgerError(Exception):
    """Base exception for all ledger errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried with other arguments
    """

    recoverable_default = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = self.recoverable_default if recoverable is None else recoverable

    @property
    def kind(self) -> str:
        """Taxonomy family name (AccessError, InitError or InputError)."""
        for family in (AccessError, InitError, InputError):
            if isinstance(self, family):
                return family.__name__
        return type(self).__name__


# ==================== Access Errors ====================


class AccessError(LedgerError):
    """Raised when the caller lacks the required authorization."""
    pass


class NotAdminError(AccessError):
    """Raised when minting is admin-gated and the caller is not the admin."""
    pass


class NotOwnerNorApprovedError(AccessError):
    """Raised when a transfer caller is neither owner, approved delegate nor operator."""
    pass


class NotAuthorizedToChangeAdminError(AccessError):
    """Raised when someone other than the current admin tries to rotate the admin."""
    pass


class NotAuthenticatedError(AccessError):
    """Raised when the host cannot resolve an invoking identity."""
    pass


# ==================== Initialization Errors ====================


class InitError(LedgerError):
    """Raised on lifecycle violations around initialization."""
    pass


class AlreadyInitializedError(InitError):
    """Raised when initialize is called a second time."""
    pass


class InvalidAdminError(InitError):
    """Raised when access control and admin presence disagree at initialization."""
    pass


# ==================== Input Errors ====================


class InputError(LedgerError):
    """Raised when a request is malformed or cannot be satisfied."""

    recoverable_default = True


class LengthMismatchError(InputError):
    """Raised when paired sequences differ in length."""
    pass


class NotFoundError(InputError):
    """Raised when a looked-up entity does not exist."""
    pass


class AdminNotFoundError(NotFoundError):
    """Raised when no admin is configured."""
    pass


class ApprovalNotFoundError(NotFoundError):
    """Raised when no approval entry exists for (owner, token id)."""
    pass


class TokenNotFoundError(NotFoundError):
    """Raised when a token id has never been minted or has no metadata."""
    pass


class InsufficientBalanceError(InputError):
    """Raised when a balance cannot cover the requested amount."""
    pass


class InvalidSupplyError(InputError):
    """Raised when a mint would push the minted supply past the u64 range."""
    pass


class InvalidValueError(InputError):
    """Raised when an integer argument is not an unsigned 64-bit value."""
    pass


class ArithmeticOverflowError(InputError):
    """Raised when a balance would exceed the u64 range."""
    pass


class MetadataAlreadySetError(InputError):
    """Raised when metadata for a token id is registered twice."""
    pass


class UnknownOperationError(InputError):
    """Raised when the host is asked to run an operation that does not exist."""
    pass
