"""Exceptions for dash-sync."""

from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------


class DashSyncError(Exception):
    """
    Base exception for all dash-sync errors.

    All exceptions raised by this library inherit from this class,
    allowing callers to catch all library-specific errors with a single
    except clause.
    """

    pass


# ---------------------------------------------------------------------------
# Category Exceptions
# ---------------------------------------------------------------------------


class StoreError(DashSyncError):
    """
    Base exception for object-store errors.

    This includes authentication, transport, and branch pointer failures
    raised by any ObjectStoreProtocol implementation.
    """

    pass


class DataError(DashSyncError):
    """
    Base exception for malformed data.

    This includes invalid dates on records and remote documents that
    cannot be decoded.
    """

    pass


# ---------------------------------------------------------------------------
# Store Exceptions
# ---------------------------------------------------------------------------


class AuthError(StoreError):
    """
    Raised when no valid credential is available or the backend rejects it.

    Fatal to any operation: the write pipeline aborts immediately and no
    partial write becomes visible.
    """

    def __init__(self, message: str = "No valid credential available", status: int | None = None):
        self.status = status
        super().__init__(message)


class NetworkError(StoreError):
    """
    Raised on a transient transport failure.

    Not retried automatically; callers may re-invoke the whole operation.

    Attributes:
        cause: The underlying exception, if any
        status: HTTP status code when the failure came from a response
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        *,
        status: int | None = None,
    ) -> None:
        self.cause = cause
        self.status = status
        super().__init__(self._format_message(message))

    def _format_message(self, message: str) -> str:
        if self.status is not None:
            return f"{message} (status={self.status})"
        return message


class RefConflictError(StoreError):
    """
    Raised when a branch pointer moved between read and update.

    Retryable: the write pipeline restarts from the head read up to its
    configured attempt limit before surfacing this error.
    """

    def __init__(
        self,
        branch: str,
        expected: str | None = None,
        actual: str | None = None,
        attempts: int | None = None,
    ) -> None:
        self.branch = branch
        self.expected = expected
        self.actual = actual
        self.attempts = attempts
        msg = f"Branch '{branch}' moved during update"
        if expected or actual:
            msg += f" (expected={expected or 'unknown'}, actual={actual or 'unknown'})"
        if attempts:
            msg += f" after {attempts} attempt(s)"
        super().__init__(msg)


class BranchNotFoundError(StoreError):
    """Raised when the target branch does not exist in the remote store."""

    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(f"Branch not found: {branch}")


# ---------------------------------------------------------------------------
# Data Exceptions
# ---------------------------------------------------------------------------


class InvalidDateError(DataError):
    """Raised when a record date is not a valid ``YYYY-MM-DD`` string."""

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Invalid date {value!r}: expected YYYY-MM-DD")


class DocumentParseError(DataError):
    """
    Raised when a remote JSON document cannot be decoded.

    On the sharded read path the offending shard is skipped instead; the
    aggregate read path surfaces this error since a partial aggregate is
    never returned.
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed document at {path}: {reason}")


# ---------------------------------------------------------------------------
# Validation Exceptions
# ---------------------------------------------------------------------------


class ValidationError(DashSyncError):
    """
    Raised when a configuration value fails validation.

    Attributes:
        field: The name of the field that failed validation
        value: The invalid value
        reason: Description of why validation failed
    """

    def __init__(self, field: str, value: str, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")
