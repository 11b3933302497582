"""
Failure classification.

Every failure the service can explain is raised as a KnownError subclass.
The API layer turns these into a JSON body with a stable ``kind`` field;
anything else is an unknown failure and surfaces as a plain 500.

Retry semantics live here too: RemoteStoreError carries a ``retryable``
flag so the sync engine can tell a dropped connection (queue and replay
later) from a rejected write (roll back and surface immediately).
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"
    NO_CACHED_DATA = "no_cached_data"

    # Connectivity
    OFFLINE = "offline"
    STORE_UNAVAILABLE = "store_unavailable"
    EXTERNAL_API_ERROR = "external_api_error"

    # Rejected by the remote store
    CONSTRAINT_VIOLATION = "constraint_violation"

    # Unknown
    UNKNOWN = "unknown"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> FailureDetail:
        """Convert to a serialisable failure detail."""
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class FetchError(KnownError):
    """
    Raised when the card catalog cannot be read.

    Covers non-2xx responses, transport failures and malformed bodies.
    ``http_status`` is None when no response was received.
    """

    def __init__(self, message: str, http_status: int | None = None):
        self.http_status = http_status
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message=f"Card catalog error: {message}",
            detail=f"HTTP {http_status}" if http_status is not None else None,
            suggestion="Try again in a moment.",
            status_code=502,
        )


class RemoteStoreError(KnownError):
    """
    Raised when the remote store rejects or cannot serve a request.

    Retryable errors (connection refused, timeouts, dropped sessions) are
    safe to queue and replay. Non-retryable errors will fail identically
    on every replay and must be surfaced instead.
    """

    def __init__(
        self,
        message: str,
        retryable: bool,
        kind: FailureKind | None = None,
        detail: str | None = None,
    ):
        self.retryable = retryable
        if kind is None:
            kind = FailureKind.STORE_UNAVAILABLE if retryable else FailureKind.CONSTRAINT_VIOLATION
        super().__init__(
            kind=kind,
            message=message,
            detail=detail,
            status_code=503 if retryable else (404 if kind == FailureKind.NOT_FOUND else 422),
        )


class OfflineError(KnownError):
    """Raised when an operation needs the network and none is available."""

    def __init__(self, message: str, kind: FailureKind = FailureKind.OFFLINE):
        super().__init__(
            kind=kind,
            message=message,
            suggestion="Reconnect and try again.",
            status_code=503,
        )


class EntryNotFoundError(KnownError):
    """Raised when a collection entry is not present in the local cache."""

    def __init__(self, profile_id: str, entry_id: str):
        self.profile_id = profile_id
        self.entry_id = entry_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Collection entry '{entry_id}' not found for profile '{profile_id}'",
            status_code=404,
        )


def invalid_input(message: str, **extra: Any) -> KnownError:
    """Build an INVALID_INPUT error; extra keyword values go into the detail."""
    detail = ", ".join(f"{k}={v!r}" for k, v in extra.items()) or None
    return KnownError(kind=FailureKind.INVALID_INPUT, message=message, detail=detail)
