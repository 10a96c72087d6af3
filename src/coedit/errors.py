"""Error hierarchy for the coedit package.

Every public error class inherits from CoeditError. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

The merge functions never raise; these errors come from sessions and
store collaborators only.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the package can raise."""

    NOT_FOUND = "NOT_FOUND"
    WRITE_FAILURE = "WRITE_FAILURE"
    MALFORMED_SNAPSHOT = "MALFORMED_SNAPSHOT"
    SESSION_STATE = "SESSION_STATE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    INVALID_RESPONSE = "INVALID_RESPONSE"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class CoeditError(Exception):
    """Base exception for all coedit errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
    cause:
        The underlying exception, if this error wraps another.
    """

    default_code: str = "COEDIT_ERROR"

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str | None = None,
    ) -> None:
        self.code: str = code or self.default_code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Session errors
# ---------------------------------------------------------------------------

class CoeditNotFoundError(CoeditError):
    """The requested document does not exist.  Terminal for a session.

    Context keys: ``document_id``.
    """

    default_code = ErrorCode.NOT_FOUND


class CoeditWriteError(CoeditError):
    """A create or update write failed.  Transient: the next coalesced
    write re-sends the same changes.

    Context keys: ``document_id``, ``operation``.
    """

    default_code = ErrorCode.WRITE_FAILURE


class CoeditMalformedSnapshotError(CoeditError):
    """A pushed snapshot does not match the document schema.  Fatal for
    the receiving session; no partial merge is attempted.

    Context keys: ``schema``, ``field``, ``reason``.
    """

    default_code = ErrorCode.MALFORMED_SNAPSHOT


class CoeditSessionStateError(CoeditError):
    """An operation was attempted in a state that does not allow it
    (before ``open()``, after ``close()``, or on a not-found document).

    Context keys: ``state``, ``operation``.
    """

    default_code = ErrorCode.SESSION_STATE


# ---------------------------------------------------------------------------
# Store / transport errors
# ---------------------------------------------------------------------------

class CoeditValidationError(CoeditError):
    """The store rejected the request payload (HTTP 4xx).

    Context keys: ``status_code``, ``body``.
    """

    default_code = ErrorCode.VALIDATION_ERROR


class CoeditAuthError(CoeditError):
    """The store refused the credentials (HTTP 401 / 403).

    Context keys: ``status_code``.
    """

    default_code = ErrorCode.AUTH_ERROR


class CoeditNetworkError(CoeditError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``url``, ``attempt``.
    """

    default_code = ErrorCode.NETWORK_ERROR


class CoeditRetryExhaustedError(CoeditError):
    """All retry attempts have been exhausted for a retryable request.

    Context keys: ``attempts``, ``last_status_code``.
    """

    default_code = ErrorCode.RETRY_EXHAUSTED


class CoeditResponseError(CoeditError):
    """The store answered 2xx with a body that is not a JSON object,
    e.g. an HTML page from a proxy in front of it.

    Context keys: ``status_code``, ``method``, ``path``, ``reason``
    (``invalid_json`` or ``not_an_object``), ``body``.
    """

    default_code = ErrorCode.INVALID_RESPONSE
