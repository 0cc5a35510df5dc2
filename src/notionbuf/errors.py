"""Error hierarchy for notionbuf.

Every public error class inherits from :class:`NotionbufError`.  Each carries
a machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Transport errors are raised by :mod:`notionbuf.notion_api`.  Sync errors are
mostly *recorded* rather than raised: the executor captures each failed
remote call as an :class:`~notionbuf.models.OperationError` and a caller may
turn the aggregate into :class:`NotionbufPartialSyncError` through
:meth:`~notionbuf.models.SyncResult.raise_for_errors`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error notionbuf can raise."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMITED = "RATE_LIMITED"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    NETWORK_ERROR = "NETWORK_ERROR"
    MAPPING_INCONSISTENCY = "MAPPING_INCONSISTENCY"
    AMBIGUOUS_EDIT = "AMBIGUOUS_EDIT"
    PARTIAL_SYNC_FAILURE = "PARTIAL_SYNC_FAILURE"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class NotionbufError(Exception):
    """Root of every error notionbuf raises or records.

    ``code`` is an :class:`ErrorCode` (plain strings are tolerated),
    ``context`` holds structured diagnostics for logs, and ``cause`` is the
    wrapped exception, also exposed as ``__cause__``.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.context: dict[str, Any] = dict(context) if context else {}
        self.cause = cause
        self.__cause__ = cause

    def __repr__(self) -> str:
        fields = [f"code={self.code!r}", f"message={self.message!r}"]
        if self.context:
            fields.append(f"context={self.context!r}")
        return f"{type(self).__name__}({', '.join(fields)})"


class _CodedError(NotionbufError):
    """Error whose code is fixed by the subclass."""

    code_default = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(self.code_default, message, context, cause)


# ---------------------------------------------------------------------------
# API / transport errors
# ---------------------------------------------------------------------------

class NotionbufValidationError(_CodedError):
    """Notion API returned 400: the request payload was invalid.

    Context keys: ``status_code``, ``notion_code``, ``body``.
    """

    code_default = ErrorCode.VALIDATION_ERROR


class NotionbufAuthError(_CodedError):
    """Notion API returned 401: the integration token is invalid or expired."""

    code_default = ErrorCode.AUTH_ERROR


class NotionbufPermissionError(_CodedError):
    """Notion API returned 403: the integration lacks access to the resource.

    Context keys: ``status_code``, ``operation``.
    """

    code_default = ErrorCode.PERMISSION_ERROR


class NotionbufNotFoundError(_CodedError):
    """Notion API returned 404: the page or block does not exist.

    Context keys: ``status_code``, ``path``.
    """

    code_default = ErrorCode.NOT_FOUND


class NotionbufConflictError(_CodedError):
    """Notion API returned 409: the resource changed concurrently."""

    code_default = ErrorCode.CONFLICT


class NotionbufRateLimitError(_CodedError):
    """Notion API returned 429 and the caller chose not to wait.

    Context keys: ``retry_after_seconds``.
    """

    code_default = ErrorCode.RATE_LIMITED


class NotionbufRetryExhaustedError(_CodedError):
    """Every retry attempt for a request failed.

    Context keys: ``attempts``, ``last_status_code``.
    """

    code_default = ErrorCode.RETRY_EXHAUSTED


class NotionbufNetworkError(_CodedError):
    """A network-level failure (DNS, connect, timeout) that was not retried.

    Context keys: ``url``, ``attempt``.
    """

    code_default = ErrorCode.NETWORK_ERROR


# ---------------------------------------------------------------------------
# Sync errors
# ---------------------------------------------------------------------------

class NotionbufMappingError(_CodedError):
    """A block's position marker is missing or inverted.

    The position tracker builds one per affected block, logs its code and
    context, and treats the block as deleted.

    Context keys: ``block_id``, ``marker_id``.
    """

    code_default = ErrorCode.MAPPING_INCONSISTENCY


class NotionbufAmbiguousEditError(_CodedError):
    """An unmatched plan entry needs a user decision before it can sync.

    Context keys: ``start_line``, ``end_line``, ``choice``.
    """

    code_default = ErrorCode.AMBIGUOUS_EDIT


class NotionbufPartialSyncError(_CodedError):
    """One or more remote operations of a sync failed.

    No rollback is attempted: the local model reflects exactly the
    sub-operations that succeeded.

    Context keys: ``failed``, ``errors``.
    """

    code_default = ErrorCode.PARTIAL_SYNC_FAILURE


class NotionbufPreconditionError(_CodedError):
    """An operation cannot be attempted, e.g. a create whose parent id is
    still provisional because an earlier batch failed.

    Context keys: ``anchor``, ``temp_ids``.
    """

    code_default = ErrorCode.PRECONDITION_FAILED
