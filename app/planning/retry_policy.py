from __future__ import annotations

from typing import Optional

from .error_codes import ErrorCode
from .logging_utils import _crawl_event

RETRYABLE_ERROR_CODES = {
    ErrorCode.NETWORK,
    ErrorCode.HTTP_5XX,
    ErrorCode.RATE_LIMITED,
}

NON_RETRYABLE_ERROR_CODES = {
    ErrorCode.HTTP_401,
    ErrorCode.HTTP_403,
    ErrorCode.HTTP_404,
    ErrorCode.HTTP_4XX,
    ErrorCode.EMPTY_DOCUMENT,
    ErrorCode.SITE_STRUCTURE,
    ErrorCode.PAGINATION_LOOP,
    ErrorCode.MISSING_REFERENCE,
}


def compute_backoff_seconds(attempt_index: int) -> float:
    """Return a capped exponential backoff for the given attempt (1-based)."""

    return float(min(2 ** max(0, attempt_index - 1), 30))


def decide_retry(
    attempt_index: int,
    max_attempts: int,
    error: BaseException | None = None,
    *,
    error_code: Optional[str] = None,
    http_status: Optional[int] = None,
) -> bool:
    """Decide whether a failed document fetch should be retried."""

    code = (error_code or "").strip()
    if attempt_index >= max_attempts:
        kind, will_retry = "capped", False
    elif code in NON_RETRYABLE_ERROR_CODES:
        kind, will_retry = "non_retryable", False
    elif code in RETRYABLE_ERROR_CODES:
        kind, will_retry = "retryable", True
    elif http_status is not None and http_status >= 500:
        kind, will_retry = "retryable", True
    else:
        # Unknown context: allow one more attempt only if it is not the last.
        kind = "unknown" if code else "missing_error_code"
        will_retry = attempt_index < max_attempts - 1

    _crawl_event(
        "state",
        phase="retry_decision",
        kind=kind,
        error_code=code or None,
        attempt=attempt_index,
        max_attempts=max_attempts,
        http_status=http_status,
        will_retry=will_retry,
        error_repr=repr(error) if error is not None and kind in {"unknown", "missing_error_code"} else None,
    )
    return will_retry


__all__ = ["decide_retry", "compute_backoff_seconds", "NON_RETRYABLE_ERROR_CODES"]
