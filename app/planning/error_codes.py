from __future__ import annotations

"""Error code taxonomy for crawl failures.

Codes are stored in the ``case_outcomes.reason`` column and included in
structured log lines, so they should stay stable for reporting.
"""


class ErrorCode:
    NETWORK = "network_error"
    HTTP_4XX = "http_4xx"
    HTTP_401 = "http_401_unauthorised"
    HTTP_403 = "http_403_forbidden"
    HTTP_404 = "http_404_not_found"
    HTTP_5XX = "http_5xx"
    RATE_LIMITED = "rate_limited"
    SITE_STRUCTURE = "site_structure_changed"
    PAGINATION_LOOP = "pagination_loop"
    MISSING_REFERENCE = "missing_reference"
    EMPTY_DOCUMENT = "empty_document"
    UPLOAD_FAILED = "upload_failed"
    STORE = "store_error"
    INTERNAL = "internal_error"


def classify_http_status(status: int | None) -> str:
    if status is None:
        return ErrorCode.INTERNAL
    if status == 401:
        return ErrorCode.HTTP_401
    if status == 403:
        return ErrorCode.HTTP_403
    if status == 404:
        return ErrorCode.HTTP_404
    if status == 429:
        return ErrorCode.RATE_LIMITED
    if 400 <= status < 500:
        return ErrorCode.HTTP_4XX
    if status >= 500:
        return ErrorCode.HTTP_5XX
    return ErrorCode.INTERNAL


__all__ = ["ErrorCode", "classify_http_status"]
