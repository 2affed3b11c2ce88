"""Exception hierarchy shared by the crawler components.

Errors raised while bootstrapping a search session or walking pagination
abort the whole pass. Errors raised while processing a single case are
caught by the reconciliation engine and turned into a failed outcome.
"""
from __future__ import annotations

from typing import Optional

from .error_codes import ErrorCode


class CrawlError(Exception):
    default_code = ErrorCode.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        url: Optional[str] = None,
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code or self.default_code
        self.url = url
        self.http_status = http_status

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ProtocolShapeError(CrawlError):
    """An element the portal protocol depends on is missing from a page."""

    default_code = ErrorCode.SITE_STRUCTURE


class PaginationLoopError(CrawlError):
    """A "next" link pointed back at a page that was already visited."""

    default_code = ErrorCode.PAGINATION_LOOP


class TransportError(CrawlError):
    default_code = ErrorCode.NETWORK


class UploadError(CrawlError):
    default_code = ErrorCode.UPLOAD_FAILED


class StoreError(CrawlError):
    default_code = ErrorCode.STORE


class MissingReferenceError(CrawlError):
    default_code = ErrorCode.MISSING_REFERENCE


__all__ = [
    "CrawlError",
    "ProtocolShapeError",
    "PaginationLoopError",
    "TransportError",
    "UploadError",
    "StoreError",
    "MissingReferenceError",
]
