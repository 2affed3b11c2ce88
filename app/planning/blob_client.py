from __future__ import annotations

import time
import uuid
from typing import Any, Callable, Dict

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .error_codes import ErrorCode
from .errors import TransportError, UploadError
from .logging_utils import _crawl_event
from .records import DocumentRef, DocumentType
from .retry_policy import compute_backoff_seconds, decide_retry
from .urls import redact_url
from .utils import log_line

DEFAULT_CONTENT_TYPE = "application/pdf"


def build_s3_client(region: str, *, call_timeout: int = 60) -> Any:
    """Create an S3 client with bounded timeouts and standard retries."""

    boto_config = BotoConfig(
        connect_timeout=5,
        read_timeout=max(8, int(call_timeout)),
        retries={"max_attempts": 3, "mode": "standard"},
    )
    kwargs: Dict[str, Any] = {"config": boto_config}
    if region:
        kwargs["region_name"] = region
    return boto3.client("s3", **kwargs)


def _new_key() -> str:
    return uuid.uuid4().hex


def _content_type(response: Any) -> str:
    headers = getattr(response, "headers", None) or {}
    raw = headers.get("Content-Type") or headers.get("content-type") or ""
    value = str(raw).split(";", 1)[0].strip()
    return value or DEFAULT_CONTENT_TYPE


class S3Uploader:
    """Copy portal documents into an S3 bucket.

    ``http_client`` is called as ``http_client(url, timeout=...)`` and must
    return a response with ``content`` and ``headers``; in a crawl it is the
    pass's ``PortalSession.download`` so document fetches share the session
    cookies and rate gate.
    """

    def __init__(
        self,
        s3_client: Any,
        *,
        bucket: str,
        region: str,
        http_client: Callable[..., Any],
        max_retries: int = 3,
        timeout: int = 120,
        key_factory: Callable[[], str] = _new_key,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.s3_client = s3_client
        self.bucket = bucket
        self.region = region
        self.http_client = http_client
        self.max_retries = max(1, max_retries)
        self.timeout = timeout
        self.key_factory = key_factory
        self.sleep = sleep

    def location_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def _fetch(self, source_url: str) -> tuple[bytes, str]:
        safe_url = redact_url(source_url)
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.http_client(source_url, timeout=self.timeout)
                body = bytes(response.content or b"")
                if not body:
                    raise UploadError(
                        f"Empty document body from {safe_url}",
                        error_code=ErrorCode.EMPTY_DOCUMENT,
                        url=source_url,
                    )
                return body, _content_type(response)
            except (TransportError, UploadError) as exc:
                should_retry = decide_retry(
                    attempt_index=attempt,
                    max_attempts=self.max_retries,
                    error=exc,
                    error_code=exc.error_code,
                    http_status=exc.http_status,
                )
                log_line(f"[UPLOAD] Fetch attempt {attempt} for {safe_url} failed: {exc}")
                if not should_retry:
                    raise UploadError(
                        f"Unable to fetch {safe_url}: {exc}",
                        error_code=exc.error_code,
                        url=source_url,
                        http_status=exc.http_status,
                    ) from exc
                self.sleep(compute_backoff_seconds(attempt))
        raise UploadError(f"Unable to fetch {safe_url}", url=source_url)

    def upload(self, doc_type: DocumentType, source_url: str) -> DocumentRef:
        """Fetch ``source_url`` and store it under a fresh unique key."""

        body, content_type = self._fetch(source_url)
        key = self.key_factory()
        try:
            result = self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            _crawl_event(
                "error",
                phase="upload",
                doc_type=doc_type.value,
                url=redact_url(source_url),
                error=str(exc),
            )
            raise UploadError(f"Error uploading file to S3: {exc}", url=source_url) from exc

        location = {
            "Bucket": self.bucket,
            "Key": key,
            "ETag": (result or {}).get("ETag", ""),
            "Location": self.location_url(key),
            "ServerSideEncryption": (result or {}).get("ServerSideEncryption", ""),
        }
        _crawl_event(
            "upload",
            doc_type=doc_type.value,
            url=redact_url(source_url),
            key=key,
            bytes=len(body),
            status="ok",
        )
        return DocumentRef(
            doc_type=doc_type,
            key=key,
            size=len(body),
            content_type=content_type,
            location=location,
        )


__all__ = ["S3Uploader", "build_s3_client", "DEFAULT_CONTENT_TYPE"]
