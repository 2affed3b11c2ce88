"""Cookie-bearing HTTP session for one crawl pass.

A ``PortalSession`` owns the ``requests`` session (and with it the cookie
jar), the rate gate and the token state captured from portal responses. It
issues one request at a time and must not be shared between passes or
threads.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests

from . import config
from .error_codes import ErrorCode, classify_http_status
from .errors import ProtocolShapeError, TransportError
from .logging_utils import _crawl_event
from .rate_limit import FixedIntervalGate
from .selectors import CSRF_FIELD, LEGACY_TOKEN_FIELD
from .tokens import PortalTokens
from .urls import absolute_url, redact_url


@dataclass
class SessionState:
    """Tokens captured from the most recent portal response.

    Tokens are single use: ``consume_form_tokens`` hands them out once and
    clears them so the next post has to capture fresh ones.
    """

    csrf_token: Optional[str] = None
    legacy_token: Optional[str] = None
    week: Optional[str] = None

    def absorb(self, tokens: PortalTokens) -> None:
        self.csrf_token = tokens.csrf
        self.legacy_token = tokens.legacy
        if tokens.week:
            self.week = tokens.week

    def consume_form_tokens(self) -> Dict[str, str]:
        if not self.csrf_token:
            raise ProtocolShapeError("No unused CSRF token available for form post")
        fields = {CSRF_FIELD: self.csrf_token}
        if self.legacy_token:
            fields[LEGACY_TOKEN_FIELD] = self.legacy_token
        self.csrf_token = None
        self.legacy_token = None
        return fields


def build_http_session(headers: Optional[Mapping[str, str]] = None) -> requests.Session:
    """Return a requests session carrying the browser-like portal headers."""

    session = requests.Session()
    session.headers.update(dict(headers or config.COMMON_HEADERS))
    return session


class PortalSession:
    def __init__(
        self,
        base_url: str,
        *,
        gate: Optional[FixedIntervalGate] = None,
        timeout: int = config.HTTP_TIMEOUT_SECONDS,
        http: Optional[Any] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.gate = gate or FixedIntervalGate(config.REQUEST_INTERVAL_SECONDS)
        self.timeout = timeout
        self.http = http if http is not None else build_http_session()
        self.state = SessionState()

    @classmethod
    def from_config(cls, cfg: config.CrawlConfig, **kwargs: Any) -> "PortalSession":
        kwargs.setdefault("gate", FixedIntervalGate(cfg.request_interval))
        kwargs.setdefault("timeout", cfg.http_timeout)
        if "http" not in kwargs:
            kwargs["http"] = build_http_session(cfg.headers)
        return cls(cfg.base_url, **kwargs)

    def absolute(self, link: str) -> str:
        return absolute_url(self.base_url, link)

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        target = self.absolute(url)
        self.gate.wait()
        kwargs.setdefault("timeout", self.timeout)
        response = None
        try:
            response = self.http.request(method, target, **kwargs)
            response.raise_for_status()
        except (requests.Timeout, requests.ConnectionError) as exc:
            _crawl_event("error", phase="transport", method=method, url=redact_url(target), error=str(exc))
            raise TransportError(str(exc), error_code=ErrorCode.NETWORK, url=target) from exc
        except requests.HTTPError as exc:
            status = getattr(exc.response, "status_code", None)
            if status is None:
                status = getattr(response, "status_code", None)
            _crawl_event(
                "error",
                phase="transport",
                method=method,
                url=redact_url(target),
                http_status=status,
            )
            raise TransportError(
                f"HTTP {status} for {redact_url(target)}",
                error_code=classify_http_status(status),
                url=target,
                http_status=status,
            ) from exc
        except requests.RequestException as exc:
            raise TransportError(str(exc), error_code=ErrorCode.NETWORK, url=target) from exc
        return response

    def get(self, url: str) -> str:
        return self._request("GET", url).text

    def post_form(self, url: str, data: Mapping[str, str]) -> str:
        return self._request("POST", url, data=dict(data)).text

    def download(self, url: str, timeout: Optional[int] = None) -> Any:
        """Fetch a document and return the raw response (used by the uploader)."""

        return self._request("GET", url, timeout=timeout or self.timeout)

    def prime(self) -> None:
        """Visit the portal root once so the session picks up its cookies."""

        self._request("GET", self.base_url + "/")

    def close(self) -> None:
        close = getattr(self.http, "close", None)
        if callable(close):
            close()


__all__ = ["SessionState", "PortalSession", "build_http_session"]
