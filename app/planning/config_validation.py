from __future__ import annotations

from typing import Literal, Optional

from . import config
from .logging_utils import _crawl_event
from .utils import log_line

Entrypoint = Literal["ui", "cli", "tests"]


def _raise_config_error(message: str, *, entrypoint: Entrypoint, error: str) -> None:
    _crawl_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint})")
    raise ValueError(message)


def validate_runtime_config(
    entrypoint: Entrypoint,
    cfg: Optional[config.CrawlConfig] = None,
) -> config.CrawlConfig:
    """Validate crawl settings for the given entrypoint and return them.

    Raises ``ValueError`` when a blocking misconfiguration is detected.
    """

    cfg = cfg or config.load_crawl_config()

    if not cfg.base_url.startswith(("http://", "https://")):
        _raise_config_error(
            "PORTAL_BASE_URL must be an http(s) URL.",
            entrypoint=entrypoint,
            error="base_url_invalid",
        )

    if not cfg.council.strip():
        _raise_config_error("PORTAL_COUNCIL must not be empty.", entrypoint=entrypoint, error="council_missing")

    if cfg.request_interval < 0:
        _raise_config_error(
            "REQUEST_INTERVAL_SECONDS must be non-negative.",
            entrypoint=entrypoint,
            error="request_interval_invalid",
        )

    for field_name, value in (
        ("RESULTS_PER_PAGE", cfg.results_per_page),
        ("HTTP_TIMEOUT_SECONDS", cfg.http_timeout),
        ("UPLOAD_TIMEOUT_S", cfg.upload_timeout),
        ("UPLOAD_MAX_RETRIES", cfg.upload_max_retries),
    ):
        if value <= 0:
            _raise_config_error(
                f"{field_name} must be greater than zero.",
                entrypoint=entrypoint,
                error="invalid_positive_setting",
            )

    if entrypoint != "tests" and not (cfg.bucket and cfg.region):
        _raise_config_error(
            "AWS_BUCKET_NAME and AWS_REGION are required for uploads.",
            entrypoint=entrypoint,
            error="blob_storage_unconfigured",
        )

    return cfg


__all__ = ["validate_runtime_config", "Entrypoint"]
