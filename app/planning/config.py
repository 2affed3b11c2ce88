"""Configuration constants for the planning portal crawler."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

DATA_DIR: Path = Path(os.getenv("PLANNING_DATA_DIR", "/app/data"))
LOG_DIR: Path = DATA_DIR / "logs"
LOG_FILE: Path = LOG_DIR / "latest.log"
SUMMARY_FILE: Path = DATA_DIR / "last_summary.json"
# SQLite ledger of runs and per-case outcomes. Case records themselves live
# in MongoDB.
DB_PATH: Path = DATA_DIR / "planning_runs.db"

DEFAULT_BASE_URL: str = os.getenv("PORTAL_BASE_URL", "https://publicaccess.leeds.gov.uk")
DEFAULT_COUNCIL: str = os.getenv("PORTAL_COUNCIL", "Leeds")

WEEKLY_LIST_PATH: str = "/online-applications/search.do?action=weeklyList"
FIRST_PAGE_PATH: str = "/online-applications/weeklyListResults.do?action=firstPage"
PAGED_RESULTS_PATH: str = "/online-applications/pagedSearchResults.do"

VALIDATED_DATE_TYPE: str = "DC_Validated"
DECIDED_DATE_TYPE: str = "DC_Decided"

RESULTS_PER_PAGE: int = int(os.getenv("RESULTS_PER_PAGE", "100"))
REQUEST_INTERVAL_SECONDS: float = float(os.getenv("REQUEST_INTERVAL_SECONDS", "1.0"))
HTTP_TIMEOUT_SECONDS: int = int(os.getenv("HTTP_TIMEOUT_SECONDS", "60"))

SYSTEM_ACTOR_ID: str = os.getenv("SYSTEM_ACTOR_ID", "6539157ef8be4d62ea02ed6b")

MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB: str = os.getenv("MONGO_DB", "planning")
MONGO_COLLECTION: str = os.getenv("MONGO_COLLECTION", "applications")

AWS_BUCKET_NAME: str = os.getenv("AWS_BUCKET_NAME", "")
AWS_REGION: str = os.getenv("AWS_REGION", "")
UPLOAD_MAX_RETRIES: int = int(os.getenv("UPLOAD_MAX_RETRIES", "3"))
UPLOAD_TIMEOUT_S: int = int(os.getenv("UPLOAD_TIMEOUT_S", "120"))

CRAWL_TRIGGER_SECRET: str = os.getenv("CRAWL_TRIGGER_SECRET", "")

COMMON_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-GB,en;q=0.9",
    "Connection": "keep-alive",
}


@dataclass(frozen=True)
class CrawlConfig:
    """Immutable settings for one crawl, built once at process start."""

    base_url: str = DEFAULT_BASE_URL
    council: str = DEFAULT_COUNCIL
    weekly_list_path: str = WEEKLY_LIST_PATH
    first_page_path: str = FIRST_PAGE_PATH
    paged_results_path: str = PAGED_RESULTS_PATH
    results_per_page: int = RESULTS_PER_PAGE
    request_interval: float = REQUEST_INTERVAL_SECONDS
    http_timeout: int = HTTP_TIMEOUT_SECONDS
    actor_id: str = SYSTEM_ACTOR_ID
    mongo_uri: str = MONGO_URI
    mongo_db: str = MONGO_DB
    mongo_collection: str = MONGO_COLLECTION
    bucket: str = AWS_BUCKET_NAME
    region: str = AWS_REGION
    upload_max_retries: int = UPLOAD_MAX_RETRIES
    upload_timeout: int = UPLOAD_TIMEOUT_S
    headers: dict[str, str] = field(default_factory=lambda: dict(COMMON_HEADERS))

    def to_params(self) -> dict[str, Any]:
        """Return the non-secret settings recorded alongside a run."""

        return {
            "base_url": self.base_url,
            "council": self.council,
            "results_per_page": self.results_per_page,
            "request_interval": self.request_interval,
            "mongo_db": self.mongo_db,
            "mongo_collection": self.mongo_collection,
            "bucket": self.bucket,
            "region": self.region,
        }


def load_crawl_config(**overrides: Any) -> CrawlConfig:
    """Build a ``CrawlConfig`` from the module settings plus ``overrides``.

    Module attributes are read at call time so tests may monkeypatch them.
    ``None`` overrides are ignored, which lets CLI flags pass through unset.
    """

    base = CrawlConfig(
        base_url=DEFAULT_BASE_URL,
        council=DEFAULT_COUNCIL,
        results_per_page=RESULTS_PER_PAGE,
        request_interval=REQUEST_INTERVAL_SECONDS,
        http_timeout=HTTP_TIMEOUT_SECONDS,
        actor_id=SYSTEM_ACTOR_ID,
        mongo_uri=MONGO_URI,
        mongo_db=MONGO_DB,
        mongo_collection=MONGO_COLLECTION,
        bucket=AWS_BUCKET_NAME,
        region=AWS_REGION,
        upload_max_retries=UPLOAD_MAX_RETRIES,
        upload_timeout=UPLOAD_TIMEOUT_S,
    )
    cleaned = {key: value for key, value in overrides.items() if value is not None}
    return replace(base, **cleaned) if cleaned else base


__all__ = ["CrawlConfig", "load_crawl_config"]
