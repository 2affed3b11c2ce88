from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from . import config, db
from .config_validation import validate_runtime_config
from .errors import StoreError
from .logging_utils import _crawl_event
from .store import CaseStore
from .utils import ensure_dirs, log_line


@dataclass
class HealthResult:
    ok: bool
    checks: dict[str, dict[str, Any]]


def _default_store_factory(cfg: config.CrawlConfig) -> CaseStore:
    return CaseStore.connect(cfg.mongo_uri, cfg.mongo_db, cfg.mongo_collection)


def run_health_checks(
    entrypoint: str = "cli",
    *,
    store_factory: Optional[Callable[[config.CrawlConfig], Any]] = None,
) -> HealthResult:
    checks: dict[str, dict[str, Any]] = {}
    cfg = config.load_crawl_config()

    try:
        validate_runtime_config(entrypoint or "cli", cfg)
        checks["config"] = {"ok": True}
    except ValueError as exc:
        checks["config"] = {"ok": False, "error": str(exc)}

    try:
        ensure_dirs()
        db.initialize_schema()
        conn = db.get_connection()
        try:
            conn.execute("SELECT COUNT(*) FROM runs")
        finally:
            conn.close()
        checks["ledger"] = {"ok": True, "path": str(db.DB_PATH)}
    except Exception as exc:  # noqa: BLE001
        checks["ledger"] = {"ok": False, "error": str(exc)}

    store = None
    try:
        store = (store_factory or _default_store_factory)(cfg)
        store.ping()
        checks["store"] = {"ok": True, "database": cfg.mongo_db, "collection": cfg.mongo_collection}
    except StoreError as exc:
        checks["store"] = {"ok": False, "error": str(exc)}
    finally:
        if store is not None:
            store.close()

    overall_ok = all(check.get("ok", False) for check in checks.values())
    _crawl_event(
        "state" if overall_ok else "error",
        phase="health",
        context="healthcheck",
        ok=overall_ok,
        checks=checks,
    )
    return HealthResult(ok=overall_ok, checks=checks)


if __name__ == "__main__":  # pragma: no cover
    result = run_health_checks(entrypoint="cli")
    for name, info in result.checks.items():
        status = "OK" if info.get("ok") else "FAIL"
        log_line(f"[HEALTH] {name}: {status} {info}")
    raise SystemExit(0 if result.ok else 1)
