"""Crawl orchestration for the planning portal.

Workflow, once per pass (validated first, then decided):

- Open a fresh portal session and pick up cookies from the portal root.
- Walk the weekly list search for the pass's date filter to collect every
  case summary link, in portal order.
- Reconcile each case against MongoDB, uploading qualifying PDFs to S3.
- Record every case outcome in the SQLite run ledger.

A failure while bootstrapping the search or walking pagination aborts the
run; failures inside a single case are recorded and the pass moves on.
"""
from __future__ import annotations

import argparse
import json
import sqlite3
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from . import config, db
from .blob_client import S3Uploader, build_s3_client
from .config_validation import validate_runtime_config
from .errors import CrawlError
from .logging_utils import _crawl_event
from .pagination import PaginationWalker
from .reconcile import PassKind, PassSummary, ReconciliationEngine
from .store import CaseStore
from .transport import PortalSession
from .utils import ensure_dirs, log_line, save_json_file, setup_run_logger

SessionFactory = Callable[[config.CrawlConfig], PortalSession]

DEFAULT_PASSES = (PassKind.VALIDATED, PassKind.DECIDED)


def _short_error_message(exc: BaseException, max_length: int = 200) -> str:
    message = str(exc) or exc.__class__.__name__
    if len(message) > max_length:
        return message[: max_length - 3] + "..."
    return message


def run_pass(
    kind: PassKind,
    cfg: config.CrawlConfig,
    store: Any,
    s3_client: Any,
    *,
    session_factory: Optional[SessionFactory] = None,
) -> PassSummary:
    """Run one pass on its own portal session and return its summary."""

    session = (session_factory or PortalSession.from_config)(cfg)
    try:
        session.prime()
        log_line(f"[RUN] Extracting {kind.value} links...")
        links = PaginationWalker.from_config(session, cfg).walk(kind.date_type)
        log_line(f"[RUN] Found {len(links)} {kind.value} links.")

        uploader = S3Uploader(
            s3_client,
            bucket=cfg.bucket,
            region=cfg.region,
            http_client=session.download,
            max_retries=cfg.upload_max_retries,
            timeout=cfg.upload_timeout,
        )
        engine = ReconciliationEngine(
            session,
            store,
            uploader,
            council=cfg.council,
            actor_id=cfg.actor_id,
        )
        return engine.run_pass(kind, links)
    finally:
        session.close()


def run_crawl(
    cfg: Optional[config.CrawlConfig] = None,
    *,
    store: Any = None,
    s3_client: Any = None,
    passes: Sequence[PassKind] = DEFAULT_PASSES,
    trigger: str = "cli",
    session_factory: Optional[SessionFactory] = None,
) -> Dict[str, Any]:
    """Run the requested passes and return a JSON-serialisable summary."""

    cfg = cfg or config.load_crawl_config()
    ensure_dirs()
    db.initialize_schema()
    log_path = setup_run_logger()

    owns_store = store is None
    if store is None:
        store = CaseStore.connect(cfg.mongo_uri, cfg.mongo_db, cfg.mongo_collection)
        store.ensure_indexes()
    if s3_client is None:
        s3_client = build_s3_client(cfg.region, call_timeout=cfg.upload_timeout)

    run_id: Optional[int] = None
    try:
        run_id = db.create_run(trigger, cfg.council, json.dumps(cfg.to_params()))
    except sqlite3.Error as exc:
        log_line(f"[DB][WARN] Unable to create run record: {exc}")

    started = time.monotonic()
    result: Dict[str, Any] = {
        "run_id": run_id,
        "council": cfg.council,
        "trigger": trigger,
        "log_file": str(log_path),
        "passes": {},
    }
    _crawl_event("run", phase="start", run_id=run_id, passes=[kind.value for kind in passes])

    try:
        for kind in passes:
            summary = run_pass(kind, cfg, store, s3_client, session_factory=session_factory)
            result["passes"][kind.value] = summary.to_dict()
            if run_id is not None:
                try:
                    db.record_case_outcomes(run_id, kind.value, summary.outcomes)
                except sqlite3.Error as exc:
                    log_line(f"[DB][WARN] Unable to record {kind.value} outcomes for run_id={run_id}: {exc}")
    except Exception as exc:
        _crawl_event("error", phase="run", run_id=run_id, error=_short_error_message(exc))
        if run_id is not None:
            try:
                db.mark_run_failed(run_id, _short_error_message(exc))
            except sqlite3.Error as mark_exc:
                log_line(f"[DB][WARN] Unable to mark run failed: {mark_exc}")
        raise
    finally:
        if owns_store:
            store.close()

    result["duration_seconds"] = round(time.monotonic() - started, 1)
    if run_id is not None:
        try:
            db.mark_run_completed(run_id)
        except sqlite3.Error as exc:
            log_line(f"[DB][WARN] Unable to mark run completed: {exc}")
    try:
        save_json_file(config.SUMMARY_FILE, result)
    except OSError as exc:
        log_line(f"[RUN][WARN] Unable to write summary: {exc}")

    _crawl_event("run", phase="end", run_id=run_id, duration_seconds=result["duration_seconds"])
    return result


def _passes_for(choice: str) -> List[PassKind]:
    if choice == "both":
        return list(DEFAULT_PASSES)
    return [PassKind(choice)]


def _cli_entrypoint(argv: Optional[List[str]] = None) -> int:  # pragma: no cover
    parser = argparse.ArgumentParser(description="Crawl the planning portal into MongoDB and S3")
    parser.add_argument("--base-url", default=None)
    parser.add_argument("--council", default=None)
    parser.add_argument(
        "--pass",
        dest="pass_choice",
        choices=["validated", "decided", "both"],
        default="both",
    )
    parser.add_argument("--request-interval", type=float, default=None)
    args = parser.parse_args(argv)

    ensure_dirs()
    cfg = validate_runtime_config(
        "cli",
        config.load_crawl_config(
            base_url=args.base_url,
            council=args.council,
            request_interval=args.request_interval,
        ),
    )

    try:
        result = run_crawl(cfg, passes=_passes_for(args.pass_choice), trigger="cli")
    except CrawlError as exc:
        log_line(f"[RUN] Crawl aborted ({exc.error_code}): {exc}")
        return 1

    for name, counts in result["passes"].items():
        log_line(f"[RUN] {name}: {counts}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(_cli_entrypoint())

__all__ = ["run_crawl", "run_pass", "_cli_entrypoint"]
