from __future__ import annotations

import threading
from typing import Any, Callable, Dict

from flask import Flask, Response, jsonify, request

from app.planning import config, db, db_reporting
from app.planning.config_validation import validate_runtime_config
from app.planning.healthcheck import run_health_checks
from app.planning.logging_utils import _crawl_event
from app.planning.reconcile import PassKind
from app.planning.run import DEFAULT_PASSES, run_crawl
from app.planning.utils import ensure_dirs, get_current_log_path, load_json_file, log_line

app = Flask(__name__)

# Initialise storage paths and SQLite schema on import so WSGI entrypoints
# also have the expected environment ready.
ensure_dirs()
db.initialize_schema()

_CRAWL_LOCK = threading.Lock()

PASS_CHOICES: Dict[str, tuple[PassKind, ...]] = {
    "both": DEFAULT_PASSES,
    "validated": (PassKind.VALIDATED,),
    "decided": (PassKind.DECIDED,),
}


def _read_last_log_lines(limit: int = 150) -> list[str]:
    """Return the trailing ``limit`` lines of the active log file."""

    ensure_dirs()
    path = get_current_log_path()
    if not path.exists():
        return []

    with path.open("r", encoding="utf-8", errors="ignore") as handle:
        lines = handle.readlines()[-limit:]
    return [line.rstrip("\n") for line in lines]


def _get_trigger_token() -> str | None:
    token = request.headers.get("X-Crawl-Token")
    if not token:
        token = request.args.get("token")
    return token


def _start_background(target: Callable[[], None]) -> None:
    threading.Thread(target=target, daemon=True).start()


def _crawl_worker(passes: tuple[PassKind, ...], cfg: config.CrawlConfig) -> None:
    try:
        with app.app_context():
            summary = run_crawl(cfg, passes=passes, trigger="api")
            app.config["LAST_SUMMARY"] = summary
    except Exception as exc:  # noqa: BLE001
        log_line(f"Crawl thread failed: {exc}")
    finally:
        _CRAWL_LOCK.release()


@app.post("/api/crawl")
def api_crawl() -> Response:
    if not config.CRAWL_TRIGGER_SECRET:
        return jsonify({"ok": False, "error": "trigger_disabled"}), 404

    if _get_trigger_token() != config.CRAWL_TRIGGER_SECRET:
        _crawl_event(
            "error",
            phase="trigger",
            error="invalid_token",
            remote_addr=request.remote_addr,
        )
        return jsonify({"ok": False, "error": "invalid_token"}), 403

    payload: Dict[str, Any] = request.args.to_dict()
    if request.is_json:
        payload.update(request.get_json(silent=True) or {})
    pass_choice = str(payload.get("pass") or "both").strip().lower()
    passes = PASS_CHOICES.get(pass_choice)
    if passes is None:
        return (
            jsonify({"ok": False, "error": "invalid_params", "details": ["pass must be validated, decided or both"]}),
            400,
        )

    try:
        cfg = validate_runtime_config("ui")
    except ValueError as exc:
        return jsonify({"ok": False, "error": "config_invalid", "details": str(exc)}), 500

    if not _CRAWL_LOCK.acquire(blocking=False):
        return jsonify({"ok": False, "error": "crawl_in_progress"}), 409

    _crawl_event("state", phase="trigger", passes=[kind.value for kind in passes], remote_addr=request.remote_addr)
    try:
        _start_background(lambda: _crawl_worker(passes, cfg))
    except RuntimeError:
        _CRAWL_LOCK.release()
        raise
    return jsonify({"ok": True, "status": "started", "passes": [kind.value for kind in passes]}), 202


@app.get("/api/health")
def api_health() -> Response:
    """Return a JSON health summary for configuration, ledger and store."""

    result = run_health_checks(entrypoint="ui")
    status = 200 if result.ok else 503
    return jsonify({"ok": result.ok, "checks": result.checks}), status


@app.get("/api/runs/latest")
def api_runs_latest() -> Response:
    run_id = db_reporting.get_latest_run_id()
    if run_id is None:
        return jsonify({"ok": False, "error": "no runs"}), 404

    summary = db_reporting.get_run_summary(run_id)
    if not summary:
        return jsonify({"ok": False, "error": "no runs"}), 404
    return jsonify({"ok": True, "run": summary})


@app.get("/api/runs/<int:run_id>/summary")
def api_run_summary(run_id: int) -> Response:
    summary = db_reporting.get_run_summary(run_id)
    if summary is None:
        return jsonify({"ok": False, "error": "run_not_found", "run_id": run_id}), 404
    return jsonify({"ok": True, "run": summary})


@app.get("/api/summary/last")
def api_last_summary() -> Response:
    """Return the JSON summary written by the most recent finished crawl."""

    summary = app.config.get("LAST_SUMMARY") or load_json_file(config.SUMMARY_FILE)
    if not summary:
        return jsonify({"ok": False, "error": "no summary"}), 404
    return jsonify({"ok": True, "summary": summary})


@app.get("/api/logs/tail")
def api_logs_tail() -> Response:
    try:
        limit = int(request.args.get("limit", 150))
    except (TypeError, ValueError):
        limit = 150
    limit = max(1, min(limit, 1000))
    return jsonify({"ok": True, "lines": _read_last_log_lines(limit)})
