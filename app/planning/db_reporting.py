from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from . import db


class RunNotFoundError(Exception):
    pass


@dataclass
class RunOutcomeSummary:
    """Aggregate case outcomes and reasons for a single run."""

    run_id: int
    status_counts: Dict[str, int]
    fail_reasons: Dict[str, int]
    skip_reasons: Dict[str, int]
    pass_counts: Dict[str, Dict[str, int]] = field(default_factory=dict)
    uploads: int = 0


def summarise_outcomes_for_run(run_id: int) -> RunOutcomeSummary:
    """Compute status counts and reason breakdowns for ``run_id``."""

    conn = db.get_connection()
    if conn.execute("SELECT 1 FROM runs WHERE id = ?", (run_id,)).fetchone() is None:
        raise RunNotFoundError(f"Run {run_id} does not exist")

    status_counts: Dict[str, int] = {}
    pass_counts: Dict[str, Dict[str, int]] = {}
    cursor = conn.execute(
        """
        SELECT pass_name, status, COUNT(*) AS n
        FROM case_outcomes
        WHERE run_id = ?
        GROUP BY pass_name, status
        """,
        (run_id,),
    )
    for row in cursor.fetchall():
        status = row["status"] or ""
        count = int(row["n"])
        status_counts[status] = status_counts.get(status, 0) + count
        pass_counts.setdefault(row["pass_name"], {})[status] = count

    fail_reasons: Dict[str, int] = {}
    skip_reasons: Dict[str, int] = {}
    reason_cursor = conn.execute(
        """
        SELECT status, COALESCE(reason, '') AS reason, COUNT(*) AS n
        FROM case_outcomes
        WHERE run_id = ? AND status IN ('failed', 'skipped')
        GROUP BY status, reason
        """,
        (run_id,),
    )
    for row in reason_cursor.fetchall():
        code = (row["reason"] or "").strip() or "unknown"
        target = fail_reasons if row["status"] == "failed" else skip_reasons
        target[code] = int(row["n"])

    uploads_row = conn.execute(
        "SELECT COALESCE(SUM(uploads), 0) AS n FROM case_outcomes WHERE run_id = ?",
        (run_id,),
    ).fetchone()

    return RunOutcomeSummary(
        run_id=run_id,
        status_counts=status_counts,
        fail_reasons=fail_reasons,
        skip_reasons=skip_reasons,
        pass_counts=pass_counts,
        uploads=int(uploads_row["n"]),
    )


def get_latest_run_id() -> Optional[int]:
    """Return the ID of the most recent run, or None."""

    conn = db.get_connection()
    row = conn.execute("SELECT id FROM runs ORDER BY started_at DESC, id DESC LIMIT 1").fetchone()
    return int(row["id"]) if row else None


def get_run_summary(run_id: int) -> Optional[Dict[str, Any]]:
    """Return run metadata merged with its outcome aggregates."""

    run = db.get_run(run_id)
    if run is None:
        return None
    outcomes = summarise_outcomes_for_run(run_id)
    return {
        "run_id": run_id,
        "status": run["status"],
        "trigger": run["trigger"],
        "council": run["council"],
        "started_at": run["started_at"],
        "ended_at": run["ended_at"],
        "error_summary": run["error_summary"],
        "status_counts": outcomes.status_counts,
        "pass_counts": outcomes.pass_counts,
        "fail_reasons": outcomes.fail_reasons,
        "skip_reasons": outcomes.skip_reasons,
        "uploads": outcomes.uploads,
    }


__all__ = [
    "RunNotFoundError",
    "RunOutcomeSummary",
    "summarise_outcomes_for_run",
    "get_latest_run_id",
    "get_run_summary",
]
