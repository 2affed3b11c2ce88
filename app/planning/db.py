"""SQLite run ledger for the planning crawler.

Case records live in MongoDB; this database only records crawl runs and the
outcome of every case each pass visited, for reporting and health checks.
"""
from __future__ import annotations

import sqlite3
import time
from pathlib import Path
from typing import Iterable, Optional

from . import config

DB_PATH: Path = config.DB_PATH


def get_connection() -> sqlite3.Connection:
    """Return a SQLite connection to the run ledger.

    The parent directory is created if missing and ``check_same_thread`` is
    disabled because the Flask trigger runs crawls on a worker thread.
    """

    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def initialize_schema() -> None:
    """Create the ledger tables if they do not yet exist."""

    statements: Iterable[str] = (
        """
        CREATE TABLE IF NOT EXISTS runs (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            started_at      TEXT NOT NULL,
            ended_at        TEXT,
            trigger         TEXT NOT NULL,
            council         TEXT NOT NULL,
            params_json     TEXT NOT NULL,
            status          TEXT NOT NULL,
            error_summary   TEXT
        );
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_runs_started_at
            ON runs(started_at DESC);
        """,
        """
        CREATE TABLE IF NOT EXISTS case_outcomes (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            run_id          INTEGER NOT NULL,
            pass_name       TEXT NOT NULL,
            position        INTEGER NOT NULL,
            link            TEXT NOT NULL,
            reference       TEXT,
            status          TEXT NOT NULL,
            reason          TEXT,
            error_message   TEXT,
            uploads         INTEGER NOT NULL DEFAULT 0,
            created_at      TEXT NOT NULL,
            FOREIGN KEY(run_id) REFERENCES runs(id)
        );
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_case_outcomes_run
            ON case_outcomes(run_id, pass_name);
        """,
    )

    conn = get_connection()
    with conn:
        for statement in statements:
            conn.execute(statement)


def _utc_now() -> str:
    """Return a UTC timestamp formatted as ISO8601 without fractional seconds."""

    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def create_run(trigger: str, council: str, params_json: str) -> int:
    """Insert a row into ``runs`` with status ``running`` and return its id."""

    conn = get_connection()
    with conn:
        cursor = conn.execute(
            """
            INSERT INTO runs (started_at, trigger, council, params_json, status)
            VALUES (?, ?, ?, ?, 'running')
            """,
            (_utc_now(), trigger, council, params_json),
        )
    return int(cursor.lastrowid)


def mark_run_completed(run_id: int) -> None:
    conn = get_connection()
    with conn:
        conn.execute(
            "UPDATE runs SET status = 'completed', ended_at = ? WHERE id = ?",
            (_utc_now(), run_id),
        )


def mark_run_failed(run_id: int, error_summary: str) -> None:
    conn = get_connection()
    with conn:
        conn.execute(
            """
            UPDATE runs
            SET status = 'failed', ended_at = ?, error_summary = ?
            WHERE id = ?
            """,
            (_utc_now(), error_summary, run_id),
        )


def record_case_outcomes(run_id: int, pass_name: str, outcomes: Iterable[object]) -> int:
    """Persist the ordered outcomes of one pass; return the number written.

    ``outcomes`` are ``CaseOutcome`` instances (duck-typed to avoid an import
    cycle with the reconciliation module).
    """

    now = _utc_now()
    rows = [
        (
            run_id,
            pass_name,
            position,
            outcome.link,
            outcome.reference,
            outcome.status.value,
            outcome.reason,
            outcome.error_message,
            outcome.uploads,
            now,
        )
        for position, outcome in enumerate(outcomes, start=1)
    ]
    if not rows:
        return 0
    conn = get_connection()
    with conn:
        conn.executemany(
            """
            INSERT INTO case_outcomes (
                run_id, pass_name, position, link, reference, status,
                reason, error_message, uploads, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            rows,
        )
    return len(rows)


def get_run(run_id: int) -> Optional[sqlite3.Row]:
    conn = get_connection()
    return conn.execute("SELECT * FROM runs WHERE id = ?", (run_id,)).fetchone()
