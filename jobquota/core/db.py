"""SQLite database layer for monthly quotas, search history, and saved jobs."""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from jobquota.core.schemas import (
    JobListing,
    QuotaRecord,
    SavedJob,
    SearchHistoryEntry,
    utcnow,
)

_QUOTAS_TABLE = """
CREATE TABLE IF NOT EXISTS user_quotas (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT    NOT NULL,
    month_year      TEXT    NOT NULL,
    searches_used   INTEGER NOT NULL DEFAULT 0,
    max_searches    INTEGER NOT NULL DEFAULT 3,
    created_at      TEXT    NOT NULL,
    updated_at      TEXT    NOT NULL,
    UNIQUE(user_id, month_year)
);
"""

_SEARCHES_TABLE = """
CREATE TABLE IF NOT EXISTS user_job_searches (
    id                      INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id                 TEXT NOT NULL,
    search_query            TEXT NOT NULL,
    search_location         TEXT NOT NULL DEFAULT '',
    search_employment_type  TEXT NOT NULL DEFAULT '',
    search_experience       TEXT NOT NULL DEFAULT '',
    job_data                TEXT NOT NULL DEFAULT '[]',
    search_timestamp        TEXT NOT NULL,
    month_year              TEXT NOT NULL
);
"""

_SEARCHES_INDEX = """
CREATE INDEX IF NOT EXISTS idx_user_job_searches_user_month
    ON user_job_searches (user_id, month_year);
"""

_SAVED_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS user_saved_jobs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT    NOT NULL,
    job_id          TEXT    NOT NULL,
    job_data        TEXT    NOT NULL,
    match_score     INTEGER NOT NULL DEFAULT 0,
    is_applied      INTEGER NOT NULL DEFAULT 0,
    is_favorited    INTEGER NOT NULL DEFAULT 1,
    saved_at        TEXT    NOT NULL,
    applied_at      TEXT,
    notes           TEXT,
    UNIQUE(user_id, job_id)
);
"""


def init_db(path: str | Path, *, create_tables: bool = True) -> sqlite3.Connection:
    """Open the database, optionally creating tables, and return a connection.

    ``create_tables=False`` opens an unprovisioned database; every query then
    fails with "no such table", which the stores report as unavailable.
    """
    if str(path) != ":memory:":
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
    # The HTTP app touches the connection from the event loop thread only.
    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    if create_tables:
        conn.execute(_QUOTAS_TABLE)
        conn.execute(_SEARCHES_TABLE)
        conn.execute(_SEARCHES_INDEX)
        conn.execute(_SAVED_JOBS_TABLE)
        conn.commit()
    return conn


# ---------------------------------------------------------------------------
# Quotas
# ---------------------------------------------------------------------------


def get_quota(conn: sqlite3.Connection, user_id: str, month_key: str) -> QuotaRecord | None:
    """Return the quota row for (user, month), or None if not created yet."""
    row = conn.execute(
        "SELECT * FROM user_quotas WHERE user_id = ? AND month_year = ?",
        (user_id, month_key),
    ).fetchone()
    if row is None:
        return None
    return _quota_from_row(row)


def write_quota(
    conn: sqlite3.Connection,
    user_id: str,
    month_key: str,
    searches_used: int,
    max_searches: int,
    now: datetime | None = None,
) -> QuotaRecord:
    """Insert or overwrite the quota row for (user, month). Returns the stored row."""
    stamp = (now or utcnow()).isoformat()
    conn.execute(
        """
        INSERT INTO user_quotas
            (user_id, month_year, searches_used, max_searches, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(user_id, month_year)
        DO UPDATE SET
            searches_used = excluded.searches_used,
            max_searches = excluded.max_searches,
            updated_at = excluded.updated_at
        """,
        (user_id, month_key, searches_used, max_searches, stamp, stamp),
    )
    conn.commit()
    record = get_quota(conn, user_id, month_key)
    if record is None:  # pragma: no cover - the upsert above guarantees a row
        msg = f"Quota row for {user_id}/{month_key} vanished after write"
        raise sqlite3.DatabaseError(msg)
    return record


def _quota_from_row(row: sqlite3.Row) -> QuotaRecord:
    return QuotaRecord(
        user_id=row["user_id"],
        month_key=row["month_year"],
        searches_used=row["searches_used"],
        max_searches=row["max_searches"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


# ---------------------------------------------------------------------------
# Search history
# ---------------------------------------------------------------------------


def insert_search_history(
    conn: sqlite3.Connection,
    entry: SearchHistoryEntry,
) -> SearchHistoryEntry:
    """Append a search history row. Returns the entry with its row ID."""
    cursor = conn.execute(
        """
        INSERT INTO user_job_searches
            (user_id, search_query, search_location, search_employment_type,
             search_experience, job_data, search_timestamp, month_year)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            entry.user_id,
            entry.query,
            entry.location,
            entry.employment_type,
            entry.experience,
            _dump_listings(entry.job_data),
            entry.timestamp.isoformat(),
            entry.month_key,
        ),
    )
    conn.commit()
    return entry.model_copy(update={"id": cursor.lastrowid})


def get_search_history(
    conn: sqlite3.Connection,
    user_id: str,
    month_key: str,
) -> list[SearchHistoryEntry]:
    """Return a user's searches for one month, newest first."""
    rows = conn.execute(
        """
        SELECT * FROM user_job_searches
        WHERE user_id = ? AND month_year = ?
        ORDER BY search_timestamp DESC, id DESC
        """,
        (user_id, month_key),
    ).fetchall()
    return [_history_from_row(row) for row in rows]


def get_all_search_history(conn: sqlite3.Connection, user_id: str) -> list[SearchHistoryEntry]:
    """Return every search a user has run, across all months, newest first."""
    rows = conn.execute(
        """
        SELECT * FROM user_job_searches
        WHERE user_id = ?
        ORDER BY search_timestamp DESC, id DESC
        """,
        (user_id,),
    ).fetchall()
    return [_history_from_row(row) for row in rows]


def _history_from_row(row: sqlite3.Row) -> SearchHistoryEntry:
    return SearchHistoryEntry(
        id=row["id"],
        user_id=row["user_id"],
        query=row["search_query"],
        location=row["search_location"],
        employment_type=row["search_employment_type"],
        experience=row["search_experience"],
        job_data=_load_listings(row["job_data"]),
        month_key=row["month_year"],
        timestamp=datetime.fromisoformat(row["search_timestamp"]),
    )


def _dump_listings(listings: list[JobListing]) -> str:
    return json.dumps([listing.model_dump(mode="json") for listing in listings])


def _load_listings(raw: str) -> list[JobListing]:
    data: Any = json.loads(raw or "[]")
    if not isinstance(data, list):
        return []
    return [JobListing.model_validate(item) for item in data]


# ---------------------------------------------------------------------------
# Saved jobs
# ---------------------------------------------------------------------------


def upsert_saved_job(
    conn: sqlite3.Connection,
    user_id: str,
    job: JobListing,
    match_score: int = 0,
    now: datetime | None = None,
) -> SavedJob:
    """Save a job to the user's collection, replacing data and score if already saved."""
    conn.execute(
        """
        INSERT INTO user_saved_jobs
            (user_id, job_id, job_data, match_score, is_favorited, saved_at)
        VALUES (?, ?, ?, ?, 1, ?)
        ON CONFLICT(user_id, job_id)
        DO UPDATE SET
            job_data = excluded.job_data,
            match_score = excluded.match_score,
            is_favorited = 1
        """,
        (
            user_id,
            job.job_id,
            job.model_dump_json(),
            match_score,
            (now or utcnow()).isoformat(),
        ),
    )
    conn.commit()
    row = conn.execute(
        "SELECT * FROM user_saved_jobs WHERE user_id = ? AND job_id = ?",
        (user_id, job.job_id),
    ).fetchone()
    return _saved_job_from_row(row)


def get_saved_jobs(conn: sqlite3.Connection, user_id: str) -> list[SavedJob]:
    """Return a user's saved jobs, most recently saved first."""
    rows = conn.execute(
        "SELECT * FROM user_saved_jobs WHERE user_id = ? ORDER BY saved_at DESC, id DESC",
        (user_id,),
    ).fetchall()
    return [_saved_job_from_row(row) for row in rows]


def delete_saved_job(conn: sqlite3.Connection, user_id: str, job_id: str) -> bool:
    """Remove a saved job. Returns True if a row was deleted."""
    cursor = conn.execute(
        "DELETE FROM user_saved_jobs WHERE user_id = ? AND job_id = ?",
        (user_id, job_id),
    )
    conn.commit()
    return cursor.rowcount > 0


def mark_job_applied(
    conn: sqlite3.Connection,
    user_id: str,
    job_id: str,
    now: datetime | None = None,
) -> bool:
    """Flag a saved job as applied. Returns False if the job is not saved."""
    cursor = conn.execute(
        """
        UPDATE user_saved_jobs SET is_applied = 1, applied_at = ?
        WHERE user_id = ? AND job_id = ?
        """,
        ((now or utcnow()).isoformat(), user_id, job_id),
    )
    conn.commit()
    return cursor.rowcount > 0


def _saved_job_from_row(row: sqlite3.Row) -> SavedJob:
    return SavedJob(
        id=row["id"],
        user_id=row["user_id"],
        job_id=row["job_id"],
        job_data=JobListing.model_validate_json(row["job_data"]),
        match_score=row["match_score"],
        is_applied=bool(row["is_applied"]),
        is_favorited=bool(row["is_favorited"]),
        saved_at=datetime.fromisoformat(row["saved_at"]),
        applied_at=datetime.fromisoformat(row["applied_at"]) if row["applied_at"] else None,
        notes=row["notes"],
    )
