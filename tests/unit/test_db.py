"""Tests for the database layer: init, quotas, search history, saved jobs."""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from jobquota.core.db import (
    delete_saved_job,
    get_all_search_history,
    get_quota,
    get_saved_jobs,
    get_search_history,
    init_db,
    insert_search_history,
    mark_job_applied,
    upsert_saved_job,
    write_quota,
)
from jobquota.core.schemas import JobListing, SearchHistoryEntry

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def _listing(job_id: str = "j1", **kw: object) -> JobListing:
    defaults: dict[str, object] = {"job_id": job_id, "title": "Engineer", "employer": "Acme"}
    defaults.update(kw)
    return JobListing(**defaults)  # type: ignore[arg-type]


def _entry(
    user_id: str = "u1",
    month_key: str = "2026-03",
    job_ids: tuple[str, ...] = ("j1",),
    timestamp: datetime = NOW,
) -> SearchHistoryEntry:
    return SearchHistoryEntry(
        user_id=user_id,
        query="python developer",
        location="Remote",
        employment_type="FULLTIME",
        experience="3 years",
        job_data=[_listing(j) for j in job_ids],
        month_key=month_key,
        timestamp=timestamp,
    )


@pytest.fixture()
def db(tmp_path):  # type: ignore[no-untyped-def]
    return init_db(tmp_path / "test.db")


class TestInitDb:
    def test_creates_tables(self, db) -> None:  # type: ignore[no-untyped-def]
        tables = {
            row[0]
            for row in db.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }
        assert {"user_quotas", "user_job_searches", "user_saved_jobs"} <= tables

    def test_idempotent(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        p = tmp_path / "double.db"
        init_db(p).close()
        init_db(p).close()

    def test_unprovisioned_has_no_tables(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        conn = init_db(tmp_path / "bare.db", create_tables=False)
        with pytest.raises(sqlite3.OperationalError, match="no such table"):
            get_quota(conn, "u1", "2026-03")

    def test_memory_database(self) -> None:
        conn = init_db(":memory:")
        assert get_quota(conn, "u1", "2026-03") is None


class TestQuota:
    def test_missing_is_none(self, db) -> None:  # type: ignore[no-untyped-def]
        assert get_quota(db, "u1", "2026-03") is None

    def test_write_then_read(self, db) -> None:  # type: ignore[no-untyped-def]
        record = write_quota(db, "u1", "2026-03", 0, 3, now=NOW)
        assert record.searches_used == 0
        assert record.max_searches == 3
        assert record.created_at == NOW
        assert get_quota(db, "u1", "2026-03") == record

    def test_overwrite_keeps_single_row(self, db) -> None:  # type: ignore[no-untyped-def]
        write_quota(db, "u1", "2026-03", 0, 3, now=NOW)
        later = NOW + timedelta(hours=1)
        record = write_quota(db, "u1", "2026-03", 2, 3, now=later)
        assert record.searches_used == 2
        assert record.created_at == NOW
        assert record.updated_at == later
        count = db.execute("SELECT COUNT(*) FROM user_quotas").fetchone()[0]
        assert count == 1

    def test_months_isolated(self, db) -> None:  # type: ignore[no-untyped-def]
        write_quota(db, "u1", "2026-02", 3, 3)
        write_quota(db, "u1", "2026-03", 1, 3)
        assert get_quota(db, "u1", "2026-02").searches_used == 3  # type: ignore[union-attr]
        assert get_quota(db, "u1", "2026-03").searches_used == 1  # type: ignore[union-attr]

    def test_users_isolated(self, db) -> None:  # type: ignore[no-untyped-def]
        write_quota(db, "u1", "2026-03", 2, 3)
        assert get_quota(db, "u2", "2026-03") is None


class TestSearchHistory:
    def test_insert_assigns_id(self, db) -> None:  # type: ignore[no-untyped-def]
        stored = insert_search_history(db, _entry())
        assert stored.id is not None and stored.id >= 1

    def test_round_trips_job_data(self, db) -> None:  # type: ignore[no-untyped-def]
        posted = datetime(2026, 3, 10, tzinfo=timezone.utc)
        entry = _entry().model_copy(update={
            "job_data": [_listing("j9", is_remote=True, salary_min=1000.0, posted_at=posted)],
        })
        insert_search_history(db, entry)
        [loaded] = get_search_history(db, "u1", "2026-03")
        assert loaded.job_data[0].job_id == "j9"
        assert loaded.job_data[0].is_remote is True
        assert loaded.job_data[0].posted_at == posted
        assert loaded.experience == "3 years"

    def test_newest_first(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_search_history(db, _entry(job_ids=("old",), timestamp=NOW))
        insert_search_history(db, _entry(job_ids=("new",), timestamp=NOW + timedelta(days=1)))
        entries = get_search_history(db, "u1", "2026-03")
        assert [e.job_data[0].job_id for e in entries] == ["new", "old"]

    def test_filtered_by_month_and_user(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_search_history(db, _entry(month_key="2026-02"))
        insert_search_history(db, _entry(user_id="u2"))
        assert get_search_history(db, "u1", "2026-03") == []

    def test_all_history_spans_months(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_search_history(db, _entry(month_key="2026-01", job_ids=("jan",), timestamp=NOW - timedelta(days=60)))
        insert_search_history(db, _entry(month_key="2026-03", job_ids=("mar",)))
        insert_search_history(db, _entry(user_id="u2"))
        entries = get_all_search_history(db, "u1")
        assert [e.job_data[0].job_id for e in entries] == ["mar", "jan"]
        assert [e.month_key for e in entries] == ["2026-03", "2026-01"]


class TestSavedJobs:
    def test_upsert_new(self, db) -> None:  # type: ignore[no-untyped-def]
        saved = upsert_saved_job(db, "u1", _listing("j1"), 70, now=NOW)
        assert saved.job_id == "j1"
        assert saved.match_score == 70
        assert saved.is_favorited is True
        assert saved.is_applied is False

    def test_upsert_replaces_score(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_saved_job(db, "u1", _listing("j1"), 70)
        saved = upsert_saved_job(db, "u1", _listing("j1", title="Lead Engineer"), 90)
        assert saved.match_score == 90
        assert saved.job_data.title == "Lead Engineer"
        assert len(get_saved_jobs(db, "u1")) == 1

    def test_list_newest_first(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_saved_job(db, "u1", _listing("a"), now=NOW)
        upsert_saved_job(db, "u1", _listing("b"), now=NOW + timedelta(minutes=5))
        assert [s.job_id for s in get_saved_jobs(db, "u1")] == ["b", "a"]

    def test_delete(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_saved_job(db, "u1", _listing("j1"))
        assert delete_saved_job(db, "u1", "j1") is True
        assert delete_saved_job(db, "u1", "j1") is False
        assert get_saved_jobs(db, "u1") == []

    def test_mark_applied(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_saved_job(db, "u1", _listing("j1"))
        assert mark_job_applied(db, "u1", "j1", now=NOW) is True
        [saved] = get_saved_jobs(db, "u1")
        assert saved.is_applied is True
        assert saved.applied_at == NOW

    def test_mark_applied_unknown(self, db) -> None:  # type: ignore[no-untyped-def]
        assert mark_job_applied(db, "u1", "missing") is False
