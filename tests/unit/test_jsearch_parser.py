"""Tests for JSearch response parsing."""

from datetime import datetime, timezone
from typing import Any

from jobquota.platforms.jsearch.parser import parse_job, parse_jobs


def _item(**overrides: Any) -> dict[str, Any]:
    item: dict[str, Any] = {
        "job_id": "abc123",
        "employer_name": "Acme",
        "employer_logo": "https://example.com/logo.png",
        "job_title": "Senior Software Engineer",
        "job_description": "Build things.",
        "job_apply_link": "https://example.com/apply",
        "job_city": "Pune",
        "job_state": "MH",
        "job_country": "IN",
        "job_is_remote": True,
        "job_employment_type": "FULLTIME",
        "job_min_salary": 100000,
        "job_max_salary": 150000,
        "job_salary_currency": "INR",
        "job_salary_period": "YEAR",
        "job_posted_at_timestamp": 1773576000,
    }
    item.update(overrides)
    return item


# ---------------------------------------------------------------------------
# parse_job
# ---------------------------------------------------------------------------


class TestParseJob:
    def test_full_item(self) -> None:
        listing = parse_job(_item())
        assert listing is not None
        assert listing.job_id == "abc123"
        assert listing.employer == "Acme"
        assert listing.title == "Senior Software Engineer"
        assert listing.is_remote is True
        assert listing.salary_min == 100000
        assert listing.salary_max == 150000
        assert listing.location_text == "Pune MH IN"
        assert listing.posted_at == datetime.fromtimestamp(1773576000, tz=timezone.utc)

    def test_missing_job_id(self) -> None:
        assert parse_job(_item(job_id=None)) is None
        assert parse_job({"job_title": "Engineer"}) is None

    def test_numeric_job_id_coerced(self) -> None:
        assert parse_job(_item(job_id=42)).job_id == "42"  # type: ignore[union-attr]

    def test_minimal_item_defaults(self) -> None:
        listing = parse_job({"job_id": "x"})
        assert listing is not None
        assert listing.title == ""
        assert listing.employer == ""
        assert listing.is_remote is False
        assert listing.salary_min is None
        assert listing.posted_at is None
        assert listing.location_text == "  "

    def test_iso_posted_date_fallback(self) -> None:
        listing = parse_job(_item(
            job_posted_at_timestamp=None,
            job_posted_at_datetime_utc="2026-03-10T08:30:00.000Z",
        ))
        assert listing is not None
        assert listing.posted_at == datetime(2026, 3, 10, 8, 30, tzinfo=timezone.utc)

    def test_bad_posted_date_ignored(self) -> None:
        listing = parse_job(_item(
            job_posted_at_timestamp=None, job_posted_at_datetime_utc="yesterday",
        ))
        assert listing is not None
        assert listing.posted_at is None


# ---------------------------------------------------------------------------
# parse_jobs
# ---------------------------------------------------------------------------


class TestParseJobs:
    def test_parses_data_array(self) -> None:
        payload = {"status": "OK", "data": [_item(job_id="1"), _item(job_id="2")]}
        assert [j.job_id for j in parse_jobs(payload)] == ["1", "2"]

    def test_skips_items_without_id(self) -> None:
        payload = {"data": [_item(job_id="1"), {"job_title": "No id"}]}
        assert [j.job_id for j in parse_jobs(payload)] == ["1"]

    def test_skips_malformed_items(self) -> None:
        payload = {"data": [_item(job_id="1", job_min_salary="lots"), _item(job_id="2")]}
        assert [j.job_id for j in parse_jobs(payload)] == ["2"]

    def test_missing_data(self) -> None:
        assert parse_jobs({"status": "OK"}) == []
        assert parse_jobs({"data": None}) == []

    def test_non_dict_payload(self) -> None:
        assert parse_jobs([1, 2, 3]) == []

    def test_data_not_a_list(self) -> None:
        assert parse_jobs({"data": "oops"}) == []
