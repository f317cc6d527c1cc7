"""Configuration models and YAML loader for the job search quota service."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/jobquota.db"


class QuotaConfig(BaseModel):
    """Per-user monthly search allowance."""

    max_searches_per_month: int = Field(default=3, ge=1)
    # When the store is unreachable, allow searches instead of blocking users.
    fail_open: bool = True


class CacheConfig(BaseModel):
    """In-process response cache limits."""

    ttl_seconds: float = Field(default=3600.0, gt=0)
    max_entries: int = Field(default=50, ge=1)
    evict_batch: int = Field(default=10, ge=1)

    @model_validator(mode="after")
    def batch_within_bound(self) -> "CacheConfig":
        if self.evict_batch > self.max_entries:
            msg = "evict_batch must not exceed max_entries"
            raise ValueError(msg)
        return self


class JSearchConfig(BaseModel):
    """JSearch (RapidAPI) client settings. The key itself is read from the environment."""

    base_url: str = "https://jsearch.p.rapidapi.com/search"
    host: str = "jsearch.p.rapidapi.com"
    api_key_env: str = "RAPIDAPI_KEY"
    page_size: int = Field(default=4, ge=1, le=50)
    timeout_seconds: float = Field(default=10.0, gt=0)
    monthly_call_budget: int = Field(default=200, ge=1)


class SearchConfig(BaseModel):
    """Result shaping for the search endpoint."""

    result_cap: int = Field(default=4, ge=1)
    description_max_chars: int = Field(default=500, ge=1)


class ScoringConfig(BaseModel):
    """Bonuses for rule-based match scoring. Clauses are additive."""

    title_match_bonus: int = Field(default=40, ge=0)
    employment_type_bonus: int = Field(default=20, ge=0)
    remote_bonus: int = Field(default=30, ge=0)
    location_match_bonus: int = Field(default=25, ge=0)
    experience_match_bonus: int = Field(default=15, ge=0)
    salary_match_bonus: int = Field(default=10, ge=0)
    recency_bonus: int = Field(default=5, ge=0)
    recency_days: int = Field(default=7, ge=0)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    quota: QuotaConfig = Field(default_factory=QuotaConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    jsearch: JSearchConfig = Field(default_factory=JSearchConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)

    @classmethod
    def load(cls, path: str | Path | None) -> "Settings":
        """Load from ``path`` if it exists, otherwise fall back to defaults."""
        if path is not None and Path(path).exists():
            return cls.from_yaml(path)
        return cls()
