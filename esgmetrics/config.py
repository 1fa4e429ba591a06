"""Runtime settings read from the environment."""

import datetime
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigurationError
from .trend import BenchmarkTiers

DEFAULT_TIMEZONE = "UTC"
DEFAULT_PERIOD_DAYS = 365
DEFAULT_TRAINING_BENCHMARK_HOURS = 40.0


@dataclass(frozen=True)
class Settings:
    """Settings shared by every computation of one service instance."""

    timezone: str = DEFAULT_TIMEZONE
    default_period_days: int = DEFAULT_PERIOD_DAYS
    training_benchmark_hours: float = DEFAULT_TRAINING_BENCHMARK_HOURS
    benchmark_tiers: BenchmarkTiers = field(default_factory=BenchmarkTiers)
    database_url: Optional[str] = None

    def __post_init__(self):
        if self.default_period_days <= 0:
            raise ConfigurationError("default_period_days must be positive")
        if self.training_benchmark_hours < 0:
            raise ConfigurationError("training_benchmark_hours must not be negative")
        if self.timezone == DEFAULT_TIMEZONE:
            return
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(f"unknown reporting timezone: {self.timezone!r}") from exc

    @property
    def tzinfo(self) -> datetime.tzinfo:
        if self.timezone == DEFAULT_TIMEZONE:
            return datetime.timezone.utc
        return ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        try:
            period_days = int(env.get("ESGMETRICS_DEFAULT_PERIOD_DAYS", DEFAULT_PERIOD_DAYS))
            benchmark = float(env.get("ESGMETRICS_TRAINING_BENCHMARK", DEFAULT_TRAINING_BENCHMARK_HOURS))
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

        return cls(
            timezone=env.get("ESGMETRICS_TIMEZONE", DEFAULT_TIMEZONE) or DEFAULT_TIMEZONE,
            default_period_days=period_days,
            training_benchmark_hours=benchmark,
            database_url=env.get("ESGMETRICS_DATABASE_URL") or None,
        )
