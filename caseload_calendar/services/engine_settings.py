# caseload_calendar/services/engine_settings.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta, tzinfo

from dateutil import tz

from caseload_calendar.core.config import Settings, get_settings


@dataclass(frozen=True)
class EngineSettings:
    """
    Tuning values for the occurrence engine.

    Kept separate from the application Settings so the engine stays a pure
    function of its explicit inputs and can be exercised without environment
    configuration.

    `timezone` is the calendar's local zone: offset-aware session and meeting
    timestamps are converted into it before matching.
    """

    match_tolerance_minutes: int = 120
    default_duration_minutes: int = 30
    expansion_horizon_days: int = 365
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        if tz.gettz(self.timezone) is None:
            raise ValueError(f"Unknown timezone: {self.timezone!r}")

    @property
    def match_tolerance(self) -> timedelta:
        return timedelta(minutes=self.match_tolerance_minutes)

    @property
    def default_duration(self) -> timedelta:
        return timedelta(minutes=self.default_duration_minutes)

    @property
    def zone(self) -> tzinfo:
        return tz.gettz(self.timezone)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "EngineSettings":
        settings = settings or get_settings()
        return cls(
            match_tolerance_minutes=settings.MATCH_TOLERANCE_MINUTES,
            default_duration_minutes=settings.DEFAULT_DURATION_MINUTES,
            expansion_horizon_days=settings.EXPANSION_HORIZON_DAYS,
            timezone=settings.TIMEZONE,
        )
