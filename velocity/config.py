"""
Run configuration and logging setup.

Defaults mirror what the billing service tolerates: Harvest allows 100
requests per 15 seconds, so detail lookups are spaced 150ms apart.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from dotenv import load_dotenv

from .periods import monthly_periods, weekly_periods
from .records import PeriodDescriptor


# =============================================================================
# CONFIG
# =============================================================================

PERIOD_UNITS = ("week", "month")

DEFAULT_PERIOD_UNIT = "week"
DEFAULT_PERIOD_COUNTS = {"week": 8, "month": 6}
DEFAULT_MIN_REQUEST_INTERVAL = 0.15  # seconds between detail lookups
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    period_unit: str = DEFAULT_PERIOD_UNIT
    period_count: int = DEFAULT_PERIOD_COUNTS[DEFAULT_PERIOD_UNIT]
    min_request_interval: float = DEFAULT_MIN_REQUEST_INTERVAL
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self):
        if self.period_unit not in PERIOD_UNITS:
            raise ValueError(f"Unknown period unit: {self.period_unit!r} (expected one of {PERIOD_UNITS})")
        if self.period_count < 1:
            raise ValueError(f"Period count must be positive, got {self.period_count}")
        if self.min_request_interval < 0:
            raise ValueError(f"Request interval cannot be negative, got {self.min_request_interval}")

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """
        Build settings from VELOCITY_* environment variables (a .env file is
        loaded first if present). Unset variables keep their defaults.
        """
        load_dotenv(dotenv_path)

        unit = os.getenv("VELOCITY_PERIOD_UNIT", DEFAULT_PERIOD_UNIT).strip().lower()
        count_raw = os.getenv("VELOCITY_PERIOD_COUNT")
        interval_raw = os.getenv("VELOCITY_MIN_REQUEST_INTERVAL")

        try:
            count = int(count_raw) if count_raw else DEFAULT_PERIOD_COUNTS.get(unit, 0)
            interval = float(interval_raw) if interval_raw else DEFAULT_MIN_REQUEST_INTERVAL
        except ValueError as e:
            raise ValueError(f"Invalid velocity configuration: {e}") from e

        return cls(
            period_unit=unit,
            period_count=count,
            min_request_interval=interval,
            log_level=os.getenv("VELOCITY_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )

    def periods(self, today: Optional[date] = None) -> List[PeriodDescriptor]:
        if self.period_unit == "month":
            return monthly_periods(self.period_count, today=today)
        return weekly_periods(self.period_count, today=today)


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Root logging setup for entry points; library modules only create loggers."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
