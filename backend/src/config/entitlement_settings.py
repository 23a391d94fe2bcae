"""
Entitlement engine settings.

Environment:
    GRACE_PERIOD_DAYS: days a PAST_DUE subscription stays healthy after
        current_period_end (default 7, fractional values allowed)

Settings are read once per process via get_entitlement_settings(); a bad
value fails when the first gate is defined, not on each request.
"""

import math
import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

DEFAULT_GRACE_PERIOD_DAYS = 7


@dataclass(frozen=True)
class EntitlementSettings:
    """Immutable settings for the EntitlementEvaluator."""

    grace_period: timedelta = timedelta(days=DEFAULT_GRACE_PERIOD_DAYS)

    @classmethod
    def from_env(cls) -> "EntitlementSettings":
        """
        Build settings from environment variables.

        Raises:
            ValueError: If GRACE_PERIOD_DAYS is not a finite, non-negative
                number of days that fits in a timedelta
        """
        raw = os.getenv("GRACE_PERIOD_DAYS", str(DEFAULT_GRACE_PERIOD_DAYS))
        try:
            days = float(raw)
        except ValueError:
            raise ValueError(f"GRACE_PERIOD_DAYS must be a number, got {raw!r}")
        if not math.isfinite(days):
            raise ValueError(f"GRACE_PERIOD_DAYS must be finite, got {raw!r}")
        if days < 0:
            raise ValueError(f"GRACE_PERIOD_DAYS must be >= 0, got {raw!r}")
        try:
            grace_period = timedelta(days=days)
        except OverflowError:
            raise ValueError(f"GRACE_PERIOD_DAYS is out of range, got {raw!r}")
        return cls(grace_period=grace_period)


@lru_cache(maxsize=1)
def get_entitlement_settings() -> EntitlementSettings:
    """Return the process-wide settings, parsed from the environment once."""
    return EntitlementSettings.from_env()


def reset_entitlement_settings() -> None:
    """Drop the cached settings (for tests only)."""
    get_entitlement_settings.cache_clear()
