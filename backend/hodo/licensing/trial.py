"""
Installation-wide trial window.

The window starts at ``system_config["trial_base_time"]``, which is written
exactly once, on first read, with the current time. Every later read, from
any process, sees that same anchor.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ..logging import get_logger

TRIAL_BASE_TIME_KEY = "trial_base_time"
TRIAL_DAYS = 30

logger = get_logger("licensing")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse a stored ISO-8601 timestamp; naive values are taken as UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def remaining_days(
    base: datetime,
    now: datetime,
    trial_days: int = TRIAL_DAYS,
) -> int:
    """Whole days left in the window, rounded up and never negative."""
    left = (base + timedelta(days=trial_days)) - now
    return max(0, math.ceil(left / timedelta(days=1)))


class TrialClock:
    """Answers whether the installation is still inside its trial window."""

    def __init__(
        self,
        config_store,
        trial_days: int = TRIAL_DAYS,
        now: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            config_store: Object with async ``get(key)`` and
                ``insert_if_absent(key, value)`` backed by atomic storage
            trial_days: Length of the window
            now: Clock returning timezone-aware datetimes
        """
        self._store = config_store
        self.trial_days = trial_days
        self._now = now or utc_now

    def now(self) -> datetime:
        return self._now()

    async def get_base_time(self) -> datetime:
        """Read the anchor, creating it with the current time if it is absent."""
        stored = await self._store.get(TRIAL_BASE_TIME_KEY)
        if stored is None:
            candidate = self.now().astimezone(timezone.utc).isoformat()
            # Losers of a first-read race get the winner's value back
            stored = await self._store.insert_if_absent(TRIAL_BASE_TIME_KEY, candidate)
            if stored == candidate:
                logger.info(f"Trial window anchored at {stored}")
        return parse_timestamp(stored)

    def trial_end(self, base: datetime) -> datetime:
        return base + timedelta(days=self.trial_days)

    def is_within(self, base: datetime, now: Optional[datetime] = None) -> bool:
        """Inclusive at exactly ``trial_days`` after the anchor."""
        return (now or self.now()) <= self.trial_end(base)

    async def is_in_trial_period(self) -> bool:
        base = await self.get_base_time()
        return self.is_within(base)

    def remaining_days(self, base: datetime, now: Optional[datetime] = None) -> int:
        return remaining_days(base, now or self.now(), self.trial_days)
