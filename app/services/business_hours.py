"""
Business Hours

The kitchen takes orders on a fixed weekly schedule in the restaurant's
local time zone (Thursday to Sunday, 18:00 to 23:00, America/Lima by
default). Times passed in are converted to that zone first, so callers
may use UTC.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from app.core.config import get_settings

logger = logging.getLogger(__name__)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class BusinessHours:
    """
    Weekly opening schedule.

    Attributes:
        tz: Restaurant time zone
        open_weekdays: Days the kitchen opens (Monday=0)
        opening_hour: First hour taking orders
        closing_hour: Hour the kitchen stops taking orders (exclusive)
    """

    def __init__(
        self,
        tz: str = "America/Lima",
        open_weekdays: Iterable[int] = (3, 4, 5, 6),
        opening_hour: int = 18,
        closing_hour: int = 23,
    ):
        self.tz = ZoneInfo(tz)
        self.open_weekdays = frozenset(open_weekdays)
        self.opening_hour = opening_hour
        self.closing_hour = closing_hour

    @classmethod
    def from_settings(cls) -> "BusinessHours":
        settings = get_settings()
        return cls(
            tz=settings.business_timezone,
            open_weekdays=settings.open_weekdays_list,
            opening_hour=settings.opening_hour,
            closing_hour=settings.closing_hour,
        )

    def _local(self, now: Optional[datetime]) -> datetime:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.tz)

    def is_open(self, now: Optional[datetime] = None) -> bool:
        local = self._local(now)
        return (
            local.weekday() in self.open_weekdays
            and self.opening_hour <= local.hour < self.closing_hour
        )

    def next_open_message(self, now: Optional[datetime] = None) -> Optional[str]:
        """
        Human-readable hint about the next opening, or None while open.

        Example:
            >>> hours = BusinessHours()
            >>> hours.next_open_message(datetime(2025, 6, 2, 20, tzinfo=timezone.utc))
            'We open on Thursday at 18:00'
        """
        if self.is_open(now):
            return None
        if not self.open_weekdays:
            return "We are closed until further notice"

        local = self._local(now)
        opening = f"{self.opening_hour:02d}:00"

        if local.weekday() in self.open_weekdays and local.hour < self.opening_hour:
            return f"We open today at {opening}"

        days_ahead = 1
        while (local.weekday() + days_ahead) % 7 not in self.open_weekdays:
            days_ahead += 1

        if days_ahead == 1:
            return f"We open tomorrow at {opening}"
        return f"We open on {DAY_NAMES[(local.weekday() + days_ahead) % 7]} at {opening}"


def get_business_hours() -> BusinessHours:
    return BusinessHours.from_settings()
