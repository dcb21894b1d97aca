"""
DateTime Handler module for consistent date and time handling throughout the application.
"""
from datetime import date, datetime, time
from typing import Optional, Union
from zoneinfo import ZoneInfo
import logging
import re

from app.core.config import settings

logger = logging.getLogger(__name__)


class DateTimeHandler:
    """
    Centralized service for handling dates and times consistently throughout the application.
    All wall-clock decisions use the single configured timezone (IST by default),
    never the host's local time.
    """

    CLOCK_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
    # "17/10/2026" or "7/1/2026", as written by en-IN timestamps
    SLASH_DATE_PATTERN = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
    # "10-17-2026 03:05:09 pm", an older month-first format
    DASH_DATE_PATTERN = re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})")

    @classmethod
    def get_timezone(cls) -> ZoneInfo:
        return ZoneInfo(settings.TIMEZONE)

    @classmethod
    def get_current_datetime(cls) -> datetime:
        """
        Get the current datetime in the configured timezone.

        Returns:
            Timezone-aware current datetime
        """
        return datetime.now(cls.get_timezone())

    @classmethod
    def to_local(cls, value: datetime) -> datetime:
        """Convert an aware datetime to the configured timezone; naive values are assumed local."""
        if value.tzinfo is None:
            return value.replace(tzinfo=cls.get_timezone())
        return value.astimezone(cls.get_timezone())

    @classmethod
    def parse_clock_minutes(cls, time_str: Optional[str]) -> Optional[int]:
        """
        Parse an ``H:MM`` or ``HH:MM`` clock time into minutes after midnight.

        Args:
            time_str: Clock time string

        Returns:
            Minutes after midnight, or None when absent or malformed
        """
        if not time_str or not isinstance(time_str, str):
            return None

        match = cls.CLOCK_TIME_PATTERN.match(time_str.strip())
        if not match:
            logger.debug(f"Invalid time format: {time_str}. Expected H:MM or HH:MM")
            return None

        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            logger.debug(f"Time out of range: {time_str}")
            return None
        return hours * 60 + minutes

    @classmethod
    def minutes_of_day(cls, value: Union[datetime, time]) -> int:
        """Minutes after midnight of a datetime or time."""
        return value.hour * 60 + value.minute

    @classmethod
    def format_request_datetime(cls, value: Optional[datetime] = None) -> str:
        """
        Format a timestamp the way request records store it, e.g.
        ``17/10/2026, 3:05:09 pm``.

        Args:
            value: Datetime to format, defaults to now

        Returns:
            Locale-style timestamp in the configured timezone
        """
        value = cls.to_local(value) if value is not None else cls.get_current_datetime()
        hour = value.hour % 12 or 12
        period = "pm" if value.hour >= 12 else "am"
        return (
            f"{value.day}/{value.month}/{value.year}, "
            f"{hour}:{value.minute:02d}:{value.second:02d} {period}"
        )

    @classmethod
    def format_iso(cls, value: Optional[datetime] = None) -> str:
        """ISO-8601 timestamp in the configured timezone, used on audit rows."""
        value = cls.to_local(value) if value is not None else cls.get_current_datetime()
        return value.isoformat()

    @classmethod
    def date_key(cls, value: Union[date, datetime]) -> str:
        """Comparison key ``YYYY-M-D`` (no zero padding) for a date."""
        return f"{value.year}-{value.month}-{value.day}"

    @classmethod
    def normalize_date_key(cls, value: Optional[str]) -> Optional[str]:
        """
        Reduce a stored request timestamp to a ``YYYY-M-D`` key.

        Request history carries several hand-made formats. Supported:

        * ``D/M/YYYY[, time]`` (day first)
        * ``M-D-YYYY[ time]`` (month first)

        Only the first comma-delimited segment is read. Anything else is
        returned unchanged, so it can never equal a real date key.

        Args:
            value: Stored timestamp string

        Returns:
            Normalized key, or the original segment when unparseable
        """
        if not value or not isinstance(value, str):
            return value

        segment = value.split(",")[0].strip()

        slash_match = cls.SLASH_DATE_PATTERN.search(segment)
        if slash_match:
            day, month, year = (int(part) for part in slash_match.groups())
            return f"{year}-{month}-{day}"

        dash_match = cls.DASH_DATE_PATTERN.search(segment)
        if dash_match:
            month, day, year = (int(part) for part in dash_match.groups())
            return f"{year}-{month}-{day}"

        logger.debug(f"Unrecognized request date format: {value!r}")
        return segment
