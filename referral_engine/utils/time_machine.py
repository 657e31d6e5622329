# referral_engine/utils/time_machine.py
"""
Platform clock - live UTC time or an admin-set manual time.
"""
from datetime import datetime, timezone, timedelta, time
from typing import Optional
from zoneinfo import ZoneInfo
import logging

logger = logging.getLogger(__name__)


def asUtc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC; naive values are taken as UTC (SQLite drops tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parseResetTime(value: str) -> time:
    """Parse 'HH:MM'; malformed values fall back to midnight."""
    try:
        hours, minutes = (int(part) for part in value.split(":"))
        return time(hour=hours, minute=minutes)
    except (ValueError, AttributeError):
        logger.warning(f"Invalid reset time {value!r}, using 00:00")
        return time(0, 0)


def dailyResetInstant(now: datetime, resetTime: str, tz: str) -> datetime:
    """Today's reset instant in the platform timezone, returned in UTC."""
    zone = ZoneInfo(tz)
    localNow = asUtc(now).astimezone(zone)
    localReset = datetime.combine(localNow.date(), parseResetTime(resetTime), tzinfo=zone)
    return localReset.astimezone(timezone.utc)


def currentPeriodStart(now: datetime, resetTime: str, tz: str) -> datetime:
    """Start of the platform day containing now; days roll over at the reset time."""
    resetInstant = dailyResetInstant(now, resetTime, tz)
    if asUtc(now) < resetInstant:
        return resetInstant - timedelta(days=1)
    return resetInstant


def isCreditDue(lastCreditedAt: Optional[datetime], now: datetime, resetTime: str, tz: str) -> bool:
    """A daily credit is due once per platform day: the last credit must predate the current day."""
    if lastCreditedAt is None:
        return True
    return asUtc(lastCreditedAt) < currentPeriodStart(now, resetTime, tz)


class TimeMachine:
    """Singleton for managing platform time."""

    _instance = None
    _virtualTime: Optional[datetime] = None
    _isManual: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def now(self) -> datetime:
        """Current platform time (live or manual)."""
        if self._isManual and self._virtualTime:
            return self._virtualTime
        return datetime.now(timezone.utc)

    @property
    def isManual(self) -> bool:
        return self._isManual

    def startOfDay(self, tz: str) -> datetime:
        """Midnight of the current platform day, in UTC."""
        return dailyResetInstant(self.now, "00:00", tz)

    def setTime(self, newTime: datetime, adminEmail: Optional[str] = None):
        """Switch to manual time."""
        self._isManual = True
        self._virtualTime = asUtc(newTime)
        logger.info(f"Manual platform time set to {self._virtualTime} by {adminEmail}")

    def advanceTime(self, days: int = 0, hours: int = 0, minutes: int = 0):
        """Advance manual time forward."""
        if not self._isManual:
            raise ValueError("Cannot advance time when platform time is live")

        self._virtualTime += timedelta(days=days, hours=hours, minutes=minutes)
        logger.info(f"Time advanced to {self._virtualTime}")

    def resetToRealTime(self):
        """Return to live time."""
        self._isManual = False
        self._virtualTime = None
        logger.info("Returned to live time")


# Global instance
timeMachine = TimeMachine()
