import calendar
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from app.config import settings

_SLASH_FORMATS = ("%d/%m/%y", "%d/%m/%Y")
_LONG_FORMATS = ("%d %b %Y", "%d %B %Y")


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    """Current wall-clock time in the app timezone, as a naive datetime."""
    if settings.FROZEN_NOW is not None:
        return to_local_naive(settings.FROZEN_NOW)
    return datetime.now(local_zone()).replace(tzinfo=None)


def to_local_naive(value: datetime) -> datetime:
    # Naive input is assumed to already be local
    if value.tzinfo is None:
        return value
    return value.astimezone(local_zone()).replace(tzinfo=None)


def parse_iso_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed
    return to_local_naive(parsed)


def parse_alert_date(raw: str | None) -> datetime | None:
    """Parse bank-alert dates: DD/MM/YY (Singapore order) or "8 Feb 2026"."""
    if not raw:
        return None
    raw = raw.strip()
    for fmt in _SLASH_FORMATS + _LONG_FORMATS:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue
    return None


def month_range(year: int, month: int) -> tuple[datetime, datetime]:
    """[first instant of the month, first instant of the next month)"""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def year_range(year: int) -> tuple[datetime, datetime]:
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


def iso_week_range(year: int, week: int) -> tuple[datetime, datetime]:
    monday = date.fromisocalendar(year, week, 1)
    start = datetime(monday.year, monday.month, monday.day)
    return start, start + timedelta(days=7)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]
