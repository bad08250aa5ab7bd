from datetime import datetime, date, timezone
from zoneinfo import ZoneInfo


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def today_for_tz(tz_name: str | None) -> date:
    """Return today's date in the configured timezone."""
    if tz_name:
        try:
            return datetime.now(ZoneInfo(tz_name)).date()
        except Exception:
            pass
    return today_utc()


def local_date(value: datetime, tz_name: str | None = None) -> date:
    """Return the calendar day of ``value``.

    Aware datetimes are converted to ``tz_name`` (UTC when unset or invalid)
    before truncation; naive datetimes are taken as already local.
    """
    if value.tzinfo is None:
        return value.date()
    if tz_name:
        try:
            return value.astimezone(ZoneInfo(tz_name)).date()
        except Exception:
            pass
    return value.astimezone(timezone.utc).date()


def shift_month(year: int, month: int, delta_months: int) -> tuple[int, int]:
    month_index = (year * 12 + (month - 1)) + delta_months
    out_year = month_index // 12
    out_month = (month_index % 12) + 1
    return out_year, out_month
