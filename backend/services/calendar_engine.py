from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, datetime, timedelta

from utils.datetime_utils import local_date, shift_month, today_for_tz

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class DisplayState:
    """The month shown in the calendar grid. Day-of-month is irrelevant."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")
        if not MINYEAR <= self.year <= MAXYEAR:
            raise ValueError(f"year must be in {MINYEAR}..{MAXYEAR}, got {self.year}")

    @classmethod
    def for_day(cls, d: date) -> "DisplayState":
        return cls(year=d.year, month=d.month)

    @classmethod
    def current(cls, tz_name: str | None = None) -> "DisplayState":
        return cls.for_day(today_for_tz(tz_name))

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)


def date_key(value: date | datetime, tz_name: str | None = None) -> str:
    """Canonical ``YYYY-MM-DD`` key for the calendar day of ``value``."""
    if isinstance(value, datetime):
        value = local_date(value, tz_name)
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date_key(text: str) -> date:
    raw = (text or "").strip()
    if not _DATE_KEY_RE.match(raw):
        raise ValueError(f"Date key must look like YYYY-MM-DD, got {text!r}")
    return date.fromisoformat(raw)


def month_label(state: DisplayState) -> str:
    return f"{state.year:04d}-{state.month:02d}"


def days_in_displayed_month(state: DisplayState) -> list[date]:
    length = calendar.monthrange(state.year, state.month)[1]
    start = state.first_day
    return [start + timedelta(days=i) for i in range(length)]


def leading_blank_count(state: DisplayState, first_weekday: int = calendar.SUNDAY) -> int:
    """Empty cells before day 1 so that weekdays line up with fixed columns.

    ``first_weekday`` uses ``date.weekday()`` numbering (Monday is 0); the
    default puts Sunday in the first column.
    """
    return (state.first_day.weekday() - first_weekday) % 7


def navigate(state: DisplayState, delta: int) -> DisplayState:
    if delta not in (-1, 1):
        raise ValueError(f"delta must be -1 or +1, got {delta}")
    year, month = shift_month(state.year, state.month, delta)
    return DisplayState(year=year, month=month)


def tracked_range(epoch: date, today: date) -> list[date]:
    """Every day from ``epoch`` through ``today`` inclusive; empty if today precedes epoch."""
    span = (today - epoch).days
    if span < 0:
        return []
    return [epoch + timedelta(days=i) for i in range(span + 1)]
