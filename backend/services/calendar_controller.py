from __future__ import annotations

import calendar
from datetime import date
from typing import Callable

from services.calendar_engine import (
    DisplayState,
    date_key,
    days_in_displayed_month,
    leading_blank_count,
    month_label,
    navigate,
    tracked_range,
)
from services.checked_day_store import CheckedDayStore
from utils.datetime_utils import today_for_tz

DEFAULT_WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def _weekday_tone(d: date) -> str | None:
    if d.weekday() == calendar.SUNDAY:
        return "sunday"
    if d.weekday() == calendar.SATURDAY:
        return "saturday"
    return None


class CalendarController:
    """Owns the displayed month and the checked-day store for one calendar."""

    def __init__(
        self,
        store: CheckedDayStore,
        *,
        epoch: date,
        daily_savings: int = 5000,
        savings_goal: int = 3_000_000,
        tz_name: str | None = None,
        first_weekday: int = calendar.SUNDAY,
        weekday_labels: list[str] | None = None,
        today_fn: Callable[[], date] | None = None,
    ):
        self.store = store
        self.epoch = epoch
        self.daily_savings = daily_savings
        self.savings_goal = savings_goal
        self.tz_name = tz_name
        self.first_weekday = first_weekday
        self.weekday_labels = list(weekday_labels or DEFAULT_WEEKDAY_LABELS)
        self._today_fn = today_fn or (lambda: today_for_tz(tz_name))
        self.display = DisplayState.for_day(self.today())

    def today(self) -> date:
        return self._today_fn()

    def navigate(self, delta: int) -> DisplayState:
        # Leaves the display untouched when the move is rejected.
        self.display = navigate(self.display, delta)
        return self.display

    def go_to(self, year: int, month: int) -> DisplayState:
        self.display = DisplayState(year=year, month=month)
        return self.display

    def reset_to_today(self) -> DisplayState:
        self.display = DisplayState.for_day(self.today())
        return self.display

    def toggle(self, key: str) -> bool:
        return self.store.toggle(key)

    def summary(self) -> dict:
        total_days = len(tracked_range(self.epoch, self.today()))
        clean_days = self.store.clean_days
        saved_money = clean_days * self.daily_savings
        progress_pct = None
        if self.savings_goal > 0:
            progress_pct = round(min(100.0, saved_money / self.savings_goal * 100.0), 1)
        return {
            "total_days": total_days,
            "clean_days": clean_days,
            "saved_money": saved_money,
            "savings_goal": self.savings_goal,
            "remaining": max(self.savings_goal - saved_money, 0),
            "progress_pct": progress_pct,
        }

    def _weekday_headers(self) -> list[str]:
        return [self.weekday_labels[(self.first_weekday + i) % 7] for i in range(7)]

    def render(self) -> dict:
        today = self.today()
        cells = []
        for d in days_in_displayed_month(self.display):
            key = date_key(d)
            cells.append(
                {
                    "date": key,
                    "day": d.day,
                    # 0 = Sunday
                    "weekday": (d.weekday() + 1) % 7,
                    "tone": _weekday_tone(d),
                    "checked": self.store.is_checked(key),
                    "is_today": d == today,
                }
            )
        return {
            "month_label": month_label(self.display),
            "year": self.display.year,
            "month": self.display.month,
            "weekdays": self._weekday_headers(),
            "leading_blanks": leading_blank_count(self.display, self.first_weekday),
            "cells": cells,
            "summary": self.summary(),
        }
