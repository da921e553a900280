"""Date range to fetch for a calendar view.

Weeks always start on Sunday. This governs which days are fetched, so it is
not a locale setting.
"""
from __future__ import annotations
import calendar
from datetime import date, timedelta
from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict, model_validator


class CalendarView(str, Enum):
    MONTH = "month"
    WEEK = "week"
    DAY = "day"


class DateRange(BaseModel):
    """Inclusive [start, end] range of calendar dates."""
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def _ordered(self):
        if self.end < self.start:
            raise ValueError("range end precedes start")
        return self

    def days(self) -> Iterator[date]:
        for offset in range((self.end - self.start).days + 1):
            yield self.start + timedelta(days=offset)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def as_params(self) -> dict[str, str]:
        return {"from": self.start.isoformat(), "to": self.end.isoformat()}


def week_start(day: date) -> date:
    """Sunday on or before ``day``."""
    # date.weekday(): Monday=0 .. Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_end(day: date) -> date:
    """Saturday on or after ``day``."""
    return week_start(day) + timedelta(days=6)


def resolve_range(anchor: date, view: CalendarView | str) -> DateRange:
    view = CalendarView(view)
    if view is CalendarView.MONTH:
        first = anchor.replace(day=1)
        last = anchor.replace(day=calendar.monthrange(anchor.year, anchor.month)[1])
        return DateRange(start=week_start(first), end=week_end(last))
    if view is CalendarView.WEEK:
        start = week_start(anchor)
        return DateRange(start=start, end=start + timedelta(days=6))
    return DateRange(start=anchor, end=anchor)


def month_grid(anchor: date) -> list[list[date]]:
    """The month view's rows: Sunday-first weeks covering the anchor's month."""
    days = list(resolve_range(anchor, CalendarView.MONTH).days())
    return [days[i:i + 7] for i in range(0, len(days), 7)]
