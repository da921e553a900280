"""Anchor-date navigation for the calendar header and month grid."""
from __future__ import annotations
from datetime import date, timedelta
from enum import Enum

from dateutil.relativedelta import relativedelta

from .ranges import CalendarView, DateRange, resolve_range


class Direction(str, Enum):
    BACK = "back"
    FORWARD = "forward"


def _month_shift(anchor: date, months: int, preferred_day: int | None = None) -> date:
    # relativedelta clamps to the last valid day (Jan 31 + 1 month -> Feb 28/29)
    shifted = anchor + relativedelta(months=months)
    if preferred_day is not None:
        shifted = shifted + relativedelta(day=preferred_day)
    return shifted


def _is_month_end(day: date) -> bool:
    return (day + timedelta(days=1)).month != day.month


def step(anchor: date, view: CalendarView | str, direction: Direction | str) -> date:
    """Move the anchor one unit of ``view`` back or forward.

    A month step from the last day of a month lands on the last day of the
    target month, so Jan 31 -> Feb 29 -> Jan 31. Other days keep their
    day-of-month, clamped to the target month's length.
    """
    view = CalendarView(view)
    sign = 1 if Direction(direction) is Direction.FORWARD else -1
    if view is CalendarView.MONTH:
        return _month_shift(anchor, sign, 31 if _is_month_end(anchor) else None)
    if view is CalendarView.WEEK:
        return anchor + timedelta(days=7 * sign)
    return anchor + timedelta(days=sign)


def go_to_today(today: date | None = None) -> date:
    return today or date.today()


def on_day_click(view: CalendarView | str, clicked: date) -> tuple[CalendarView, date]:
    """Clicking a day in the month grid opens that day; elsewhere it only moves the anchor."""
    view = CalendarView(view)
    if view is CalendarView.MONTH:
        return CalendarView.DAY, clicked
    return view, clicked


class Navigator:
    """Current view and anchor.

    Remembers the day-of-month the user was on so that month steps through a
    shorter month come back to it: Jan 31 -> Feb 29 -> Jan 31. Any explicit
    anchor change (today, day click, week/day steps) resets that memory.
    """

    def __init__(self, anchor: date | None = None, view: CalendarView | str = CalendarView.MONTH):
        self.anchor = anchor or date.today()
        self.view = CalendarView(view)
        self._preferred_day = self.anchor.day

    @property
    def range(self) -> DateRange:
        return resolve_range(self.anchor, self.view)

    def _move(self, direction: Direction) -> date:
        if self.view is CalendarView.MONTH:
            sign = 1 if direction is Direction.FORWARD else -1
            self.anchor = _month_shift(self.anchor, sign, self._preferred_day)
        else:
            self.anchor = step(self.anchor, self.view, direction)
            self._preferred_day = self.anchor.day
        return self.anchor

    def back(self) -> date:
        return self._move(Direction.BACK)

    def forward(self) -> date:
        return self._move(Direction.FORWARD)

    def jump(self, anchor: date) -> date:
        self.anchor = anchor
        self._preferred_day = anchor.day
        return anchor

    def today(self, today: date | None = None) -> date:
        return self.jump(go_to_today(today))

    def set_view(self, view: CalendarView | str) -> CalendarView:
        self.view = CalendarView(view)
        return self.view

    def click_day(self, day: date) -> tuple[CalendarView, date]:
        view, anchor = on_day_click(self.view, day)
        self.view = view
        self.jump(anchor)
        return view, anchor
