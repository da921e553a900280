"""Vertical geometry for the week and day time grids.

Items are absolutely positioned by start time and duration. There is no
lane assignment: concurrent items occupy the same horizontal space and may
overlap on screen. This is a known limitation.
"""
from __future__ import annotations
from datetime import datetime
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from .config import CALENDAR_END_HOUR, CALENDAR_START_HOUR
from .models import CalendarItem
from .ranges import CalendarView, DateRange


class LayoutConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_hour: int = CALENDAR_START_HOUR
    end_hour: int = CALENDAR_END_HOUR
    hour_height: float = 60  # px per hour
    min_height: float = 20  # legibility floor, display only


WEEK_LAYOUT = LayoutConfig(hour_height=60, min_height=20)
DAY_LAYOUT = LayoutConfig(hour_height=72, min_height=36)


def layout_for(view: CalendarView | str) -> LayoutConfig:
    view = CalendarView(view)
    if view is CalendarView.WEEK:
        return WEEK_LAYOUT
    if view is CalendarView.DAY:
        return DAY_LAYOUT
    raise ValueError("month view has no time grid")


class ItemPosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    top: float
    height: float

    @property
    def is_renderable(self) -> bool:
        return self.height > 0

    def display_height(self, config: LayoutConfig) -> float:
        return max(self.height, config.min_height)


class PositionedItem(BaseModel):
    item: CalendarItem
    position: ItemPosition
    display_height: float


def _minutes(hms: str) -> int:
    hours, minutes = hms.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def offset_for(minutes_of_day: int, config: LayoutConfig) -> float:
    return ((minutes_of_day - config.start_hour * 60) / 60) * config.hour_height


def position(item: CalendarItem, config: LayoutConfig = WEEK_LAYOUT) -> ItemPosition:
    start = _minutes(item.start_time)
    end = _minutes(item.end_time)
    return ItemPosition(
        top=offset_for(start, config),
        height=((end - start) / 60) * config.hour_height,
    )


def layout_day(items: Iterable[CalendarItem], config: LayoutConfig = WEEK_LAYOUT) -> list[PositionedItem]:
    """Position one day's items, skipping those with an end at or before their start."""
    placed = []
    for item in items:
        pos = position(item, config)
        if not pos.is_renderable:
            continue
        placed.append(PositionedItem(item=item, position=pos, display_height=pos.display_height(config)))
    return placed


def now_offset(now: datetime, displayed: DateRange, config: LayoutConfig = WEEK_LAYOUT) -> float | None:
    """Offset of the current-time line, or None when it should not be drawn."""
    minutes = now.hour * 60 + now.minute
    if not (config.start_hour * 60 <= minutes <= config.end_hour * 60):
        return None
    if not displayed.contains(now.date()):
        return None
    return offset_for(minutes, config)


def grid_height(config: LayoutConfig) -> float:
    return (config.end_hour - config.start_hour) * config.hour_height


def hour_marks(config: LayoutConfig) -> list[tuple[int, float]]:
    return [(hour, (hour - config.start_hour) * config.hour_height) for hour in range(config.start_hour, config.end_hour)]


def initial_scroll(now: datetime, config: LayoutConfig) -> float:
    """Scroll offset that puts the hour before ``now`` at the top of the grid."""
    return max(0, (now.hour - config.start_hour - 1) * config.hour_height)
