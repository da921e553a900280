from datetime import date, datetime

import pytest
from practice_calendar.layout import (
    DAY_LAYOUT,
    WEEK_LAYOUT,
    LayoutConfig,
    grid_height,
    hour_marks,
    initial_scroll,
    layout_day,
    layout_for,
    now_offset,
    position,
)
from practice_calendar.models import AppointmentItem, ExternalEventItem
from practice_calendar.ranges import resolve_range

GRID = LayoutConfig(start_hour=7, end_hour=21, hour_height=60, min_height=20)


def _item(start, end, id="a"):
    return AppointmentItem.model_validate({
        "data": {
            "id": id,
            "practitioner_id": "prac-1",
            "appointment_date": "2024-03-10",
            "start_time": start,
            "end_time": end,
            "status": "confirmed",
        }
    })


def test_position_half_hour_at_nine():
    pos = position(_item("09:00:00", "09:30:00"), GRID)
    assert pos.top == 120
    assert pos.height == 30
    assert pos.is_renderable


def test_day_layout_scales_with_hour_height():
    pos = position(_item("08:00:00", "09:30:00"), DAY_LAYOUT)
    assert pos.top == 72
    assert pos.height == 108


def test_external_event_position_uses_wall_clock():
    evt = ExternalEventItem.model_validate({
        "data": {
            "id": "e",
            "date": "2024-03-10",
            "start_at": "2024-03-10T10:15:00Z",
            "end_at": "2024-03-10T11:00:00Z",
        }
    })
    pos = position(evt, GRID)
    assert pos.top == 195
    assert pos.height == 45


@pytest.mark.parametrize("end", ["09:00:00", "08:00:00"])
def test_non_positive_duration_is_not_rendered(end):
    pos = position(_item("09:00:00", end), GRID)
    assert pos.height <= 0
    assert not pos.is_renderable
    assert layout_day([_item("09:00:00", end)], GRID) == []


def test_min_height_is_display_only():
    placed = layout_day([_item("09:00:00", "09:10:00")], WEEK_LAYOUT)
    assert placed[0].position.height == 10
    assert placed[0].display_height == 20


def test_overlapping_items_are_not_laned():
    placed = layout_day([_item("09:00:00", "10:00:00", "a"), _item("09:30:00", "10:30:00", "b")], GRID)
    assert [p.item.data.id for p in placed] == ["a", "b"]
    assert placed[0].position.top < placed[1].position.top < placed[0].position.top + placed[0].position.height


def test_now_offset_inside_window():
    rng = resolve_range(date(2024, 3, 10), "week")
    assert now_offset(datetime(2024, 3, 12, 9, 30), rng, GRID) == 150


def test_now_offset_outside_hours_or_range():
    rng = resolve_range(date(2024, 3, 10), "day")
    assert now_offset(datetime(2024, 3, 10, 6, 59), rng, GRID) is None
    assert now_offset(datetime(2024, 3, 10, 21, 1), rng, GRID) is None
    assert now_offset(datetime(2024, 3, 11, 9, 0), rng, GRID) is None
    assert now_offset(datetime(2024, 3, 10, 21, 0), rng, GRID) == 14 * 60


def test_layout_for_views():
    assert layout_for("week") is WEEK_LAYOUT
    assert layout_for("day") is DAY_LAYOUT
    assert DAY_LAYOUT.hour_height > WEEK_LAYOUT.hour_height
    with pytest.raises(ValueError):
        layout_for("month")


def test_grid_helpers():
    assert grid_height(GRID) == 14 * 60
    marks = hour_marks(GRID)
    assert marks[0] == (7, 0)
    assert marks[-1] == (20, 13 * 60)
    assert initial_scroll(datetime(2024, 3, 10, 12, 0), GRID) == 4 * 60
    assert initial_scroll(datetime(2024, 3, 10, 6, 0), GRID) == 0
