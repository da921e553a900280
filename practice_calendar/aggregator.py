"""Merge practice appointments and imported events into per-day buckets.

``aggregate`` is pure: it builds a new mapping on every call and never
looks at anything but its arguments, so callers can re-run it whenever either
source resolves, in whatever order.
"""
from __future__ import annotations
import logging
from datetime import date
from typing import Any, Iterable, Mapping, Union

from pydantic import ValidationError

from .models import Appointment, AppointmentItem, CalendarItem, ExternalEvent, ExternalEventItem

logger = logging.getLogger(__name__)

AppointmentLike = Union[Appointment, Mapping[str, Any]]
ExternalEventLike = Union[ExternalEvent, Mapping[str, Any]]


def _coerce(model, raw, kind: str):
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        item_id = raw.get("id") if isinstance(raw, Mapping) else None
        logger.warning("Dropping malformed %s %s: %s", kind, item_id, exc.errors(include_url=False))
        return None


def item_start_time(item: CalendarItem) -> str:
    return item.start_time


def aggregate(
    appointments: Iterable[AppointmentLike],
    external_events: Iterable[ExternalEventLike],
) -> dict[str, list[CalendarItem]]:
    """Return ``{YYYY-MM-DD: [items sorted by start time]}``.

    Appointments are placed before external events, and the sort is stable, so
    an appointment and an imported event starting at the same second keep that
    order. Both are kept: overlapping bookings are shown, not reconciled.
    """
    buckets: dict[str, list[CalendarItem]] = {}

    items: list[CalendarItem] = []
    for raw in appointments:
        appt = _coerce(Appointment, raw, "appointment")
        if appt is not None:
            items.append(AppointmentItem(data=appt))
    for raw in external_events:
        evt = _coerce(ExternalEvent, raw, "external_event")
        if evt is not None:
            items.append(ExternalEventItem(data=evt))

    for item in items:
        buckets.setdefault(item.date_key, []).append(item)

    return {key: sorted(buckets[key], key=item_start_time) for key in sorted(buckets)}


def items_for_day(buckets: Mapping[str, list[CalendarItem]], day: date | str) -> list[CalendarItem]:
    key = day.isoformat() if isinstance(day, date) else day
    return list(buckets.get(key, []))
