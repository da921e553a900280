"""Calendar session: navigation, range fetches and lifecycle mutations.

Every fetch is keyed by the resolved range and scope at the time it was
issued; a response whose key no longer matches the current one (the user
changed view or date meanwhile) is discarded. Mutations never patch the
current snapshot, they are followed by a full refetch of the range.
"""
from __future__ import annotations
import asyncio
import logging
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel

from . import client as default_source
from .aggregator import aggregate
from .errors import ExternalEventNotDeletable, FetchError, IllegalTransition, TransitionInFlight, TransitionRejected
from .lifecycle import ActorClass, Transition, available_transitions, initial_status, next_status, transition_payload
from .models import (
    Appointment,
    AppointmentStatus,
    CalendarItem,
    CreateAppointmentRequest,
    CreateExternalEventRequest,
    ExternalEvent,
    Scope,
)
from .navigator import Navigator
from .ranges import CalendarView, DateRange

logger = logging.getLogger(__name__)

QueryKey = tuple[date, date, Scope]


class CalendarSnapshot(BaseModel):
    view: CalendarView
    anchor: date
    range: DateRange
    scope: Scope
    buckets: dict[str, list[CalendarItem]]


class CalendarSession:
    """Holds what the calendar screen is looking at and keeps it in sync with the backend.

    ``source`` is anything exposing the coroutine functions of
    :mod:`practice_calendar.client`; the module itself by default.
    """

    def __init__(
        self,
        navigator: Optional[Navigator] = None,
        scope: Scope = Scope(),
        actor: ActorClass | str = ActorClass.PRACTITIONER,
        source: Any = default_source,
    ):
        self.navigator = navigator or Navigator()
        self.scope = scope
        self.actor = ActorClass(actor)
        self.source = source
        self.snapshot: Optional[CalendarSnapshot] = None
        self._in_flight: set[str] = set()

    @property
    def query_key(self) -> QueryKey:
        rng = self.navigator.range
        return rng.start, rng.end, self.scope

    def set_scope(self, scope: Scope) -> None:
        self.scope = scope

    def is_busy(self, appointment_id: str) -> bool:
        return appointment_id in self._in_flight

    def actions_for(self, appointment: Appointment) -> tuple[Transition, ...]:
        """Transitions to offer for ``appointment``; none while one is pending."""
        if self.is_busy(appointment.id):
            return ()
        return available_transitions(appointment.status)

    async def refresh(self) -> Optional[CalendarSnapshot]:
        """Fetch both sources for the current range.

        Returns the new snapshot, or None if the view moved on before the
        responses arrived.
        """
        key = self.query_key
        view, anchor = self.navigator.view, self.navigator.anchor
        rng = DateRange(start=key[0], end=key[1])
        appointments, events = await asyncio.gather(
            self.source.fetch_appointments(rng, key[2]),
            self.source.fetch_external_events(rng),
        )
        if key != self.query_key:
            logger.debug("Discarding stale calendar response for %s..%s", key[0], key[1])
            return None
        self.snapshot = CalendarSnapshot(
            view=view,
            anchor=anchor,
            range=rng,
            scope=key[2],
            buckets=aggregate(appointments, events),
        )
        return self.snapshot

    async def transition(
        self,
        appointment: Appointment,
        transition: Transition | str,
        text: Optional[str] = None,
    ) -> AppointmentStatus:
        """Apply ``transition`` and refetch. Returns the status the backend was asked for."""
        transition = Transition(transition)
        if self.is_busy(appointment.id):
            raise TransitionInFlight(appointment.id)
        if transition not in available_transitions(appointment.status):
            raise IllegalTransition(appointment.status.value, transition.value, appointment.id)
        target = next_status(appointment.status, transition, appointment.id)

        self._in_flight.add(appointment.id)
        try:
            try:
                await self.source.apply_status_transition(
                    appointment.id,
                    transition,
                    transition_payload(transition, text),
                    self.actor,
                )
            finally:
                self._in_flight.discard(appointment.id)
        except TransitionRejected:
            # show the status the backend actually holds
            try:
                await self.refresh()
            except FetchError as exc:
                logger.warning("Refetch after rejected %s on %s failed: %s", transition.value, appointment.id, exc)
            raise
        await self.refresh()
        return target

    async def create_appointment(self, req: CreateAppointmentRequest) -> str:
        initial_status(req.status)
        appointment_id = await self.source.create_appointment(req)
        await self.refresh()
        return appointment_id

    async def create_external_event(self, req: CreateExternalEventRequest) -> ExternalEvent:
        event = await self.source.create_external_event(req)
        await self.refresh()
        return event

    async def delete_external_event(self, event: ExternalEvent) -> None:
        if not event.is_deletable:
            raise ExternalEventNotDeletable(event.id, event.source)
        await self.source.delete_external_event(event.id)
        await self.refresh()
