"""Appointment status state machine.

Owning practitioners and delegated organization staff share one transition
table; the actor only decides which backend channel applies the change.
Patients cancel through their own app, outside this module.
"""
from __future__ import annotations
from enum import Enum
from typing import Optional

from .errors import IllegalTransition
from .models import AppointmentStatus


class Transition(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    COMPLETE = "complete"
    NO_SHOW = "no_show"


class ActorClass(str, Enum):
    PRACTITIONER = "practitioner"
    ORGANIZATION = "organization"


_OPEN = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)

# transition -> (allowed source statuses, target status)
TRANSITIONS: dict[Transition, tuple[tuple[AppointmentStatus, ...], AppointmentStatus]] = {
    Transition.CONFIRM: ((AppointmentStatus.PENDING,), AppointmentStatus.CONFIRMED),
    Transition.CANCEL: (_OPEN, AppointmentStatus.CANCELLED_BY_PRACTITIONER),
    Transition.COMPLETE: (_OPEN, AppointmentStatus.COMPLETED),
    Transition.NO_SHOW: (_OPEN, AppointmentStatus.NO_SHOW),
}

TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED_BY_PATIENT,
    AppointmentStatus.CANCELLED_BY_PRACTITIONER,
    AppointmentStatus.NO_SHOW,
})

# order the action bar shows them in
_DISPLAY_ORDER = (Transition.CONFIRM, Transition.COMPLETE, Transition.NO_SHOW, Transition.CANCEL)

_PATH_SEGMENTS = {
    Transition.CONFIRM: "confirm",
    Transition.CANCEL: "cancel",
    Transition.COMPLETE: "complete",
    Transition.NO_SHOW: "no-show",
}


def is_terminal(status: AppointmentStatus | str) -> bool:
    return AppointmentStatus(status) in TERMINAL_STATUSES


def initial_status(explicit: Optional[AppointmentStatus | str] = None) -> AppointmentStatus:
    """Status a new booking starts in: pending, or confirmed when staff choose so."""
    if explicit is None:
        return AppointmentStatus.PENDING
    status = AppointmentStatus(explicit)
    if status not in _OPEN:
        raise IllegalTransition("new", f"create as {status.value}")
    return status


def available_transitions(status: AppointmentStatus | str) -> tuple[Transition, ...]:
    status = AppointmentStatus(status)
    return tuple(t for t in _DISPLAY_ORDER if status in TRANSITIONS[t][0])


def can_transition(status: AppointmentStatus | str, transition: Transition | str) -> bool:
    return Transition(transition) in available_transitions(status)


def next_status(
    status: AppointmentStatus | str,
    transition: Transition | str,
    appointment_id: Optional[str] = None,
) -> AppointmentStatus:
    status = AppointmentStatus(status)
    transition = Transition(transition)
    sources, target = TRANSITIONS[transition]
    if status not in sources:
        raise IllegalTransition(status.value, transition.value, appointment_id)
    return target


def channel_path(actor: ActorClass | str, appointment_id: str, transition: Transition | str) -> str:
    prefix = "/crm/organization/appointments" if ActorClass(actor) is ActorClass.ORGANIZATION else "/crm/appointments"
    return f"{prefix}/{appointment_id}/{_PATH_SEGMENTS[Transition(transition)]}"


def transition_payload(transition: Transition | str, text: Optional[str] = None) -> Optional[dict]:
    """Request body for a transition; blank text is left out."""
    transition = Transition(transition)
    text = (text or "").strip() or None
    if transition is Transition.CANCEL:
        return {"cancellation_reason": text} if text else {}
    if transition is Transition.COMPLETE:
        return {"practitioner_notes": text} if text else {}
    return None
