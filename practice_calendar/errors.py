"""Typed failures surfaced to the presentation layer.

Each error carries the attempted operation and the identifiers involved so a
caller can render a readable message without parsing strings.
"""
from __future__ import annotations
from typing import Any


class CalendarError(Exception):
    def __init__(self, operation: str, message: str = "", **context: Any):
        self.operation = operation
        self.context = context
        self.message = message or operation
        super().__init__(str(self))

    def __str__(self) -> str:
        details = ", ".join(f"{k}={v}" for k, v in self.context.items() if v is not None)
        if not details:
            return self.message
        return f"{self.message} ({details})"


class FetchError(CalendarError):
    """A range query against the practice backend failed."""


class MutationError(CalendarError):
    """A create/update/delete call failed for a reason other than a refused transition."""


class TransitionRejected(CalendarError):
    """The backend refused a status transition."""

    def __init__(self, appointment_id: str, transition: str, status_code: int | None = None, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(
            "apply_status_transition",
            f"Transition '{transition}' rejected" + (f": {detail}" if detail else ""),
            appointment_id=appointment_id,
            transition=transition,
            status_code=status_code,
        )


class IllegalTransition(CalendarError):
    """Transition not permitted from the appointment's current status."""

    def __init__(self, status: str, transition: str, appointment_id: str | None = None):
        context = {"status": status, "transition": transition}
        if appointment_id:
            context["appointment_id"] = appointment_id
        super().__init__("transition", f"Cannot {transition} an appointment that is {status}", **context)


class TransitionInFlight(CalendarError):
    """Another transition on the same appointment has not resolved yet."""

    def __init__(self, appointment_id: str):
        super().__init__("transition", "A status change is already in progress", appointment_id=appointment_id)


class ExternalEventNotDeletable(CalendarError):
    """Only manually entered external events can be deleted here."""

    def __init__(self, event_id: str, source: str):
        super().__init__(
            "delete_external_event",
            "Imported events can only be removed from their provider",
            event_id=event_id,
            source=source,
        )
