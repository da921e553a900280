from datetime import date, datetime, time
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED_BY_PATIENT = "cancelled_by_patient"
    CANCELLED_BY_PRACTITIONER = "cancelled_by_practitioner"
    NO_SHOW = "no_show"


class AppointmentSource(str, Enum):
    """Where an appointment was created. Informational only."""
    PRACTICE = "dokal_crm"
    MOBILE_APP = "dokal_app"
    CALENDAR_SYNC = "google_calendar_sync"
    LEGACY = "legacy_unknown"


def _hms(value: time) -> str:
    return value.strftime("%H:%M:%S")


def wall_clock(instant: str) -> str:
    """Return the zero-padded HH:MM:SS wall-clock part of an ISO instant string.

    The offset (if any) is not applied: imported events are shown at the time
    written in the instant, the same way the backend stores them.
    """
    if "T" in instant:
        clock = instant.split("T", 1)[1]
    elif " " in instant:
        clock = instant.split(" ", 1)[1]
    else:
        raise ValueError(f"no time component in {instant!r}")
    clock = clock[:8]
    if len(clock) == 5:
        clock += ":00"
    return _hms(time.fromisoformat(clock))


class Appointment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    patient_id: Optional[str] = None  # mobile account, null for CRM-created patients
    patient_record_id: Optional[str] = None
    practitioner_id: str
    organization_id: Optional[str] = None
    reason_id: Optional[str] = None
    appointment_date: date
    start_time: time
    end_time: time
    status: AppointmentStatus
    source: AppointmentSource = AppointmentSource.LEGACY
    cancellation_reason: Optional[str] = None
    practitioner_notes: Optional[str] = None
    external_title: Optional[str] = None
    external_description: Optional[str] = None
    external_location: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @field_validator("source", mode="before")
    @classmethod
    def _unknown_source(cls, v):
        v = getattr(v, "value", v)
        if v not in {s.value for s in AppointmentSource}:
            return AppointmentSource.LEGACY
        return v

    @property
    def is_draft(self) -> bool:
        """No patient bound yet. Independent of status."""
        return not (self.patient_id or self.patient_record_id)


class ExternalEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    practitioner_id: Optional[str] = None
    google_event_id: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    location: Optional[str] = None
    start_at: str  # ISO-8601 instant
    end_at: str
    date: date
    source: str = "google"  # manual | google | google_calendar_sync | dokal_crm
    type_detected: Literal["appointment", "busy"] = "busy"

    @field_validator("start_at", "end_at")
    @classmethod
    def _has_wall_clock(cls, v: str) -> str:
        wall_clock(v)
        return v

    @property
    def is_deletable(self) -> bool:
        return self.source == "manual"


class AppointmentItem(BaseModel):
    kind: Literal["appointment"] = "appointment"
    data: Appointment

    @property
    def date_key(self) -> str:
        return self.data.appointment_date.isoformat()

    @property
    def start_time(self) -> str:
        return _hms(self.data.start_time)

    @property
    def end_time(self) -> str:
        return _hms(self.data.end_time)


class ExternalEventItem(BaseModel):
    kind: Literal["external_event"] = "external_event"
    data: ExternalEvent

    @property
    def date_key(self) -> str:
        return self.data.date.isoformat()

    @property
    def start_time(self) -> str:
        return wall_clock(self.data.start_at)

    @property
    def end_time(self) -> str:
        return wall_clock(self.data.end_at)


CalendarItem = Annotated[Union[AppointmentItem, ExternalEventItem], Field(discriminator="kind")]


class Scope(BaseModel):
    """Whose appointments to fetch: mine, a colleague's, or the whole organization."""
    model_config = ConfigDict(frozen=True)

    organization: bool = False
    practitioner_id: Optional[str] = None

    @classmethod
    def mine(cls) -> "Scope":
        return cls()

    @classmethod
    def organization_all(cls) -> "Scope":
        return cls(organization=True)

    @classmethod
    def colleague(cls, practitioner_id: str) -> "Scope":
        return cls(organization=True, practitioner_id=practitioner_id)


# Requests ------------------------------------------------------------------

class CancelAppointmentRequest(BaseModel):
    cancellation_reason: Optional[str] = None


class CompleteAppointmentRequest(BaseModel):
    practitioner_notes: Optional[str] = None


class CreateAppointmentRequest(BaseModel):
    patient_record_id: str
    practitioner_id: Optional[str] = None  # defaults to the caller server-side
    appointment_date: date
    start_time: time
    end_time: time
    reason_id: Optional[str] = None
    practitioner_notes: Optional[str] = None
    status: Literal["pending", "confirmed"] = "pending"

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class CreateExternalEventRequest(BaseModel):
    title: str
    date: date
    start_at: str  # ISO-8601 instant
    end_at: str
    description: Optional[str] = None
    location: Optional[str] = None
    type_detected: Literal["appointment", "busy"] = "busy"

    @model_validator(mode="after")
    def _end_after_start(self):
        if wall_clock(self.end_at) <= wall_clock(self.start_at):
            raise ValueError("end_at must be after start_at")
        return self
