"""Async client for the practice backend's CRM and calendar-overlay endpoints.

Read calls map transport/HTTP failures to ``FetchError``; external events are
best-effort and fall back through the legacy endpoints before giving up with
an empty list.
"""
from __future__ import annotations
import logging
from typing import Any, Optional

import httpx

from .config import PRACTICE_API_BASE_URL, PRACTICE_API_TIMEOUT, PRACTICE_API_TOKEN
from .errors import FetchError, MutationError, TransitionRejected
from .lifecycle import ActorClass, Transition, channel_path
from .models import CreateAppointmentRequest, CreateExternalEventRequest, ExternalEvent, Scope
from .ranges import DateRange

logger = logging.getLogger(__name__)

_BASE_URL = f"{PRACTICE_API_BASE_URL}/api/v1"
_TOKEN = PRACTICE_API_TOKEN

APPOINTMENT_PAGE_SIZE = 500

# newest first; the last one only knows about Google-imported events
EXTERNAL_EVENT_ENDPOINTS = (
    "/integrations/google-calendar/external-events",
    "/crm/external-events",
    "/integrations/google-calendar/events",
)


def _headers() -> dict[str, str]:
    headers = {"Accept": "application/json", "Content-Type": "application/json"}
    if _TOKEN:
        headers["Authorization"] = f"Bearer {_TOKEN}"
    return headers


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=_BASE_URL, headers=_headers(), http2=True, timeout=PRACTICE_API_TIMEOUT)


def _items(resp: httpx.Response, key: str) -> list[dict[str, Any]]:
    body = resp.json()
    items = body.get(key, []) if isinstance(body, dict) else None
    if not isinstance(items, list):
        raise ValueError(f"expected a list under '{key}', got {type(items).__name__}")
    return items


def _detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("message") or body.get("error") or body)
    return str(body)


async def fetch_appointments(date_range: DateRange, scope: Scope = Scope()) -> list[dict[str, Any]]:
    """Return the raw appointment dicts in ``date_range`` for ``scope``.

    Items are left unvalidated so a single malformed row is dropped by the
    aggregator instead of failing the whole range.
    """
    endpoint = "/crm/organization/appointments" if scope.organization else "/crm/appointments"
    params: dict[str, Any] = {**date_range.as_params(), "limit": APPOINTMENT_PAGE_SIZE, "offset": 0}
    if scope.practitioner_id:
        params["practitioner_id"] = scope.practitioner_id
    try:
        async with _client() as client:
            resp = await client.get(endpoint, params=params)
            resp.raise_for_status()
            return _items(resp, "appointments")
    except (httpx.HTTPError, ValueError) as exc:
        raise FetchError(
            "fetch_appointments",
            f"Could not load appointments: {exc}",
            endpoint=endpoint,
            **date_range.as_params(),
        ) from exc


async def fetch_external_events(date_range: DateRange) -> list[dict[str, Any]]:
    """Return raw external events for ``date_range``; never raises."""
    params = date_range.as_params()
    async with _client() as client:
        for endpoint in EXTERNAL_EVENT_ENDPOINTS:
            try:
                resp = await client.get(endpoint, params=params)
                resp.raise_for_status()
                return _items(resp, "events")
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("External events unavailable from %s: %s", endpoint, exc)
    logger.warning("No external events endpoint answered for %s..%s", params["from"], params["to"])
    return []


async def apply_status_transition(
    appointment_id: str,
    transition: Transition | str,
    payload: Optional[dict[str, Any]] = None,
    actor: ActorClass | str = ActorClass.PRACTITIONER,
) -> None:
    """PATCH the transition on the practitioner or organization channel."""
    path = channel_path(actor, appointment_id, transition)
    transition = Transition(transition)
    try:
        async with _client() as client:
            resp = await client.patch(path, json=payload)
    except httpx.HTTPError as exc:
        raise TransitionRejected(appointment_id, transition.value, detail=str(exc)) from exc
    if resp.is_error:
        raise TransitionRejected(appointment_id, transition.value, resp.status_code, _detail(resp))
    logger.info("Appointment %s: %s applied via %s", appointment_id, transition.value, ActorClass(actor).value)


async def update_appointment(
    appointment_id: str,
    fields: dict[str, Any],
    actor: ActorClass | str = ActorClass.PRACTITIONER,
) -> dict[str, Any]:
    """Edit notes and imported overlay fields (title/description/location)."""
    prefix = "/crm/organization/appointments" if ActorClass(actor) is ActorClass.ORGANIZATION else "/crm/appointments"
    try:
        async with _client() as client:
            resp = await client.patch(f"{prefix}/{appointment_id}", json=fields)
            resp.raise_for_status()
            return resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise MutationError("update_appointment", f"Could not update appointment: {exc}", appointment_id=appointment_id) from exc


async def create_appointment(req: CreateAppointmentRequest) -> str:
    """Book an appointment and return its id."""
    try:
        async with _client() as client:
            resp = await client.post("/crm/appointments", json=req.model_dump(mode="json", exclude_none=True))
            resp.raise_for_status()
            created = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise MutationError(
            "create_appointment",
            f"Could not create appointment: {exc}",
            appointment_date=req.appointment_date.isoformat(),
        ) from exc
    logger.info("Appointment %s created for %s", created.get("id"), req.appointment_date)
    return created["id"]


async def create_external_event(req: CreateExternalEventRequest) -> ExternalEvent:
    try:
        async with _client() as client:
            resp = await client.post("/crm/external-events", json=req.model_dump(mode="json", exclude_none=True))
            resp.raise_for_status()
            payload = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise MutationError("create_external_event", f"Could not create event: {exc}", date=req.date.isoformat()) from exc
    return ExternalEvent.model_validate(payload)


async def delete_external_event(event_id: str) -> None:
    """Delete a manual external event. Imported ones must be removed at the provider."""
    try:
        async with _client() as client:
            resp = await client.delete(f"/crm/external-events/{event_id}")
            resp.raise_for_status()
    except httpx.HTTPError as exc:
        raise MutationError("delete_external_event", f"Could not delete event: {exc}", event_id=event_id) from exc
    logger.info("External event %s deleted", event_id)
