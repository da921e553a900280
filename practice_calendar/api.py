import logging
from datetime import date, datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from . import client
from .config import CALENDAR_SERVICE_KEY, LOG_LEVEL
from .errors import ExternalEventNotDeletable, FetchError, IllegalTransition, MutationError, TransitionRejected
from .layout import grid_height, hour_marks, initial_scroll, layout_day, layout_for, now_offset
from .lifecycle import ActorClass, Transition, available_transitions, next_status, transition_payload
from .models import AppointmentStatus, CreateExternalEventRequest, ExternalEvent, Scope
from .navigator import Direction, Navigator, on_day_click, step
from .ranges import CalendarView, resolve_range
from .session import CalendarSession

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

# HTTPBearer scheme so Swagger-UI can attach the Authorization header globally
auth_scheme = HTTPBearer(auto_error=False)

app = FastAPI(title="Practice Calendar Service")


class TransitionRequest(BaseModel):
    status: AppointmentStatus  # status the caller currently sees
    actor: ActorClass = ActorClass.PRACTITIONER
    text: Optional[str] = None  # cancellation reason or practitioner notes


class TransitionResponse(BaseModel):
    id: str
    status: AppointmentStatus


def verify_service_key(credentials: HTTPAuthorizationCredentials = Depends(auth_scheme)):
    """Validate Bearer token provided via Authorization header"""
    if credentials is None or credentials.scheme.lower() != "bearer" or credentials.credentials != CALENDAR_SERVICE_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


def _scope(scope: str, practitioner_id: Optional[str]) -> Scope:
    if scope == "mine":
        return Scope.mine()
    if scope == "organization":
        return Scope.colleague(practitioner_id) if practitioner_id else Scope.organization_all()
    raise HTTPException(status_code=422, detail="scope must be 'mine' or 'organization'")


# Calendar ------------------------------------------------------------------

@app.get("/calendar", dependencies=[Depends(verify_service_key)])
async def get_calendar(
    view: CalendarView = Query(CalendarView.MONTH),
    anchor: Optional[date] = Query(None, description="YYYY-MM-DD, defaults to today"),
    scope: str = Query("mine", description="'mine' or 'organization'"),
    practitioner_id: Optional[str] = Query(None, description="Colleague filter in organization scope"),
):
    """Merged appointments and external events for the view, with grid positions for week/day."""
    session = CalendarSession(Navigator(anchor, view), scope=_scope(scope, practitioner_id))
    try:
        snapshot = await session.refresh()
    except FetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc))

    days = {}
    grid = layout_for(view) if view is not CalendarView.MONTH else None
    for key, items in snapshot.buckets.items():
        if grid is None:
            days[key] = [{"item": item.model_dump(mode="json")} for item in items]
            continue
        days[key] = [
            {
                "item": placed.item.model_dump(mode="json"),
                "top": placed.position.top,
                "height": placed.display_height,
            }
            for placed in layout_day(items, grid)
        ]

    now = datetime.now()
    return {
        "view": snapshot.view.value,
        "anchor": snapshot.anchor.isoformat(),
        **snapshot.range.as_params(),
        "days": days,
        "now_offset": now_offset(now, snapshot.range, grid) if grid else None,
        "grid": {
            "height": grid_height(grid),
            "hour_marks": [{"hour": hour, "top": top} for hour, top in hour_marks(grid)],
            "scroll_to": initial_scroll(now, grid),
        } if grid else None,
    }


@app.get("/calendar/navigate", dependencies=[Depends(verify_service_key)])
async def navigate(
    view: CalendarView = Query(...),
    anchor: date = Query(...),
    direction: Optional[Direction] = Query(None, description="Omit to jump to today"),
):
    new_anchor = step(anchor, view, direction) if direction else date.today()
    return {"view": view.value, "anchor": new_anchor.isoformat(), **resolve_range(new_anchor, view).as_params()}


@app.post("/calendar/day-click", dependencies=[Depends(verify_service_key)])
async def day_click(view: CalendarView = Query(...), day: date = Query(...)):
    new_view, new_anchor = on_day_click(view, day)
    return {"view": new_view.value, "anchor": new_anchor.isoformat()}


# Appointment lifecycle -----------------------------------------------------

@app.get("/appointments/transitions", dependencies=[Depends(verify_service_key)])
async def list_transitions(status: AppointmentStatus = Query(...)):
    """Actions to offer for an appointment in ``status``; empty once terminal."""
    return [t.value for t in available_transitions(status)]


@app.post("/appointments/{appointment_id}/{transition}", dependencies=[Depends(verify_service_key)], response_model=TransitionResponse)
async def transition_appointment(appointment_id: str, transition: Transition, req: TransitionRequest):
    try:
        target = next_status(req.status, transition, appointment_id)
    except IllegalTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    try:
        await client.apply_status_transition(appointment_id, transition, transition_payload(transition, req.text), req.actor)
    except TransitionRejected as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return TransitionResponse(id=appointment_id, status=target)


# External events -----------------------------------------------------------

@app.post("/external-events", dependencies=[Depends(verify_service_key)], response_model=ExternalEvent, status_code=201)
async def create_external_event(req: CreateExternalEventRequest):
    try:
        return await client.create_external_event(req)
    except MutationError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@app.delete("/external-events/{event_id}", dependencies=[Depends(verify_service_key)], status_code=204)
async def delete_external_event(event_id: str, source: str = Query(..., description="Event source as listed")):
    """Only manual events can be removed here; imported ones belong to their provider."""
    if source != "manual":
        raise HTTPException(status_code=409, detail=str(ExternalEventNotDeletable(event_id, source)))
    try:
        await client.delete_external_event(event_id)
    except MutationError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return None
