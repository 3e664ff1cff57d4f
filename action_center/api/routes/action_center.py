"""Action Center API routes — queue listing, item detail, and operator actions.

Endpoints:
- GET  /action-center/summary                      — open counts per queue (badge)
- GET  /action-center/queues/{queue}/summary       — status / severity breakdown
- GET  /action-center/queues/{queue}/items         — filtered, paginated list
- POST /action-center/items                        — intake from collaborator services
- GET  /action-center/items/{item_id}              — single item
- POST /action-center/items/{item_id}/assign       — assign (defaults to the caller)
- POST /action-center/items/{item_id}/assign-to-me — assign to the caller
- POST /action-center/items/{item_id}/resolve      — resolve with optional note
- POST /action-center/items/{item_id}/snooze       — snooze until a time
- POST /action-center/items/{item_id}/reopen       — back to open
- POST /action-center/items/{item_id}/actions/{action} — queue-specific action
- POST /action-center/items/{item_id}/retry-webhook — redeliver a failed webhook
- GET/POST /action-center/items/{item_id}/notes    — note thread
- GET  /action-center/items/{item_id}/timeline     — merged activity timeline

The acting admin comes from the X-Admin-* headers (see api.deps.get_actor).
Domain errors propagate to the ActionCenterError handler in main.py.
"""

from datetime import datetime
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query
from pydantic import AwareDatetime, Field, ValidationError

from action_center.api.deps import get_action_center, get_actor
from action_center.core.actor import Actor
from action_center.core.exceptions import InvalidFilterError
from action_center.domain.queues import ItemStatus, Queue, Severity
from action_center.schemas.action_items import (
    ActionCenterSummary,
    ActionItemView,
    ActionNote,
    CamelModel,
    ListFilters,
    ListResponse,
    NewActionItem,
    QueueSummary,
    RetryResult,
    TimelineEvent,
)
from action_center.services.action_center import ActionCenter

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# Request models
# ──────────────────────────────────────────────────────────────────────────────


class AssignRequest(CamelModel):
    """Body for POST /items/{id}/assign. Omit assigneeId to assign to yourself."""

    assignee_id: str | None = None
    assignee_name: str | None = None


class ResolveRequest(CamelModel):
    resolution: str = Field(min_length=1)
    note: str | None = None


class SnoozeRequest(CamelModel):
    until: AwareDatetime


class ReopenRequest(CamelModel):
    reason: str | None = None


class ActionRequest(CamelModel):
    data: dict[str, Any] | None = None


class NoteRequest(CamelModel):
    body: str = Field(min_length=1)


# ──────────────────────────────────────────────────────────────────────────────
# Summaries and lists
# ──────────────────────────────────────────────────────────────────────────────


@router.get("/summary", response_model=ActionCenterSummary)
async def get_summary(
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    """Open item counts for the queues the caller may work."""
    return await center.get_summary(actor)


@router.get("/queues/{queue}/summary", response_model=QueueSummary)
async def get_queue_summary(
    queue: Queue,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    return await center.get_queue_summary(queue, actor)


@router.get("/queues/{queue}/items", response_model=ListResponse)
async def list_items(
    queue: Queue,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=0, description="0 returns every match on one page"),
    assigned_to: Literal["me", "unassigned", "all"] | None = Query(None),
    overdue: bool = Query(False),
    severity: list[Severity] | None = Query(None),
    reason_code: list[str] | None = Query(None),
    search: str | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    status: list[ItemStatus] | None = Query(None, description="Defaults to every non-resolved status"),
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    try:
        filters = ListFilters(
            assigned_to=assigned_to,
            overdue=overdue,
            severity=severity,
            reason_code=reason_code,
            search=search,
            date_from=date_from,
            date_to=date_to,
            status=status,
        )
    except ValidationError as exc:
        messages = "; ".join(err["msg"] for err in exc.errors())
        raise InvalidFilterError(f"Invalid filter: {messages}") from exc

    return await center.list(queue, actor, filters, page=page, limit=limit)


# ──────────────────────────────────────────────────────────────────────────────
# Items
# ──────────────────────────────────────────────────────────────────────────────


@router.post("/items", response_model=ActionItemView, status_code=201)
async def create_item(
    body: NewActionItem,
    center: ActionCenter = Depends(get_action_center),
):
    """Intake endpoint for collaborator services (KYC, bookings, payouts, ...)."""
    return await center.create_item(body)


@router.get("/items/{item_id}", response_model=ActionItemView)
async def get_item(
    item_id: str,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    return await center.get(item_id, actor)


@router.post("/items/{item_id}/assign", response_model=ActionItemView)
async def assign_item(
    item_id: str,
    body: AssignRequest | None = None,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    body = body or AssignRequest()
    return await center.assign(item_id, actor, body.assignee_id, body.assignee_name)


@router.post("/items/{item_id}/assign-to-me", response_model=ActionItemView)
async def assign_item_to_me(
    item_id: str,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    return await center.assign_to_me(item_id, actor)


@router.post("/items/{item_id}/resolve", response_model=ActionItemView)
async def resolve_item(
    item_id: str,
    body: ResolveRequest,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    return await center.resolve(item_id, body.resolution, actor, note=body.note)


@router.post("/items/{item_id}/snooze", response_model=ActionItemView)
async def snooze_item(
    item_id: str,
    body: SnoozeRequest,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    return await center.snooze(item_id, body.until, actor)


@router.post("/items/{item_id}/reopen", response_model=ActionItemView)
async def reopen_item(
    item_id: str,
    body: ReopenRequest | None = None,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    return await center.reopen(item_id, actor, reason=body.reason if body else None)


@router.post("/items/{item_id}/actions/{action}", response_model=ActionItemView)
async def perform_action(
    item_id: str,
    action: str,
    body: ActionRequest | None = None,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    return await center.perform_action(item_id, action, actor, data=body.data if body else None)


@router.post("/items/{item_id}/retry-webhook", response_model=RetryResult)
async def retry_webhook(
    item_id: str,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    """Redeliver a failed webhook. A failed redelivery is 200 with ``ok: false``."""
    return await center.retry_webhook(item_id, actor)


# ──────────────────────────────────────────────────────────────────────────────
# Notes and timeline
# ──────────────────────────────────────────────────────────────────────────────


@router.get("/items/{item_id}/notes", response_model=list[ActionNote])
async def list_notes(
    item_id: str,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    return await center.get_notes(item_id, actor)


@router.post("/items/{item_id}/notes", response_model=ActionNote, status_code=201)
async def add_note(
    item_id: str,
    body: NoteRequest,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    return await center.add_note(item_id, body.body, actor)


@router.get("/items/{item_id}/timeline", response_model=list[TimelineEvent])
async def get_timeline(
    item_id: str,
    actor: Actor = Depends(get_actor),
    center: ActionCenter = Depends(get_action_center),
):
    return await center.get_timeline(item_id, actor)
