from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ..dependencies import get_store, get_today
from ..models import DEFAULT_NOTIFICATION_OFFSET, AgendaItemEntity, Urgency
from ..schemas import (
    AgendaItemCreate,
    AgendaItemOut,
    AgendaItemUpdate,
    CalendarDayCellOut,
    CalendarDayOut,
    CalendarMonthOut,
    ListSectionCounts,
    ListViewOut,
    PostponeRequest,
    QuickAddRequest,
    resolve_notification_offset,
)
from ..store import SORT_FIELDS, AgendaStore, ListQuery
from ..views import build_calendar_month, build_list_view, default_postpone_date, has_event, items_for_day

router = APIRouter(
    prefix="/api/v1/agenda",
    tags=["agenda"],
)

_NOT_FOUND = "Agenda item not found"


class PaginationEnvelope(BaseModel):
    """
    Envelope for paginated list responses.
    """
    items: List[AgendaItemOut] = Field(..., description="List of agenda items")
    total: int = Field(..., description="Total number of items matching the query")
    limit: int = Field(..., description="Limit applied to the query")
    offset: int = Field(..., description="Offset applied to the query")


def _out(item: AgendaItemEntity) -> AgendaItemOut:
    return AgendaItemOut(**item)


def _out_list(items: List[AgendaItemEntity]) -> List[AgendaItemOut]:
    return [_out(i) for i in items]


# PUBLIC_INTERFACE
@router.post(
    "/items",
    response_model=AgendaItemOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create agenda item",
    description="Create a new agenda item. A due_time requires a due_date.",
    responses={
        201: {"description": "Item created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_item(payload: AgendaItemCreate, store: AgendaStore = Depends(get_store)) -> AgendaItemOut:
    """
    Create a new agenda item.
    """
    return _out(store.add(payload))


# PUBLIC_INTERFACE
@router.post(
    "/items/quick",
    response_model=AgendaItemOut,
    status_code=status.HTTP_201_CREATED,
    summary="Quick add",
    description="Create an undated item with Normal urgency from a title alone.",
)
def quick_add_item(payload: QuickAddRequest, store: AgendaStore = Depends(get_store)) -> AgendaItemOut:
    """
    Create an undated Normal item from a title.
    """
    return _out(store.quick_add(payload.title))


# PUBLIC_INTERFACE
@router.get(
    "/items",
    response_model=PaginationEnvelope,
    summary="List agenda items",
    description=(
        "Flat list of agenda items with optional filters and pagination.\n\n"
        "Query parameters:\n"
        "- limit: max number of items to return (0..1000)\n"
        "- offset: number of items to skip (>=0)\n"
        "- completed: filter by completion status\n"
        "- urgency: filter by urgency\n"
        "- q: search query for title/description (substring match)\n"
        "- sort: created_at, updated_at or due_date, prefixed with '-' for descending"
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        400: {"description": "Invalid query parameters"},
    },
)
def list_items(
    limit: int = Query(50, ge=0, le=1000, description="Maximum number of items to return"),
    offset: int = Query(0, ge=0, description="Number of items to skip"),
    completed: Optional[bool] = Query(None, description="Filter by completion status"),
    urgency: Optional[Urgency] = Query(None, description="Filter by urgency"),
    q: Optional[str] = Query(None, description="Search text for title/description"),
    sort: str = Query("-created_at", description="Sort field, '-' prefix for descending"),
    store: AgendaStore = Depends(get_store),
) -> PaginationEnvelope:
    """
    List agenda items with pagination and filters.
    """
    normalized_sort = sort.strip().lower()
    if normalized_sort.lstrip("-") not in SORT_FIELDS:
        raise HTTPException(
            status_code=400,
            detail=f"sort must be one of {', '.join(sorted(SORT_FIELDS))} (optionally prefixed with '-')",
        )

    query = ListQuery(
        limit=limit,
        offset=offset,
        completed=completed,
        urgency=urgency,
        search=q.strip() if q else None,
        sort=normalized_sort,
    )
    items, total = store.list(query)
    return PaginationEnvelope(items=_out_list(items), total=total, limit=limit, offset=offset)


# PUBLIC_INTERFACE
@router.get(
    "/items/{item_id}",
    response_model=AgendaItemOut,
    summary="Get agenda item",
    responses={404: {"description": "Item not found"}},
)
def get_item(item_id: str, store: AgendaStore = Depends(get_store)) -> AgendaItemOut:
    """
    Retrieve a single agenda item by its ID.
    """
    item = store.get(item_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return _out(item)


# PUBLIC_INTERFACE
@router.patch(
    "/items/{item_id}",
    response_model=AgendaItemOut,
    summary="Update agenda item",
    description=(
        "Partially update an agenda item. The merged result must keep a due_date whenever "
        "a due_time is set; an item left without a time gets notification_offset 0."
    ),
    responses={
        404: {"description": "Item not found"},
        422: {"description": "Validation error"},
    },
)
def patch_item(item_id: str, payload: AgendaItemUpdate, store: AgendaStore = Depends(get_store)) -> AgendaItemOut:
    """
    Partially update an agenda item, re-checking its schedule against the stored values.
    """
    current = store.get(item_id)
    if not current:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)

    changes = payload.changes()
    merged = {**current, **changes}
    if not current["due_time"] and merged["due_time"] and "notification_offset" not in changes:
        # newly timed item gets the default reminder lead
        merged["notification_offset"] = DEFAULT_NOTIFICATION_OFFSET
    try:
        offset = resolve_notification_offset(
            merged["due_date"], merged["due_time"], merged["notification_offset"]
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    changes["notification_offset"] = offset

    updated = store.update(item_id, changes)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return _out(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete agenda item",
    responses={
        204: {"description": "Item deleted"},
        404: {"description": "Item not found"},
    },
)
def delete_item(item_id: str, store: AgendaStore = Depends(get_store)) -> None:
    """
    Delete an agenda item by its ID.
    """
    if not store.delete(item_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return None


# PUBLIC_INTERFACE
@router.post(
    "/items/{item_id}/toggle",
    response_model=AgendaItemOut,
    summary="Toggle completion",
    responses={404: {"description": "Item not found"}},
)
def toggle_item(item_id: str, store: AgendaStore = Depends(get_store)) -> AgendaItemOut:
    """
    Flip the completion flag of an agenda item.
    """
    updated = store.toggle_completion(item_id)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return _out(updated)


# PUBLIC_INTERFACE
@router.post(
    "/items/{item_id}/postpone",
    response_model=AgendaItemOut,
    summary="Postpone agenda item",
    description=(
        "Replace the item's due date only. Without new_due_date the item moves to the day "
        "after its current due date, or to tomorrow if it has none."
    ),
    responses={404: {"description": "Item not found"}},
)
def postpone_item(
    item_id: str,
    payload: Optional[PostponeRequest] = None,
    store: AgendaStore = Depends(get_store),
    today: date = Depends(get_today),
) -> AgendaItemOut:
    """
    Move an agenda item to a new due date.
    """
    current = store.get(item_id)
    if not current:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    new_date = payload.new_due_date if payload and payload.new_due_date else default_postpone_date(current, today)
    updated = store.postpone(item_id, new_date)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return _out(updated)


# PUBLIC_INTERFACE
@router.get(
    "/views/list",
    response_model=ListViewOut,
    summary="Agenda list view",
    description=(
        "Active items grouped into overdue, today, future and undated sections, plus the "
        "completed items (most recent first). The urgency filter applies to active items."
    ),
)
def list_view(
    urgency: Optional[Urgency] = Query(None, description="Only show active items of this urgency"),
    store: AgendaStore = Depends(get_store),
    today: date = Depends(get_today),
) -> ListViewOut:
    """
    Group agenda items into the list view sections.
    """
    view = build_list_view(store.items(), today, urgency)
    return ListViewOut(
        today=today,
        urgency=urgency,
        overdue=_out_list(view.overdue),
        due_today=_out_list(view.today),
        future=_out_list(view.future),
        no_date=_out_list(view.no_date),
        completed=_out_list(view.completed),
        counts=ListSectionCounts(
            overdue=len(view.overdue),
            today=len(view.today),
            future=len(view.future),
            no_date=len(view.no_date),
            completed=len(view.completed),
        ),
    )


# PUBLIC_INTERFACE
@router.get(
    "/views/calendar",
    response_model=CalendarMonthOut,
    summary="Calendar month",
    description="Sunday-first month grid; has_event marks days with at least one open item.",
)
def calendar_month(
    year: Optional[int] = Query(None, ge=1, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    selected: Optional[date] = Query(None, description="Day to mark as selected"),
    store: AgendaStore = Depends(get_store),
    today: date = Depends(get_today),
) -> CalendarMonthOut:
    """
    Build the calendar grid for a month.
    """
    year = year or today.year
    month = month or today.month
    weeks = build_calendar_month(store.items(), year, month, today, selected or today)
    return CalendarMonthOut(
        year=year,
        month=month,
        weeks=[
            [
                CalendarDayCellOut(
                    date=d.date,
                    day=d.day,
                    in_month=d.in_month,
                    is_today=d.is_today,
                    is_selected=d.is_selected,
                    has_event=d.has_event,
                )
                for d in week
            ]
            for week in weeks
        ],
    )


# PUBLIC_INTERFACE
@router.get(
    "/views/calendar/{day}",
    response_model=CalendarDayOut,
    summary="Items for a day",
    description="Every item due on the day, completed or not: timed items first, then by urgency.",
)
def calendar_day(day: date, store: AgendaStore = Depends(get_store)) -> CalendarDayOut:
    """
    List the items due on one day.
    """
    items = store.items()
    return CalendarDayOut(date=day, has_event=has_event(items, day), items=_out_list(items_for_day(items, day)))
