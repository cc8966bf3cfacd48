from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import DEFAULT_NOTIFICATION_OFFSET, Urgency, parse_due_time

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[date]:
    """
    Internal helper to normalize due_date input into a calendar date.
    - If value is a datetime, keep only its date part.
    - If value is a string, accept an ISO date or an ISO datetime (truncated to its date).
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        s = value.strip()
        try:
            return date.fromisoformat(s)
        except ValueError:
            try:
                return datetime.fromisoformat(s).date()
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use an ISO8601 date (e.g., '2025-01-31')."
                ) from e

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")


def _normalize_due_time(value: Optional[str]) -> Optional[str]:
    """Validate "HH:MM" and return it zero-padded; blank strings mean no time."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("due_time must be a string in the HH:MM format")
    if not value.strip():
        return None
    parsed = parse_due_time(value)
    return parsed.strftime("%H:%M")


def _validate_title(v: str) -> str:
    s = v.strip()
    if not (1 <= len(s) <= 200):
        raise ValueError("title length must be between 1 and 200 characters")
    return s


# PUBLIC_INTERFACE
def resolve_notification_offset(
    due_date: Optional[date], due_time: Optional[str], notification_offset: Optional[int]
) -> int:
    """
    Enforce the schedule invariant for a complete (created or merged) item.

    Raises:
        ValueError: if a due time is given without a due date.

    Returns:
        The offset to store: the given one (or 0) when a time is set, otherwise 0.
    """
    if due_time and due_date is None:
        raise ValueError("due_time requires due_date to be set")
    if not due_time:
        return 0
    return notification_offset or 0


# PUBLIC_INTERFACE
class AgendaItemCreate(BaseModel):
    """
    Schema for creating a new agenda item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Pick up cargo at the port",
                "description": "Terminal 3, gate B",
                "urgency": "Urgent",
                "due_date": "2025-02-01",
                "due_time": "14:30",
                "notification_offset": 30,
            }
        }
    )

    title: str = Field(..., description="Short title for the agenda item", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    urgency: Urgency = Field(default=Urgency.NORMAL, description="Urgent, Normal or Light")
    due_date: Optional[date] = Field(default=None, description="Due calendar date (ISO8601 date)")
    due_time: Optional[str] = Field(
        default=None, description="Due time of day as HH:MM; requires due_date"
    )
    notification_offset: int = Field(
        default=DEFAULT_NOTIFICATION_OFFSET,
        ge=0,
        description="Minutes before the due time at which the reminder fires (0 = exact minute)",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        return _validate_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        return _parse_due_date(v)

    @field_validator("due_time", mode="before")
    @classmethod
    def normalize_due_time(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_due_time(v)

    @model_validator(mode="after")
    def check_schedule(self) -> "AgendaItemCreate":
        """Reject a time without a date; an item without a time has no reminder offset."""
        self.notification_offset = resolve_notification_offset(
            self.due_date, self.due_time, self.notification_offset
        )
        return self


# PUBLIC_INTERFACE
class AgendaItemUpdate(BaseModel):
    """
    Schema for updating an existing agenda item.
    All fields are optional; only provided fields will be updated. An explicit null
    clears description, due_date or due_time.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Pick up cargo at the port (rescheduled)",
                "due_time": "16:00",
                "notification_offset": 60,
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the agenda item", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    is_completed: Optional[bool] = Field(default=None, description="Completion status flag")
    urgency: Optional[Urgency] = Field(default=None, description="Urgent, Normal or Light")
    due_date: Optional[date] = Field(default=None, description="Due calendar date (ISO8601 date)")
    due_time: Optional[str] = Field(default=None, description="Due time of day as HH:MM")
    notification_offset: Optional[int] = Field(default=None, ge=0, description="Reminder offset in minutes")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """
        If title is provided, strip whitespace and enforce 1..200 length.
        """
        if v is None:
            return v
        return _validate_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        return _parse_due_date(v)

    @field_validator("due_time", mode="before")
    @classmethod
    def normalize_due_time(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_due_time(v)

    def changes(self) -> dict:
        """Return only the fields the client sent; nulls are kept only where they clear a value."""
        data = self.model_dump(exclude_unset=True)
        for key in ("title", "is_completed", "urgency", "notification_offset"):
            if data.get(key, False) is None:
                data.pop(key)
        return data


# PUBLIC_INTERFACE
class QuickAddRequest(BaseModel):
    """Create an undated, Normal urgency item from a title alone."""

    title: str = Field(..., min_length=1, max_length=200)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _validate_title(v)


# PUBLIC_INTERFACE
class PostponeRequest(BaseModel):
    """
    New due date for a postponed item. When omitted the item moves to the day after
    its current due date (or to tomorrow if it has none).
    """

    model_config = ConfigDict(json_schema_extra={"example": {"new_due_date": "2025-02-02"}})

    new_due_date: Optional[date] = Field(default=None, description="New due calendar date")

    @field_validator("new_due_date", mode="before")
    @classmethod
    def parse_new_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class AgendaItemOut(BaseModel):
    """
    Schema returned by the API for an agenda item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0f8c3b1f9a2d4d0c8f1e2a3b4c5d6e7f",
                "title": "Pick up cargo at the port",
                "description": "Terminal 3, gate B",
                "is_completed": False,
                "urgency": "Urgent",
                "due_date": "2025-02-01",
                "due_time": "14:30",
                "notification_offset": 30,
                "created_at": "2025-01-25T10:15:30.123456",
                "updated_at": "2025-01-26T09:00:00.000001",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the agenda item")
    title: str
    description: Optional[str] = None
    is_completed: bool
    urgency: Urgency
    due_date: Optional[date] = None
    due_time: Optional[str] = None
    notification_offset: int
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class PendingNotificationOut(BaseModel):
    """An item whose reminder window is open and that has not been resolved this session."""

    item: AgendaItemOut
    fired_at: datetime = Field(..., description="When the scheduler queued the reminder")


class ListSectionCounts(BaseModel):
    overdue: int
    today: int
    future: int
    no_date: int
    completed: int


# PUBLIC_INTERFACE
class ListViewOut(BaseModel):
    """Agenda list grouped into Overdue, Today, Future, undated and completed sections."""

    today: date
    urgency: Optional[Urgency] = Field(default=None, description="Urgency filter applied, if any")
    overdue: List[AgendaItemOut]
    due_today: List[AgendaItemOut]
    future: List[AgendaItemOut]
    no_date: List[AgendaItemOut]
    completed: List[AgendaItemOut]
    counts: ListSectionCounts


class CalendarDayCellOut(BaseModel):
    date: dt.date
    day: int
    in_month: bool
    is_today: bool
    is_selected: bool
    has_event: bool


# PUBLIC_INTERFACE
class CalendarMonthOut(BaseModel):
    """Month grid (Sunday-first weeks) with per-day event markers."""

    year: int
    month: int
    weeks: List[List[CalendarDayCellOut]]


# PUBLIC_INTERFACE
class CalendarDayOut(BaseModel):
    """Every item due on one calendar day, timed items first."""

    date: dt.date
    has_event: bool
    items: List[AgendaItemOut]
