from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import Dict, Optional, TypedDict

DEFAULT_NOTIFICATION_OFFSET = 30


# PUBLIC_INTERFACE
class Urgency(str, Enum):
    """Severity of an agenda item, used for sorting and tie-breaks."""

    URGENT = "Urgent"
    NORMAL = "Normal"
    LIGHT = "Light"


URGENCY_RANK: Dict[Urgency, int] = {
    Urgency.URGENT: 1,
    Urgency.NORMAL: 2,
    Urgency.LIGHT: 3,
}

# Older clients wrote high/medium/low, and later the Portuguese labels.
LEGACY_URGENCY: Dict[str, Urgency] = {
    "high": Urgency.URGENT,
    "medium": Urgency.NORMAL,
    "low": Urgency.LIGHT,
    "Urgente": Urgency.URGENT,
    "Leve": Urgency.LIGHT,
}


def urgency_rank(item: "AgendaItemEntity") -> int:
    return URGENCY_RANK[item["urgency"]]


# PUBLIC_INTERFACE
class AgendaItemEntity(TypedDict):
    """
    A task or appointment held by the agenda store.

    Fields:
    - id: Opaque unique identifier (uuid4 hex), immutable
    - title: Display title, non-blank (enforced by schemas)
    - description: Optional free text
    - is_completed: Completion flag, False on creation
    - urgency: Urgent, Normal or Light
    - due_date: Optional calendar date
    - due_time: Optional "HH:MM"; only set together with due_date
    - notification_offset: Minutes before the due instant at which a reminder fires;
      0 means the exact minute. Inert unless due_date and due_time are both set.
    - created_at: Local creation timestamp
    - updated_at: Local timestamp of the last mutation
    """

    id: str
    title: str
    description: Optional[str]
    is_completed: bool
    urgency: Urgency
    due_date: Optional[date]
    due_time: Optional[str]
    notification_offset: int
    created_at: datetime
    updated_at: datetime


MUTABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "is_completed",
        "urgency",
        "due_date",
        "due_time",
        "notification_offset",
    }
)


def parse_due_time(value: str) -> time:
    """Parse an "HH:MM" string into a time with zero seconds."""
    hours, _, minutes = value.strip().partition(":")
    if not (hours.isdigit() and minutes.isdigit() and len(minutes) == 2 and 1 <= len(hours) <= 2):
        raise ValueError("due_time must use the HH:MM format (e.g. '14:30')")
    return time(int(hours), int(minutes))
