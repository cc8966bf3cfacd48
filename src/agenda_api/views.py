from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Set

from .models import AgendaItemEntity, Urgency, urgency_rank


# PUBLIC_INTERFACE
class DueStatus(str, Enum):
    OVERDUE = "overdue"
    TODAY = "today"
    FUTURE = "future"
    NONE = "none"


def classify_due(item: AgendaItemEntity, today: date) -> DueStatus:
    """Place an item relative to today by its due date alone (time of day is ignored)."""
    due = item["due_date"]
    if due is None:
        return DueStatus.NONE
    if due < today:
        return DueStatus.OVERDUE
    if due == today:
        return DueStatus.TODAY
    return DueStatus.FUTURE


# PUBLIC_INTERFACE
@dataclass
class AgendaListView:
    overdue: List[AgendaItemEntity] = field(default_factory=list)
    today: List[AgendaItemEntity] = field(default_factory=list)
    future: List[AgendaItemEntity] = field(default_factory=list)
    no_date: List[AgendaItemEntity] = field(default_factory=list)
    completed: List[AgendaItemEntity] = field(default_factory=list)

    def active(self) -> List[AgendaItemEntity]:
        return self.overdue + self.today + self.future + self.no_date


# PUBLIC_INTERFACE
def build_list_view(
    items: Iterable[AgendaItemEntity],
    today: date,
    urgency: Optional[Urgency] = None,
) -> AgendaListView:
    """
    Group items the way the agenda list displays them.

    Active items (optionally filtered by urgency) with a due date are bucketed into
    overdue, today and future, ordered by due date then urgency rank. Undated active
    items are ordered by urgency rank alone. Completed items form a trailing group,
    most recently updated first. Sorts are stable, so ties keep store order.
    """
    items = list(items)
    active = [i for i in items if not i["is_completed"]]
    if urgency is not None:
        active = [i for i in active if i["urgency"] == urgency]

    with_date = sorted(
        (i for i in active if i["due_date"] is not None),
        key=lambda i: (classify_due(i, today) != DueStatus.OVERDUE, i["due_date"], urgency_rank(i)),
    )
    view = AgendaListView(
        no_date=sorted((i for i in active if i["due_date"] is None), key=urgency_rank),
        completed=sorted(
            (i for i in items if i["is_completed"]), key=lambda i: i["updated_at"], reverse=True
        ),
    )
    for item in with_date:
        status = classify_due(item, today)
        if status == DueStatus.OVERDUE:
            view.overdue.append(item)
        elif status == DueStatus.TODAY:
            view.today.append(item)
        else:
            view.future.append(item)
    return view


def days_with_events(items: Iterable[AgendaItemEntity]) -> Set[date]:
    """Calendar days holding at least one non-completed item."""
    return {i["due_date"] for i in items if i["due_date"] is not None and not i["is_completed"]}


def has_event(items: Iterable[AgendaItemEntity], day: date) -> bool:
    return day in days_with_events(items)


# PUBLIC_INTERFACE
def items_for_day(items: Iterable[AgendaItemEntity], day: date) -> List[AgendaItemEntity]:
    """All items due on day, completed or not: timed items by time, then untimed by urgency."""
    selected = [i for i in items if i["due_date"] == day]
    timed = sorted((i for i in selected if i["due_time"]), key=lambda i: i["due_time"])
    untimed = sorted((i for i in selected if not i["due_time"]), key=urgency_rank)
    return timed + untimed


@dataclass(frozen=True)
class CalendarDay:
    date: date
    in_month: bool
    is_today: bool
    is_selected: bool
    has_event: bool

    @property
    def day(self) -> int:
        return self.date.day


# PUBLIC_INTERFACE
def build_calendar_month(
    items: Iterable[AgendaItemEntity],
    year: int,
    month: int,
    today: date,
    selected: Optional[date] = None,
) -> List[List[CalendarDay]]:
    """Return the month as whole Sunday-first weeks, padded with days of the adjacent months."""
    event_days = days_with_events(items)
    weeks: List[List[CalendarDay]] = []
    for week in calendar.Calendar(firstweekday=calendar.SUNDAY).monthdatescalendar(year, month):
        weeks.append(
            [
                CalendarDay(
                    date=d,
                    in_month=d.month == month,
                    is_today=d == today,
                    is_selected=d == selected,
                    has_event=d in event_days,
                )
                for d in week
            ]
        )
    return weeks


def default_postpone_date(item: AgendaItemEntity, today: date) -> date:
    """Suggested new due date: the day after the current due date, or tomorrow."""
    base = item["due_date"] or today
    return base + timedelta(days=1)
