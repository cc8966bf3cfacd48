from datetime import date, datetime, timedelta

import pytest

from agenda_api.models import Urgency
from agenda_api.views import (
    DueStatus,
    build_calendar_month,
    build_list_view,
    classify_due,
    days_with_events,
    default_postpone_date,
    has_event,
    items_for_day,
)

TODAY = date(2025, 3, 10)
YESTERDAY = TODAY - timedelta(days=1)
TOMORROW = TODAY + timedelta(days=1)


def entity(item_id, urgency=Urgency.NORMAL, due_date=None, due_time=None, completed=False, updated_at=None):
    stamp = updated_at or datetime(2025, 3, 1, 8, 0)
    return {
        "id": item_id,
        "title": item_id,
        "description": None,
        "is_completed": completed,
        "urgency": urgency,
        "due_date": due_date,
        "due_time": due_time,
        "notification_offset": 30 if due_time else 0,
        "created_at": datetime(2025, 3, 1, 8, 0),
        "updated_at": stamp,
    }


def ids(items):
    return [i["id"] for i in items]


@pytest.fixture
def scenario():
    return [
        entity("A", Urgency.NORMAL, due_date=YESTERDAY),
        entity("B", Urgency.URGENT, due_date=TODAY),
        entity("C", Urgency.LIGHT, due_date=TOMORROW),
        entity("D", Urgency.URGENT),
        entity("E", Urgency.NORMAL, due_date=TODAY, completed=True),
    ]


class TestClassifyDue:
    def test_buckets(self):
        assert classify_due(entity("x", due_date=YESTERDAY), TODAY) == DueStatus.OVERDUE
        assert classify_due(entity("x", due_date=TODAY, due_time="00:01"), TODAY) == DueStatus.TODAY
        assert classify_due(entity("x", due_date=TOMORROW), TODAY) == DueStatus.FUTURE
        assert classify_due(entity("x"), TODAY) == DueStatus.NONE


class TestListView:
    def test_sections(self, scenario):
        view = build_list_view(scenario, TODAY)
        assert ids(view.overdue) == ["A"]
        assert ids(view.today) == ["B"]
        assert ids(view.future) == ["C"]
        assert ids(view.no_date) == ["D"]
        assert ids(view.completed) == ["E"]
        assert "E" not in ids(view.active())

    def test_urgency_filter_applies_to_active_items(self, scenario):
        view = build_list_view(scenario, TODAY, Urgency.URGENT)
        assert set(ids(view.active())) == {"B", "D"}
        assert ids(view.completed) == ["E"]

    def test_dated_items_by_date_then_urgency(self):
        items = [
            entity("late-light", Urgency.LIGHT, due_date=TODAY + timedelta(days=5)),
            entity("soon-light", Urgency.LIGHT, due_date=TOMORROW),
            entity("soon-urgent", Urgency.URGENT, due_date=TOMORROW),
            entity("old", Urgency.LIGHT, due_date=TODAY - timedelta(days=7)),
            entity("older", Urgency.NORMAL, due_date=TODAY - timedelta(days=9)),
        ]
        view = build_list_view(items, TODAY)
        assert ids(view.overdue) == ["older", "old"]
        assert ids(view.future) == ["soon-urgent", "soon-light", "late-light"]

    def test_undated_items_by_urgency_rank(self):
        items = [entity("l", Urgency.LIGHT), entity("n", Urgency.NORMAL), entity("u", Urgency.URGENT)]
        assert ids(build_list_view(items, TODAY).no_date) == ["u", "n", "l"]

    def test_completed_most_recent_first(self):
        items = [
            entity("first", completed=True, updated_at=datetime(2025, 3, 9, 8, 0)),
            entity("last", completed=True, updated_at=datetime(2025, 3, 10, 8, 0)),
        ]
        assert ids(build_list_view(items, TODAY).completed) == ["last", "first"]

    def test_empty(self):
        view = build_list_view([], TODAY)
        assert view.active() == [] and view.completed == []


class TestCalendar:
    def test_days_with_events_ignore_completed(self, scenario):
        assert days_with_events(scenario) == {YESTERDAY, TODAY, TOMORROW}
        only_done = [entity("E", due_date=TODAY, completed=True)]
        assert has_event(only_done, TODAY) is False

    def test_items_for_day_timed_first(self):
        items = [
            entity("untimed-light", Urgency.LIGHT, due_date=TODAY),
            entity("afternoon", Urgency.LIGHT, due_date=TODAY, due_time="14:30"),
            entity("untimed-urgent", Urgency.URGENT, due_date=TODAY),
            entity("morning", Urgency.NORMAL, due_date=TODAY, due_time="09:00", completed=True),
            entity("other-day", Urgency.URGENT, due_date=TOMORROW, due_time="08:00"),
        ]
        assert ids(items_for_day(items, TODAY)) == ["morning", "afternoon", "untimed-urgent", "untimed-light"]

    def test_month_grid(self, scenario):
        weeks = build_calendar_month(scenario, 2025, 3, TODAY, selected=TOMORROW)
        assert len(weeks) == 6
        assert all(len(week) == 7 for week in weeks)
        first = weeks[0][0]
        assert first.date == date(2025, 2, 23)
        assert first.in_month is False
        assert weeks[-1][-1].date == date(2025, 4, 5)

        cells = {cell.date: cell for week in weeks for cell in week}
        assert cells[TODAY].is_today and cells[TODAY].has_event
        assert cells[TOMORROW].is_selected and cells[TOMORROW].day == 11
        assert not cells[date(2025, 3, 20)].has_event
        assert cells[date(2025, 3, 1)].in_month

    def test_default_postpone_date(self):
        assert default_postpone_date(entity("x", due_date=date(2025, 2, 28)), TODAY) == date(2025, 3, 1)
        assert default_postpone_date(entity("x"), TODAY) == TOMORROW
