from __future__ import annotations

from datetime import date

from fastapi import Request

from .scheduler import ReminderScheduler
from .store import AgendaStore, Clock


def get_store(request: Request) -> AgendaStore:
    return request.app.state.store


def get_scheduler(request: Request) -> ReminderScheduler:
    return request.app.state.scheduler


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_today(request: Request) -> date:
    """Current local date according to the application clock."""
    return request.app.state.clock().date()
