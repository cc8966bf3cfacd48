from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_scheduler
from ..scheduler import PendingNotification, ReminderScheduler
from ..schemas import AgendaItemOut, PendingNotificationOut

router = APIRouter(
    prefix="/api/v1/notifications",
    tags=["notifications"],
)

_NOT_PENDING = "No pending notification for this item"


def _out(pending: PendingNotification) -> PendingNotificationOut:
    return PendingNotificationOut(item=AgendaItemOut(**pending.item), fired_at=pending.fired_at)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[PendingNotificationOut],
    summary="Pending notifications",
    description="Reminders fired this session and not yet resolved, in arrival order.",
)
def list_pending(scheduler: ReminderScheduler = Depends(get_scheduler)) -> List[PendingNotificationOut]:
    """
    List pending notifications in arrival order.
    """
    return [_out(p) for p in scheduler.pending()]


# PUBLIC_INTERFACE
@router.get(
    "/current",
    response_model=Optional[PendingNotificationOut],
    summary="Current notification",
    description=(
        "The reminder to present now (head of the queue), or null. It stays current until "
        "it is dismissed or completed."
    ),
)
def current_notification(
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> Optional[PendingNotificationOut]:
    """
    Return the notification to present now, if any.
    """
    pending = scheduler.current()
    return _out(pending) if pending else None


# PUBLIC_INTERFACE
@router.post(
    "/scan",
    response_model=List[AgendaItemOut],
    summary="Run a reminder scan",
    description="Run one scheduler tick now and return the items it queued.",
)
def scan_now(scheduler: ReminderScheduler = Depends(get_scheduler)) -> List[AgendaItemOut]:
    """
    Run one reminder scan immediately.
    """
    return [AgendaItemOut(**item) for item in scheduler.scan()]


# PUBLIC_INTERFACE
@router.post(
    "/{item_id}/dismiss",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Dismiss notification",
    description="Remove the reminder from the queue without touching the item. It will not fire again this session.",
    responses={404: {"description": "Item has no pending notification"}},
)
def dismiss_notification(item_id: str, scheduler: ReminderScheduler = Depends(get_scheduler)) -> None:
    """
    Dismiss a pending notification for the rest of the session.
    """
    if not scheduler.is_pending(item_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_PENDING)
    scheduler.dismiss(item_id)
    return None


# PUBLIC_INTERFACE
@router.post(
    "/{item_id}/complete",
    response_model=AgendaItemOut,
    summary="Complete from notification",
    description="Mark the item completed, then dismiss its reminder.",
    responses={404: {"description": "Item has no pending notification"}},
)
def complete_notification(item_id: str, scheduler: ReminderScheduler = Depends(get_scheduler)) -> AgendaItemOut:
    """
    Complete the item behind a pending notification.
    """
    if not scheduler.is_pending(item_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_PENDING)
    updated = scheduler.complete(item_id)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Agenda item not found")
    return AgendaItemOut(**updated)
