"""Polling reminder scheduler for agenda items.

Every tick scans the store for items whose notification window is open and queues
them as pending notifications. Each item fires at most once per session: ids already
pending or dismissed are skipped until the scheduler is reset (a process restart).
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import RLock
from typing import Callable, List, Optional, Set

from loguru import logger

from .models import AgendaItemEntity, parse_due_time
from .settings import DEFAULT_POLL_INTERVAL_SECONDS
from .store import AgendaStore, Clock, StoreEvent


def due_instant(item: AgendaItemEntity) -> Optional[datetime]:
    """Combine due_date and due_time into one local datetime (zero seconds)."""
    if not item["due_date"] or not item["due_time"]:
        return None
    return datetime.combine(item["due_date"], parse_due_time(item["due_time"]))


# PUBLIC_INTERFACE
def is_due_for_notification(item: AgendaItemEntity, now: datetime) -> bool:
    """
    Return True if the item's reminder window contains now.

    - Items without both a due date and a due time, or already completed, never fire.
    - offset 0: fires only during the calendar minute of the due instant. A tick that
      skips that minute misses the reminder.
    - offset > 0: fires anywhere in [due - offset minutes, due], both ends included.
    """
    if item["is_completed"]:
        return False
    due = due_instant(item)
    if due is None:
        return False

    offset = item["notification_offset"] or 0
    if offset == 0:
        return (
            now.date() == due.date()
            and now.hour == due.hour
            and now.minute == due.minute
        )
    return due - timedelta(minutes=offset) <= now <= due


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class PendingNotification:
    item: AgendaItemEntity
    fired_at: datetime


@dataclass
class _QueueEntry:
    item_id: str
    fired_at: datetime


# PUBLIC_INTERFACE
class ReminderScheduler:
    """Scheduler owning the pending-notification queue and the session's dismissed ids.

    The queue keeps arrival order; consumers show its head first. Queue entries are
    resolved against the live store, so they always reflect the latest item state.
    """

    def __init__(
        self,
        store: AgendaStore,
        clock: Clock = datetime.now,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        """Initialize scheduler.

        Args:
            store: Agenda store to scan and to complete items through
            clock: Source of the current local datetime
            interval_seconds: How often the background loop scans
        """
        self._store = store
        self._clock = clock
        self._interval_seconds = interval_seconds
        self._lock = RLock()
        self._queue: List[_QueueEntry] = []
        self._dismissed: Set[str] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._running = False
        self._poll_task: Optional[asyncio.Task] = None

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def is_running(self) -> bool:
        return self._running

    def scan(self) -> List[AgendaItemEntity]:
        """Run one tick. Returns the items newly queued by this tick, in store order."""
        now = self._clock()
        fired: List[AgendaItemEntity] = []
        with self._lock:
            pending_ids = {entry.item_id for entry in self._queue}
            for item in self._store.items():
                if item["id"] in pending_ids or item["id"] in self._dismissed:
                    continue
                try:
                    if not is_due_for_notification(item, now):
                        continue
                except ValueError:
                    logger.warning("Agenda item {} has an invalid due_time {!r}", item["id"], item["due_time"])
                    continue
                self._queue.append(_QueueEntry(item_id=item["id"], fired_at=now))
                fired.append(item)

        if fired:
            logger.info("Queued {} reminder(s): {}", len(fired), ", ".join(i["id"] for i in fired))
        return fired

    def _resolve(self, entry: _QueueEntry) -> Optional[PendingNotification]:
        item = self._store.get(entry.item_id)
        if item is None:
            return None
        return PendingNotification(item=item, fired_at=entry.fired_at)

    def pending(self) -> List[PendingNotification]:
        with self._lock:
            entries = list(self._queue)
        return [p for p in (self._resolve(e) for e in entries) if p is not None]

    def current(self) -> Optional[PendingNotification]:
        """The notification to present now: the head of the queue."""
        pending = self.pending()
        return pending[0] if pending else None

    def is_pending(self, item_id: str) -> bool:
        with self._lock:
            return any(entry.item_id == item_id for entry in self._queue)

    def is_dismissed(self, item_id: str) -> bool:
        with self._lock:
            return item_id in self._dismissed

    def dismiss(self, item_id: str) -> bool:
        """Drop the item from the queue and suppress it for the rest of the session.

        Returns True if the item was pending.
        """
        with self._lock:
            before = len(self._queue)
            self._queue = [e for e in self._queue if e.item_id != item_id]
            self._dismissed.add(item_id)
            removed = len(self._queue) != before
        logger.debug("Reminder for {} dismissed", item_id)
        return removed

    def complete(self, item_id: str) -> Optional[AgendaItemEntity]:
        """Mark the item completed through the store, then dismiss its reminder."""
        updated = self._store.update(item_id, {"is_completed": True})
        self.dismiss(item_id)
        return updated

    def reset(self) -> None:
        """Forget the queue and dismissed ids, as a process restart does."""
        with self._lock:
            self._queue.clear()
            self._dismissed.clear()

    def attach(self) -> None:
        """Rescan on every store mutation and drop deleted items from the queue."""
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_store_event)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_store_event(self, event: StoreEvent) -> None:
        if event.action == "deleted":
            with self._lock:
                self._queue = [e for e in self._queue if e.item_id != event.item_id]
        self.scan()

    async def start(self) -> None:
        """Start the polling loop: scan now, then every interval_seconds."""
        if self._running:
            logger.warning("Reminder scheduler already running")
            return

        self._running = True
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info("Reminder scheduler started (interval {}s)", self._interval_seconds)

    async def stop(self) -> None:
        """Cancel the polling loop and wait for it to finish."""
        if not self._running:
            return

        self._running = False
        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

        logger.info("Reminder scheduler stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                self.scan()
            except Exception:
                logger.exception("Reminder scan failed")

            await asyncio.sleep(self._interval_seconds)
