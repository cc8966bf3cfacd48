from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from threading import RLock
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from loguru import logger

from .models import MUTABLE_FIELDS, AgendaItemEntity, Urgency
from .persistence import AgendaPersistence
from .schemas import AgendaItemCreate

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class ListQuery:
    """
    Query parameters for the flat item listing.
    """
    limit: int = 50
    offset: int = 0
    completed: Optional[bool] = None
    urgency: Optional[Urgency] = None
    search: Optional[str] = None
    sort: str = "-created_at"  # allowed: created_at, updated_at, due_date (prefix '-' for desc)


SORT_FIELDS = {"created_at", "updated_at", "due_date"}


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class StoreEvent:
    """Published after every successful mutation. action is added, updated or deleted."""

    action: str
    item_id: str


Subscriber = Callable[[StoreEvent], None]


# PUBLIC_INTERFACE
class AgendaStore:
    """
    Authoritative in-memory collection of agenda items, in insertion order.

    The collection is loaded once from the persistence adapter at construction. Every
    successful mutation writes the full collection back and then notifies subscribers.
    A failed write is logged by the adapter; the in-memory state stays authoritative.
    The store trusts its callers: schedule invariants are enforced by the schemas.
    """

    def __init__(self, persistence: AgendaPersistence, clock: Clock = datetime.now) -> None:
        self._lock = RLock()
        self._persistence = persistence
        self._clock = clock
        self._items: Dict[str, AgendaItemEntity] = {}
        self._subscribers: List[Subscriber] = []
        for item in persistence.load():
            self._items[item["id"]] = item

    def _now(self) -> datetime:
        return self._clock()

    def _save(self) -> None:
        # Caller holds self._lock so snapshots reach the backend in mutation order.
        self._persistence.save(list(self._items.values()))

    def _publish(self, event: StoreEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Agenda subscriber failed on {} {}", event.action, event.item_id)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback for change events; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def add(self, data: AgendaItemCreate) -> AgendaItemEntity:
        now = self._now()
        entity: AgendaItemEntity = {
            "id": uuid.uuid4().hex,
            "title": data.title,
            "description": data.description,
            "is_completed": False,
            "urgency": data.urgency,
            "due_date": data.due_date,
            "due_time": data.due_time,
            "notification_offset": data.notification_offset,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
            self._save()
        logger.info("Agenda item {} added: {!r}", entity["id"], entity["title"])
        self._publish(StoreEvent(action="added", item_id=entity["id"]))
        return entity.copy()

    def quick_add(self, title: str) -> AgendaItemEntity:
        return self.add(AgendaItemCreate(title=title))

    def get(self, item_id: str) -> Optional[AgendaItemEntity]:
        with self._lock:
            item = self._items.get(item_id)
            return None if item is None else item.copy()

    def _apply(self, item_id: str, changes: Mapping[str, Any]) -> Optional[AgendaItemEntity]:
        # Caller holds self._lock.
        existing = self._items.get(item_id)
        if existing is None:
            return None

        updated = existing.copy()
        for field, value in changes.items():
            if field in MUTABLE_FIELDS:
                updated[field] = value  # type: ignore[literal-required]
        updated["updated_at"] = self._now()
        self._items[item_id] = updated
        self._save()
        return updated.copy()

    def update(self, item_id: str, changes: Mapping[str, Any]) -> Optional[AgendaItemEntity]:
        """Merge changes into the item and refresh updated_at. Returns None if the id is unknown."""
        with self._lock:
            updated = self._apply(item_id, changes)
        if updated is not None:
            self._publish(StoreEvent(action="updated", item_id=item_id))
        return updated

    def delete(self, item_id: str) -> bool:
        with self._lock:
            removed = self._items.pop(item_id, None) is not None
            if removed:
                self._save()
        if removed:
            logger.info("Agenda item {} deleted", item_id)
            self._publish(StoreEvent(action="deleted", item_id=item_id))
        return removed

    def toggle_completion(self, item_id: str) -> Optional[AgendaItemEntity]:
        with self._lock:
            existing = self._items.get(item_id)
            if existing is None:
                return None
            updated = self._apply(item_id, {"is_completed": not existing["is_completed"]})
        self._publish(StoreEvent(action="updated", item_id=item_id))
        return updated

    def postpone(self, item_id: str, new_due_date: date) -> Optional[AgendaItemEntity]:
        """Move the item to a new due date; time, urgency and completion are untouched."""
        updated = self.update(item_id, {"due_date": new_due_date})
        if updated is not None:
            logger.info("Agenda item {} postponed to {}", item_id, new_due_date.isoformat())
        return updated

    def items(self) -> List[AgendaItemEntity]:
        with self._lock:
            return [t.copy() for t in self._items.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def list(self, query: Optional[ListQuery] = None) -> Tuple[List[AgendaItemEntity], int]:
        """
        Return a slice of items and the total count matching filters.
        - Filter by completed and urgency
        - Substring search across title and description (case-insensitive)
        - Sorting by created_at/updated_at/due_date (asc/desc); undated items sort last
        """
        q = query or ListQuery()
        items = self.items()

        if q.completed is not None:
            items = [t for t in items if t["is_completed"] == q.completed]

        if q.urgency is not None:
            items = [t for t in items if t["urgency"] == q.urgency]

        if q.search:
            s = q.search.lower()

            def matches(t: AgendaItemEntity) -> bool:
                title_ok = s in (t["title"] or "").lower()
                desc_ok = s in (t["description"] or "").lower()
                return title_ok or desc_ok

            items = [t for t in items if matches(t)]

        total = len(items)

        sort_key = q.sort.strip().lower() if q.sort else "-created_at"
        reverse = sort_key.startswith("-")
        field = sort_key[1:] if reverse else sort_key
        if field not in SORT_FIELDS:
            field = "created_at"
        if field == "due_date":
            dated = sorted((t for t in items if t["due_date"]), key=lambda t: t["due_date"], reverse=reverse)
            items_sorted = dated + [t for t in items if not t["due_date"]]
        else:
            items_sorted = sorted(items, key=lambda t: t[field], reverse=reverse)

        start = max(q.offset, 0)
        end = start + max(q.limit, 0)
        return items_sorted[start:end], total
