from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import date, datetime
from threading import RLock
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from .models import LEGACY_URGENCY, AgendaItemEntity, Urgency, parse_due_time
from .settings import Settings


# PUBLIC_INTERFACE
class KeyValueStore(ABC):
    """Abstract contract for the durable record store backing the agenda."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the raw value stored under key, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value in one write."""


class InMemoryKeyValueStore(KeyValueStore):
    """
    Thread-safe in-memory key-value store suitable for testing and default runtime.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._lock = RLock()
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value


def _parse_timestamp(value: Any) -> datetime:
    s = str(value).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    parsed = datetime.fromisoformat(s)
    if parsed.tzinfo is not None:
        # Records written by the browser client are UTC; the agenda works in local time
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _parse_stored_due_date(value: Any) -> Optional[date]:
    """Parse a stored dueDate; anything that is not a valid calendar date becomes unset."""
    if not value:
        return None
    s = str(value).strip()
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return _parse_timestamp(s).date()
    except ValueError:
        logger.warning("Dropping invalid stored dueDate {!r}", value)
        return None


def _parse_stored_due_time(value: Any) -> Optional[str]:
    if not value:
        return None
    try:
        return parse_due_time(str(value)).strftime("%H:%M")
    except ValueError:
        logger.warning("Dropping invalid stored dueTime {!r}", value)
        return None


def _parse_urgency(value: Any) -> Urgency:
    if value in LEGACY_URGENCY:
        return LEGACY_URGENCY[value]
    try:
        return Urgency(value)
    except ValueError:
        logger.warning("Unknown stored urgency {!r}, using Normal", value)
        return Urgency.NORMAL


def _record_to_entity(record: Dict[str, Any]) -> AgendaItemEntity:
    due_date = _parse_stored_due_date(record.get("dueDate"))
    due_time = _parse_stored_due_time(record.get("dueTime")) if due_date else None
    offset = record.get("notificationOffset") or 0
    return {
        "id": str(record["id"]),
        "title": str(record.get("title") or ""),
        "description": record.get("description"),
        "is_completed": bool(record.get("isCompleted", False)),
        "urgency": _parse_urgency(record.get("urgency")),
        "due_date": due_date,
        "due_time": due_time,
        "notification_offset": int(offset) if due_time else 0,
        "created_at": _parse_timestamp(record["createdAt"]),
        "updated_at": _parse_timestamp(record["updatedAt"]),
    }


def _entity_to_record(item: AgendaItemEntity) -> Dict[str, Any]:
    return {
        "id": item["id"],
        "title": item["title"],
        "description": item["description"],
        "isCompleted": item["is_completed"],
        "urgency": item["urgency"].value,
        "dueDate": item["due_date"].isoformat() if item["due_date"] else None,
        "dueTime": item["due_time"],
        "notificationOffset": item["notification_offset"],
        "createdAt": item["created_at"].isoformat(),
        "updatedAt": item["updated_at"].isoformat(),
    }


# PUBLIC_INTERFACE
class AgendaPersistence:
    """
    Loads and saves the whole agenda collection as one JSON record.

    Dates are written as ISO-8601 strings (dueDate as YYYY-MM-DD, timestamps with full
    precision) and parsed back into date/datetime values on load. Neither operation
    raises: a missing or corrupt record loads as an empty agenda and a failed write is
    logged and reported as False.
    """

    def __init__(self, kv: KeyValueStore, key: str = "agenda_items") -> None:
        self._kv = kv
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> List[AgendaItemEntity]:
        try:
            raw = self._kv.get(self._key)
        except Exception:
            logger.exception("Failed to read agenda record {!r}", self._key)
            return []
        if not raw:
            return []

        try:
            data = json.loads(raw)
        except ValueError:
            logger.exception("Failed to parse agenda record {!r}", self._key)
            return []
        if not isinstance(data, list):
            logger.error("Agenda record {!r} is not a list, ignoring it", self._key)
            return []

        items: List[AgendaItemEntity] = []
        for record in data:
            try:
                items.append(_record_to_entity(record))
            except (KeyError, TypeError, ValueError, AttributeError):
                logger.warning("Skipping malformed agenda record: {!r}", record)
        logger.info("Loaded {} agenda items from {!r}", len(items), self._key)
        return items

    def save(self, items: Iterable[AgendaItemEntity]) -> bool:
        try:
            payload = json.dumps([_entity_to_record(i) for i in items], ensure_ascii=False)
            self._kv.set(self._key, payload)
        except Exception:
            logger.exception("Failed to save agenda record {!r}", self._key)
            return False
        return True


# PUBLIC_INTERFACE
def get_key_value_store(settings: Settings) -> KeyValueStore:
    """
    Factory to return the configured key-value backend based on settings.
    - memory: InMemoryKeyValueStore
    - sqlite: SQLiteKeyValueStore
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteKeyValueStore

        return SQLiteKeyValueStore(settings.sqlite_db_path)
    return InMemoryKeyValueStore()
