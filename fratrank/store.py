"""
Entity store abstraction with in-memory and local key/value implementations.

Records are flat dicts keyed by entity (table) name. Every record carries an
``id`` and a ``created_at`` timestamp assigned by the store. The SQL-backed
implementation lives in ``fratrank.db``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import uuid
from datetime import datetime, timezone
from functools import cmp_to_key
from typing import Any, Dict, Iterable, Optional, Protocol

from fratrank.errors import StorageQuotaExceeded

logger = logging.getLogger(__name__)

ENTITIES = (
    "campuses",
    "fraternities",
    "parties",
    "party_ratings",
    "reputation_ratings",
    "party_comments",
    "fraternity_comments",
    "party_comment_votes",
    "fraternity_comment_votes",
    "chat_messages",
    "chat_message_votes",
    "party_photos",
    "party_photo_votes",
    "party_attendances",
    "move_votes",
    "move_suggestions",
    "content_reports",
    "user_points_history",
    "user_streaks",
)

LOCAL_KEY_PREFIX = "fratrank_"

Record = Dict[str, Any]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(value: datetime) -> str:
    """Serialize a datetime as UTC ISO-8601 with a fixed width."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class EntityStore(Protocol):
    """CRUD operations the domain modules need from persistence."""

    def list(self, entity: str, sort_by: Optional[str] = None) -> list[Record]:
        ...

    def filter(
        self, entity: str, filters: dict, sort_by: Optional[str] = None
    ) -> list[Record]:
        ...

    def get(self, entity: str, record_id: str) -> Optional[Record]:
        ...

    def create(self, entity: str, data: dict) -> Record:
        ...

    def update(self, entity: str, record_id: str, changes: dict) -> Optional[Record]:
        ...

    def delete(self, entity: str, record_id: str) -> bool:
        ...


def _check_entity(entity: str) -> None:
    if entity not in ENTITIES:
        raise ValueError(f"Unknown entity: {entity}")


def _compare(a: Any, b: Any) -> int:
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return (a > b) - (a < b)
    sa, sb = str(a), str(b)
    return (sa > sb) - (sa < sb)


def sort_records(records: list[Record], sort_by: Optional[str]) -> list[Record]:
    """
    Sort by ``field`` or ``-field``. Numbers compare numerically, everything
    else as strings; records missing the field go last.
    """
    if not sort_by:
        return records
    desc = sort_by.startswith("-")
    field = sort_by[1:] if desc else sort_by
    present = [r for r in records if r.get(field) is not None]
    missing = [r for r in records if r.get(field) is None]
    present.sort(
        key=cmp_to_key(lambda x, y: _compare(x[field], y[field])), reverse=desc
    )
    return present + missing


def match_filters(records: Iterable[Record], filters: dict) -> list[Record]:
    active = {k: v for k, v in filters.items() if v is not None}
    return [r for r in records if all(r.get(k) == v for k, v in active.items())]


def new_record(data: dict) -> Record:
    record = dict(data)
    record["id"] = str(uuid.uuid4())
    record["created_at"] = to_timestamp(utc_now())
    return record


class InMemoryEntityStore:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.records: Dict[str, list[Record]] = {name: [] for name in ENTITIES}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        for records in self.records.values():
            records.clear()

    def list(self, entity: str, sort_by: Optional[str] = None) -> list[Record]:
        _check_entity(entity)
        return sort_records([dict(r) for r in self.records[entity]], sort_by)

    def filter(
        self, entity: str, filters: dict, sort_by: Optional[str] = None
    ) -> list[Record]:
        _check_entity(entity)
        matched = match_filters(self.records[entity], filters)
        return sort_records([dict(r) for r in matched], sort_by)

    def get(self, entity: str, record_id: str) -> Optional[Record]:
        _check_entity(entity)
        for record in self.records[entity]:
            if record["id"] == record_id:
                return dict(record)
        return None

    def create(self, entity: str, data: dict) -> Record:
        _check_entity(entity)
        record = new_record(data)
        self.records[entity].append(record)
        return dict(record)

    def update(self, entity: str, record_id: str, changes: dict) -> Optional[Record]:
        _check_entity(entity)
        for record in self.records[entity]:
            if record["id"] == record_id:
                record.update({k: v for k, v in changes.items() if k != "id"})
                return dict(record)
        return None

    def delete(self, entity: str, record_id: str) -> bool:
        _check_entity(entity)
        records = self.records[entity]
        for index, record in enumerate(records):
            if record["id"] == record_id:
                del records[index]
                return True
        return False


class KeyValueBackend(Protocol):
    """String key/value persistence with an optional byte quota."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


def _size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class MemoryKeyValueBackend:
    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self.items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(_size(k, v) for k, v in self.items.items() if k != key)
            if used + _size(key, value) > self.quota_bytes:
                raise StorageQuotaExceeded(f"Quota exceeded writing {key}")
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class DirectoryKeyValueBackend:
    """One JSON file per key inside ``directory``."""

    def __init__(self, directory: str, quota_bytes: Optional[int] = None):
        self.directory = directory
        self.quota_bytes = quota_bytes
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def _used_bytes(self, exclude: str) -> int:
        total = 0
        for name in os.listdir(self.directory):
            if not name.endswith(".json") or name == f"{exclude}.json":
                continue
            key = name[: -len(".json")]
            total += len(key.encode("utf-8")) + os.path.getsize(
                os.path.join(self.directory, name)
            )
        return total

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            if self._used_bytes(key) + _size(key, value) > self.quota_bytes:
                raise StorageQuotaExceeded(f"Quota exceeded writing {key}")
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=self.directory, suffix=".tmp", delete=False
        ) as f:
            f.write(value)
        os.replace(f.name, self._path(key))

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)


def evict_oldest(records: list[Record], keep_id: Optional[str] = None) -> list[Record]:
    """Keep the newest half of ``records`` (always including ``keep_id``)."""
    if not records:
        return records
    newest = sort_records(list(records), "-created_at")
    keep = max(1, len(records) // 2)
    kept_ids = {r["id"] for r in newest[:keep]}
    if keep_id:
        kept_ids.add(keep_id)
    return [r for r in records if r["id"] in kept_ids]


class LocalEntityStore:
    """
    Entity store serialising each entity as a JSON list under
    ``fratrank_<entity>`` in a key/value backend, like the browser mock client.

    A quota failure evicts the oldest half of that entity's records and
    retries the write once. Each read-modify-write cycle holds a re-entrant
    lock so concurrent request threads do not overwrite each other.
    """

    def __init__(self, backend: KeyValueBackend):
        self.backend = backend
        self._lock = threading.RLock()

    def _key(self, entity: str) -> str:
        _check_entity(entity)
        return f"{LOCAL_KEY_PREFIX}{entity}"

    def _get_all(self, entity: str) -> list[Record]:
        with self._lock:
            data = self.backend.get_item(self._key(entity))
        return json.loads(data) if data else []

    def _save_all(
        self, entity: str, records: list[Record], keep_id: Optional[str] = None
    ) -> list[Record]:
        key = self._key(entity)
        try:
            self.backend.set_item(key, json.dumps(records))
            return records
        except StorageQuotaExceeded:
            trimmed = evict_oldest(records, keep_id)
            logger.warning(
                "Local store quota exceeded for %s; evicting %d of %d records",
                key,
                len(records) - len(trimmed),
                len(records),
            )
            self.backend.set_item(key, json.dumps(trimmed))
            return trimmed

    def list(self, entity: str, sort_by: Optional[str] = None) -> list[Record]:
        return sort_records(self._get_all(entity), sort_by)

    def filter(
        self, entity: str, filters: dict, sort_by: Optional[str] = None
    ) -> list[Record]:
        return sort_records(match_filters(self._get_all(entity), filters), sort_by)

    def get(self, entity: str, record_id: str) -> Optional[Record]:
        for record in self._get_all(entity):
            if record["id"] == record_id:
                return record
        return None

    def create(self, entity: str, data: dict) -> Record:
        with self._lock:
            records = self._get_all(entity)
            record = new_record(data)
            records.append(record)
            self._save_all(entity, records, keep_id=record["id"])
        return record

    def update(self, entity: str, record_id: str, changes: dict) -> Optional[Record]:
        with self._lock:
            records = self._get_all(entity)
            for index, record in enumerate(records):
                if record["id"] == record_id:
                    merged = {**record, **{k: v for k, v in changes.items() if k != "id"}}
                    records[index] = merged
                    self._save_all(entity, records, keep_id=record_id)
                    return merged
        return None

    def delete(self, entity: str, record_id: str) -> bool:
        with self._lock:
            records = self._get_all(entity)
            remaining = [r for r in records if r["id"] != record_id]
            if len(remaining) == len(records):
                return False
            self._save_all(entity, remaining)
        return True

    def clear(self) -> None:
        with self._lock:
            for entity in ENTITIES:
                self.backend.remove_item(self._key(entity))
