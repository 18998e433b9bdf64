"""In-memory entity cache with single-flight fetches."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional, Tuple

import structlog

from eventsync.models.entities import Entity, EntityId

logger = structlog.get_logger(__name__)

CacheKey = Tuple[Entity, Optional[str]]


def _id_key(entity_id: EntityId) -> str:
    # Ids arrive as ints from the backend and as strings from routes/CLI.
    return str(entity_id)


class SingleFlight:
    """Collapse concurrent calls for the same key into one running task.

    Every caller awaiting a key receives the shared result (or exception).
    A waiter that gets cancelled does not cancel the shared task.
    """

    def __init__(self):
        self._tasks: Dict[Hashable, asyncio.Future] = {}

    def in_flight(self, key: Hashable) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    async def do(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        task = self._tasks.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda t, key=key: self._forget(key, t))
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Future) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if not task.cancelled():
            # Mark retrieved; waiters that are still around re-raise it themselves.
            task.exception()


@dataclass
class CacheEntry:
    """Cached records keyed by id, in server order."""

    items: Dict[str, Any] = field(default_factory=dict)
    stale: bool = False
    fetched_at: Optional[datetime] = None

    def snapshot(self) -> List[Any]:
        return list(self.items.values())


class EntityCache:
    """Per-session cache of the backend collections.

    Collection entries are keyed by entity; single-record entries (the
    detail view) by ``(entity, id)``. Stale entries are refetched on the
    next read. Fetches for the same key never run concurrently.
    """

    def __init__(self, store):
        """
        Initialize the cache.

        Args:
            store: RemoteStore client used to (re)fetch entries
        """
        self.store = store
        self._entries: Dict[CacheKey, CacheEntry] = {}
        # Bumped by invalidate/set_entry so a fetch already in flight lands stale.
        self._generations: Dict[CacheKey, int] = {}
        self._flights = SingleFlight()
        self.logger = logger.bind(component="entity_cache")

    def _generation(self, key: CacheKey) -> int:
        return self._generations.get(key, 0)

    def _bump(self, key: CacheKey) -> None:
        self._generations[key] = self._generation(key) + 1

    def _fresh(self, key: CacheKey) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None or entry.stale:
            return None
        return entry

    def _store_entry(self, key: CacheKey, items: Dict[str, Any], generation: int) -> CacheEntry:
        entry = CacheEntry(
            items=items,
            stale=self._generation(key) != generation,
            fetched_at=datetime.now(timezone.utc),
        )
        current = self._entries.get(key)
        # A superseded fetch must not replace what a newer one stored.
        if not entry.stale or current is None or current.stale:
            self._entries[key] = entry
        return entry

    async def get_or_fetch(self, entity: Entity) -> List[Any]:
        """Return the cached collection, fetching it if missing or stale."""
        key: CacheKey = (entity, None)
        entry = self._fresh(key)
        if entry is not None:
            self.logger.debug("Cache hit", entity=entity.value)
            return entry.snapshot()
        # Reads after an invalidation never join a fetch started before it.
        generation = self._generation(key)
        if self._flights.in_flight((key, generation)):
            self.logger.debug("Joining in-flight fetch", entity=entity.value)
        return await self._flights.do((key, generation), lambda: self._fetch_collection(key, generation))

    async def _fetch_collection(self, key: CacheKey, generation: int) -> List[Any]:
        entity = key[0]
        records = await self.store.list(entity)
        entry = self._store_entry(key, {_id_key(record.id): record for record in records}, generation)
        self.logger.info("Collection cached", entity=entity.value, count=len(records), stale=entry.stale)
        return entry.snapshot()

    async def get_one_or_fetch(self, entity: Entity, entity_id: EntityId) -> Any:
        """Return one cached record, fetching it if missing or stale.

        A fresh collection entry that already holds the record is used
        instead of a separate request.
        """
        key: CacheKey = (entity, _id_key(entity_id))
        entry = self._fresh(key)
        if entry is not None:
            return entry.items[key[1]]
        collection = self._fresh((entity, None))
        if collection is not None and key[1] in collection.items:
            return collection.items[key[1]]
        generation = self._generation(key)
        return await self._flights.do((key, generation), lambda: self._fetch_one(key, entity_id, generation))

    async def _fetch_one(self, key: CacheKey, entity_id: EntityId, generation: int) -> Any:
        record = await self.store.get(key[0], entity_id)
        self._store_entry(key, {key[1]: record}, generation)
        return record

    def peek(self, entity: Entity) -> Optional[List[Any]]:
        """Snapshot of the collection entry without fetching, stale or not."""
        entry = self._entries.get((entity, None))
        return entry.snapshot() if entry is not None else None

    def is_stale(self, entity: Entity, entity_id: Optional[EntityId] = None) -> bool:
        key: CacheKey = (entity, None if entity_id is None else _id_key(entity_id))
        return self._fresh(key) is None

    def invalidate(self, entity: Entity, entity_id: Optional[EntityId] = None) -> None:
        """Mark a collection (or one record) stale so the next read refetches."""
        key: CacheKey = (entity, None if entity_id is None else _id_key(entity_id))
        self._bump(key)
        entry = self._entries.get(key)
        if entry is not None:
            entry.stale = True
        self.logger.debug("Invalidated", entity=entity.value, id=entity_id)

    def set_entry(self, entity: Entity, entity_id: EntityId, value: Any) -> None:
        """Write a record locally after a successful mutation.

        Updates the record in place inside the collection entry (appending
        it when absent) and replaces the single-record entry.
        """
        record_id = _id_key(entity_id)
        collection_key: CacheKey = (entity, None)
        collection = self._entries.get(collection_key)
        if collection is not None:
            collection.items[record_id] = value
            self._bump(collection_key)

        record_key: CacheKey = (entity, record_id)
        self._bump(record_key)
        self._entries[record_key] = CacheEntry(
            items={record_id: value},
            fetched_at=datetime.now(timezone.utc),
        )
        self.logger.debug("Entry set", entity=entity.value, id=entity_id)

    def remove_entry(self, entity: Entity, entity_id: EntityId) -> None:
        """Drop a record locally after it was deleted remotely."""
        record_id = _id_key(entity_id)
        collection = self._entries.get((entity, None))
        if collection is not None:
            collection.items.pop(record_id, None)
        self._entries.pop((entity, record_id), None)
        self._bump((entity, record_id))

    def clear(self) -> None:
        self._entries.clear()
        self._generations.clear()
