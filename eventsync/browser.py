"""State behind the event list: filter criteria and the visible events."""

from typing import Iterable, List, Optional

import structlog

from eventsync.cache import EntityCache
from eventsync.errors import EventSyncError
from eventsync.filtering import filter_events
from eventsync.models.entities import Category, EntityId, Entity, Event, FilterCriteria

logger = structlog.get_logger(__name__)


class CancellationToken:
    """Marks a pending request whose response should no longer be applied."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class EventBrowser:
    """Filterable view over the cached event collection.

    Each :meth:`refresh` owns a cancellation token. Changing the criteria,
    starting another refresh or closing the browser cancels it, and a
    cancelled refresh discards its response instead of replacing
    :attr:`visible`.
    """

    def __init__(self, cache: EntityCache):
        self.cache = cache
        self.criteria = FilterCriteria()
        self.visible: List[Event] = []
        self._pending: Optional[CancellationToken] = None
        self.logger = logger.bind(component="event_browser")

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def set_criteria(self, criteria: FilterCriteria) -> None:
        if criteria != self.criteria:
            self._cancel_pending()
        self.criteria = criteria

    def set_search(self, text: str) -> None:
        self.set_criteria(self.criteria.with_search(text))

    def set_categories(self, category_ids: Iterable[EntityId]) -> None:
        self.set_criteria(self.criteria.with_categories(category_ids))

    def toggle_category(self, category_id: EntityId) -> None:
        self.set_criteria(self.criteria.toggle_category(category_id))

    def clear_filters(self) -> None:
        self.set_criteria(self.criteria.cleared())

    async def refresh(self) -> Optional[List[Event]]:
        """Load events through the cache and apply the current filter.

        Returns the new visible list, or None when the refresh was
        superseded before its response (or failure) arrived.
        """
        self._cancel_pending()
        token = CancellationToken()
        self._pending = token
        criteria = self.criteria

        try:
            events = await self.cache.get_or_fetch(Entity.EVENTS)
        except EventSyncError as e:
            if self._pending is token:
                self._pending = None
            if token.cancelled:
                self.logger.debug("Discarding superseded events failure", error=str(e))
                return None
            raise
        if token.cancelled:
            self.logger.debug("Discarding superseded events response")
            return None

        self._pending = None
        self.visible = filter_events(events, criteria)
        self.logger.debug("Events filtered", total=len(events), visible=len(self.visible))
        return self.visible

    async def categories(self) -> List[Category]:
        return await self.cache.get_or_fetch(Entity.CATEGORIES)

    def close(self) -> None:
        """Stop applying any response still in flight."""
        self._cancel_pending()
