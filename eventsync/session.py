"""Application session wiring the store, cache and coordinator together."""

from typing import Optional

import httpx
import structlog

from eventsync.browser import EventBrowser
from eventsync.cache import EntityCache
from eventsync.models.config import EventSyncConfig
from eventsync.mutations import MutationCoordinator
from eventsync.remote_store import RemoteStoreClient

logger = structlog.get_logger(__name__)


class Session:
    """Owns one store, one cache and one mutation coordinator.

    The cache lives exactly as long as the session; nothing is shared
    between sessions.
    """

    def __init__(self, config: Optional[EventSyncConfig] = None, client: Optional[httpx.AsyncClient] = None):
        self.config = config or EventSyncConfig()
        self.store = RemoteStoreClient(
            base_url=self.config.base_url,
            timeout=self.config.request_timeout,
            client=client,
        )
        self.cache = EntityCache(self.store)
        self.mutations = MutationCoordinator(
            self.store,
            self.cache,
            cascade_user_delete=self.config.cascade_user_delete,
        )
        self.logger = logger.bind(component="session")

    def browser(self) -> EventBrowser:
        return EventBrowser(self.cache)

    async def __aenter__(self) -> "Session":
        self.logger.debug("Session opened", base_url=self.config.base_url)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.cache.clear()
        await self.store.aclose()
        self.logger.debug("Session closed")
