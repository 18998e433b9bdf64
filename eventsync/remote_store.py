"""Async REST client for the events backend."""

from typing import Any, Dict, List, Optional

import httpx
import pydantic
import structlog

from eventsync.errors import ApiError, NetworkError
from eventsync.models.config import EventSyncConfig
from eventsync.models.entities import Entity, EntityId

logger = structlog.get_logger(__name__)


class RemoteStoreClient:
    """Client for the events REST backend.

    One coroutine per (entity, verb) pair. Transport failures raise
    :class:`NetworkError`, non-2xx answers raise :class:`ApiError`.
    Nothing is retried; callers decide whether to try again.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Root URL of the backend (e.g., "http://localhost:3000")
            timeout: Request timeout in seconds, used when the client owns its
                HTTP session
            client: Optional pre-built ``httpx.AsyncClient``; it is used as-is
                and left open by :meth:`aclose`
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}
        self._client = client
        self._owns_client = client is None
        self.logger = logger.bind(component="remote_store")

    @classmethod
    def from_config(cls, config: EventSyncConfig) -> "RemoteStoreClient":
        return cls(base_url=config.base_url, timeout=config.request_timeout)

    async def __aenter__(self) -> "RemoteStoreClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _url(self, entity: Entity, entity_id: Optional[EntityId] = None) -> str:
        path = f"/{entity.value}"
        if entity_id is not None:
            path = f"{path}/{entity_id}"
        return f"{self.base_url}{path}"

    async def _request(
        self,
        method: str,
        entity: Entity,
        entity_id: Optional[EntityId] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        url = self._url(entity, entity_id)
        self.logger.debug("Sending request", method=method, url=url)
        try:
            response = await self._http().request(method, url, json=body, headers=self.headers)
        except httpx.TransportError as e:
            self.logger.error("Backend unreachable", method=method, url=url, error=str(e))
            raise NetworkError(f"{method} {url} failed: {e}", cause=e) from e

        if not response.is_success:
            self.logger.warning(
                "Backend rejected request",
                method=method,
                url=url,
                status_code=response.status_code,
            )
            reason = response.reason_phrase or "request failed"
            raise ApiError(response.status_code, f"{method} {url}: {reason}")
        return response

    def _json(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(response.status_code, f"Invalid JSON in response: {e}") from e

    def _decode(self, entity: Entity, data: Any, status: int):
        try:
            return entity.model.model_validate(data)
        except pydantic.ValidationError as e:
            self.logger.error("Unexpected record shape", entity=entity.value, error=str(e))
            raise ApiError(status, f"Unexpected {entity.value} record: {e}") from e

    async def list(self, entity: Entity) -> List[Any]:
        """Fetch every record of a collection, in server order."""
        response = await self._request("GET", entity)
        data = self._json(response)
        if not isinstance(data, list):
            raise ApiError(response.status_code, f"Expected a list of {entity.value}")
        records = [self._decode(entity, item, response.status_code) for item in data]
        self.logger.info("Fetched collection", entity=entity.value, count=len(records))
        return records

    async def get(self, entity: Entity, entity_id: EntityId):
        """Fetch a single record."""
        response = await self._request("GET", entity, entity_id)
        return self._decode(entity, self._json(response), response.status_code)

    async def create(self, entity: Entity, payload: Dict[str, Any]):
        """Create a record and return it as stored (with its new id)."""
        response = await self._request("POST", entity, body=payload)
        record = self._decode(entity, self._json(response), response.status_code)
        self.logger.info("Record created", entity=entity.value, id=getattr(record, "id", None))
        return record

    async def update(self, entity: Entity, entity_id: EntityId, payload: Dict[str, Any]):
        """Replace a record (PUT semantics) and return the stored version."""
        response = await self._request("PUT", entity, entity_id, body=payload)
        record = self._decode(entity, self._json(response), response.status_code)
        self.logger.info("Record updated", entity=entity.value, id=entity_id)
        return record

    async def delete(self, entity: Entity, entity_id: EntityId) -> None:
        """Delete a record. A 404 is reported as :class:`ApiError`."""
        await self._request("DELETE", entity, entity_id)
        self.logger.info("Record deleted", entity=entity.value, id=entity_id)
