"""Create/update/delete flows for events, with cache upkeep."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

import structlog

from eventsync.cache import EntityCache, SingleFlight
from eventsync.errors import ApiError, EventSyncError, ValidationError
from eventsync.models.entities import Entity, EntityId, Event, EventDraft, User

logger = structlog.get_logger(__name__)


class MutationState(str, Enum):
    """Lifecycle of a single mutation request."""

    IDLE = "idle"
    VALIDATING = "validating"
    RESOLVING = "resolving"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class MutationKind(str, Enum):
    CREATE_EVENT = "create_event"
    UPDATE_EVENT = "update_event"
    DELETE_EVENT = "delete_event"


@dataclass
class Mutation:
    """Progress record of one mutation request."""

    kind: MutationKind
    state: MutationState = MutationState.IDLE
    history: List[MutationState] = field(default_factory=lambda: [MutationState.IDLE])
    error: Optional[EventSyncError] = None

    def advance(self, state: MutationState) -> None:
        self.state = state
        self.history.append(state)

    def fail(self, error: EventSyncError) -> None:
        self.error = error
        self.advance(MutationState.FAILED)


@dataclass
class DeleteOutcome:
    """Result of deleting an event.

    ``event_deleted`` is False when the event was already gone (404).
    """

    event_deleted: bool
    user_deleted: bool = False


def _times_error(start: datetime, end: datetime) -> Optional[str]:
    try:
        if end <= start:
            return "End time must be after start time"
    except TypeError:
        return "Start and end time must both include (or both omit) a timezone"
    return None


def validate_draft(draft: EventDraft) -> None:
    """Check an event draft, raising ValidationError listing every bad field."""
    errors: Dict[str, str] = {}

    if not draft.title.strip():
        errors["title"] = "Title is required"
    if not draft.created_by.strip():
        errors["created_by"] = "Creator name is required"

    if draft.start_time is None:
        errors["start_time"] = "Start time is required"
    if draft.end_time is None:
        errors["end_time"] = "End time is required"
    if draft.start_time is not None and draft.end_time is not None:
        message = _times_error(draft.start_time, draft.end_time)
        if message:
            errors["end_time"] = message

    if not draft.category_ids:
        errors["category_ids"] = "Please select at least one category"

    if errors:
        raise ValidationError(errors)


class MutationCoordinator:
    """Runs event mutations against the backend and keeps the cache in step.

    Cache entries are only touched after the backend confirmed the write;
    a failed mutation leaves the cache as it was.
    """

    def __init__(self, store, cache: EntityCache, cascade_user_delete: bool = True):
        """
        Initialize the coordinator.

        Args:
            store: RemoteStore client
            cache: Session entity cache
            cascade_user_delete: Also delete the creator's user record when
                deleting an event
        """
        self.store = store
        self.cache = cache
        self.cascade_user_delete = cascade_user_delete
        self.last_mutation: Optional[Mutation] = None
        self._user_lookups = SingleFlight()
        self.logger = logger.bind(component="mutation_coordinator")

    def _begin(self, kind: MutationKind) -> Mutation:
        mutation = Mutation(kind=kind)
        self.last_mutation = mutation
        return mutation

    def _failed(self, mutation: Mutation, error: EventSyncError) -> None:
        mutation.fail(error)
        self.logger.warning("Mutation failed", kind=mutation.kind.value, error=str(error))

    async def find_or_create_user(self, name: str) -> User:
        """Return the user with exactly this name, creating it if absent.

        Concurrent lookups of the same name share one request. Two clients
        racing on the same name can still create duplicates.
        """
        if not name or not name.strip():
            raise ValidationError({"created_by": "Creator name is required"})
        return await self._user_lookups.do(name, lambda: self._find_or_create_user(name))

    async def _find_or_create_user(self, name: str) -> User:
        users = await self.store.list(Entity.USERS)
        for user in users:
            if user.name == name:
                return user
        user = await self.store.create(Entity.USERS, {"name": name})
        self.cache.set_entry(Entity.USERS, user.id, user)
        self.logger.info("User created", user_id=user.id)
        return user

    async def create_event(self, draft: EventDraft) -> Event:
        """Validate, resolve the creator and create the event."""
        mutation = self._begin(MutationKind.CREATE_EVENT)
        try:
            mutation.advance(MutationState.VALIDATING)
            validate_draft(draft)
            mutation.advance(MutationState.RESOLVING)
            user = await self.find_or_create_user(draft.created_by)
            mutation.advance(MutationState.SUBMITTING)
            created = await self.store.create(Entity.EVENTS, draft.to_event(user.id).to_payload())
        except EventSyncError as e:
            self._failed(mutation, e)
            raise

        self.cache.invalidate(Entity.EVENTS)
        mutation.advance(MutationState.SUCCEEDED)
        self.logger.info("Event created", event_id=created.id, title=created.title)
        return created

    async def update_event(self, event_id: EntityId, draft: EventDraft) -> Event:
        """Validate and replace an event with the full record from ``draft``."""
        mutation = self._begin(MutationKind.UPDATE_EVENT)
        try:
            mutation.advance(MutationState.VALIDATING)
            validate_draft(draft)
            mutation.advance(MutationState.RESOLVING)
            user = await self.find_or_create_user(draft.created_by)
            mutation.advance(MutationState.SUBMITTING)
            event = draft.to_event(user.id, event_id=event_id)
            updated = await self.store.update(Entity.EVENTS, event_id, event.to_payload(include_id=True))
        except EventSyncError as e:
            self._failed(mutation, e)
            raise

        self.cache.set_entry(Entity.EVENTS, event_id, updated)
        self.cache.invalidate(Entity.USERS)
        mutation.advance(MutationState.SUCCEEDED)
        self.logger.info("Event updated", event_id=event_id)
        return updated

    async def delete_event(self, event_id: EntityId, created_by: Optional[EntityId] = None) -> DeleteOutcome:
        """Delete an event, then (if cascading) its creator's user record.

        An event that is already gone counts as deleted. Failing to delete
        the user is logged and does not fail the operation.
        """
        mutation = self._begin(MutationKind.DELETE_EVENT)
        mutation.advance(MutationState.SUBMITTING)
        try:
            await self.store.delete(Entity.EVENTS, event_id)
            outcome = DeleteOutcome(event_deleted=True)
        except ApiError as e:
            if not e.is_not_found:
                self._failed(mutation, e)
                raise
            self.logger.info("Event already absent, treating delete as done", event_id=event_id)
            outcome = DeleteOutcome(event_deleted=False)
        except EventSyncError as e:
            self._failed(mutation, e)
            raise

        if self.cascade_user_delete and created_by is not None:
            try:
                await self.store.delete(Entity.USERS, created_by)
                outcome.user_deleted = True
            except EventSyncError as e:
                self.logger.warning("Could not delete event creator", user_id=created_by, error=str(e))

        self.cache.remove_entry(Entity.EVENTS, event_id)
        self.cache.invalidate(Entity.EVENTS)
        if outcome.user_deleted:
            self.cache.remove_entry(Entity.USERS, created_by)
            self.cache.invalidate(Entity.USERS)
        mutation.advance(MutationState.SUCCEEDED)
        self.logger.info("Event deleted", event_id=event_id, user_deleted=outcome.user_deleted)
        return outcome
