"""Client-side event data layer: REST store, entity cache, filtering and mutations."""

from .browser import CancellationToken, EventBrowser
from .cache import EntityCache
from .errors import ApiError, EventSyncError, NetworkError, ValidationError, describe_error
from .filtering import filter_events
from .models.config import EventSyncConfig
from .models.entities import Category, Entity, Event, EventDraft, FilterCriteria, User
from .mutations import DeleteOutcome, MutationCoordinator, MutationState
from .remote_store import RemoteStoreClient
from .session import Session

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "CancellationToken",
    "Category",
    "DeleteOutcome",
    "Entity",
    "EntityCache",
    "Event",
    "EventBrowser",
    "EventDraft",
    "EventSyncConfig",
    "EventSyncError",
    "FilterCriteria",
    "MutationCoordinator",
    "MutationState",
    "NetworkError",
    "RemoteStoreClient",
    "Session",
    "User",
    "ValidationError",
    "describe_error",
    "filter_events",
]
