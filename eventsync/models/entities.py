"""Entity models exchanged with the events backend."""

from datetime import datetime
from enum import Enum
from typing import Any, FrozenSet, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

EntityId = Union[int, str]


class Entity(str, Enum):
    """Remote collections exposed by the backend."""

    EVENTS = "events"
    CATEGORIES = "categories"
    USERS = "users"

    @property
    def model(self) -> type:
        """Model class records of this collection decode into."""
        return _ENTITY_MODELS[self]


def coerce_category_ids(value: Any) -> List[int]:
    """Turn whatever the backend or a form sent into a list of category ids.

    ``None``, non-list values and members that are not integers are dropped
    rather than rejected.
    """
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        return []
    ids = []
    for item in value:
        if isinstance(item, bool):
            continue
        try:
            ids.append(int(item))
        except (TypeError, ValueError):
            continue
    return ids


class Category(BaseModel):
    """Event category. Read-only from the client side."""

    id: EntityId
    name: str


class User(BaseModel):
    """Event creator."""

    id: EntityId
    name: str


class Event(BaseModel):
    """Event record as stored by the backend."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[EntityId] = None
    title: str = ""
    description: str = ""
    image: Optional[str] = None
    location: str = ""
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    created_by: Optional[EntityId] = Field(default=None, alias="createdBy")
    category_ids: List[int] = Field(default_factory=list, alias="categoryIds")

    @field_validator("title", "description", "location", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("category_ids", mode="before")
    @classmethod
    def _normalize_category_ids(cls, value: Any) -> List[int]:
        return coerce_category_ids(value)

    def to_payload(self, include_id: bool = False) -> dict:
        """Serialize to the JSON body the backend expects."""
        exclude = None if include_id else {"id"}
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


class EventDraft(BaseModel):
    """User-entered event form.

    Unlike :class:`Event`, ``created_by`` holds the creator's *name*; the
    mutation coordinator resolves it to a user id before submitting.
    Nothing here is validated beyond types, so the coordinator can report
    every violated field at once.
    """

    title: str = ""
    description: str = ""
    image: Optional[str] = None
    location: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    created_by: str = ""
    category_ids: List[int] = Field(default_factory=list)

    @field_validator("category_ids", mode="before")
    @classmethod
    def _normalize_category_ids(cls, value: Any) -> List[int]:
        return coerce_category_ids(value)

    @classmethod
    def from_event(cls, event: Event, creator_name: str = "") -> "EventDraft":
        """Prefill a draft from an existing event (edit form)."""
        return cls(
            title=event.title,
            description=event.description,
            image=event.image,
            location=event.location,
            start_time=event.start_time,
            end_time=event.end_time,
            created_by=creator_name,
            category_ids=event.category_ids,
        )

    def to_event(self, user_id: EntityId, event_id: Optional[EntityId] = None) -> Event:
        """Build the full event record for submission."""
        return Event(
            id=event_id,
            title=self.title,
            description=self.description,
            image=self.image,
            location=self.location,
            start_time=self.start_time,
            end_time=self.end_time,
            created_by=user_id,
            category_ids=self.category_ids,
        )


class FilterCriteria(BaseModel):
    """Current list filter: free-text search plus selected categories.

    Category ids are held as strings; the selection widgets hand them
    over that way and event ids are compared in the same form.
    """

    model_config = ConfigDict(frozen=True)

    search_text: str = ""
    selected_category_ids: FrozenSet[str] = frozenset()

    @field_validator("search_text", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("selected_category_ids", mode="before")
    @classmethod
    def _as_strings(cls, value: Any) -> FrozenSet[str]:
        if value is None:
            return frozenset()
        if isinstance(value, (str, int)):
            value = [value]
        return frozenset(str(item) for item in value)

    @property
    def is_empty(self) -> bool:
        return not self.search_text and not self.selected_category_ids

    def with_search(self, text: str) -> "FilterCriteria":
        return FilterCriteria(search_text=text, selected_category_ids=self.selected_category_ids)

    def with_categories(self, category_ids: Iterable[EntityId]) -> "FilterCriteria":
        return FilterCriteria(search_text=self.search_text, selected_category_ids=category_ids)

    def toggle_category(self, category_id: EntityId) -> "FilterCriteria":
        key = str(category_id)
        if key in self.selected_category_ids:
            selected = self.selected_category_ids - {key}
        else:
            selected = self.selected_category_ids | {key}
        return self.with_categories(selected)

    def cleared(self) -> "FilterCriteria":
        return FilterCriteria()


_ENTITY_MODELS = {
    Entity.EVENTS: Event,
    Entity.CATEGORIES: Category,
    Entity.USERS: User,
}
