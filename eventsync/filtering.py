"""Filtering of the event list by search text and category."""

from collections.abc import Mapping
from typing import Any, Iterable, List, Set

from eventsync.models.entities import FilterCriteria, coerce_category_ids

# (model attribute, JSON key)
_SEARCHABLE_FIELDS = (("title", "title"), ("description", "description"))


def _field(event: Any, attribute: str, key: str) -> Any:
    if isinstance(event, Mapping):
        return event.get(key)
    return getattr(event, attribute, None)


def event_category_keys(event: Any) -> Set[str]:
    """Category ids of an event as strings; malformed ids give an empty set."""
    raw = _field(event, "category_ids", "categoryIds")
    return {str(category_id) for category_id in coerce_category_ids(raw)}


def matches_search(event: Any, search_text: str) -> bool:
    needle = search_text.lower()
    if not needle:
        return True
    for attribute, key in _SEARCHABLE_FIELDS:
        value = _field(event, attribute, key)
        if isinstance(value, str) and needle in value.lower():
            return True
    return False


def matches_categories(event: Any, selected: Iterable[str]) -> bool:
    selected = set(selected)
    if not selected:
        return True
    return not event_category_keys(event).isdisjoint(selected)


def filter_events(events: Iterable[Any], criteria: FilterCriteria) -> List[Any]:
    """Return the events matching ``criteria``, in their original order.

    Accepts :class:`~eventsync.models.entities.Event` models or raw JSON
    records. Pure: the input is not modified.
    """
    return [
        event
        for event in events
        if event is not None
        and matches_search(event, criteria.search_text)
        and matches_categories(event, criteria.selected_category_ids)
    ]
