"""Display helpers for events, categories and creators."""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

from eventsync.models.entities import Category, EntityId, Event, User

UNKNOWN_USER = "Unknown User"
MAPS_URL = "https://maps.google.com/?q="


def category_name(categories: Optional[Iterable[Category]], category_id: EntityId) -> str:
    """Name of a category, or a placeholder when it is not known."""
    for category in categories or ():
        if str(category.id) == str(category_id):
            return category.name
    return f"Category {category_id}"


def category_names(categories: Optional[Iterable[Category]], event: Event) -> List[str]:
    categories = list(categories or ())
    return [category_name(categories, category_id) for category_id in event.category_ids]


def creator_name(users: Optional[Iterable[User]], created_by: Optional[EntityId]) -> str:
    """Resolve ``createdBy`` to a display name.

    Older records store the creator's name instead of an id, so both are
    matched.
    """
    if created_by is None:
        return UNKNOWN_USER
    for user in users or ():
        if str(user.id) == str(created_by) or user.name == created_by:
            return user.name
    return UNKNOWN_USER


def format_event_datetime(start_time: datetime, end_time: datetime) -> Dict[str, str]:
    """Format an event's schedule as ``{"date": "MM/DD/YY", "time": "hh:mm AM - hh:mm PM"}``.

    Times are shown in the timezone they carry.
    """
    return {
        "date": start_time.strftime("%m/%d/%y"),
        "time": f"{start_time.strftime('%I:%M %p')} - {end_time.strftime('%I:%M %p')}",
    }


def maps_url(location: str) -> str:
    return MAPS_URL + quote(location, safe="")


def event_summary(
    event: Event,
    categories: Optional[Iterable[Category]] = None,
    users: Optional[Iterable[User]] = None,
) -> Dict[str, Any]:
    """Flatten an event into the fields shown on its card and detail page."""
    summary: Dict[str, Any] = {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "image": event.image,
        "location": event.location,
        "categories": category_names(categories, event),
        "created_by": creator_name(users, event.created_by),
    }
    if event.start_time is not None and event.end_time is not None:
        summary.update(format_event_datetime(event.start_time, event.end_time))
    if event.location:
        summary["maps_url"] = maps_url(event.location)
    return summary
