"""Command-line front end for eventsync."""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

from eventsync.errors import ApiError, EventSyncError, describe_error
from eventsync.models.config import EventSyncConfig
from eventsync.models.entities import Entity, EventDraft
from eventsync.presentation import UNKNOWN_USER, creator_name, event_summary
from eventsync.session import Session

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging and quiet chatty third-party loggers."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    # Keep stdout for command output; structlog goes through the stderr handler.
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer(key_order=["event"])],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def _add_draft_arguments(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--title", required=required, help="Event title")
    parser.add_argument("--description", help="Event description")
    parser.add_argument("--image", help="Image URL")
    parser.add_argument("--location", help="Event location")
    parser.add_argument("--start", type=datetime.fromisoformat, required=required, help="Start time (ISO-8601)")
    parser.add_argument("--end", type=datetime.fromisoformat, required=required, help="End time (ISO-8601)")
    parser.add_argument("--created-by", required=required, help="Creator name")
    parser.add_argument(
        "--category",
        dest="categories",
        action="append",
        type=int,
        help="Category id (repeat for several)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eventsync", description="Browse and manage events")
    parser.add_argument("--base-url", help="Backend URL (default: from EVENTSYNC_BASE_URL)")
    parser.add_argument(
        "--output",
        choices=["json", "pretty"],
        default="pretty",
        help="Output format (json or pretty-printed)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List events")
    list_parser.add_argument("--search", default="", help="Search in title and description")
    list_parser.add_argument(
        "--category",
        dest="categories",
        action="append",
        default=[],
        help="Only events in this category (repeat for several)",
    )

    show_parser = subparsers.add_parser("show", help="Show one event")
    show_parser.add_argument("event_id")

    subparsers.add_parser("categories", help="List categories")

    create_parser = subparsers.add_parser("create", help="Create an event")
    _add_draft_arguments(create_parser, required=True)

    update_parser = subparsers.add_parser("update", help="Edit an event")
    update_parser.add_argument("event_id")
    _add_draft_arguments(update_parser, required=False)

    delete_parser = subparsers.add_parser("delete", help="Delete an event")
    delete_parser.add_argument("event_id")
    delete_parser.add_argument(
        "--creator-id",
        help="Creator user id, used when the event is already gone",
    )

    return parser


def draft_from_args(args: argparse.Namespace, base: Optional[EventDraft] = None) -> EventDraft:
    """Build a draft from CLI options, keeping ``base`` values for omitted ones."""
    values = base.model_dump() if base is not None else {}
    overrides = {
        "title": args.title,
        "description": args.description,
        "image": args.image,
        "location": args.location,
        "start_time": args.start,
        "end_time": args.end,
        "created_by": args.created_by,
        "category_ids": args.categories,
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return EventDraft(**values)


def print_events(summaries: List[Dict[str, Any]]) -> None:
    if not summaries:
        print("No events found")
        return
    for i, summary in enumerate(summaries, 1):
        print(f"\n{'=' * 50}")
        print(f"EVENT {i}: {summary['title']} (id {summary['id']})")
        print(f"{'=' * 50}")
        if summary["description"]:
            print(f"Description: {summary['description']}")
        if summary.get("date"):
            print(f"Date: {summary['date']}")
            print(f"Time: {summary['time']}")
        if summary["location"]:
            print(f"Location: {summary['location']}")
            print(f"Map: {summary['maps_url']}")
        categories = ", ".join(summary["categories"]) or "No categories"
        print(f"Categories: {categories}")
        print(f"Created by: {summary['created_by']}")


def emit(data: Any, output: str) -> None:
    if output == "json":
        print(json.dumps(data, indent=2, default=str))
    elif isinstance(data, list):
        print_events(data)
    elif isinstance(data, dict) and "title" in data:
        print_events([data])
    else:
        for key, value in data.items():
            print(f"{key}: {value}")


async def run_command(args: argparse.Namespace, session: Session) -> Any:
    """Execute one CLI command and return what should be printed."""
    cache = session.cache

    if args.command == "list":
        browser = session.browser()
        browser.set_search(args.search)
        browser.set_categories(args.categories)
        events = await browser.refresh()
        categories = await browser.categories()
        users = await cache.get_or_fetch(Entity.USERS)
        return [event_summary(event, categories, users) for event in events or []]

    if args.command == "categories":
        categories = await cache.get_or_fetch(Entity.CATEGORIES)
        if args.output == "json":
            return [category.model_dump() for category in categories]
        return {str(category.id): category.name for category in categories}

    if args.command == "show":
        event = await cache.get_one_or_fetch(Entity.EVENTS, args.event_id)
        categories = await cache.get_or_fetch(Entity.CATEGORIES)
        users = await cache.get_or_fetch(Entity.USERS)
        return event_summary(event, categories, users)

    if args.command == "create":
        created = await session.mutations.create_event(draft_from_args(args))
        categories = await cache.get_or_fetch(Entity.CATEGORIES)
        users = await cache.get_or_fetch(Entity.USERS)
        return event_summary(created, categories, users)

    if args.command == "update":
        current = await cache.get_one_or_fetch(Entity.EVENTS, args.event_id)
        users = await cache.get_or_fetch(Entity.USERS)
        name = creator_name(users, current.created_by)
        base = EventDraft.from_event(current, "" if name == UNKNOWN_USER else name)
        updated = await session.mutations.update_event(current.id, draft_from_args(args, base))
        categories = await cache.get_or_fetch(Entity.CATEGORIES)
        users = await cache.get_or_fetch(Entity.USERS)
        return event_summary(updated, categories, users)

    if args.command == "delete":
        event_id, created_by = args.event_id, args.creator_id
        try:
            current = await cache.get_one_or_fetch(Entity.EVENTS, args.event_id)
        except ApiError as e:
            if not e.is_not_found:
                raise
            logger.info(f"Event {args.event_id} not found, deleting anyway")
        else:
            event_id = current.id
            if created_by is None:
                created_by = current.created_by
        outcome = await session.mutations.delete_event(event_id, created_by)
        return {"event_deleted": outcome.event_deleted, "user_deleted": outcome.user_deleted}

    raise ValueError(f"Unknown command: {args.command}")


async def main_async(argv: Optional[List[str]] = None) -> int:
    """Run the CLI asynchronously and return the exit status."""
    args = build_parser().parse_args(argv)

    config = EventSyncConfig()
    if args.base_url:
        config = config.model_copy(update={"base_url": args.base_url})
    configure_logging(config.log_level)

    async with Session(config) as session:
        try:
            result = await run_command(args, session)
        except EventSyncError as e:
            logger.error(f"{args.command} failed: {e}")
            print(f"Error: {describe_error(e)}", file=sys.stderr)
            return 1

    emit(result, args.output)
    return 0


def main():
    """Run the eventsync CLI."""
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
