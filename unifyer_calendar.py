#!/usr/bin/env python3
"""
Unifyer Calendar - command line front end for the academic organizer calendar.

This is the main entry point for the application.
"""

import sys
import argparse
import logging
from datetime import date, timedelta
from pathlib import Path

from unifyer.config import Config
from unifyer.errors import CalendarError
from unifyer.models import CalendarEvent
from unifyer.projections import month_events
from unifyer.service import CalendarService
from unifyer.timezone_utils import local_midnight, to_local_datetime


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging for the command line.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="unifyer-calendar",
        description="Unifyer Calendar - events, iCal imports and calendar subscriptions"
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        help="Path to configuration file (default: auto-detect)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    cmd = commands.add_parser("import", help="Import events from an .ics/.ical file")
    cmd.add_argument("file", type=Path)

    cmd = commands.add_parser("events", help="List events")
    cmd.add_argument("--from", dest="start", type=date.fromisoformat, help="First day (YYYY-MM-DD)")
    cmd.add_argument("--to", dest="end", type=date.fromisoformat, help="Last day (YYYY-MM-DD)")

    cmd = commands.add_parser("month", help="Show events of a month grid")
    cmd.add_argument("month", help="Month as YYYY-MM")

    cmd = commands.add_parser("upcoming", help="Show the next events")
    cmd.add_argument("--limit", type=int, default=5)

    cmd = commands.add_parser("subscribe", help="Add a calendar subscription and sync it")
    cmd.add_argument("name")
    cmd.add_argument("url")
    cmd.add_argument("--color", help="Hex color for the subscription's events")

    cmd = commands.add_parser("unsubscribe", help="Delete a subscription and its events")
    cmd.add_argument("subscription_id")

    commands.add_parser("subscriptions", help="List subscriptions")

    cmd = commands.add_parser("sync", help="Sync one or all subscriptions")
    cmd.add_argument("subscription_id", nargs="?")

    return parser.parse_args(argv)


def format_event(event: CalendarEvent) -> str:
    start = to_local_datetime(event.start_date)
    when = start.strftime("%Y-%m-%d") if event.all_day else start.strftime("%Y-%m-%d %H:%M")
    line = f"{when:16}  {event.title}  [{event.type.value}]"
    if event.location:
        line += f"  @ {event.location}"
    return line


def print_sync_result(name: str, result) -> bool:
    if result.skipped:
        print(f"{name}: skipped (disabled)")
    elif result.ok:
        print(f"{name}: {len(result.events)} events")
    else:
        print(f"{name}: {result.error}", file=sys.stderr)
    return result.ok


def run(args, service: CalendarService) -> int:
    if args.command == "import":
        imported = service.import_path(args.file)
        print(f"Imported {len(imported)} events!")

    elif args.command == "events":
        events = service.events()
        if args.start:
            start = local_midnight(args.start)
            events = [e for e in events if e.effective_end > start]
        if args.end:
            end = local_midnight(args.end + timedelta(days=1))
            events = [e for e in events if e.start_date < end]
        for event in events:
            print(format_event(event))

    elif args.command == "month":
        year, month = (int(part) for part in args.month.split("-", 1))
        grid = month_events(service.events(), year, month)
        for day, events in grid.items():
            if day.month != month or not events:
                continue
            print(day.strftime("%a %d"))
            for event in events:
                print(f"    {format_event(event)}")

    elif args.command == "upcoming":
        for event in service.upcoming(limit=args.limit):
            print(format_event(event))

    elif args.command == "subscribe":
        subscription, result = service.add_subscription(args.name, args.url, args.color)
        print(f"Added subscription {subscription.id}")
        if not print_sync_result(subscription.name, result):
            return 1

    elif args.command == "unsubscribe":
        if not service.remove_subscription(args.subscription_id):
            print(f"No subscription {args.subscription_id}", file=sys.stderr)
            return 1

    elif args.command == "subscriptions":
        for sub in service.subscriptions.list():
            synced = sub.last_synced_at.isoformat() if sub.last_synced_at else "never"
            state = "" if sub.enabled else " (disabled)"
            print(f"{sub.id}  {sub.name}{state}  {sub.url}  last synced: {synced}")

    elif args.command == "sync":
        if args.subscription_id:
            result = service.sync_subscription(args.subscription_id)
            if result is None:
                print(f"No subscription {args.subscription_id}", file=sys.stderr)
                return 1
            return 0 if print_sync_result(args.subscription_id, result) else 1
        names = {s.id: s.name for s in service.subscriptions.list()}
        ok = True
        for sub_id, result in service.sync_all().items():
            ok = print_sync_result(names.get(sub_id, sub_id), result) and ok
        return 0 if ok else 1

    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    # Load configuration
    try:
        config = Config.load(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("\nExample configuration:", file=sys.stderr)
        print("""
[General]
timezone = "Europe/Berlin"

[Subscription.Semester]
url = "https://example.com/semester.ics"
name = "Semester Calendar"
color = "#4285f4"
""", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging("DEBUG" if args.debug else config.log_level)

    with CalendarService(config) as service:
        service.seed_subscriptions()
        try:
            status = run(args, service)
        except (CalendarError, ValueError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            status = 1

    sys.exit(status)


if __name__ == "__main__":
    main()
