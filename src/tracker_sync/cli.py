"""Command-line interface for tracker synchronization."""

import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from tracker_sync.adapters.sqlite_store import SqliteTrackerStore
from tracker_sync.adapters.tracker_html import parse_tracker_html
from tracker_sync.domain.errors import TrackerUpdateError
from tracker_sync.main import load_config, report_outcomes, synchronize_urls


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def parse_file(path: str, format_json: bool = False) -> None:
    """Parse a saved tracker page and print its records."""
    html = Path(path).read_text(encoding="utf-8")
    slots, hints = parse_tracker_html(html)

    if format_json:
        print(
            _dump(
                {
                    "slots": [asdict(slot) for slot in slots],
                    "hints": [asdict(hint) for hint in hints],
                }
            )
        )
        return

    print(f"\nSlots: {len(slots)}")
    for slot in slots:
        activity = (
            f"{slot.last_activity.total_seconds():.0f}s ago"
            if slot.last_activity is not None
            else "never"
        )
        print(
            f"  {slot.position:>3}. {slot.name} ({slot.game}) - {slot.status.value}, "
            f"{slot.checks.completed}/{slot.checks.total} checks, last activity {activity}"
        )

    print(f"\nHints: {len(hints)}")
    for hint in hints:
        found = "found" if hint.found else "not found"
        print(f"  {hint.finder} -> {hint.receiver}: {hint.item} at {hint.location} ({found})")


async def show_tracker(tracker_id: str, format_json: bool = False) -> None:
    """Print a stored tracker with its slots and hints."""
    config = load_config()
    store = SqliteTrackerStore(config.database_path)
    try:
        async with await store.begin() as tx:
            tracker = await tx.get_tracker_by_tracker_id(tracker_id)
            if tracker is None or tracker.id is None:
                print(f"Tracker {tracker_id} not found.", file=sys.stderr)
                sys.exit(1)
            slots = await tx.get_slots_by_tracker(tracker.id)
            hints = await tx.get_hints_by_tracker(tracker.id)
    finally:
        store.close()

    if format_json:
        print(
            _dump(
                {
                    "tracker": asdict(tracker),
                    "slots": [asdict(slot) for slot in slots],
                    "hints": [asdict(hint) for hint in hints],
                }
            )
        )
        return

    print("\nTracker:")
    print(f"  ID: {tracker.tracker_id}")
    print(f"  Upstream: {tracker.upstream_url}")
    print(f"  Last synchronized: {tracker.last_synchronized_at.isoformat()}")
    if tracker.last_port is not None:
        print(f"  Last port: {tracker.last_port}")

    print(f"\nSlots: {len(slots)}")
    for slot in slots:
        print(
            f"  {slot.position:>3}. {slot.name} ({slot.identity.game}) - "
            f"{slot.checks_done}/{slot.checks_total} checks, {slot.completion_status.value}"
        )

    names = {slot.id: slot.name for slot in slots}
    print(f"\nHints: {len(hints)}")
    for hint in hints:
        receiver = (
            names.get(hint.receiver_slot_id, "?")
            if hint.receiver_slot_id is not None
            else hint.item_link_name
        )
        found = "found" if hint.found else "not found"
        print(
            f"  {names.get(hint.finder_slot_id, '?')} -> {receiver}: "
            f"{hint.item} at {hint.location} ({found})"
        )


async def show_audit(entity: str | None = None, entity_id: int | None = None) -> None:
    """Print audit entries, oldest first."""
    config = load_config()
    store = SqliteTrackerStore(config.database_path)
    try:
        async with await store.begin() as tx:
            entries = await tx.get_audit_entries(entity=entity, entity_id=entity_id)
    finally:
        store.close()

    for entry in entries:
        actor = entry.actor_ip or (
            f"user {entry.actor_user_id}" if entry.actor_user_id is not None else "sync"
        )
        print(
            f"{entry.changed_at.isoformat()} {entry.entity} {entry.entity_id} "
            f"by {actor}: {entry.diff}"
        )


async def main() -> None:
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Tracker Synchronization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Synchronize a tracker
  tracker-sync sync https://archipelago.gg/tracker/AAAAAAAAAAAAAAAAAAAAAA

  # Parse a saved tracker page
  tracker-sync parse tracker.html --json

  # Show a stored tracker
  tracker-sync show AAAAAAAAAAAAAAAAAAAAAA

  # Show the change history of a slot
  tracker-sync audit --entity slot --entity-id 3
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Sync command
    sync_parser = subparsers.add_parser("sync", help="Synchronize upstream trackers")
    sync_parser.add_argument("urls", nargs="+", metavar="URL", help="Upstream tracker URL")
    sync_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # Parse command
    parse_parser = subparsers.add_parser("parse", help="Parse a saved tracker page")
    parse_parser.add_argument("file", help="Path to the saved HTML page")
    parse_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # Show command
    show_parser = subparsers.add_parser("show", help="Show a stored tracker")
    show_parser.add_argument("tracker_id", help="Tracker ID")
    show_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # Audit command
    audit_parser = subparsers.add_parser("audit", help="Show audit entries")
    audit_parser.add_argument(
        "--entity", choices=["tracker", "slot", "hint"], help="Only show this entity type"
    )
    audit_parser.add_argument("--entity-id", type=int, help="Only show this entity ID")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "sync":
            outcomes = await synchronize_urls(load_config(), args.urls)
            sys.exit(report_outcomes(outcomes, as_json=args.json))

        elif args.command == "parse":
            parse_file(args.file, format_json=args.json)

        elif args.command == "show":
            await show_tracker(args.tracker_id, format_json=args.json)

        elif args.command == "audit":
            await show_audit(entity=args.entity, entity_id=args.entity_id)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(1)
    except (TrackerUpdateError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def cli_main() -> None:
    """Synchronous entry point for the CLI command."""
    asyncio.run(main())


if __name__ == "__main__":
    cli_main()
