#!/usr/bin/env python3
"""Preview (and optionally store) the occurrences of a recurring event.

Expands a recurrence rule exactly as event creation would and prints each
occurrence. With --create, the series is persisted through the configured
storage backend.

Usage:
    # Weekly for a month, preview only
    python scripts/preview_series.py --title "Toddler Music" \\
        --start 2024-01-01T10:00 --unit weekly --until 2024-01-29

    # Every 2 days, stored in the configured backend
    python scripts/preview_series.py --title "Park Meetup" \\
        --start 2024-03-01T09:30 --unit daily --every 2 --until 2024-03-20 --create

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
"""

import argparse
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from parentconnect.core.discovery import create_series, new_id
from parentconnect.core.entity import ScheduledEntity, parse_inclusive_end, parse_timestamp
from parentconnect.core.errors import InvalidInputError
from parentconnect.core.recurrence import RecurrenceRule, RecurrenceUnit, describe_rule
from parentconnect.orchestrator import DiscoveryEngine
from parentconnect.shell.config_loader import load_config

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Preview the occurrences of a recurring event",
    )
    parser.add_argument("--title", required=True, help="Event title")
    parser.add_argument("--location", default="TBD", help="Location label")
    parser.add_argument("--start", required=True, help="First occurrence (ISO-8601)")
    parser.add_argument(
        "--unit",
        choices=[u.value for u in RecurrenceUnit],
        default=RecurrenceUnit.WEEKLY.value,
        help="Repeat unit (monthly means every 30 days)",
    )
    parser.add_argument("--every", type=int, default=1, help="Repeat every N units")
    parser.add_argument("--until", required=True, help="Series end (ISO-8601; a bare date includes that day)")
    parser.add_argument(
        "--create",
        action="store_true",
        help="Persist the series through the configured backend",
    )
    args = parser.parse_args()

    try:
        base = ScheduledEntity(
            id=new_id(),
            title=args.title,
            location=args.location,
            occurs_at=parse_timestamp(args.start, field="start"),
        )
        rule = RecurrenceRule(
            unit=RecurrenceUnit(args.unit),
            frequency=args.every,
            series_end=parse_inclusive_end(args.until, field="until", tz=base.occurs_at.tzinfo),
        )
    except InvalidInputError as e:
        logger.error("%s", e.message)
        return 2

    if args.create:
        engine = DiscoveryEngine(load_config())
        result = engine.create_series(base, rule)
        occurrences = result.entities
        if not result.persisted:
            logger.error("Series was not stored: %s", result.error)
            return 1
        logger.info("Stored series %s", result.series_id)
    else:
        occurrences = create_series(base, rule)

    print(f"{args.title}: {describe_rule(rule)}, {len(occurrences)} occurrence(s)")
    for occurrence in occurrences:
        print(f"  {occurrence.occurs_at.isoformat()}  {occurrence.id}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
