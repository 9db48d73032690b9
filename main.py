"""Cloud Function Entry Point - Root Module.

This is the root-level entry point for Google Cloud Functions.
It imports from the parentconnect package.
"""

from parentconnect.main import (
    create_event,
    discover_events,
    join_event,
    leave_event,
)

__all__ = [
    "create_event",
    "discover_events",
    "join_event",
    "leave_event",
]
