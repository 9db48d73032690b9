"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Firestore repository and participation store (database)
- In-memory repository and participation store (local runs, tests)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from parentconnect.shell.config_loader import load_config, load_config_from_env
from parentconnect.shell.firestore_store import (
    FirestoreConfig,
    FirestoreParticipationStore,
    FirestoreRepository,
)
from parentconnect.shell.memory_store import InMemoryParticipationStore, InMemoryRepository

__all__ = [
    "load_config",
    "load_config_from_env",
    "FirestoreConfig",
    "FirestoreParticipationStore",
    "FirestoreRepository",
    "InMemoryParticipationStore",
    "InMemoryRepository",
]
