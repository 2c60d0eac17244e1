"""Entity store - persisted keyed records plus change notifications.

Public API:
- Database: async SQLAlchemy engine wrapper
- EntityStore: get / scan_all / watch, plus insert / remove
- EntityReader: read contract consumed by schedule builders

Types:
- ChangeEvent, ChangeKind: change notifications
- Subscription: live stream of change events for one prefix
"""

from podcastd.store.engine import Database
from podcastd.store.entities import (
    ChangeEvent,
    ChangeKind,
    EntityReader,
    EntityStore,
    Subscription,
)

__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "Database",
    "EntityReader",
    "EntityStore",
    "Subscription",
]
