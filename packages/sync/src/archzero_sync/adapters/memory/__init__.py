from .entity_store import InMemoryCardStore, InMemoryRelationshipStore
from .faults import FaultInjector
from .locking import InMemoryLockStrategy
from .mirror_store import InMemoryMirrorStore

__all__ = [
    "FaultInjector",
    "InMemoryCardStore",
    "InMemoryLockStrategy",
    "InMemoryMirrorStore",
    "InMemoryRelationshipStore",
]
