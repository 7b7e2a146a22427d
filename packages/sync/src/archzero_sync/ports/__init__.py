from .entity_store import ICardStore, IRelationshipStore
from .graph import (
    FAN_IN_THRESHOLDS,
    CriticalityLevel,
    IGraphTraversal,
    TopologyMetrics,
    criticality_boost,
)
from .locking import ActiveLock, ILockStrategy
from .mirror_store import IMirrorStore, MirrorEdge, MirrorNode

__all__ = [
    "FAN_IN_THRESHOLDS",
    "ActiveLock",
    "CriticalityLevel",
    "ICardStore",
    "IGraphTraversal",
    "ILockStrategy",
    "IMirrorStore",
    "IRelationshipStore",
    "MirrorEdge",
    "MirrorNode",
    "TopologyMetrics",
    "criticality_boost",
]
