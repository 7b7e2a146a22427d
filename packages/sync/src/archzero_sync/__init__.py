"""archzero-sync: dual-write saga between the catalog's Entity Store and graph mirror.

Core install depends on pydantic only. The relational Entity Store adapter
lives in ``archzero_sync.adapters.sqlalchemy`` and needs the ``sqlalchemy``
extra.
"""

from __future__ import annotations

# ── Adapters ────────────────────────────────────────────────────
from .adapters.memory import (
    FaultInjector,
    InMemoryCardStore,
    InMemoryLockStrategy,
    InMemoryMirrorStore,
    InMemoryRelationshipStore,
)

# ── Consistency ─────────────────────────────────────────────────
from .consistency import (
    ConsistencyChecker,
    ConsistencyReport,
    ConsistencyStatus,
    FieldMismatch,
)
from .correlation import (
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)

# ── Domain ───────────────────────────────────────────────────────
from .domain import (
    DEPENDENCY_TYPES,
    Card,
    CardType,
    CreateCardRequest,
    CreateRelationshipRequest,
    EntityStatus,
    LifecyclePhase,
    Relationship,
    RelationshipType,
    UpdateCardRequest,
    UpdateRelationshipRequest,
)
from .instrumentation import (
    HookRegistry,
    get_hook_registry,
    set_hook_registry,
)

# ── Ports ────────────────────────────────────────────────────────
from .ports import (
    CriticalityLevel,
    ICardStore,
    IGraphTraversal,
    ILockStrategy,
    IMirrorStore,
    IRelationshipStore,
    MirrorEdge,
    MirrorNode,
    TopologyMetrics,
)

# ── Primitives ───────────────────────────────────────────────────
from .primitives import (
    ArchZeroError,
    CompensationOutcome,
    EntityNotFoundError,
    LockAcquisitionError,
    MirrorStoreError,
    OptimisticConcurrencyError,
    PrimaryStoreError,
    SagaStateError,
    SyncFailure,
    ValidationError,
)

# ── Sagas ────────────────────────────────────────────────────────
from .sagas import OrchestratorConfig, SagaOrchestrator, SagaPhase

__all__ = [
    "DEPENDENCY_TYPES",
    "ArchZeroError",
    "Card",
    "CardType",
    "CompensationOutcome",
    "ConsistencyChecker",
    "ConsistencyReport",
    "ConsistencyStatus",
    "CreateCardRequest",
    "CreateRelationshipRequest",
    "CriticalityLevel",
    "EntityNotFoundError",
    "EntityStatus",
    "FaultInjector",
    "FieldMismatch",
    "HookRegistry",
    "ICardStore",
    "IGraphTraversal",
    "ILockStrategy",
    "IMirrorStore",
    "IRelationshipStore",
    "InMemoryCardStore",
    "InMemoryLockStrategy",
    "InMemoryMirrorStore",
    "InMemoryRelationshipStore",
    "LifecyclePhase",
    "LockAcquisitionError",
    "MirrorEdge",
    "MirrorNode",
    "MirrorStoreError",
    "OptimisticConcurrencyError",
    "OrchestratorConfig",
    "PrimaryStoreError",
    "Relationship",
    "RelationshipType",
    "SagaOrchestrator",
    "SagaPhase",
    "SagaStateError",
    "SyncFailure",
    "TopologyMetrics",
    "UpdateCardRequest",
    "UpdateRelationshipRequest",
    "ValidationError",
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "get_hook_registry",
    "set_correlation_id",
    "set_hook_registry",
]
