"""Primitives: exceptions, lockable resource identity."""

from __future__ import annotations

from .exceptions import (
    ArchZeroError,
    CompensationOutcome,
    ConcurrencyError,
    DomainError,
    EntityNotFoundError,
    InfrastructureError,
    InvariantViolationError,
    LockAcquisitionError,
    MirrorStoreError,
    NotFoundError,
    OptimisticConcurrencyError,
    PersistenceError,
    PrimaryStoreError,
    SagaStateError,
    SyncFailure,
    ValidationError,
)
from .locking import ResourceIdentifier

__all__ = [
    "ArchZeroError",
    "CompensationOutcome",
    "ConcurrencyError",
    "DomainError",
    "EntityNotFoundError",
    "InfrastructureError",
    "InvariantViolationError",
    "LockAcquisitionError",
    "MirrorStoreError",
    "NotFoundError",
    "OptimisticConcurrencyError",
    "PersistenceError",
    "PrimaryStoreError",
    "ResourceIdentifier",
    "SagaStateError",
    "SyncFailure",
    "ValidationError",
]
