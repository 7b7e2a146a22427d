"""Domain, infrastructure and dual-write exceptions for archzero-sync."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .locking import ResourceIdentifier


class ArchZeroError(Exception):
    """Root exception for the entire archzero-sync package."""


class DomainError(ArchZeroError):
    """Base class for all domain-related errors."""


class NotFoundError(DomainError):
    """Raised when a card or relationship is not found."""


class EntityNotFoundError(NotFoundError):
    """Raised when a specific entity cannot be found by ID."""

    def __init__(self, entity_type: str, entity_id: object) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id={entity_id!r} not found")


class InvariantViolationError(DomainError):
    """Raised when a catalog invariant is violated (e.g. restoring an active card)."""


class ValidationError(ArchZeroError):
    """Raised when an Entity Store rejects a request.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))


class ConcurrencyError(ArchZeroError):
    """Base class for all concurrency-related conflicts."""


class OptimisticConcurrencyError(ConcurrencyError):
    """Raised when an update is conditioned on a version that is no longer current."""

    def __init__(self, entity_type: str, entity_id: object, expected: int, actual: int) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{entity_type} {entity_id} version conflict: "
            f"expected version {expected} but found {actual}"
        )


class LockAcquisitionError(ConcurrencyError):
    """Failed to acquire a per-entity lock within the timeout."""

    def __init__(
        self,
        resource: ResourceIdentifier,
        timeout: float,
        reason: str | None = None,
    ) -> None:
        self.resource = resource
        self.timeout = timeout
        self.reason = reason

        msg = (
            f"Failed to acquire {resource.lock_mode} lock on "
            f"{resource.resource_type}:{resource.resource_id} "
            f"within {timeout}s"
        )
        if reason:
            msg += f" - {reason}"

        super().__init__(msg)


class InfrastructureError(ArchZeroError):
    """Base class for all infrastructure-related errors."""


class PersistenceError(InfrastructureError):
    """Base class for all datastore errors."""


class PrimaryStoreError(PersistenceError):
    """Raised when the Entity Store itself fails (connection, constraint, driver)."""


class MirrorStoreError(PersistenceError):
    """Raised when a Mirror Store write fails.

    The orchestrator never lets this escape on its own; it is always wrapped
    into a :class:`SyncFailure` together with the compensation outcome.
    """


class SagaStateError(ArchZeroError):
    """Raised when a saga run is asked to make a transition it does not allow."""


class CompensationOutcome(str, Enum):
    """Result of the compensating write issued after a mirror failure."""

    COMPENSATED_OK = "COMPENSATED_OK"
    COMPENSATION_FAILED = "COMPENSATION_FAILED"


class SyncFailure(InfrastructureError):
    """The primary write succeeded but the mirror write did not.

    ``outcome`` tells the caller whether the Entity Store was put back
    (``COMPENSATED_OK``: treat the operation as not having happened) or
    whether the revert itself failed (``COMPENSATION_FAILED``: the two
    stores are divergent and need reconciliation).
    """

    def __init__(
        self,
        *,
        operation: str,
        entity_type: str,
        entity_id: object,
        mirror_error: BaseException,
        outcome: CompensationOutcome,
        compensation_error: BaseException | None = None,
        phase: str | None = None,
    ) -> None:
        self.operation = operation
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.mirror_error = mirror_error
        self.outcome = outcome
        self.compensation_error = compensation_error
        self.phase = phase

        if outcome is CompensationOutcome.COMPENSATED_OK:
            msg = (
                f"{operation} failed to sync {entity_type} {entity_id} to the "
                f"mirror store, rolled back the entity store: {mirror_error}"
            )
        else:
            msg = (
                f"{operation} failed to sync {entity_type} {entity_id} to the "
                f"mirror store and the rollback failed ({compensation_error}); "
                f"stores are inconsistent: {mirror_error}"
            )
        super().__init__(msg)

    @property
    def integrity_preserved(self) -> bool:
        """True when the Entity Store was successfully put back."""
        return self.outcome is CompensationOutcome.COMPENSATED_OK
