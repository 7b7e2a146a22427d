"""ILockStrategy: protocol for per-entity pessimistic locking.

The saga orchestrator uses it, when one is injected, to serialise
operations on the same card or relationship id for the whole saga
(primary write, mirror write, compensation). Without it, concurrent
updates of one id may leave the Entity Store reflecting one update and the
Mirror Store the other.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from ..primitives.locking import ResourceIdentifier


@dataclass
class ActiveLock:
    """Information about a held lock, for monitoring and debugging."""

    resource_type: str
    resource_id: str
    token: str
    acquired_at: datetime
    ttl_seconds: float


@runtime_checkable
class ILockStrategy(Protocol):
    """
    Lock strategy protocol.

    Implementations can use Redis, database advisory locks, or in-process
    asyncio primitives for a single node.
    """

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,
    ) -> str:
        """
        Acquire a lock for the given resource.

        Returns:
            A token that must be passed to :meth:`release`.

        Raises:
            LockAcquisitionError: If the lock is not obtained within *timeout*.
        """
        ...

    async def release(self, resource: ResourceIdentifier, token: str) -> None:
        """Release a lock previously returned by :meth:`acquire`."""
        ...

    async def get_active_locks(self) -> list[ActiveLock]: ...
