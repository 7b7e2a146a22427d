"""InMemoryLockStrategy: single-process implementation of ILockStrategy."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

from ...ports.locking import ActiveLock, ILockStrategy
from ...primitives.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from ...primitives.locking import ResourceIdentifier

logger = logging.getLogger("archzero.locking")


@dataclass
class _LockState:
    """State for a single resource lock."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    waiters: int = 0
    token: str | None = None
    acquired_at: datetime | None = None
    ttl_seconds: float = 30.0


class InMemoryLockStrategy(ILockStrategy):
    """
    Keyed asyncio locks, one per ``(resource_type, resource_id)``.

    asyncio.Lock wakes waiters in FIFO order, so no caller starves. State
    for a key is dropped once nobody holds or waits for it. The TTL is
    recorded for monitoring only; an in-process lock cannot outlive its
    holder.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], _LockState] = {}
        self._global_lock = asyncio.Lock()

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,
    ) -> str:
        key = (resource.resource_type, resource.resource_id)

        async with self._global_lock:
            state = self._locks.get(key)
            if state is None:
                state = _LockState()
                self._locks[key] = state
            state.waiters += 1

        owned = False

        async def take() -> None:
            nonlocal owned
            await state.lock.acquire()
            owned = True

        acquired = False
        try:
            await asyncio.wait_for(take(), timeout=timeout)
            acquired = True
        except asyncio.TimeoutError as err:
            logger.warning("Lock acquisition timed out after %.1fs: %s", timeout, resource)
            raise LockAcquisitionError(resource, timeout, "timed out") from err
        finally:
            if owned and not acquired:
                # wait_for can give up after the inner acquire already won.
                state.lock.release()
            async with self._global_lock:
                state.waiters -= 1
                if not acquired and state.waiters == 0 and not state.lock.locked():
                    self._locks.pop(key, None)

        token = str(uuid4())
        state.token = token
        state.acquired_at = datetime.now(timezone.utc)
        state.ttl_seconds = ttl
        logger.debug("Lock acquired: %s", resource)
        return token

    async def release(self, resource: ResourceIdentifier, token: str) -> None:
        key = (resource.resource_type, resource.resource_id)

        async with self._global_lock:
            state = self._locks.get(key)
            if state is None or state.token != token:
                logger.warning("Attempted to release invalid or expired lock: %s", key)
                return

            state.token = None
            state.acquired_at = None
            state.lock.release()
            if state.waiters == 0:
                self._locks.pop(key)
                logger.debug("Lock cleaned up: %s", key)

    async def get_active_locks(self) -> list[ActiveLock]:
        async with self._global_lock:
            return [
                ActiveLock(
                    resource_type=resource_type,
                    resource_id=resource_id,
                    token=state.token,
                    acquired_at=state.acquired_at,
                    ttl_seconds=state.ttl_seconds,
                )
                for (resource_type, resource_id), state in self._locks.items()
                if state.token is not None and state.acquired_at is not None
            ]
