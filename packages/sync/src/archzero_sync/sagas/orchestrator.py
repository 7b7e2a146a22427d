"""SagaOrchestrator: dual-write of cards and relationships to two stores.

Every mutation is written to the Entity Store (system of record) first and
then mirrored into the Mirror Store. When the mirror write fails, a
compensating write puts the Entity Store back and the caller receives a
:class:`SyncFailure` that says whether the put-back worked.

Guarantees, per call:

* The mirror is never written before the Entity Store.
* Success is returned only when both stores were written.
* A primary-step error propagates unchanged; nothing is compensated.
* On ``SyncFailure(COMPENSATED_OK)`` the Entity Store's state for the
  entity is as before the call (``version``/``updated_at`` aside).
* On ``SyncFailure(COMPENSATION_FAILED)`` the stores are divergent; this
  is logged at ERROR and announced as the ``saga.inconsistent`` hook.

Not guaranteed: recovery if the process dies between the two writes (there
is no durable intent log), and, unless a lock strategy is injected,
ordering between concurrent calls on the *same* id.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any, NoReturn, TypeVar

from ..correlation import correlation_scope, get_correlation_id
from ..domain.card import UpdateCardRequest
from ..domain.relationship import UpdateRelationshipRequest
from ..instrumentation import fire_and_forget_hook, get_hook_registry
from ..primitives.exceptions import (
    CompensationOutcome,
    MirrorStoreError,
    SyncFailure,
)
from ..primitives.locking import ResourceIdentifier
from .config import OrchestratorConfig
from .state import SagaPhase, SagaRun

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable
    from uuid import UUID

    from ..domain.card import Card, CreateCardRequest
    from ..domain.relationship import CreateRelationshipRequest, Relationship
    from ..instrumentation import HookRegistry
    from ..ports.entity_store import ICardStore, IRelationshipStore
    from ..ports.locking import ILockStrategy
    from ..ports.mirror_store import IMirrorStore

T = TypeVar("T")

logger = logging.getLogger("archzero.sagas")

CARD = "card"
RELATIONSHIP = "relationship"


class SagaOrchestrator:
    """
    Single-process, best-effort saga over the Entity Store and Mirror Store.

    All collaborators are injected; the orchestrator holds no state of its
    own between calls and is safe to share between concurrent tasks.

    Usage::

        orchestrator = SagaOrchestrator(cards, relationships, mirror)
        card = await orchestrator.create_card(CreateCardRequest(...))

        # Serialise same-id operations and bound slow mirror writes:
        orchestrator = SagaOrchestrator(
            cards, relationships, mirror,
            config=OrchestratorConfig(mirror_timeout=2.0),
            lock_strategy=InMemoryLockStrategy(),
        )
    """

    def __init__(
        self,
        card_store: ICardStore,
        relationship_store: IRelationshipStore,
        mirror: IMirrorStore,
        *,
        config: OrchestratorConfig | None = None,
        lock_strategy: ILockStrategy | None = None,
        hook_registry: HookRegistry | None = None,
    ) -> None:
        self._cards = card_store
        self._relationships = relationship_store
        self._mirror = mirror
        self._config = config or OrchestratorConfig()
        self._locks = lock_strategy
        self._hook_registry = hook_registry

    @property
    def card_store(self) -> ICardStore:
        """Read access for callers (list/get go straight to the system of record)."""
        return self._cards

    @property
    def relationship_store(self) -> IRelationshipStore:
        return self._relationships

    # ══════════════════════════════════════════════════════════════════
    # Cards
    # ══════════════════════════════════════════════════════════════════

    async def create_card(self, request: CreateCardRequest) -> Card:
        """Create in the Entity Store, then the mirror; purge on mirror failure."""

        async def handler() -> Card:
            run = SagaRun("create_card", CARD)
            return await self._execute(
                run,
                primary=lambda: self._cards.create(request),
                mirror=self._mirror.create_node,
                compensate=lambda card: self._cards.purge(card.id),
            )

        return await self._instrumented("create_card", CARD, None, handler)

    async def update_card(
        self,
        card_id: UUID,
        patch: UpdateCardRequest,
        *,
        expected_version: int | None = None,
    ) -> Card:
        """Update both stores; revert the Entity Store to its snapshot on mirror failure."""

        async def handler() -> Card:
            async with self._entity_lock(CARD, card_id):
                snapshot = await self._cards.get(card_id)
                revert = UpdateCardRequest.from_snapshot(snapshot)
                run = SagaRun("update_card", CARD, card_id)
                return await self._execute(
                    run,
                    primary=lambda: self._cards.update(
                        card_id, patch, expected_version=expected_version
                    ),
                    mirror=self._mirror.update_node,
                    compensate=lambda _card: self._cards.update(card_id, revert),
                )

        return await self._instrumented("update_card", CARD, card_id, handler)

    async def delete_card(self, card_id: UUID) -> None:
        """Soft delete the card and its relationships, then detach-delete the node.

        The mirror drops a node's edges with it, so the card's active
        relationship rows are soft deleted in the same primary step. On
        mirror failure the card is restored in place and so are those rows.
        """

        async def handler() -> None:
            async with self._entity_lock(CARD, card_id):
                snapshot = await self._cards.get(card_id)
                run = SagaRun("delete_card", CARD, card_id)
                await self._execute(
                    run,
                    primary=lambda: self._delete_card_rows(snapshot.id),
                    mirror=lambda _: self._mirror.delete_node(snapshot.id),
                    compensate=lambda detached: self._restore_card_rows(
                        snapshot.id, detached
                    ),
                )

        await self._instrumented("delete_card", CARD, card_id, handler)

    async def _delete_card_rows(self, card_id: UUID) -> list[UUID]:
        detached = await self._relationships.delete_for_card(card_id)
        try:
            await self._cards.delete(card_id)
        except Exception:
            # Undo the detach so the primary error leaves nothing behind.
            await self._restore_relationships(detached)
            raise
        return detached

    async def _restore_card_rows(self, card_id: UUID, detached: list[UUID]) -> None:
        await self._cards.restore(card_id)
        await self._restore_relationships(detached)

    async def _restore_relationships(self, relationship_ids: list[UUID]) -> None:
        for relationship_id in relationship_ids:
            await self._relationships.restore(relationship_id)

    # ══════════════════════════════════════════════════════════════════
    # Relationships
    # ══════════════════════════════════════════════════════════════════

    async def create_relationship(
        self, request: CreateRelationshipRequest
    ) -> Relationship:
        """Create the row, then the edge; purge the row on mirror failure."""

        async def handler() -> Relationship:
            run = SagaRun("create_relationship", RELATIONSHIP)
            return await self._execute(
                run,
                primary=lambda: self._relationships.create(request),
                mirror=self._mirror.create_edge,
                compensate=lambda rel: self._relationships.purge(rel.id),
            )

        return await self._instrumented(
            "create_relationship", RELATIONSHIP, None, handler
        )

    async def update_relationship(
        self,
        relationship_id: UUID,
        patch: UpdateRelationshipRequest,
        *,
        expected_version: int | None = None,
    ) -> Relationship:
        async def handler() -> Relationship:
            async with self._entity_lock(RELATIONSHIP, relationship_id):
                snapshot = await self._relationships.get(relationship_id)
                revert = UpdateRelationshipRequest.from_snapshot(snapshot)
                run = SagaRun("update_relationship", RELATIONSHIP, relationship_id)
                return await self._execute(
                    run,
                    primary=lambda: self._relationships.update(
                        relationship_id, patch, expected_version=expected_version
                    ),
                    mirror=self._mirror.update_edge,
                    compensate=lambda _rel: self._relationships.update(
                        relationship_id, revert
                    ),
                )

        return await self._instrumented(
            "update_relationship", RELATIONSHIP, relationship_id, handler
        )

    async def delete_relationship(self, relationship_id: UUID) -> None:
        async def handler() -> None:
            async with self._entity_lock(RELATIONSHIP, relationship_id):
                snapshot = await self._relationships.get(relationship_id)
                run = SagaRun("delete_relationship", RELATIONSHIP, relationship_id)
                await self._execute(
                    run,
                    primary=lambda: self._relationships.delete(snapshot.id),
                    mirror=lambda _: self._mirror.delete_edge(snapshot.id),
                    compensate=lambda _: self._relationships.restore(snapshot.id),
                )

        await self._instrumented(
            "delete_relationship", RELATIONSHIP, relationship_id, handler
        )

    # ══════════════════════════════════════════════════════════════════
    # Saga core
    # ══════════════════════════════════════════════════════════════════

    async def _execute(
        self,
        run: SagaRun,
        *,
        primary: Callable[[], Awaitable[T]],
        mirror: Callable[[T], Awaitable[None]],
        compensate: Callable[[T], Awaitable[Any]],
    ) -> T:
        # Primary errors propagate as-is: nothing downstream was touched.
        result = await primary()
        if run.entity_id is None:
            run.entity_id = getattr(result, "id", None)
        run.advance(SagaPhase.PRIMARY_WRITTEN)

        run.advance(SagaPhase.MIRROR_ATTEMPTED)
        try:
            await self._mirror_write(lambda: mirror(result))
        except MirrorStoreError as mirror_error:
            await self._compensate(run, mirror_error, lambda: compensate(result))

        run.advance(SagaPhase.COMMITTED)
        return result

    async def _mirror_write(self, write: Callable[[], Awaitable[None]]) -> None:
        """Run a mirror write, normalising every failure to ``MirrorStoreError``."""
        timeout = self._config.mirror_timeout
        try:
            if timeout is None:
                await write()
            else:
                await asyncio.wait_for(write(), timeout=timeout)
        except MirrorStoreError:
            raise
        except asyncio.TimeoutError as exc:
            raise MirrorStoreError(f"mirror write timed out after {timeout}s") from exc
        except Exception as exc:
            raise MirrorStoreError(f"mirror write failed: {exc}") from exc

    async def _compensate(
        self,
        run: SagaRun,
        mirror_error: MirrorStoreError,
        compensate: Callable[[], Awaitable[Any]],
    ) -> NoReturn:
        run.advance(SagaPhase.COMPENSATING)
        logger.warning(
            "Mirror sync failed for %s %s during %s, compensating: %s",
            run.entity_type,
            run.entity_id,
            run.operation,
            mirror_error,
            extra={"correlation_id": get_correlation_id()},
        )

        try:
            await compensate()
        except Exception as compensation_error:
            run.advance(SagaPhase.INCONSISTENT)
            logger.error(
                "Compensation failed for %s %s during %s; entity and mirror "
                "stores are now inconsistent (mirror error: %s)",
                run.entity_type,
                run.entity_id,
                run.operation,
                mirror_error,
                exc_info=compensation_error,
                extra={"correlation_id": get_correlation_id()},
            )
            self._announce("saga.inconsistent", run, mirror_error, compensation_error)
            raise SyncFailure(
                operation=run.operation,
                entity_type=run.entity_type,
                entity_id=run.entity_id,
                mirror_error=mirror_error,
                outcome=CompensationOutcome.COMPENSATION_FAILED,
                compensation_error=compensation_error,
                phase=run.phase.value,
            ) from mirror_error

        run.advance(SagaPhase.COMPENSATED)
        logger.info(
            "Rolled back %s %s after failed %s",
            run.entity_type,
            run.entity_id,
            run.operation,
            extra={"correlation_id": get_correlation_id()},
        )
        self._announce("saga.compensated", run, mirror_error, None)
        raise SyncFailure(
            operation=run.operation,
            entity_type=run.entity_type,
            entity_id=run.entity_id,
            mirror_error=mirror_error,
            outcome=CompensationOutcome.COMPENSATED_OK,
            phase=run.phase.value,
        ) from mirror_error

    # ══════════════════════════════════════════════════════════════════
    # Ambient concerns
    # ══════════════════════════════════════════════════════════════════

    def _hooks(self) -> HookRegistry:
        return self._hook_registry or get_hook_registry()

    async def _instrumented(
        self,
        operation: str,
        entity_type: str,
        entity_id: UUID | None,
        handler: Callable[[], Awaitable[T]],
    ) -> T:
        with correlation_scope() as correlation_id:
            attributes: dict[str, Any] = {
                "entity_type": entity_type,
                "entity_id": str(entity_id) if entity_id is not None else None,
                "correlation_id": correlation_id,
            }
            result: T = await self._hooks().execute_all(
                f"saga.{operation}", attributes, handler
            )
            return result

    def _announce(
        self,
        operation: str,
        run: SagaRun,
        mirror_error: BaseException,
        compensation_error: BaseException | None,
    ) -> None:
        fire_and_forget_hook(
            self._hooks(),
            operation,
            {
                "saga_operation": run.operation,
                "entity_type": run.entity_type,
                "entity_id": str(run.entity_id),
                "correlation_id": get_correlation_id(),
                "mirror_error": str(mirror_error),
                "compensation_error": (
                    str(compensation_error) if compensation_error is not None else None
                ),
            },
        )

    @contextlib.asynccontextmanager
    async def _entity_lock(self, entity_type: str, entity_id: UUID) -> AsyncIterator[None]:
        if self._locks is None:
            yield
            return
        resource = ResourceIdentifier.for_entity(entity_type, entity_id)
        token = await self._locks.acquire(
            resource,
            timeout=self._config.lock_timeout,
            ttl=self._config.lock_ttl,
        )
        try:
            yield
        finally:
            await self._locks.release(resource, token)
