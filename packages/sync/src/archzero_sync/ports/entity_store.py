"""ICardStore / IRelationshipStore: the Entity Store (system of record) contract.

Every write returns only after it is durable, and is immediately visible to
a subsequent ``get``; the saga orchestrator relies on that read-after-write
guarantee when it takes snapshots and issues compensating writes.

Two deletes exist on purpose:

* ``delete`` is the user-facing **soft** delete (status flips, row kept), so
  that a delete can itself be compensated by ``restore``.
* ``purge`` is a **hard** delete, used only to compensate a create; a soft
  delete there would leave a zombie row behind.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import builtins
    from uuid import UUID

    from ..domain.card import Card, CreateCardRequest, UpdateCardRequest
    from ..domain.enums import CardType, LifecyclePhase
    from ..domain.relationship import (
        CreateRelationshipRequest,
        Relationship,
        UpdateRelationshipRequest,
    )


@runtime_checkable
class ICardStore(Protocol):
    """Primary store for cards."""

    async def create(self, request: CreateCardRequest) -> Card:
        """Validate and insert a new card; assigns id, timestamps and version 1."""
        ...

    async def get(self, card_id: UUID, *, include_deleted: bool = False) -> Card:
        """Return the card or raise ``EntityNotFoundError``.

        Soft-deleted cards are reported as not found unless
        ``include_deleted`` is set.
        """
        ...

    async def list(
        self,
        *,
        card_type: CardType | None = None,
        lifecycle_phase: LifecyclePhase | None = None,
        include_deleted: bool = False,
    ) -> builtins.list[Card]: ...

    async def update(
        self,
        card_id: UUID,
        patch: UpdateCardRequest,
        *,
        expected_version: int | None = None,
    ) -> Card:
        """Apply *patch* and bump ``version``.

        Raises ``OptimisticConcurrencyError`` when ``expected_version`` is
        given and differs from the stored version.
        """
        ...

    async def delete(self, card_id: UUID) -> None:
        """Soft delete."""
        ...

    async def purge(self, card_id: UUID) -> None:
        """Hard delete (create-compensation only)."""
        ...

    async def restore(self, card_id: UUID) -> Card:
        """Undo a soft delete in place, keeping the original id."""
        ...


@runtime_checkable
class IRelationshipStore(Protocol):
    """Primary store for relationships.

    ``create`` must reject endpoints that are not active cards.
    """

    async def create(self, request: CreateRelationshipRequest) -> Relationship: ...

    async def get(
        self, relationship_id: UUID, *, include_deleted: bool = False
    ) -> Relationship: ...

    async def list_for_card(
        self, card_id: UUID, *, include_deleted: bool = False
    ) -> builtins.list[Relationship]: ...

    async def list(self, *, include_deleted: bool = False) -> builtins.list[Relationship]: ...

    async def update(
        self,
        relationship_id: UUID,
        patch: UpdateRelationshipRequest,
        *,
        expected_version: int | None = None,
    ) -> Relationship: ...

    async def delete(self, relationship_id: UUID) -> None: ...

    async def delete_for_card(self, card_id: UUID) -> builtins.list[UUID]:
        """Soft delete every active relationship touching *card_id*, atomically.

        Returns the ids it deleted so that a caller can ``restore`` them.
        """
        ...

    async def purge(self, relationship_id: UUID) -> None: ...

    async def restore(self, relationship_id: UUID) -> Relationship: ...
