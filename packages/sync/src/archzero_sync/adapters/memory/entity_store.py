"""In-memory Entity Store: dict-backed fakes of ICardStore / IRelationshipStore."""

from __future__ import annotations

import copy
from datetime import date
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from ...domain.card import Card
from ...domain.enums import EntityStatus
from ...domain.mixins import utc_now
from ...domain.relationship import Relationship
from ...ports.entity_store import ICardStore, IRelationshipStore
from ...primitives.exceptions import (
    EntityNotFoundError,
    InvariantViolationError,
    OptimisticConcurrencyError,
    PrimaryStoreError,
    ValidationError,
)
from .faults import FaultInjector

if TYPE_CHECKING:
    import builtins

    from ...domain.card import CreateCardRequest, UpdateCardRequest
    from ...domain.enums import CardType, LifecyclePhase
    from ...domain.relationship import (
        CreateRelationshipRequest,
        UpdateRelationshipRequest,
    )


def _check_version(
    entity_type: str, entity_id: UUID, expected: int | None, actual: int
) -> None:
    if expected is not None and expected != actual:
        raise OptimisticConcurrencyError(entity_type, entity_id, expected, actual)


class InMemoryCardStore(ICardStore):
    """In-memory implementation of :class:`ICardStore`.

    Rows are stored and handed out as deep copies, so a snapshot held by a
    caller never aliases the live row.
    """

    entity_type = "Card"

    def __init__(self) -> None:
        self._rows: dict[UUID, Card] = {}
        self.faults = FaultInjector(PrimaryStoreError)

    async def create(self, request: CreateCardRequest) -> Card:
        await self.faults.check("create")
        now = utc_now()
        card = Card(
            id=uuid4(),
            name=request.name,
            card_type=request.card_type,
            lifecycle_phase=request.lifecycle_phase,
            quality_score=request.quality_score,
            description=request.description,
            owner_id=request.owner_id,
            attributes=copy.deepcopy(request.attributes),
            tags=list(request.tags),
            created_at=now,
            updated_at=now,
        )
        self._rows[card.id] = card
        return card.model_copy(deep=True)

    async def get(self, card_id: UUID, *, include_deleted: bool = False) -> Card:
        await self.faults.check("get")
        return self._require(card_id, include_deleted=include_deleted).model_copy(
            deep=True
        )

    async def list(
        self,
        *,
        card_type: CardType | None = None,
        lifecycle_phase: LifecyclePhase | None = None,
        include_deleted: bool = False,
    ) -> builtins.list[Card]:
        await self.faults.check("list")
        return [
            card.model_copy(deep=True)
            for card in self._rows.values()
            if (include_deleted or not card.is_deleted)
            and (card_type is None or card.card_type is card_type)
            and (lifecycle_phase is None or card.lifecycle_phase is lifecycle_phase)
        ]

    async def update(
        self,
        card_id: UUID,
        patch: UpdateCardRequest,
        *,
        expected_version: int | None = None,
    ) -> Card:
        await self.faults.check("update")
        current = self._require(card_id)
        _check_version(self.entity_type, card_id, expected_version, current.version)
        return self._write(current, patch.changes())

    async def delete(self, card_id: UUID) -> None:
        await self.faults.check("delete")
        current = self._require(card_id)
        self._write(current, {"status": EntityStatus.DELETED})

    async def purge(self, card_id: UUID) -> None:
        await self.faults.check("purge")
        if self._rows.pop(card_id, None) is None:
            raise EntityNotFoundError(self.entity_type, card_id)

    async def restore(self, card_id: UUID) -> Card:
        await self.faults.check("restore")
        current = self._require(card_id, include_deleted=True)
        if not current.is_deleted:
            raise InvariantViolationError(f"Card {card_id} is not deleted")
        return self._write(current, {"status": EntityStatus.ACTIVE})

    # ── Internals ────────────────────────────────────────────────

    def _require(self, card_id: UUID, *, include_deleted: bool = False) -> Card:
        card = self._rows.get(card_id)
        if card is None or (card.is_deleted and not include_deleted):
            raise EntityNotFoundError(self.entity_type, card_id)
        return card

    def _write(self, current: Card, changes: dict[str, Any]) -> Card:
        updated = current.model_copy(
            update={
                **changes,
                "version": current.version + 1,
                "updated_at": utc_now(),
            },
            deep=True,
        )
        self._rows[updated.id] = updated
        return updated.model_copy(deep=True)

    # ── Test helpers ─────────────────────────────────────────────

    def clear(self) -> None:
        self._rows.clear()

    def __len__(self) -> int:
        return len(self._rows)


class InMemoryRelationshipStore(IRelationshipStore):
    """In-memory implementation of :class:`IRelationshipStore`.

    Endpoint existence is checked against the given card store, which is
    how the relational schema's foreign keys behave.
    """

    entity_type = "Relationship"

    def __init__(self, cards: ICardStore) -> None:
        self._cards = cards
        self._rows: dict[UUID, Relationship] = {}
        self.faults = FaultInjector(PrimaryStoreError)

    async def create(self, request: CreateRelationshipRequest) -> Relationship:
        await self.faults.check("create")
        errors = await self._endpoint_errors(request.from_card_id, request.to_card_id)
        valid_from = request.valid_from or date.today()
        if request.valid_to is not None and request.valid_to < valid_from:
            errors.setdefault("valid_to", []).append("must not precede valid_from")
        if any(
            row.from_card_id == request.from_card_id
            and row.to_card_id == request.to_card_id
            and row.relationship_type is request.relationship_type
            and row.valid_from == valid_from
            and not row.is_deleted
            for row in self._rows.values()
        ):
            errors.setdefault("__root__", []).append(
                "an identical relationship already exists"
            )
        if errors:
            raise ValidationError(errors)

        now = utc_now()
        relationship = Relationship(
            id=uuid4(),
            from_card_id=request.from_card_id,
            to_card_id=request.to_card_id,
            relationship_type=request.relationship_type,
            valid_from=valid_from,
            valid_to=request.valid_to,
            attributes=copy.deepcopy(request.attributes),
            confidence=request.confidence,
            created_at=now,
            updated_at=now,
        )
        self._rows[relationship.id] = relationship
        return relationship.model_copy(deep=True)

    async def get(
        self, relationship_id: UUID, *, include_deleted: bool = False
    ) -> Relationship:
        await self.faults.check("get")
        return self._require(
            relationship_id, include_deleted=include_deleted
        ).model_copy(deep=True)

    async def list_for_card(
        self, card_id: UUID, *, include_deleted: bool = False
    ) -> builtins.list[Relationship]:
        await self.faults.check("list_for_card")
        rows = [
            row
            for row in self._rows.values()
            if card_id in (row.from_card_id, row.to_card_id)
            and (include_deleted or not row.is_deleted)
        ]
        rows.sort(key=lambda row: row.created_at, reverse=True)
        return [row.model_copy(deep=True) for row in rows]

    async def list(self, *, include_deleted: bool = False) -> builtins.list[Relationship]:
        await self.faults.check("list")
        return [
            row.model_copy(deep=True)
            for row in self._rows.values()
            if include_deleted or not row.is_deleted
        ]

    async def update(
        self,
        relationship_id: UUID,
        patch: UpdateRelationshipRequest,
        *,
        expected_version: int | None = None,
    ) -> Relationship:
        await self.faults.check("update")
        current = self._require(relationship_id)
        _check_version(
            self.entity_type, relationship_id, expected_version, current.version
        )
        changes = patch.changes()
        valid_from = changes.get("valid_from", current.valid_from)
        valid_to = changes.get("valid_to", current.valid_to)
        if valid_to is not None and valid_to < valid_from:
            raise ValidationError({"valid_to": ["must not precede valid_from"]})
        return self._write(current, changes)

    async def delete(self, relationship_id: UUID) -> None:
        await self.faults.check("delete")
        current = self._require(relationship_id)
        self._write(current, {"status": EntityStatus.DELETED})

    async def delete_for_card(self, card_id: UUID) -> builtins.list[UUID]:
        await self.faults.check("delete_for_card")
        attached = [
            row
            for row in self._rows.values()
            if card_id in (row.from_card_id, row.to_card_id) and not row.is_deleted
        ]
        for row in attached:
            self._write(row, {"status": EntityStatus.DELETED})
        return [row.id for row in attached]

    async def purge(self, relationship_id: UUID) -> None:
        await self.faults.check("purge")
        if self._rows.pop(relationship_id, None) is None:
            raise EntityNotFoundError(self.entity_type, relationship_id)

    async def restore(self, relationship_id: UUID) -> Relationship:
        await self.faults.check("restore")
        current = self._require(relationship_id, include_deleted=True)
        if not current.is_deleted:
            raise InvariantViolationError(
                f"Relationship {relationship_id} is not deleted"
            )
        return self._write(current, {"status": EntityStatus.ACTIVE})

    # ── Internals ────────────────────────────────────────────────

    async def _endpoint_errors(
        self, from_card_id: UUID, to_card_id: UUID
    ) -> dict[str, builtins.list[str]]:
        errors: dict[str, builtins.list[str]] = {}
        for field_name, card_id in (
            ("from_card_id", from_card_id),
            ("to_card_id", to_card_id),
        ):
            try:
                await self._cards.get(card_id)
            except EntityNotFoundError:
                errors[field_name] = [f"card {card_id} does not exist"]
        return errors

    def _require(
        self, relationship_id: UUID, *, include_deleted: bool = False
    ) -> Relationship:
        row = self._rows.get(relationship_id)
        if row is None or (row.is_deleted and not include_deleted):
            raise EntityNotFoundError(self.entity_type, relationship_id)
        return row

    def _write(self, current: Relationship, changes: dict[str, Any]) -> Relationship:
        updated = current.model_copy(
            update={
                **changes,
                "version": current.version + 1,
                "updated_at": utc_now(),
            },
            deep=True,
        )
        self._rows[updated.id] = updated
        return updated.model_copy(deep=True)

    # ── Test helpers ─────────────────────────────────────────────

    def clear(self) -> None:
        self._rows.clear()

    def __len__(self) -> int:
        return len(self._rows)
