"""SQLAlchemy implementation of the Entity Store.

Each call runs in its own session and transaction, so a returned write is
committed and visible to the next ``get``. Driver and constraint failures
surface as :class:`PrimaryStoreError`; contract errors (not found, version
conflict, validation) are raised as the same domain exceptions the
in-memory store raises.

Usage::

    engine = create_async_engine("postgresql+asyncpg://...")
    factory = async_sessionmaker(engine, expire_on_commit=False)
    cards = SQLAlchemyCardStore(factory)
    relationships = SQLAlchemyRelationshipStore(factory)
"""

from __future__ import annotations

import contextlib
import copy
from datetime import date, datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

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
from .models import CardModel, RelationshipModel

if TYPE_CHECKING:
    import builtins
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from ...domain.card import CreateCardRequest, UpdateCardRequest
    from ...domain.enums import CardType, LifecyclePhase
    from ...domain.relationship import (
        CreateRelationshipRequest,
        UpdateRelationshipRequest,
    )


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on DateTime(timezone=True) columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _card_from_model(model: CardModel) -> Card:
    return Card(
        id=model.id,
        name=model.name,
        card_type=model.card_type,
        lifecycle_phase=model.lifecycle_phase,
        quality_score=model.quality_score,
        description=model.description,
        owner_id=model.owner_id,
        attributes=copy.deepcopy(model.attributes),
        tags=list(model.tags or []),
        status=model.status,
        version=model.version,
        created_at=_aware(model.created_at),
        updated_at=_aware(model.updated_at),
    )


def _relationship_from_model(model: RelationshipModel) -> Relationship:
    return Relationship(
        id=model.id,
        from_card_id=model.from_card_id,
        to_card_id=model.to_card_id,
        relationship_type=model.relationship_type,
        valid_from=model.valid_from,
        valid_to=model.valid_to,
        attributes=copy.deepcopy(model.attributes),
        confidence=model.confidence,
        status=model.status,
        version=model.version,
        created_at=_aware(model.created_at),
        updated_at=_aware(model.updated_at),
    )


class _SQLAlchemyStore:
    entity_type: str

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @contextlib.asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session, session.begin():
                yield session
        except SQLAlchemyError as e:
            raise PrimaryStoreError(
                f"{self.entity_type} store operation failed: {e}"
            ) from e

    def _check_version(
        self, entity_id: UUID, expected: int | None, actual: int
    ) -> None:
        if expected is not None and expected != actual:
            raise OptimisticConcurrencyError(
                self.entity_type, entity_id, expected, actual
            )

    @staticmethod
    def _touch(model: CardModel | RelationshipModel, changes: dict[str, Any]) -> None:
        for key, value in changes.items():
            setattr(model, key, _column_value(value))
        model.version += 1
        model.updated_at = utc_now()


class SQLAlchemyCardStore(_SQLAlchemyStore, ICardStore):
    entity_type = "Card"

    async def create(self, request: CreateCardRequest) -> Card:
        now = utc_now()
        async with self._transaction() as session:
            model = CardModel(
                id=uuid4(),
                name=request.name,
                card_type=request.card_type.value,
                lifecycle_phase=request.lifecycle_phase.value,
                quality_score=request.quality_score,
                description=request.description,
                owner_id=request.owner_id,
                attributes=copy.deepcopy(request.attributes),
                tags=list(request.tags),
                status=EntityStatus.ACTIVE.value,
                version=1,
                created_at=now,
                updated_at=now,
            )
            session.add(model)
            card = _card_from_model(model)
        return card

    async def get(self, card_id: UUID, *, include_deleted: bool = False) -> Card:
        async with self._transaction() as session:
            model = await self._require(session, card_id, include_deleted)
            return _card_from_model(model)

    async def list(
        self,
        *,
        card_type: CardType | None = None,
        lifecycle_phase: LifecyclePhase | None = None,
        include_deleted: bool = False,
    ) -> builtins.list[Card]:
        stmt = select(CardModel).order_by(CardModel.created_at)
        if card_type is not None:
            stmt = stmt.where(CardModel.card_type == card_type.value)
        if lifecycle_phase is not None:
            stmt = stmt.where(CardModel.lifecycle_phase == lifecycle_phase.value)
        if not include_deleted:
            stmt = stmt.where(CardModel.status == EntityStatus.ACTIVE.value)
        async with self._transaction() as session:
            result = await session.scalars(stmt)
            return [_card_from_model(model) for model in result.all()]

    async def update(
        self,
        card_id: UUID,
        patch: UpdateCardRequest,
        *,
        expected_version: int | None = None,
    ) -> Card:
        async with self._transaction() as session:
            model = await self._require(session, card_id, False)
            self._check_version(card_id, expected_version, model.version)
            self._touch(model, patch.changes())
            card = _card_from_model(model)
        return card

    async def delete(self, card_id: UUID) -> None:
        async with self._transaction() as session:
            model = await self._require(session, card_id, False)
            self._touch(model, {"status": EntityStatus.DELETED})

    async def purge(self, card_id: UUID) -> None:
        async with self._transaction() as session:
            result = await session.execute(
                delete(CardModel).where(CardModel.id == card_id)
            )
            if result.rowcount == 0:
                raise EntityNotFoundError(self.entity_type, card_id)

    async def restore(self, card_id: UUID) -> Card:
        async with self._transaction() as session:
            model = await self._require(session, card_id, True)
            if model.status != EntityStatus.DELETED.value:
                raise InvariantViolationError(f"Card {card_id} is not deleted")
            self._touch(model, {"status": EntityStatus.ACTIVE})
            card = _card_from_model(model)
        return card

    async def _require(
        self, session: AsyncSession, card_id: UUID, include_deleted: bool
    ) -> CardModel:
        model = await session.get(CardModel, card_id)
        if model is None or (
            model.status == EntityStatus.DELETED.value and not include_deleted
        ):
            raise EntityNotFoundError(self.entity_type, card_id)
        return model


class SQLAlchemyRelationshipStore(_SQLAlchemyStore, IRelationshipStore):
    entity_type = "Relationship"

    async def create(self, request: CreateRelationshipRequest) -> Relationship:
        valid_from = request.valid_from or date.today()
        now = utc_now()
        async with self._transaction() as session:
            errors = await self._endpoint_errors(
                session, request.from_card_id, request.to_card_id
            )
            if request.valid_to is not None and request.valid_to < valid_from:
                errors.setdefault("valid_to", []).append("must not precede valid_from")
            duplicate = await session.scalar(
                select(RelationshipModel.id).where(
                    RelationshipModel.from_card_id == request.from_card_id,
                    RelationshipModel.to_card_id == request.to_card_id,
                    RelationshipModel.relationship_type
                    == request.relationship_type.value,
                    RelationshipModel.valid_from == valid_from,
                    RelationshipModel.status == EntityStatus.ACTIVE.value,
                )
            )
            if duplicate is not None:
                errors.setdefault("__root__", []).append(
                    "an identical relationship already exists"
                )
            if errors:
                raise ValidationError(errors)

            model = RelationshipModel(
                id=uuid4(),
                from_card_id=request.from_card_id,
                to_card_id=request.to_card_id,
                relationship_type=request.relationship_type.value,
                valid_from=valid_from,
                valid_to=request.valid_to,
                attributes=copy.deepcopy(request.attributes),
                confidence=request.confidence,
                status=EntityStatus.ACTIVE.value,
                version=1,
                created_at=now,
                updated_at=now,
            )
            session.add(model)
            relationship = _relationship_from_model(model)
        return relationship

    async def get(
        self, relationship_id: UUID, *, include_deleted: bool = False
    ) -> Relationship:
        async with self._transaction() as session:
            model = await self._require(session, relationship_id, include_deleted)
            return _relationship_from_model(model)

    async def list_for_card(
        self, card_id: UUID, *, include_deleted: bool = False
    ) -> builtins.list[Relationship]:
        stmt = (
            select(RelationshipModel)
            .where(
                (RelationshipModel.from_card_id == card_id)
                | (RelationshipModel.to_card_id == card_id)
            )
            .order_by(RelationshipModel.created_at.desc())
        )
        if not include_deleted:
            stmt = stmt.where(RelationshipModel.status == EntityStatus.ACTIVE.value)
        async with self._transaction() as session:
            result = await session.scalars(stmt)
            return [_relationship_from_model(model) for model in result.all()]

    async def list(
        self, *, include_deleted: bool = False
    ) -> builtins.list[Relationship]:
        stmt = select(RelationshipModel).order_by(RelationshipModel.created_at)
        if not include_deleted:
            stmt = stmt.where(RelationshipModel.status == EntityStatus.ACTIVE.value)
        async with self._transaction() as session:
            result = await session.scalars(stmt)
            return [_relationship_from_model(model) for model in result.all()]

    async def update(
        self,
        relationship_id: UUID,
        patch: UpdateRelationshipRequest,
        *,
        expected_version: int | None = None,
    ) -> Relationship:
        async with self._transaction() as session:
            model = await self._require(session, relationship_id, False)
            self._check_version(relationship_id, expected_version, model.version)
            changes = patch.changes()
            valid_from = changes.get("valid_from", model.valid_from)
            valid_to = changes.get("valid_to", model.valid_to)
            if valid_to is not None and valid_to < valid_from:
                raise ValidationError({"valid_to": ["must not precede valid_from"]})
            self._touch(model, changes)
            relationship = _relationship_from_model(model)
        return relationship

    async def delete(self, relationship_id: UUID) -> None:
        async with self._transaction() as session:
            model = await self._require(session, relationship_id, False)
            self._touch(model, {"status": EntityStatus.DELETED})

    async def delete_for_card(self, card_id: UUID) -> builtins.list[UUID]:
        stmt = select(RelationshipModel).where(
            (RelationshipModel.from_card_id == card_id)
            | (RelationshipModel.to_card_id == card_id),
            RelationshipModel.status == EntityStatus.ACTIVE.value,
        )
        async with self._transaction() as session:
            models = (await session.scalars(stmt)).all()
            for model in models:
                self._touch(model, {"status": EntityStatus.DELETED})
            deleted = [model.id for model in models]
        return deleted

    async def purge(self, relationship_id: UUID) -> None:
        async with self._transaction() as session:
            result = await session.execute(
                delete(RelationshipModel).where(RelationshipModel.id == relationship_id)
            )
            if result.rowcount == 0:
                raise EntityNotFoundError(self.entity_type, relationship_id)

    async def restore(self, relationship_id: UUID) -> Relationship:
        async with self._transaction() as session:
            model = await self._require(session, relationship_id, True)
            if model.status != EntityStatus.DELETED.value:
                raise InvariantViolationError(
                    f"Relationship {relationship_id} is not deleted"
                )
            self._touch(model, {"status": EntityStatus.ACTIVE})
            relationship = _relationship_from_model(model)
        return relationship

    async def _require(
        self, session: AsyncSession, relationship_id: UUID, include_deleted: bool
    ) -> RelationshipModel:
        model = await session.get(RelationshipModel, relationship_id)
        if model is None or (
            model.status == EntityStatus.DELETED.value and not include_deleted
        ):
            raise EntityNotFoundError(self.entity_type, relationship_id)
        return model

    async def _endpoint_errors(
        self, session: AsyncSession, from_card_id: UUID, to_card_id: UUID
    ) -> dict[str, builtins.list[str]]:
        result = await session.scalars(
            select(CardModel.id).where(
                CardModel.id.in_([from_card_id, to_card_id]),
                CardModel.status == EntityStatus.ACTIVE.value,
            )
        )
        active = set(result.all())
        errors: dict[str, builtins.list[str]] = {}
        for field_name, card_id in (
            ("from_card_id", from_card_id),
            ("to_card_id", to_card_id),
        ):
            if card_id not in active:
                errors[field_name] = [f"card {card_id} does not exist"]
        return errors
