"""Integration tests for the SQLAlchemy Entity Store (aiosqlite, in-memory)."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from archzero_sync.adapters.memory import InMemoryMirrorStore
from archzero_sync.adapters.sqlalchemy import (
    Base,
    SQLAlchemyCardStore,
    SQLAlchemyRelationshipStore,
)
from archzero_sync.consistency import ConsistencyChecker
from archzero_sync.domain import (
    CardType,
    EntityStatus,
    LifecyclePhase,
    UpdateCardRequest,
    UpdateRelationshipRequest,
)
from archzero_sync.primitives import (
    CompensationOutcome,
    EntityNotFoundError,
    InvariantViolationError,
    OptimisticConcurrencyError,
    SyncFailure,
    ValidationError,
)
from archzero_sync.sagas import SagaOrchestrator

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def sql_cards(session_factory) -> SQLAlchemyCardStore:
    return SQLAlchemyCardStore(session_factory)


@pytest.fixture
def sql_relationships(session_factory) -> SQLAlchemyRelationshipStore:
    return SQLAlchemyRelationshipStore(session_factory)


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


class TestSQLAlchemyCardStore:
    async def test_create_and_get(self, sql_cards, card_request) -> None:
        card = await sql_cards.create(
            card_request(
                attributes={"hosting": {"region": "eu"}},
                tags=["pci"],
                quality_score=75,
            )
        )

        fetched = await sql_cards.get(card.id)

        assert fetched == card
        assert fetched.attributes == {"hosting": {"region": "eu"}}
        assert fetched.created_at.tzinfo is not None

    async def test_list_filters(self, sql_cards, card_request) -> None:
        app = await sql_cards.create(card_request("Ledger"))
        risk = await sql_cards.create(
            card_request("Lock-in", card_type=CardType.RISK)
        )
        await sql_cards.delete(app.id)

        assert [c.id for c in await sql_cards.list()] == [risk.id]
        assert await sql_cards.list(card_type=CardType.APPLICATION) == []
        assert len(await sql_cards.list(include_deleted=True)) == 2
        assert len(await sql_cards.list(lifecycle_phase=LifecyclePhase.ACTIVE)) == 1

    async def test_update_patch_semantics(self, sql_cards, card_request) -> None:
        card = await sql_cards.create(card_request(description="old", tags=["a"]))

        updated = await sql_cards.update(
            card.id,
            UpdateCardRequest(lifecycle_phase=LifecyclePhase.RETIRED, tags=None),
        )

        assert updated.version == 2
        assert updated.lifecycle_phase is LifecyclePhase.RETIRED
        assert updated.description == "old"
        assert updated.tags == []
        assert await sql_cards.get(card.id) == updated

    async def test_update_version_conflict(self, sql_cards, card_request) -> None:
        card = await sql_cards.create(card_request())

        with pytest.raises(OptimisticConcurrencyError):
            await sql_cards.update(
                card.id, UpdateCardRequest(name="x"), expected_version=2
            )

    async def test_delete_restore_purge(self, sql_cards, card_request) -> None:
        card = await sql_cards.create(card_request())

        await sql_cards.delete(card.id)
        with pytest.raises(EntityNotFoundError):
            await sql_cards.get(card.id)
        deleted = await sql_cards.get(card.id, include_deleted=True)
        assert deleted.status is EntityStatus.DELETED

        restored = await sql_cards.restore(card.id)
        assert restored.id == card.id
        with pytest.raises(InvariantViolationError):
            await sql_cards.restore(card.id)

        await sql_cards.purge(card.id)
        with pytest.raises(EntityNotFoundError):
            await sql_cards.purge(card.id)

    async def test_missing_card(self, sql_cards) -> None:
        with pytest.raises(EntityNotFoundError):
            await sql_cards.update(uuid4(), UpdateCardRequest(name="x"))


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------


class TestSQLAlchemyRelationshipStore:
    async def test_create_validates_endpoints(
        self, sql_cards, sql_relationships, card_request, relationship_request
    ) -> None:
        a = await sql_cards.create(card_request("A"))

        with pytest.raises(ValidationError) as exc_info:
            await sql_relationships.create(relationship_request(a.id, uuid4()))
        assert "to_card_id" in exc_info.value.errors

    async def test_create_update_and_duplicates(
        self, sql_cards, sql_relationships, card_request, relationship_request
    ) -> None:
        a = await sql_cards.create(card_request("A"))
        b = await sql_cards.create(card_request("B"))
        start = date(2025, 1, 1)

        rel = await sql_relationships.create(
            relationship_request(a.id, b.id, valid_from=start)
        )
        with pytest.raises(ValidationError):
            await sql_relationships.create(
                relationship_request(a.id, b.id, valid_from=start)
            )

        updated = await sql_relationships.update(
            rel.id, UpdateRelationshipRequest(confidence=0.6)
        )
        assert updated.confidence == 0.6
        assert [r.id for r in await sql_relationships.list_for_card(b.id)] == [rel.id]

    async def test_delete_and_restore(
        self, sql_cards, sql_relationships, card_request, relationship_request
    ) -> None:
        a = await sql_cards.create(card_request("A"))
        b = await sql_cards.create(card_request("B"))
        rel = await sql_relationships.create(relationship_request(a.id, b.id))

        await sql_relationships.delete(rel.id)
        assert await sql_relationships.list() == []

        restored = await sql_relationships.restore(rel.id)
        assert restored.id == rel.id
        assert restored.status is EntityStatus.ACTIVE

    async def test_delete_for_card(
        self, sql_cards, sql_relationships, card_request, relationship_request
    ) -> None:
        a = await sql_cards.create(card_request("A"))
        b = await sql_cards.create(card_request("B"))
        c = await sql_cards.create(card_request("C"))
        attached = await sql_relationships.create(relationship_request(a.id, b.id))
        other = await sql_relationships.create(relationship_request(a.id, c.id))

        assert await sql_relationships.delete_for_card(b.id) == [attached.id]

        assert [r.id for r in await sql_relationships.list()] == [other.id]
        deleted = await sql_relationships.get(attached.id, include_deleted=True)
        assert deleted.version == 2


# ---------------------------------------------------------------------------
# Saga over the relational store
# ---------------------------------------------------------------------------


class TestSagaOverSQLAlchemy:
    async def test_round_trip_and_compensation(
        self, sql_cards, sql_relationships, card_request
    ) -> None:
        mirror = InMemoryMirrorStore()
        orchestrator = SagaOrchestrator(sql_cards, sql_relationships, mirror)

        card = await orchestrator.create_card(card_request(description="before"))
        before = await sql_cards.get(card.id)

        mirror.faults.fail_next("update_node")
        with pytest.raises(SyncFailure) as exc_info:
            await orchestrator.update_card(
                card.id, UpdateCardRequest(description=None, name="after")
            )

        assert exc_info.value.outcome is CompensationOutcome.COMPENSATED_OK
        after = await sql_cards.get(card.id)
        assert after.model_dump(exclude={"version", "updated_at"}) == before.model_dump(
            exclude={"version", "updated_at"}
        )

        mirror.faults.fail_next("delete_node")
        with pytest.raises(SyncFailure):
            await orchestrator.delete_card(card.id)
        assert (await sql_cards.get(card.id)).id == card.id

        checker = ConsistencyChecker(sql_cards, sql_relationships, mirror)
        assert (await checker.check()).is_consistent

    async def test_delete_card_takes_relationships_along(
        self, sql_cards, sql_relationships, card_request, relationship_request
    ) -> None:
        mirror = InMemoryMirrorStore()
        orchestrator = SagaOrchestrator(sql_cards, sql_relationships, mirror)
        a = await orchestrator.create_card(card_request("A"))
        b = await orchestrator.create_card(card_request("B"))
        rel = await orchestrator.create_relationship(relationship_request(a.id, b.id))

        await orchestrator.delete_card(a.id)

        assert await sql_relationships.list() == []
        with pytest.raises(EntityNotFoundError):
            await orchestrator.update_relationship(
                rel.id, UpdateRelationshipRequest(confidence=0.5)
            )
        checker = ConsistencyChecker(sql_cards, sql_relationships, mirror)
        assert (await checker.check()).is_consistent
