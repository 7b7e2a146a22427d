"""Concurrent sagas: independence across ids and serialisation of the same id."""

from __future__ import annotations

import asyncio

import pytest

from archzero_sync.adapters.memory import InMemoryLockStrategy
from archzero_sync.domain import UpdateCardRequest
from archzero_sync.primitives import (
    CompensationOutcome,
    LockAcquisitionError,
    SyncFailure,
)
from archzero_sync.sagas import OrchestratorConfig, SagaOrchestrator


@pytest.fixture
def locked_orchestrator(cards, relationships, mirror, hook_registry) -> SagaOrchestrator:
    return SagaOrchestrator(
        cards,
        relationships,
        mirror,
        config=OrchestratorConfig(lock_timeout=1.0),
        lock_strategy=InMemoryLockStrategy(),
        hook_registry=hook_registry,
    )


class TestIndependentSagas:
    async def test_interleaved_creates_all_commit(
        self, orchestrator, cards, mirror, card_request
    ) -> None:
        mirror.faults.delay("create_node", 0.01)

        created = await asyncio.gather(
            *(orchestrator.create_card(card_request(f"Service {i}")) for i in range(10))
        )

        assert len({card.id for card in created}) == 10
        assert len(cards) == 10
        assert len(mirror) == 10

    async def test_one_failure_does_not_disturb_others(
        self, orchestrator, cards, mirror, card_request
    ) -> None:
        mirror.faults.delay("create_node", 0.01)
        mirror.faults.fail_next("create_node")

        results = await asyncio.gather(
            *(orchestrator.create_card(card_request(f"Service {i}")) for i in range(5)),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, SyncFailure)]
        created = [r for r in results if not isinstance(r, BaseException)]
        assert len(failures) == 1
        assert failures[0].outcome is CompensationOutcome.COMPENSATED_OK
        assert len(created) == 4
        assert {c.id for c in await cards.list()} == {c.id for c in created}
        assert {n.id for n in await mirror.list_nodes()} == {c.id for c in created}

    async def test_compensation_only_touches_its_own_entity(
        self, orchestrator, cards, mirror, card_request
    ) -> None:
        first = await orchestrator.create_card(card_request("First"))
        second = await orchestrator.create_card(card_request("Second"))
        mirror.faults.delay("update_node", 0.01)
        mirror.faults.fail_next("update_node")

        results = await asyncio.gather(
            orchestrator.update_card(first.id, UpdateCardRequest(name="First v2")),
            orchestrator.update_card(second.id, UpdateCardRequest(name="Second v2")),
            return_exceptions=True,
        )

        failed = next(r for r in results if isinstance(r, SyncFailure))
        succeeded = next(r for r in results if not isinstance(r, BaseException))
        reverted = await cards.get(failed.entity_id)  # type: ignore[arg-type]
        assert reverted.name in {"First", "Second"}
        assert (await cards.get(succeeded.id)).name.endswith("v2")
        assert mirror.get_node(succeeded.id).name == succeeded.name  # type: ignore[union-attr]


class TestSameIdSerialisation:
    async def test_locked_updates_leave_stores_in_agreement(
        self, locked_orchestrator, cards, mirror, card_request
    ) -> None:
        card = await locked_orchestrator.create_card(card_request())
        mirror.faults.delay("update_node", 0.02)

        await asyncio.gather(
            locked_orchestrator.update_card(card.id, UpdateCardRequest(name="A")),
            locked_orchestrator.update_card(card.id, UpdateCardRequest(name="B")),
        )

        stored = await cards.get(card.id)
        node = mirror.get_node(card.id)
        assert stored.version == 3
        assert node is not None
        assert node.name == stored.name

    async def test_lock_timeout_raises_before_any_write(
        self, cards, relationships, mirror, card_request
    ) -> None:
        orchestrator = SagaOrchestrator(
            cards,
            relationships,
            mirror,
            config=OrchestratorConfig(lock_timeout=0.01),
            lock_strategy=InMemoryLockStrategy(),
        )
        card = await orchestrator.create_card(card_request())
        mirror.faults.delay("update_node", 0.2)

        results = await asyncio.gather(
            orchestrator.update_card(card.id, UpdateCardRequest(name="A")),
            orchestrator.update_card(card.id, UpdateCardRequest(name="B")),
            return_exceptions=True,
        )

        assert sum(isinstance(r, LockAcquisitionError) for r in results) == 1
        assert (await cards.get(card.id)).version == 2

    async def test_locks_released_after_failure(
        self, locked_orchestrator, mirror, card_request
    ) -> None:
        card = await locked_orchestrator.create_card(card_request())
        mirror.faults.fail_next("update_node")

        with pytest.raises(SyncFailure):
            await locked_orchestrator.update_card(card.id, UpdateCardRequest(name="A"))

        updated = await locked_orchestrator.update_card(
            card.id, UpdateCardRequest(name="B")
        )
        assert updated.name == "B"
