"""Shared fixtures: in-memory stores wired into an orchestrator."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from uuid import UUID

import pytest

from archzero_sync.adapters.memory import (
    InMemoryCardStore,
    InMemoryMirrorStore,
    InMemoryRelationshipStore,
)
from archzero_sync.domain import (
    CardType,
    CreateCardRequest,
    CreateRelationshipRequest,
    LifecyclePhase,
    RelationshipType,
)
from archzero_sync.instrumentation import HookRegistry
from archzero_sync.sagas import SagaOrchestrator


@pytest.fixture
def cards() -> InMemoryCardStore:
    return InMemoryCardStore()


@pytest.fixture
def relationships(cards: InMemoryCardStore) -> InMemoryRelationshipStore:
    return InMemoryRelationshipStore(cards)


@pytest.fixture
def mirror() -> InMemoryMirrorStore:
    return InMemoryMirrorStore()


@pytest.fixture
def hook_registry() -> HookRegistry:
    return HookRegistry()


@pytest.fixture
def orchestrator(
    cards: InMemoryCardStore,
    relationships: InMemoryRelationshipStore,
    mirror: InMemoryMirrorStore,
    hook_registry: HookRegistry,
) -> SagaOrchestrator:
    return SagaOrchestrator(cards, relationships, mirror, hook_registry=hook_registry)


@pytest.fixture
def card_request() -> Callable[..., CreateCardRequest]:
    def _make(name: str = "Payments API", **overrides: Any) -> CreateCardRequest:
        data: dict[str, Any] = {
            "name": name,
            "card_type": CardType.APPLICATION,
            "lifecycle_phase": LifecyclePhase.ACTIVE,
        }
        data.update(overrides)
        return CreateCardRequest(**data)

    return _make


@pytest.fixture
def relationship_request() -> Callable[..., CreateRelationshipRequest]:
    def _make(
        from_card_id: UUID,
        to_card_id: UUID,
        relationship_type: RelationshipType = RelationshipType.DEPENDS_ON,
        **overrides: Any,
    ) -> CreateRelationshipRequest:
        return CreateRelationshipRequest(
            from_card_id=from_card_id,
            to_card_id=to_card_id,
            relationship_type=relationship_type,
            **overrides,
        )

    return _make
