"""Tests for SagaOrchestrator relationship operations."""

from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest

from archzero_sync.domain import Relationship, UpdateRelationshipRequest
from archzero_sync.ports import MirrorEdge
from archzero_sync.primitives import (
    CompensationOutcome,
    EntityNotFoundError,
    SyncFailure,
    ValidationError,
)

VOLATILE = {"version", "updated_at"}


def observable(relationship: Relationship) -> dict[str, object]:
    return relationship.model_dump(exclude=VOLATILE)


@pytest.fixture
async def endpoints(orchestrator, card_request):
    source = await orchestrator.create_card(card_request("Checkout"))
    target = await orchestrator.create_card(card_request("Payments API"))
    return source, target


# ═══════════════════════════════════════════════════════════════════════
# create_relationship
# ═══════════════════════════════════════════════════════════════════════


class TestCreateRelationship:
    async def test_writes_row_and_edge(
        self, orchestrator, relationships, mirror, endpoints, relationship_request
    ) -> None:
        source, target = endpoints

        rel = await orchestrator.create_relationship(
            relationship_request(source.id, target.id, confidence=0.9)
        )

        assert await relationships.get(rel.id) == rel
        assert mirror.get_edge(rel.id) == MirrorEdge.from_relationship(rel)
        assert await mirror.dependents(target.id) == [source.id]

    async def test_missing_endpoint_is_a_primary_error(
        self, orchestrator, relationships, mirror, endpoints, relationship_request
    ) -> None:
        source, _ = endpoints

        with pytest.raises(ValidationError):
            await orchestrator.create_relationship(
                relationship_request(source.id, uuid4())
            )

        assert "create_edge" not in mirror.faults.calls
        assert len(relationships) == 0

    async def test_mirror_failure_purges_row(
        self, orchestrator, relationships, mirror, endpoints, relationship_request
    ) -> None:
        source, target = endpoints
        mirror.faults.fail_next("create_edge")

        with pytest.raises(SyncFailure) as exc_info:
            await orchestrator.create_relationship(
                relationship_request(source.id, target.id)
            )

        assert exc_info.value.outcome is CompensationOutcome.COMPENSATED_OK
        assert exc_info.value.entity_type == "relationship"
        assert len(relationships) == 0
        assert await mirror.list_edges() == []

    async def test_endpoint_missing_in_mirror_is_compensated(
        self, orchestrator, relationships, mirror, endpoints, relationship_request
    ) -> None:
        source, target = endpoints
        await mirror.delete_node(target.id)

        with pytest.raises(SyncFailure) as exc_info:
            await orchestrator.create_relationship(
                relationship_request(source.id, target.id)
            )

        assert exc_info.value.integrity_preserved
        assert len(relationships) == 0

    async def test_failed_purge_reports_inconsistency(
        self, orchestrator, relationships, mirror, endpoints, relationship_request
    ) -> None:
        source, target = endpoints
        mirror.faults.fail_next("create_edge")
        relationships.faults.fail_next("purge")

        with pytest.raises(SyncFailure) as exc_info:
            await orchestrator.create_relationship(
                relationship_request(source.id, target.id)
            )

        assert exc_info.value.outcome is CompensationOutcome.COMPENSATION_FAILED
        assert len(relationships) == 1


# ═══════════════════════════════════════════════════════════════════════
# update_relationship / delete_relationship
# ═══════════════════════════════════════════════════════════════════════


class TestUpdateRelationship:
    async def test_updates_both_stores(
        self, orchestrator, relationships, mirror, endpoints, relationship_request
    ) -> None:
        source, target = endpoints
        rel = await orchestrator.create_relationship(
            relationship_request(source.id, target.id, valid_from=date(2025, 1, 1))
        )

        updated = await orchestrator.update_relationship(
            rel.id,
            UpdateRelationshipRequest(valid_to=date(2025, 12, 31), confidence=0.5),
        )

        assert updated.version == 2
        edge = mirror.get_edge(rel.id)
        assert edge is not None
        assert edge.valid_to == date(2025, 12, 31)
        assert edge.confidence == 0.5

    async def test_mirror_failure_restores_snapshot(
        self, orchestrator, relationships, mirror, endpoints, relationship_request
    ) -> None:
        source, target = endpoints
        rel = await orchestrator.create_relationship(
            relationship_request(
                source.id,
                target.id,
                valid_from=date(2025, 1, 1),
                attributes={"protocol": "grpc"},
            )
        )
        before = await relationships.get(rel.id)
        mirror.faults.fail_next("update_edge")

        with pytest.raises(SyncFailure) as exc_info:
            await orchestrator.update_relationship(
                rel.id,
                UpdateRelationshipRequest(
                    valid_to=date(2026, 1, 1), attributes=None, confidence=0.1
                ),
            )

        assert exc_info.value.integrity_preserved
        assert observable(await relationships.get(rel.id)) == observable(before)
        assert mirror.get_edge(rel.id) == MirrorEdge.from_relationship(before)

    async def test_failed_revert_reports_inconsistency(
        self, orchestrator, relationships, mirror, endpoints, relationship_request
    ) -> None:
        source, target = endpoints
        rel = await orchestrator.create_relationship(
            relationship_request(source.id, target.id, confidence=0.9)
        )
        mirror.faults.fail_next("update_edge")
        relationships.faults.fail_next("update", skip=1)

        with pytest.raises(SyncFailure) as exc_info:
            await orchestrator.update_relationship(
                rel.id, UpdateRelationshipRequest(confidence=0.2)
            )

        failure = exc_info.value
        assert failure.outcome is CompensationOutcome.COMPENSATION_FAILED
        assert failure.entity_id == rel.id
        # The patch stuck in the Entity Store; the edge still has the old value.
        stored = await relationships.get(rel.id)
        assert stored.confidence == 0.2
        assert stored.version == 2
        edge = mirror.get_edge(rel.id)
        assert edge is not None
        assert edge.confidence == 0.9

    async def test_missing_relationship_propagates(self, orchestrator, mirror) -> None:
        with pytest.raises(EntityNotFoundError):
            await orchestrator.update_relationship(
                uuid4(), UpdateRelationshipRequest(confidence=0.3)
            )
        assert "update_edge" not in mirror.faults.calls


class TestDeleteRelationship:
    async def test_soft_deletes_row_and_removes_edge(
        self, orchestrator, relationships, mirror, endpoints, relationship_request
    ) -> None:
        source, target = endpoints
        rel = await orchestrator.create_relationship(
            relationship_request(source.id, target.id)
        )

        await orchestrator.delete_relationship(rel.id)

        with pytest.raises(EntityNotFoundError):
            await relationships.get(rel.id)
        assert (await relationships.get(rel.id, include_deleted=True)).is_deleted
        assert mirror.get_edge(rel.id) is None

    async def test_mirror_failure_restores_in_place(
        self, orchestrator, relationships, mirror, endpoints, relationship_request
    ) -> None:
        source, target = endpoints
        rel = await orchestrator.create_relationship(
            relationship_request(source.id, target.id)
        )
        mirror.faults.fail_next("delete_edge")

        with pytest.raises(SyncFailure) as exc_info:
            await orchestrator.delete_relationship(rel.id)

        assert exc_info.value.integrity_preserved
        restored = await relationships.get(rel.id)
        assert observable(restored) == observable(rel)
        assert mirror.get_edge(rel.id) is not None

    async def test_failed_restore_reports_inconsistency(
        self, orchestrator, relationships, mirror, endpoints, relationship_request
    ) -> None:
        source, target = endpoints
        rel = await orchestrator.create_relationship(
            relationship_request(source.id, target.id)
        )
        mirror.faults.fail_next("delete_edge")
        relationships.faults.fail_next("restore")

        with pytest.raises(SyncFailure) as exc_info:
            await orchestrator.delete_relationship(rel.id)

        assert exc_info.value.outcome is CompensationOutcome.COMPENSATION_FAILED
        assert await relationships.list() == []
        assert mirror.get_edge(rel.id) is not None
