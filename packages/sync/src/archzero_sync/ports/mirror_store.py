"""IMirrorStore: the graph-shaped projection of the catalog.

The mirror is never used for primary reads of a single entity. Each write
is idempotent at single-call granularity (create-if-absent, update-by-id,
delete-by-id); the orchestrator does not retry them. Failures are reported
as ``MirrorStoreError``.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ..domain.enums import CardType, EntityStatus, LifecyclePhase, RelationshipType

if TYPE_CHECKING:
    from ..domain.card import Card
    from ..domain.relationship import Relationship


class MirrorNode(BaseModel):
    """Projection of a card as stored in the mirror."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    card_type: CardType
    lifecycle_phase: LifecyclePhase
    status: EntityStatus
    quality_score: int | None = None
    description: str | None = None
    updated_at: datetime

    @classmethod
    def from_card(cls, card: Card) -> MirrorNode:
        return cls(
            id=card.id,
            name=card.name,
            card_type=card.card_type,
            lifecycle_phase=card.lifecycle_phase,
            status=card.status,
            quality_score=card.quality_score,
            description=card.description,
            updated_at=card.updated_at,
        )


class MirrorEdge(BaseModel):
    """Projection of a relationship as stored in the mirror."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    from_id: UUID
    to_id: UUID
    relationship_type: RelationshipType
    valid_from: date
    valid_to: date | None = None
    confidence: float = 1.0

    @classmethod
    def from_relationship(cls, relationship: Relationship) -> MirrorEdge:
        return cls(
            id=relationship.id,
            from_id=relationship.from_card_id,
            to_id=relationship.to_card_id,
            relationship_type=relationship.relationship_type,
            valid_from=relationship.valid_from,
            valid_to=relationship.valid_to,
            confidence=(
                relationship.confidence if relationship.confidence is not None else 1.0
            ),
        )


@runtime_checkable
class IMirrorStore(Protocol):
    """Write side of the mirror, plus the bulk reads used by reconciliation."""

    async def create_node(self, card: Card) -> None:
        """Create the node if absent, otherwise overwrite its projection."""
        ...

    async def update_node(self, card: Card) -> None:
        """Update the node's projection; a missing node is an error."""
        ...

    async def delete_node(self, card_id: UUID) -> None:
        """Detach-delete the node (its edges go with it); missing is a no-op."""
        ...

    async def create_edge(self, relationship: Relationship) -> None:
        """Create the edge; both endpoint nodes must already exist."""
        ...

    async def update_edge(self, relationship: Relationship) -> None: ...

    async def delete_edge(self, relationship_id: UUID) -> None: ...

    async def list_nodes(self) -> list[MirrorNode]: ...

    async def list_edges(self) -> list[MirrorEdge]: ...
