"""At-rest consistency check between the Entity Store and the Mirror Store.

The saga orchestrator keeps the two stores in step call by call, but a
failed compensation or a crash between the two writes leaves them
divergent with no record anywhere. :class:`ConsistencyChecker` finds
such drift by comparing both stores wholesale. It is read-only: it
reports, it does not repair.

Run it only while no saga is in flight; an in-flight call is
indistinguishable from drift.

USAGE:
    checker = ConsistencyChecker(cards, relationships, mirror)
    report = await checker.check()
    if report.status is ConsistencyStatus.INCONSISTENT:
        ...
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .domain.enums import CardType, EntityStatus, LifecyclePhase

if TYPE_CHECKING:
    from .ports.entity_store import ICardStore, IRelationshipStore
    from .ports.mirror_store import IMirrorStore

logger = logging.getLogger("archzero.consistency")

# Card fields that must agree between the two stores.
COMPARED_FIELDS: tuple[str, ...] = ("name", "card_type", "lifecycle_phase", "status")


class ConsistencyStatus(str, Enum):
    NORMAL = "normal"
    INCONSISTENT = "inconsistent"


class FieldMismatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    card_id: UUID
    field: str
    entity_value: str | None
    mirror_value: str | None


class ConsistencyReport(BaseModel):
    """Differences found between the two stores."""

    missing_in_mirror: list[UUID] = Field(default_factory=list)
    orphaned_in_mirror: list[UUID] = Field(default_factory=list)
    field_mismatches: list[FieldMismatch] = Field(default_factory=list)
    missing_edges: list[UUID] = Field(default_factory=list)
    orphaned_edges: list[UUID] = Field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not (
            self.missing_in_mirror
            or self.orphaned_in_mirror
            or self.field_mismatches
            or self.missing_edges
            or self.orphaned_edges
        )

    @property
    def status(self) -> ConsistencyStatus:
        if self.is_consistent:
            return ConsistencyStatus.NORMAL
        return ConsistencyStatus.INCONSISTENT


def _as_text(value: CardType | LifecyclePhase | EntityStatus | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    return value


class ConsistencyChecker:
    """Compares active cards and relationships against the mirror projection."""

    def __init__(
        self,
        card_store: ICardStore,
        relationship_store: IRelationshipStore,
        mirror: IMirrorStore,
    ) -> None:
        self._cards = card_store
        self._relationships = relationship_store
        self._mirror = mirror

    async def check(self) -> ConsistencyReport:
        report = ConsistencyReport()

        cards = {card.id: card for card in await self._cards.list()}
        nodes = {node.id: node for node in await self._mirror.list_nodes()}

        for card_id, card in cards.items():
            node = nodes.get(card_id)
            if node is None:
                report.missing_in_mirror.append(card_id)
                continue
            for field in COMPARED_FIELDS:
                entity_value = _as_text(getattr(card, field))
                mirror_value = _as_text(getattr(node, field))
                if entity_value != mirror_value:
                    report.field_mismatches.append(
                        FieldMismatch(
                            card_id=card_id,
                            field=field,
                            entity_value=entity_value,
                            mirror_value=mirror_value,
                        )
                    )
        report.orphaned_in_mirror.extend(
            node_id for node_id in nodes if node_id not in cards
        )

        expected_edges = {rel.id for rel in await self._relationships.list()}
        actual_edges = {edge.id for edge in await self._mirror.list_edges()}
        report.missing_edges.extend(sorted(expected_edges - actual_edges, key=str))
        report.orphaned_edges.extend(sorted(actual_edges - expected_edges, key=str))

        if report.is_consistent:
            logger.info(
                "Consistency check passed: %d cards, %d edges",
                len(cards),
                len(expected_edges),
            )
        else:
            logger.error(
                "Consistency check found drift: %d missing in mirror, "
                "%d orphaned nodes, %d field mismatches, %d missing edges, "
                "%d orphaned edges",
                len(report.missing_in_mirror),
                len(report.orphaned_in_mirror),
                len(report.field_mismatches),
                len(report.missing_edges),
                len(report.orphaned_edges),
            )
        return report
