"""InMemoryMirrorStore: dict-backed graph projection with traversal queries."""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from ...domain.enums import DEPENDENCY_TYPES
from ...ports.graph import IGraphTraversal, TopologyMetrics, criticality_boost
from ...ports.mirror_store import IMirrorStore, MirrorEdge, MirrorNode
from ...primitives.exceptions import MirrorStoreError
from .faults import FaultInjector

if TYPE_CHECKING:
    from uuid import UUID

    from ...domain.card import Card
    from ...domain.relationship import Relationship

logger = logging.getLogger("archzero.mirror")


class InMemoryMirrorStore(IMirrorStore, IGraphTraversal):
    """
    In-memory stand-in for the graph database.

    Nodes and edges are kept as immutable projections keyed by id. Every
    write passes through :attr:`faults` first, so tests can make any single
    mirror operation fail or stall.
    """

    def __init__(self) -> None:
        self._nodes: dict[UUID, MirrorNode] = {}
        self._edges: dict[UUID, MirrorEdge] = {}
        self.faults = FaultInjector(MirrorStoreError)

    # ── Writes ───────────────────────────────────────────────────

    async def create_node(self, card: Card) -> None:
        await self.faults.check("create_node")
        self._nodes[card.id] = MirrorNode.from_card(card)
        logger.debug("Mirror node upserted: %s", card.id)

    async def update_node(self, card: Card) -> None:
        await self.faults.check("update_node")
        if card.id not in self._nodes:
            raise MirrorStoreError(f"Card node {card.id} not found")
        self._nodes[card.id] = MirrorNode.from_card(card)

    async def delete_node(self, card_id: UUID) -> None:
        await self.faults.check("delete_node")
        if self._nodes.pop(card_id, None) is None:
            return
        detached = [
            edge_id
            for edge_id, edge in self._edges.items()
            if card_id in (edge.from_id, edge.to_id)
        ]
        for edge_id in detached:
            del self._edges[edge_id]
        logger.debug("Mirror node deleted: %s (%d edges detached)", card_id, len(detached))

    async def create_edge(self, relationship: Relationship) -> None:
        await self.faults.check("create_edge")
        missing = [
            card_id
            for card_id in (relationship.from_card_id, relationship.to_card_id)
            if card_id not in self._nodes
        ]
        if missing:
            raise MirrorStoreError(
                f"Cannot create edge {relationship.id}: "
                f"missing node(s) {', '.join(str(m) for m in missing)}"
            )
        self._edges[relationship.id] = MirrorEdge.from_relationship(relationship)

    async def update_edge(self, relationship: Relationship) -> None:
        await self.faults.check("update_edge")
        if relationship.id not in self._edges:
            raise MirrorStoreError(f"Edge {relationship.id} not found")
        self._edges[relationship.id] = MirrorEdge.from_relationship(relationship)

    async def delete_edge(self, relationship_id: UUID) -> None:
        await self.faults.check("delete_edge")
        self._edges.pop(relationship_id, None)

    # ── Bulk reads ───────────────────────────────────────────────

    async def list_nodes(self) -> list[MirrorNode]:
        return list(self._nodes.values())

    async def list_edges(self) -> list[MirrorEdge]:
        return list(self._edges.values())

    def get_node(self, card_id: UUID) -> MirrorNode | None:
        return self._nodes.get(card_id)

    def get_edge(self, relationship_id: UUID) -> MirrorEdge | None:
        return self._edges.get(relationship_id)

    # ── Traversal ────────────────────────────────────────────────

    def _outgoing(self, card_id: UUID) -> list[UUID]:
        targets: dict[UUID, None] = {}
        for edge in self._edges.values():
            if edge.from_id == card_id and edge.relationship_type in DEPENDENCY_TYPES:
                targets.setdefault(edge.to_id, None)
        return list(targets)

    def _incoming(self, card_id: UUID) -> list[UUID]:
        sources: dict[UUID, None] = {}
        for edge in self._edges.values():
            if edge.to_id == card_id and edge.relationship_type in DEPENDENCY_TYPES:
                sources.setdefault(edge.from_id, None)
        return list(sources)

    async def dependencies(self, card_id: UUID) -> list[UUID]:
        return self._outgoing(card_id)

    async def dependents(self, card_id: UUID) -> list[UUID]:
        return self._incoming(card_id)

    async def topology_metrics(self, card_id: UUID) -> TopologyMetrics:
        fan_in = len(self._incoming(card_id))
        fan_out = len(self._outgoing(card_id))
        return TopologyMetrics(
            card_id=card_id,
            fan_in=fan_in,
            fan_out=fan_out,
            total_connections=fan_in + fan_out,
            criticality_boost=criticality_boost(fan_in),
        )

    async def transitive_dependencies(
        self, card_id: UUID, *, max_depth: int | None = None
    ) -> list[UUID]:
        seen: dict[UUID, None] = {}
        queue: deque[tuple[UUID, int]] = deque([(card_id, 0)])
        while queue:
            current, depth = queue.popleft()
            if max_depth is not None and depth >= max_depth:
                continue
            for target in self._outgoing(current):
                if target != card_id and target not in seen:
                    seen[target] = None
                    queue.append((target, depth + 1))
        return list(seen)

    async def find_path(self, source_id: UUID, target_id: UUID) -> list[UUID] | None:
        if source_id not in self._nodes or target_id not in self._nodes:
            return None
        if source_id == target_id:
            return [source_id]

        parents: dict[UUID, UUID] = {}
        queue: deque[UUID] = deque([source_id])
        while queue:
            current = queue.popleft()
            for target in self._outgoing(current):
                if target == source_id or target in parents:
                    continue
                parents[target] = current
                if target == target_id:
                    path = [target]
                    while path[-1] != source_id:
                        path.append(parents[path[-1]])
                    path.reverse()
                    return path
                queue.append(target)
        return None

    # ── Test helpers ─────────────────────────────────────────────

    def clear(self) -> None:
        self._nodes.clear()
        self._edges.clear()

    def __len__(self) -> int:
        return len(self._nodes)
