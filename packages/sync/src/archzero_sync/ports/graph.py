"""IGraphTraversal: traversal queries answered by the mirror store."""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class CriticalityLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


# Fan-in thresholds at which topology escalates a card's criticality.
FAN_IN_THRESHOLDS: tuple[tuple[int, CriticalityLevel], ...] = (
    (50, CriticalityLevel.CRITICAL),
    (20, CriticalityLevel.HIGH),
    (10, CriticalityLevel.MEDIUM),
)


def criticality_boost(fan_in: int) -> CriticalityLevel | None:
    for threshold, level in FAN_IN_THRESHOLDS:
        if fan_in >= threshold:
            return level
    return None


class TopologyMetrics(BaseModel):
    """Fan-in / fan-out of a card over dependency edges."""

    model_config = ConfigDict(frozen=True)

    card_id: UUID
    fan_in: int
    fan_out: int
    total_connections: int
    criticality_boost: CriticalityLevel | None = None


@runtime_checkable
class IGraphTraversal(Protocol):
    """Dependency traversal over ``dependsOn`` / ``reliesOn`` edges."""

    async def dependencies(self, card_id: UUID) -> list[UUID]:
        """Cards that *card_id* depends on (outgoing edges)."""
        ...

    async def dependents(self, card_id: UUID) -> list[UUID]:
        """Cards that depend on *card_id* (incoming edges)."""
        ...

    async def topology_metrics(self, card_id: UUID) -> TopologyMetrics: ...

    async def transitive_dependencies(
        self, card_id: UUID, *, max_depth: int | None = None
    ) -> list[UUID]: ...

    async def find_path(self, source_id: UUID, target_id: UUID) -> list[UUID] | None:
        """Shortest dependency chain from *source_id* to *target_id*, inclusive."""
        ...
