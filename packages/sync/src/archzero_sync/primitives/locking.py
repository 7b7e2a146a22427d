"""Lockable resource identity for per-entity serialisation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class ResourceIdentifier:
    """
    Identifies a single lockable catalog entity.

    Examples:
        >>> ResourceIdentifier("card", "5b1f...")
        >>> ResourceIdentifier("relationship", str(uuid4()))
    """

    resource_type: str
    resource_id: str  # Always store as string for consistent sorting
    lock_mode: Literal["read", "write"] = "write"

    @classmethod
    def for_entity(cls, entity_type: str, entity_id: object) -> ResourceIdentifier:
        return cls(entity_type, str(entity_id))

    def __lt__(self, other: ResourceIdentifier) -> bool:
        """Sort by (resource_type, resource_id) for deterministic acquisition."""
        return (self.resource_type, self.resource_id) < (
            other.resource_type,
            other.resource_id,
        )

    def __str__(self) -> str:
        mode = f":{self.lock_mode}" if self.lock_mode != "write" else ""
        return f"{self.resource_type}:{self.resource_id}{mode}"
