"""Domain layer: cards, relationships and their request models."""

from __future__ import annotations

from .card import Card, CreateCardRequest, UpdateCardRequest
from .enums import (
    DEPENDENCY_TYPES,
    CardType,
    EntityStatus,
    LifecyclePhase,
    RelationshipType,
)
from .mixins import AuditableMixin, CatalogModel, SoftDeletableMixin, utc_now
from .relationship import (
    CreateRelationshipRequest,
    Relationship,
    UpdateRelationshipRequest,
)

__all__ = [
    "DEPENDENCY_TYPES",
    "AuditableMixin",
    "Card",
    "CardType",
    "CatalogModel",
    "CreateCardRequest",
    "CreateRelationshipRequest",
    "EntityStatus",
    "LifecyclePhase",
    "Relationship",
    "RelationshipType",
    "SoftDeletableMixin",
    "UpdateCardRequest",
    "UpdateRelationshipRequest",
    "utc_now",
]
