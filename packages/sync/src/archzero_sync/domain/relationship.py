"""Relationship: a typed, directed, time-bounded edge between two cards."""

from __future__ import annotations

import copy
from datetime import date
from typing import Any
from uuid import UUID

from pydantic import ConfigDict, Field, JsonValue, model_validator

from .enums import RelationshipType
from .mixins import AuditableMixin, CatalogModel, SoftDeletableMixin


class Relationship(AuditableMixin, SoftDeletableMixin):
    """Directed edge ``from_card_id -> to_card_id``.

    The endpoints and ``relationship_type`` are fixed at creation; only the
    validity window, ``attributes`` and ``confidence`` are mutable.
    """

    id: UUID
    from_card_id: UUID
    to_card_id: UUID
    relationship_type: RelationshipType
    valid_from: date
    valid_to: date | None = None
    attributes: JsonValue = Field(default_factory=dict)
    confidence: float | None = None


class CreateRelationshipRequest(CatalogModel):
    """Validated input for creating a relationship.

    ``valid_from`` defaults to the creation date when omitted. Endpoint
    existence is checked by the Entity Store, not here.
    """

    model_config = ConfigDict(extra="forbid")

    from_card_id: UUID
    to_card_id: UUID
    relationship_type: RelationshipType
    valid_from: date | None = None
    valid_to: date | None = None
    attributes: JsonValue = Field(default_factory=dict)
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _window_is_ordered(self) -> CreateRelationshipRequest:
        if (
            self.valid_from is not None
            and self.valid_to is not None
            and self.valid_to < self.valid_from
        ):
            raise ValueError("valid_to must not precede valid_from")
        return self


class UpdateRelationshipRequest(CatalogModel):
    """Partial update of a relationship; same explicit-field rules as cards."""

    model_config = ConfigDict(extra="forbid")

    valid_from: date | None = None
    valid_to: date | None = None
    attributes: JsonValue = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _valid_from_not_cleared(self) -> UpdateRelationshipRequest:
        if "valid_from" in self.model_fields_set and self.valid_from is None:
            raise ValueError("valid_from cannot be cleared")
        return self

    @classmethod
    def from_snapshot(cls, relationship: Relationship) -> UpdateRelationshipRequest:
        """Build the patch that puts every mutable field back to the snapshot."""
        return cls(
            valid_from=relationship.valid_from,
            valid_to=relationship.valid_to,
            attributes=copy.deepcopy(relationship.attributes),
            confidence=relationship.confidence,
        )

    def changes(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            name: copy.deepcopy(getattr(self, name)) for name in self.model_fields_set
        }
        if "attributes" in data and data["attributes"] is None:
            data["attributes"] = {}
        return data
