"""Card: a typed entry of the architecture catalog."""

from __future__ import annotations

import copy
from typing import Any
from uuid import UUID

from pydantic import ConfigDict, Field, JsonValue, field_validator, model_validator

from .enums import CardType, LifecyclePhase
from .mixins import AuditableMixin, CatalogModel, SoftDeletableMixin


def _normalise_tags(tags: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for tag in tags:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


def _clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValueError("name must not be blank")
    return name


class Card(AuditableMixin, SoftDeletableMixin):
    """A typed catalog entity (application, policy, risk, principle, ...).

    ``id`` and ``card_type`` never change after creation; the update patch
    model has no fields for them. ``attributes`` is an open document whose
    shape depends on ``card_type`` and is copied verbatim between stores.
    """

    id: UUID
    name: str
    card_type: CardType = Field(alias="type")
    lifecycle_phase: LifecyclePhase
    quality_score: int | None = None
    description: str | None = None
    owner_id: UUID | None = None
    attributes: JsonValue = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)


class CreateCardRequest(CatalogModel):
    """Validated input for creating a card."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    card_type: CardType = Field(alias="type")
    lifecycle_phase: LifecyclePhase
    quality_score: int | None = Field(default=None, ge=0, le=100)
    description: str | None = None
    owner_id: UUID | None = None
    attributes: JsonValue = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _clean_name(value)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        return _normalise_tags(value)


class UpdateCardRequest(CatalogModel):
    """Partial update of a card.

    Only the fields the caller explicitly set are applied. An explicit
    ``None`` clears an optional field (``attributes``/``tags`` reset to
    empty); ``name`` and ``lifecycle_phase`` cannot be cleared.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    lifecycle_phase: LifecyclePhase | None = None
    quality_score: int | None = Field(default=None, ge=0, le=100)
    description: str | None = None
    owner_id: UUID | None = None
    attributes: JsonValue = None
    tags: list[str] | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str | None) -> str | None:
        return None if value is None else _clean_name(value)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else _normalise_tags(value)

    @model_validator(mode="after")
    def _required_fields_not_cleared(self) -> UpdateCardRequest:
        for name in ("name", "lifecycle_phase"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self

    @classmethod
    def from_snapshot(cls, card: Card) -> UpdateCardRequest:
        """Build the patch that puts every mutable field back to *card*'s values."""
        return cls(
            name=card.name,
            lifecycle_phase=card.lifecycle_phase,
            quality_score=card.quality_score,
            description=card.description,
            owner_id=card.owner_id,
            attributes=copy.deepcopy(card.attributes),
            tags=list(card.tags),
        )

    def changes(self) -> dict[str, Any]:
        """Field updates to apply, keyed by attribute name."""
        data: dict[str, Any] = {
            name: copy.deepcopy(getattr(self, name)) for name in self.model_fields_set
        }
        if "attributes" in data and data["attributes"] is None:
            data["attributes"] = {}
        if "tags" in data and data["tags"] is None:
            data["tags"] = []
        return data
