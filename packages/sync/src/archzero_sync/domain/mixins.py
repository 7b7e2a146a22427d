"""Shared base model and reusable domain mixins."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import EntityStatus


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CatalogModel(BaseModel):
    """Base for every catalog model.

    Python code uses snake_case field names; the wire shape (what the API
    layer serialises with ``by_alias=True``) is camelCase.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuditableMixin(CatalogModel):
    """Mixin that adds ``created_at`` / ``updated_at`` timestamps.

    Both are maintained by the Entity Store, never by callers.
    """

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class SoftDeletableMixin(CatalogModel):
    """Mixin for rows that are retained after a user-facing delete.

    ``version`` is bumped by the Entity Store on every write and is the
    token for optimistic concurrency on updates.
    """

    status: EntityStatus = EntityStatus.ACTIVE
    version: int = 1

    @property
    def is_deleted(self) -> bool:
        return self.status is EntityStatus.DELETED
