"""SQLAlchemy tables backing the relational Entity Store."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON, TypeDecorator


class JSONType(TypeDecorator[Any]):
    """
    Dialect-agnostic JSON type.
    Uses JSONB on PostgreSQL and standard JSON on other dialects (like SQLite).
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Any) -> Any:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


class Base(DeclarativeBase):
    """Declarative base for the catalog tables."""


class CardModel(Base):
    __tablename__ = "cards"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    card_type: Mapped[str] = mapped_column(String(64), index=True)
    lifecycle_phase: Mapped[str] = mapped_column(String(32))
    quality_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    attributes: Mapped[Any] = mapped_column(JSONType, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSONType)
    status: Mapped[str] = mapped_column(String(16), index=True)
    version: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class RelationshipModel(Base):
    __tablename__ = "relationships"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    from_card_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("cards.id"))
    to_card_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("cards.id"))
    relationship_type: Mapped[str] = mapped_column(String(64))
    valid_from: Mapped[date] = mapped_column(Date)
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    attributes: Mapped[Any] = mapped_column(JSONType, nullable=True)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(16), index=True)
    version: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_relationships_from_card", "from_card_id"),
        Index("ix_relationships_to_card", "to_card_id"),
    )
