"""SQLAlchemy Entity Store adapter (install the ``sqlalchemy`` extra)."""

from __future__ import annotations

from .entity_store import SQLAlchemyCardStore, SQLAlchemyRelationshipStore
from .models import Base, CardModel, JSONType, RelationshipModel

__all__ = [
    "Base",
    "CardModel",
    "JSONType",
    "RelationshipModel",
    "SQLAlchemyCardStore",
    "SQLAlchemyRelationshipStore",
]
