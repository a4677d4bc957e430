"""SQLAlchemy models for the deal document store and user tiers. Use Alembic for migrations."""
from __future__ import annotations

import enum
from datetime import datetime
from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

from .session import Base

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class UserType(str, enum.Enum):
    free = "free"
    subscriber = "subscriber"


class DealDocument(Base):
    """One bond deal; `document` holds the raw snake_case record as scraped."""
    __tablename__ = "deals"

    id = Column(String, primary_key=True)
    document = Column(JSONDocument, nullable=False)
    created_at = Column("created_at", DateTime, default=datetime.utcnow)
    updated_at = Column("updated_at", DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    clerk_id = Column("clerk_id", String, unique=True, nullable=False)
    email = Column(String, nullable=True)
    user_type = Column("user_type", String, nullable=False, default=UserType.free.value)
    stripe_customer_id = Column("stripe_customer_id", String, nullable=True)
    created_at = Column("created_at", DateTime, default=datetime.utcnow)
    updated_at = Column("updated_at", DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(String, primary_key=True)
    actor_id = Column("actor_id", String, nullable=False)
    action = Column(String, nullable=False)
    resource_type = Column("resource_type", String, nullable=False)
    resource_id = Column("resource_id", String, nullable=True)
    details = Column(JSONDocument, nullable=True)
    created_at = Column("created_at", DateTime, default=datetime.utcnow)
