"""
Audit log model for access-control decisions and studio administration.

CRITICAL:
- This table is append-only. No UPDATE or DELETE except retention jobs.
- tenant_id is ALWAYS resolved server-side, NEVER from client input.
- Writes are best-effort (see services/usage_recorder.py); a failed audit
  write never fails the audited operation.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Index, JSON
from sqlalchemy.dialects.postgresql import JSONB

from src.db_base import Base
from src.models.base import generate_uuid

# Use JSON with PostgreSQL variant for JSONB - allows SQLite in tests
JSONType = JSON().with_variant(JSONB(), "postgresql")


class AuditLogEntry(Base):
    """Single audit record."""

    __tablename__ = "audit_log_entries"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    action = Column(
        String(100),
        nullable=False,
        index=True,
        comment="Dotted action name (e.g. entitlement.denied)"
    )
    actor_user_id = Column(
        String(255),
        nullable=True
    )
    tenant_id = Column(
        String(255),
        nullable=True,
        index=True
    )
    entity = Column(
        String(100),
        nullable=True
    )
    entity_id = Column(
        String(255),
        nullable=True
    )
    event_metadata = Column(
        "metadata",
        JSONType,
        nullable=True
    )
    ip_address = Column(
        String(64),
        nullable=True
    )
    user_agent = Column(
        String(500),
        nullable=True
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_audit_log_entries_tenant_created", "tenant_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AuditLogEntry(action={self.action}, tenant_id={self.tenant_id})>"
