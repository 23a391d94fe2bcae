"""
Studio (tenant) and team membership models.

A studio is the billing/ownership unit. Its id is the tenant_id used by every
tenant-scoped table. The owner is recorded on the studio row itself; other
staff are StudioMember rows, each carrying a studio role.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Boolean, DateTime,
    UniqueConstraint, Index
)

from src.models.base import Base, TimestampMixin, TenantScopedMixin, generate_uuid


class Studio(Base, TimestampMixin):
    """A tenant. Owned by exactly one user."""

    __tablename__ = "studios"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Studio id; used as tenant_id everywhere"
    )
    owner_user_id = Column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Authenticated user who owns the studio"
    )
    name = Column(
        String(200),
        nullable=False
    )
    is_active = Column(
        Boolean,
        nullable=False,
        default=True,
        comment="Inactive studios never resolve as a user's context"
    )

    def __repr__(self) -> str:
        return f"<Studio(id={self.id}, active={self.is_active})>"


class StudioMember(Base, TenantScopedMixin):
    """
    Team seat in a studio (owner excluded).

    NOTE: Uses its own created_at (no TimestampMixin) so membership order is
    set client-side and deterministic for context resolution.
    """

    __tablename__ = "studio_members"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    user_id = Column(
        String(255),
        nullable=False,
        index=True
    )
    role = Column(
        String(20),
        nullable=False,
        default="STAFF",
        comment="ADMIN or STAFF"
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", name="uq_studio_member"),
        Index("ix_studio_members_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<StudioMember(tenant_id={self.tenant_id}, user_id={self.user_id}, role={self.role})>"
