"""
Usage tracking model for product-event metering.

UsageEvent: append-only table, one row per tracked product event
(onboarding step, site publish, resource creation, ...).
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, Index, JSON
from sqlalchemy.dialects.postgresql import JSONB

from src.models.base import Base, TenantScopedMixin, generate_uuid

# Use JSON with PostgreSQL variant for JSONB - allows SQLite in tests
JSONType = JSON().with_variant(JSONB(), "postgresql")


class UsageEventType(str, enum.Enum):
    """Known usage event types. Free-form strings are also accepted."""
    ONBOARDING_STEP = "ONBOARDING_STEP"
    PUBLISH_SITE = "PUBLISH_SITE"
    STUDIO_PUBLISHED = "STUDIO_PUBLISHED"
    PROJECT_CREATED = "PROJECT_CREATED"
    TESTIMONIAL_CREATED = "TESTIMONIAL_CREATED"
    QUOTE_REQUEST_RECEIVED = "QUOTE_REQUEST_RECEIVED"
    MEMBER_ADDED = "MEMBER_ADDED"


class UsageEvent(Base, TenantScopedMixin):
    """
    Individual product usage event.

    NOTE: Does not include TimestampMixin to reduce storage (uses recorded_at).
    """

    __tablename__ = "usage_events"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    event_type = Column(
        String(50),
        nullable=False,
        comment="UsageEventType value or custom event name"
    )
    quantity = Column(
        Integer,
        nullable=False,
        default=1,
        comment="Units consumed (usually 1)"
    )
    event_metadata = Column(
        "metadata",
        JSONType,
        nullable=True
    )
    recorded_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True
    )

    __table_args__ = (
        Index("ix_usage_events_tenant_type_time", "tenant_id", "event_type", "recorded_at"),
    )

    def __repr__(self) -> str:
        return f"<UsageEvent(tenant_id={self.tenant_id}, type={self.event_type}, quantity={self.quantity})>"
