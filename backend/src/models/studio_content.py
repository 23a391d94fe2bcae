"""
Bounded studio resources counted by the entitlement evaluator.

- Project: portfolio project, counted while is_active
- Testimonial: client testimonial, counted until soft-deleted
- QuoteRequest: inbound quote request, counted per calendar month

These tables are written by the request-handling layer; the entitlement
engine only counts them.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Boolean, DateTime, Index

from src.models.base import Base, TimestampMixin, TenantScopedMixin, generate_uuid


class Project(Base, TimestampMixin, TenantScopedMixin):
    """Portfolio project."""

    __tablename__ = "projects"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    title = Column(
        String(200),
        nullable=False
    )
    description = Column(
        Text,
        nullable=True
    )
    is_active = Column(
        Boolean,
        nullable=False,
        default=True,
        comment="Deactivated projects do not count toward max_projects"
    )

    __table_args__ = (
        Index("ix_projects_tenant_active", "tenant_id", "is_active"),
    )


class Testimonial(Base, TimestampMixin, TenantScopedMixin):
    """Client testimonial."""

    __tablename__ = "testimonials"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    author_name = Column(
        String(200),
        nullable=False
    )
    body = Column(
        Text,
        nullable=True
    )
    deleted_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="Soft-delete marker; NULL = live"
    )


class QuoteRequest(Base, TenantScopedMixin):
    """
    Inbound quote request from a prospective client.

    NOTE: created_at is set client-side so the monthly window is computed
    against the same clock as the entitlement check.
    """

    __tablename__ = "quote_requests"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    name = Column(
        String(200),
        nullable=False
    )
    email = Column(
        String(255),
        nullable=False
    )
    message = Column(
        Text,
        nullable=True
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True
    )

    __table_args__ = (
        Index("ix_quote_requests_tenant_created", "tenant_id", "created_at"),
    )
