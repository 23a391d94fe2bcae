"""
Base mixins for database models.

Provides common functionality:
- TimestampMixin: created_at, updated_at timestamps
- TenantScopedMixin: tenant_id (studio id) for multi-tenant isolation
- generate_uuid: UUID generation for primary keys
"""

import uuid

from sqlalchemy import Column, String, DateTime, func
from sqlalchemy.orm import declared_attr

from src.db_base import Base  # noqa: F401 - re-exported for model modules


def generate_uuid() -> str:
    """Generate a UUID4 string for use as a primary key default."""
    return str(uuid.uuid4())


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Timestamp when record was created"
    )

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Timestamp when record was last updated"
    )


class TenantScopedMixin:
    """
    Mixin that adds tenant_id column for multi-tenant isolation.

    tenant_id is the studio id. It is resolved server-side from the
    authenticated user, never accepted from client input.
    """

    @declared_attr
    def tenant_id(cls):
        return Column(
            String(255),
            nullable=False,
            index=True,
            comment="Studio (tenant) identifier. NEVER from client input."
        )
