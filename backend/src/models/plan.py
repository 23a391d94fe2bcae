"""
Plan model for studio subscription tiers.

Plans are GLOBAL (not tenant-scoped) - they define the product offerings.
Quota columns bound the resources a studio may create (NULL = unlimited).
Default flag grants per plan live in PlanFeatureFlag (access_catalog.py).
"""

from sqlalchemy import Column, String, Text, Integer, Boolean

from src.models.base import Base, TimestampMixin, generate_uuid


class Plan(Base, TimestampMixin):
    """
    Defines pricing tiers and their quotas.

    Plans are GLOBAL - they define product offerings, not tenant data.
    """

    __tablename__ = "plans"

    # Primary key
    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )

    # Plan identification
    code = Column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
        comment="Stable plan code (Starter, Pro, Studio)"
    )
    name = Column(
        String(100),
        nullable=False,
        comment="Display name"
    )
    description = Column(
        Text,
        nullable=True
    )

    # Quotas (NULL = unlimited)
    max_projects = Column(
        Integer,
        nullable=True,
        comment="Active portfolio projects (NULL = unlimited)"
    )
    max_testimonials = Column(
        Integer,
        nullable=True,
        comment="Live testimonials (NULL = unlimited)"
    )
    max_monthly_requests = Column(
        Integer,
        nullable=True,
        comment="Inbound quote requests per calendar month (NULL = unlimited)"
    )
    max_users = Column(
        Integer,
        nullable=True,
        comment="Team seats including the owner (NULL = unlimited)"
    )

    premium_templates_allowed = Column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether premium site templates may be selected"
    )

    # Plan status
    is_active = Column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Inactive plans deny all bounded-resource creation"
    )

    def __repr__(self) -> str:
        return f"<Plan(code={self.code}, active={self.is_active})>"

    def limit_for(self, resource: str):
        """Return the quota column value for a bounded resource name."""
        return getattr(self, f"max_{resource}")
