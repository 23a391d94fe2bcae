"""
Subscription model for tracking studio subscriptions.

One subscription per studio. Status is synced from the billing provider by
external workflows; the entitlement engine only reads it.
"""

import enum

from sqlalchemy import (
    Column, String, Boolean, DateTime,
    ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from src.models.base import Base, TimestampMixin, TenantScopedMixin, generate_uuid


class SubscriptionStatus(str, enum.Enum):
    """Subscription status values (billing-provider vocabulary)."""
    ACTIVE = "ACTIVE"
    TRIALING = "TRIALING"
    PAST_DUE = "PAST_DUE"        # Payment failed, grace period may apply
    CANCELED = "CANCELED"
    INCOMPLETE = "INCOMPLETE"
    UNPAID = "UNPAID"


class Subscription(Base, TimestampMixin, TenantScopedMixin):
    """
    Tracks the commercial relationship between a studio and a plan.

    CRITICAL DESIGN:
    - ONE subscription per studio (unique tenant_id)
    - status + is_active + current_period_end drive subscription health
    """

    __tablename__ = "subscriptions"

    # Primary key
    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )

    plan_code = Column(
        String(50),
        ForeignKey("plans.code", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Current plan"
    )

    status = Column(
        String(20),
        nullable=False,
        default=SubscriptionStatus.ACTIVE.value,
        index=True,
        comment="Billing-provider subscription status"
    )
    is_active = Column(
        Boolean,
        nullable=False,
        default=True,
        comment="Manual kill switch; False denies regardless of status"
    )
    current_period_end = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="End of the current billing period (grace is measured from here)"
    )

    plan = relationship("Plan", lazy="joined")

    __table_args__ = (
        UniqueConstraint("tenant_id", name="uq_subscriptions_tenant"),
    )

    def __repr__(self) -> str:
        return f"<Subscription(tenant_id={self.tenant_id}, plan={self.plan_code}, status={self.status})>"
