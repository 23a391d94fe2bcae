"""
Database models for the studio access-control and entitlement engine.

All models follow strict tenant isolation patterns.
Tenant-scoped models inherit from TenantScopedMixin.
"""

from src.models.base import TimestampMixin, TenantScopedMixin
from src.models.access_catalog import (
    FeatureFlagDefinition,
    PermissionDefinition,
    PlanFeatureFlag,
    RolePermissionGrant,
    TenantFeatureOverride,
    TenantPermissionOverride,
)
from src.models.plan import Plan
from src.models.subscription import Subscription, SubscriptionStatus
from src.models.studio import Studio, StudioMember
from src.models.studio_content import Project, Testimonial, QuoteRequest
from src.models.usage import UsageEvent, UsageEventType
from src.models.audit_log import AuditLogEntry

__all__ = [
    "TimestampMixin",
    "TenantScopedMixin",
    # Access catalog
    "FeatureFlagDefinition",
    "PermissionDefinition",
    "PlanFeatureFlag",
    "RolePermissionGrant",
    "TenantFeatureOverride",
    "TenantPermissionOverride",
    # Billing
    "Plan",
    "Subscription",
    "SubscriptionStatus",
    # Studio
    "Studio",
    "StudioMember",
    "Project",
    "Testimonial",
    "QuoteRequest",
    # Usage / audit sinks
    "UsageEvent",
    "UsageEventType",
    "AuditLogEntry",
]
