"""
Access-control and entitlement resolution for studios.

This module provides:
- CatalogSeeder: idempotent upsert of flags, permissions and the role matrix
- resolve_effective_flags: baseline -> plan grants -> tenant overrides
- resolve_effective_permissions: role matrix -> tenant overrides
- EntitlementEvaluator: subscription health and bounded-resource quotas
- require_feature / require_permission / require_entitlement: FastAPI gates

Resolution reads the store on every call; nothing is cached in-process.
"""

from src.entitlements.errors import (
    AccessControlError,
    AccessCatalogError,
    StudioContextRequiredError,
    PaymentRequiredError,
    AccessDeniedError,
)
from src.entitlements.seeder import CatalogSeeder, ensure_catalog, ensure_default_plans
from src.entitlements.flags import resolve_effective_flags, is_flag_enabled
from src.entitlements.permissions import resolve_effective_permissions, has_permission
from src.entitlements.policy import (
    BoundedResource,
    EntitlementCheck,
    EntitlementDenialCode,
    EntitlementEvaluator,
    SubscriptionHealth,
    evaluate_subscription_health,
    is_subscription_healthy,
)

__all__ = [
    # Errors
    "AccessControlError",
    "AccessCatalogError",
    "StudioContextRequiredError",
    "PaymentRequiredError",
    "AccessDeniedError",
    # Catalog
    "CatalogSeeder",
    "ensure_catalog",
    "ensure_default_plans",
    # Resolvers
    "resolve_effective_flags",
    "is_flag_enabled",
    "resolve_effective_permissions",
    "has_permission",
    # Evaluator
    "BoundedResource",
    "EntitlementCheck",
    "EntitlementDenialCode",
    "EntitlementEvaluator",
    "SubscriptionHealth",
    "evaluate_subscription_health",
    "is_subscription_healthy",
]
