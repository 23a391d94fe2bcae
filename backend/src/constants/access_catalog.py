"""
Canonical access catalog: feature flags, permissions and the role matrix.

IMPORTANT: This is the built-in desired state the CatalogSeeder writes to
the store. Resolution reads the STORE, never these constants, so plan
grants and tenant overrides always apply on top of seeded rows.

Role Hierarchy (studio-scoped):
- OWNER: created the studio, full access
- ADMIN: full access by default
- STAFF: content, leads and analytics only

The matrix is exhaustive when seeded: every permission gets a row for every
role, with allowed=False where the role is not listed.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple


class StudioRole(str, Enum):
    """Roles a user can hold inside a studio."""
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    STAFF = "STAFF"


class FeatureFlagCode(str, Enum):
    """
    Built-in feature flag codes.

    Naming convention: area.capability
    """
    TEMPLATES_PREMIUM = "templates.premium"
    DOMAINS_CUSTOM = "domains.custom"
    WHATSAPP_AUTOMATION = "whatsapp.automation"
    MARKETPLACE_ADDONS = "marketplace.addons"
    SEO_PROGRAMMATIC = "seo.programmatic"
    STUDIO_MULTIUSER = "studio.multiuser"
    ANALYTICS_COHORTS = "analytics.cohorts"


class PermissionCode(str, Enum):
    """
    Built-in permission codes.

    Naming convention: resource.action
    """
    BILLING_MANAGE = "billing.manage"
    DOMAIN_MANAGE = "domain.manage"
    TEAM_MANAGE = "team.manage"
    CONTENT_WRITE = "content.write"
    LEADS_WRITE = "leads.write"
    ANALYTICS_VIEW = "analytics.view"


@dataclass(frozen=True)
class CatalogEntry:
    """A flag or permission definition as it should exist in the store."""
    code: str
    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class AccessCatalog:
    """
    Immutable desired catalog passed explicitly to the CatalogSeeder.

    role_permissions maps a role to the permission codes it is GRANTED;
    every other known permission is seeded as an explicit denial.
    """
    flags: Tuple[CatalogEntry, ...]
    permissions: Tuple[CatalogEntry, ...]
    role_permissions: Mapping[str, FrozenSet[str]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def flag_codes(self) -> FrozenSet[str]:
        return frozenset(f.code for f in self.flags)

    @property
    def permission_codes(self) -> FrozenSet[str]:
        return frozenset(p.code for p in self.permissions)

    @property
    def roles(self) -> Tuple[str, ...]:
        return tuple(self.role_permissions.keys())

    def is_allowed(self, role: str, perm_code: str) -> bool:
        """Default matrix value for one (role, permission) cell."""
        return perm_code in self.role_permissions.get(role, frozenset())


FLAG_DEFINITIONS: Tuple[CatalogEntry, ...] = (
    CatalogEntry(
        FeatureFlagCode.TEMPLATES_PREMIUM.value,
        "Premium templates",
        "Unlocks premium site templates (upsell).",
    ),
    CatalogEntry(
        FeatureFlagCode.DOMAINS_CUSTOM.value,
        "Custom domain",
        "Allows serving the studio site on its own domain.",
    ),
    CatalogEntry(
        FeatureFlagCode.WHATSAPP_AUTOMATION.value,
        "WhatsApp automation",
        "Quick replies and triggers.",
    ),
    CatalogEntry(
        FeatureFlagCode.MARKETPLACE_ADDONS.value,
        "Add-on marketplace",
        "Enables internal add-ons.",
    ),
    CatalogEntry(
        FeatureFlagCode.SEO_PROGRAMMATIC.value,
        "Programmatic SEO",
        "Per-city and per-style pages plus sitemap.",
    ),
    CatalogEntry(
        FeatureFlagCode.STUDIO_MULTIUSER.value,
        "Multi-user studio",
        "Team seats.",
    ),
    CatalogEntry(
        FeatureFlagCode.ANALYTICS_COHORTS.value,
        "Cohort analytics",
        "7/14/30-day cohort reports.",
    ),
)


PERMISSION_DEFINITIONS: Tuple[CatalogEntry, ...] = (
    CatalogEntry(
        PermissionCode.BILLING_MANAGE.value,
        "Manage billing",
        "Checkout, customer portal and cancellation.",
    ),
    CatalogEntry(
        PermissionCode.DOMAIN_MANAGE.value,
        "Manage domain",
        "Request and verify a custom domain.",
    ),
    CatalogEntry(
        PermissionCode.TEAM_MANAGE.value,
        "Manage team",
        "Invites, removals and roles.",
    ),
    CatalogEntry(
        PermissionCode.CONTENT_WRITE.value,
        "Edit content",
        "Projects, testimonials and studio details.",
    ),
    CatalogEntry(
        PermissionCode.LEADS_WRITE.value,
        "Manage leads",
        "Quote requests and pipeline board.",
    ),
    CatalogEntry(
        PermissionCode.ANALYTICS_VIEW.value,
        "View reports",
        "Metrics and dashboards.",
    ),
)


_FULL_ACCESS: FrozenSet[str] = frozenset(p.value for p in PermissionCode)

ROLE_PERMISSIONS: Mapping[str, FrozenSet[str]] = MappingProxyType({
    StudioRole.OWNER.value: _FULL_ACCESS,
    StudioRole.ADMIN.value: _FULL_ACCESS,
    # No billing/domain/team management
    StudioRole.STAFF.value: frozenset({
        PermissionCode.CONTENT_WRITE.value,
        PermissionCode.LEADS_WRITE.value,
        PermissionCode.ANALYTICS_VIEW.value,
    }),
})


DEFAULT_ACCESS_CATALOG = AccessCatalog(
    flags=FLAG_DEFINITIONS,
    permissions=PERMISSION_DEFINITIONS,
    role_permissions=ROLE_PERMISSIONS,
)
