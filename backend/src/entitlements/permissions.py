"""
Permission Resolver - effective permissions for a studio role.

Resolution order:
    1. Role matrix rows for the studio role (seeded exhaustively, so every
       known permission already has an explicit True/False)
    2. Tenant overrides for the studio (always win)
"""

import logging
from typing import Dict, Optional, Union

from sqlalchemy.orm import Session

from src.constants.access_catalog import AccessCatalog, StudioRole
from src.entitlements.flags import apply_layer
from src.entitlements.seeder import CatalogSeeder
from src.models.access_catalog import RolePermissionGrant, TenantPermissionOverride

logger = logging.getLogger(__name__)

EffectivePermissions = Dict[str, bool]


def resolve_effective_permissions(
    db: Session,
    tenant_id: str,
    studio_role: Union[StudioRole, str],
    catalog: Optional[AccessCatalog] = None,
) -> EffectivePermissions:
    """
    Compute the full permission map for a role inside a studio.

    Args:
        db: SQLAlchemy session
        tenant_id: Studio id
        studio_role: OWNER, ADMIN or STAFF
        catalog: Desired catalog to seed before resolving

    Returns:
        {perm_code: allowed}. An unrecognized role yields only the
        studio's overrides; callers treat absent codes as denied.
    """
    CatalogSeeder(db, catalog).ensure_catalog()

    role = studio_role.value if isinstance(studio_role, StudioRole) else str(studio_role)

    role_rows = (
        db.query(RolePermissionGrant.perm_code, RolePermissionGrant.allowed)
        .filter(RolePermissionGrant.studio_role == role)
        .all()
    )
    result = apply_layer({}, role_rows)

    if not role_rows:
        logger.warning(
            "entitlements.unknown_studio_role",
            extra={"tenant_id": tenant_id, "studio_role": role},
        )

    override_rows = (
        db.query(TenantPermissionOverride.perm_code, TenantPermissionOverride.allowed)
        .filter(TenantPermissionOverride.tenant_id == tenant_id)
        .all()
    )
    apply_layer(result, override_rows)

    return result


def has_permission(
    db: Session,
    tenant_id: str,
    studio_role: Union[StudioRole, str],
    perm_code: str,
    catalog: Optional[AccessCatalog] = None,
) -> bool:
    """Single-permission view. Unknown codes resolve to False."""
    return resolve_effective_permissions(db, tenant_id, studio_role, catalog).get(perm_code, False)
