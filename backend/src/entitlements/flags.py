"""
Flag Resolver - effective feature flags for a studio.

Resolution order (each pass can only add or overwrite keys):
    1. Baseline: False for every flag known to the store (closed by default)
    2. Plan grants for the studio's plan code
    3. Tenant overrides for the studio (always win)

An unknown plan code is not an error: the plan layer is simply empty.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from src.constants.access_catalog import AccessCatalog
from src.entitlements.seeder import CatalogSeeder
from src.models.access_catalog import (
    FeatureFlagDefinition,
    PlanFeatureFlag,
    TenantFeatureOverride,
)

logger = logging.getLogger(__name__)

EffectiveFlags = Dict[str, bool]


def apply_layer(result: Dict[str, bool], layer: Iterable[Tuple[str, bool]]) -> Dict[str, bool]:
    """
    Overwrite result with (code, value) pairs from one precedence layer.

    Never deletes keys; values are coerced to bool so no layer can blend
    a non-boolean into the map.
    """
    for code, value in layer:
        result[code] = bool(value)
    return result


def resolve_effective_flags(
    db: Session,
    tenant_id: str,
    plan_code: Optional[str],
    catalog: Optional[AccessCatalog] = None,
) -> EffectiveFlags:
    """
    Compute the full flag map for a studio.

    Args:
        db: SQLAlchemy session
        tenant_id: Studio id
        plan_code: Plan code from the studio's subscription (may be None)
        catalog: Desired catalog to seed before resolving

    Returns:
        {flag_code: enabled} covering every flag row in the store
    """
    CatalogSeeder(db, catalog).ensure_catalog()

    baseline = ((code, False) for (code,) in db.query(FeatureFlagDefinition.code).all())
    result = apply_layer({}, baseline)

    if plan_code:
        plan_rows = (
            db.query(PlanFeatureFlag.flag_code, PlanFeatureFlag.enabled)
            .filter(PlanFeatureFlag.plan_code == plan_code)
            .all()
        )
        apply_layer(result, plan_rows)

    override_rows = (
        db.query(TenantFeatureOverride.flag_code, TenantFeatureOverride.enabled)
        .filter(TenantFeatureOverride.tenant_id == tenant_id)
        .all()
    )
    apply_layer(result, override_rows)

    logger.debug(
        "entitlements.flags_resolved",
        extra={
            "tenant_id": tenant_id,
            "plan_code": plan_code,
            "enabled": sorted(code for code, on in result.items() if on),
            "overrides": len(override_rows),
        },
    )
    return result


def is_flag_enabled(
    db: Session,
    tenant_id: str,
    plan_code: Optional[str],
    flag_code: str,
    catalog: Optional[AccessCatalog] = None,
) -> bool:
    """Single-flag view. Unknown codes resolve to False."""
    return resolve_effective_flags(db, tenant_id, plan_code, catalog).get(flag_code, False)
