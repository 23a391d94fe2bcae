"""
Entitlement Middleware - FastAPI dependencies for API access enforcement.

Provides:
- require_feature: gate an endpoint on an effective feature flag
- require_permission: gate an endpoint on an effective studio permission
- require_entitlement: gate a bounded-resource create on the plan quota

All three read the StudioContext that upstream authentication stores in
request.state.studio_context. Status mapping:
- no context                         -> 401
- flag or entitlement denial         -> 402 (body carries the reason code)
- permission denial                  -> 403

Usage:
    @router.post("/projects", dependencies=[Depends(require_entitlement("projects"))])
    async def create_project(...):
        ...

    @router.put("/domain")
    async def set_domain(
        perms: dict = Depends(require_permission(PermissionCode.DOMAIN_MANAGE)),
    ):
        ...
"""

import logging
from typing import Callable, Dict, Union

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from src.config.entitlement_settings import get_entitlement_settings
from src.constants.access_catalog import FeatureFlagCode, PermissionCode
from src.database.session import get_db_session
from src.entitlements.errors import (
    AccessDeniedError,
    PaymentRequiredError,
    StudioContextRequiredError,
)
from src.entitlements.flags import resolve_effective_flags
from src.entitlements.permissions import resolve_effective_permissions
from src.entitlements.policy import BoundedResource, EntitlementCheck, EntitlementEvaluator
from src.services.studio_context import StudioContext

logger = logging.getLogger(__name__)

FEATURE_NOT_ENABLED = "FEATURE_NOT_ENABLED"


def get_studio_context(request: Request) -> StudioContext:
    """
    Read the upstream-resolved studio context.

    Raises:
        StudioContextRequiredError: If no tenant was resolved for the request
    """
    context = getattr(request.state, "studio_context", None)
    if context is None or not context.tenant_id:
        raise StudioContextRequiredError()
    return context


def _context_or_401(request: Request) -> StudioContext:
    try:
        return get_studio_context(request)
    except StudioContextRequiredError as e:
        logger.info("entitlements.context_missing", extra={"path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "studio_context_required", "message": e.detail},
        )


def require_feature(flag_code: Union[FeatureFlagCode, str]) -> Callable:
    """
    Dependency factory: require an enabled feature flag.

    On success the full flag map is returned and stored in request.state.flags.
    """
    code = flag_code.value if isinstance(flag_code, FeatureFlagCode) else flag_code

    def dependency(request: Request, db: Session = Depends(get_db_session)) -> Dict[str, bool]:
        context = _context_or_401(request)
        flags = resolve_effective_flags(db, context.tenant_id, context.plan_code)
        # Persist seeded catalog rows
        db.commit()

        if not flags.get(code, False):
            logger.info(
                "entitlements.feature_denied",
                extra={
                    "tenant_id": context.tenant_id,
                    "plan_code": context.plan_code,
                    "feature": code,
                },
            )
            raise PaymentRequiredError(
                message=f"Feature '{code}' is not available on your plan",
                code=FEATURE_NOT_ENABLED,
                feature=code,
            )

        request.state.flags = flags
        return flags

    return dependency


def require_permission(perm_code: Union[PermissionCode, str]) -> Callable:
    """
    Dependency factory: require an allowed studio permission.

    On success the full permission map is returned and stored in
    request.state.permissions.
    """
    code = perm_code.value if isinstance(perm_code, PermissionCode) else perm_code

    def dependency(request: Request, db: Session = Depends(get_db_session)) -> Dict[str, bool]:
        context = _context_or_401(request)
        if not context.studio_role:
            raise AccessDeniedError(code)

        permissions = resolve_effective_permissions(db, context.tenant_id, context.studio_role)
        db.commit()

        if not permissions.get(code, False):
            logger.info(
                "entitlements.permission_denied",
                extra={
                    "tenant_id": context.tenant_id,
                    "studio_role": context.studio_role,
                    "permission": code,
                },
            )
            raise AccessDeniedError(code)

        request.state.permissions = permissions
        return permissions

    return dependency


def require_entitlement(resource: Union[BoundedResource, str]) -> Callable:
    """
    Dependency factory: require quota headroom for one more unit of a resource.

    Denials are audited by the evaluator and committed before the 402 is raised.
    Settings are resolved here, so a bad GRACE_PERIOD_DAYS fails at route definition.
    """
    bounded = BoundedResource(resource)
    settings = get_entitlement_settings()

    def dependency(request: Request, db: Session = Depends(get_db_session)) -> EntitlementCheck:
        context = _context_or_401(request)
        check = EntitlementEvaluator(db, settings=settings).check_resource(context.tenant_id, bounded)

        if not check.ok:
            db.commit()
            raise PaymentRequiredError(
                message=check.message,
                code=check.code.value,
                resource=bounded.value,
            )

        return check

    return dependency
