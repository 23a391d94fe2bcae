"""
Studio context resolution: authenticated user -> (studio, role, plan).

Rules:
1. An active studio owned by the user wins; the role is OWNER.
2. Otherwise the user's earliest membership (by created_at) in an active
   studio is used, with that membership's role.
3. Otherwise there is no context and callers must treat the request as
   unresolvable (401 at the HTTP edge).
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from src.constants.access_catalog import StudioRole
from src.models.studio import Studio, StudioMember
from src.repositories.subscription_repository import SubscriptionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudioContext:
    """Resolved tenant context for one request."""
    tenant_id: str
    studio_role: str
    user_id: Optional[str] = None
    plan_code: Optional[str] = None


def resolve_studio_context(
    db: Session,
    user_id: str,
    include_plan: bool = True,
) -> Optional[StudioContext]:
    """
    Resolve the studio a user is acting in.

    Args:
        db: SQLAlchemy session
        user_id: Authenticated user id
        include_plan: Also look up the subscription's plan code

    Returns:
        StudioContext, or None when the user has no active studio
    """
    owned = db.query(Studio).filter(
        Studio.owner_user_id == user_id,
        Studio.is_active.is_(True),
    ).first()

    if owned is not None:
        tenant_id = owned.id
        role = StudioRole.OWNER.value
    else:
        membership = db.query(StudioMember).join(
            Studio, Studio.id == StudioMember.tenant_id
        ).filter(
            StudioMember.user_id == user_id,
            Studio.is_active.is_(True),
        ).order_by(StudioMember.created_at.asc(), StudioMember.id.asc()).first()

        if membership is None:
            logger.info("studio_context.unresolved", extra={"user_id": user_id})
            return None

        tenant_id = membership.tenant_id
        role = membership.role

    plan_code = resolve_plan_code(db, tenant_id) if include_plan else None

    return StudioContext(
        tenant_id=tenant_id,
        studio_role=role,
        user_id=user_id,
        plan_code=plan_code,
    )


def resolve_plan_code(db: Session, tenant_id: str) -> Optional[str]:
    """Plan code of the studio's subscription, or None when unsubscribed."""
    return SubscriptionRepository(db).get_plan_code(tenant_id)
