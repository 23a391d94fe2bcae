"""
Subscription repository for data access operations.

Encapsulates all subscription reads for the entitlement engine with:
- Tenant isolation enforcement
- Plan eager-loading (one query per check)
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from src.models.subscription import Subscription

logger = logging.getLogger(__name__)


class SubscriptionRepository:
    """
    Repository for subscription data access.

    All methods enforce tenant isolation via tenant_id parameter.
    """

    def __init__(self, db_session: Session):
        """
        Initialize repository with database session.

        Args:
            db_session: SQLAlchemy database session
        """
        self.db = db_session

    def get_with_plan(self, tenant_id: str) -> Optional[Subscription]:
        """
        Get the studio's subscription with its plan loaded.

        Args:
            tenant_id: Studio id

        Returns:
            Subscription (plan attribute populated) or None
        """
        return self.db.query(Subscription).options(
            joinedload(Subscription.plan)
        ).filter(
            Subscription.tenant_id == tenant_id
        ).first()

    def get_plan_code(self, tenant_id: str) -> Optional[str]:
        """Plan code of the studio's subscription, or None when unsubscribed."""
        row = self.db.query(Subscription.plan_code).filter(
            Subscription.tenant_id == tenant_id
        ).first()
        return row[0] if row else None
