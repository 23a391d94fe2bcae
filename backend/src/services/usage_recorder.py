"""
Usage/Audit Recorder - best-effort sinks for product events and audit entries.

Both writes are fire-and-forget from the caller's point of view:
- each runs inside its own SAVEPOINT, so a failed insert rolls back only
  itself and leaves the caller's transaction usable
- every failure is caught and logged, never re-raised

The caller owns the outer transaction and commits it as usual.
"""

import logging
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from src.models.audit_log import AuditLogEntry
from src.models.usage import UsageEvent, UsageEventType

logger = logging.getLogger(__name__)


class UsageRecorder:
    """
    Appends UsageEvent and AuditLogEntry rows.

    Usage:
        recorder = UsageRecorder(db_session)
        recorder.track_event(tenant_id, UsageEventType.PUBLISH_SITE)
        recorder.audit("team.member_added", tenant_id=tenant_id, actor_user_id=user_id)
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def track_event(
        self,
        tenant_id: str,
        event_type: Union[UsageEventType, str],
        quantity: int = 1,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Record a usage event.

        Returns:
            True if the row was written, False if the write failed
        """
        event_name = event_type.value if isinstance(event_type, UsageEventType) else str(event_type)
        try:
            with self.db.begin_nested():
                self.db.add(UsageEvent(
                    tenant_id=tenant_id,
                    event_type=event_name,
                    quantity=quantity,
                    event_metadata=metadata,
                ))
            return True
        except Exception:
            logger.warning(
                "usage_recorder.track_event_failed",
                extra={"tenant_id": tenant_id, "event_type": event_name},
                exc_info=True,
            )
            return False

    def audit(
        self,
        action: str,
        *,
        tenant_id: Optional[str] = None,
        actor_user_id: Optional[str] = None,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        """
        Record an audit entry.

        Returns:
            True if the row was written, False if the write failed
        """
        try:
            with self.db.begin_nested():
                self.db.add(AuditLogEntry(
                    action=action,
                    tenant_id=tenant_id,
                    actor_user_id=actor_user_id,
                    entity=entity,
                    entity_id=entity_id,
                    event_metadata=metadata,
                    ip_address=ip_address,
                    user_agent=user_agent,
                ))
            return True
        except Exception:
            logger.warning(
                "usage_recorder.audit_failed",
                extra={"tenant_id": tenant_id, "action": action},
                exc_info=True,
            )
            return False
