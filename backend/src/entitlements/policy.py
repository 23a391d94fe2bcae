"""
Entitlement policy evaluation.

Determines subscription health and gates bounded-resource creation
(projects, testimonials, monthly quote requests, team seats) against the
studio's plan quotas.

Decision order for every bounded resource:
    1. No subscription                      -> NO_SUBSCRIPTION
    2. Plan inactive                        -> INACTIVE_SUBSCRIPTION
    3. Subscription unhealthy               -> INACTIVE_SUBSCRIPTION
    4. Limit set and usage >= limit         -> LIMIT_REACHED
    5. Otherwise                            -> ok

Denials are returned as data (EntitlementCheck), never raised. Database
faults propagate to the caller.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from sqlalchemy.orm import Session

from src.config.entitlement_settings import EntitlementSettings, get_entitlement_settings
from src.constants.templates import is_premium_template
from src.models.studio import StudioMember
from src.models.studio_content import Project, QuoteRequest, Testimonial
from src.models.subscription import Subscription, SubscriptionStatus
from src.repositories.subscription_repository import SubscriptionRepository
from src.services.usage_recorder import UsageRecorder

logger = logging.getLogger(__name__)

DENIAL_AUDIT_ACTION = "entitlement.denied"


class EntitlementDenialCode(str, Enum):
    """Machine-readable denial reasons."""
    NO_SUBSCRIPTION = "NO_SUBSCRIPTION"
    INACTIVE_SUBSCRIPTION = "INACTIVE_SUBSCRIPTION"
    LIMIT_REACHED = "LIMIT_REACHED"
    PREMIUM_TEMPLATE_LOCKED = "PREMIUM_TEMPLATE_LOCKED"


class BoundedResource(str, Enum):
    """Resources with a plan quota. Values match Plan.max_<value> columns."""
    PROJECTS = "projects"
    TESTIMONIALS = "testimonials"
    MONTHLY_REQUESTS = "monthly_requests"
    USERS = "users"


class SubscriptionHealth(str, Enum):
    """Health of a subscription at a point in time."""
    ACTIVE = "active"
    GRACE = "grace"          # PAST_DUE but still inside the grace window
    INACTIVE = "inactive"


@dataclass(frozen=True)
class EntitlementCheck:
    """Result of an entitlement check."""
    ok: bool
    code: Optional[EntitlementDenialCode] = None
    message: Optional[str] = None
    resource: Optional[str] = None
    limit: Optional[int] = None
    usage: Optional[int] = None

    @classmethod
    def allow(cls) -> "EntitlementCheck":
        return cls(ok=True)

    @classmethod
    def deny(
        cls,
        code: EntitlementDenialCode,
        message: str,
        resource: Optional[str] = None,
        limit: Optional[int] = None,
        usage: Optional[int] = None,
    ) -> "EntitlementCheck":
        return cls(
            ok=False,
            code=code,
            message=message,
            resource=resource,
            limit=limit,
            usage=usage,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "code": self.code.value if self.code else None,
            "message": self.message,
            "resource": self.resource,
            "limit": self.limit,
            "usage": self.usage,
        }


_LIMIT_MESSAGES = {
    BoundedResource.PROJECTS: "Project limit for your plan reached ({limit}).",
    BoundedResource.TESTIMONIALS: "Testimonial limit for your plan reached ({limit}).",
    BoundedResource.MONTHLY_REQUESTS: "Monthly quote request limit reached ({limit}).",
    BoundedResource.USERS: "Team seat limit for your plan reached ({limit}). Upgrade to add staff.",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_window(now: datetime) -> Tuple[datetime, datetime]:
    """
    UTC calendar month containing now, as a half-open [start, end) range.

    December rolls over to January of the following year.
    """
    now = as_utc(now)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def evaluate_subscription_health(
    status: Union[SubscriptionStatus, str, None],
    is_active: bool,
    current_period_end: Optional[datetime],
    now: Optional[datetime] = None,
    grace_period: timedelta = timedelta(days=7),
) -> SubscriptionHealth:
    """
    Three-state subscription health.

    Args:
        status: Billing-provider status
        is_active: Manual kill switch on the subscription
        current_period_end: End of the billing period (None = unknown)
        now: Evaluation time (defaults to the current UTC time)
        grace_period: How long PAST_DUE stays usable after current_period_end

    Returns:
        ACTIVE for ACTIVE/TRIALING, GRACE for PAST_DUE inside the window
        (inclusive), INACTIVE otherwise
    """
    if not is_active:
        return SubscriptionHealth.INACTIVE

    status_value = status.value if isinstance(status, SubscriptionStatus) else status

    if status_value in (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIALING.value):
        return SubscriptionHealth.ACTIVE

    if status_value == SubscriptionStatus.PAST_DUE.value and current_period_end is not None:
        now = as_utc(now) if now is not None else _utcnow()
        if now - as_utc(current_period_end) <= grace_period:
            return SubscriptionHealth.GRACE

    return SubscriptionHealth.INACTIVE


def is_subscription_healthy(
    status: Union[SubscriptionStatus, str, None],
    is_active: bool,
    current_period_end: Optional[datetime],
    now: Optional[datetime] = None,
    grace_period: timedelta = timedelta(days=7),
) -> bool:
    """Boolean view of evaluate_subscription_health (GRACE counts as healthy)."""
    return evaluate_subscription_health(
        status, is_active, current_period_end, now, grace_period
    ) != SubscriptionHealth.INACTIVE


class EntitlementEvaluator:
    """
    Gates bounded-resource creation for a studio.

    Stateless apart from its collaborators: every check re-reads the
    subscription and re-counts usage. Two concurrent checks may both pass
    at limit - 1; callers needing strict quotas must serialize creates.

    Usage:
        evaluator = EntitlementEvaluator(db_session)
        check = evaluator.assert_can_create_project(tenant_id)
        if not check.ok:
            ...
    """

    def __init__(
        self,
        db_session: Session,
        settings: Optional[EntitlementSettings] = None,
        recorder=None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            db_session: SQLAlchemy session
            settings: Grace period etc. (defaults to the process-wide settings)
            recorder: Sink for denial audits (defaults to a UsageRecorder)
            clock: Returns "now"; injectable for deterministic tests
        """
        self.db = db_session
        self.settings = settings or get_entitlement_settings()
        self.recorder = recorder if recorder is not None else UsageRecorder(db_session)
        self._clock = clock or _utcnow
        self._subscriptions = SubscriptionRepository(db_session)

    def now(self) -> datetime:
        return as_utc(self._clock())

    # ------------------------------------------------------------------
    # Subscription health
    # ------------------------------------------------------------------

    def subscription_health(self, subscription: Optional[Subscription]) -> SubscriptionHealth:
        """Health of a loaded subscription; a missing or plan-inactive one is INACTIVE."""
        if subscription is None:
            return SubscriptionHealth.INACTIVE
        if subscription.plan is None or not subscription.plan.is_active:
            return SubscriptionHealth.INACTIVE
        return evaluate_subscription_health(
            subscription.status,
            subscription.is_active,
            subscription.current_period_end,
            now=self.now(),
            grace_period=self.settings.grace_period,
        )

    def is_healthy(self, tenant_id: str) -> bool:
        subscription = self._subscriptions.get_with_plan(tenant_id)
        return self.subscription_health(subscription) != SubscriptionHealth.INACTIVE

    # ------------------------------------------------------------------
    # Bounded-resource checks
    # ------------------------------------------------------------------

    def assert_can_create_project(self, tenant_id: str) -> EntitlementCheck:
        """Active projects must stay below max_projects."""
        return self.check_resource(tenant_id, BoundedResource.PROJECTS)

    def assert_can_create_testimonial(self, tenant_id: str) -> EntitlementCheck:
        """Non-deleted testimonials must stay below max_testimonials."""
        return self.check_resource(tenant_id, BoundedResource.TESTIMONIALS)

    def assert_can_receive_quote_request(self, tenant_id: str) -> EntitlementCheck:
        """Quote requests in the current UTC month must stay below max_monthly_requests."""
        return self.check_resource(tenant_id, BoundedResource.MONTHLY_REQUESTS)

    def assert_can_add_team_member(self, tenant_id: str) -> EntitlementCheck:
        """Owner plus members must stay below max_users."""
        return self.check_resource(tenant_id, BoundedResource.USERS)

    def check_resource(
        self,
        tenant_id: str,
        resource: Union[BoundedResource, str],
    ) -> EntitlementCheck:
        """
        Evaluate whether one more unit of a bounded resource may be created.

        Args:
            tenant_id: Studio id
            resource: BoundedResource (or its value)

        Returns:
            EntitlementCheck
        """
        resource = BoundedResource(resource)
        subscription = self._subscriptions.get_with_plan(tenant_id)

        check = self._check_subscription(subscription, resource)
        if check is None:
            limit = subscription.plan.limit_for(resource.value)
            if limit is not None:
                usage = self.count_usage(tenant_id, resource)
                if usage >= limit:
                    logger.info(
                        "entitlements.limit_reached",
                        extra={
                            "tenant_id": tenant_id,
                            "resource": resource.value,
                            "limit": limit,
                            "usage": usage,
                        },
                    )
                    check = EntitlementCheck.deny(
                        EntitlementDenialCode.LIMIT_REACHED,
                        _LIMIT_MESSAGES[resource].format(limit=limit),
                        resource=resource.value,
                        limit=limit,
                        usage=usage,
                    )

        if check is None:
            return EntitlementCheck.allow()

        self._report_denial(tenant_id, check)
        return check

    def _check_subscription(
        self,
        subscription: Optional[Subscription],
        resource: BoundedResource,
    ) -> Optional[EntitlementCheck]:
        """Shared subscription gate. Returns a denial or None."""
        if subscription is None:
            return EntitlementCheck.deny(
                EntitlementDenialCode.NO_SUBSCRIPTION,
                "No subscription found for this studio.",
                resource=resource.value,
            )

        if subscription.plan is None or not subscription.plan.is_active:
            return EntitlementCheck.deny(
                EntitlementDenialCode.INACTIVE_SUBSCRIPTION,
                "The subscribed plan is inactive.",
                resource=resource.value,
            )

        if self.subscription_health(subscription) == SubscriptionHealth.INACTIVE:
            return EntitlementCheck.deny(
                EntitlementDenialCode.INACTIVE_SUBSCRIPTION,
                "Subscription inactive. Settle the payment to continue.",
                resource=resource.value,
            )

        return None

    # ------------------------------------------------------------------
    # Usage counting
    # ------------------------------------------------------------------

    def count_usage(self, tenant_id: str, resource: Union[BoundedResource, str]) -> int:
        """Current usage of a bounded resource."""
        resource = BoundedResource(resource)

        if resource == BoundedResource.PROJECTS:
            return self.db.query(Project).filter(
                Project.tenant_id == tenant_id,
                Project.is_active.is_(True),
            ).count()

        if resource == BoundedResource.TESTIMONIALS:
            return self.db.query(Testimonial).filter(
                Testimonial.tenant_id == tenant_id,
                Testimonial.deleted_at.is_(None),
            ).count()

        if resource == BoundedResource.MONTHLY_REQUESTS:
            start, end = month_window(self.now())
            return self.db.query(QuoteRequest).filter(
                QuoteRequest.tenant_id == tenant_id,
                QuoteRequest.created_at >= start,
                QuoteRequest.created_at < end,
            ).count()

        # Owner is not a StudioMember row
        members = self.db.query(StudioMember).filter(
            StudioMember.tenant_id == tenant_id
        ).count()
        return 1 + members

    def get_usage_summary(self, tenant_id: str) -> Dict[str, Any]:
        """
        Usage vs. limit for every bounded resource.

        Returns:
            {
                "tenant_id": ...,
                "plan_code": str | None,
                "health": "active" | "grace" | "inactive",
                "resources": {name: {"usage": int, "limit": int | None}},
            }
        """
        subscription = self._subscriptions.get_with_plan(tenant_id)
        plan = subscription.plan if subscription is not None else None

        resources = {}
        for resource in BoundedResource:
            resources[resource.value] = {
                "usage": self.count_usage(tenant_id, resource),
                "limit": plan.limit_for(resource.value) if plan is not None else None,
            }

        return {
            "tenant_id": tenant_id,
            "plan_code": subscription.plan_code if subscription is not None else None,
            "health": self.subscription_health(subscription).value,
            "resources": resources,
        }

    # ------------------------------------------------------------------
    # Premium templates
    # ------------------------------------------------------------------

    def check_premium_template(self, tenant_id: str, template_code: str) -> EntitlementCheck:
        """
        Premium templates require a plan with premium_templates_allowed.

        Non-premium and unknown template codes are always allowed.
        """
        if not is_premium_template(template_code):
            return EntitlementCheck.allow()

        subscription = self._subscriptions.get_with_plan(tenant_id)
        plan = subscription.plan if subscription is not None else None
        if plan is not None and plan.premium_templates_allowed:
            return EntitlementCheck.allow()

        check = EntitlementCheck.deny(
            EntitlementDenialCode.PREMIUM_TEMPLATE_LOCKED,
            "Premium templates are only available on higher plans. Upgrade to unlock.",
            resource=template_code,
        )
        self._report_denial(tenant_id, check)
        return check

    # ------------------------------------------------------------------
    # Denial reporting
    # ------------------------------------------------------------------

    def _report_denial(self, tenant_id: str, check: EntitlementCheck) -> None:
        """Best-effort audit of a denial. Never alters the result."""
        try:
            self.recorder.audit(
                DENIAL_AUDIT_ACTION,
                tenant_id=tenant_id,
                entity="entitlement",
                entity_id=check.resource,
                metadata=check.to_dict(),
            )
        except Exception:
            logger.warning(
                "entitlements.denial_audit_failed",
                extra={"tenant_id": tenant_id, "code": check.code.value if check.code else None},
                exc_info=True,
            )
