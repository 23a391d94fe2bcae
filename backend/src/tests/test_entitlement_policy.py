"""
Tests for the entitlement evaluator.

Test classes:
- TestSubscriptionGate: NO_SUBSCRIPTION / INACTIVE_SUBSCRIPTION ordering
- TestProjectLimit: Active projects vs. max_projects
- TestTestimonialLimit: Soft-deleted testimonials do not count
- TestMonthlyRequestLimit: UTC calendar-month window
- TestTeamSeatLimit: Owner plus members vs. max_users
- TestPremiumTemplates: premium_templates_allowed gate
- TestDenialAudit: Denials are audited, audit failures never change results
- TestUsageSummary: Usage vs. limit for all resources
"""

import uuid
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.config.entitlement_settings import EntitlementSettings
from src.entitlements.policy import (
    BoundedResource,
    EntitlementCheck,
    EntitlementDenialCode,
    EntitlementEvaluator,
    SubscriptionHealth,
)
from src.models.audit_log import AuditLogEntry
from src.models.studio import StudioMember
from src.models.studio_content import Project, QuoteRequest, Testimonial
from src.models.subscription import SubscriptionStatus
from src.repositories.subscription_repository import SubscriptionRepository


# =============================================================================
# Helpers
# =============================================================================


def _add_projects(db: Session, tenant_id: str, count: int, is_active: bool = True) -> list:
    projects = [
        Project(tenant_id=tenant_id, title=f"Piece {i}", is_active=is_active)
        for i in range(count)
    ]
    db.add_all(projects)
    db.flush()
    return projects


def _add_testimonials(db: Session, tenant_id: str, count: int, deleted_at: datetime = None) -> list:
    testimonials = [
        Testimonial(tenant_id=tenant_id, author_name=f"Client {i}", deleted_at=deleted_at)
        for i in range(count)
    ]
    db.add_all(testimonials)
    db.flush()
    return testimonials


def _add_quote_request(db: Session, tenant_id: str, created_at: datetime) -> QuoteRequest:
    request = QuoteRequest(
        tenant_id=tenant_id,
        name="Prospect",
        email=f"{uuid.uuid4().hex[:6]}@example.com",
        created_at=created_at,
    )
    db.add(request)
    db.flush()
    return request


def _add_members(db: Session, tenant_id: str, count: int) -> None:
    db.add_all([
        StudioMember(tenant_id=tenant_id, user_id=f"user-{uuid.uuid4().hex[:8]}", role="STAFF")
        for _ in range(count)
    ])
    db.flush()


@pytest.fixture
def evaluator(db_session, fixed_now):
    return EntitlementEvaluator(
        db_session,
        settings=EntitlementSettings(grace_period=timedelta(days=7)),
        clock=lambda: fixed_now,
    )


# =============================================================================
# Subscription gate
# =============================================================================


class TestSubscriptionGate:

    def test_no_subscription(self, evaluator, tenant_id):
        check = evaluator.assert_can_create_project(tenant_id)

        assert check.ok is False
        assert check.code == EntitlementDenialCode.NO_SUBSCRIPTION

    def test_inactive_plan(self, evaluator, tenant_id, make_plan, make_subscription):
        plan = make_plan(is_active=False, max_projects=10)
        make_subscription(tenant_id, plan)

        check = evaluator.assert_can_create_project(tenant_id)

        assert check.code == EntitlementDenialCode.INACTIVE_SUBSCRIPTION

    def test_inactive_plan_checked_before_limit(self, db_session, evaluator, tenant_id, make_plan, make_subscription):
        plan = make_plan(is_active=False, max_projects=1)
        make_subscription(tenant_id, plan)
        _add_projects(db_session, tenant_id, 3)

        check = evaluator.assert_can_create_project(tenant_id)

        assert check.code == EntitlementDenialCode.INACTIVE_SUBSCRIPTION

    def test_canceled_subscription(self, evaluator, tenant_id, make_plan, make_subscription):
        plan = make_plan(max_projects=10)
        make_subscription(tenant_id, plan, status=SubscriptionStatus.CANCELED.value)

        check = evaluator.assert_can_create_project(tenant_id)

        assert check.code == EntitlementDenialCode.INACTIVE_SUBSCRIPTION

    def test_kill_switch(self, evaluator, tenant_id, make_plan, make_subscription):
        plan = make_plan()
        make_subscription(tenant_id, plan, is_active=False)

        check = evaluator.assert_can_create_testimonial(tenant_id)

        assert check.code == EntitlementDenialCode.INACTIVE_SUBSCRIPTION

    def test_past_due_within_grace_allowed(self, evaluator, tenant_id, fixed_now, make_plan, make_subscription):
        """PAST_DUE, period ended 6 days ago, 1 active project of 10: allowed."""
        plan = make_plan(max_projects=10)
        make_subscription(
            tenant_id, plan,
            status=SubscriptionStatus.PAST_DUE.value,
            current_period_end=fixed_now - timedelta(days=6),
        )

        check = evaluator.assert_can_create_project(tenant_id)

        assert check.ok is True

    def test_past_due_after_grace_denied(self, evaluator, tenant_id, fixed_now, make_plan, make_subscription):
        plan = make_plan(max_projects=10)
        make_subscription(
            tenant_id, plan,
            status=SubscriptionStatus.PAST_DUE.value,
            current_period_end=fixed_now - timedelta(days=8),
        )

        check = evaluator.assert_can_create_project(tenant_id)

        assert check.code == EntitlementDenialCode.INACTIVE_SUBSCRIPTION

    def test_trialing_allowed(self, evaluator, tenant_id, make_plan, make_subscription):
        plan = make_plan()
        make_subscription(tenant_id, plan, status=SubscriptionStatus.TRIALING.value)

        assert evaluator.assert_can_receive_quote_request(tenant_id).ok is True

    def test_store_faults_propagate(self, evaluator, tenant_id):
        with patch.object(
            SubscriptionRepository, "get_with_plan", side_effect=SQLAlchemyError("db down")
        ):
            with pytest.raises(SQLAlchemyError):
                evaluator.assert_can_create_project(tenant_id)

    def test_is_healthy(self, evaluator, tenant_id, make_plan, make_subscription):
        assert evaluator.is_healthy(tenant_id) is False

        make_subscription(tenant_id, make_plan())

        assert evaluator.is_healthy(tenant_id) is True


# =============================================================================
# Bounded resources
# =============================================================================


class TestProjectLimit:

    @pytest.fixture
    def subscribed(self, tenant_id, make_plan, make_subscription):
        plan = make_plan(max_projects=6)
        make_subscription(tenant_id, plan)
        return plan

    def test_below_limit_allowed(self, db_session, evaluator, tenant_id, subscribed):
        _add_projects(db_session, tenant_id, 5)

        assert evaluator.assert_can_create_project(tenant_id) == EntitlementCheck.allow()

    def test_at_limit_denied(self, db_session, evaluator, tenant_id, subscribed):
        _add_projects(db_session, tenant_id, 6)

        check = evaluator.assert_can_create_project(tenant_id)

        assert check.ok is False
        assert check.code == EntitlementDenialCode.LIMIT_REACHED
        assert "6" in check.message
        assert check.limit == 6
        assert check.usage == 6

    def test_deactivating_a_project_frees_a_slot(self, db_session, evaluator, tenant_id, subscribed):
        projects = _add_projects(db_session, tenant_id, 6)
        assert evaluator.assert_can_create_project(tenant_id).ok is False

        projects[0].is_active = False
        db_session.flush()

        assert evaluator.assert_can_create_project(tenant_id).ok is True

    def test_inactive_projects_not_counted(self, db_session, evaluator, tenant_id, subscribed):
        _add_projects(db_session, tenant_id, 5)
        _add_projects(db_session, tenant_id, 10, is_active=False)

        assert evaluator.assert_can_create_project(tenant_id).ok is True

    def test_other_tenants_not_counted(self, db_session, evaluator, tenant_id, subscribed):
        _add_projects(db_session, "someone-else", 20)

        assert evaluator.assert_can_create_project(tenant_id).ok is True

    def test_unlimited_plan(self, db_session, evaluator, tenant_id, make_plan, make_subscription):
        make_subscription(tenant_id, make_plan(max_projects=None))
        _add_projects(db_session, tenant_id, 50)

        assert evaluator.assert_can_create_project(tenant_id).ok is True


class TestTestimonialLimit:

    def test_soft_deleted_not_counted(self, db_session, evaluator, tenant_id, fixed_now, make_plan, make_subscription):
        make_subscription(tenant_id, make_plan(max_testimonials=3))
        _add_testimonials(db_session, tenant_id, 2)
        _add_testimonials(db_session, tenant_id, 4, deleted_at=fixed_now)

        assert evaluator.assert_can_create_testimonial(tenant_id).ok is True

    def test_at_limit_denied(self, db_session, evaluator, tenant_id, make_plan, make_subscription):
        make_subscription(tenant_id, make_plan(max_testimonials=3))
        _add_testimonials(db_session, tenant_id, 3)

        check = evaluator.assert_can_create_testimonial(tenant_id)

        assert check.code == EntitlementDenialCode.LIMIT_REACHED
        assert check.resource == "testimonials"


class TestMonthlyRequestLimit:

    def test_previous_month_not_counted(self, db_session, tenant_id, make_plan, make_subscription):
        """Limit 2: one request in the last second of February, one in March."""
        march_now = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
        evaluator = EntitlementEvaluator(
            db_session, settings=EntitlementSettings(), clock=lambda: march_now
        )
        make_subscription(tenant_id, make_plan(max_monthly_requests=2))
        _add_quote_request(db_session, tenant_id, datetime(2026, 2, 28, 23, 59, 59, tzinfo=timezone.utc))
        _add_quote_request(db_session, tenant_id, datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc))

        assert evaluator.count_usage(tenant_id, BoundedResource.MONTHLY_REQUESTS) == 1
        assert evaluator.assert_can_receive_quote_request(tenant_id).ok is True

    def test_current_month_at_limit_denied(self, db_session, tenant_id, make_plan, make_subscription):
        march_now = datetime(2026, 3, 31, 23, 59, 59, tzinfo=timezone.utc)
        evaluator = EntitlementEvaluator(
            db_session, settings=EntitlementSettings(), clock=lambda: march_now
        )
        make_subscription(tenant_id, make_plan(max_monthly_requests=2))
        _add_quote_request(db_session, tenant_id, datetime(2026, 3, 1, 0, 0, 0, tzinfo=timezone.utc))
        _add_quote_request(db_session, tenant_id, datetime(2026, 3, 31, 23, 0, 0, tzinfo=timezone.utc))

        check = evaluator.assert_can_receive_quote_request(tenant_id)

        assert check.code == EntitlementDenialCode.LIMIT_REACHED
        assert check.resource == "monthly_requests"

    def test_new_month_resets_count(self, db_session, tenant_id, make_plan, make_subscription):
        april_now = datetime(2026, 4, 1, 0, 0, 0, tzinfo=timezone.utc)
        evaluator = EntitlementEvaluator(
            db_session, settings=EntitlementSettings(), clock=lambda: april_now
        )
        make_subscription(tenant_id, make_plan(max_monthly_requests=2))
        _add_quote_request(db_session, tenant_id, datetime(2026, 3, 15, tzinfo=timezone.utc))
        _add_quote_request(db_session, tenant_id, datetime(2026, 3, 31, 23, 59, 59, tzinfo=timezone.utc))

        assert evaluator.assert_can_receive_quote_request(tenant_id).ok is True


class TestTeamSeatLimit:

    def test_owner_counts_as_a_seat(self, evaluator, tenant_id, make_plan, make_subscription):
        """max_users=1 and no members: owner already fills the only seat."""
        make_subscription(tenant_id, make_plan(max_users=1))

        check = evaluator.assert_can_add_team_member(tenant_id)

        assert check.code == EntitlementDenialCode.LIMIT_REACHED
        assert check.usage == 1

    def test_below_limit_allowed(self, db_session, evaluator, tenant_id, make_plan, make_subscription):
        make_subscription(tenant_id, make_plan(max_users=5))
        _add_members(db_session, tenant_id, 3)

        assert evaluator.assert_can_add_team_member(tenant_id).ok is True

    def test_at_limit_denied(self, db_session, evaluator, tenant_id, make_plan, make_subscription):
        make_subscription(tenant_id, make_plan(max_users=5))
        _add_members(db_session, tenant_id, 4)

        assert evaluator.assert_can_add_team_member(tenant_id).code == EntitlementDenialCode.LIMIT_REACHED

    def test_zero_limit_is_enforced(self, evaluator, tenant_id, make_plan, make_subscription):
        make_subscription(tenant_id, make_plan(max_users=0))

        assert evaluator.assert_can_add_team_member(tenant_id).ok is False

    def test_unlimited_seats(self, db_session, evaluator, tenant_id, make_plan, make_subscription):
        make_subscription(tenant_id, make_plan(max_users=None))
        _add_members(db_session, tenant_id, 12)

        assert evaluator.assert_can_add_team_member(tenant_id).ok is True


class TestCheckResource:

    def test_accepts_resource_value(self, db_session, evaluator, tenant_id, make_plan, make_subscription):
        make_subscription(tenant_id, make_plan(max_projects=1))
        _add_projects(db_session, tenant_id, 1)

        assert evaluator.check_resource(tenant_id, "projects").code == EntitlementDenialCode.LIMIT_REACHED

    def test_unknown_resource_rejected(self, evaluator, tenant_id):
        with pytest.raises(ValueError):
            evaluator.check_resource(tenant_id, "invoices")


# =============================================================================
# Premium templates
# =============================================================================


class TestPremiumTemplates:

    def test_free_template_always_allowed(self, evaluator, tenant_id):
        assert evaluator.check_premium_template(tenant_id, "MODERNO").ok is True

    def test_unknown_template_allowed(self, evaluator, tenant_id):
        assert evaluator.check_premium_template(tenant_id, "NEON").ok is True

    def test_premium_template_locked_on_starter(self, evaluator, tenant_id, make_plan, make_subscription):
        make_subscription(tenant_id, make_plan(premium_templates_allowed=False))

        check = evaluator.check_premium_template(tenant_id, "ARTESANAL")

        assert check.code == EntitlementDenialCode.PREMIUM_TEMPLATE_LOCKED

    def test_premium_template_locked_without_subscription(self, evaluator, tenant_id):
        check = evaluator.check_premium_template(tenant_id, "URBANO")

        assert check.code == EntitlementDenialCode.PREMIUM_TEMPLATE_LOCKED

    def test_premium_template_allowed_on_pro(self, evaluator, tenant_id, make_plan, make_subscription):
        make_subscription(tenant_id, make_plan(premium_templates_allowed=True))

        assert evaluator.check_premium_template(tenant_id, "URBANO").ok is True


# =============================================================================
# Denial audit
# =============================================================================


class TestDenialAudit:

    def test_denial_writes_audit_entry(self, db_session, evaluator, tenant_id):
        evaluator.assert_can_create_project(tenant_id)

        entry = db_session.query(AuditLogEntry).filter(
            AuditLogEntry.tenant_id == tenant_id
        ).one()
        assert entry.action == "entitlement.denied"
        assert entry.entity_id == "projects"
        assert entry.event_metadata["code"] == "NO_SUBSCRIPTION"

    def test_allowed_check_not_audited(self, db_session, evaluator, tenant_id, make_plan, make_subscription):
        make_subscription(tenant_id, make_plan())

        evaluator.assert_can_create_project(tenant_id)

        assert db_session.query(AuditLogEntry).count() == 0

    def test_recorder_failure_does_not_change_result(self, db_session, tenant_id, fixed_now, make_plan, make_subscription):
        recorder = MagicMock()
        recorder.audit.side_effect = RuntimeError("audit sink down")
        evaluator = EntitlementEvaluator(
            db_session,
            settings=EntitlementSettings(),
            recorder=recorder,
            clock=lambda: fixed_now,
        )
        make_subscription(tenant_id, make_plan(max_projects=1))
        _add_projects(db_session, tenant_id, 1)

        check = evaluator.assert_can_create_project(tenant_id)

        assert check.code == EntitlementDenialCode.LIMIT_REACHED
        recorder.audit.assert_called_once()

    def test_recorder_receives_denial_payload(self, db_session, tenant_id, fixed_now):
        recorder = MagicMock()
        evaluator = EntitlementEvaluator(
            db_session, settings=EntitlementSettings(), recorder=recorder, clock=lambda: fixed_now
        )

        evaluator.assert_can_add_team_member(tenant_id)

        args, kwargs = recorder.audit.call_args
        assert args == ("entitlement.denied",)
        assert kwargs["tenant_id"] == tenant_id
        assert kwargs["metadata"]["code"] == "NO_SUBSCRIPTION"
        assert kwargs["metadata"]["resource"] == "users"


# =============================================================================
# Usage summary
# =============================================================================


class TestUsageSummary:

    def test_summary_reports_usage_and_limits(self, db_session, evaluator, tenant_id, make_plan, make_subscription):
        plan = make_plan(code="Starter", max_projects=6, max_testimonials=6, max_monthly_requests=40, max_users=1)
        make_subscription(tenant_id, plan)
        _add_projects(db_session, tenant_id, 2)
        _add_members(db_session, tenant_id, 1)

        summary = evaluator.get_usage_summary(tenant_id)

        assert summary["plan_code"] == "Starter"
        assert summary["health"] == SubscriptionHealth.ACTIVE.value
        assert summary["resources"]["projects"] == {"usage": 2, "limit": 6}
        assert summary["resources"]["testimonials"] == {"usage": 0, "limit": 6}
        assert summary["resources"]["monthly_requests"] == {"usage": 0, "limit": 40}
        assert summary["resources"]["users"] == {"usage": 2, "limit": 1}

    def test_summary_without_subscription(self, evaluator, tenant_id):
        summary = evaluator.get_usage_summary(tenant_id)

        assert summary["plan_code"] is None
        assert summary["health"] == "inactive"
        assert summary["resources"]["projects"]["limit"] is None
