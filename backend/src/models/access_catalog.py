"""
Access catalog models: feature flags, permissions and their grant layers.

Layers (lowest to highest precedence):
- FeatureFlagDefinition / PermissionDefinition: the reference catalog
- PlanFeatureFlag: default flag state granted to a plan
- RolePermissionGrant: default permission state for a studio role
- TenantFeatureOverride / TenantPermissionOverride: per-studio exceptions

Catalog and default-grant rows are written only by the CatalogSeeder.
Override rows are owned by tenant-management workflows and are read-only
from the resolvers' point of view.
"""

from sqlalchemy import (
    Column, String, Text, Boolean,
    ForeignKey, UniqueConstraint
)

from src.models.base import Base, TimestampMixin, TenantScopedMixin, generate_uuid


class FeatureFlagDefinition(Base, TimestampMixin):
    """A boolean capability switch gating a product feature."""

    __tablename__ = "feature_flags"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    code = Column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
        comment="Machine-readable flag code (e.g. domains.custom)"
    )
    name = Column(
        String(200),
        nullable=False,
        comment="Human-readable flag name"
    )
    description = Column(
        Text,
        nullable=True
    )

    def __repr__(self) -> str:
        return f"<FeatureFlagDefinition(code={self.code})>"


class PermissionDefinition(Base, TimestampMixin):
    """A boolean capability switch gating an action, scoped by studio role."""

    __tablename__ = "permissions"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    code = Column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
        comment="Machine-readable permission code (e.g. billing.manage)"
    )
    name = Column(
        String(200),
        nullable=False,
        comment="Human-readable permission name"
    )
    description = Column(
        Text,
        nullable=True
    )

    def __repr__(self) -> str:
        return f"<PermissionDefinition(code={self.code})>"


class PlanFeatureFlag(Base, TimestampMixin):
    """
    Default flag state granted to a plan.

    One row per (plan_code, flag_code). Plans without rows simply grant
    nothing beyond the closed baseline.
    """

    __tablename__ = "plan_feature_flags"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    plan_code = Column(
        String(50),
        nullable=False,
        index=True,
        comment="Plan code (not a FK: grants may exist before the plan row)"
    )
    flag_code = Column(
        String(100),
        ForeignKey("feature_flags.code", ondelete="CASCADE"),
        nullable=False
    )
    enabled = Column(
        Boolean,
        nullable=False,
        default=False
    )

    __table_args__ = (
        UniqueConstraint("plan_code", "flag_code", name="uq_plan_feature_flag"),
    )

    def __repr__(self) -> str:
        return f"<PlanFeatureFlag(plan={self.plan_code}, flag={self.flag_code}, enabled={self.enabled})>"


class RolePermissionGrant(Base, TimestampMixin):
    """
    Default permission state for a studio role.

    The seeder writes a row for EVERY (role, permission) pair, so both
    grants and explicit denials are recorded.
    """

    __tablename__ = "role_permission_grants"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    studio_role = Column(
        String(20),
        nullable=False,
        index=True,
        comment="OWNER, ADMIN or STAFF"
    )
    perm_code = Column(
        String(100),
        ForeignKey("permissions.code", ondelete="CASCADE"),
        nullable=False
    )
    allowed = Column(
        Boolean,
        nullable=False,
        default=False
    )

    __table_args__ = (
        UniqueConstraint("studio_role", "perm_code", name="uq_role_permission_grant"),
    )

    def __repr__(self) -> str:
        return f"<RolePermissionGrant(role={self.studio_role}, perm={self.perm_code}, allowed={self.allowed})>"


class TenantFeatureOverride(Base, TimestampMixin, TenantScopedMixin):
    """Per-studio flag override. Wins over the plan grant."""

    __tablename__ = "tenant_feature_overrides"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    flag_code = Column(
        String(100),
        ForeignKey("feature_flags.code", ondelete="CASCADE"),
        nullable=False
    )
    enabled = Column(
        Boolean,
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "flag_code", name="uq_tenant_feature_override"),
    )


class TenantPermissionOverride(Base, TimestampMixin, TenantScopedMixin):
    """Per-studio permission override. Wins over the role default."""

    __tablename__ = "tenant_permission_overrides"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    perm_code = Column(
        String(100),
        ForeignKey("permissions.code", ondelete="CASCADE"),
        nullable=False
    )
    allowed = Column(
        Boolean,
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "perm_code", name="uq_tenant_permission_override"),
    )
