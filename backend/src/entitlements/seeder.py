"""
Catalog Seeder - guarantees the access catalog exists in the store.

Upserts, for a given AccessCatalog:
- every feature flag definition (code -> name, description)
- every permission definition (code -> name, description)
- every (role, permission) cell of the role matrix (-> allowed)

Idempotent and safe under concurrency: each row is written with a single
INSERT ... ON CONFLICT DO UPDATE statement on PostgreSQL and SQLite, so N
concurrent seeders converge on the same end state without locking. Other
dialects fall back to a savepoint-guarded read-then-write that retries once
on a unique-key race.

Monotonic: codes removed from the catalog are NEVER deleted from the store.
Use find_orphaned_codes() to report drift.
"""

import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.constants.access_catalog import AccessCatalog
from src.constants.plans import DEFAULT_PLANS
from src.models.access_catalog import (
    FeatureFlagDefinition,
    PermissionDefinition,
    RolePermissionGrant,
)
from src.models.plan import Plan
from src.models.base import generate_uuid

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class CatalogSeeder:
    """
    Writes the desired AccessCatalog into the store.

    A pure function of (current store state, desired catalog): the catalog
    is passed in explicitly and never read from module globals here.

    Usage:
        seeder = CatalogSeeder(db_session, get_access_catalog())
        seeder.ensure_catalog()
    """

    def __init__(self, db_session: Session, catalog: Optional[AccessCatalog] = None):
        """
        Args:
            db_session: SQLAlchemy session
            catalog: Desired catalog. Defaults to the process-wide catalog.
        """
        if catalog is None:
            # Lazy import: config imports entitlements.errors
            from src.config.access_catalog import get_access_catalog
            catalog = get_access_catalog()

        self.db = db_session
        self.catalog = catalog

    def ensure_catalog(self) -> None:
        """Upsert flags, permissions and the full role matrix."""
        for entry in self.catalog.flags:
            self._upsert(
                FeatureFlagDefinition,
                key={"code": entry.code},
                values={"name": entry.name, "description": entry.description},
            )

        for entry in self.catalog.permissions:
            self._upsert(
                PermissionDefinition,
                key={"code": entry.code},
                values={"name": entry.name, "description": entry.description},
            )

        # Exhaustive matrix: denials are written as explicitly as grants
        for role in self.catalog.roles:
            for entry in self.catalog.permissions:
                self._upsert(
                    RolePermissionGrant,
                    key={"studio_role": role, "perm_code": entry.code},
                    values={"allowed": self.catalog.is_allowed(role, entry.code)},
                )

        self.db.flush()

        logger.debug(
            "access_catalog.seeded",
            extra={
                "flags": len(self.catalog.flags),
                "permissions": len(self.catalog.permissions),
                "roles": len(self.catalog.roles),
            },
        )

    def find_orphaned_codes(self) -> Dict[str, List[str]]:
        """
        Report store rows whose codes are no longer in the catalog.

        Orphans are left in place (flags still show up as False in resolved
        maps); this is a read-only drift report for operators.
        """
        flag_codes = {
            code for (code,) in self.db.query(FeatureFlagDefinition.code).all()
        }
        perm_codes = {
            code for (code,) in self.db.query(PermissionDefinition.code).all()
        }
        orphans = {
            "flags": sorted(flag_codes - self.catalog.flag_codes),
            "permissions": sorted(perm_codes - self.catalog.permission_codes),
        }
        if orphans["flags"] or orphans["permissions"]:
            logger.warning("access_catalog.orphaned_codes", extra=orphans)
        return orphans

    # ------------------------------------------------------------------
    # Upsert strategies
    # ------------------------------------------------------------------

    def _upsert(self, model, key: Dict[str, object], values: Dict[str, object]) -> None:
        dialect = self.db.get_bind().dialect.name
        insert_fn = _UPSERT_DIALECTS.get(dialect)
        if insert_fn is not None:
            self._upsert_on_conflict(insert_fn, model, key, values)
        else:
            self._upsert_read_then_write(model, key, values)

    def _upsert_on_conflict(self, insert_fn, model, key, values) -> None:
        stmt = insert_fn(model.__table__).values(id=generate_uuid(), **key, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(key.keys()),
            set_={**values, "updated_at": func.now()},
        )
        self.db.execute(stmt)

    def _upsert_read_then_write(self, model, key, values, _retry: bool = True) -> None:
        filters: Sequence = [getattr(model, col) == val for col, val in key.items()]
        try:
            with self.db.begin_nested():
                row = self.db.query(model).filter(*filters).first()
                if row is None:
                    self.db.add(model(**key, **values))
                else:
                    for col, val in values.items():
                        setattr(row, col, val)
        except IntegrityError:
            # Another seeder inserted the same key between our read and write
            if not _retry:
                raise
            logger.debug(
                "access_catalog.upsert_race_retry",
                extra={"table": model.__tablename__, **key},
            )
            self._upsert_read_then_write(model, key, values, _retry=False)


def ensure_catalog(db_session: Session, catalog: Optional[AccessCatalog] = None) -> None:
    """Convenience wrapper: seed the catalog with a throwaway CatalogSeeder."""
    CatalogSeeder(db_session, catalog).ensure_catalog()


def ensure_default_plans(db_session: Session) -> int:
    """
    Insert DEFAULT_PLANS when the plans table is empty.

    Returns:
        Number of plans created (0 when any plan already exists)
    """
    if db_session.query(Plan).count() > 0:
        return 0

    for plan_data in DEFAULT_PLANS:
        db_session.add(Plan(is_active=True, **plan_data))
    db_session.flush()

    logger.info("plans.default_seeded", extra={"count": len(DEFAULT_PLANS)})
    return len(DEFAULT_PLANS)
