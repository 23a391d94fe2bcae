"""
Access Catalog Seed Script
Writes the feature flag catalog, the permission catalog and the full
OWNER/ADMIN/STAFF permission matrix into the database.

Usage:
    python -m scripts.seed_access_catalog
    python -m scripts.seed_access_catalog --dry-run (to preview without saving)
    python -m scripts.seed_access_catalog --report-orphans
    python -m scripts.seed_access_catalog --with-plans

Environment variables:
    DATABASE_URL: PostgreSQL connection string (required)
    ACCESS_CATALOG_PATH: YAML catalog override (optional)
"""

import sys
import logging
from pathlib import Path

# Add backend directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from sqlalchemy.exc import SQLAlchemyError

from src.config.access_catalog import get_access_catalog
from src.constants.access_catalog import AccessCatalog
from src.database.session import get_database_url, get_session_factory
from src.entitlements.errors import AccessCatalogError
from src.entitlements.seeder import CatalogSeeder, ensure_default_plans

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def describe_catalog(catalog: AccessCatalog) -> None:
    """Log the desired catalog."""
    logger.info(f"Flags ({len(catalog.flags)}):")
    for entry in catalog.flags:
        logger.info(f"   - {entry.code}: {entry.name}")
    logger.info("")

    logger.info(f"Permissions ({len(catalog.permissions)}):")
    for entry in catalog.permissions:
        logger.info(f"   - {entry.code}: {entry.name}")
    logger.info("")

    logger.info("Role matrix:")
    for role in catalog.roles:
        granted = sorted(catalog.role_permissions[role])
        logger.info(f"   - {role}: {', '.join(granted) if granted else '(none)'}")
    logger.info("")


def seed_access_catalog(
    database_url: str,
    dry_run: bool = False,
    report_orphans: bool = False,
    with_plans: bool = False,
) -> None:
    """
    Seed the access catalog into the database.

    Args:
        database_url: PostgreSQL connection string
        dry_run: If True, preview changes without saving
        report_orphans: If True, list stored codes missing from the catalog
        with_plans: If True, also insert default plans into an empty plans table
    """
    catalog = get_access_catalog()
    session = get_session_factory(database_url)()

    try:
        logger.info("=" * 60)
        logger.info("ACCESS CATALOG SEED SCRIPT")
        logger.info("=" * 60)
        logger.info(f"Mode: {'DRY RUN' if dry_run else 'EXECUTION'}")
        logger.info("")

        describe_catalog(catalog)

        seeder = CatalogSeeder(session, catalog)

        if report_orphans:
            orphans = seeder.find_orphaned_codes()
            logger.info("Stored codes not in catalog (left in place):")
            logger.info(f"   flags: {', '.join(orphans['flags']) or '(none)'}")
            logger.info(f"   permissions: {', '.join(orphans['permissions']) or '(none)'}")
            logger.info("")

        if dry_run:
            logger.info("DRY RUN - No changes will be made")
            return

        seeder.ensure_catalog()
        plans_created = ensure_default_plans(session) if with_plans else 0
        session.commit()

        logger.info("=" * 60)
        logger.info("SUMMARY")
        logger.info("=" * 60)
        logger.info(f"Flags upserted: {len(catalog.flags)}")
        logger.info(f"Permissions upserted: {len(catalog.permissions)}")
        logger.info(f"Role matrix cells upserted: {len(catalog.roles) * len(catalog.permissions)}")
        if with_plans:
            logger.info(f"Default plans created: {plans_created}")

    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        session.rollback()
        raise
    finally:
        session.close()


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Seed the access catalog into the database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m scripts.seed_access_catalog                   # Upsert catalog
  python -m scripts.seed_access_catalog --dry-run         # Preview without saving
  python -m scripts.seed_access_catalog --report-orphans  # Show catalog drift
        """
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview changes without saving to database"
    )
    parser.add_argument(
        "--report-orphans",
        action="store_true",
        help="List stored flag/permission codes no longer in the catalog"
    )
    parser.add_argument(
        "--with-plans",
        action="store_true",
        help="Insert the default Starter/Pro/Studio plans if no plan exists"
    )
    parser.add_argument(
        "--database-url",
        type=str,
        help="Database URL (overrides DATABASE_URL env var)"
    )

    args = parser.parse_args()

    try:
        database_url = get_database_url(args.database_url)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    try:
        seed_access_catalog(
            database_url,
            dry_run=args.dry_run,
            report_orphans=args.report_orphans,
            with_plans=args.with_plans,
        )
    except AccessCatalogError as e:
        logger.error(f"Invalid access catalog: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Script failed: {e}")
        sys.exit(1)

    logger.info("Done!")


if __name__ == "__main__":
    main()
