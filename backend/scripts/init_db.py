"""
Database initialization script.

Creates all tables defined in the SQLAlchemy models, then seeds the access
catalog so resolution works on the first request.

Usage:
    python -m scripts.init_db
    python -m scripts.init_db --skip-seed

Environment variables:
    DATABASE_URL: PostgreSQL connection string
"""

import sys
import logging
from pathlib import Path

# Add backend directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from src.db_base import Base
import src.models  # noqa: F401 - registers all model metadata
from src.database.session import get_database_url, get_engine, session_scope
from src.entitlements.seeder import ensure_catalog

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_database(database_url: str) -> None:
    """
    Initialize database tables.

    Creates all tables defined in SQLAlchemy models if they don't exist.
    Existing tables are not modified (use migrations for schema changes).
    """
    engine = get_engine(database_url)

    table_names = sorted(Base.metadata.tables.keys())
    logger.info(f"Tables to create/verify: {', '.join(table_names)}")

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("All tables created/verified successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create tables: {e}")
        raise

    existing = set(inspect(engine).get_table_names())
    for table_name in table_names:
        status = "EXISTS" if table_name in existing else "MISSING"
        logger.info(f"  {table_name}: {status}")


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Create tables and seed the access catalog")
    parser.add_argument(
        "--skip-seed",
        action="store_true",
        help="Only create tables"
    )
    parser.add_argument(
        "--database-url",
        type=str,
        help="Database URL (overrides DATABASE_URL env var)"
    )
    args = parser.parse_args()

    try:
        database_url = get_database_url(args.database_url)
        init_database(database_url)
        if not args.skip_seed:
            with session_scope(database_url) as session:
                ensure_catalog(session)
            logger.info("Access catalog seeded")
    except Exception as e:
        logger.error(f"Initialization failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
