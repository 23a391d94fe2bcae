"""
Root test configuration and fixtures.

Provides database fixtures that can be used by all tests.

Shared fixtures:
- db_engine / db_session: SQLite in-memory (or PostgreSQL via DATABASE_URL),
  rolled back after every test
- temp_config_dir / make_yaml_config: YAML config files in a temp dir
- make_plan / make_subscription / make_studio: domain row factories
"""

import os
import tempfile
import uuid
import pytest
import yaml
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ.setdefault("ENV", "test")

FIXED_NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


def _get_test_database_url() -> str:
    """Get database URL for tests."""
    database_url = os.getenv("DATABASE_URL")

    if database_url:
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)
        return database_url

    # Default to SQLite for unit tests if no PostgreSQL available
    return "sqlite:///:memory:"


def _is_postgres() -> bool:
    """Check if using PostgreSQL."""
    return _get_test_database_url().startswith("postgresql")


@pytest.fixture(scope="session")
def db_engine():
    """
    Create database engine for tests.

    Uses PostgreSQL if DATABASE_URL is set, otherwise SQLite in-memory.
    """
    database_url = _get_test_database_url()

    if _is_postgres():
        try:
            engine = create_engine(database_url, pool_pre_ping=True)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            pytest.skip(
                f"PostgreSQL not available. Set DATABASE_URL or use SQLite. Error: {e}"
            )
    else:
        # SQLite in-memory for fast unit tests
        from src.database.session import enable_sqlite_savepoints

        engine = enable_sqlite_savepoints(create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        ))

    from src.db_base import Base
    import src.models  # noqa: F401 - registers all model metadata

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Create database session with transaction rollback for test isolation.

    session.commit() only releases a SAVEPOINT; the outer transaction is
    rolled back after the test completes.
    """
    connection = db_engine.connect()
    transaction = connection.begin()

    SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=connection,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(autouse=True)
def _reset_access_catalog(monkeypatch):
    """Every test starts from the built-in catalog."""
    from src.config.access_catalog import reset_access_catalog_loader

    monkeypatch.delenv("ACCESS_CATALOG_PATH", raising=False)
    reset_access_catalog_loader()
    yield
    reset_access_catalog_loader()


@pytest.fixture(autouse=True)
def _reset_entitlement_settings():
    """Settings are re-read from the environment in every test."""
    from src.config.entitlement_settings import reset_entitlement_settings

    reset_entitlement_settings()
    yield
    reset_entitlement_settings()


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "security: mark test as security-focused")
    config.addinivalue_line("markers", "slow: mark test as slow-running")


# =============================================================================
# Shared Config Fixtures
# =============================================================================


@pytest.fixture
def temp_config_dir():
    """Create a temporary directory for YAML config files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_yaml_config(temp_config_dir):
    """
    Factory fixture that writes a YAML config file and returns its path.

    Usage:
        config_path = make_yaml_config("access_catalog.yaml", {"flags": [...]})
    """
    def _make(filename: str, config: dict) -> Path:
        config_path = temp_config_dir / filename
        with open(config_path, "w") as f:
            yaml.dump(config, f)
        return config_path
    return _make


# =============================================================================
# Domain factories
# =============================================================================


@pytest.fixture
def fixed_now():
    """Deterministic evaluation time (mid-month, UTC)."""
    return FIXED_NOW


@pytest.fixture
def tenant_id():
    return f"studio-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def make_plan(db_session):
    """Factory: create a Plan row (quotas default to unlimited)."""
    def _make(code: str = None, **overrides):
        from src.models.plan import Plan

        plan = Plan(
            code=code or f"plan-{uuid.uuid4().hex[:8]}",
            name=overrides.pop("name", "Test Plan"),
            is_active=overrides.pop("is_active", True),
            premium_templates_allowed=overrides.pop("premium_templates_allowed", False),
            **overrides,
        )
        db_session.add(plan)
        db_session.flush()
        return plan
    return _make


@pytest.fixture
def make_subscription(db_session):
    """Factory: attach a subscription for tenant_id to an existing plan."""
    def _make(tenant_id: str, plan, **overrides):
        from src.models.subscription import Subscription, SubscriptionStatus

        subscription = Subscription(
            tenant_id=tenant_id,
            plan_code=plan.code,
            status=overrides.pop("status", SubscriptionStatus.ACTIVE.value),
            is_active=overrides.pop("is_active", True),
            current_period_end=overrides.pop("current_period_end", None),
        )
        db_session.add(subscription)
        db_session.flush()
        return subscription
    return _make


@pytest.fixture
def make_studio(db_session):
    """Factory: create an active studio owned by owner_user_id."""
    def _make(owner_user_id: str = None, **overrides):
        from src.models.studio import Studio

        studio = Studio(
            id=overrides.pop("id", f"studio-{uuid.uuid4().hex[:8]}"),
            owner_user_id=owner_user_id or f"user-{uuid.uuid4().hex[:8]}",
            name=overrides.pop("name", "Ink Studio"),
            is_active=overrides.pop("is_active", True),
        )
        db_session.add(studio)
        db_session.flush()
        return studio
    return _make
