"""Root conftest - test infrastructure for all backend tests.

Provides:
- Safety guard: require REFERRALS_DB_TESTS=1 for database tests
- Transaction-rollback db_session fixture
- Referrer / referred user fixtures with sessions and referral rows
"""

from __future__ import annotations

import os
import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import delete, event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config.settings import settings

DB_TESTS_ENABLED = bool(os.getenv("REFERRALS_DB_TESTS"))

# ─────────────────────────────────────────────────────────────────────────────
# Safety Guard
# ─────────────────────────────────────────────────────────────────────────────


def pytest_configure(config: pytest.Config) -> None:
    """Register markers. Unit and API tests run without a database."""
    config.addinivalue_line("markers", "integration: DB integration tests (transaction rollback)")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip DB integration tests unless REFERRALS_DB_TESTS=1."""
    if DB_TESTS_ENABLED:
        return
    skip_db = pytest.mark.skip(reason="Set REFERRALS_DB_TESTS=1 to run database tests")
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(skip_db)


# ─────────────────────────────────────────────────────────────────────────────
# Transaction-Rollback Engine (uses DIRECT connection, not pooler)
# ─────────────────────────────────────────────────────────────────────────────

# PgBouncer transaction pooling (port 6543) breaks SAVEPOINTs because it
# may multiplex connections across transactions. Use direct (port 5432).
TEST_ENGINE = create_async_engine(
    settings.database_url_direct,
    echo=False,
    pool_pre_ping=True,
    pool_size=3,
    max_overflow=2,
    connect_args={
        "command_timeout": 30,
    },
)


# ─────────────────────────────────────────────────────────────────────────────
# Transaction-Rollback Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
async def db_session():
    """Database session wrapped in a transaction that is ALWAYS rolled back.

    Uses SAVEPOINT so tests can call commit() internally without
    actually committing - the outer transaction absorbs it.

    NOTE: Uses the direct connection (port 5432), not the transaction
    pooler (port 6543), because PgBouncer breaks SAVEPOINTs.
    """
    async with TEST_ENGINE.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(bind=conn, expire_on_commit=False)
        await conn.begin_nested()

        @event.listens_for(session.sync_session, "after_transaction_end")
        def restart_savepoint(session_sync, transaction):
            """Restart SAVEPOINT after each nested transaction ends.

            This lets application code call session.commit() freely -
            each commit hits a savepoint, not the real transaction.
            """
            if transaction.nested and not transaction._parent.nested:
                session_sync.begin_nested()

        try:
            yield session
        finally:
            await session.close()
            await trans.rollback()


async def _make_user(db: AsyncSession, label: str, age: timedelta):
    from app.models.user import User

    user = User(
        id=uuid.uuid4(),
        email=f"__test_{label}_{uuid.uuid4().hex[:8]}@example.com",
        display_name=f"Test {label.title()}",
        created_at=datetime.now(UTC) - age,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


@pytest.fixture
async def referrer(db_session: AsyncSession):
    """A long-standing user who shares their referral link."""
    return await _make_user(db_session, "referrer", timedelta(days=90))


@pytest.fixture
async def referred_user(db_session: AsyncSession):
    """A user who signed up five hours ago, old enough to activate."""
    return await _make_user(db_session, "referred", timedelta(hours=5))


@pytest.fixture
async def pending_referral(db_session: AsyncSession, referrer, referred_user):
    """A pending referral from referrer to referred_user."""
    from app.domain.referral_operations import referral_ops

    return await referral_ops.create_referral(
        db_session,
        referrer_user_id=referrer.id,
        referred_user_id=referred_user.id,
        referral_code="luna-test",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Committed Fixtures (for tests that need several concurrent sessions)
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def committed_session_maker():
    """Session factory on the direct engine whose commits are real."""
    return async_sessionmaker(TEST_ENGINE, expire_on_commit=False)


@pytest.fixture
async def committed_users(committed_session_maker):
    """Create users in their own committed transaction; deleted on teardown.

    Deleting a user cascades to its sessions, referrals, grants and
    subscription, so nothing outlives the test.
    """
    from app.models.user import User

    created: list[uuid.UUID] = []

    async def create(label: str, age: timedelta) -> uuid.UUID:
        user_id = uuid.uuid4()
        async with committed_session_maker() as db:
            db.add(
                User(
                    id=user_id,
                    email=f"__test_{label}_{user_id.hex[:8]}@example.com",
                    created_at=datetime.now(UTC) - age,
                )
            )
            await db.commit()
        created.append(user_id)
        return user_id

    yield create

    async with committed_session_maker() as db:
        await db.execute(delete(User).where(User.id.in_(created)))  # type: ignore[attr-defined]
        await db.commit()
