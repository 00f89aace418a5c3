"""
Test configuration and fixtures.

This module sets up the test environment and provides shared fixtures for all
tests: an in-memory SQLite database per test and small factories for the
catalog rows most tests need.
"""

import os

# Must be set BEFORE any imports of database.connection or shared.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_JWT_SECRET"] = "test-secret-for-session-tokens"
os.environ["SUPERADMIN_EMAILS"] = "root@example.com"
os.environ["TIMEZONE"] = "America/Sao_Paulo"
os.environ["WEBHOOK_TEST_FUNCTION_URL"] = "http://functions.test/test-webhook"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta  # noqa: E402
from zoneinfo import ZoneInfo  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from database.connection import create_session_factory  # noqa: E402
from database.models import (  # noqa: E402
    AvailableSlot,
    Base,
    Company,
    Professional,
    Service,
    User,
    UserRole,
    UserType,
)

LOCAL_TZ = ZoneInfo("America/Sao_Paulo")


@pytest.fixture
async def engine():
    """
    Fresh in-memory database for each test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


# ============================================================================
# Row factories
# ============================================================================


@pytest.fixture
def add_rows(session_factory):
    """Persist ORM instances and return them refreshed."""

    async def _add(*rows):
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()
            for row in rows:
                await session.refresh(row)
        return rows[0] if len(rows) == 1 else rows

    return _add


@pytest.fixture
async def company(add_rows):
    return await add_rows(Company(name="Studio Bella", slug="studio-bella", is_active=True))


@pytest.fixture
async def professional(add_rows, company):
    return await add_rows(Professional(name="Ana Souza", active=True, company_id=company.id))


@pytest.fixture
async def service(add_rows, company):
    return await add_rows(
        Service(name="Corte", description="", duration=30, price=50, active=True, company_id=company.id)
    )


@pytest.fixture
def slot_start():
    """A local 09:00 one week ahead."""
    day = (datetime.now(LOCAL_TZ) + timedelta(days=7)).date()
    return datetime(day.year, day.month, day.day, 9, 0, tzinfo=LOCAL_TZ)


@pytest.fixture
async def slot(add_rows, professional, slot_start):
    return await add_rows(
        AvailableSlot(
            professional_id=professional.id,
            start_time=slot_start.astimezone(ZoneInfo("UTC")),
            end_time=(slot_start + timedelta(minutes=30)).astimezone(ZoneInfo("UTC")),
            is_available=True,
            company_id=professional.company_id,
        )
    )


@pytest.fixture
async def admin_user(add_rows, company):
    return await add_rows(
        User(
            name="Company Admin",
            email="admin@studio-bella.com",
            role=UserRole.ADMIN,
            user_type=UserType.ADMIN,
            auth_id="auth-admin",
            company_id=company.id,
        )
    )


@pytest.fixture
async def superadmin_user(add_rows):
    return await add_rows(
        User(
            name="Platform Owner",
            email="owner@example.com",
            role=UserRole.ADMIN,
            user_type=UserType.SUPERADMIN,
            auth_id="auth-super",
        )
    )
