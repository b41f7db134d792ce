"""Integration test fixtures with an in-memory SQLite database."""

from collections.abc import AsyncGenerator
from datetime import datetime
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from overtime_engine.api.app import create_app
from overtime_engine.api.dependencies import get_db_session
from overtime_engine.models import Base, EmployeePayConfig, Punch, SitePayConfig

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Database session for integration tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the test database."""
    app = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def employee_config_row(**overrides: Any) -> EmployeePayConfig:
    """Hourly 20.00, weekday OT x1.5, weekend OT fixed 40.00, Friday/Saturday weekend."""
    values: dict[str, Any] = {
        "employee_id": "E001",
        "employee_name": "Alice Example",
        "pay_type": "Hourly",
        "regular_hourly_rate": Decimal("20.00"),
        "weekday_ot_rate_type": "multiplier",
        "weekday_ot_multiplier": Decimal("1.5"),
        "weekend_ot_rate_type": "fixed",
        "weekend_ot_fixed_rate": Decimal("40.00"),
        "week_start_day": "Sunday",
        "weekend_days": "Friday,Saturday",
        "workday_start": "09:00:00",
        "workday_end": "17:00:00",
        "ot_start_time": "17:00:00",
    }
    values.update(overrides)
    return EmployeePayConfig(**values)


def punch_rows(employee_id: str, *stamps: str) -> list[Punch]:
    """Punches from "YYYY-MM-DD HH:MM" strings."""
    return [
        Punch(employee_id=employee_id, punch_time=datetime.strptime(stamp, "%Y-%m-%d %H:%M"))
        for stamp in stamps
    ]


@pytest_asyncio.fixture
async def seeded_db(session_factory) -> None:
    """Alice (E001) and Bob (E002) configs, a site default, and one week of punches."""
    async with session_factory() as session:
        session.add_all(
            [
                employee_config_row(),
                employee_config_row(
                    employee_id="E002",
                    employee_name="Bob Example",
                    regular_hourly_rate=Decimal("30.00"),
                    weekend_ot_rate_type="multiplier",
                    weekend_ot_fixed_rate=None,
                    weekend_ot_multiplier=Decimal("2.0"),
                ),
                SitePayConfig(
                    site_code="HQ",
                    site_name="Head Office",
                    default_hourly_rate=Decimal("18.00"),
                ),
            ]
        )
        session.add_all(
            punch_rows("E001", "2024-01-08 09:00", "2024-01-08 18:30")
            + punch_rows("E001", "2024-01-09 09:00", "2024-01-09 17:00")
            + punch_rows("E001", "2024-01-12 10:00", "2024-01-12 16:00")
            + punch_rows("E002", "2024-01-08 09:00", "2024-01-08 17:00")
        )
        await session.commit()
