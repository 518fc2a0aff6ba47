"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import ticketing.models  # noqa: F401
from ticketing.core.db import Base
from ticketing.core.security import QRSigner
from ticketing.schemas.promo import PromoCode

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def signer() -> QRSigner:
    return QRSigner("test-signing-secret")


@pytest.fixture
def make_promo():
    def _make(**overrides) -> PromoCode:
        data = {
            "id": 7,
            "code": "SUMMER20",
            "event_id": "evt-1",
            "active": True,
            "valid_from": NOW - timedelta(days=10),
            "valid_to": NOW + timedelta(days=10),
            "type": "percent",
            "amount": 20,
            "max_uses": 0,
            "current_uses": 0,
            "max_per_user": 0,
            "min_order_value": 0,
            "applies_to_ticket_type_ids": [],
        }
        data.update(overrides)
        return PromoCode(**data)

    return _make


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(db_engine) -> AsyncSession:
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session
