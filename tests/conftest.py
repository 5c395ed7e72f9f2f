"""
Shared fixtures: an in-memory SQLite ledger, seeded users, an in-memory
stand-in for the Redis cache and an HTTP client bound to the ASGI app.
"""

import os

os.environ.setdefault("SERVICE_API_TOKEN", "test-service-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import fnmatch
import json
from datetime import timedelta
from decimal import Decimal

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from api.app import FastAPIManager
from api.database import get_async_session
from api.models import (
    BankAccount,
    Base,
    CoinType,
    Condition2Action,
    GamificationCampaign,
    Trip,
    CommissionType,
    User,
    UserRole,
    UserStatus,
)
from services.notifier import LineNotifier, get_notifier
from services.redis import RedisCache, get_cache
from utils.time import utcnow

SERVICE_KEY = "test-service-key"


class InMemoryCache(RedisCache):
    """RedisCache with a dict instead of a Redis connection."""

    def __init__(self, ttl: int = 30):
        self.ttl = ttl
        self.store: dict[str, str] = {}

    async def get_json(self, key):
        raw = self.store.get(key)
        return json.loads(raw) if raw else None

    async def set_json(self, key, value, ttl=None):
        self.store[key] = json.dumps(value)

    async def invalidate(self, pattern):
        doomed = [k for k in self.store if fnmatch.fnmatch(k, pattern)]
        for k in doomed:
            del self.store[k]
        return len(doomed)


class RecordingNotifier(LineNotifier):
    """Configured notifier that records texts instead of calling LINE."""

    def __init__(self, fail: bool = False):
        self.token = "token"
        self.recipients = ["admin-group"]
        self.fail = fail
        self.sent: list[str] = []

    async def push(self, text):
        if self.fail:
            raise RuntimeError("LINE is down")
        self.sent.append(text)
        return True


@pytest.fixture
async def engine():
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
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


async def _add_user(session, email, role):
    user = User(email=email, full_name=email.split("@")[0].title(), role=role, status=UserStatus.approved)
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def seller(session):
    return await _add_user(session, "somchai@example.com", UserRole.seller)


@pytest.fixture
async def other_seller(session):
    return await _add_user(session, "malee@example.com", UserRole.seller)


@pytest.fixture
async def admin(session):
    return await _add_user(session, "admin@example.com", UserRole.admin)


@pytest.fixture
async def bank_account(session, seller):
    account = BankAccount(
        seller_id=seller.id,
        bank_name="Kasikorn",
        account_number="123-4-56789-0",
        account_name="Somchai",
        is_default=True,
    )
    session.add(account)
    await session.commit()
    return account


@pytest.fixture
async def trip(session):
    trip = Trip(
        title="Chiang Mai 3D2N",
        price_per_person=Decimal("1000.00"),
        commission_type=CommissionType.percentage,
        commission_value=Decimal("10"),
    )
    session.add(trip)
    await session.commit()
    return trip


@pytest.fixture
def make_campaign(session):
    async def _make(**overrides):
        now = utcnow()
        fields = dict(
            title="First booking",
            condition_1_type="first_booking",
            condition_1_reward_amount=100,
            condition_1_reward_type=CoinType.locked,
            condition_2_type="fifth_booking",
            condition_2_action=Condition2Action.unlock,
            condition_2_bonus_amount=0,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=30),
            is_active=True,
        )
        fields.update(overrides)
        campaign = GamificationCampaign(**fields)
        session.add(campaign)
        await session.commit()
        return campaign
    return _make


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(session_maker, cache, notifier):
    app = FastAPIManager().get_app()

    async def _session():
        async with session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_notifier] = lambda: notifier
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", headers={"X-API-KEY": SERVICE_KEY}) as client:
        yield client


def as_user(user) -> dict:
    return {"X-User-Id": str(user.id)}
