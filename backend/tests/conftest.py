"""Shared fixtures: SQLite store, in-memory Redis bus, users and permits."""

import os

# Settings are read at import time; provide required secrets before importing the app
os.environ.setdefault("TOKEN_SIGNING_SECRET", "test-token-signing-secret-0123456789abcdef")
os.environ.setdefault("AUTH_JWT_SECRET", "test-auth-jwt-secret-0123456789abcdef012345")

from collections.abc import AsyncIterator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from fakeredis.aioredis import FakeRedis  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from permit_trust.config import settings  # noqa: E402
from permit_trust.logging import setup_logging  # noqa: E402
from permit_trust.models import AppUser, Permit, PermitStatus, UserRole  # noqa: E402
from permit_trust.services.cache.validation_cache import ValidationCache  # noqa: E402
from permit_trust.services.events.broadcaster import EventBroadcaster  # noqa: E402
from permit_trust.services.events.dispatcher import EventDispatcher  # noqa: E402
from permit_trust.services.tokens.codec import TokenCodec  # noqa: E402

from tests.helpers import FAST_RETRY, PermitFactory, UserFactory, sqlite_url  # noqa: E402

TOKEN_SECRET = settings.token_signing_secret

# Configure once against pytest's captured stdout rather than a CliRunner stream
setup_logging()


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    # File-backed so concurrent sessions use separate connections; generous busy timeout
    engine = create_async_engine(sqlite_url(tmp_path / "test.db"), connect_args={"timeout": 30})
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_maker() as session:
        yield session


@pytest.fixture
async def redis() -> AsyncIterator[FakeRedis]:
    client = FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def broadcaster(redis: FakeRedis) -> EventBroadcaster:
    return EventBroadcaster(redis, heartbeat_interval=60.0, retry_ms=1000, retry_config=FAST_RETRY)


@pytest.fixture
async def dispatcher(broadcaster: EventBroadcaster) -> AsyncIterator[EventDispatcher]:
    dispatcher = EventDispatcher(broadcaster)
    yield dispatcher
    await dispatcher.drain(timeout=5)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TOKEN_SECRET, validity=timedelta(hours=24))


@pytest.fixture
def validation_cache() -> ValidationCache:
    return ValidationCache(ttl=30.0)


@pytest.fixture
def make_user(session: AsyncSession) -> UserFactory:
    counter = 0

    async def factory(role: UserRole, **overrides: Any) -> AppUser:
        nonlocal counter
        counter += 1
        user = AppUser(
            email=overrides.pop("email", f"{role.value}{counter}@example.com"),
            display_name=overrides.pop("display_name", f"{role.value.title()} {counter}"),
            role=role,
            **overrides,
        )
        session.add(user)
        await session.commit()
        return user

    return factory


@pytest.fixture
async def vendor(make_user: UserFactory) -> AppUser:
    return await make_user(UserRole.VENDOR, display_name="PT Konstruksi Jaya")


@pytest.fixture
async def verifier(make_user: UserFactory) -> AppUser:
    return await make_user(UserRole.VERIFIER, display_name="Budi Verifier")


@pytest.fixture
async def approver(make_user: UserFactory) -> AppUser:
    return await make_user(UserRole.APPROVER, display_name="Sari Approver")


@pytest.fixture
async def reviewer(make_user: UserFactory) -> AppUser:
    return await make_user(UserRole.REVIEWER)


@pytest.fixture
async def admin(make_user: UserFactory) -> AppUser:
    return await make_user(UserRole.ADMIN)


@pytest.fixture
def make_permit(session: AsyncSession, vendor: AppUser) -> PermitFactory:
    async def factory(**overrides: Any) -> Permit:
        permit = Permit(
            vendor_id=overrides.pop("vendor_id", vendor.id),
            vendor_name=overrides.pop("vendor_name", vendor.display_name),
            job_description=overrides.pop("job_description", "Pipe welding"),
            work_location=overrides.pop("work_location", "Plant 2"),
            **overrides,
        )
        session.add(permit)
        await session.commit()
        return permit

    return factory


@pytest.fixture
async def approved_permit(make_permit: PermitFactory) -> Permit:
    return await make_permit(
        status=PermitStatus.APPROVED,
        document_number="2024/0001/SMKT/OPR",
        approved_at=datetime(2024, 3, 1, tzinfo=UTC),
    )
