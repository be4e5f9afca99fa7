"""Tests for bearer token validation and its cache."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from permit_trust.config import settings
from permit_trust.models import AppUser, UserRole
from permit_trust.services.auth import IdentityService
from permit_trust.services.cache import ValidationCache
from permit_trust.services.exceptions import AuthenticationError

from tests.helpers import UserFactory, bearer_token


@pytest.fixture
def identities(session: AsyncSession, validation_cache: ValidationCache) -> IdentityService:
    return IdentityService(session, validation_cache)


async def test_valid_token(identities: IdentityService, verifier: AppUser) -> None:
    identity = await identities.authenticate(bearer_token(verifier))

    assert identity.user_id == verifier.id
    assert identity.role == UserRole.VERIFIER
    assert identity.display_name == "Budi Verifier"
    assert identity.vendor_id is None


async def test_vendor_identity_carries_vendor_id(identities: IdentityService, vendor: AppUser) -> None:
    identity = await identities.authenticate(bearer_token(vendor))

    assert identity.vendor_id == vendor.id


async def test_successful_validation_is_cached(
    identities: IdentityService, validation_cache: ValidationCache, session: AsyncSession, verifier: AppUser
) -> None:
    token = bearer_token(verifier)
    await identities.authenticate(token)

    # Deactivation is only observed once the cached entry expires
    verifier.is_active = False
    session.add(verifier)
    await session.commit()
    identity = await identities.authenticate(token)

    assert identity.user_id == verifier.id
    assert validation_cache.stats().hits == 1

    validation_cache.invalidate(("bearer", token))
    with pytest.raises(AuthenticationError):
        await identities.authenticate(token)


@pytest.mark.parametrize("token", [None, ""])
async def test_missing_token(identities: IdentityService, token: str | None) -> None:
    with pytest.raises(AuthenticationError, match="Missing"):
        await identities.authenticate(token)


async def test_expired_token(identities: IdentityService, verifier: AppUser) -> None:
    with pytest.raises(AuthenticationError, match="expired"):
        await identities.authenticate(bearer_token(verifier, expires_in=timedelta(minutes=-1)))


async def test_wrong_signing_key(identities: IdentityService, verifier: AppUser) -> None:
    token = bearer_token(verifier, secret="some-other-provider-secret-0123456789abcdef")

    with pytest.raises(AuthenticationError, match="Invalid token"):
        await identities.authenticate(token)


@pytest.mark.parametrize(
    "claims",
    [
        {"sub": "not-a-user-id"},
        {"exp": datetime.now(UTC) + timedelta(hours=1)},
        {"sub": "01HRZ8Q4N7YDKB3J5W2M6X9TGA"},
    ],
)
async def test_incomplete_claims(identities: IdentityService, claims: dict[str, object]) -> None:
    claims.setdefault("exp", datetime.now(UTC) + timedelta(hours=1))

    with pytest.raises(AuthenticationError):
        await identities.authenticate(jwt.encode(claims, settings.auth_jwt_secret, algorithm="HS256"))


async def test_garbage_token(identities: IdentityService) -> None:
    with pytest.raises(AuthenticationError):
        await identities.authenticate("definitely.not.a-jwt")


async def test_unknown_user_is_not_cached(identities: IdentityService, validation_cache: ValidationCache) -> None:
    ghost = AppUser(id="01HRZ8Q4N7YDKB3J5W2M6X9TGZ", email="ghost@example.com", display_name="Ghost", role=UserRole.ADMIN)
    token = bearer_token(ghost)

    for _ in range(2):
        with pytest.raises(AuthenticationError, match="Unknown user"):
            await identities.authenticate(token)

    assert len(validation_cache) == 0
    assert validation_cache.stats().misses == 2


async def test_inactive_user(identities: IdentityService, make_user: UserFactory) -> None:
    user = await make_user(UserRole.REVIEWER, is_active=False)

    with pytest.raises(AuthenticationError, match="inactive"):
        await identities.authenticate(bearer_token(user))
