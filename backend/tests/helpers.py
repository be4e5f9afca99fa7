"""Test helpers for identities and bearer tokens."""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt

from permit_trust.config import settings
from permit_trust.models import AppUser, Permit
from permit_trust.services.auth.identity import Identity
from permit_trust.utils.retry import RetryConfig

# No waiting between bus retries
FAST_RETRY = RetryConfig(max_attempts=3, min_wait=0, max_wait=0, multiplier=0)

UserFactory = Callable[..., Awaitable[AppUser]]
PermitFactory = Callable[..., Awaitable[Permit]]


def identity_of(user: AppUser) -> Identity:
    return Identity.from_user(user)


def bearer_token(user: AppUser, *, expires_in: timedelta = timedelta(hours=1), secret: str | None = None) -> str:
    claims = {"sub": user.id, "exp": datetime.now(UTC) + expires_in}
    return jwt.encode(claims, secret or settings.auth_jwt_secret, algorithm="HS256")


def auth_header(user: AppUser) -> dict[str, str]:
    return {"Authorization": f"Bearer {bearer_token(user)}"}


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"
