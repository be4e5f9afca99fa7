"""Bearer token validation.

Tokens are HS256 JWTs minted by the external auth provider; the ``sub``
claim is the ``app_users`` id. Successful validations are memoized in the
validation cache so a dashboard reconnecting its event stream does not hit
the database on every attempt.
"""

from collections.abc import Awaitable, Callable

import jwt
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from permit_trust.config import settings
from permit_trust.models.app_user import AppUser
from permit_trust.models.types import parse_ulid
from permit_trust.services.auth.identity import Identity
from permit_trust.services.cache.validation_cache import ValidationCache
from permit_trust.services.exceptions import AuthenticationError

logger = structlog.get_logger(__name__)


class IdentityService:
    """Validates bearer tokens into identities."""

    def __init__(
        self,
        session: AsyncSession,
        cache: ValidationCache,
        *,
        secret: str | None = None,
        algorithm: str | None = None,
    ):
        self.session = session
        self.cache = cache
        self.secret = secret or settings.auth_jwt_secret
        self.algorithm = algorithm or settings.auth_jwt_algorithm

    async def authenticate(self, bearer_token: str | None) -> Identity:
        """Return the identity behind ``bearer_token``.

        Raises:
            AuthenticationError: Missing, invalid or expired token, unknown
                or inactive user. Failures are never cached.
        """
        if not bearer_token:
            raise AuthenticationError("Missing bearer token")
        return await self.cache.get_or_compute(("bearer", bearer_token), self._validator(bearer_token))

    def _validator(self, bearer_token: str) -> Callable[[], Awaitable[Identity]]:
        async def validate() -> Identity:
            user_id = self._decode(bearer_token)
            user = await self.session.get(AppUser, user_id)
            if user is None:
                logger.info("Bearer token for unknown user", user_id=user_id)
                raise AuthenticationError("Unknown user")
            if not user.is_active:
                logger.info("Bearer token for inactive user", user_id=user_id)
                raise AuthenticationError("User is inactive")
            return Identity.from_user(user)

        return validate

    def _decode(self, bearer_token: str) -> str:
        try:
            claims = jwt.decode(
                bearer_token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Invalid token") from e

        user_id = parse_ulid(str(claims["sub"]))
        if user_id is None:
            raise AuthenticationError("Invalid token subject")
        return user_id
