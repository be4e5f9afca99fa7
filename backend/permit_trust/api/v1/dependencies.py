"""FastAPI dependencies for service injection and authentication.

Process-wide collaborators (Redis client, validation cache, event
dispatcher, token codec) are created in the application lifespan and
stored on ``app.state``; request-scoped services wrap the current session.
"""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from permit_trust.db import get_session
from permit_trust.models.enums import UserRole
from permit_trust.services.auth.identity import Identity
from permit_trust.services.auth.identity_service import IdentityService
from permit_trust.services.cache.validation_cache import ValidationCache
from permit_trust.services.events.broadcaster import EventBroadcaster
from permit_trust.services.events.dispatcher import EventDispatcher
from permit_trust.services.exceptions import AuthenticationError
from permit_trust.services.notifications.notification_service import NotificationService
from permit_trust.services.permits.issuance_service import PermitIssuanceService
from permit_trust.services.scans.scan_service import ScanService
from permit_trust.services.sequence.counter_service import SequenceCounterService
from permit_trust.services.tokens.codec import TokenCodec
from permit_trust.services.verification.verification_service import VerificationService

SessionDep = Annotated[AsyncSession, Depends(get_session)]

# =============================================================================
# Process-wide collaborators
# =============================================================================


def get_validation_cache(request: Request) -> ValidationCache:
    """Get the process-wide validation cache."""
    cache: ValidationCache = request.app.state.validation_cache
    return cache


def get_broadcaster(request: Request) -> EventBroadcaster:
    """Get the event broadcaster bound to the shared Redis client."""
    broadcaster: EventBroadcaster = request.app.state.broadcaster
    return broadcaster


def get_dispatcher(request: Request) -> EventDispatcher:
    """Get the fire-and-forget event dispatcher."""
    dispatcher: EventDispatcher = request.app.state.dispatcher
    return dispatcher


def get_token_codec(request: Request) -> TokenCodec:
    """Get the permit token codec."""
    codec: TokenCodec = request.app.state.token_codec
    return codec


ValidationCacheDep = Annotated[ValidationCache, Depends(get_validation_cache)]
BroadcasterDep = Annotated[EventBroadcaster, Depends(get_broadcaster)]
DispatcherDep = Annotated[EventDispatcher, Depends(get_dispatcher)]
TokenCodecDep = Annotated[TokenCodec, Depends(get_token_codec)]

# =============================================================================
# Request-scoped services
# =============================================================================


async def get_identity_service(session: SessionDep, cache: ValidationCacheDep) -> IdentityService:
    """Get an IdentityService instance with the current session."""
    return IdentityService(session, cache)


async def get_counter_service(session: SessionDep) -> SequenceCounterService:
    """Get a SequenceCounterService instance with the current session."""
    return SequenceCounterService(session)


async def get_scan_service(session: SessionDep, dispatcher: DispatcherDep) -> ScanService:
    """Get a ScanService instance with the current session."""
    return ScanService(session, dispatcher)


async def get_issuance_service(
    session: SessionDep,
    codec: TokenCodecDep,
    dispatcher: DispatcherDep,
) -> PermitIssuanceService:
    """Get a PermitIssuanceService instance with the current session."""
    return PermitIssuanceService(session, codec, dispatcher)


async def get_verification_service(
    session: SessionDep,
    codec: TokenCodecDep,
    dispatcher: DispatcherDep,
) -> VerificationService:
    """Get a VerificationService instance with the current session."""
    return VerificationService(session, codec, dispatcher)


async def get_notification_service(session: SessionDep, dispatcher: DispatcherDep) -> NotificationService:
    """Get a NotificationService instance with the current session."""
    return NotificationService(session, dispatcher)


IdentityServiceDep = Annotated[IdentityService, Depends(get_identity_service)]
CounterServiceDep = Annotated[SequenceCounterService, Depends(get_counter_service)]
ScanServiceDep = Annotated[ScanService, Depends(get_scan_service)]
IssuanceServiceDep = Annotated[PermitIssuanceService, Depends(get_issuance_service)]
VerificationServiceDep = Annotated[VerificationService, Depends(get_verification_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]

# =============================================================================
# Authentication
# =============================================================================

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    service: IdentityServiceDep,
) -> Identity:
    """Authenticate the caller from the ``Authorization: Bearer`` header."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        return await service.authenticate(credentials.credentials)
    except AuthenticationError as e:
        raise _unauthorized(str(e))


async def get_stream_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    service: IdentityServiceDep,
    access_token: Annotated[str | None, Query(description="Bearer token for EventSource clients")] = None,
) -> Identity:
    """Like get_current_identity, but browsers' EventSource cannot set headers."""
    token = credentials.credentials if credentials is not None else access_token
    if not token:
        raise _unauthorized("Not authenticated")
    try:
        return await service.authenticate(token)
    except AuthenticationError as e:
        raise _unauthorized(str(e))


CurrentIdentityDep = Annotated[Identity, Depends(get_current_identity)]
StreamIdentityDep = Annotated[Identity, Depends(get_stream_identity)]


def require_roles(*roles: UserRole) -> Callable[[Identity], Awaitable[Identity]]:
    """Dependency factory that allows only the given roles (403 otherwise)."""

    async def dependency(identity: CurrentIdentityDep) -> Identity:
        if identity.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient role")
        return identity

    return dependency


_ADMINS = (UserRole.ADMIN, UserRole.SUPER_ADMIN)

VerifierDep = Annotated[Identity, Depends(require_roles(UserRole.VERIFIER, *_ADMINS))]
ApproverDep = Annotated[Identity, Depends(require_roles(UserRole.APPROVER, *_ADMINS))]
StaffDep = Annotated[
    Identity,
    Depends(require_roles(UserRole.REVIEWER, UserRole.APPROVER, UserRole.VERIFIER, *_ADMINS)),
]
