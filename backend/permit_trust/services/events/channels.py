"""Audience scopes and the bus channels they map to."""

from permit_trust.models.enums import UserRole
from permit_trust.services.auth.identity import Identity
from permit_trust.services.exceptions import AuthorizationError, ValidationError

CHANNEL_PREFIX = "notifications"
VENDOR_SCOPE = "vendor"

ADMIN_SCOPE = "admin"
REVIEWER_SCOPE = "reviewer"
APPROVER_SCOPE = "approver"
VERIFIER_SCOPE = "verifier"

ROLE_SCOPES = frozenset({ADMIN_SCOPE, REVIEWER_SCOPE, APPROVER_SCOPE, VERIFIER_SCOPE})

# Role-wide scope each non-vendor role listens on by default
_ROLE_DEFAULT_SCOPE: dict[UserRole, str] = {
    UserRole.SUPER_ADMIN: ADMIN_SCOPE,
    UserRole.ADMIN: ADMIN_SCOPE,
    UserRole.REVIEWER: REVIEWER_SCOPE,
    UserRole.APPROVER: APPROVER_SCOPE,
    UserRole.VERIFIER: VERIFIER_SCOPE,
}


class InvalidScope(ValidationError):
    """Requested scope is not a known audience."""

    pass


def vendor_scope(vendor_id: str) -> str:
    if not vendor_id or not vendor_id.isascii() or not vendor_id.isalnum():
        raise InvalidScope(f"Invalid vendor id: {vendor_id!r}")
    return f"{VENDOR_SCOPE}:{vendor_id}"


def channel_for(scope: str) -> str:
    """Bus channel name for an audience scope: ``notifications:<scope>``."""
    return f"{CHANNEL_PREFIX}:{scope}"


def normalize_scope(scope: str, vendor_id: str | None = None) -> str:
    """Validate a requested scope, folding ``scope=vendor&vendor_id=X`` into ``vendor:X``."""
    if scope in ROLE_SCOPES:
        return scope
    if scope == VENDOR_SCOPE:
        if vendor_id is None:
            raise InvalidScope("Vendor scope requires a vendor id")
        return vendor_scope(vendor_id)
    if scope.startswith(f"{VENDOR_SCOPE}:"):
        return vendor_scope(scope.split(":", 1)[1])
    raise InvalidScope(f"Unknown scope: {scope!r}")


def resolve_scope(
    identity: Identity,
    requested_scope: str | None = None,
    requested_vendor_id: str | None = None,
) -> str:
    """Decide which single scope a connection may listen on.

    Vendors only ever get their own private scope. Admins may observe any
    scope. Every other role is confined to its own role-wide scope.

    Raises:
        AuthorizationError: The identity may not observe the requested scope.
        InvalidScope: The requested scope does not exist.
    """
    if identity.role == UserRole.VENDOR:
        if identity.vendor_id is None:
            raise AuthorizationError("Vendor account has no vendor id")
        own = vendor_scope(identity.vendor_id)
        vendor_id = requested_vendor_id or identity.vendor_id
        requested = normalize_scope(requested_scope, vendor_id) if requested_scope else vendor_scope(vendor_id)
        if requested != own:
            raise AuthorizationError("Vendors may only subscribe to their own scope")
        return own

    default = _ROLE_DEFAULT_SCOPE[identity.role]
    if requested_scope is None:
        if requested_vendor_id is not None and identity.has_role(UserRole.ADMIN, UserRole.SUPER_ADMIN):
            return vendor_scope(requested_vendor_id)
        return default

    scope = normalize_scope(requested_scope, requested_vendor_id)
    if identity.has_role(UserRole.ADMIN, UserRole.SUPER_ADMIN) or scope == default:
        return scope
    raise AuthorizationError(f"Role {identity.role} may not subscribe to scope {scope}")
