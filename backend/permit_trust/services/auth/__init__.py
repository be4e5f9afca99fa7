"""Caller identity and bearer token validation."""

from permit_trust.services.auth.identity import Identity
from permit_trust.services.auth.identity_service import IdentityService

__all__ = ["Identity", "IdentityService"]
