"""Authenticated caller identity."""

from dataclasses import dataclass

from permit_trust.models.app_user import AppUser
from permit_trust.models.enums import UserRole


@dataclass(frozen=True)
class Identity:
    """Who is calling, as established from a validated bearer token."""

    user_id: str
    email: str
    display_name: str
    role: UserRole
    vendor_id: str | None = None

    @classmethod
    def from_user(cls, user: AppUser) -> "Identity":
        return cls(
            user_id=user.id,
            email=user.email,
            display_name=user.display_name,
            role=user.role,
            vendor_id=user.effective_vendor_id,
        )

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles
