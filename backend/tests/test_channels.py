"""Tests for stream audience scope resolution."""

import pytest

from permit_trust.models import UserRole
from permit_trust.services.auth.identity import Identity
from permit_trust.services.events import InvalidScope, channel_for, normalize_scope, resolve_scope, vendor_scope
from permit_trust.services.exceptions import AuthorizationError

VENDOR_A = "01HRZ8Q4N7YDKB3J5W2M6X9TGA"
VENDOR_B = "01HRZ8Q4N7YDKB3J5W2M6X9TGB"


def identity(role: UserRole, vendor_id: str | None = None) -> Identity:
    return Identity(
        user_id="01HRZ8Q4N7YDKB3J5W2M6X9TGU",
        email=f"{role.value}@example.com",
        display_name=role.value,
        role=role,
        vendor_id=vendor_id,
    )


def test_channel_naming() -> None:
    assert channel_for("reviewer") == "notifications:reviewer"
    assert channel_for(vendor_scope(VENDOR_A)) == f"notifications:vendor:{VENDOR_A}"


@pytest.mark.parametrize(
    ("scope", "vendor_id", "expected"),
    [
        ("admin", None, "admin"),
        ("verifier", None, "verifier"),
        ("vendor", VENDOR_A, f"vendor:{VENDOR_A}"),
        (f"vendor:{VENDOR_A}", None, f"vendor:{VENDOR_A}"),
    ],
)
def test_normalize_scope(scope: str, vendor_id: str | None, expected: str) -> None:
    assert normalize_scope(scope, vendor_id) == expected


@pytest.mark.parametrize(
    ("scope", "vendor_id"),
    [("everyone", None), ("vendor", None), ("vendor:", None), ("vendor", "a:b"), ("", None)],
)
def test_normalize_rejects_unknown_scopes(scope: str, vendor_id: str | None) -> None:
    with pytest.raises(InvalidScope):
        normalize_scope(scope, vendor_id)


class TestVendorScopes:
    def test_defaults_to_own_scope(self) -> None:
        assert resolve_scope(identity(UserRole.VENDOR, VENDOR_A)) == f"vendor:{VENDOR_A}"

    @pytest.mark.parametrize(
        ("scope", "vendor_id"),
        [("vendor", None), ("vendor", VENDOR_A), (f"vendor:{VENDOR_A}", None), (None, VENDOR_A)],
    )
    def test_own_scope_is_allowed(self, scope: str | None, vendor_id: str | None) -> None:
        assert resolve_scope(identity(UserRole.VENDOR, VENDOR_A), scope, vendor_id) == f"vendor:{VENDOR_A}"

    @pytest.mark.parametrize(
        ("scope", "vendor_id"),
        [("vendor", VENDOR_B), (f"vendor:{VENDOR_B}", None), (None, VENDOR_B), ("reviewer", None), ("admin", None)],
    )
    def test_other_scopes_are_forbidden(self, scope: str | None, vendor_id: str | None) -> None:
        with pytest.raises(AuthorizationError):
            resolve_scope(identity(UserRole.VENDOR, VENDOR_A), scope, vendor_id)

    def test_vendor_without_vendor_id(self) -> None:
        with pytest.raises(AuthorizationError):
            resolve_scope(identity(UserRole.VENDOR))


class TestRoleScopes:
    @pytest.mark.parametrize(
        ("role", "expected"),
        [
            (UserRole.REVIEWER, "reviewer"),
            (UserRole.APPROVER, "approver"),
            (UserRole.VERIFIER, "verifier"),
            (UserRole.ADMIN, "admin"),
            (UserRole.SUPER_ADMIN, "admin"),
        ],
    )
    def test_default_scope_per_role(self, role: UserRole, expected: str) -> None:
        assert resolve_scope(identity(role)) == expected

    def test_role_may_request_own_scope(self) -> None:
        assert resolve_scope(identity(UserRole.REVIEWER), "reviewer") == "reviewer"

    @pytest.mark.parametrize("scope", ["admin", "approver", f"vendor:{VENDOR_A}"])
    def test_role_may_not_request_other_scopes(self, scope: str) -> None:
        with pytest.raises(AuthorizationError):
            resolve_scope(identity(UserRole.REVIEWER), scope)

    @pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.SUPER_ADMIN])
    @pytest.mark.parametrize("scope", ["reviewer", "approver", "verifier", f"vendor:{VENDOR_B}"])
    def test_admins_may_observe_any_scope(self, role: UserRole, scope: str) -> None:
        assert resolve_scope(identity(role), scope) == scope

    def test_admin_vendor_id_shortcut(self) -> None:
        assert resolve_scope(identity(UserRole.ADMIN), None, VENDOR_B) == f"vendor:{VENDOR_B}"

    def test_unknown_scope_is_invalid_not_forbidden(self) -> None:
        with pytest.raises(InvalidScope):
            resolve_scope(identity(UserRole.ADMIN), "everyone")
