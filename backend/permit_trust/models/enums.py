"""Enum definitions for database models."""

from enum import StrEnum

from sqlalchemy import Enum as SaEnum


class PermitStatus(StrEnum):
    """Approval state of a permit in the external permit store."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class UserRole(StrEnum):
    """Roles known to the dashboard and verification endpoints."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    REVIEWER = "reviewer"
    APPROVER = "approver"
    VERIFIER = "verifier"
    VENDOR = "vendor"


# Portable enum columns (VARCHAR + CHECK) - SQLite in tests, PostgreSQL in production
PERMIT_STATUS_SA_ENUM = SaEnum(
    PermitStatus,
    name="permitstatus",
    native_enum=False,
    values_callable=lambda e: [member.value for member in e],
)

USER_ROLE_SA_ENUM = SaEnum(
    UserRole,
    name="userrole",
    native_enum=False,
    values_callable=lambda e: [member.value for member in e],
)
