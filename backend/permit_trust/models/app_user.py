"""Identity records consulted when validating bearer tokens."""

from datetime import datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from permit_trust.models.enums import USER_ROLE_SA_ENUM, UserRole
from permit_trust.models.types import ULIDType, new_ulid, utc_now


class AppUser(SQLModel, table=True):
    """Dashboard user. Credentials live with the external auth provider."""

    __tablename__ = "app_users"

    id: str = Field(
        default_factory=new_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    email: str = Field(unique=True, index=True)
    display_name: str
    role: UserRole = Field(sa_column=Column(USER_ROLE_SA_ENUM, nullable=False))
    # Vendor organisation the user acts for; vendor users default to their own id
    vendor_id: str | None = Field(default=None, sa_column=Column(ULIDType, nullable=True, index=True))
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))

    @property
    def effective_vendor_id(self) -> str | None:
        if self.role != UserRole.VENDOR:
            return None
        return self.vendor_id or self.id
