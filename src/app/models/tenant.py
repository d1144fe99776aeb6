"""Tenant aggregate - tenant record and its member rows."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from src.app.models.base import utc_now
from src.app.models.enums import TenantRole, TenantStatus


def normalize_tenant_name(name: str) -> str:
    """Case-insensitive key used for tenant name uniqueness."""
    return name.strip().lower()


class Tenant(SQLModel, table=True):
    """Tenant registry.

    `version` is bumped by every mutation of the tenant or its member list so
    concurrent writers can detect each other (see MembershipStore).
    """

    __tablename__ = "tenants"
    __table_args__ = (
        # One non-archived tenant per owner
        Index(
            "uq_tenants_active_owner",
            "owner_id",
            unique=True,
            postgresql_where=text("status != 'archived'"),
            sqlite_where=text("status != 'archived'"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=100)
    normalized_name: str = Field(max_length=100, unique=True, index=True)
    owner_id: str = Field(max_length=255, index=True)
    status: str = Field(default=TenantStatus.PENDING.value, max_length=20)
    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    archived_at: datetime | None = Field(default=None)

    @property
    def status_enum(self) -> TenantStatus:
        """Get status as TenantStatus enum."""
        return TenantStatus(self.status)

    @property
    def is_archived(self) -> bool:
        return self.status == TenantStatus.ARCHIVED.value


class TenantMember(SQLModel, table=True):
    """Junction table for user-tenant membership."""

    __tablename__ = "tenant_members"

    tenant_id: UUID = Field(foreign_key="tenants.id", primary_key=True)
    user_id: str = Field(max_length=255, primary_key=True)
    role: str = Field(default=TenantRole.MEMBER.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def role_enum(self) -> TenantRole:
        return TenantRole(self.role)
