"""Invite model - single-use codes granting a role in a tenant or project."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from src.app.models.base import utc_now
from src.app.models.enums import ScopeType


class Invite(SQLModel, table=True):
    """Invite code storage.

    Invites are never deleted by the membership core; redeemed and expired
    invites simply age out of listings.
    """

    __tablename__ = "invites"
    __table_args__ = (Index("ix_invites_scope", "scope_type", "scope_id"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    scope_type: str = Field(max_length=20)
    scope_id: UUID
    target_role: str = Field(max_length=20)
    code: str = Field(max_length=128, unique=True, index=True)
    email: str | None = Field(default=None, max_length=255, index=True)
    created_by: str = Field(max_length=255)
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime | None = Field(default=None, index=True)
    redeemed: bool = Field(default=False)
    redeemed_by: str | None = Field(default=None, max_length=255)
    redeemed_at: datetime | None = Field(default=None)

    @property
    def scope_enum(self) -> ScopeType:
        return ScopeType(self.scope_type)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the invite is past its expiry (no expiry never expires)."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utc_now())

    def is_active(self, now: datetime | None = None) -> bool:
        return not self.redeemed and not self.is_expired(now)
