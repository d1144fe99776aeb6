"""Invite schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from src.app.models.enums import ScopeType


class InviteRedemption(BaseModel):
    """What a successful redemption granted."""

    invite_id: UUID
    scope_type: ScopeType
    scope_id: UUID
    role: str


class InviteInfo(BaseModel):
    """Public info about a redeemable invite (for the accept page)."""

    scope_type: ScopeType
    scope_id: UUID
    scope_name: str
    role: str
    expires_at: datetime | None
