"""Repository for Invite entity."""

from datetime import timedelta
from uuid import UUID

from sqlalchemy import and_, or_
from sqlmodel import select

from src.app.models import Invite, ScopeType
from src.app.models.base import utc_now
from src.app.repositories.base import BaseRepository


class InviteRepository(BaseRepository[Invite]):
    """Repository for Invite entity."""

    model = Invite

    async def get_by_code(self, code: str) -> Invite | None:
        """Get invite by its code, reading the stored row."""
        result = await self.session.execute(
            select(Invite)
            .where(Invite.code == code)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_active_for_email(
        self, scope_type: ScopeType, scope_id: UUID, email: str
    ) -> Invite | None:
        """Get an unredeemed, unexpired invite addressed to `email` in a scope."""
        now = utc_now()
        return await self.find_one(
            Invite.scope_type == scope_type.value,
            Invite.scope_id == scope_id,
            Invite.email == email,
            Invite.redeemed == False,  # noqa: E712
            or_(Invite.expires_at.is_(None), Invite.expires_at > now),  # type: ignore[union-attr]
        )

    async def claim(self, invite_id: UUID, redeemer_id: str) -> bool:
        """Mark an invite redeemed, only if nobody redeemed it first.

        Returns:
            True if this call won the claim.
        """
        return await self.update_if(
            invite_id,
            Invite.redeemed == False,  # noqa: E712
            redeemed=True,
            redeemed_by=redeemer_id,
            redeemed_at=utc_now(),
        )

    async def list_for_scope(
        self, scope_type: ScopeType, scope_id: UUID, retention_days: int
    ) -> list[Invite]:
        """List live invites plus those redeemed within the retention window.

        Expired unredeemed invites and redemptions older than the window
        stay in storage but are left out.
        """
        now = utc_now()
        cutoff = now - timedelta(days=retention_days)
        result = await self.session.execute(
            select(Invite)
            .where(
                Invite.scope_type == scope_type.value,
                Invite.scope_id == scope_id,
                or_(
                    and_(
                        Invite.redeemed == False,  # noqa: E712
                        or_(
                            Invite.expires_at.is_(None),  # type: ignore[union-attr]
                            Invite.expires_at > now,  # type: ignore[operator]
                        ),
                    ),
                    and_(
                        Invite.redeemed == True,  # noqa: E712
                        Invite.redeemed_at >= cutoff,  # type: ignore[operator]
                    ),
                ),
            )
            .order_by(Invite.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())
