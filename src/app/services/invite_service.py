"""Invite issuance and redemption service."""

import secrets
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.config import get_settings
from src.app.core.db.transaction import transactional
from src.app.core.exceptions import (
    AlreadyRedeemedError,
    ConflictError,
    ExpiredError,
    ForbiddenError,
    InternalError,
    InvalidStateError,
    NotFoundError,
)
from src.app.core.logging import get_logger
from src.app.core.notifications import send_invite_email
from src.app.core.roles import Role, can_assign, is_manager
from src.app.models import Invite, ScopeType, TenantRole
from src.app.models.base import utc_now
from src.app.repositories import (
    InviteRepository,
    MembershipSnapshot,
    MembershipStore,
    ProjectMembershipStore,
    TenantMembershipStore,
)
from src.app.schemas import InviteInfo, InviteRedemption

logger = get_logger(__name__)


class InviteService:
    """Single-use, time-limited invite codes for tenant and project roles."""

    def __init__(
        self,
        invite_repo: InviteRepository,
        tenant_members: TenantMembershipStore,
        project_members: ProjectMembershipStore,
        session: AsyncSession,
        code_factory: Callable[[int], str] = secrets.token_hex,
    ):
        self.invite_repo = invite_repo
        self.tenant_members = tenant_members
        self.project_members = project_members
        self.session = session
        self.code_factory = code_factory

    async def create_invite(
        self,
        issuer_id: str,
        scope_type: ScopeType,
        scope_id: UUID,
        target_role: Role,
        ttl: timedelta | None = None,
        email: str | None = None,
    ) -> Invite:
        """Issue an invite granting `target_role` in a tenant or project.

        Args:
            issuer_id: Acting user; must manage the scope.
            scope_type: Tenant or project.
            scope_id: Id of the tenant or project.
            target_role: Role granted on redemption, in the scope's vocabulary.
            ttl: Lifetime of the code. None uses the configured default; a
                negative ttl yields an already-expired invite.
            email: Address the invite is meant for. At most one active
                invite per (scope, email) may exist.

        Raises:
            NotFoundError: Scope does not exist.
            InvalidStateError: Scope is archived.
            ForbiddenError: Issuer is not a manager, or cannot grant the role,
                or the role belongs to the other scope's vocabulary.
            ConflictError: An active invite for this email already exists.
            InternalError: No unique code could be generated.
        """
        store = self._store_for(scope_type)
        if not isinstance(target_role, store.role_type):
            raise ForbiddenError(
                "invite.role_scope_mismatch",
                f"{target_role!r} is not a {scope_type.value} role",
            )
        role = target_role
        if email is not None:
            email = email.strip().lower()
        expires_at = self._expiry(ttl)

        async def issue() -> tuple[Invite, str]:
            snapshot = await self._load_live_scope(store, scope_type, scope_id)
            issuer_role = snapshot.role_of(issuer_id)
            if issuer_role is None or not is_manager(issuer_role):
                raise ForbiddenError(
                    "invite.issuer_not_manager", f"{issuer_id} cannot issue invites here"
                )
            if role == TenantRole.OWNER:
                raise ForbiddenError("invite.owner_not_invitable", "Owner role cannot be invited")
            if not can_assign(issuer_role, role):
                raise ForbiddenError(
                    "invite.role_above_issuer", f"{issuer_role.value} cannot grant {role.value}"
                )
            if email is not None:
                existing = await self.invite_repo.get_active_for_email(scope_type, scope_id, email)
                if existing is not None:
                    raise ConflictError(
                        "invite.active_exists", f"An active invite for {email} already exists"
                    )
                # Serializes email-scoped issuance per scope
                await store.touch(snapshot)

            invite = await self._insert_with_unique_code(
                scope_type=scope_type.value,
                scope_id=scope_id,
                target_role=role.value,
                email=email,
                created_by=issuer_id,
                expires_at=expires_at,
            )
            return invite, snapshot.scope.name

        invite, scope_name = await transactional(self.session, issue, name="create_invite")
        logger.info(
            "Invite created",
            invite_id=str(invite.id),
            scope_type=scope_type.value,
            scope_id=str(scope_id),
            role=invite.target_role,
            created_by=issuer_id,
        )

        if email is not None:
            send_invite_email(
                to=email,
                code=invite.code,
                scope_name=scope_name,
                role=invite.target_role,
                expires_at=invite.expires_at,
            )
        return invite

    async def redeem_invite(self, redeemer_id: str, code: str) -> InviteRedemption:
        """Redeem a code and join its scope.

        Claiming the invite and inserting the membership commit together or
        not at all. Of any number of concurrent redemptions of one code,
        exactly one succeeds.

        Raises:
            NotFoundError: Unknown code, or the scope no longer exists.
            ExpiredError: Code is past its expiry.
            AlreadyRedeemedError: Code was redeemed already.
            InvalidStateError: Scope is archived.
            ConflictError: Redeemer is already a member of the scope.
        """

        async def redeem() -> InviteRedemption:
            invite = await self._get_usable(code)
            store = self._store_for(invite.scope_enum)
            snapshot = await self._load_live_scope(store, invite.scope_enum, invite.scope_id)
            if snapshot.role_of(redeemer_id) is not None:
                raise ConflictError("membership.exists", f"{redeemer_id} is already a member")

            if not await self.invite_repo.claim(invite.id, redeemer_id):
                raise AlreadyRedeemedError("invite.already_redeemed", "Invite was already redeemed")
            role = store.role_type(invite.target_role)
            await store.add(snapshot, redeemer_id, role)
            return InviteRedemption(
                invite_id=invite.id,
                scope_type=invite.scope_enum,
                scope_id=invite.scope_id,
                role=role.value,
            )

        redemption = await transactional(self.session, redeem, name="redeem_invite")
        logger.info(
            "Invite redeemed",
            invite_id=str(redemption.invite_id),
            scope_type=redemption.scope_type.value,
            scope_id=str(redemption.scope_id),
            redeemed_by=redeemer_id,
        )
        return redemption

    async def list_active_invites(self, scope_type: ScopeType, scope_id: UUID) -> list[Invite]:
        """Live invites plus recent redemptions for a scope, newest first."""
        retention_days = get_settings().invite_retention_days
        return await transactional(
            self.session,
            lambda: self.invite_repo.list_for_scope(scope_type, scope_id, retention_days),
            name="list_active_invites",
        )

    async def get_invite_info(self, code: str) -> InviteInfo:
        """Public preview of a redeemable invite."""

        async def load() -> InviteInfo:
            invite = await self._get_usable(code)
            store = self._store_for(invite.scope_enum)
            snapshot = await self._load_live_scope(store, invite.scope_enum, invite.scope_id)
            return InviteInfo(
                scope_type=invite.scope_enum,
                scope_id=invite.scope_id,
                scope_name=snapshot.scope.name,
                role=invite.target_role,
                expires_at=invite.expires_at,
            )

        return await transactional(self.session, load, name="get_invite_info")

    def _store_for(self, scope_type: ScopeType) -> MembershipStore:
        if scope_type == ScopeType.TENANT:
            return self.tenant_members
        return self.project_members

    @staticmethod
    def _expiry(ttl: timedelta | None) -> datetime | None:
        if ttl is None:
            hours = get_settings().invite_default_ttl_hours
            if not hours:
                return None
            ttl = timedelta(hours=hours)
        return utc_now() + ttl

    async def _get_usable(self, code: str) -> Invite:
        invite = await self.invite_repo.get_by_code(code)
        if invite is None:
            raise NotFoundError("invite.not_found", "Invite code not found")
        if invite.is_expired():
            raise ExpiredError("invite.expired", "Invite has expired")
        if invite.redeemed:
            raise AlreadyRedeemedError("invite.already_redeemed", "Invite was already redeemed")
        return invite

    async def _load_live_scope(
        self, store: MembershipStore, scope_type: ScopeType, scope_id: UUID
    ) -> MembershipSnapshot:
        snapshot = await store.load(scope_id)
        if snapshot is None:
            raise NotFoundError(f"{scope_type.value}.not_found", f"{scope_type.value} not found")
        if snapshot.tenant_archived:
            raise InvalidStateError("tenant.archived", "Tenant is archived")
        if snapshot.archived:
            raise InvalidStateError(f"{scope_type.value}.archived", f"{scope_type.value} is archived")
        return snapshot

    async def _insert_with_unique_code(self, **fields: Any) -> Invite:
        """Insert an invite, drawing a fresh code on each unique-constraint hit."""
        settings = get_settings()
        for attempt in range(1, settings.invite_code_max_attempts + 1):
            invite = Invite(code=self.code_factory(settings.invite_code_bytes), **fields)
            try:
                async with self.session.begin_nested():
                    await self.invite_repo.insert(invite)
                return invite
            except IntegrityError:
                logger.warning("Invite code collision, regenerating", attempt=attempt)

        logger.error(
            "Invite code generation exhausted", attempts=settings.invite_code_max_attempts
        )
        raise InternalError(
            "invite.code_generation_exhausted", "Could not generate a unique invite code"
        )
