"""Tenant lifecycle service."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.config import get_settings
from src.app.core.db.transaction import transactional
from src.app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    StaleWriteError,
)
from src.app.core.logging import get_logger
from src.app.core.roles import at_least, can_assign, is_manager
from src.app.models import (
    Tenant,
    TenantMember,
    TenantRole,
    TenantStatus,
    normalize_tenant_name,
)
from src.app.models.base import utc_now
from src.app.repositories import (
    MembershipSnapshot,
    TenantMembershipStore,
    TenantRepository,
)
from src.app.schemas import CascadeReport, TenantArchival
from src.app.services.archival_service import ArchivalCascade

logger = get_logger(__name__)

type TenantSnapshot = MembershipSnapshot[Tenant, TenantRole]


class TenantService:
    """Tenant lifecycle and member administration.

    Every operation runs as one unit of work: rules are checked against a
    snapshot read inside the transaction and the write is guarded by the
    tenant's version, so a concurrent change forces a re-check.
    """

    def __init__(
        self,
        tenant_repo: TenantRepository,
        members: TenantMembershipStore,
        cascade: ArchivalCascade,
        session: AsyncSession,
    ):
        self.tenant_repo = tenant_repo
        self.members = members
        self.cascade = cascade
        self.session = session

    async def request_tenant(self, owner_id: str, name: str) -> Tenant:
        """Create a tenant owned by `owner_id`.

        The tenant starts in the configured initial status with the owner as
        its only member.

        Raises:
            ConflictError: Owner already has a non-archived tenant, or the
                name is taken (case-insensitive).
        """
        initial_status = get_settings().tenant_initial_status

        async def create() -> Tenant:
            await self._check_creation_conflicts(owner_id, name)
            tenant = Tenant(
                name=name.strip(),
                normalized_name=normalize_tenant_name(name),
                owner_id=owner_id,
                status=initial_status.value,
            )
            try:
                async with self.session.begin_nested():
                    await self.tenant_repo.insert(tenant)
                    self.session.add(
                        TenantMember(
                            tenant_id=tenant.id,
                            user_id=owner_id,
                            role=TenantRole.OWNER.value,
                        )
                    )
                    await self.session.flush()
            except IntegrityError as e:
                # Lost a race: report whichever rule the winner now violates
                await self._check_creation_conflicts(owner_id, name)
                raise ConflictError("tenant.conflict", "Tenant could not be created") from e
            return tenant

        tenant = await transactional(self.session, create, name="request_tenant")
        logger.info(
            "Tenant requested",
            tenant_id=str(tenant.id),
            owner_id=owner_id,
            status=tenant.status,
        )
        return tenant

    async def approve_tenant(self, tenant_id: UUID) -> Tenant:
        """Move a pending tenant to active."""

        async def approve() -> Tenant:
            tenant = await self._get_or_404(tenant_id)
            if tenant.status != TenantStatus.PENDING.value:
                raise InvalidStateError(
                    "tenant.not_pending", f"Tenant is {tenant.status}, not pending"
                )
            await self._flip_status(tenant, TenantStatus.ACTIVE, Tenant.status == tenant.status)
            return await self._get_or_404(tenant_id)

        tenant = await transactional(self.session, approve, name="approve_tenant")
        logger.info("Tenant approved", tenant_id=str(tenant_id))
        return tenant

    async def archive_tenant(self, tenant_id: UUID) -> TenantArchival:
        """Archive a tenant and cascade to its projects.

        The status flip and the project batch share one transaction. If the
        batch fails, the flip is committed on its own and the cascade falls
        back to its bounded retry; the returned report says how many
        projects are still pending.

        Raises:
            NotFoundError: Tenant does not exist.
            InvalidStateError: Tenant is already archived (cascade not re-run).
        """

        async def archive() -> int | None:
            tenant = await self._get_or_404(tenant_id)
            if tenant.is_archived:
                raise InvalidStateError("tenant.already_archived", "Tenant is already archived")
            await self._flip_status(
                tenant, TenantStatus.ARCHIVED, Tenant.status != TenantStatus.ARCHIVED.value
            )
            try:
                async with self.session.begin_nested():
                    return await self.cascade.archive_projects(tenant_id)
            except SQLAlchemyError as e:
                logger.warning(
                    "Cascade batch failed, committing tenant archival alone",
                    tenant_id=str(tenant_id),
                    error=str(e),
                )
                return None

        archived = await transactional(self.session, archive, name="archive_tenant")
        logger.info("Tenant archived", tenant_id=str(tenant_id))

        if archived is None:
            report = await self.cascade.cascade_archive_tenant(tenant_id)
        else:
            report = CascadeReport(tenant_id=tenant_id, archived=archived, attempts=1)

        return TenantArchival(tenant=await self.get_tenant(tenant_id), cascade=report)

    async def add_member(self, tenant_id: UUID, user_id: str, role: TenantRole) -> TenantMember:
        """Grant `role` in the tenant directly.

        Raises:
            ForbiddenError: `role` is owner (ownership is not grantable).
            NotFoundError: Tenant does not exist.
            InvalidStateError: Tenant is archived.
            ConflictError: User is already a member.
        """
        if role == TenantRole.OWNER:
            raise ForbiddenError("tenant.owner_not_grantable", "Owner role cannot be granted")

        async def add() -> TenantMember:
            snapshot = await self._load_live(tenant_id)
            if snapshot.role_of(user_id) is not None:
                raise ConflictError("membership.exists", f"{user_id} is already a member")
            return await self.members.add(snapshot, user_id, role)

        member = await transactional(self.session, add, name="add_tenant_member")
        logger.info(
            "Tenant member added", tenant_id=str(tenant_id), user_id=user_id, role=role.value
        )
        return member

    async def update_member_role(
        self, tenant_id: UUID, actor_id: str, target_id: str, new_role: TenantRole
    ) -> None:
        """Change a member's role on behalf of an owner or admin."""

        async def update() -> None:
            snapshot = await self._load_live(tenant_id)
            target_role = self._authorize_member_change(snapshot, actor_id, target_id)
            if new_role == TenantRole.OWNER:
                raise ForbiddenError("tenant.owner_immutable", "Owner role cannot be assigned")
            actor_role = snapshot.members[actor_id]
            if not can_assign(actor_role, new_role):
                raise ForbiddenError(
                    "tenant.role_above_actor", f"{actor_role.value} cannot assign {new_role.value}"
                )
            if target_role == new_role:
                return
            await self.members.set_role(snapshot, target_id, new_role)

        await transactional(self.session, update, name="update_tenant_member_role")
        logger.info(
            "Tenant member role updated",
            tenant_id=str(tenant_id),
            actor_id=actor_id,
            user_id=target_id,
            role=new_role.value,
        )

    async def remove_member(self, tenant_id: UUID, actor_id: str, target_id: str) -> None:
        """Remove a member on behalf of an owner or admin.

        Raises:
            InvalidStateError: Target is the owner (always), or tenant archived.
        """

        async def remove() -> None:
            snapshot = await self._load_live(tenant_id)
            if target_id == snapshot.scope.owner_id:
                raise InvalidStateError("tenant.owner_removal", "The tenant owner cannot be removed")
            self._authorize_member_change(snapshot, actor_id, target_id)
            await self.members.remove(snapshot, target_id)

        await transactional(self.session, remove, name="remove_tenant_member")
        logger.info(
            "Tenant member removed", tenant_id=str(tenant_id), actor_id=actor_id, user_id=target_id
        )

    async def rename_tenant(self, tenant_id: UUID, actor_id: str, name: str) -> Tenant:
        """Rename a tenant. Only the owner may do this."""

        async def rename() -> Tenant:
            snapshot = await self._load_live(tenant_id)
            if snapshot.scope.owner_id != actor_id:
                raise ForbiddenError("tenant.not_owner", "Only the owner can rename a tenant")
            existing = await self.tenant_repo.get_by_name(name)
            if existing is not None and existing.id != tenant_id:
                raise ConflictError("tenant.name_taken", f"Tenant name '{name}' is taken")
            try:
                async with self.session.begin_nested():
                    renamed = await self.tenant_repo.update_if(
                        tenant_id,
                        Tenant.version == snapshot.version,
                        name=name.strip(),
                        normalized_name=normalize_tenant_name(name),
                        version=snapshot.version + 1,
                        updated_at=utc_now(),
                    )
            except IntegrityError as e:
                raise ConflictError("tenant.name_taken", f"Tenant name '{name}' is taken") from e
            if not renamed:
                raise StaleWriteError(f"tenants {tenant_id}")
            return await self._get_or_404(tenant_id)

        tenant = await transactional(self.session, rename, name="rename_tenant")
        logger.info("Tenant renamed", tenant_id=str(tenant_id), actor_id=actor_id)
        return tenant

    async def get_tenant(self, tenant_id: UUID) -> Tenant:
        return await transactional(
            self.session, lambda: self._get_or_404(tenant_id), name="get_tenant"
        )

    async def list_pending_tenants(self) -> list[Tenant]:
        """Tenants awaiting approval, oldest first."""
        return await transactional(
            self.session,
            lambda: self.tenant_repo.list_by_status(TenantStatus.PENDING),
            name="list_pending_tenants",
        )

    async def list_members(self, tenant_id: UUID) -> dict[str, TenantRole]:
        """Map of user id to tenant role."""

        async def load() -> dict[str, TenantRole]:
            snapshot = await self.members.load(tenant_id)
            if snapshot is None:
                raise NotFoundError("tenant.not_found", f"Tenant {tenant_id} not found")
            return snapshot.members

        return await transactional(self.session, load, name="list_tenant_members")

    async def _check_creation_conflicts(self, owner_id: str, name: str) -> None:
        if await self.tenant_repo.get_active_by_owner(owner_id) is not None:
            raise ConflictError(
                "tenant.owner_has_active", f"{owner_id} already owns a non-archived tenant"
            )
        if await self.tenant_repo.get_by_name(name) is not None:
            raise ConflictError("tenant.name_taken", f"Tenant name '{name}' is taken")

    async def _get_or_404(self, tenant_id: UUID) -> Tenant:
        tenant = await self.tenant_repo.get_by_id(tenant_id)
        if tenant is None:
            raise NotFoundError("tenant.not_found", f"Tenant {tenant_id} not found")
        return tenant

    async def _load_live(self, tenant_id: UUID) -> TenantSnapshot:
        snapshot = await self.members.load(tenant_id)
        if snapshot is None:
            raise NotFoundError("tenant.not_found", f"Tenant {tenant_id} not found")
        if snapshot.archived:
            raise InvalidStateError("tenant.archived", "Tenant is archived")
        return snapshot

    async def _flip_status(self, tenant: Tenant, status: TenantStatus, *predicates: object) -> None:
        now = utc_now()
        patch: dict[str, object] = {
            "status": status.value,
            "version": tenant.version + 1,
            "updated_at": now,
        }
        if status == TenantStatus.ARCHIVED:
            patch["archived_at"] = now
        flipped = await self.tenant_repo.update_if(
            tenant.id, Tenant.version == tenant.version, *predicates, **patch
        )
        if not flipped:
            raise StaleWriteError(f"tenants {tenant.id}")

    @staticmethod
    def _authorize_member_change(
        snapshot: TenantSnapshot, actor_id: str, target_id: str
    ) -> TenantRole:
        """Actor/target rules shared by role updates and removals.

        Returns:
            The target's current role.
        """
        actor_role = snapshot.role_of(actor_id)
        if actor_role is None or not is_manager(actor_role):
            raise ForbiddenError("tenant.actor_not_manager", "Only owners and admins manage members")
        if actor_id == target_id:
            raise ForbiddenError("tenant.self_change", "Members cannot change their own membership")
        target_role = snapshot.role_of(target_id)
        if target_role is None:
            raise NotFoundError("membership.not_found", f"{target_id} is not a member")
        if target_role == TenantRole.OWNER:
            raise ForbiddenError("tenant.owner_immutable", "The owner's membership is immutable")
        if not at_least(actor_role, target_role):
            raise ForbiddenError(
                "tenant.target_outranks_actor", f"{actor_role.value} cannot manage {target_role.value}"
            )
        return target_role
