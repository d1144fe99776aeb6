"""Project lifecycle service."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.db.transaction import transactional
from src.app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    StaleWriteError,
)
from src.app.core.logging import get_logger
from src.app.core.roles import can_assign, is_manager
from src.app.models import Project, ProjectMember, ProjectRole, Tenant, TenantStatus
from src.app.models.base import utc_now
from src.app.repositories import (
    MembershipSnapshot,
    ProjectMembershipStore,
    ProjectRepository,
    TenantMembershipStore,
    TenantRepository,
)

logger = get_logger(__name__)

type ProjectSnapshot = MembershipSnapshot[Project, ProjectRole]


class ProjectService:
    """Project creation, role administration and archival."""

    def __init__(
        self,
        project_repo: ProjectRepository,
        tenant_repo: TenantRepository,
        members: ProjectMembershipStore,
        tenant_members: TenantMembershipStore,
        session: AsyncSession,
    ):
        self.project_repo = project_repo
        self.tenant_repo = tenant_repo
        self.members = members
        self.tenant_members = tenant_members
        self.session = session

    async def create_project(
        self,
        tenant_owner_id: str,
        tenant_id: UUID,
        name: str,
        folder_ref: str | None = None,
        cloud_provider: str | None = None,
    ) -> Project:
        """Create a project in an active tenant. The creator becomes its sole admin.

        `folder_ref` is stored as given; it is never resolved or validated.

        Raises:
            NotFoundError: Tenant does not exist.
            ForbiddenError: Caller is not the tenant owner.
            InvalidStateError: Tenant is not active.
            ConflictError: A project with this name exists in the tenant.
        """

        async def create() -> Project:
            tenant_snapshot = await self.tenant_members.load(tenant_id)
            if tenant_snapshot is None:
                raise NotFoundError("tenant.not_found", f"Tenant {tenant_id} not found")
            tenant = tenant_snapshot.scope
            if tenant.owner_id != tenant_owner_id:
                raise ForbiddenError("project.not_tenant_owner", "Only the tenant owner creates projects")
            if tenant.status != TenantStatus.ACTIVE.value:
                raise InvalidStateError("tenant.not_active", f"Tenant is {tenant.status}")
            if await self.project_repo.get_by_name(tenant_id, name) is not None:
                raise ConflictError("project.name_taken", f"Project '{name}' already exists")

            # A tenant archived after our read must not gain a project
            await self.tenant_members.touch(
                tenant_snapshot, Tenant.status == TenantStatus.ACTIVE.value
            )
            project = Project(
                tenant_id=tenant_id,
                name=name,
                folder_ref=folder_ref,
                cloud_provider=cloud_provider,
                created_by=tenant_owner_id,
            )
            try:
                async with self.session.begin_nested():
                    await self.project_repo.insert(project)
                    self.session.add(
                        ProjectMember(
                            project_id=project.id,
                            user_id=tenant_owner_id,
                            role=ProjectRole.ADMIN.value,
                        )
                    )
                    await self.session.flush()
            except IntegrityError as e:
                raise ConflictError("project.name_taken", f"Project '{name}' already exists") from e
            return project

        project = await transactional(self.session, create, name="create_project")
        logger.info(
            "Project created",
            project_id=str(project.id),
            tenant_id=str(tenant_id),
            created_by=tenant_owner_id,
        )
        return project

    async def add_member(
        self, project_id: UUID, user_id: str, role: ProjectRole
    ) -> ProjectMember:
        """Grant `role` in the project directly."""

        async def add() -> ProjectMember:
            snapshot = await self._load_live(project_id)
            if snapshot.role_of(user_id) is not None:
                raise ConflictError("membership.exists", f"{user_id} is already a member")
            return await self.members.add(snapshot, user_id, role)

        member = await transactional(self.session, add, name="add_project_member")
        logger.info(
            "Project member added", project_id=str(project_id), user_id=user_id, role=role.value
        )
        return member

    async def update_member_role(
        self, project_id: UUID, actor_id: str, target_id: str, new_role: ProjectRole
    ) -> None:
        """Change a member's role.

        Admins may change anyone but themselves. Deputies may only touch
        contributors, and never assign above deputy.
        """

        async def update() -> None:
            snapshot = await self._load_live(project_id)
            actor_role, target_role = self._authorize_member_change(snapshot, actor_id, target_id)
            if not can_assign(actor_role, new_role):
                raise ForbiddenError(
                    "project.role_above_actor", f"{actor_role.value} cannot assign {new_role.value}"
                )
            if target_role == new_role:
                return
            await self.members.set_role(snapshot, target_id, new_role)

        await transactional(self.session, update, name="update_project_member_role")
        logger.info(
            "Project member role updated",
            project_id=str(project_id),
            actor_id=actor_id,
            user_id=target_id,
            role=new_role.value,
        )

    async def remove_member(self, project_id: UUID, actor_id: str, target_id: str) -> None:
        """Remove a member under the same rules as a role change."""

        async def remove() -> None:
            snapshot = await self._load_live(project_id)
            self._authorize_member_change(snapshot, actor_id, target_id)
            await self.members.remove(snapshot, target_id)

        await transactional(self.session, remove, name="remove_project_member")
        logger.info(
            "Project member removed",
            project_id=str(project_id),
            actor_id=actor_id,
            user_id=target_id,
        )

    async def archive_project(self, project_id: UUID, actor_id: str | None = None) -> Project:
        """Archive a project. Archival is terminal.

        Args:
            project_id: Project to archive.
            actor_id: Acting user, who must be a project admin. None for
                system callers that already authorized the action.

        Raises:
            NotFoundError: Project does not exist.
            InvalidStateError: Project is already archived.
            ForbiddenError: Actor is not a project admin.
        """

        async def archive() -> Project:
            snapshot = await self.members.load(project_id)
            if snapshot is None:
                raise NotFoundError("project.not_found", f"Project {project_id} not found")
            if snapshot.scope.is_archived:
                raise InvalidStateError("project.already_archived", "Project is already archived")
            if actor_id is not None and snapshot.role_of(actor_id) != ProjectRole.ADMIN:
                raise ForbiddenError("project.actor_not_admin", "Only project admins archive projects")
            now = utc_now()
            archived = await self.project_repo.update_if(
                project_id,
                Project.version == snapshot.version,
                Project.archived == False,  # noqa: E712
                archived=True,
                archived_at=now,
                updated_at=now,
                version=snapshot.version + 1,
            )
            if not archived:
                raise StaleWriteError(f"projects {project_id}")
            return await self._get_or_404(project_id)

        project = await transactional(self.session, archive, name="archive_project")
        logger.info("Project archived", project_id=str(project_id), actor_id=actor_id)
        return project

    async def get_project(self, project_id: UUID) -> Project:
        return await transactional(
            self.session, lambda: self._get_or_404(project_id), name="get_project"
        )

    async def list_projects(self, tenant_id: UUID, include_archived: bool = False) -> list[Project]:
        """List a tenant's projects, newest first."""

        async def load() -> list[Project]:
            if await self.tenant_repo.get_by_id(tenant_id) is None:
                raise NotFoundError("tenant.not_found", f"Tenant {tenant_id} not found")
            return await self.project_repo.list_by_tenant(tenant_id, include_archived)

        return await transactional(self.session, load, name="list_projects")

    async def list_members(self, project_id: UUID) -> dict[str, ProjectRole]:
        """Map of user id to project role."""

        async def load() -> dict[str, ProjectRole]:
            snapshot = await self.members.load(project_id)
            if snapshot is None:
                raise NotFoundError("project.not_found", f"Project {project_id} not found")
            return snapshot.members

        return await transactional(self.session, load, name="list_project_members")

    async def _get_or_404(self, project_id: UUID) -> Project:
        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise NotFoundError("project.not_found", f"Project {project_id} not found")
        return project

    async def _load_live(self, project_id: UUID) -> ProjectSnapshot:
        snapshot = await self.members.load(project_id)
        if snapshot is None:
            raise NotFoundError("project.not_found", f"Project {project_id} not found")
        if snapshot.tenant_archived:
            raise InvalidStateError("tenant.archived", "Tenant is archived")
        if snapshot.archived:
            raise InvalidStateError("project.archived", "Project is archived")
        return snapshot

    @staticmethod
    def _authorize_member_change(
        snapshot: ProjectSnapshot, actor_id: str, target_id: str
    ) -> tuple[ProjectRole, ProjectRole]:
        """Actor/target rules shared by role updates and removals.

        Returns:
            (actor_role, target_role)
        """
        actor_role = snapshot.role_of(actor_id)
        if actor_role is None or not is_manager(actor_role):
            raise ForbiddenError(
                "project.actor_not_manager", "Only admins and deputies manage members"
            )
        if actor_id == target_id:
            raise ForbiddenError("project.self_change", "Members cannot change their own membership")
        target_role = snapshot.role_of(target_id)
        if target_role is None:
            raise NotFoundError("membership.not_found", f"{target_id} is not a member")
        # Deputies only ever touch contributors
        if actor_role == ProjectRole.DEPUTY and target_role != ProjectRole.CONTRIBUTOR:
            raise ForbiddenError(
                "project.deputy_contributors_only", "Deputies may only manage contributors"
            )
        return actor_role, target_role
