"""Membership store for tenant and project aggregates.

A tenant (or project) row and its member rows form one aggregate. Every
mutation of the member list first bumps the aggregate's `version` with a
conditional UPDATE keyed on the version seen when the snapshot was loaded.
Two writers that decided on the same snapshot cannot both pass that guard:
the loser gets `StaleWriteError` and its unit of work is retried against
fresh state.
"""

from dataclasses import dataclass, replace
from typing import Any, ClassVar
from uuid import UUID

from sqlalchemy import and_, delete, exists, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from src.app.core.exceptions import ConflictError, NotFoundError, StaleWriteError
from src.app.models import (
    Project,
    ProjectMember,
    ProjectRole,
    Tenant,
    TenantMember,
    TenantRole,
    TenantStatus,
)
from src.app.models.base import utc_now


@dataclass(frozen=True)
class MembershipSnapshot[ScopeT: SQLModel, RoleT: (TenantRole, ProjectRole)]:
    """Aggregate state read at the start of a unit of work."""

    scope: ScopeT
    version: int
    members: dict[str, RoleT]
    tenant_archived: bool = False

    @property
    def scope_id(self) -> UUID:
        return self.scope.id  # type: ignore[attr-defined]

    @property
    def archived(self) -> bool:
        return self.tenant_archived or self.scope.is_archived  # type: ignore[attr-defined]

    def role_of(self, user_id: str) -> RoleT | None:
        return self.members.get(user_id)


class MembershipStore[ScopeT: SQLModel, MemberT: SQLModel, RoleT: (TenantRole, ProjectRole)]:
    """Version-guarded add/update/remove of membership rows."""

    scope_model: ClassVar[type[Any]]
    member_model: ClassVar[type[Any]]
    role_type: ClassVar[type[Any]]
    scope_key: ClassVar[str]

    def __init__(self, session: AsyncSession):
        self.session = session

    def _live_clause(self) -> Any:
        """Predicate that holds while the aggregate accepts membership changes."""
        raise NotImplementedError

    def _member_filter(self, scope_id: UUID, user_id: str | None = None) -> list[Any]:
        column = getattr(self.member_model, self.scope_key)
        clauses = [column == scope_id]
        if user_id is not None:
            clauses.append(self.member_model.user_id == user_id)
        return clauses

    async def load(self, scope_id: UUID) -> MembershipSnapshot[ScopeT, RoleT] | None:
        """Read the aggregate and its members, or None if it does not exist."""
        result = await self.session.execute(
            select(self.scope_model)
            .where(self.scope_model.id == scope_id)
            .execution_options(populate_existing=True)
        )
        scope = result.scalar_one_or_none()
        if scope is None:
            return None

        rows = await self.session.execute(
            select(self.member_model)
            .where(*self._member_filter(scope_id))
            .order_by(self.member_model.created_at)
            .execution_options(populate_existing=True)
        )
        members = {row.user_id: self.role_type(row.role) for row in rows.scalars()}
        return MembershipSnapshot(scope=scope, version=scope.version, members=members)

    async def touch(self, snapshot: MembershipSnapshot[ScopeT, RoleT], *predicates: Any) -> None:
        """Claim the aggregate for this unit of work.

        Extra predicates narrow the guard further (e.g. "tenant is active").

        Raises:
            StaleWriteError: If the aggregate changed (or stopped being live)
                since the snapshot was read.
        """
        result = await self.session.execute(
            update(self.scope_model)
            .where(
                self.scope_model.id == snapshot.scope_id,
                self.scope_model.version == snapshot.version,
                self._live_clause(),
                *predicates,
            )
            .values(version=snapshot.version + 1, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise StaleWriteError(f"{self.scope_model.__tablename__} {snapshot.scope_id}")

    async def add(
        self, snapshot: MembershipSnapshot[ScopeT, RoleT], user_id: str, role: RoleT
    ) -> MemberT:
        """Insert a member row under the aggregate's version guard."""
        await self.touch(snapshot)
        member = self.member_model(
            **{self.scope_key: snapshot.scope_id}, user_id=user_id, role=role.value
        )
        self.session.add(member)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError("membership.exists", f"{user_id} is already a member") from e
        return member

    async def set_role(
        self, snapshot: MembershipSnapshot[ScopeT, RoleT], user_id: str, role: RoleT
    ) -> None:
        """Change a member's role under the aggregate's version guard."""
        await self.touch(snapshot)
        result = await self.session.execute(
            update(self.member_model)
            .where(*self._member_filter(snapshot.scope_id, user_id))
            .values(role=role.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise NotFoundError("membership.not_found", f"{user_id} is not a member")

    async def remove(self, snapshot: MembershipSnapshot[ScopeT, RoleT], user_id: str) -> None:
        """Delete a member row under the aggregate's version guard."""
        await self.touch(snapshot)
        result = await self.session.execute(
            delete(self.member_model)
            .where(*self._member_filter(snapshot.scope_id, user_id))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise NotFoundError("membership.not_found", f"{user_id} is not a member")


class TenantMembershipStore(MembershipStore[Tenant, TenantMember, TenantRole]):
    """Members of a tenant. Archived tenants reject every change."""

    scope_model = Tenant
    member_model = TenantMember
    role_type = TenantRole
    scope_key = "tenant_id"

    def _live_clause(self) -> Any:
        return Tenant.status != TenantStatus.ARCHIVED.value


class ProjectMembershipStore(MembershipStore[Project, ProjectMember, ProjectRole]):
    """Members of a project.

    A project rejects every change once it, or its tenant, is archived. The
    tenant flip commits before the project cascade does, so a project row can
    still read unarchived under an archived tenant.
    """

    scope_model = Project
    member_model = ProjectMember
    role_type = ProjectRole
    scope_key = "project_id"

    def _live_clause(self) -> Any:
        return and_(
            Project.archived == False,  # noqa: E712
            exists().where(
                Tenant.id == Project.tenant_id,
                Tenant.status != TenantStatus.ARCHIVED.value,
            ),
        )

    async def load(self, scope_id: UUID) -> MembershipSnapshot[Project, ProjectRole] | None:
        snapshot = await super().load(scope_id)
        if snapshot is None:
            return None
        result = await self.session.execute(
            select(Tenant.status).where(Tenant.id == snapshot.scope.tenant_id)
        )
        status = result.scalar_one_or_none()
        return replace(snapshot, tenant_archived=status in (None, TenantStatus.ARCHIVED.value))
