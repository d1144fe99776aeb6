"""Service layer - business rules over the repositories."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.app.repositories import (
    InviteRepository,
    ProjectMembershipStore,
    ProjectRepository,
    TenantMembershipStore,
    TenantRepository,
)
from src.app.services.archival_service import ArchivalCascade
from src.app.services.invite_service import InviteService
from src.app.services.project_service import ProjectService
from src.app.services.tenant_service import TenantService


def build_archival_cascade(session: AsyncSession) -> ArchivalCascade:
    return ArchivalCascade(ProjectRepository(session), session)


def build_tenant_service(session: AsyncSession) -> TenantService:
    return TenantService(
        TenantRepository(session),
        TenantMembershipStore(session),
        build_archival_cascade(session),
        session,
    )


def build_project_service(session: AsyncSession) -> ProjectService:
    return ProjectService(
        ProjectRepository(session),
        TenantRepository(session),
        ProjectMembershipStore(session),
        TenantMembershipStore(session),
        session,
    )


def build_invite_service(session: AsyncSession) -> InviteService:
    return InviteService(
        InviteRepository(session),
        TenantMembershipStore(session),
        ProjectMembershipStore(session),
        session,
    )


__all__ = [
    "ArchivalCascade",
    "InviteService",
    "ProjectService",
    "TenantService",
    "build_archival_cascade",
    "build_invite_service",
    "build_project_service",
    "build_tenant_service",
]
