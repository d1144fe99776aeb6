"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.app.api.dependencies.db import DBSession
from src.app.services import (
    InviteService,
    ProjectService,
    TenantService,
    build_invite_service,
    build_project_service,
    build_tenant_service,
)


def get_tenant_service(session: DBSession) -> TenantService:
    """Get tenant service."""
    return build_tenant_service(session)


def get_project_service(session: DBSession) -> ProjectService:
    """Get project service."""
    return build_project_service(session)


def get_invite_service(session: DBSession) -> InviteService:
    """Get invite service."""
    return build_invite_service(session)


TenantServiceDep = Annotated[TenantService, Depends(get_tenant_service)]
ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]
InviteServiceDep = Annotated[InviteService, Depends(get_invite_service)]
