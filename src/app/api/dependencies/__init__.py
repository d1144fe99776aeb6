"""FastAPI dependency injection definitions.

This package ships no routers; these are the seams a host application
wires its handlers through.
"""

from src.app.api.dependencies.db import DBSession, get_db_session
from src.app.api.dependencies.services import (
    InviteServiceDep,
    ProjectServiceDep,
    TenantServiceDep,
    get_invite_service,
    get_project_service,
    get_tenant_service,
)

__all__ = [
    # Database
    "DBSession",
    "get_db_session",
    # Services
    "InviteServiceDep",
    "ProjectServiceDep",
    "TenantServiceDep",
    "get_invite_service",
    "get_project_service",
    "get_tenant_service",
]
