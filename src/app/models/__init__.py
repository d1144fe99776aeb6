"""Model exports.

Import from here: `from src.app.models import Tenant, Project, Invite`
"""

# Enums
from src.app.models.enums import ProjectRole, ScopeType, TenantRole, TenantStatus

# Tables
from src.app.models.invite import Invite
from src.app.models.project import Project, ProjectMember
from src.app.models.tenant import Tenant, TenantMember, normalize_tenant_name

__all__ = [
    # Enums
    "ProjectRole",
    "ScopeType",
    "TenantRole",
    "TenantStatus",
    # Tables
    "Invite",
    "Project",
    "ProjectMember",
    "Tenant",
    "TenantMember",
    # Helpers
    "normalize_tenant_name",
]
