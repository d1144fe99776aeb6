"""Repository layer - data access abstraction."""

from src.app.repositories.base import BaseRepository
from src.app.repositories.invite_repository import InviteRepository
from src.app.repositories.membership_repository import (
    MembershipSnapshot,
    MembershipStore,
    ProjectMembershipStore,
    TenantMembershipStore,
)
from src.app.repositories.project_repository import ProjectRepository
from src.app.repositories.tenant_repository import TenantRepository

__all__ = [
    # Base
    "BaseRepository",
    # Entities
    "InviteRepository",
    "ProjectRepository",
    "TenantRepository",
    # Membership
    "MembershipSnapshot",
    "MembershipStore",
    "ProjectMembershipStore",
    "TenantMembershipStore",
]
