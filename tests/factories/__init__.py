"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import TenantFactory, ProjectFactory, ...
"""

from tests.factories.base import BaseFactory, generate_uuid, utc_now
from tests.factories.invite import InviteFactory
from tests.factories.project import ProjectFactory, ProjectMemberFactory
from tests.factories.tenant import TenantFactory, TenantMemberFactory

__all__ = [
    # Base
    "BaseFactory",
    "generate_uuid",
    "utc_now",
    # Tenant
    "TenantFactory",
    "TenantMemberFactory",
    # Project
    "ProjectFactory",
    "ProjectMemberFactory",
    # Invite
    "InviteFactory",
]
