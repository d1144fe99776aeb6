"""Tenant factories for test data generation."""

from polyfactory import PostGenerated, Use

from src.app.models import Tenant, TenantMember, TenantRole, TenantStatus, normalize_tenant_name
from tests.factories.base import BaseFactory, generate_uuid, utc_now


class TenantFactory(BaseFactory):
    """Factory for generating Tenant test data."""

    __model__ = Tenant

    id = Use(generate_uuid)
    name = Use(lambda: f"Test Tenant {generate_uuid().hex[-8:]}")
    normalized_name = PostGenerated(lambda _, values: normalize_tenant_name(values["name"]))
    owner_id = Use(lambda: f"user-{generate_uuid().hex[-8:]}")
    status = TenantStatus.ACTIVE.value
    version = 1
    created_at = Use(utc_now)
    updated_at = Use(utc_now)
    archived_at = None

    @classmethod
    def pending(cls, **kwargs):
        """Create a tenant awaiting approval."""
        return cls.build(status=TenantStatus.PENDING.value, **kwargs)

    @classmethod
    def archived(cls, **kwargs):
        """Create an archived tenant."""
        return cls.build(status=TenantStatus.ARCHIVED.value, archived_at=utc_now(), **kwargs)


class TenantMemberFactory(BaseFactory):
    """Factory for generating TenantMember test data."""

    __model__ = TenantMember

    user_id = Use(lambda: f"user-{generate_uuid().hex[-8:]}")
    role = TenantRole.MEMBER.value
    created_at = Use(utc_now)

    @classmethod
    def owner_of(cls, tenant: Tenant, **kwargs):
        """Owner row matching the tenant's owner_id."""
        return cls.build(
            tenant_id=tenant.id, user_id=tenant.owner_id, role=TenantRole.OWNER.value, **kwargs
        )
