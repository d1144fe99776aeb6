"""Archival schemas."""

from uuid import UUID

from pydantic import BaseModel, computed_field

from src.app.models import Tenant


class CascadeReport(BaseModel):
    """Outcome of cascading a tenant's archival to its projects.

    `pending` > 0 means the tenant is archived but some of its projects are
    not yet; the cascade sweep picks those up later.
    """

    tenant_id: UUID
    archived: int = 0
    pending: int = 0
    attempts: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def complete(self) -> bool:
        return self.pending == 0


class TenantArchival(BaseModel):
    """Result of archiving a tenant."""

    tenant: Tenant
    cascade: CascadeReport
