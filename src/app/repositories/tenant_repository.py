"""Repository for Tenant entity."""

from sqlmodel import select

from src.app.models import Tenant, TenantStatus, normalize_tenant_name
from src.app.repositories.base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    """Repository for Tenant entity."""

    model = Tenant

    async def get_active_by_owner(self, owner_id: str) -> Tenant | None:
        """Get the owner's non-archived tenant, if any."""
        return await self.find_one(
            Tenant.owner_id == owner_id,
            Tenant.status != TenantStatus.ARCHIVED.value,
        )

    async def get_by_name(self, name: str) -> Tenant | None:
        """Get tenant by name, case-insensitively."""
        return await self.find_one(Tenant.normalized_name == normalize_tenant_name(name))

    async def list_by_status(self, status: TenantStatus) -> list[Tenant]:
        """List tenants in a given status, oldest first."""
        result = await self.session.execute(
            select(Tenant)
            .where(Tenant.status == status.value)
            .order_by(Tenant.created_at)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())
