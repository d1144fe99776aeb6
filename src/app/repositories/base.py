"""Base repository with common store primitives."""

from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select


class BaseRepository[ModelType: SQLModel]:
    """Base repository providing common database operations.

    Repositories handle data access only. Transaction control (commit)
    should be done in the service layer.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelType | None:
        """Get a record by its primary key, always reading the stored row."""
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == id)  # type: ignore[attr-defined]
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_one(self, *predicates: Any) -> ModelType | None:
        """First record matching all predicates, if any."""
        result = await self.session.execute(
            select(self.model).where(*predicates).limit(1)
        )
        return result.scalars().first()

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    async def insert(self, entity: ModelType) -> ModelType:
        """Add and flush, so unique constraints fire here rather than at commit."""
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def update_if(self, id: UUID, *predicates: Any, **patch: Any) -> bool:
        """Atomically apply `patch` to row `id` only if all predicates still hold.

        Returns:
            True if the row matched and was updated, False otherwise.
        """
        result = await self.session.execute(
            update(self.model)
            .where(self.model.id == id, *predicates)  # type: ignore[attr-defined]
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]
