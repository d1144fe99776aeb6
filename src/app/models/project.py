"""Project aggregate - project record and its member rows."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from src.app.models.base import utc_now
from src.app.models.enums import ProjectRole


class Project(SQLModel, table=True):
    """Project owned by a tenant (by reference, not containment)."""

    __tablename__ = "projects"
    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_projects_tenant_name"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", index=True)
    name: str = Field(max_length=200)
    # Opaque reference into the tenant's cloud storage, never interpreted here
    folder_ref: str | None = Field(default=None, max_length=500)
    cloud_provider: str | None = Field(default=None, max_length=50)
    created_by: str = Field(max_length=255)
    archived: bool = Field(default=False, index=True)
    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)
    archived_at: datetime | None = Field(default=None)

    @property
    def is_archived(self) -> bool:
        return self.archived


class ProjectMember(SQLModel, table=True):
    """Junction table for user-project membership."""

    __tablename__ = "project_members"

    project_id: UUID = Field(foreign_key="projects.id", primary_key=True)
    user_id: str = Field(max_length=255, primary_key=True)
    role: str = Field(default=ProjectRole.CONTRIBUTOR.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def role_enum(self) -> ProjectRole:
        return ProjectRole(self.role)
