"""Project factories for test data generation."""

from polyfactory import Use

from src.app.models import Project, ProjectMember, ProjectRole
from tests.factories.base import BaseFactory, generate_uuid, utc_now


class ProjectFactory(BaseFactory):
    """Factory for generating Project test data."""

    __model__ = Project

    id = Use(generate_uuid)
    name = Use(lambda: f"Project {generate_uuid().hex[-8:]}")
    folder_ref = None
    cloud_provider = None
    created_by = Use(lambda: f"user-{generate_uuid().hex[-8:]}")
    archived = False
    version = 1
    created_at = Use(utc_now)
    updated_at = Use(utc_now)
    archived_at = None


class ProjectMemberFactory(BaseFactory):
    """Factory for generating ProjectMember test data."""

    __model__ = ProjectMember

    user_id = Use(lambda: f"user-{generate_uuid().hex[-8:]}")
    role = ProjectRole.CONTRIBUTOR.value
    created_at = Use(utc_now)
