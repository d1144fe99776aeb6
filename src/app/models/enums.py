"""Shared enums for models."""

from enum import Enum


class TenantStatus(str, Enum):
    """Tenant lifecycle status."""

    PENDING = "pending"
    ACTIVE = "active"
    ARCHIVED = "archived"


class TenantRole(str, Enum):
    """User role within a tenant."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class ProjectRole(str, Enum):
    """User role within a project."""

    ADMIN = "admin"
    DEPUTY = "deputy"
    CONTRIBUTOR = "contributor"


class ScopeType(str, Enum):
    """Aggregate an invite or membership belongs to."""

    TENANT = "tenant"
    PROJECT = "project"
