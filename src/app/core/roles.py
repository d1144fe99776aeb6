"""Role hierarchy for tenant and project scopes.

Two independent, fixed three-level hierarchies:

    tenant:  owner(3)  > admin(2)  > member(1)
    project: admin(3)  > deputy(2) > contributor(1)

Everything here is pure. Role strings are parsed into enums by the caller;
comparisons across the two vocabularies are meaningless and never made by
the services.
"""

from typing import Final

from src.app.models.enums import ProjectRole, TenantRole

type Role = TenantRole | ProjectRole

TENANT_ROLE_RANKS: Final[dict[TenantRole, int]] = {
    TenantRole.OWNER: 3,
    TenantRole.ADMIN: 2,
    TenantRole.MEMBER: 1,
}

PROJECT_ROLE_RANKS: Final[dict[ProjectRole, int]] = {
    ProjectRole.ADMIN: 3,
    ProjectRole.DEPUTY: 2,
    ProjectRole.CONTRIBUTOR: 1,
}

# Roles allowed to administer members and issue invites
TENANT_MANAGER_ROLES: Final[frozenset[TenantRole]] = frozenset(
    {TenantRole.OWNER, TenantRole.ADMIN}
)
PROJECT_MANAGER_ROLES: Final[frozenset[ProjectRole]] = frozenset(
    {ProjectRole.ADMIN, ProjectRole.DEPUTY}
)


def rank(role: Role) -> int:
    """Integer rank of a role within its own hierarchy (higher = more privilege)."""
    if isinstance(role, TenantRole):
        return TENANT_ROLE_RANKS[role]
    return PROJECT_ROLE_RANKS[role]


def outranks(a: Role, b: Role) -> bool:
    """True if `a` is strictly above `b`."""
    return rank(a) > rank(b)


def at_least(a: Role, b: Role) -> bool:
    """Self-inclusive variant of `outranks`."""
    return rank(a) >= rank(b)


def can_assign(actor_role: Role, target_role: Role, *, require_outrank: bool = False) -> bool:
    """Whether an actor holding `actor_role` may hand out `target_role`.

    Nobody may assign above their own rank. When the operation also requires
    the actor to outrank the subject, the assigned role must be strictly below.
    """
    if require_outrank:
        return outranks(actor_role, target_role)
    return at_least(actor_role, target_role)


def is_manager(role: Role) -> bool:
    """True for roles that administer members of their scope."""
    if isinstance(role, TenantRole):
        return role in TENANT_MANAGER_ROLES
    return role in PROJECT_MANAGER_ROLES
