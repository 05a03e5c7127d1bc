"""Role hierarchy - pure authorization predicates for tenant memberships.

Ordering per tenant kind:

    team:       owner > admin > {member, viewer}
    nonprofit:  owner > admin > editor > viewer

``owner`` is only ever assigned at tenant creation or through an explicit
ownership transfer, never through an invitation. For nonprofit portals the
owner is the portal's first admin.

None of these functions perform I/O.
"""

from typing import Final

from src.accessgrant.models.enums import MembershipRole, TenantKind

ROLE_RANK: Final[dict[MembershipRole, int]] = {
    MembershipRole.OWNER: 3,
    MembershipRole.ADMIN: 2,
    MembershipRole.EDITOR: 1,
    MembershipRole.MEMBER: 0,
    MembershipRole.VIEWER: 0,
}

# Roles that may be granted by invitation or role change, per tenant kind
ASSIGNABLE_ROLES: Final[dict[TenantKind, frozenset[MembershipRole]]] = {
    TenantKind.TEAM: frozenset(
        {MembershipRole.ADMIN, MembershipRole.MEMBER, MembershipRole.VIEWER}
    ),
    TenantKind.NONPROFIT: frozenset(
        {MembershipRole.ADMIN, MembershipRole.EDITOR, MembershipRole.VIEWER}
    ),
}

_MANAGER_ROLES: Final[frozenset[MembershipRole]] = frozenset(
    {MembershipRole.OWNER, MembershipRole.ADMIN}
)


def parse_role(value: str | MembershipRole) -> MembershipRole | None:
    """Parse a role name, returning None for unknown values."""
    try:
        return MembershipRole(value)
    except ValueError:
        return None


def is_assignable(role: MembershipRole, kind: TenantKind) -> bool:
    """Whether ``role`` belongs to the closed role set of ``kind``."""
    return role in ASSIGNABLE_ROLES[kind]


def is_strictly_below(role: MembershipRole, other: MembershipRole) -> bool:
    return ROLE_RANK[role] < ROLE_RANK[other]


def can_manage_members(actor_role: MembershipRole) -> bool:
    """Only owners and admins may invite, modify or remove anyone."""
    return actor_role in _MANAGER_ROLES


def can_invite(actor_role: MembershipRole, target_role: MembershipRole) -> bool:
    """Whether ``actor_role`` may issue an invitation granting ``target_role``.

    Owners may invite admins and anything below; admins may invite any role
    strictly below admin; nobody may invite an owner.
    """
    if target_role == MembershipRole.OWNER:
        return False
    if actor_role == MembershipRole.OWNER:
        return True
    if actor_role == MembershipRole.ADMIN:
        return is_strictly_below(target_role, MembershipRole.ADMIN)
    return False


def can_modify(
    actor_role: MembershipRole,
    target_role: MembershipRole,
    is_target_self: bool,
    remaining_owner_count: int,
    new_role: MembershipRole | None = None,
) -> bool:
    """Whether ``actor_role`` may change a membership currently holding ``target_role``.

    Rules, first match wins:
      1. Only an owner may assign or revoke the owner role.
      2. An admin may change roles strictly below admin, to roles strictly
         below admin, and never touches an owner's membership.
      3. Anyone else may not modify memberships.
      4. The sole owner may not demote themselves (the tenant would be left
         with zero owners). ``remaining_owner_count`` is the current count.
    """
    if not can_manage_members(actor_role):
        return False

    touches_owner = target_role == MembershipRole.OWNER or new_role == MembershipRole.OWNER
    if touches_owner:
        if actor_role != MembershipRole.OWNER:
            return False
        demoting_owner = (
            target_role == MembershipRole.OWNER
            and new_role is not None
            and new_role != MembershipRole.OWNER
        )
        if demoting_owner and is_target_self and remaining_owner_count <= 1:
            return False
        return True

    if actor_role == MembershipRole.ADMIN:
        if not is_strictly_below(target_role, MembershipRole.ADMIN):
            return False
        if new_role is not None and not is_strictly_below(new_role, MembershipRole.ADMIN):
            return False
        return True

    return True


def can_remove(
    actor_role: MembershipRole,
    target_role: MembershipRole,
    is_target_self: bool,
) -> bool:
    """Whether ``actor_role`` may delete a membership holding ``target_role``.

    Self-removal is never allowed through this path; leaving a tenant is a
    separate operation.
    """
    if is_target_self:
        return False
    if target_role == MembershipRole.OWNER:
        return actor_role == MembershipRole.OWNER
    if actor_role == MembershipRole.OWNER:
        return True
    if actor_role == MembershipRole.ADMIN:
        return is_strictly_below(target_role, MembershipRole.ADMIN)
    return False


def can_leave(role: MembershipRole, remaining_owner_count: int) -> bool:
    """Whether a member may remove their own membership."""
    if role == MembershipRole.OWNER:
        return remaining_owner_count > 1
    return True
