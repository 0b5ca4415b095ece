# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Role-based permission model.

A static table maps every administrative role to a frozen set of
permission tags. Lookups are pure: an unknown or missing role resolves to
the empty set rather than raising, so a caller's larger operation is
never aborted by a lookup.

Example:
    from campusiq.domains.access import Permission, allows

    if allows(actor.role, Permission.EXAM_CREATE):
        ...
"""

from collections.abc import Iterable
from enum import Enum

from campusiq.models.common import Role


class Permission(str, Enum):
    """Capability tags checked before an action proceeds."""

    TASK_CREATE = "task:create"
    TASK_VIEW = "task:view"
    TASK_CLOSE = "task:close"
    TASK_ESCALATE = "task:escalate"
    TASK_ASSIGN = "task:assign"
    TASK_DELETE = "task:delete"
    EXAM_CREATE = "exam:create"
    EXAM_VIEW = "exam:view"
    EXAM_EDIT = "exam:edit"
    EXAM_DELETE = "exam:delete"
    EXAM_PUBLISH = "exam:publish"
    EXAM_SCHEDULE = "exam:schedule"
    REPORT_EXPORT = "report:export"
    REPORT_VIEW = "report:view"
    DASHBOARD_VIEW = "dashboard:view"
    DASHBOARD_ANALYTICS = "dashboard:analytics"
    COMPLIANCE_VIEW = "compliance:view"
    COMPLIANCE_MANAGE = "compliance:manage"
    FINANCE_VIEW = "finance:view"
    FINANCE_MANAGE = "finance:manage"
    SYSTEM_CONFIG = "system:config"
    AUDIT_VIEW = "audit:view"
    CROWD_VIEW = "crowd:view"


MUTATING_SUFFIXES: tuple[str, ...] = (":create", ":delete", ":publish", ":manage", ":edit")

# Roles limited to observation. Their table rows are checked at import.
READ_ONLY_ROLES: frozenset[Role] = frozenset({Role.EXECUTIVE})

_ROLE_DISPLAY_NAMES: dict[Role, str] = {
    Role.REGISTRAR: "Registrar",
    Role.DEAN: "Dean",
    Role.DIRECTOR: "Director",
    Role.EXECUTIVE: "Executive",
}


def is_mutating(permission: Permission) -> bool:
    """Check whether a permission grants a state-changing capability."""
    return permission.value.endswith(MUTATING_SUFFIXES)


def _build_table(
    rows: dict[Role, Iterable[Permission]],
) -> dict[Role, frozenset[Permission]]:
    """Freeze the role table and verify its structural guarantees.

    Raises:
        ValueError: If a role is missing or a read-only role holds a
            mutating permission.
    """
    table = {role: frozenset(perms) for role, perms in rows.items()}

    missing = [role.value for role in Role if role not in table]
    if missing:
        raise ValueError(f"Permission table missing roles: {', '.join(missing)}")

    for role in READ_ONLY_ROLES:
        granted = sorted(p.value for p in table[role] if is_mutating(p))
        if granted:
            raise ValueError(
                f"Read-only role {role.value} granted mutating permissions: "
                f"{', '.join(granted)}"
            )

    return table


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = _build_table(
    {
        Role.REGISTRAR: [
            Permission.TASK_CREATE,
            Permission.TASK_VIEW,
            Permission.EXAM_CREATE,
            Permission.EXAM_VIEW,
            Permission.EXAM_EDIT,
            Permission.EXAM_SCHEDULE,
            Permission.DASHBOARD_VIEW,
            Permission.REPORT_VIEW,
        ],
        Role.DEAN: [
            Permission.TASK_CREATE,
            Permission.TASK_VIEW,
            Permission.TASK_CLOSE,
            Permission.TASK_ESCALATE,
            Permission.EXAM_CREATE,
            Permission.EXAM_VIEW,
            Permission.EXAM_EDIT,
            Permission.EXAM_SCHEDULE,
            Permission.EXAM_PUBLISH,
            Permission.DASHBOARD_VIEW,
            Permission.DASHBOARD_ANALYTICS,
            Permission.REPORT_VIEW,
            Permission.REPORT_EXPORT,
            Permission.COMPLIANCE_VIEW,
            Permission.AUDIT_VIEW,
            Permission.CROWD_VIEW,
        ],
        Role.DIRECTOR: [
            Permission.TASK_CREATE,
            Permission.TASK_VIEW,
            Permission.TASK_CLOSE,
            Permission.TASK_ESCALATE,
            Permission.TASK_ASSIGN,
            Permission.TASK_DELETE,
            Permission.EXAM_CREATE,
            Permission.EXAM_VIEW,
            Permission.EXAM_EDIT,
            Permission.EXAM_DELETE,
            Permission.EXAM_SCHEDULE,
            Permission.EXAM_PUBLISH,
            Permission.DASHBOARD_VIEW,
            Permission.DASHBOARD_ANALYTICS,
            Permission.REPORT_VIEW,
            Permission.REPORT_EXPORT,
            Permission.COMPLIANCE_VIEW,
            Permission.COMPLIANCE_MANAGE,
            Permission.FINANCE_VIEW,
            Permission.FINANCE_MANAGE,
            Permission.AUDIT_VIEW,
            Permission.CROWD_VIEW,
        ],
        Role.EXECUTIVE: [
            Permission.TASK_VIEW,
            Permission.EXAM_VIEW,
            Permission.DASHBOARD_VIEW,
            Permission.DASHBOARD_ANALYTICS,
            Permission.REPORT_VIEW,
            Permission.REPORT_EXPORT,
            Permission.COMPLIANCE_VIEW,
            Permission.FINANCE_VIEW,
            Permission.AUDIT_VIEW,
            Permission.CROWD_VIEW,
        ],
    }
)


def _coerce_role(role: Role | str | None) -> Role | None:
    if role is None or isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def all_permissions(role: Role | str | None) -> frozenset[Permission]:
    """Return every permission granted to a role.

    Args:
        role: Role enum or its string value. Unknown values are allowed.

    Returns:
        The frozen permission set, empty for unknown or missing roles.
    """
    resolved = _coerce_role(role)
    if resolved is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(resolved, frozenset())


def allows(role: Role | str | None, permission: Permission | str) -> bool:
    """Check whether a role holds a permission. Fails closed."""
    try:
        wanted = Permission(permission)
    except ValueError:
        return False
    return wanted in all_permissions(role)


def any_of(role: Role | str | None, permissions: Iterable[Permission | str]) -> bool:
    """Short-circuit OR over a permission list."""
    return any(allows(role, p) for p in permissions)


def all_of(role: Role | str | None, permissions: Iterable[Permission | str]) -> bool:
    """Short-circuit AND over a permission list.

    An unknown role is denied even for an empty list.
    """
    if _coerce_role(role) is None:
        return False
    return all(allows(role, p) for p in permissions)


def is_read_only(role: Role | str | None) -> bool:
    """Check whether a role is limited to observation."""
    return _coerce_role(role) in READ_ONLY_ROLES


def role_display_name(role: Role | str | None) -> str:
    """Human-readable role label used in user-facing messages."""
    resolved = _coerce_role(role)
    if resolved is None:
        return str(role) if role else "Unknown role"
    return _ROLE_DISPLAY_NAMES[resolved]
