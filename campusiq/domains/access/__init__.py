# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Access control: role permissions and read scoping."""

from campusiq.domains.access.permissions import (
    MUTATING_SUFFIXES,
    READ_ONLY_ROLES,
    ROLE_PERMISSIONS,
    Permission,
    all_of,
    all_permissions,
    allows,
    any_of,
    is_mutating,
    is_read_only,
    role_display_name,
)
from campusiq.domains.access.scope import COLLECTION_ORDER, in_scope, scoped_query

__all__ = [
    # Permissions
    "MUTATING_SUFFIXES",
    "READ_ONLY_ROLES",
    "ROLE_PERMISSIONS",
    "Permission",
    "all_of",
    "all_permissions",
    "allows",
    "any_of",
    "is_mutating",
    "is_read_only",
    "role_display_name",
    # Scope
    "COLLECTION_ORDER",
    "in_scope",
    "scoped_query",
]
