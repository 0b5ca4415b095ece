# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Common types shared across CampusIQ models.

Roles and the acting identity are supplied by the identity collaborator
for every call into the mutation boundary.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Administrative role assigned at account provisioning."""

    REGISTRAR = "REGISTRAR"
    DEAN = "DEAN"
    DIRECTOR = "DIRECTOR"
    EXECUTIVE = "EXECUTIVE"


class AccountKind(str, Enum):
    """Account category. Only ADMIN accounts carry an administrative role."""

    ADMIN = "ADMIN"
    USER = "USER"


class EntityType(str, Enum):
    """Entity categories referenced by audit entries."""

    TASK = "Task"
    EXAM = "Exam"
    COMPLIANCE = "Compliance"
    FINANCE = "Finance"
    SYSTEM = "System"


class Actor(BaseModel):
    """The authenticated caller of a boundary operation.

    Attributes:
        id: User identifier.
        name: Display name.
        role: Administrative role, None for non-admin accounts.
        account: Account category.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = ""
    role: Role | None = None
    account: AccountKind = AccountKind.ADMIN

    @property
    def is_admin(self) -> bool:
        """Check whether the caller is an administrator with a role."""
        return self.account == AccountKind.ADMIN and self.role is not None
