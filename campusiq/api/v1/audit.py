# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit history and security monitoring endpoints.

- GET / - Recent audit entries, optionally for one entity
- GET /security-scan - Run one security monitor pass
"""

import logging
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, Query

from campusiq.api.dependencies import (
    get_boundary,
    get_optional_actor,
    get_security_monitor,
)
from campusiq.domains.access import Permission, allows
from campusiq.domains.audit import SecurityMonitor
from campusiq.domains.mutation import (
    MutationBoundary,
    PermissionDeniedError,
    StorageUnavailableError,
)
from campusiq.infrastructure.storage import StoreError
from campusiq.models.audit import AuditLogEntry
from campusiq.models.common import Actor

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[AuditLogEntry], summary="Recent audit entries")
async def fetch_audit(
    entity_id: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1),
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> list[AuditLogEntry]:
    return await boundary.fetch_audit(actor, entity_id=entity_id, limit=limit)


@router.get("/security-scan", summary="Scan recent security events")
async def security_scan(
    actor: Actor | None = Depends(get_optional_actor),
    monitor: SecurityMonitor = Depends(get_security_monitor),
) -> dict[str, Any]:
    """Run one monitor pass. Requires audit:view."""
    if actor is None or not actor.is_admin or not allows(actor.role, Permission.AUDIT_VIEW):
        raise PermissionDeniedError(
            Permission.AUDIT_VIEW.value,
            role=actor.role.value if actor and actor.role else None,
        )
    try:
        report = await monitor.scan()
    except StoreError as e:
        raise StorageUnavailableError("Security events unavailable", original_error=e) from e
    return asdict(report)
