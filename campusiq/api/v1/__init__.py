# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    tasks: Task creation, status changes and comments.
    exams: Exam scheduling, updates, deletion and results.
    audit: Audit history and security scans.
    sync: WebSocket snapshot streams.
"""

from fastapi import APIRouter

from campusiq.api.v1 import audit, exams, sync, tasks

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(exams.router, prefix="/exams", tags=["Exams"])
router.include_router(audit.router, prefix="/audit", tags=["Audit"])
router.include_router(sync.router, prefix="/sync", tags=["Sync"])

__all__ = ["router"]
