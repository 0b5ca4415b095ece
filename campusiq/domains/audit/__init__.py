# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit trail and security event recording."""

from campusiq.domains.audit.security import (
    SecurityEventLog,
    SecurityMonitor,
    SecurityScanReport,
)
from campusiq.domains.audit.service import AuditError, AuditRecorder

__all__ = [
    "AuditError",
    "AuditRecorder",
    "SecurityEventLog",
    "SecurityMonitor",
    "SecurityScanReport",
]
