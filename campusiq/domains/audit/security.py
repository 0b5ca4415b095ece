# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Security event log and periodic monitor.

Denied and abusive requests are recorded in ``securityEvents`` for
intrusion detection. Recording is best-effort: a failed append is logged
and never changes the outcome of the request that triggered it.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from campusiq.core.config import SecurityMonitorSettings
from campusiq.infrastructure.storage import (
    Collections,
    DocumentStore,
    Filter,
    Query,
    StoreError,
)
from campusiq.models.audit import SecurityEvent, SecuritySeverity
from campusiq.models.common import Actor
from campusiq.utils.datetime import utc_now

logger = logging.getLogger(__name__)

RATE_LIMIT_ACTION_PREFIX = "rate_limit:"
HIGH_SEVERITIES = (SecuritySeverity.HIGH, SecuritySeverity.CRITICAL)


class SecurityEventLog:
    """Best-effort writer for security events."""

    def __init__(self, store: DocumentStore):
        self._store = store

    async def record(
        self,
        actor: Actor | None,
        action: str,
        reason: str,
        severity: SecuritySeverity,
        metadata: dict[str, Any] | None = None,
    ) -> SecurityEvent | None:
        """Append a security event.

        Args:
            actor: Caller that triggered the event, if identified.
            action: Signal tag such as "task:create:permission_denied".
            reason: Human-readable explanation.
            severity: Event severity.
            metadata: Extra structured context.

        Returns:
            The recorded event, or None if the append failed.
        """
        event = SecurityEvent(
            user_id=actor.id if actor else "anonymous",
            role=actor.role if actor else None,
            account=actor.account.value if actor else None,
            action=action,
            reason=reason,
            severity=severity,
            metadata=metadata or {},
            timestamp=utc_now(),
        )
        logger.warning(
            "[SECURITY EVENT] user=%s action=%s severity=%s reason=%s",
            event.user_id,
            event.action,
            event.severity.value,
            event.reason,
        )
        try:
            await self._store.add(Collections.SECURITY_EVENTS, event.model_dump())
        except StoreError as e:
            logger.error("Failed to persist security event %s: %s", action, str(e))
            return None
        return event


@dataclass
class SecurityScanReport:
    """Result of one monitor pass.

    Attributes:
        window_start: Oldest timestamp considered.
        high_severity_count: HIGH and CRITICAL events in the window.
        alert: True when the count exceeds the alert threshold.
        flagged_actors: Actors over the violation threshold, with counts.
    """

    window_start: datetime
    high_severity_count: int = 0
    alert: bool = False
    flagged_actors: dict[str, int] = field(default_factory=dict)


class SecurityMonitor:
    """Scans recent security events for alert-worthy patterns.

    Intended to run periodically (hourly by default). Each scan reports
    the number of high-severity events in the window and the actors whose
    rate-limit violations exceed the warning threshold.
    """

    def __init__(
        self,
        store: DocumentStore,
        settings: SecurityMonitorSettings | None = None,
    ):
        self._store = store
        self._settings = settings or SecurityMonitorSettings()

    async def scan(self, now: datetime | None = None) -> SecurityScanReport:
        """Run one monitor pass.

        Raises:
            StoreError: If the security events cannot be read.
        """
        now = now or utc_now()
        window_start = now - timedelta(minutes=self._settings.window_minutes)
        documents = await self._store.query(
            Collections.SECURITY_EVENTS,
            Query(filters=[Filter("timestamp", ">=", window_start)]),
        )
        events = [SecurityEvent.model_validate(doc) for doc in documents]

        report = SecurityScanReport(window_start=window_start)
        report.high_severity_count = sum(1 for e in events if e.severity in HIGH_SEVERITIES)
        report.alert = report.high_severity_count > self._settings.high_severity_alert_threshold

        violations = Counter(
            e.user_id for e in events if e.action.startswith(RATE_LIMIT_ACTION_PREFIX)
        )
        report.flagged_actors = {
            user_id: count
            for user_id, count in violations.items()
            if count > self._settings.violation_warning_threshold
        }

        if report.alert:
            logger.error(
                "[SECURITY ALERT] %d high-severity events in the last %d minutes",
                report.high_severity_count,
                self._settings.window_minutes,
            )
        for user_id, count in report.flagged_actors.items():
            logger.warning(
                "[SECURITY WARNING] user=%s has %d rate limit violations",
                user_id,
                count,
            )
        return report
