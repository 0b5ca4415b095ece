# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit trail recorder.

Audit entries are the only historical record of who did what, and when.
The recorder performs exactly one append per entry and never reads,
updates or deletes stored entries.
"""

import logging

from campusiq.core.config import AuditSettings
from campusiq.infrastructure.storage import (
    Collections,
    DocumentStore,
    Filter,
    Order,
    Query,
    StoreError,
)
from campusiq.models.audit import AuditLogEntry, AuditLogEntryDraft
from campusiq.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class AuditError(Exception):
    """Exception raised when the audit trail cannot be written or read."""

    def __init__(self, message: str, original_error: Exception | None = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)


class AuditRecorder:
    """Appends immutable audit entries and serves recent history.

    Attributes:
        _store: Document store holding the ``auditLogs`` collection.
        _settings: Fetch limits.

    Example:
        recorder = AuditRecorder(store)
        entry = await recorder.record(draft)
        history = await recorder.fetch_recent(entity_id=entry.entity_id)
    """

    def __init__(self, store: DocumentStore, settings: AuditSettings | None = None):
        self._store = store
        self._settings = settings or AuditSettings()

    async def record(self, draft: AuditLogEntryDraft) -> AuditLogEntry:
        """Append one audit entry.

        Args:
            draft: Entry content without id or timestamp.

        Returns:
            The stored entry.

        Raises:
            AuditError: If the append fails.
        """
        data = draft.model_dump()
        data["timestamp"] = utc_now()
        try:
            stored = await self._store.add(Collections.AUDIT_LOGS, data)
        except StoreError as e:
            raise AuditError(f"Failed to record audit entry {draft.action.value}", e) from e

        entry = AuditLogEntry.model_validate(stored)
        logger.debug(
            "Audit %s on %s/%s by %s",
            entry.action.value,
            entry.entity_type.value,
            entry.entity_id,
            entry.performed_by.id,
        )
        return entry

    async def fetch_recent(
        self,
        entity_id: str | None = None,
        limit: int | None = None,
    ) -> list[AuditLogEntry]:
        """Return recent entries, newest first.

        Args:
            entity_id: Restrict to entries about this entity.
            limit: Maximum entries. Defaults to the configured default and
                is capped at the configured maximum.

        Raises:
            AuditError: If the read fails.
        """
        if limit is None:
            limit = self._settings.default_limit
        limit = max(1, min(limit, self._settings.max_limit))

        filters = [Filter("entity_id", "==", entity_id)] if entity_id else []
        query = Query(
            filters=filters,
            order_by=[Order("timestamp", descending=True)],
            limit=limit,
        )
        try:
            documents = await self._store.query(Collections.AUDIT_LOGS, query)
        except StoreError as e:
            raise AuditError("Failed to fetch audit entries", e) from e

        return [AuditLogEntry.model_validate(doc) for doc in documents]
