# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document storage abstraction and the in-memory backend."""

from campusiq.infrastructure.storage.base import (
    ChangeListener,
    ChangeNotification,
    Collections,
    Document,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStore,
    Filter,
    ListenerHandle,
    Order,
    Query,
    StoreError,
    StoreUnavailableError,
    VersionConflictError,
    WriteOp,
)
from campusiq.infrastructure.storage.memory import InMemoryDocumentStore

__all__ = [
    "ChangeListener",
    "ChangeNotification",
    "Collections",
    "Document",
    "DocumentExistsError",
    "DocumentNotFoundError",
    "DocumentStore",
    "Filter",
    "InMemoryDocumentStore",
    "ListenerHandle",
    "Order",
    "Query",
    "StoreError",
    "StoreUnavailableError",
    "VersionConflictError",
    "WriteOp",
]
