# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document store interface.

The core treats persistence as named collections of documents reachable
by id and by filtered, ordered range query, with change notifications.
Every stored document carries ``id`` and ``version``; ``version`` starts
at 1 and increases by one on each update.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal

logger = logging.getLogger(__name__)

Document = dict[str, Any]
FilterOp = Literal["==", "!=", "<", "<=", ">", ">=", "in", "array_contains"]
ChangeKind = Literal["added", "modified", "removed"]


class Collections:
    """Collection names used by the core."""

    TASKS = "tasks"
    EXAMS = "exams"
    AUDIT_LOGS = "auditLogs"
    EXAM_RESULTS = "examResults"
    SECURITY_EVENTS = "securityEvents"
    IDEMPOTENCY_KEYS = "idempotencyKeys"


class StoreError(Exception):
    """Base exception for document store errors."""


class StoreUnavailableError(StoreError):
    """The backing store could not be reached."""


class DocumentNotFoundError(StoreError):
    """A document addressed by id does not exist."""

    def __init__(self, collection: str, document_id: str) -> None:
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"{collection}/{document_id} not found")


class DocumentExistsError(StoreError):
    """A document with the requested id already exists."""

    def __init__(self, collection: str, document_id: str) -> None:
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"{collection}/{document_id} already exists")


class VersionConflictError(StoreError):
    """A conditional write found a different document version."""

    def __init__(self, collection: str, document_id: str, expected: int, actual: int) -> None:
        self.collection = collection
        self.document_id = document_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{collection}/{document_id} is at version {actual}, expected {expected}"
        )


@dataclass(frozen=True)
class Filter:
    """A single field predicate."""

    field: str
    op: FilterOp
    value: Any


@dataclass(frozen=True)
class Order:
    """Sort key for query results."""

    field: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    """Conjunction of filters with ordering and an optional limit."""

    filters: Sequence[Filter] = ()
    order_by: Sequence[Order] = ()
    limit: int | None = None


@dataclass(frozen=True)
class ChangeNotification:
    """A committed change to one document.

    Attributes:
        collection: Collection the document belongs to.
        document_id: Id of the changed document.
        kind: "added", "modified" or "removed".
        document: State after the change, None when removed.
        previous: State before the change, None when added.
    """

    collection: str
    document_id: str
    kind: ChangeKind
    document: Document | None = None
    previous: Document | None = None

    def touches(self, field_name: str, value: Any) -> bool:
        """Check whether either side of the change has ``field_name == value``."""
        return any(
            side is not None and side.get(field_name) == value
            for side in (self.document, self.previous)
        )


ChangeListener = Callable[[ChangeNotification], Awaitable[None]]


@dataclass(frozen=True)
class WriteOp:
    """One write inside an atomic batch.

    Attributes:
        kind: "create" fails if the id exists, "put" creates or replaces,
            "update" merges into an existing document.
        collection: Target collection.
        document_id: Target document id.
        data: Fields to write.
        expected_version: Optional version precondition for "update".
    """

    kind: Literal["create", "put", "update"]
    collection: str
    document_id: str
    data: Document
    expected_version: int | None = None

    @classmethod
    def create(cls, collection: str, document_id: str, data: Document) -> "WriteOp":
        return cls("create", collection, document_id, data)

    @classmethod
    def put(cls, collection: str, document_id: str, data: Document) -> "WriteOp":
        return cls("put", collection, document_id, data)

    @classmethod
    def update(
        cls,
        collection: str,
        document_id: str,
        changes: Document,
        expected_version: int | None = None,
    ) -> "WriteOp":
        return cls("update", collection, document_id, changes, expected_version)


@dataclass
class ListenerHandle:
    """Owned handle to a change subscription.

    ``close`` releases the underlying registration exactly once; later
    calls are no-ops.
    """

    collection: str
    _release: Callable[[], None] = field(repr=False)
    _closed: bool = field(default=False, init=False)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop notifications and release the registration."""
        if self._closed:
            return
        self._closed = True
        self._release()
        logger.debug("Released listener on %s", self.collection)


class DocumentStore(ABC):
    """Abstract transactional document collection store."""

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> Document | None:
        """Fetch one document by id, or None when absent."""

    @abstractmethod
    async def add(
        self,
        collection: str,
        data: Document,
        document_id: str | None = None,
    ) -> Document:
        """Create a document at version 1.

        Args:
            collection: Target collection.
            data: Document fields, without ``id`` or ``version``.
            document_id: Explicit id; generated when omitted.

        Returns:
            The stored document.

        Raises:
            DocumentExistsError: If ``document_id`` is already taken.
            StoreUnavailableError: If the store cannot be reached.
        """

    @abstractmethod
    async def put(self, collection: str, document_id: str, data: Document) -> Document:
        """Create or replace a document, bumping its version."""

    @abstractmethod
    async def update(
        self,
        collection: str,
        document_id: str,
        changes: Document,
        expected_version: int | None = None,
    ) -> Document:
        """Merge ``changes`` into an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            VersionConflictError: If ``expected_version`` does not match.
        """

    @abstractmethod
    async def commit(self, writes: Sequence[WriteOp]) -> list[Document]:
        """Apply several writes atomically.

        Either every write is applied or none is. Writes are applied in
        order, so a later write in the batch sees earlier ones.

        Returns:
            The stored documents, one per write, in order.

        Raises:
            DocumentExistsError: If a "create" targets an existing id.
            DocumentNotFoundError: If an "update" targets a missing id.
            VersionConflictError: If an expected version does not match.
        """

    @abstractmethod
    async def append_to_array(
        self,
        collection: str,
        document_id: str,
        field_name: str,
        item: Any,
    ) -> Document:
        """Atomically append one item to an array field."""

    @abstractmethod
    async def delete(
        self,
        collection: str,
        document_id: str,
        expected_version: int | None = None,
    ) -> None:
        """Remove a document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            VersionConflictError: If ``expected_version`` does not match.
        """

    @abstractmethod
    async def query(self, collection: str, query: Query | None = None) -> list[Document]:
        """Return documents matching ``query``."""

    @abstractmethod
    def subscribe(self, collection: str, listener: ChangeListener) -> ListenerHandle:
        """Register ``listener`` for committed changes in ``collection``."""
