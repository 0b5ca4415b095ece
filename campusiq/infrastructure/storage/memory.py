# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory document store.

Documents live in per-collection dicts guarded by a single asyncio lock,
so each write is atomic with respect to other coroutines. Committed
changes are published on the store's EventBus as
``store.<collection>.changed`` after the lock is released.
"""

import asyncio
import copy
import logging
from collections.abc import Iterable, Sequence
from typing import Any
from uuid import uuid4

from campusiq.infrastructure.events import EventBus, EventData, EventTypes
from campusiq.infrastructure.storage.base import (
    ChangeKind,
    ChangeListener,
    ChangeNotification,
    Document,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStore,
    Filter,
    ListenerHandle,
    Order,
    Query,
    VersionConflictError,
    WriteOp,
)

logger = logging.getLogger(__name__)


def _matches(document: Document, flt: Filter) -> bool:
    value = document.get(flt.field)
    if flt.op == "==":
        return value == flt.value
    if flt.op == "!=":
        return value != flt.value
    if flt.op == "in":
        return value in flt.value
    if flt.op == "array_contains":
        return isinstance(value, list) and flt.value in value
    if value is None:
        return False
    if flt.op == "<":
        return value < flt.value
    if flt.op == "<=":
        return value <= flt.value
    if flt.op == ">":
        return value > flt.value
    if flt.op == ">=":
        return value >= flt.value
    raise ValueError(f"Unsupported filter operator: {flt.op}")


def _sort(documents: list[Document], order_by: Iterable[Order]) -> list[Document]:
    # Apply keys last-to-first so earlier keys take precedence. Missing
    # values sort after present ones in either direction.
    for order in reversed(list(order_by)):
        present = [d for d in documents if d.get(order.field) is not None]
        missing = [d for d in documents if d.get(order.field) is None]
        present.sort(key=lambda d: d[order.field], reverse=order.descending)
        documents = present + missing
    return documents


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed DocumentStore with EventBus change notifications.

    Args:
        bus: Event bus for change notifications. A private bus is created
            when omitted.
    """

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus or EventBus()
        self._collections: dict[str, dict[str, Document]] = {}
        self._lock = asyncio.Lock()

    def _collection(self, name: str) -> dict[str, Document]:
        return self._collections.setdefault(name, {})

    async def _notify(
        self,
        collection: str,
        document_id: str,
        kind: ChangeKind,
        document: Document | None,
        previous: Document | None,
    ) -> None:
        notification = ChangeNotification(
            collection=collection,
            document_id=document_id,
            kind=kind,
            document=copy.deepcopy(document),
            previous=copy.deepcopy(previous),
        )
        await self.bus.publish(
            EventTypes.Store.changed(collection),
            {"notification": notification},
        )

    async def get(self, collection: str, document_id: str) -> Document | None:
        document = self._collection(collection).get(document_id)
        return copy.deepcopy(document) if document is not None else None

    async def add(
        self,
        collection: str,
        data: Document,
        document_id: str | None = None,
    ) -> Document:
        doc_id = document_id or uuid4().hex
        stored = await self.commit([WriteOp.create(collection, doc_id, data)])
        return stored[0]

    async def put(self, collection: str, document_id: str, data: Document) -> Document:
        stored = await self.commit([WriteOp.put(collection, document_id, data)])
        return stored[0]

    async def update(
        self,
        collection: str,
        document_id: str,
        changes: Document,
        expected_version: int | None = None,
    ) -> Document:
        stored = await self.commit(
            [WriteOp.update(collection, document_id, changes, expected_version)]
        )
        return stored[0]

    async def commit(self, writes: Sequence[WriteOp]) -> list[Document]:
        # Stage every write against a scratch view first so a failing
        # write leaves the collections untouched.
        staged: dict[tuple[str, str], Document | None] = {}
        changes: list[tuple[WriteOp, ChangeKind, Document, Document | None]] = []

        async with self._lock:
            for op in writes:
                slot = (op.collection, op.document_id)
                previous = (
                    staged[slot]
                    if slot in staged
                    else self._collection(op.collection).get(slot[1])
                )

                if op.kind == "create":
                    if previous is not None:
                        raise DocumentExistsError(op.collection, op.document_id)
                    document = copy.deepcopy(op.data)
                    document["version"] = 1
                    kind: ChangeKind = "added"
                elif op.kind == "put":
                    document = copy.deepcopy(op.data)
                    document["version"] = previous["version"] + 1 if previous else 1
                    kind = "modified" if previous else "added"
                else:
                    if previous is None:
                        raise DocumentNotFoundError(op.collection, op.document_id)
                    if (
                        op.expected_version is not None
                        and previous["version"] != op.expected_version
                    ):
                        raise VersionConflictError(
                            op.collection,
                            op.document_id,
                            op.expected_version,
                            previous["version"],
                        )
                    document = {**previous, **copy.deepcopy(op.data)}
                    document["version"] = previous["version"] + 1
                    kind = "modified"

                document["id"] = op.document_id
                staged[slot] = document
                changes.append((op, kind, document, previous))

            for (collection, document_id), document in staged.items():
                self._collection(collection)[document_id] = document
            results = [copy.deepcopy(document) for _, _, document, _ in changes]

        for op, kind, document, previous in changes:
            await self._notify(op.collection, op.document_id, kind, document, previous)
        return results

    async def append_to_array(
        self,
        collection: str,
        document_id: str,
        field_name: str,
        item: Any,
    ) -> Document:
        async with self._lock:
            docs = self._collection(collection)
            previous = docs.get(document_id)
            if previous is None:
                raise DocumentNotFoundError(collection, document_id)
            document = copy.deepcopy(previous)
            document[field_name] = list(document.get(field_name) or []) + [copy.deepcopy(item)]
            document["version"] = previous["version"] + 1
            docs[document_id] = document
            stored = copy.deepcopy(document)
        await self._notify(collection, document_id, "modified", stored, previous)
        return stored

    async def delete(
        self,
        collection: str,
        document_id: str,
        expected_version: int | None = None,
    ) -> None:
        async with self._lock:
            docs = self._collection(collection)
            previous = docs.get(document_id)
            if previous is None:
                raise DocumentNotFoundError(collection, document_id)
            if expected_version is not None and previous["version"] != expected_version:
                raise VersionConflictError(
                    collection, document_id, expected_version, previous["version"]
                )
            del docs[document_id]
        await self._notify(collection, document_id, "removed", None, previous)

    async def query(self, collection: str, query: Query | None = None) -> list[Document]:
        query = query or Query()
        documents = [
            d
            for d in self._collection(collection).values()
            if all(_matches(d, f) for f in query.filters)
        ]
        documents = _sort(documents, query.order_by)
        if query.limit is not None:
            documents = documents[: query.limit]
        return copy.deepcopy(documents)

    def subscribe(self, collection: str, listener: ChangeListener) -> ListenerHandle:
        event_type = EventTypes.Store.changed(collection)

        async def forward(event: EventData) -> None:
            await listener(event.payload["notification"])

        self.bus.subscribe(event_type, forward)
        logger.debug("Listener registered on %s", collection)
        return ListenerHandle(
            collection=collection,
            _release=lambda: self.bus.unsubscribe(event_type, forward),
        )

    def count(self, collection: str) -> int:
        """Number of documents currently in ``collection``."""
        return len(self._collection(collection))
