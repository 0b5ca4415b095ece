# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time synchronization of scoped entity snapshots.

Each subscription owns one store listener. On every committed change that
touches the subscriber's scope, the full ordered snapshot is recomputed
from the store and pushed; subscribers never receive diffs.

Example:
    sync = RealtimeSynchronizer(store)
    subscription = await sync.subscribe("tasks", actor, view_state=ViewState())
    async for tasks in subscription.snapshots():
        render(tasks)
    ...
    subscription.close()
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from pydantic import BaseModel

from campusiq.domains.access import Permission, allows, in_scope, scoped_query
from campusiq.domains.mutation.errors import PermissionDeniedError
from campusiq.infrastructure.storage import (
    ChangeNotification,
    Collections,
    DocumentStore,
    ListenerHandle,
)
from campusiq.models.common import Actor
from campusiq.models.exam import Exam
from campusiq.models.task import Task

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[Any]], Awaitable[None]]

ENTITY_MODELS: dict[str, type[BaseModel]] = {
    Collections.TASKS: Task,
    Collections.EXAMS: Exam,
}

VIEW_PERMISSIONS: dict[str, Permission] = {
    Collections.TASKS: Permission.TASK_VIEW,
    Collections.EXAMS: Permission.EXAM_VIEW,
}


class ViewState:
    """Latest reconciled snapshot per collection.

    A collection is ``loading`` from subscription until its first snapshot
    arrives.
    """

    def __init__(self) -> None:
        self._snapshots: dict[str, list[Any]] = {}
        self._loading: set[str] = set()

    def begin(self, collection: str) -> None:
        self._loading.add(collection)

    def apply(self, collection: str, snapshot: list[Any]) -> None:
        """Replace the stored snapshot for ``collection``."""
        self._snapshots[collection] = list(snapshot)
        self._loading.discard(collection)

    def get(self, collection: str) -> list[Any]:
        return list(self._snapshots.get(collection, []))

    def is_loading(self, collection: str) -> bool:
        return collection in self._loading

    @property
    def loading(self) -> bool:
        """True while any collection awaits its first snapshot."""
        return bool(self._loading)

    def clear(self, collection: str | None = None) -> None:
        if collection is None:
            self._snapshots.clear()
            self._loading.clear()
            return
        self._snapshots.pop(collection, None)
        self._loading.discard(collection)


class Subscription:
    """A caller-owned stream of scoped snapshots.

    Snapshots go to ``callback`` when one is given, otherwise to an
    internal queue read through ``snapshots()``. ``close`` is idempotent.

    The store listener only enqueues a signal; a per-subscription consumer
    task recomputes and delivers the snapshot. A slow callback therefore
    delays its own stream and never the commit that triggered it.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        actor: Actor,
        callback: SnapshotCallback | None = None,
        view_state: ViewState | None = None,
    ):
        self.collection = collection
        self.actor = actor
        self._store = store
        self._callback = callback
        self._view_state = view_state
        self._queue: asyncio.Queue[list[Any] | None] = asyncio.Queue()
        self._signals: asyncio.Queue[None] = asyncio.Queue()
        self._consumer: asyncio.Task[None] | None = None
        self._handle: ListenerHandle | None = None
        self._closed = False
        self.pushes = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def _snapshot(self) -> list[Any]:
        documents = await self._store.query(
            self.collection, scoped_query(self.actor, self.collection)
        )
        model = ENTITY_MODELS.get(self.collection)
        if model is None:
            return documents
        return [model.model_validate(d) for d in documents]

    async def _push(self) -> None:
        if self._closed:
            return
        snapshot = await self._snapshot()
        if self._closed:
            return
        self.pushes += 1
        if self._view_state is not None:
            self._view_state.apply(self.collection, snapshot)
        if self._callback is not None:
            await self._callback(snapshot)
        else:
            self._queue.put_nowait(snapshot)

    async def _on_change(self, notification: ChangeNotification) -> None:
        if self._closed:
            return
        if not (
            in_scope(self.actor, notification.document)
            or in_scope(self.actor, notification.previous)
        ):
            return
        self._signals.put_nowait(None)

    async def _deliver(self) -> None:
        # One consumer per subscription keeps snapshots in commit order.
        while True:
            await self._signals.get()
            try:
                await self._push()
            except Exception:
                logger.exception(
                    "Snapshot push failed: %s for %s", self.collection, self.actor.id
                )
            finally:
                self._signals.task_done()

    async def start(self) -> None:
        """Register the store listener, push the initial snapshot, then
        start delivering changes."""
        if self._view_state is not None:
            self._view_state.begin(self.collection)
        self._handle = self._store.subscribe(self.collection, self._on_change)
        await self._push()
        if not self._closed:
            self._consumer = asyncio.create_task(self._deliver())

    async def settled(self) -> None:
        """Wait until every change seen so far has been delivered."""
        await self._signals.join()

    def close(self) -> None:
        """Stop pushes and release the store listener exactly once."""
        if self._closed:
            return
        self._closed = True
        if self._handle is not None:
            self._handle.close()
        if self._consumer is not None:
            self._consumer.cancel()
        while not self._signals.empty():
            self._signals.get_nowait()
            self._signals.task_done()
        self._queue.put_nowait(None)
        logger.debug("Subscription closed: %s for %s", self.collection, self.actor.id)

    async def snapshots(self) -> AsyncIterator[list[Any]]:
        """Yield queued snapshots until the subscription is closed."""
        while True:
            snapshot = await self._queue.get()
            if snapshot is None:
                return
            yield snapshot


class RealtimeSynchronizer:
    """Creates scoped subscriptions over the document store.

    Attributes:
        _store: Document store providing change notifications.
        _active: Subscriptions not yet closed.
    """

    def __init__(self, store: DocumentStore):
        self._store = store
        self._active: set[Subscription] = set()

    @property
    def active_count(self) -> int:
        return sum(1 for s in self._active if not s.closed)

    async def subscribe(
        self,
        collection: str,
        actor: Actor | None,
        callback: SnapshotCallback | None = None,
        view_state: ViewState | None = None,
    ) -> Subscription:
        """Open a subscription scoped to ``actor``.

        Administrators need the collection's view permission and see every
        document. Other accounts see only the documents they created.

        Args:
            collection: "tasks" or "exams".
            actor: The subscribing caller; also fixes the snapshot scope.
            callback: Receives each snapshot; without one use ``snapshots()``.
            view_state: The caller's own view state to reconcile into. It
                belongs to this caller and is never shared across scopes.

        Raises:
            PermissionDeniedError: Anonymous caller or missing view permission.
            ValueError: Unknown collection.
        """
        if collection not in VIEW_PERMISSIONS:
            raise ValueError(f"Collection is not synchronized: {collection}")
        permission = VIEW_PERMISSIONS[collection]
        if actor is None:
            raise PermissionDeniedError(permission.value, reason="Authentication required")
        if actor.is_admin and not allows(actor.role, permission):
            raise PermissionDeniedError(permission.value, role=actor.role.value)

        self._active = {s for s in self._active if not s.closed}
        subscription = Subscription(
            self._store, collection, actor, callback=callback, view_state=view_state
        )
        try:
            await subscription.start()
        except Exception:
            subscription.close()
            raise
        self._active.add(subscription)
        logger.info(
            "Subscribed %s to %s (%s scope)",
            actor.id,
            collection,
            "full" if actor.is_admin else "owner",
        )
        return subscription

    def close_all(self) -> None:
        """Close every open subscription."""
        for subscription in list(self._active):
            subscription.close()
        self._active.clear()
