# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the in-memory document store."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from campusiq.infrastructure.storage import (
    ChangeNotification,
    DocumentExistsError,
    DocumentNotFoundError,
    Filter,
    InMemoryDocumentStore,
    Order,
    Query,
    VersionConflictError,
    WriteOp,
)


class TestWrites:
    """Create, update and delete semantics."""

    @pytest.mark.asyncio
    async def test_add_assigns_id_and_version(self, store: InMemoryDocumentStore) -> None:
        stored = await store.add("tasks", {"title": "A"})

        assert stored["version"] == 1
        assert stored["id"]
        assert await store.get("tasks", stored["id"]) == stored

    @pytest.mark.asyncio
    async def test_add_with_taken_id_fails(self, store: InMemoryDocumentStore) -> None:
        await store.add("tasks", {"title": "A"}, document_id="t1")

        with pytest.raises(DocumentExistsError):
            await store.add("tasks", {"title": "B"}, document_id="t1")

    @pytest.mark.asyncio
    async def test_update_merges_and_bumps_version(self, store: InMemoryDocumentStore) -> None:
        await store.add("tasks", {"title": "A", "status": "NEW"}, document_id="t1")

        updated = await store.update("tasks", "t1", {"status": "IN_PROGRESS"})

        assert updated == {"id": "t1", "title": "A", "status": "IN_PROGRESS", "version": 2}

    @pytest.mark.asyncio
    async def test_update_with_stale_version_fails(self, store: InMemoryDocumentStore) -> None:
        await store.add("tasks", {"title": "A"}, document_id="t1")
        await store.update("tasks", "t1", {"title": "B"})

        with pytest.raises(VersionConflictError) as exc_info:
            await store.update("tasks", "t1", {"title": "C"}, expected_version=1)

        assert exc_info.value.actual == 2
        assert (await store.get("tasks", "t1"))["title"] == "B"

    @pytest.mark.asyncio
    async def test_update_missing_document_fails(self, store: InMemoryDocumentStore) -> None:
        with pytest.raises(DocumentNotFoundError):
            await store.update("tasks", "missing", {"title": "B"})

    @pytest.mark.asyncio
    async def test_put_replaces(self, store: InMemoryDocumentStore) -> None:
        await store.add("tasks", {"title": "A", "extra": 1}, document_id="t1")

        replaced = await store.put("tasks", "t1", {"title": "B"})

        assert replaced == {"id": "t1", "title": "B", "version": 2}

    @pytest.mark.asyncio
    async def test_append_to_array(self, store: InMemoryDocumentStore) -> None:
        await store.add("tasks", {"title": "A"}, document_id="t1")

        await store.append_to_array("tasks", "t1", "comments", {"text": "one"})
        stored = await store.append_to_array("tasks", "t1", "comments", {"text": "two"})

        assert [c["text"] for c in stored["comments"]] == ["one", "two"]
        assert stored["version"] == 3

    @pytest.mark.asyncio
    async def test_delete_checks_version(self, store: InMemoryDocumentStore) -> None:
        await store.add("exams", {"title": "A"}, document_id="e1")

        with pytest.raises(VersionConflictError):
            await store.delete("exams", "e1", expected_version=5)
        await store.delete("exams", "e1", expected_version=1)

        assert await store.get("exams", "e1") is None
        with pytest.raises(DocumentNotFoundError):
            await store.delete("exams", "e1")

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self, store: InMemoryDocumentStore) -> None:
        stored = await store.add("tasks", {"tags": ["a"]}, document_id="t1")
        stored["tags"].append("b")

        assert (await store.get("tasks", "t1"))["tags"] == ["a"]


class TestCommit:
    """Atomic write batches."""

    @pytest.mark.asyncio
    async def test_batch_applies_all_writes(self, store: InMemoryDocumentStore) -> None:
        await store.add("exams", {"title": "A"}, document_id="e1")

        stored = await store.commit(
            [
                WriteOp.put("examResults", "e1", {"results": []}),
                WriteOp.update("exams", "e1", {"published": True}, expected_version=1),
            ]
        )

        assert stored[0]["version"] == 1
        assert stored[1]["published"] is True
        assert store.count("examResults") == 1

    @pytest.mark.asyncio
    async def test_failing_write_rolls_back_the_batch(self, store: InMemoryDocumentStore) -> None:
        await store.add("idempotencyKeys", {"entity_id": "t0"}, document_id="k1")

        with pytest.raises(DocumentExistsError):
            await store.commit(
                [
                    WriteOp.create("tasks", "t1", {"title": "A"}),
                    WriteOp.create("idempotencyKeys", "k1", {"entity_id": "t1"}),
                ]
            )

        assert await store.get("tasks", "t1") is None
        assert store.count("tasks") == 0

    @pytest.mark.asyncio
    async def test_later_write_sees_earlier_one(self, store: InMemoryDocumentStore) -> None:
        stored = await store.commit(
            [
                WriteOp.create("tasks", "t1", {"title": "A"}),
                WriteOp.update("tasks", "t1", {"title": "B"}, expected_version=1),
            ]
        )

        assert stored[1] == {"id": "t1", "title": "B", "version": 2}


class TestQuery:
    """Filtering, ordering and limits."""

    @pytest_asyncio.fixture
    async def populated(self, store: InMemoryDocumentStore) -> InMemoryDocumentStore:
        await store.add("tasks", {"owner": "u1", "rank": 3, "tags": ["x"]}, document_id="a")
        await store.add("tasks", {"owner": "u2", "rank": 1, "tags": []}, document_id="b")
        await store.add("tasks", {"owner": "u1", "rank": 2, "tags": ["x", "y"]}, document_id="c")
        await store.add("tasks", {"owner": "u3"}, document_id="d")
        return store

    @pytest.mark.asyncio
    async def test_equality_filter(self, populated: InMemoryDocumentStore) -> None:
        docs = await populated.query("tasks", Query(filters=[Filter("owner", "==", "u1")]))
        assert sorted(d["id"] for d in docs) == ["a", "c"]

    @pytest.mark.asyncio
    async def test_range_filter_skips_missing_fields(self, populated: InMemoryDocumentStore) -> None:
        docs = await populated.query("tasks", Query(filters=[Filter("rank", ">=", 2)]))
        assert sorted(d["id"] for d in docs) == ["a", "c"]

    @pytest.mark.asyncio
    async def test_in_and_array_contains(self, populated: InMemoryDocumentStore) -> None:
        in_docs = await populated.query(
            "tasks", Query(filters=[Filter("owner", "in", ["u2", "u3"])])
        )
        tagged = await populated.query(
            "tasks", Query(filters=[Filter("tags", "array_contains", "y")])
        )

        assert sorted(d["id"] for d in in_docs) == ["b", "d"]
        assert [d["id"] for d in tagged] == ["c"]

    @pytest.mark.asyncio
    async def test_order_puts_missing_last(self, populated: InMemoryDocumentStore) -> None:
        ascending = await populated.query("tasks", Query(order_by=[Order("rank")]))
        descending = await populated.query(
            "tasks", Query(order_by=[Order("rank", descending=True)], limit=2)
        )

        assert [d["id"] for d in ascending] == ["b", "c", "a", "d"]
        assert [d["id"] for d in descending] == ["a", "c"]


class TestSubscriptions:
    """Change notifications."""

    @pytest.mark.asyncio
    async def test_listener_receives_committed_changes(self, store: InMemoryDocumentStore) -> None:
        listener = AsyncMock()
        store.subscribe("tasks", listener)

        await store.add("tasks", {"title": "A"}, document_id="t1")
        await store.update("tasks", "t1", {"title": "B"})
        await store.delete("tasks", "t1")

        kinds = [call.args[0].kind for call in listener.await_args_list]
        assert kinds == ["added", "modified", "removed"]
        removed: ChangeNotification = listener.await_args_list[-1].args[0]
        assert removed.document is None
        assert removed.previous["title"] == "B"

    @pytest.mark.asyncio
    async def test_other_collections_are_not_delivered(self, store: InMemoryDocumentStore) -> None:
        listener = AsyncMock()
        store.subscribe("tasks", listener)

        await store.add("exams", {"title": "A"})

        listener.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_commit_notifies_nobody(self, store: InMemoryDocumentStore) -> None:
        await store.add("tasks", {"title": "A"}, document_id="t1")
        listener = AsyncMock()
        store.subscribe("tasks", listener)

        with pytest.raises(DocumentExistsError):
            await store.commit(
                [
                    WriteOp.update("tasks", "t1", {"title": "B"}),
                    WriteOp.create("tasks", "t1", {"title": "C"}),
                ]
            )

        listener.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close_releases_once(self, store: InMemoryDocumentStore) -> None:
        listener = AsyncMock()
        handle = store.subscribe("tasks", listener)
        assert store.bus.handler_count("store.tasks.changed") == 1

        handle.close()
        handle.close()
        await store.add("tasks", {"title": "A"})

        assert handle.closed
        assert store.bus.handler_count("store.tasks.changed") == 0
        listener.assert_not_awaited()
