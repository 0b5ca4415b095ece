# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read scoping for entity collections.

Administrators see a whole collection. Every other account sees only
the documents it created. Both get the same ordering, keyed on recency
for tasks and on the sitting date for exams.
"""

from typing import Any

from campusiq.infrastructure.storage import Collections, Filter, Order, Query
from campusiq.models.common import Actor

OWNER_FIELD = "created_by"

COLLECTION_ORDER: dict[str, list[Order]] = {
    Collections.TASKS: [Order("created_at", descending=True)],
    Collections.EXAMS: [Order("scheduled_date"), Order("start_time")],
}


def scoped_query(actor: Actor, collection: str, limit: int | None = None) -> Query:
    """Build the query describing what ``actor`` may observe."""
    filters = [] if actor.is_admin else [Filter(OWNER_FIELD, "==", actor.id)]
    return Query(
        filters=filters,
        order_by=COLLECTION_ORDER.get(collection, []),
        limit=limit,
    )


def in_scope(actor: Actor, document: dict[str, Any] | None) -> bool:
    """Check whether ``actor`` may observe ``document``."""
    if document is None:
        return False
    return actor.is_admin or document.get(OWNER_FIELD) == actor.id
