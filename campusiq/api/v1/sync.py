# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time snapshot stream WebSocket endpoint.

- WebSocket /{collection} - Scoped snapshots of "tasks" or "exams"

Authenticate with ``?token=<jwt>``. The server sends one snapshot on
connect and a complete new snapshot after every change in scope:

    {"type": "snapshot", "collection": "tasks", "items": [...]}

Example:
    const ws = new WebSocket(`wss://host/api/v1/sync/tasks?token=${jwt}`);
"""

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from campusiq.domains.auth import InvalidTokenError, TokenExpiredError
from campusiq.domains.mutation import MutationError, user_message
from campusiq.domains.sync import Subscription
from campusiq.models.common import Actor

logger = logging.getLogger(__name__)

router = APIRouter()


def _authenticate_websocket(websocket: WebSocket, token: str | None) -> Actor | None:
    if not token:
        return None
    services = websocket.app.state.services
    try:
        return services.jwt_manager.decode_actor(token)
    except (TokenExpiredError, InvalidTokenError) as e:
        logger.debug("WebSocket auth failed: %s", str(e))
        return None


@router.websocket("/{collection}")
async def sync_websocket(websocket: WebSocket, collection: str) -> None:
    """Stream scoped snapshots of ``collection`` until the client leaves."""
    await websocket.accept()

    actor = _authenticate_websocket(websocket, websocket.query_params.get("token"))
    if actor is None:
        await websocket.send_json({
            "type": "error",
            "code": "AUTH_FAILED",
            "message": "Invalid or expired token",
        })
        await websocket.close()
        return

    async def send_snapshot(items: list[Any]) -> None:
        await websocket.send_json({
            "type": "snapshot",
            "collection": collection,
            "items": [item.model_dump(mode="json") for item in items],
        })

    synchronizer = websocket.app.state.services.synchronizer
    subscription: Subscription | None = None
    try:
        subscription = await synchronizer.subscribe(collection, actor, callback=send_snapshot)
    except (MutationError, ValueError) as e:
        message = user_message(e, actor) if isinstance(e, MutationError) else str(e)
        await websocket.send_json({"type": "error", "code": "UNAUTHORIZED", "message": message})
        await websocket.close()
        return

    try:
        while True:
            # Client messages are ignored; receiving detects disconnects.
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Sync client disconnected: %s", actor.id)
    finally:
        subscription.close()
