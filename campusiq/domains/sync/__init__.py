# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time synchronization of scoped entity snapshots."""

from campusiq.domains.sync.service import (
    ENTITY_MODELS,
    RealtimeSynchronizer,
    Subscription,
    ViewState,
)

__all__ = [
    "ENTITY_MODELS",
    "RealtimeSynchronizer",
    "Subscription",
    "ViewState",
]
