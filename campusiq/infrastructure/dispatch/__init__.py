# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Best-effort side-effect dispatch."""

from campusiq.infrastructure.dispatch.dispatcher import (
    EventBusDispatcher,
    SideEffectDispatcher,
)

__all__ = ["EventBusDispatcher", "SideEffectDispatcher"]
