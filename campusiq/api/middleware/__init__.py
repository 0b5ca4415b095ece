# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

Exports:
    AuthMiddleware: JWT authentication middleware.
"""

from campusiq.api.middleware.auth import AuthMiddleware, extract_bearer_token

__all__ = ["AuthMiddleware", "extract_bearer_token"]
