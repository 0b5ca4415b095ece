"""CampusIQ Operations Core.

Authorization-gated lifecycle, scheduling conflict detection, audit trail and
real-time synchronization for campus administrative tasks and exams.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
