"""Markbook Analytics.

Assessment analytics for schools recording hand-marked paper tests:
normalized scores, rollups by class, subject, teacher and student,
topic weakness and marking coverage.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
