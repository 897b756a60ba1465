# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for Markbook.

Domains:
    analytics: Score normalization, rollups, topic weakness, marking
        coverage and dashboard view models.
"""
