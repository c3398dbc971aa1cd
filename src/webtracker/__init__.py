"""
Web Tracker

Periodically logs newly opened browser tabs, including incognito windows,
to a local SQLite database.
"""

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only

__version__ = "0.1.0"

__all__ = ["__version__"]
