# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Processing layer for the web tracker.
Diffs tab observations and writes new tabs to SQLite.
"""
