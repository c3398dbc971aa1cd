# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tab snapshots, the new-tab diff and the fixed-interval tracker.
"""

from .snapshot import Snapshot, TabItem, build_snapshot, diff
from .tracker import TabTracker, TrackerState, TrackerStatus

__all__ = [
    "Snapshot",
    "TabItem",
    "build_snapshot",
    "diff",
    "TabTracker",
    "TrackerState",
    "TrackerStatus",
]
