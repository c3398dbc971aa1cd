# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tab snapshots and the new-tab diff.

A snapshot maps each URL seen in one observation pass to the tab item
recorded for it. A tab is "new" when its URL was absent from the previous
snapshot. Tabs whose URL was already seen are never re-logged, even if
their title or incognito flag changed.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from ...capture.chrome import BrowserWindow


@dataclass(frozen=True)
class TabItem:
    """One observed tab, in table column order."""

    url: str
    title: str
    incognito: int  # 0 normal, 1 incognito
    time: str  # "H:M"
    date: str  # "D-M-YYYY"

    def as_row(self) -> Tuple[str, str, int, str, str]:
        return (self.url, self.title, self.incognito, self.time, self.date)


Snapshot = Dict[str, TabItem]


def format_time(moment: datetime) -> str:
    """24-hour "H:M" without zero padding, e.g. "9:5"."""
    return f"{moment.hour}:{moment.minute}"


def format_date(moment: datetime) -> str:
    """Day-month-year "D-M-YYYY" without zero padding, e.g. "1-2-2024"."""
    return f"{moment.day}-{moment.month}-{moment.year}"


def build_snapshot(windows: Iterable[BrowserWindow], now: Optional[datetime] = None) -> Snapshot:
    """
    Build the snapshot for one observation pass.

    A URL open in several tabs or windows collapses to one entry; the
    last tab enumerated wins.

    Args:
        windows: Browser windows with their tabs
        now: Observation time (defaults to the current local time)

    Returns:
        Mapping of url -> TabItem
    """
    moment = now or datetime.now()
    time_str = format_time(moment)
    date_str = format_date(moment)

    snapshot: Snapshot = {}
    for window in windows:
        flag = 1 if window.incognito else 0
        for tab in window.tabs:
            snapshot[tab.url] = TabItem(
                url=tab.url,
                title=tab.title,
                incognito=flag,
                time=time_str,
                date=date_str,
            )
    return snapshot


def diff(current: Snapshot, previous: Snapshot) -> List[TabItem]:
    """
    Items of ``current`` whose URL is not a key of ``previous``.

    With an empty ``previous`` every item is new. Order follows the
    iteration order of ``current``.
    """
    if not previous:
        return list(current.values())
    return [item for url, item in current.items() if url not in previous]
