# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Fixed-interval tab tracker.

Every tick enumerates the open browser tabs, diffs them against the
previous observation and appends the new ones to the tab table through a
single reusable insert statement.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from ...capture.chrome import BrowserUnavailableError, BrowserWindow, TabSource
from ..database.errors import StoreError
from ..database.schema import INSERT_SQL, ensure_table
from ..database.sqlite_client import SQLiteClient
from ..database.statement import PreparedStatement
from .snapshot import Snapshot, TabItem, build_snapshot, diff

logger = logging.getLogger(__name__)


class TrackerStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class TrackerState:
    """State carried from one tick to the next."""

    previous: Snapshot = field(default_factory=dict)
    bootstrapped: bool = False


class TabTracker:
    """
    Drive observation cycles at a fixed interval.

    Design:
    - One tick at a time: the loop awaits each tick before scheduling the next
    - Ticks that overrun the interval skip the missed boundaries
    - Table creation and insert preparation happen once, on the first cycle
    - A failed insert is logged and the rest of the batch still runs
    """

    def __init__(
        self,
        client: SQLiteClient,
        source: TabSource,
        interval: float = 5.0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize tracker.

        Args:
            client: Open SQLiteClient to log into
            source: Browser tab source
            interval: Seconds between ticks
            clock: Returns the observation time for a tick
        """
        if not math.isfinite(interval) or interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        self.client = client
        self.source = source
        self.interval = interval
        self.clock = clock

        self.state = TrackerState()
        self.insert_statement: Optional[PreparedStatement] = None
        self.status = TrackerStatus.IDLE
        self.running = False
        self._stop_event: Optional[asyncio.Event] = None

        self.stats = {
            "cycles": 0,
            "inserted": 0,
            "failed": 0,
            "skipped": 0,
        }

    def _bootstrap(self) -> None:
        """Create the table and prepare the insert. Runs once, even if it fails."""
        self.state.bootstrapped = True
        try:
            ensure_table(self.client)
            self.insert_statement = self.client.prepare(INSERT_SQL)
        except StoreError as e:
            logger.error(f"Schema bootstrap failed: {e.message} (code {e.code})")

    def persist(self, batch: List[TabItem]) -> int:
        """
        Insert each item with the reusable statement.

        Returns:
            Number of rows inserted
        """
        if not batch:
            return 0
        if self.insert_statement is None:
            logger.warning(f"No insert statement available, {len(batch)} new tabs not logged")
            self.stats["failed"] += len(batch)
            return 0

        inserted = 0
        for item in batch:
            try:
                self.insert_statement.bind(item.as_row())
                self.insert_statement.execute_for_effect()
                inserted += 1
            except StoreError as e:
                self.stats["failed"] += 1
                logger.error(f"Failed to log tab {item.url}: {e.message} (code {e.code})")
            finally:
                self.insert_statement.reset_bindings()

        self.stats["inserted"] += inserted
        return inserted

    def process(self, windows: List[BrowserWindow]) -> List[TabItem]:
        """
        Run the diff-and-persist part of a cycle for already enumerated windows.

        Returns:
            The pending batch (tabs judged new this cycle)
        """
        current = build_snapshot(windows, self.clock())

        if not self.state.bootstrapped:
            self._bootstrap()

        pending = diff(current, self.state.previous)
        try:
            inserted = self.persist(pending)
        finally:
            self.state.previous = current
            self.stats["cycles"] += 1

        if pending:
            logger.info(f"Logged {inserted}/{len(pending)} new tabs ({len(current)} open)")
        else:
            logger.debug(f"No new tabs ({len(current)} open)")
        return pending

    async def tick(self) -> Optional[List[TabItem]]:
        """
        One observation cycle.

        Returns:
            The pending batch, or None if the browser could not be queried
        """
        try:
            windows = await asyncio.to_thread(self.source.enumerate_windows)
        except BrowserUnavailableError as e:
            logger.warning(f"Skipping cycle, browser unavailable: {e}")
            return None
        return self.process(windows)

    async def run(self) -> None:
        """Tick every ``interval`` seconds until stop() is called."""
        if self.running:
            logger.warning("Tracker already running")
            return

        self.running = True
        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        logger.info(f"Tab tracker started ({self.interval}s interval)")

        try:
            while self.running:
                self.status = TrackerStatus.RUNNING
                try:
                    await self.tick()
                except Exception:
                    logger.exception("Tracker cycle failed")
                self.status = TrackerStatus.IDLE

                next_tick += self.interval
                now = loop.time()
                if now > next_tick:
                    missed = int((now - next_tick) // self.interval) + 1
                    next_tick += missed * self.interval
                    self.stats["skipped"] += missed
                    logger.warning(f"Cycle overran the interval, skipping {missed} tick(s)")

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=next_tick - now)
                except asyncio.TimeoutError:
                    pass
        finally:
            self.running = False
            self.status = TrackerStatus.STOPPED
            logger.info("Tab tracker stopped")

    def stop(self) -> None:
        """Ask the run loop to exit after the current tick."""
        self.running = False
        if self._stop_event is not None:
            self._stop_event.set()

    def close(self) -> None:
        """Destroy the insert statement. Must happen before the client closes."""
        if self.insert_statement is not None:
            self.insert_statement.destroy()
            self.insert_statement = None

    def __enter__(self) -> "TabTracker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
