# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Main server for the web tracker.

Opens the database, runs the tab tracker and tears both down in order
on shutdown: the insert statement is destroyed before the database
connection is closed.
"""

import asyncio
import logging
import signal
from contextlib import ExitStack
from typing import List, Optional

from ..capture.chrome import ChromeTabSource, TabSource
from ..capture.config import Config
from .database.sqlite_client import SQLiteClient
from .tabs.snapshot import TabItem
from .tabs.tracker import TabTracker

logger = logging.getLogger(__name__)


class TrackerServer:
    """
    Owns the database connection and the tab tracker.

    Manages:
    - SQLite connection lifecycle
    - Tab tracker loop
    - Signal-driven graceful shutdown
    """

    def __init__(self, config: Optional[Config] = None, source: Optional[TabSource] = None):
        """
        Initialize server.

        Args:
            config: Configuration instance (creates default if not provided)
            source: Tab source (defaults to Chrome via osascript)
        """
        self.config = config or Config()
        self.source = source or ChromeTabSource(
            application=self.config.application,
            timeout=self.config.browser_timeout,
        )
        self.sqlite_client: Optional[SQLiteClient] = None
        self.tracker: Optional[TabTracker] = None

    def _open(self, stack: ExitStack) -> TabTracker:
        """Open the database and create the tracker. OpenError propagates."""
        logger.info(f"Opening database: {self.config.db_path}")
        self.sqlite_client = stack.enter_context(SQLiteClient(self.config.db_path))
        # Entered after the client, so it is closed before the client
        self.tracker = stack.enter_context(
            TabTracker(self.sqlite_client, self.source, interval=self.config.interval)
        )
        return self.tracker

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Signal handlers not supported here, {sig.name} will not stop the tracker")

    async def serve(self) -> None:
        """Run the tracker until stopped."""
        with ExitStack() as stack:
            tracker = self._open(stack)
            self._install_signal_handlers()
            await tracker.run()

    async def scan_once(self) -> Optional[List[TabItem]]:
        """Run a single observation cycle and shut down."""
        with ExitStack() as stack:
            tracker = self._open(stack)
            return await tracker.tick()

    def stop(self) -> None:
        """Stop the tracker gracefully."""
        logger.info("Received shutdown signal")
        if self.tracker:
            self.tracker.stop()

    def run(self, once: bool = False) -> None:
        """Blocking entry point."""
        if once:
            asyncio.run(self.scan_once())
        else:
            asyncio.run(self.serve())


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
