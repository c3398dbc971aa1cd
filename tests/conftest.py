# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Shared fixtures for the web tracker tests."""

from datetime import datetime
from typing import List

import pytest

from webtracker.capture.chrome import BrowserTab, BrowserWindow
from webtracker.processing.database.sqlite_client import IN_MEMORY, SQLiteClient


class FakeTabSource:
    """Tab source that replays a scripted list of observations."""

    def __init__(self, *observations: List[BrowserWindow]):
        self.observations = list(observations)
        self.calls = 0

    def enumerate_windows(self) -> List[BrowserWindow]:
        self.calls += 1
        if not self.observations:
            return []
        if len(self.observations) == 1:
            return self.observations[0]
        return self.observations.pop(0)


def window(mode: str = "normal", *tabs) -> BrowserWindow:
    """Build a window from (title, url) pairs."""
    return BrowserWindow(mode=mode, tabs=[BrowserTab(title=t, url=u) for t, u in tabs])


FIXED_NOW = datetime(2024, 1, 1, 9, 0)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def client():
    """Open in-memory client; leftover statements are destroyed before closing."""
    sqlite_client = SQLiteClient(IN_MEMORY).open()
    yield sqlite_client
    for statement in list(sqlite_client._statements):
        statement.destroy()
    sqlite_client.close()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of config resolution."""
    for name in ("WEBTRACKER_INTERVAL", "WEBTRACKER_DB", "WEBTRACKER_LOG_LEVEL", "WEBTRACKER_CONFIG_DIR"):
        monkeypatch.delenv(name, raising=False)
