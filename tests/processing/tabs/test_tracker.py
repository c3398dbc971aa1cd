# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for the TabTracker scheduler.
"""

import asyncio
import time

import pytest

from conftest import FakeTabSource, window

from webtracker.capture.chrome import BrowserUnavailableError
from webtracker.processing.database.schema import SELECT_ALL_SQL
from webtracker.processing.database.statement import StatementState
from webtracker.processing.database.values import row_values
from webtracker.processing.tabs.snapshot import TabItem
from webtracker.processing.tabs.tracker import TabTracker, TrackerStatus


def logged_rows(client):
    with client.prepare(SELECT_ALL_SQL) as select:
        return [row_values(row) for row in select.execute_for_all_rows()]


@pytest.fixture
def make_tracker(client, fixed_clock):
    trackers = []

    def factory(source, interval=5.0):
        tracker = TabTracker(client, source, interval=interval, clock=fixed_clock)
        trackers.append(tracker)
        return tracker

    yield factory
    for tracker in trackers:
        tracker.close()


class TestProcess:
    """Test single cycles against scripted observations."""

    def test_first_cycle_logs_everything(self, client, make_tracker):
        tracker = make_tracker(FakeTabSource())
        pending = tracker.process([window("normal", ("A", "u1"))])

        expected = TabItem("u1", "A", 0, "9:0", "1-1-2024")
        assert pending == [expected]
        assert tracker.state.previous == {"u1": expected}
        assert logged_rows(client) == [["u1", "A", 0, "9:0", "1-1-2024"]]

    def test_only_new_urls_logged(self, client, make_tracker):
        tracker = make_tracker(FakeTabSource())
        tracker.process([window("normal", ("A", "u1"))])
        pending = tracker.process([window("normal", ("A", "u1"), ("B", "u2"))])

        assert [p.url for p in pending] == ["u2"]
        assert [row[0] for row in logged_rows(client)] == ["u1", "u2"]

    def test_title_change_not_relogged(self, client, make_tracker):
        tracker = make_tracker(FakeTabSource())
        tracker.process([window("normal", ("Old Title", "u1"))])
        pending = tracker.process([window("normal", ("New Title", "u1"))])

        assert pending == []
        assert logged_rows(client) == [["u1", "Old Title", 0, "9:0", "1-1-2024"]]
        assert tracker.state.previous["u1"].title == "New Title"

    def test_reopened_tab_logged_again(self, client, make_tracker):
        tracker = make_tracker(FakeTabSource())
        tracker.process([window("normal", ("A", "u1"))])
        tracker.process([window("normal")])
        tracker.process([window("normal", ("A", "u1"))])

        assert [row[0] for row in logged_rows(client)] == ["u1", "u1"]

    def test_incognito_flag_persisted(self, client, make_tracker):
        tracker = make_tracker(FakeTabSource())
        tracker.process([window("incognito", ("Private", "u1"))])
        assert logged_rows(client)[0][2] == 1

    def test_bootstrap_runs_once_and_reuses_statement(self, client, make_tracker):
        tracker = make_tracker(FakeTabSource())
        tracker.process([window("normal", ("A", "u1"))])
        statement = tracker.insert_statement

        tracker.process([window("normal", ("B", "u2"))])
        assert tracker.insert_statement is statement
        assert tracker.state.bootstrapped
        assert client.live_statements == 1

    def test_bindings_cleared_after_each_insert(self, make_tracker):
        tracker = make_tracker(FakeTabSource())
        tracker.process([window("normal", ("A", "u1"), ("B", "u2"))])
        assert tracker.insert_statement.state is StatementState.COMPILED
        assert tracker.stats["inserted"] == 2

    def test_failed_insert_continues_with_batch(self, client, make_tracker):
        tracker = make_tracker(FakeTabSource())
        tracker.process([window("normal")])
        client.connection.execute(
            "create trigger reject_bad before insert on data "
            "when new.url = 'bad' begin select raise(abort, 'rejected'); end"
        )

        pending = tracker.process([window("normal", ("Bad", "bad"), ("Good", "good"))])

        assert len(pending) == 2
        assert [row[0] for row in logged_rows(client)] == ["good"]
        assert tracker.stats["failed"] == 1
        assert tracker.insert_statement.state is StatementState.COMPILED
        # Previous snapshot replaced even though one insert failed
        assert set(tracker.state.previous) == {"bad", "good"}

    def test_bootstrap_failure_leaves_no_insert_path(self, client, make_tracker):
        client.connection.execute("create table data(url varchar)")
        tracker = make_tracker(FakeTabSource())

        pending = tracker.process([window("normal", ("A", "u1"))])
        assert [p.url for p in pending] == ["u1"]
        assert tracker.insert_statement is None
        assert tracker.state.bootstrapped
        assert tracker.state.previous.keys() == {"u1"}

        # Not retried on later cycles
        tracker.process([window("normal", ("B", "u2"))])
        assert tracker.insert_statement is None
        assert tracker.stats["failed"] == 2


class TestTick:
    """Test async ticks with the browser collaborator."""

    def test_tick_enumerates_source(self, client, make_tracker):
        source = FakeTabSource([window("normal", ("A", "u1"))])
        tracker = make_tracker(source)

        pending = asyncio.run(tracker.tick())
        assert [p.url for p in pending] == ["u1"]
        assert source.calls == 1

    def test_browser_unavailable_skips_cycle(self, client, make_tracker):
        class BrokenSource:
            def enumerate_windows(self):
                raise BrowserUnavailableError("Chrome is not running")

        tracker = make_tracker(BrokenSource())
        tracker.state.previous = {"u1": TabItem("u1", "A", 0, "9:0", "1-1-2024")}

        assert asyncio.run(tracker.tick()) is None
        assert tracker.state.previous.keys() == {"u1"}
        assert not tracker.state.bootstrapped
        assert tracker.stats["cycles"] == 0


class TestRunLoop:
    """Test the fixed-interval loop."""

    def test_runs_until_stopped(self, make_tracker):
        tracker = None

        class StoppingSource(FakeTabSource):
            def enumerate_windows(self):
                windows = super().enumerate_windows()
                if self.calls >= 3:
                    tracker.stop()
                return windows

        source = StoppingSource([window("normal", ("A", "u1"))])
        tracker = make_tracker(source, interval=0.01)

        asyncio.run(asyncio.wait_for(tracker.run(), timeout=5))

        assert source.calls == 3
        assert tracker.stats["cycles"] == 3
        assert tracker.stats["inserted"] == 1
        assert tracker.status is TrackerStatus.STOPPED
        assert not tracker.running

    def test_stop_wakes_sleeping_loop(self, make_tracker):
        tracker = make_tracker(FakeTabSource([window("normal")]), interval=60)

        async def scenario():
            task = asyncio.create_task(tracker.run())
            while tracker.stats["cycles"] < 1:
                await asyncio.sleep(0.01)
            tracker.stop()
            await asyncio.wait_for(task, timeout=2)

        asyncio.run(scenario())
        assert tracker.stats["cycles"] == 1

    def test_overrunning_ticks_do_not_overlap(self, make_tracker):
        tracker = None
        active = []
        overlaps = []

        class SlowSource(FakeTabSource):
            def enumerate_windows(self):
                if active:
                    overlaps.append(self.calls)
                active.append(True)
                time.sleep(0.05)
                active.pop()
                windows = super().enumerate_windows()
                if self.calls >= 3:
                    tracker.stop()
                return windows

        source = SlowSource([window("normal")])
        tracker = make_tracker(source, interval=0.01)

        asyncio.run(asyncio.wait_for(tracker.run(), timeout=5))

        assert overlaps == []
        assert source.calls == 3
        assert tracker.stats["skipped"] >= 2

    @pytest.mark.parametrize("interval", [0, -1, float("nan"), float("inf")])
    def test_invalid_interval(self, client, interval):
        with pytest.raises(ValueError):
            TabTracker(client, FakeTabSource(), interval=interval)


class TestClose:
    def test_close_destroys_statement_before_client(self, client, make_tracker):
        tracker = make_tracker(FakeTabSource())
        tracker.process([window("normal", ("A", "u1"))])
        statement = tracker.insert_statement

        tracker.close()
        assert statement.destroyed
        assert client.live_statements == 0
        tracker.close()
