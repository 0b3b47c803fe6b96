"""Tests for r2_sync.scheduler -- periodic auto sync."""

import logging
import threading
from unittest.mock import MagicMock

import pytest

from r2_sync.scheduler import AutoSyncScheduler


class TestTrigger:
    def test_runs_and_reports(self):
        run = MagicMock(return_value="report")
        on_result = MagicMock()
        scheduler = AutoSyncScheduler(run, 5, on_result=on_result)

        assert scheduler.trigger() is True

        run.assert_called_once_with()
        on_result.assert_called_once_with("report")

    def test_skips_while_in_flight(self, caplog):
        run = MagicMock()
        scheduler = AutoSyncScheduler(run, 5)
        scheduler._in_flight.acquire()
        try:
            with caplog.at_level(logging.WARNING):
                assert scheduler.trigger() is False
        finally:
            scheduler._in_flight.release()

        run.assert_not_called()
        assert "still running" in caplog.text

    def test_errors_logged_not_raised(self, caplog):
        run = MagicMock(side_effect=RuntimeError("network down"))
        on_result = MagicMock()
        scheduler = AutoSyncScheduler(run, 5, on_result=on_result)

        with caplog.at_level(logging.ERROR):
            assert scheduler.trigger() is True

        on_result.assert_not_called()
        assert "network down" in caplog.text
        # Lock released after a failure
        assert scheduler.trigger() is True

    def test_reentrant_call_from_run_is_skipped(self):
        results = []

        def run():
            results.append(scheduler.trigger())
            return "outer"

        scheduler = AutoSyncScheduler(run, 5)
        assert scheduler.trigger() is True
        assert results == [False]


class TestLifecycle:
    def test_interval_validation(self):
        with pytest.raises(ValueError, match="at least 1 minute"):
            AutoSyncScheduler(MagicMock(), 0)

    def test_interval_seconds(self):
        assert AutoSyncScheduler(MagicMock(), 2).interval_seconds == 120.0

    def test_start_stop(self):
        scheduler = AutoSyncScheduler(MagicMock(), 5)
        scheduler.start()
        try:
            assert scheduler.is_running
        finally:
            scheduler.stop()
        assert not scheduler.is_running

    def test_start_twice_keeps_thread(self):
        scheduler = AutoSyncScheduler(MagicMock(), 5)
        scheduler.start()
        try:
            thread = scheduler._thread
            scheduler.start()
            assert scheduler._thread is thread
        finally:
            scheduler.stop()

    def test_stop_before_tick_never_runs(self):
        run = MagicMock()
        scheduler = AutoSyncScheduler(run, 5)
        scheduler.start()
        scheduler.stop()
        run.assert_not_called()

    def test_restart_changes_interval(self):
        scheduler = AutoSyncScheduler(MagicMock(), 5)
        scheduler.start()
        try:
            scheduler.restart(10)
            assert scheduler.interval_minutes == 10
            assert scheduler.is_running
        finally:
            scheduler.stop()

    def test_restart_rejects_bad_interval(self):
        scheduler = AutoSyncScheduler(MagicMock(), 5)
        with pytest.raises(ValueError):
            scheduler.restart(0)
        assert scheduler.interval_minutes == 5

    def test_loop_ticks(self):
        ran = threading.Event()
        scheduler = AutoSyncScheduler(ran.set, 1)
        scheduler.interval_minutes = 0.0001  # ~6 ms between ticks
        scheduler.start()
        try:
            assert ran.wait(timeout=2)
        finally:
            scheduler.stop()
