"""
Unit Tests for the TickRunner and ShutdownToken

Tests cover:
1. Due-time ordering and rescheduling
2. Cancellation
3. run_forever() shutdown and hook ordering
"""

import pytest

from tick_runner import ShutdownToken, TickRunner


class TestScheduling:

    def test_first_run_waits_one_interval(self, runner, tick_clock):
        calls = []
        runner.every(100, lambda: calls.append(tick_clock()))

        assert runner.run_pending() == pytest.approx(0.1)
        assert calls == []

        tick_clock.advance(0.1)
        runner.run_pending()
        assert calls == [pytest.approx(100.1)]

    def test_delay_first_false_runs_immediately(self, runner):
        calls = []
        runner.every(100, lambda: calls.append("tick"), delay_first=False)
        runner.run_pending()
        assert calls == ["tick"]

    def test_runs_at_most_once_per_pass(self, runner, tick_clock):
        handle = runner.every(10, lambda: None)
        tick_clock.advance(0.055)
        runner.run_pending()
        assert handle.runs == 1

    def test_no_catch_up_after_slow_pass(self, runner, tick_clock):
        handle = runner.every(10, lambda: None)
        tick_clock.advance(0.5)
        runner.run_pending()
        runner.run_pending()
        # Rescheduled from now, not from the missed due times
        assert runner.run_pending() == pytest.approx(0.01)
        assert handle.runs == 2

    def test_zero_interval_runs_every_pass(self, runner):
        handle = runner.every(0, lambda: None)
        for _ in range(5):
            assert runner.run_pending() == 0.0
        assert handle.runs == 5

    def test_due_ticks_run_in_due_order(self, runner, tick_clock):
        order = []
        runner.every(30, lambda: order.append("slow"))
        runner.every(10, lambda: order.append("fast"))
        runner.every(10, lambda: order.append("fast-2"))
        tick_clock.advance(0.03)
        runner.run_pending()
        assert order == ["fast", "fast-2", "slow"]

    def test_nothing_scheduled(self, runner):
        assert runner.run_pending() is None


class TestCancel:

    def test_cancelled_tick_never_runs_again(self, runner, tick_clock):
        handle = runner.every(0, lambda: None)
        runner.run_pending()
        handle.cancel()
        runner.run_pending()
        assert handle.runs == 1
        assert runner.active_ticks == []

    def test_cancel_from_inside_another_tick(self, runner, tick_clock):
        victim_calls = []
        victim = runner.every(10, lambda: victim_calls.append(1))
        runner.every(5, victim.cancel)
        tick_clock.advance(0.01)
        runner.run_pending()
        assert victim_calls == []

    def test_self_cancel(self, runner):
        calls = []

        def once():
            calls.append(1)
            handle.cancel()

        handle = runner.every(0, once)
        runner.run_pending()
        runner.run_pending()
        assert calls == [1]


class TestShutdown:

    def test_request_records_first_reason(self):
        token = ShutdownToken()
        token.request("SIGTERM")
        token.request("SIGINT")
        assert token.is_requested
        assert token.reason == "SIGTERM"

    def test_hooks_run_once_in_order(self):
        token = ShutdownToken()
        order = []
        token.add_hook("a", lambda: order.append("a"))
        token.add_hook("b", lambda: order.append("b"))
        token.run_hooks()
        token.run_hooks()
        assert order == ["a", "b"]

    def test_run_forever_stops_after_request(self, runner, token):
        handle = None

        def tick():
            if handle.runs == 2:
                token.request("done")

        handle = runner.every(0, tick)
        hooks = []
        token.add_hook("cleanup", lambda: hooks.append("cleanup"))

        runner.run_forever()

        assert handle.runs == 3
        assert hooks == ["cleanup"]

    def test_remaining_ticks_skipped_after_request(self, runner, token):
        later = []
        runner.every(0, lambda: token.request("stop"))
        runner.every(0, lambda: later.append(1))
        runner.run_forever()
        assert later == []

    def test_exception_propagates_and_hooks_still_run(self, runner, token):
        hooks = []
        token.add_hook("cleanup", lambda: hooks.append("cleanup"))

        def boom():
            raise RuntimeError("sink failed")

        runner.every(0, boom)
        with pytest.raises(RuntimeError, match="sink failed"):
            runner.run_forever()
        assert hooks == ["cleanup"]

    def test_already_requested_runs_nothing(self, runner, token):
        handle = runner.every(0, lambda: None)
        token.request("early")
        runner.run_forever()
        assert handle.runs == 0
