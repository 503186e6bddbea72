"""
Unit Tests for Schedule Windows and the StripShow wiring

Tests cover:
1. Starting inside a window and stopping at its end
2. Pause suppressing scheduled starts
3. Same-day windows only (midnight-crossing windows never match)
4. StripShow with and without a schedule
"""

import pytest

from conftest import FakeClock, at, constant_emitter, show_config
from animation_loop import AnimationLoop
from emitters import build_emitters
from schedulers import ScheduleRunner
from strip_config import ScheduleRule
from strip_show import StripShow

AFTERNOON = ScheduleRule(start=(14, 0), end=(15, 0))
EVENING = ScheduleRule(start=(17, 30), end=(23, 0))


@pytest.fixture
def animation(controller, runner):
    return AnimationLoop(
        build_emitters([constant_emitter()]),
        controller,
        runner,
        strip_length=3,
        clock=FakeClock(1_000_000.0),
    )


def make_scheduler(animation, runner, *rules, now=None, **kwargs):
    return ScheduleRunner(
        rules or (AFTERNOON,),
        animation,
        runner,
        clock=FakeClock(now or at(12, 0)),
        **kwargs,
    )


# ============================================================
# Windows
# ============================================================

class TestWindows:

    def test_starts_inside_window(self, animation, runner):
        scheduler = make_scheduler(animation, runner)
        scheduler.check_schedule(at(14, 30))
        assert animation.is_running
        assert scheduler.active_rule == AFTERNOON

    def test_start_minute_is_inclusive(self, animation, runner):
        scheduler = make_scheduler(animation, runner)
        scheduler.check_schedule(at(14, 0))
        assert animation.is_running

    def test_waits_before_window(self, animation, runner, controller):
        scheduler = make_scheduler(animation, runner)
        scheduler.check_schedule(at(13, 59))
        assert not animation.is_running
        assert scheduler.active_rule is None
        assert controller.off_count == 0

    def test_stops_at_window_end(self, animation, runner, controller):
        scheduler = make_scheduler(animation, runner)
        scheduler.check_schedule(at(14, 30))
        runner.run_pending()
        assert not controller.is_off

        scheduler.check_schedule(at(14, 59))
        assert animation.is_running

        scheduler.check_schedule(at(15, 0))
        assert not animation.is_running
        assert scheduler.active_rule is None
        assert controller.off_count == 1
        assert controller.is_off

    def test_restarts_in_next_window(self, animation, runner):
        scheduler = make_scheduler(animation, runner, AFTERNOON, EVENING)
        scheduler.check_schedule(at(14, 30))
        scheduler.check_schedule(at(15, 0))
        scheduler.check_schedule(at(16, 0))
        assert not animation.is_running

        scheduler.check_schedule(at(18, 0))
        assert animation.is_running
        assert scheduler.active_rule == EVENING

    def test_first_matching_rule_wins(self, animation, runner):
        wide = ScheduleRule(start=(8, 0), end=(20, 0))
        scheduler = make_scheduler(animation, runner, wide, AFTERNOON)
        assert scheduler.find_matching_rule(at(14, 30)) == wide

    def test_midnight_crossing_window_never_matches(self, animation, runner):
        overnight = ScheduleRule(start=(22, 0), end=(2, 0))
        scheduler = make_scheduler(animation, runner, overnight)
        for now in (at(23, 0), at(1, 0), at(12, 0)):
            scheduler.check_schedule(now)
            assert not animation.is_running

    def test_paused_loop_is_not_started(self, animation, runner):
        scheduler = make_scheduler(animation, runner)
        animation.pause()
        scheduler.check_schedule(at(14, 30))
        assert animation.is_paused
        assert scheduler.active_rule is None


class TestPolling:

    def test_start_checks_immediately_then_polls(self, animation, runner):
        scheduler = make_scheduler(animation, runner, now=at(14, 30))
        scheduler.start()
        assert animation.is_running
        assert scheduler.running
        schedule_ticks = [t for t in runner.active_ticks if t.name == "schedule"]
        assert len(schedule_ticks) == 1
        assert schedule_ticks[0].interval == pytest.approx(10.0)

    def test_poll_uses_clock(self, animation, runner, tick_clock):
        clock = FakeClock(at(13, 0))
        scheduler = ScheduleRunner([AFTERNOON], animation, runner, interval=1000, clock=clock)
        scheduler.start()
        assert not animation.is_running

        clock.now = at(14, 5)
        tick_clock.advance(1.0)
        runner.run_pending()
        assert animation.is_running

    def test_stop_cancels_polling(self, animation, runner):
        scheduler = make_scheduler(animation, runner)
        scheduler.start()
        scheduler.stop()
        assert not scheduler.running
        assert runner.active_ticks == []

    def test_shutdown_hook_stops_polling(self, animation, runner, token):
        scheduler = make_scheduler(animation, runner, shutdown_token=token)
        scheduler.start()
        token.run_hooks()
        assert not scheduler.running


# ============================================================
# StripShow
# ============================================================

class TestStripShow:

    def test_without_schedule_starts_immediately(self, controller, runner, token):
        show = StripShow(show_config(), controller=controller, runner=runner, shutdown_token=token)
        assert show.scheduler is None
        show.start()
        runner.run_pending()
        assert controller.last_frame == [(10, 20, 30)] * 3

    def test_empty_schedule_starts_immediately(self, controller, runner, token):
        config = show_config(schedule=())
        show = StripShow(config, controller=controller, runner=runner, shutdown_token=token)
        assert show.scheduler is None
        show.start()
        assert show.animation.is_running

    def test_ignore_schedule(self, controller, runner, token):
        config = show_config(schedule=(AFTERNOON,))
        show = StripShow(config, controller=controller, runner=runner,
                         shutdown_token=token, ignore_schedule=True)
        assert show.scheduler is None

    def test_follows_schedule(self, controller, runner, token):
        config = show_config(schedule=(AFTERNOON,))
        show = StripShow(config, controller=controller, runner=runner, shutdown_token=token)
        show.scheduler.clock = FakeClock(at(14, 30))
        show.start()
        assert show.animation.is_running

        show.scheduler.clock.now = at(15, 1)
        show.scheduler.check_schedule()
        assert not show.animation.is_running
        assert controller.is_off

    def test_resume_rechecks_schedule(self, controller, runner, token):
        config = show_config(schedule=(AFTERNOON,))
        show = StripShow(config, controller=controller, runner=runner, shutdown_token=token)
        show.scheduler.clock = FakeClock(at(14, 30))
        show.start()

        show.pause()
        assert show.get_status()["status"] == "paused"

        show.scheduler.clock.now = at(16, 0)
        show.resume()
        assert not show.animation.is_running

        # Next poll inside the window starts it again
        show.scheduler.clock.now = at(14, 45)
        show.scheduler.check_schedule()
        assert show.animation.is_running

    def test_resume_without_schedule_restarts(self, controller, runner, token):
        show = StripShow(show_config(), controller=controller, runner=runner, shutdown_token=token)
        show.start()
        show.pause()
        show.resume()
        assert show.animation.is_running

    def test_linked_emitters_share_seed(self, controller, runner, token):
        config = show_config(
            constant_emitter(seed=42.0),
            constant_emitter(linked=True),
        )
        show = StripShow(config, controller=controller, runner=runner, shutdown_token=token)
        assert [e.seed for e in show.emitters] == [42.0, 42.0]

    def test_shutdown_turns_everything_off(self, controller, runner, token):
        config = show_config(schedule=(AFTERNOON,))
        show = StripShow(config, controller=controller, runner=runner, shutdown_token=token)
        show.scheduler.clock = FakeClock(at(14, 30))

        def stop_after_frames():
            if controller.frame_count >= 3:
                show.shutdown("test")

        runner.every(0, stop_after_frames, name="watchdog")
        show.run_forever()

        assert controller.frame_count >= 3
        assert controller.is_off
        assert not show.scheduler.running
        status = show.get_status()
        assert status["status"] == "stopped"
        assert status["shutdown_requested"] is True
        assert status["scheduled"] is True
