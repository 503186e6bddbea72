"""
Schedulers - ScheduleRunner

Polls the configured ON windows on a slow tick (10 s by default) and starts
or stops the animation loop. Windows are same-day (start before end); a
window that crosses midnight never matches.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from animation_loop import AnimationLoop
from strip_config import SCHEDULE_INTERVAL_DEFAULT, ScheduleRule
from tick_runner import ShutdownToken, TickHandle, TickRunner
from waveform_math import format_time_of_day, is_after

logger = logging.getLogger(__name__)


class ScheduleRunner:
    """Starts the animation inside a schedule window and stops it at the end"""

    def __init__(
        self,
        rules: Sequence[ScheduleRule],
        animation: AnimationLoop,
        runner: TickRunner,
        interval: float = SCHEDULE_INTERVAL_DEFAULT,
        clock: Callable[[], datetime] = datetime.now,
        shutdown_token: Optional[ShutdownToken] = None,
    ):
        self.rules = list(rules)
        self.animation = animation
        self.runner = runner
        self.interval = interval
        self.clock = clock
        self._tick: Optional[TickHandle] = None

        if shutdown_token is not None:
            shutdown_token.add_hook("schedule", self.stop)

    @property
    def active_rule(self) -> Optional[ScheduleRule]:
        return self.animation.state.schedule_rule

    @property
    def running(self) -> bool:
        return self._tick is not None

    def start(self):
        """Check right away, then every `interval` ms"""
        if self._tick is not None:
            return
        self.check_schedule()
        self._tick = self.runner.every(self.interval, self.check_schedule, name="schedule")
        logger.info(f"📅 Schedule runner started ({len(self.rules)} rules)")

    def stop(self):
        if self._tick is None:
            return
        self._tick.cancel()
        self._tick = None
        logger.info("📅 Schedule runner stopped")

    def find_matching_rule(self, now: datetime) -> Optional[ScheduleRule]:
        """First rule with start <= now < end"""
        for rule in self.rules:
            if is_after(now, rule.start) and not is_after(now, rule.end):
                return rule
        return None

    def check_schedule(self, now: Optional[datetime] = None):
        """Evaluate the windows once against `now` (default: the clock)"""
        now = now or self.clock()
        logger.debug(f"📅 Checking schedule at {now:%H:%M}...")
        state = self.animation.state

        if state.schedule_rule is None:
            if self.animation.is_paused:
                return
            rule = self.find_matching_rule(now)
            if rule is None:
                logger.debug(f"📅 No matching time slots; waiting {self.interval / 1000:g}s")
                return
            logger.info(f"📅 It is now after schedule start {format_time_of_day(rule.start)}, starting dudes")
            self.animation.start()
            state.schedule_rule = rule

        elif self.animation.is_running and is_after(now, state.schedule_rule.end):
            logger.info(f"📅 It is now after schedule end {format_time_of_day(state.schedule_rule.end)}, stopping dudes")
            self.animation.stop()
            state.schedule_rule = None
