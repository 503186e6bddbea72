"""
Strip Show - Wires emitters, the animation loop and the scheduler together

A StripShow owns one TickRunner. The animation loop and (when schedule
windows are in use) the ScheduleRunner both tick on it, and both register
their cleanup on the same ShutdownToken.
"""

import logging
import random
from typing import Optional

from animation_loop import AnimationLoop
from emitters import build_emitters
from schedulers import ScheduleRunner
from strip_config import ShowConfig
from strip_drivers import AbstractLedController, get_led_controller
from tick_runner import ShutdownToken, TickRunner

logger = logging.getLogger(__name__)


class StripShow:
    """
    The running LED show.

    With no schedule rules (or ignore_schedule) the animation starts right
    away and runs until shutdown; otherwise it follows the schedule windows.
    """

    def __init__(
        self,
        config: ShowConfig,
        controller: Optional[AbstractLedController] = None,
        dummy_mode: bool = False,
        ignore_schedule: bool = False,
        shutdown_token: Optional[ShutdownToken] = None,
        runner: Optional[TickRunner] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.shutdown_token = shutdown_token or ShutdownToken()
        self.controller = controller or get_led_controller(config, dummy_mode)
        self.emitters = build_emitters(config.emitters, rng)
        self.runner = runner or TickRunner(self.shutdown_token)

        self.animation = AnimationLoop(
            self.emitters,
            self.controller,
            self.runner,
            strip_length=config.strip_length,
            interval_delay=config.interval_delay,
            shutdown_token=self.shutdown_token,
        )

        self.scheduler: Optional[ScheduleRunner] = None
        if not ignore_schedule and config.schedule:
            self.scheduler = ScheduleRunner(
                config.schedule,
                self.animation,
                self.runner,
                interval=config.schedule_interval,
                shutdown_token=self.shutdown_token,
            )

        for emitter in self.emitters:
            logger.debug(f"Dude ready: {emitter!r}")

    def start(self):
        if self.scheduler is None:
            self.animation.start()
        else:
            self.scheduler.start()

    def pause(self):
        self.animation.pause()

    def resume(self):
        self.animation.resume(start=self.scheduler is None)
        if self.scheduler is not None:
            self.scheduler.check_schedule()

    def run_forever(self):
        """Start and block until shutdown; the strip is off when this returns"""
        self.start()
        self.runner.run_forever()

    def shutdown(self, reason: str = "shutdown"):
        self.shutdown_token.request(reason)

    def get_status(self) -> dict:
        status = self.animation.get_status()
        status["scheduled"] = self.scheduler is not None
        status["shutdown_requested"] = self.shutdown_token.is_requested
        return status
