"""
Animation Loop - Drives emitters at a fixed cadence and writes frames

State machine:

    STOPPED --start()--> RUNNING --stop()--> STOPPED
    RUNNING --pause()--> PAUSED --resume()--> RUNNING (or STOPPED, see resume)
    any --shutdown()--> STOPPED   (tick cancelled, sink commanded off)

Per tick:
1. dt = wall-clock delta since the previous tick (ms)
2. time_tick(t, dt) on every emitter, in configuration order
3. for position 0..n-1: position_tick on every emitter, blend, clamp, set_pixel
4. fps accounting, reported through the sink log roughly once a second
5. update() to commit the frame
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from blend_modes import Rgb, clamp_rgb, fold_contributions
from emitters import Emitter
from strip_config import ScheduleRule
from strip_drivers import AbstractLedController
from tick_runner import ShutdownToken, TickHandle, TickRunner

logger = logging.getLogger(__name__)

FPS_REPORT_INTERVAL = 1000  # ms


def wall_clock_ms() -> float:
    return time.time() * 1000


class AnimationStatus(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass
class AnimationState:
    """Process-wide animation state, mutated by the scheduler and pause/resume"""
    status: AnimationStatus = AnimationStatus.STOPPED
    tick: Optional[TickHandle] = None
    schedule_rule: Optional[ScheduleRule] = None
    frames: int = 0
    since_fps_report: float = 0.0       # ms
    last_tick_time: Optional[float] = None  # ms
    fps: float = 0.0


class AnimationLoop:
    """Renders emitter frames onto a strip sink on a TickRunner"""

    def __init__(
        self,
        emitters: Sequence[Emitter],
        controller: AbstractLedController,
        runner: TickRunner,
        strip_length: int,
        interval_delay: float = 0,
        clock: Callable[[], float] = wall_clock_ms,
        shutdown_token: Optional[ShutdownToken] = None,
    ):
        self.emitters = list(emitters)
        self.controller = controller
        self.runner = runner
        self.strip_length = strip_length
        self.interval_delay = interval_delay
        self.clock = clock
        self.state = AnimationState()

        if shutdown_token is not None:
            shutdown_token.add_hook("animation", self.shutdown)

    @property
    def is_running(self) -> bool:
        return self.state.status is AnimationStatus.RUNNING

    @property
    def is_paused(self) -> bool:
        return self.state.status is AnimationStatus.PAUSED

    # ─────────────────────────────────────────────────────────
    # Transitions
    # ─────────────────────────────────────────────────────────

    def start(self):
        """Start ticking (STOPPED -> RUNNING)"""
        if self.state.status is not AnimationStatus.STOPPED:
            return
        self.state.frames = 0
        self.state.since_fps_report = 0.0
        self.state.last_tick_time = self.clock()
        self.state.tick = self.runner.every(self.interval_delay, self.render_frame, name="animation")
        self.state.status = AnimationStatus.RUNNING
        logger.info(f"🎬 Starting LED dudes ({len(self.emitters)} emitters, {self.strip_length} pixels)")

    def stop(self):
        """Cancel the tick and turn the strip off (RUNNING -> STOPPED)"""
        if self.state.status is not AnimationStatus.RUNNING:
            return
        self._cancel_tick()
        self.controller.off()
        self.state.status = AnimationStatus.STOPPED
        logger.info("⏹️ LED dudes stopped")

    def pause(self):
        """Explicit pause; clears any matched schedule rule"""
        if self.state.status is AnimationStatus.PAUSED:
            return
        logger.info("⏸️ Pause operation")
        self._cancel_tick()
        self.state.schedule_rule = None
        self.state.status = AnimationStatus.PAUSED
        self.controller.off()

    def resume(self, start: bool = True):
        """
        Leave PAUSED. With start=False the loop only returns to STOPPED and
        the scheduler decides when to start it again.
        """
        if self.state.status is not AnimationStatus.PAUSED:
            return
        logger.info("▶️ Resume operation")
        self.state.status = AnimationStatus.STOPPED
        self.controller.off()
        if start:
            self.start()

    def shutdown(self):
        """Final cleanup: cancel the tick and command the sink off"""
        self._cancel_tick()
        self.state.status = AnimationStatus.STOPPED
        self.state.schedule_rule = None
        self.controller.off()

    def _cancel_tick(self):
        if self.state.tick is not None:
            self.state.tick.cancel()
            self.state.tick = None

    # ─────────────────────────────────────────────────────────
    # Frame rendering
    # ─────────────────────────────────────────────────────────

    def render_frame(self, t: Optional[float] = None) -> List[Tuple[int, int, int]]:
        """Render and commit one frame at time t (ms); returns the pixels written"""
        if t is None:
            t = self.clock()
        last = self.state.last_tick_time
        dt = t - last if last is not None else 0.0
        self.state.last_tick_time = t

        # Every emitter advances before any position is sampled
        for emitter in self.emitters:
            emitter.time_tick(t, dt)

        frame = []
        for position in range(self.strip_length):
            color = clamp_rgb(fold_contributions(
                (emitter.blend_mode, emitter.position_tick(t, dt, position))
                for emitter in self.emitters
            ))
            self.controller.set_pixel(position, *color)
            frame.append(color)

        self._count_frame(dt)
        self.controller.update()
        return frame

    def _count_frame(self, dt: float):
        state = self.state
        state.frames += 1
        state.since_fps_report += dt
        if state.since_fps_report > FPS_REPORT_INTERVAL:
            state.fps = state.frames / state.since_fps_report * 1000
            self.controller.log(f"fps: {state.fps:.3g}")
            state.frames = 0
            state.since_fps_report = 0.0

    def set_pixels(self, get_rgb: Callable[[int], Rgb]):
        """Write get_rgb(position) to every pixel and commit"""
        for position in range(self.strip_length):
            self.controller.set_pixel(position, *clamp_rgb(get_rgb(position)))
        self.controller.update()

    def set_all_pixels(self, rgb: Rgb):
        self.set_pixels(lambda _position: rgb)

    def get_status(self) -> dict:
        state = self.state
        return {
            "status": state.status.value,
            "emitters": len(self.emitters),
            "strip_length": self.strip_length,
            "fps": round(state.fps, 1),
            "schedule_rule": (
                {"start": list(state.schedule_rule.start), "end": list(state.schedule_rule.end)}
                if state.schedule_rule else None
            ),
        }
