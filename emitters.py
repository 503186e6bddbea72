"""
Emitters - Independently animated color sources ("dudes")

Each emitter contributes a color to every pixel of the strip, every frame.
A frame is evaluated in two passes:

1. time_tick(t, dt) once per emitter - advances phase state
2. position_tick(t, dt, position) for position 0..n-1 - samples a color

Times are in milliseconds; `t` is wall-clock epoch time so emitters started
on separate machines with the same seed stay in step.

ORDERING CONTRACT: classic mode advances a position accumulator on every
position_tick() call. Within one frame, positions must be sampled exactly
once each, in strictly increasing order, after time_tick().

Mode state is kept in one small dataclass per mode (see *State below) so a
sample can never read a field that belongs to another mode.
"""

import math
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from blend_modes import BLACK, BlendMode, Rgb
from strip_config import (
    ClassicParams,
    EmitterConfig,
    EmitterMode,
    FmParams,
    StripesParams,
)
from strip_errors import EmitterStateError
from waveform_math import fm, scale_sine


# ============================================================
# Tuning constants
# ============================================================

SEED_SCALE = 1000                 # seeds drawn uniformly in [-500, 500)
CLASSIC_TIME_SCALE = 1 / 7000
CLASSIC_POSITION_SCALE = 1
FM_TIME_SCALE = 1 / 1000 / 100
FM_POSITION_SCALE = 1 / 12
FM_CARRIER = 0.59                 # C
FM_MODULATION = 3.7               # M
FM_DEPTH_MIN = 0.6
FM_DEPTH_MAX = 3
STRIPES_TIME_SCALE = 1 / 500
ANTI_ALIAS_WIDTH = 1


# ============================================================
# Per-mode phase state
# ============================================================

@dataclass
class StripesState:
    first_edge: Optional[float] = None


@dataclass
class TestPatternState:
    colors: Optional[List[Rgb]] = None


@dataclass
class ClassicState:
    time_param: float = 0.0
    position_param: Optional[float] = None
    position_delta: Optional[float] = None


@dataclass
class FmState:
    time_param: Optional[float] = None
    depth: Optional[float] = None    # D, re-derived every tick


@dataclass
class StrobeState:
    on: bool = True
    since_flip: float = 0.0


_STATE_TYPES = {
    EmitterMode.STRIPES: StripesState,
    EmitterMode.TEST: TestPatternState,
    EmitterMode.CLASSIC: ClassicState,
    EmitterMode.FM: FmState,
}


def draw_seed(rng: Optional[random.Random] = None) -> float:
    """Uniform seed in [-SEED_SCALE/2, SEED_SCALE/2)"""
    rng = rng or random
    return rng.random() * SEED_SCALE - 0.5 * SEED_SCALE


# ============================================================
# Emitter
# ============================================================

class Emitter:
    """
    One animated color source.

    The seed comes from, in order of preference: the emitter's own config,
    `inherited_seed` (a linked predecessor), or a fresh random draw.
    """

    def __init__(
        self,
        config: EmitterConfig,
        inherited_seed: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.strip_length = config.strip_length
        self.rgb = config.rgb
        self.mode = config.mode
        self.params = config.mode_params
        self.blend_mode: BlendMode = config.blend_mode

        if config.seed is not None:
            self.seed = config.seed
        elif inherited_seed is not None:
            self.seed = inherited_seed
        else:
            self.seed = draw_seed(rng)

        state_type = _STATE_TYPES.get(self.mode)
        self.state = state_type() if state_type else None
        self.strobe = StrobeState() if config.strobe else None

        self._time_funcs: Dict[EmitterMode, Callable[[float, float], None]] = {
            EmitterMode.CONSTANT: self._time_constant,
            EmitterMode.STRIPES: self._time_stripes,
            EmitterMode.TEST: self._time_test,
            EmitterMode.CLASSIC: self._time_classic,
            EmitterMode.FM: self._time_fm,
        }
        self._position_funcs: Dict[EmitterMode, Callable[[int], Rgb]] = {
            EmitterMode.CONSTANT: self._sample_constant,
            EmitterMode.STRIPES: self._sample_stripes,
            EmitterMode.TEST: self._sample_test,
            EmitterMode.CLASSIC: self._sample_classic,
            EmitterMode.FM: self._sample_fm,
        }

    def __repr__(self):
        return f"Emitter(mode={self.mode.value}, rgb={self.rgb}, seed={self.seed:.3f})"

    @property
    def strobe_on(self) -> bool:
        return self.strobe is None or self.strobe.on

    def time_tick(self, t: float, dt: float) -> None:
        """Advance phase state to absolute time t (ms), dt ms after the last tick"""
        self._time_funcs[self.mode](t, dt)

        if self.strobe is not None:
            self.strobe.since_flip += dt
            if self.strobe.since_flip >= self.config.strobe_period:
                self.strobe.since_flip = 0.0
                self.strobe.on = not self.strobe.on

    def position_tick(self, t: float, dt: float, position: int) -> Rgb:
        """Sample this emitter's color at `position` for the current frame"""
        if not self.strobe_on:
            return BLACK
        return self._position_funcs[self.mode](position)

    # ─────────────────────────────────────────────────────────
    # CONSTANT - base color everywhere
    # ─────────────────────────────────────────────────────────

    def _time_constant(self, t: float, dt: float) -> None:
        pass

    def _sample_constant(self, position: int) -> Rgb:
        return self.rgb

    # ─────────────────────────────────────────────────────────
    # STRIPES - scrolling square wave, period 2 * width
    # ─────────────────────────────────────────────────────────

    def _time_stripes(self, t: float, dt: float) -> None:
        params: StripesParams = self.params
        self.state.first_edge = t * STRIPES_TIME_SCALE * params.speed + params.offset

    def _sample_stripes(self, position: int) -> Rgb:
        params: StripesParams = self.params
        if self.state.first_edge is None:
            raise EmitterStateError("stripes emitter sampled before time_tick()")

        to_first_edge = position - self.state.first_edge
        lit = math.floor(to_first_edge / params.width) % 2 == 1
        to_left_edge = to_first_edge % params.width
        to_right_edge = params.width - to_left_edge

        # Linear ramp across ANTI_ALIAS_WIDTH, centered on each edge
        coverage = 1.0
        edge_distance = min(to_left_edge, to_right_edge)
        if edge_distance < ANTI_ALIAS_WIDTH / 2:
            coverage = 0.5 + edge_distance / ANTI_ALIAS_WIDTH
        if not lit:
            coverage = 1 - coverage

        return _scaled(self.rgb, coverage)

    # ─────────────────────────────────────────────────────────
    # TEST - static grayscale ramp
    # ─────────────────────────────────────────────────────────

    def _time_test(self, t: float, dt: float) -> None:
        colors = []
        for i in range(self.strip_length):
            level = (i + 1) / self.strip_length
            if i % 2:
                level = 1 - level
            value = level * 255
            colors.append((value, value, value))
        self.state.colors = colors

    def _sample_test(self, position: int) -> Rgb:
        colors = self.state.colors
        if colors is None or not 0 <= position < len(colors):
            raise EmitterStateError(f"test pattern has no entry for position {position}")
        return colors[position]

    # ─────────────────────────────────────────────────────────
    # CLASSIC - two multiplied sines swept by a random walk
    # ─────────────────────────────────────────────────────────

    def _time_classic(self, t: float, dt: float) -> None:
        params: ClassicParams = self.params
        state: ClassicState = self.state
        speed_term = math.sin(params.acceleration * CLASSIC_TIME_SCALE * t + self.seed)
        state.time_param += params.morph_rate * speed_term * CLASSIC_TIME_SCALE * dt
        state.position_param = CLASSIC_TIME_SCALE * t * params.speed + 2 * self.seed
        state.position_delta = speed_term * CLASSIC_POSITION_SCALE / params.width

    def _sample_classic(self, position: int) -> Rgb:
        params: ClassicParams = self.params
        state: ClassicState = self.state
        if state.position_param is None or state.position_delta is None:
            raise EmitterStateError("classic emitter sampled before time_tick()")

        state.position_param += state.position_delta
        level = (
            scale_sine(0.2 * state.time_param + state.position_param)
            * scale_sine(state.time_param + 0.2 * state.position_param)
        )
        level = level ** params.power
        if params.scale or params.offset:
            scale = params.scale if params.scale is not None else 1
            offset = params.offset if params.offset is not None else 0
            level = max(0.0, min(1.0, level * scale + offset))

        return _scaled(self.rgb, level)

    # ─────────────────────────────────────────────────────────
    # FM - frequency-modulated envelope
    # ─────────────────────────────────────────────────────────

    def _time_fm(self, t: float, dt: float) -> None:
        params: FmParams = self.params
        state: FmState = self.state
        state.time_param = params.speed * (
            fm(FM_TIME_SCALE * params.morph_rate * t + 7 * self.seed, FM_CARRIER, 1, FM_MODULATION)
            + FM_TIME_SCALE * t
        )
        state.depth = scale_sine(
            math.sin(FM_TIME_SCALE * 2 * params.morph_rate * t + 3 * self.seed),
            FM_DEPTH_MIN,
            FM_DEPTH_MAX,
        )

    def _sample_fm(self, position: int) -> Rgb:
        params: FmParams = self.params
        state: FmState = self.state
        if state.time_param is None or state.depth is None:
            raise EmitterStateError("fm emitter sampled before time_tick()")

        x = state.time_param + (FM_POSITION_SCALE / params.width) * position + self.seed + params.slide
        level = scale_sine(fm(x, FM_CARRIER, state.depth, FM_MODULATION)) ** params.power
        return _scaled(self.rgb, level)


def _scaled(rgb: Sequence[float], factor: float) -> Rgb:
    return (rgb[0] * factor, rgb[1] * factor, rgb[2] * factor)


def build_emitters(
    configs: Sequence[EmitterConfig],
    rng: Optional[random.Random] = None,
) -> List[Emitter]:
    """
    Construct emitters in declaration order.

    A `linked` emitter inherits its predecessor's seed so the two stay
    phase-correlated.
    """
    emitters: List[Emitter] = []
    for config in configs:
        inherited = emitters[-1].seed if config.linked and emitters else None
        emitters.append(Emitter(config, inherited_seed=inherited, rng=rng))
    return emitters
