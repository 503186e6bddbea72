"""
Strip Config - Resolved, immutable configuration for the emitter engine

This module provides:
- Default constants for every emitter tuning parameter
- Mode-specific parameter variants (one frozen dataclass per waveform mode)
- EmitterConfig / ScheduleRule / ShowConfig with validation
- resolve_show_config(): pure "apply defaults" transform from a raw document

The raw document uses the original camelCase keys (stripLength, blendMode, ...);
snake_case spellings are accepted as well. The input mapping is never mutated.

Example document (YAML):

    ledType: ws281x
    stripLength: 60
    intervalDelay: 0
    schedule:
      - start: [17, 30]
        end: [23, 0]
    dudes:
      - rgb: [255, 80, 0]
        mode: fm
        power: 3
      - rgb: [0, 40, 255]
        mode: classic
        linked: true
        blendMode: AVERAGE
"""

from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Any, ClassVar, Mapping, Optional, Tuple, Union

from blend_modes import BlendMode
from strip_errors import ConfigError
from waveform_math import TimeOfDay


# ============================================================
# Defaults
# ============================================================

POWER_DEFAULT = 2
SPEED_DEFAULT = 1
MORPH_RATE_DEFAULT = 10
ACCELERATION_DEFAULT = 1
WIDTH_DEFAULT = 2.5
STROBE_PERIOD_DEFAULT = 1000 / 60   # ms
SLIDE_DEFAULT = 0
BLEND_MODE_DEFAULT = BlendMode.SUM

INTERVAL_DELAY_DEFAULT = 0              # ms between frames, 0 = as fast as possible
SCHEDULE_INTERVAL_DEFAULT = 10 * 1000   # ms between schedule checks

LED_TYPES = ("dummy", "memory", "dotstar", "sk9822", "neopixel", "ws281x")
COLOR_ORDERS = ("rgb", "grb")


class EmitterMode(Enum):
    """Waveform generated by an emitter"""
    CONSTANT = "constant"
    STRIPES = "stripes"
    TEST = "test"
    CLASSIC = "classic"
    FM = "fm"


MODE_DEFAULT = EmitterMode.FM


# ============================================================
# Mode-specific parameter variants
# ============================================================

@dataclass(frozen=True)
class ConstantParams:
    """Solid base color"""
    mode: ClassVar[EmitterMode] = EmitterMode.CONSTANT


@dataclass(frozen=True)
class StripesParams:
    """Scrolling square wave with anti-aliased edges"""
    mode: ClassVar[EmitterMode] = EmitterMode.STRIPES
    speed: float = SPEED_DEFAULT
    width: float = WIDTH_DEFAULT
    offset: float = 0.0

    def __post_init__(self):
        _require_positive("width", self.width)


@dataclass(frozen=True)
class PatternParams:
    """Static grayscale ramp, alternating direction every other pixel"""
    mode: ClassVar[EmitterMode] = EmitterMode.TEST


@dataclass(frozen=True)
class ClassicParams:
    """Random-walk sweep of two multiplied sines"""
    mode: ClassVar[EmitterMode] = EmitterMode.CLASSIC
    power: float = POWER_DEFAULT
    speed: float = SPEED_DEFAULT
    morph_rate: float = MORPH_RATE_DEFAULT
    acceleration: float = ACCELERATION_DEFAULT
    width: float = WIDTH_DEFAULT
    scale: Optional[float] = None
    offset: Optional[float] = None

    def __post_init__(self):
        _require_positive("width", self.width)
        _require_non_negative("power", self.power)


@dataclass(frozen=True)
class FmParams:
    """Frequency-modulated brightness envelope"""
    mode: ClassVar[EmitterMode] = EmitterMode.FM
    power: float = POWER_DEFAULT
    speed: float = SPEED_DEFAULT
    morph_rate: float = MORPH_RATE_DEFAULT
    width: float = WIDTH_DEFAULT
    slide: float = SLIDE_DEFAULT

    def __post_init__(self):
        _require_positive("width", self.width)
        _require_non_negative("power", self.power)


ModeParams = Union[ConstantParams, StripesParams, PatternParams, ClassicParams, FmParams]


# ============================================================
# Emitter / schedule / show configuration
# ============================================================

@dataclass(frozen=True)
class EmitterConfig:
    """Fully resolved configuration of one emitter"""
    strip_length: int
    rgb: Tuple[int, int, int]
    mode_params: ModeParams = field(default_factory=FmParams)
    blend_mode: BlendMode = BLEND_MODE_DEFAULT
    strobe: bool = False
    strobe_period: float = STROBE_PERIOD_DEFAULT
    seed: Optional[float] = None
    linked: bool = False

    def __post_init__(self):
        _require_strip_length(self.strip_length)
        if len(self.rgb) != 3:
            raise ConfigError(f"rgb must have 3 channels, got {list(self.rgb)}")
        for value in self.rgb:
            if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 255:
                raise ConfigError(f"rgb channels must be integers 0-255, got {list(self.rgb)}")
        _require_positive("strobePeriod", self.strobe_period)

    @property
    def mode(self) -> EmitterMode:
        return self.mode_params.mode


@dataclass(frozen=True)
class ScheduleRule:
    """An ON window between two times of day"""
    start: TimeOfDay
    end: TimeOfDay

    def __post_init__(self):
        for name, value in (("start", self.start), ("end", self.end)):
            if len(value) != 2:
                raise ConfigError(f"Schedule {name} must be [hour, minute], got {value}")
            hour, minute = value
            if not 0 <= hour <= 23 or not 0 <= minute <= 59:
                raise ConfigError(f"Schedule {name} out of range: {value}")


@dataclass(frozen=True)
class ShowConfig:
    """Everything the show manager needs, resolved once at startup"""
    strip_length: int
    emitters: Tuple[EmitterConfig, ...]
    led_type: Optional[str] = None
    schedule: Optional[Tuple[ScheduleRule, ...]] = None
    interval_delay: float = INTERVAL_DELAY_DEFAULT
    schedule_interval: float = SCHEDULE_INTERVAL_DEFAULT
    color_order: str = "rgb"

    def __post_init__(self):
        _require_strip_length(self.strip_length)
        if not self.emitters:
            raise ConfigError("Missing or invalid dudes array")
        if self.interval_delay < 0:
            raise ConfigError(f"intervalDelay must be >= 0, got {self.interval_delay}")
        _require_positive("scheduleInterval", self.schedule_interval)
        if self.color_order not in COLOR_ORDERS:
            raise ConfigError(f"colorOrder must be one of {COLOR_ORDERS}, got {self.color_order!r}")


# ============================================================
# Resolution - raw document -> ShowConfig
# ============================================================

def resolve_show_config(raw: Mapping[str, Any]) -> ShowConfig:
    """
    Apply defaults and validate a raw config document.

    Pure: builds new frozen objects and leaves `raw` untouched.
    Raises ConfigError for anything that would break the engine.
    """
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Config document must be a mapping, got {type(raw).__name__}")

    strip_length = _strip_length(_pick(raw, "stripLength", "strip_length"))

    raw_emitters = _pick(raw, "dudes", "emitters")
    if not isinstance(raw_emitters, (list, tuple)) or not raw_emitters:
        raise ConfigError("Missing or invalid dudes array")
    emitters = tuple(
        resolve_emitter_config(entry, strip_length, index)
        for index, entry in enumerate(raw_emitters)
    )

    raw_schedule = _pick(raw, "schedule")
    schedule = None
    if raw_schedule is not None:
        if not isinstance(raw_schedule, (list, tuple)):
            raise ConfigError("schedule must be a list of {start, end} rules")
        schedule = tuple(_schedule_rule(rule) for rule in raw_schedule)

    led_type = _pick(raw, "ledType", "led_type")
    color_order = _pick(raw, "colorOrder", "color_order", default="rgb")

    return ShowConfig(
        strip_length=strip_length,
        emitters=emitters,
        led_type=str(led_type).lower() if led_type is not None else None,
        schedule=schedule,
        interval_delay=_number(raw, "intervalDelay", "interval_delay",
                               default=INTERVAL_DELAY_DEFAULT),
        schedule_interval=_number(raw, "scheduleInterval", "schedule_interval",
                                  default=SCHEDULE_INTERVAL_DEFAULT),
        color_order=str(color_order).lower(),
    )


def resolve_emitter_config(raw: Mapping[str, Any], strip_length: int, index: int = 0) -> EmitterConfig:
    """Resolve one emitter ("dude") entry"""
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Dude #{index} must be a mapping, got {type(raw).__name__}")

    rgb = raw.get("rgb")
    if not isinstance(rgb, (list, tuple)):
        raise ConfigError(f"Dude #{index} is missing its rgb color")

    mode = _mode(raw.get("mode"), index)
    mode_params = _mode_params(mode, raw)

    return EmitterConfig(
        strip_length=strip_length,
        rgb=tuple(rgb),
        mode_params=mode_params,
        blend_mode=_blend_mode(_pick(raw, "blendMode", "blend_mode"), index),
        strobe=bool(raw.get("strobe", False)),
        strobe_period=_number(raw, "strobePeriod", "strobe_period",
                              default=STROBE_PERIOD_DEFAULT),
        seed=_number(raw, "seed", default=None),
        linked=bool(raw.get("linked", False)),
    )


def _mode_params(mode: EmitterMode, raw: Mapping[str, Any]) -> ModeParams:
    if mode is EmitterMode.CONSTANT:
        return ConstantParams()
    if mode is EmitterMode.TEST:
        return PatternParams()
    if mode is EmitterMode.STRIPES:
        return StripesParams(
            speed=_number(raw, "speed", default=SPEED_DEFAULT),
            width=_number(raw, "width", default=WIDTH_DEFAULT),
            offset=_number(raw, "offset", default=0.0),
        )
    if mode is EmitterMode.CLASSIC:
        return ClassicParams(
            power=_number(raw, "power", default=POWER_DEFAULT),
            speed=_number(raw, "speed", default=SPEED_DEFAULT),
            morph_rate=_number(raw, "morphRate", "morph_rate", default=MORPH_RATE_DEFAULT),
            acceleration=_number(raw, "acceleration", default=ACCELERATION_DEFAULT),
            width=_number(raw, "width", default=WIDTH_DEFAULT),
            scale=_number(raw, "scale", default=None),
            offset=_number(raw, "offset", default=None),
        )
    return FmParams(
        power=_number(raw, "power", default=POWER_DEFAULT),
        speed=_number(raw, "speed", default=SPEED_DEFAULT),
        morph_rate=_number(raw, "morphRate", "morph_rate", default=MORPH_RATE_DEFAULT),
        width=_number(raw, "width", default=WIDTH_DEFAULT),
        slide=_number(raw, "slide", default=SLIDE_DEFAULT),
    )


# ─────────────────────────────────────────────────────────
# Field helpers
# ─────────────────────────────────────────────────────────

def _pick(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First present, non-null value among the key spellings"""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return default


def _number(raw: Mapping[str, Any], *keys: str, default: Any) -> Any:
    value = _pick(raw, *keys)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ConfigError(f"{keys[0]} must be numeric, got {value!r}")
    return float(value)


def _strip_length(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ConfigError("stripLength is required")
    if value != int(value):
        raise ConfigError(f"stripLength must be a whole number, got {value}")
    _require_strip_length(int(value))
    return int(value)


def _mode(value: Any, index: int) -> EmitterMode:
    if value is None:
        return MODE_DEFAULT
    try:
        return EmitterMode(str(value).lower())
    except ValueError:
        options = ", ".join(m.value for m in EmitterMode)
        raise ConfigError(f"Dude #{index} has unknown mode {value!r} (expected one of {options})")


def _blend_mode(value: Any, index: int) -> BlendMode:
    if value is None:
        return BLEND_MODE_DEFAULT
    try:
        return BlendMode(str(value).upper())
    except ValueError:
        options = ", ".join(m.value for m in BlendMode)
        raise ConfigError(f"Dude #{index} has unknown blendMode {value!r} (expected one of {options})")


def _schedule_rule(raw: Any) -> ScheduleRule:
    if not isinstance(raw, Mapping) or "start" not in raw or "end" not in raw:
        raise ConfigError(f"Schedule rule must have start and end, got {raw!r}")
    return ScheduleRule(start=_time_of_day(raw["start"]), end=_time_of_day(raw["end"]))


def _time_of_day(value: Any) -> TimeOfDay:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ConfigError(f"Schedule time must be [hour, minute], got {value!r}")
    hour, minute = value
    if not isinstance(hour, int) or not isinstance(minute, int):
        raise ConfigError(f"Schedule time must be integers, got {value!r}")
    return (hour, minute)


def _require_strip_length(value: Any):
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"stripLength must be a positive integer, got {value!r}")


def _require_positive(name: str, value: float):
    if value <= 0:
        raise ConfigError(f"{name} must be > 0, got {value}")


def _require_non_negative(name: str, value: float):
    if value < 0:
        raise ConfigError(f"{name} must be >= 0, got {value}")
