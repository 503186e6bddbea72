"""
Blend Modes - How one emitter's contribution combines with the running color

Every pixel is folded left-to-right over the emitters, in declaration order,
starting from black. Intermediate values are NOT clamped: DODGE and BURN can
divide by zero and produce inf/nan, which propagate until clamp_rgb() at the
very end of the fold.
"""

import math
from enum import Enum
from typing import Iterable, Tuple

Rgb = Tuple[float, float, float]

BLACK: Rgb = (0.0, 0.0, 0.0)


class BlendMode(Enum):
    """How an emitter's contribution combines with the value below it"""
    SUM = "SUM"                # base + contribution
    AVERAGE = "AVERAGE"        # (base + contribution) / 2
    MULTIPLY = "MULTIPLY"      # base * contribution
    DODGE = "DODGE"            # base / (1 - contribution/255)
    BURN = "BURN"              # (1 - contribution/255) / base
    REPLACE = "REPLACE"        # contribution where > 0, else base
    DEFAULT = "DEFAULT"        # brighten toward contribution if it is brighter


def _divide(numerator: float, denominator: float) -> float:
    """Float division with IEEE semantics for a zero denominator"""
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _blend_channel(mode: BlendMode, base: float, value: float) -> float:
    if mode is BlendMode.SUM:
        return base + value
    elif mode is BlendMode.AVERAGE:
        return (base + value) / 2
    elif mode is BlendMode.MULTIPLY:
        return base * value
    elif mode is BlendMode.DODGE:
        return _divide(base, 1 - value / 255)
    elif mode is BlendMode.BURN:
        return _divide(1 - value / 255, base)
    elif mode is BlendMode.REPLACE:
        return value if value > 0 else base
    return base


def blend_colors(mode: BlendMode, base: Rgb, contribution: Rgb) -> Rgb:
    """Combine `contribution` into `base` using `mode`"""
    if mode is BlendMode.DEFAULT:
        # Brightness difference normalized to one channel's range
        difference = (sum(contribution) - sum(base)) / 255
        if difference <= 0:
            return base
        return tuple(value + difference * contribution[i] for i, value in enumerate(base))

    return tuple(_blend_channel(mode, base[i], contribution[i]) for i in range(3))


def fold_contributions(contributions: Iterable[Tuple[BlendMode, Rgb]]) -> Rgb:
    """Fold (blend mode, color) pairs left-to-right starting from black"""
    result = BLACK
    for mode, rgb in contributions:
        result = blend_colors(mode, result, rgb)
    return result


def _clamp_channel(value: float) -> int:
    if math.isnan(value):
        return 0
    return round(max(0, min(255, value)))


def clamp_rgb(rgb: Rgb) -> Tuple[int, int, int]:
    """Clamp and round every channel to an integer in [0, 255]"""
    return (_clamp_channel(rgb[0]), _clamp_channel(rgb[1]), _clamp_channel(rgb[2]))
