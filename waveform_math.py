"""
Waveform Math - Pure helpers shared by emitters and the scheduler

This module provides:
- scale_sine(): sine mapped from [-1, 1] into an arbitrary range
- fm(): frequency-modulation synthesis
- is_after(): wall-clock time-of-day comparison for schedule windows
"""

import math
from datetime import datetime
from typing import Tuple

TimeOfDay = Tuple[int, int]  # (hour 0-23, minute 0-59)


def scale_sine(x: float, min_value: float = 0.0, max_value: float = 1.0) -> float:
    """Map sin(x) into [min_value, max_value]"""
    return (math.sin(x) * 0.5 + 0.5) * (max_value - min_value) + min_value


def fm(x: float, c: float, d: float, m: float) -> float:
    """
    f(x) = sin(C*x + D*sin(M*x))

    C - carrier frequency scale
    D - depth of modulation (deviation from carrier), varied by the caller
    M - modulation frequency scale
    """
    return math.sin(c * x + d * math.sin(m * x))


def is_after(now: datetime, time_of_day: TimeOfDay) -> bool:
    """
    True if now's hour/minute is at or after time_of_day.

    Same-day comparison only: a window ending past midnight is not handled.
    """
    hour, minute = time_of_day
    if now.hour == hour:
        return now.minute >= minute
    return now.hour > hour


def format_time_of_day(time_of_day: TimeOfDay) -> str:
    return f"{time_of_day[0]:02d}:{time_of_day[1]:02d}"
