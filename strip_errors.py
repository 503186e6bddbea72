"""
Strip Errors - Exception types raised by the emitter engine

- ConfigError: bad or missing configuration, fatal at startup
- PixelRangeError: pixel index outside the strip, a caller bug
- EmitterStateError: emitter sampled before its mode state exists
"""


class StripError(Exception):
    """Base class for all LED strip engine errors"""


class ConfigError(StripError, ValueError):
    """Invalid configuration - aborts startup before any animation"""


class PixelRangeError(StripError, IndexError):
    """Pixel index outside [0, strip_length)"""

    def __init__(self, index, strip_length):
        self.index = index
        self.strip_length = strip_length
        super().__init__(
            f"setPixel index {index} outside of range 0 - {strip_length - 1}"
        )


class EmitterStateError(StripError, RuntimeError):
    """Mode state missing when it should exist (construction or ordering bug)"""
