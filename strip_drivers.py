"""
Strip Drivers - Sinks that turn computed frames into light

Every driver implements the same small contract:
- set_pixel(index, red, green, blue): write into the pending frame buffer
- update(): commit the pending frame to the device
- off(): extinguish all pixels and release the device
- log(*args): best-effort diagnostics, never on the critical path

Drivers:
- DummyController: true-color terminal simulation (serpentine layout)
- MemoryController: in-memory buffer that records committed frames
- Ws281xController: WS281x / NeoPixel strips via rpi_ws281x
- DotstarController: APA102 / SK9822 strips via adafruit-circuitpython-dotstar

Hardware libraries are imported when the driver is constructed, so the
engine runs on machines without them.
"""

import logging
import math
import shutil
import sys
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, List, Optional, TextIO, Tuple

from strip_config import ShowConfig
from strip_errors import ConfigError, PixelRangeError

logger = logging.getLogger(__name__)

PixelColor = Tuple[int, int, int]
OFF: PixelColor = (0, 0, 0)


class AbstractLedController(ABC):
    """Base class for every strip sink"""

    def __init__(self, strip_length: int):
        self.strip_length = strip_length

    def _check_index(self, index: int):
        if index < 0 or index >= self.strip_length:
            raise PixelRangeError(index, self.strip_length)

    @abstractmethod
    def set_pixel(self, index: int, red: int, green: int, blue: int) -> None:
        ...

    @abstractmethod
    def update(self) -> None:
        ...

    @abstractmethod
    def off(self) -> None:
        ...

    def log(self, *args) -> None:
        logger.info(" ".join(str(arg) for arg in args))


# ============================================================
# MEMORY - headless frame buffer
# ============================================================

class MemoryController(AbstractLedController):
    """
    Keeps the pending buffer and the last `history` committed frames.
    Useful for headless runs and for inspecting output in tests.
    """

    def __init__(self, strip_length: int, history: int = 120):
        super().__init__(strip_length)
        self.pixels: List[PixelColor] = [OFF] * strip_length
        self.frames: Deque[List[PixelColor]] = deque(maxlen=history)
        self.frame_count = 0
        self.off_count = 0
        self.is_off = True
        self.log_lines: Deque[str] = deque(maxlen=history)

    def set_pixel(self, index: int, red: int, green: int, blue: int) -> None:
        self._check_index(index)
        self.pixels[index] = (red, green, blue)

    def update(self) -> None:
        self.frames.append(list(self.pixels))
        self.frame_count += 1
        self.is_off = False

    def off(self) -> None:
        self.pixels = [OFF] * self.strip_length
        self.off_count += 1
        self.is_off = True

    def log(self, *args) -> None:
        line = " ".join(str(arg) for arg in args)
        self.log_lines.append(line)
        logger.debug(line)

    @property
    def last_frame(self) -> Optional[List[PixelColor]]:
        return self.frames[-1] if self.frames else None


# ============================================================
# DUMMY - terminal simulation
# ============================================================

PIXEL_CHAR = "●"
_CSI = "\x1b["


class DummyController(AbstractLedController):
    """
    Shows the strip in a true-color terminal.

    Pixels run left-to-right on the first row, right-to-left on the next,
    and so on, like a strip folded back on itself. The latest log() line is
    printed underneath.
    """

    def __init__(self, strip_length: int, stream: Optional[TextIO] = None):
        super().__init__(strip_length)
        self.stream = stream or sys.stdout
        self.pixels: List[PixelColor] = [OFF] * strip_length
        self.log_line = ""
        self.stream.write(f"{_CSI}2J{_CSI}?25l")
        self.stream.flush()

    def set_pixel(self, index: int, red: int, green: int, blue: int) -> None:
        self._check_index(index)
        self.pixels[index] = (red, green, blue)

    def _rows(self) -> List[List[PixelColor]]:
        per_row = max(1, shutil.get_terminal_size().columns // 2)
        rows = []
        for start in range(0, self.strip_length, per_row):
            row = self.pixels[start:start + per_row]
            if len(rows) % 2:
                row = list(reversed(row))
                row = [None] * (per_row - len(row)) + row
            rows.append(row)
        return rows

    def update(self) -> None:
        out = [f"{_CSI}H"]
        for row in self._rows():
            for pixel in row:
                if pixel is None:
                    out.append("  ")
                else:
                    r, g, b = pixel
                    out.append(f"{_CSI}38;2;{r};{g};{b}m{PIXEL_CHAR} ")
            out.append(f"{_CSI}0m{_CSI}K\n")
        out.append(f"{self.log_line}{_CSI}K\n{_CSI}J")
        self.stream.write("".join(out))
        self.stream.flush()

    def off(self) -> None:
        self.pixels = [OFF] * self.strip_length
        self.stream.write(f"{_CSI}0m{_CSI}2J{_CSI}H{_CSI}?25h")
        self.stream.flush()

    def log(self, *args) -> None:
        self.log_line = " ".join(str(arg) for arg in args)
        logger.debug(self.log_line)


# ============================================================
# WS281X - NeoPixel strips
# ============================================================

WS281X_GPIO_PIN = 18
WS281X_FREQ_HZ = 800000
WS281X_DMA = 10
WS281X_BRIGHTNESS = 255
WS281X_CHANNEL = 0


def normalize_ws281x(value: float) -> int:
    """
    Arcsin curve that evens out perceived brightness on WS281x pixels.
    Output starts at 16 because these pixels stay dark below that.
    """
    return int((math.asin(value / 127.5 - 1) / math.pi + 0.5) * 239 + 16)


class Ws281xController(AbstractLedController):
    """WS281x strip on the Raspberry Pi PWM/DMA peripheral"""

    def __init__(self, strip_length: int, color_order: str = "rgb",
                 gpio_pin: int = WS281X_GPIO_PIN):
        super().__init__(strip_length)
        from rpi_ws281x import Color, PixelStrip

        self._color = Color
        self._swap_red_green = color_order == "grb"
        self.strip = PixelStrip(
            strip_length, gpio_pin, WS281X_FREQ_HZ, WS281X_DMA,
            False, WS281X_BRIGHTNESS, WS281X_CHANNEL,
        )
        self.strip.begin()

    def set_pixel(self, index: int, red: int, green: int, blue: int) -> None:
        self._check_index(index)
        red, green, blue = (normalize_ws281x(v) for v in (red, green, blue))
        if self._swap_red_green:
            red, green = green, red
        self.strip.setPixelColor(index, self._color(red, green, blue))

    def update(self) -> None:
        self.strip.show()

    def off(self) -> None:
        black = self._color(0, 0, 0)
        for index in range(self.strip_length):
            self.strip.setPixelColor(index, black)
        self.strip.show()


# ============================================================
# DOTSTAR - APA102 / SK9822 strips
# ============================================================

class DotstarController(AbstractLedController):
    """APA102 / SK9822 strip on the hardware SPI pins"""

    def __init__(self, strip_length: int):
        super().__init__(strip_length)
        import adafruit_dotstar
        import board

        # One extra pixel: without it the last pixel stays lit after off()
        self.dots = adafruit_dotstar.DotStar(
            board.SCK, board.MOSI, strip_length + 1,
            brightness=1.0, auto_write=False,
        )

    def set_pixel(self, index: int, red: int, green: int, blue: int) -> None:
        self._check_index(index)
        self.dots[index] = (red, green, blue)

    def update(self) -> None:
        self.dots.show()

    def off(self) -> None:
        # fill() leaves the trailing pixel lit on some strips; blank each one
        for index in range(self.strip_length + 1):
            self.dots[index] = OFF
        self.dots.show()


def get_led_controller(config: ShowConfig, dummy: bool = False) -> AbstractLedController:
    """Pick a driver for the configured led type"""
    led_type = str(config.led_type).lower()
    if dummy or led_type == "dummy":
        return DummyController(config.strip_length)
    if led_type == "memory":
        return MemoryController(config.strip_length)
    if led_type in ("dotstar", "sk9822"):
        return DotstarController(config.strip_length)
    if led_type in ("neopixel", "ws281x"):
        return Ws281xController(config.strip_length, color_order=config.color_order)
    raise ConfigError(f"Invalid or unsupported ledType: {config.led_type}")
