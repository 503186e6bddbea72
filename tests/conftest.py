"""Shared fixtures: fake clocks and quick config builders"""

import os
import sys
from datetime import datetime

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from strip_config import EmitterConfig, ConstantParams, ShowConfig
from strip_drivers import MemoryController
from tick_runner import ShutdownToken, TickRunner


class FakeClock:
    """Manually advanced clock; returns `now` in whatever unit the caller uses"""

    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, amount):
        self.now += amount
        return self.now


def constant_emitter(rgb=(10, 20, 30), strip_length=3, **kwargs):
    return EmitterConfig(strip_length=strip_length, rgb=rgb, mode_params=ConstantParams(), **kwargs)


def show_config(*emitters, strip_length=3, **kwargs):
    if not emitters:
        emitters = (constant_emitter(strip_length=strip_length),)
    return ShowConfig(strip_length=strip_length, emitters=tuple(emitters), led_type="memory", **kwargs)


def at(hour, minute):
    return datetime(2026, 10, 19, hour, minute)


@pytest.fixture
def tick_clock():
    """Monotonic-style clock in seconds for the TickRunner"""
    return FakeClock(100.0)


@pytest.fixture
def token():
    return ShutdownToken()


@pytest.fixture
def runner(token, tick_clock):
    return TickRunner(token, clock=tick_clock)


@pytest.fixture
def controller():
    return MemoryController(3)
