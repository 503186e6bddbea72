"""
Tick Runner - Single-threaded periodic ticks and the shutdown token

The animation loop and the schedule poller both run as periodic ticks on one
TickRunner. Ticks are kept in a heap ordered by due time and run one at a
time on the caller's thread, so two ticks never overlap and no locking is
needed. An interval of 0 means "again as soon as possible".

Shutdown is requested through a ShutdownToken. request() only sets a flag,
so it is safe to call from a signal handler; the runner notices the flag
between ticks, stops, and runs the registered shutdown hooks in order.
"""

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Upper bound on one idle wait, so ticks added from outside are picked up
MAX_IDLE_WAIT = 0.5


class ShutdownToken:
    """Owned shutdown signal, passed to everything that must clean up"""

    def __init__(self):
        self._event = threading.Event()
        self._hooks: List[Tuple[str, Callable[[], None]]] = []
        self._hooks_ran = False
        self.reason: Optional[str] = None

    @property
    def is_requested(self) -> bool:
        return self._event.is_set()

    def request(self, reason: str = "shutdown"):
        if self.reason is None:
            self.reason = reason
        self._event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    def add_hook(self, name: str, callback: Callable[[], None]):
        self._hooks.append((name, callback))

    def run_hooks(self):
        """Run every hook once, in registration order"""
        if self._hooks_ran:
            return
        self._hooks_ran = True
        for name, callback in self._hooks:
            logger.debug(f"Running shutdown hook: {name}")
            callback()


class TickHandle:
    """A scheduled periodic tick; cancel() stops it before its next run"""

    def __init__(self, name: str, interval: float, callback: Callable[[], None]):
        self.name = name
        self.interval = interval     # seconds
        self.callback = callback
        self.cancelled = False
        self.runs = 0

    def cancel(self):
        self.cancelled = True

    def __repr__(self):
        state = "cancelled" if self.cancelled else "active"
        return f"TickHandle({self.name!r}, every {self.interval * 1000:g}ms, {state})"


@dataclass(order=True)
class _Entry:
    due: float
    seq: int
    handle: TickHandle = field(compare=False)


class TickRunner:
    """Cooperative scheduler for periodic ticks"""

    def __init__(self, shutdown_token: Optional[ShutdownToken] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.shutdown_token = shutdown_token or ShutdownToken()
        self.clock = clock
        self._heap: List[_Entry] = []
        self._seq = itertools.count()

    def every(self, interval_ms: float, callback: Callable[[], None],
              name: str = "tick", delay_first: bool = True) -> TickHandle:
        """
        Run `callback` every `interval_ms` milliseconds.

        The first run is one interval from now, or at the next
        run_pending() if delay_first is False.
        """
        handle = TickHandle(name, max(0.0, interval_ms) / 1000, callback)
        first_due = self.clock() + (handle.interval if delay_first else 0.0)
        heapq.heappush(self._heap, _Entry(first_due, next(self._seq), handle))
        return handle

    @property
    def active_ticks(self) -> List[TickHandle]:
        return [entry.handle for entry in sorted(self._heap) if not entry.handle.cancelled]

    def run_pending(self) -> Optional[float]:
        """
        Run every tick that is due, each at most once.

        Returns seconds until the next tick is due, or None when nothing
        is scheduled.
        """
        now = self.clock()
        due: List[_Entry] = []
        while self._heap and self._heap[0].due <= now:
            entry = heapq.heappop(self._heap)
            if not entry.handle.cancelled:
                due.append(entry)

        for index, entry in enumerate(due):
            handle = entry.handle
            if self.shutdown_token.is_requested:
                # Put back what did not run; the runner is stopping anyway
                for pending in due[index:]:
                    heapq.heappush(self._heap, pending)
                break
            if handle.cancelled:
                continue
            handle.callback()
            handle.runs += 1
            if not handle.cancelled:
                # No catch-up bursts after a slow tick
                next_due = max(entry.due + handle.interval, self.clock())
                heapq.heappush(self._heap, _Entry(next_due, next(self._seq), handle))

        self._discard_cancelled()
        if not self._heap:
            return None
        return max(0.0, self._heap[0].due - self.clock())

    def _discard_cancelled(self):
        if any(entry.handle.cancelled for entry in self._heap):
            self._heap = [entry for entry in self._heap if not entry.handle.cancelled]
            heapq.heapify(self._heap)

    def run_forever(self):
        """Run ticks until shutdown is requested, then run the shutdown hooks"""
        try:
            while not self.shutdown_token.is_requested:
                delay = self.run_pending()
                if delay is None:
                    self.shutdown_token.wait(MAX_IDLE_WAIT)
                elif delay > 0:
                    self.shutdown_token.wait(min(delay, MAX_IDLE_WAIT))
        finally:
            if self.shutdown_token.reason:
                logger.info(f"⏹️ Stopping ({self.shutdown_token.reason})")
            self.shutdown_token.run_hooks()
