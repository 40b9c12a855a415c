"""Elapsed recording time with one-second resolution.

The counter is derived from a monotonic clock: it equals the number of
whole ``interval`` periods spent running, so paused time is never counted.
A ticker task notifies listeners each time the counter advances.
"""

import asyncio
import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

TickListener = Callable[[int], None]


class ElapsedTimer:
    """Start/pause/reset counter of whole seconds spent running.

    Args:
        interval: Length of one tick in seconds (default 1.0).
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval = interval
        self._clock = clock
        self._accumulated = 0.0
        self._started_at: float | None = None
        self._ticker: asyncio.Task | None = None
        self._listeners: list[TickListener] = []

    @property
    def running(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed(self) -> float:
        """Total running time in seconds (fractional)."""
        if self._started_at is None:
            return self._accumulated
        return self._accumulated + (self._clock() - self._started_at)

    @property
    def seconds(self) -> int:
        """Number of completed ticks."""
        return int(self.elapsed // self._interval)

    def add_listener(self, listener: TickListener) -> None:
        self._listeners.append(listener)

    def start(self) -> None:
        """Start or continue counting. No-op when already running."""
        if self._started_at is not None:
            return
        self._started_at = self._clock()
        try:
            self._ticker = asyncio.get_running_loop().create_task(self._tick_loop())
        except RuntimeError:
            # No event loop: counting still works, listeners are not notified
            self._ticker = None

    def pause(self) -> None:
        """Freeze the counter, keeping the accumulated time."""
        if self._started_at is not None:
            self._accumulated += self._clock() - self._started_at
            self._started_at = None
        self._cancel_ticker()

    def reset(self) -> None:
        """Stop counting and return to zero."""
        self.pause()
        self._accumulated = 0.0

    def _cancel_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def _tick_loop(self) -> None:
        last = self.seconds
        while True:
            delay = self._interval - (self.elapsed % self._interval)
            await asyncio.sleep(max(delay, 0.001))
            current = self.seconds
            if current == last:
                continue
            last = current
            for listener in list(self._listeners):
                try:
                    listener(current)
                except Exception:
                    logger.exception("Tick listener failed")
