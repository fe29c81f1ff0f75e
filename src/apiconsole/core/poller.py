"""Self-rescheduling background poller for reference lists."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from apiconsole.utils.logging import get_logger

Schedule = Callable[[float, Callable[[], None]], Any]

DEFAULT_POLL_INTERVAL = 30.0


class BackgroundPoller:
    """Fire ``on_tick`` now and then every ``interval`` seconds.

    The poller never owns a thread. ``schedule(delay, callback)`` arms a
    one-shot timer on the interaction loop (``App.set_timer`` in the TUI) and
    each tick re-arms the next one. There is no cancellation: the poller
    lives until the process exits.
    """

    def __init__(
        self,
        on_tick: Callable[[], None],
        schedule: Schedule,
        interval: float = DEFAULT_POLL_INTERVAL,
    ):
        if interval <= 0:
            raise ValueError("poll interval must be positive")
        self._on_tick = on_tick
        self._schedule = schedule
        self.interval = interval
        self.ticks = 0
        self.started = False
        self.logger = get_logger("poller")

    def start(self) -> None:
        """Run the first tick immediately. Calling it again is a no-op."""
        if self.started:
            return
        self.started = True
        self.logger.info("poller.started", interval=self.interval)
        self._tick()

    def _tick(self) -> None:
        self.ticks += 1
        self.logger.debug("poller.tick", tick=self.ticks)
        try:
            self._on_tick()
        finally:
            self._schedule(self.interval, self._tick)
