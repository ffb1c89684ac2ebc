"""Time-windowed suppression of repeated pull request notifications."""

from __future__ import annotations

import asyncio

from psdevbot.utils.logging import get_logger

log = get_logger(__name__)


class PullRequestDedup:
    """Set of pull request numbers notified within the current window.

    Each insertion schedules its own removal ``window`` seconds later; lookups
    never evict.
    """

    def __init__(self, window: float = 600.0) -> None:
        self._window = window
        self._numbers: set[int] = set()
        self._timers: dict[int, asyncio.TimerHandle] = {}

    def __contains__(self, number: int) -> bool:
        return number in self._numbers

    def __len__(self) -> int:
        return len(self._numbers)

    def try_insert(self, number: int) -> bool:
        """Return True if ``number`` was not suppressed and now is."""
        if number in self._numbers:
            log.info("pull_request_suppressed", number=number)
            return False
        self._numbers.add(number)
        loop = asyncio.get_running_loop()
        self._timers[number] = loop.call_later(self._window, self._expire, number)
        return True

    def discard(self, number: int) -> None:
        """Forget ``number`` early, e.g. when its notification was never queued."""
        timer = self._timers.pop(number, None)
        if timer is not None:
            timer.cancel()
        self._numbers.discard(number)

    def clear(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._numbers.clear()

    def _expire(self, number: int) -> None:
        self._numbers.discard(number)
        self._timers.pop(number, None)
