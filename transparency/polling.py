"""
transparency/polling.py

Fixed-interval refresh of an aggregation call.

The ledger has no push channel, so dashboards stay fresh by re-polling. A tick
that fires while the previous fetch is still running is skipped instead of
stacking a second overlapping call.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .errors import TransparencyError

logger = logging.getLogger(__name__)


class RefreshLoop:
    """
    Run `fetch` every `interval` seconds and hand each result to `on_result`.

    Errors from the fetch (e.g. ChainUnavailable) are passed to `on_error` and
    the loop keeps going; the next tick simply tries again.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[Any]],
        interval: float = 30.0,
        on_result: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.fetch = fetch
        self.interval = interval
        self.on_result = on_result
        self.on_error = on_error

        self.completed = 0
        self.skipped = 0
        self.failed = 0
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    async def _run_once(self) -> None:
        try:
            result = await self.fetch()
            if self.on_result:
                self.on_result(result)
            self.completed += 1
        except TransparencyError as exc:
            self._fail(exc)
            logger.warning("Refresh failed: %s", exc)
        except Exception as exc:
            # Ticks never await their task, so nothing else retrieves this.
            self._fail(exc)
            logger.exception("Refresh crashed")

    def _fail(self, exc: Exception) -> None:
        self.failed += 1
        if self.on_error:
            self.on_error(exc)

    def tick(self) -> bool:
        """Start a refresh unless one is already running. Returns True if started."""
        if self.in_flight:
            self.skipped += 1
            logger.info("Refresh still in flight; skipping this tick")
            return False
        self._in_flight = asyncio.ensure_future(self._run_once())
        return True

    async def run(self, cycles: Optional[int] = None) -> None:
        """
        Tick every interval. `cycles` bounds the number of ticks (None = forever).

        Waits for the last started refresh before returning.
        """
        count = 0
        try:
            while cycles is None or count < cycles:
                self.tick()
                count += 1
                if cycles is not None and count >= cycles:
                    break
                await asyncio.sleep(self.interval)
        finally:
            if self._in_flight is not None:
                await self._in_flight
