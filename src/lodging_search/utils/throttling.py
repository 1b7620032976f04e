"""Pacing policies that keep automated traffic from looking robotic.

Browser sessions pause between simulated actions and the evaluator spaces out model
calls. Both go through a pacer object so tests can swap in :class:`NoPacing`.
"""
from __future__ import annotations

import asyncio
import random
import time
from typing import Awaitable, Callable, Optional, Protocol


class Pacer(Protocol):
    async def pause(self, min_seconds: float, max_seconds: float) -> None:
        """Wait before the next simulated human action."""

    async def wait_turn(self) -> None:
        """Wait until the next rate-limited call may start."""


class NoPacing:
    """Pacer that never sleeps."""

    async def pause(self, min_seconds: float, max_seconds: float) -> None:
        return None

    async def wait_turn(self) -> None:
        return None


class HumanPacer:
    """Random uniform pauses between actions, scaled by ``scale``."""

    def __init__(self, scale: float = 1.0, *, rng: Optional[random.Random] = None) -> None:
        self.scale = max(scale, 0.0)
        self._rng = rng or random.Random()

    async def pause(self, min_seconds: float, max_seconds: float) -> None:
        if max_seconds < min_seconds:
            min_seconds, max_seconds = max_seconds, min_seconds
        duration = self._rng.uniform(min_seconds, max_seconds) * self.scale
        if duration > 0:
            await asyncio.sleep(duration)

    async def wait_turn(self) -> None:
        return None


class IntervalPacer:
    """Fixed-interval scheduler: successive turns start at least ``interval_s`` apart."""

    def __init__(
        self,
        interval_s: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.interval_s = max(interval_s, 0.0)
        self._clock = clock
        self._sleep = sleep
        self._next_slot: Optional[float] = None
        self._lock = asyncio.Lock()

    async def pause(self, min_seconds: float, max_seconds: float) -> None:
        await self.wait_turn()

    async def wait_turn(self) -> None:
        async with self._lock:
            now = self._clock()
            if self._next_slot is not None and now < self._next_slot:
                await self._sleep(self._next_slot - now)
                now = self._next_slot
            self._next_slot = now + self.interval_s
