"""Timed key-down/key-up dispatch against the emulator input surface."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, Optional, Protocol

from ..errors import NotReadyError
from ..logging_utils import get_logger

SleepFn = Callable[[float], Awaitable[None]]


class KeySurface(Protocol):
    def inject_key_event(self, code: int, is_down: bool) -> None: ...


class InputSequencer:
    """Send key codes one at a time as well-formed press/release pairs.

    The emulated keyboard buffer drops events that arrive too close together,
    so every half-event is followed by ``settle_ms`` of idle time.
    """

    def __init__(
        self,
        surface_provider: Callable[[], Optional[KeySurface]],
        settle_ms: int = 100,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if settle_ms < 0:
            raise ValueError("settle_ms must be >= 0")
        self._surface_provider = surface_provider
        self._settle_s = settle_ms / 1000.0
        self._sleep = sleep
        self._log = get_logger("input")

    @property
    def settle_ms(self) -> int:
        return int(round(self._settle_s * 1000))

    async def send(self, keycodes: Iterable[int]) -> None:
        codes = list(keycodes)
        surface = self._surface_provider()
        if surface is None:
            raise NotReadyError("Emulator input surface is not available yet")
        for code in codes:
            self._log.debug("Sending {} down...", code)
            surface.inject_key_event(code, True)
            await self._sleep(self._settle_s)
            self._log.debug("Sending {} up...", code)
            surface.inject_key_event(code, False)
            await self._sleep(self._settle_s)
