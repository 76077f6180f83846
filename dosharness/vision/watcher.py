"""Poll the rendered frame until a watch region appears or the caller aborts."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from ..logging_utils import get_logger
from .matcher import ImageMatcher
from .watch_image import WatchImage

SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_INTERVAL_MS = 64


class ImageWatcher:
    """Level-triggered wait on :class:`ImageMatcher` with a fixed poll interval.

    The watcher never times out on its own. Deadlines belong to the caller,
    who sets ``abort_signal`` when they expire; the signal is observed only
    between polls.
    """

    def __init__(self, matcher: ImageMatcher, sleep: SleepFn = asyncio.sleep) -> None:
        self._matcher = matcher
        self._sleep = sleep
        self._log = get_logger("watch")

    async def watch(
        self,
        image: WatchImage,
        abort_signal: Optional[asyncio.Event] = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        interval_s = interval_ms / 1000.0
        polls = 0
        while True:
            await self._sleep(interval_s)
            polls += 1
            if self._matcher.matches(image):
                self._log.debug(
                    "Region {}x{}+{}+{} matched after {} polls",
                    image.sw,
                    image.sh,
                    image.sx,
                    image.sy,
                    polls,
                )
                return
            if abort_signal is not None and abort_signal.is_set():
                self._log.debug("Watch aborted after {} polls", polls)
                return
