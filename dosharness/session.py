"""Emulator session lifecycle and the automation surface exposed to drivers."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, Optional

import numpy as np

from .config import HarnessConfig
from .emulator.base import EmulatorInstance, EmulatorOptions, EmulatorRuntime, VirtualFilesystem
from .emulator.factory import build_runtime
from .errors import EmulatorSetupError, HarnessError, NotReadyError
from .input.sequencer import InputSequencer
from .input.strokes import translate
from .logging_utils import get_logger
from .storage.bridge import VirtualFileBridge
from .vision.matcher import ImageMatcher
from .vision.watch_image import WatchImage
from .vision.watcher import ImageWatcher

SleepFn = Callable[[float], Awaitable[None]]
InstanceProvider = Callable[[], Optional[EmulatorInstance]]


class _LiveCanvas:
    """Frame source that follows whichever instance the session currently owns."""

    def __init__(self, instance_provider: InstanceProvider) -> None:
        self._instance_provider = instance_provider

    def get_frame(self) -> np.ndarray:
        instance = self._instance_provider()
        if instance is None:
            raise NotReadyError("Emulator canvas is not available yet")
        return instance.canvas.get_frame()


class AutomationFacade:
    """Send strokes, watch for images and move files in one booted emulator.

    Operations assume exclusive use of the keyboard and canvas; callers must
    not overlap ``send_strokes`` and ``watch_for_image``.
    """

    def __init__(
        self,
        instance_provider: InstanceProvider,
        config: HarnessConfig,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._instance_provider = instance_provider
        self._default_interval_ms = config.watch.interval_ms
        self._sequencer = InputSequencer(
            instance_provider, settle_ms=config.input.settle_ms, sleep=sleep
        )
        self._matcher = ImageMatcher(_LiveCanvas(instance_provider))
        self._watcher = ImageWatcher(self._matcher, sleep=sleep)
        self._files = VirtualFileBridge(self._filesystem, config.store)
        self._log = get_logger("facade")

    def _filesystem(self) -> Optional[VirtualFilesystem]:
        instance = self._instance_provider()
        return instance.filesystem if instance is not None else None

    def _require_instance(self) -> EmulatorInstance:
        instance = self._instance_provider()
        if instance is None:
            raise NotReadyError("Emulator is not running")
        return instance

    async def send_strokes(self, strokes: Iterable[str]) -> None:
        tokens = list(strokes)
        keycodes = translate(tokens)
        self._log.debug("Sending strokes {} as {}", tokens, keycodes)
        await self._sequencer.send(keycodes)

    async def watch_for_image(
        self,
        image: WatchImage,
        abort_signal: Optional[asyncio.Event] = None,
        interval_ms: Optional[int] = None,
    ) -> None:
        self._require_instance()
        await self._watcher.watch(
            image,
            abort_signal=abort_signal,
            interval_ms=(
                self._default_interval_ms if interval_ms is None else interval_ms
            ),
        )

    def has_image(self, image: WatchImage) -> bool:
        self._require_instance()
        return self._matcher.matches(image)

    async def write_file(self, path: str, contents: bytes) -> None:
        await self._files.write(path, contents)

    async def get_file(self, path: str) -> bytes:
        return await self._files.read(path)


class DosboxSession:
    """Own one emulator instance from boot to teardown.

    Use as ``async with DosboxSession(config, runtime) as session``. The
    instance is terminated on every exit path. A failed boot leaves
    ``failed`` set and ``error`` holding the cause.
    """

    def __init__(
        self,
        config: HarnessConfig,
        runtime: EmulatorRuntime,
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._config = config
        self._runtime = runtime
        self._instance: Optional[EmulatorInstance] = None
        self.failed = False
        self.error: Optional[BaseException] = None
        self.facade = AutomationFacade(lambda: self._instance, config, sleep=sleep)
        self._log = get_logger("session")

    @classmethod
    def from_config(
        cls, config: HarnessConfig, factory_path: Optional[str] = None
    ) -> "DosboxSession":
        return cls(config, build_runtime(config, factory_path))

    @property
    def instance(self) -> Optional[EmulatorInstance]:
        return self._instance

    @property
    def running(self) -> bool:
        return self._instance is not None

    def _options(self) -> EmulatorOptions:
        emulator = self._config.emulator
        return EmulatorOptions(
            module_url=emulator.module_url,
            autolock=emulator.autolock,
            keyboard_target="canvas",
            canvas_size=(emulator.canvas_width, emulator.canvas_height),
        )

    def _program_args(self) -> list[str]:
        game = self._config.game
        args: list[str] = []
        if game.archive is not None:
            dos_dir = game.mount_path.strip("/").replace("/", "\\")
            args += ["-c", f"cd {dos_dir}"]
        if game.exe:
            args += ["-c", game.exe]
        return args

    def _mark_failed(self, exc: BaseException) -> None:
        self.failed = True
        self.error = exc
        self._log.opt(exception=exc).error("Emulator setup failed: {}", exc)

    async def start(self) -> "DosboxSession":
        if self._instance is not None:
            raise HarnessError("Session already started")
        game = self._config.game
        try:
            self._instance = await self._runtime.start(self._options())
            fs = self._instance.filesystem
            if game.archive is not None:
                await fs.extract(game.archive, game.mount_path)
                fs.change_directory(game.mount_path)
            await self._instance.run(self._program_args())
            self._log.info("Emulator started with {}", game.exe or "no program")
            await self.facade.send_strokes(game.post_start)
        except Exception as exc:
            self._mark_failed(exc)
            try:
                self.close()
            except Exception:
                # close() already logged the terminate failure.
                pass
            raise EmulatorSetupError(f"Emulator setup failed: {exc}") from exc
        return self

    def close(self) -> None:
        instance, self._instance = self._instance, None
        if instance is None:
            return
        try:
            instance.terminate()
        except Exception:
            self._log.exception("Error while terminating emulator")
            raise
        self._log.info("Emulator terminated")

    async def __aenter__(self) -> "DosboxSession":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
