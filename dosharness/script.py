"""YAML automation scripts executed against a running session."""

from __future__ import annotations

import asyncio
import hashlib
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .config import HarnessConfig
from .errors import ScriptError, ScriptStepError
from .fs_utils import atomic_write_bytes
from .logging_utils import get_logger
from .session import AutomationFacade, DosboxSession
from .vision.watch_image import WatchImage, load_watch_image

SleepFn = Callable[[float], Awaitable[None]]


class WatchStep(BaseModel):
    model_config = ConfigDict(extra="forbid")

    image: Path
    timeout_s: Optional[float] = Field(None, gt=0)
    interval_ms: Optional[int] = Field(None, ge=1)


class WriteStep(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    source: Path


class ReadStep(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    dest: Optional[Path] = None
    expect_sha256: Optional[str] = None


class ScriptStep(BaseModel):
    model_config = ConfigDict(extra="forbid")

    strokes: Optional[list[str]] = None
    watch: Optional[WatchStep] = None
    expect_image: Optional[Path] = None
    write: Optional[WriteStep] = None
    read: Optional[ReadStep] = None
    sleep_ms: Optional[int] = Field(None, ge=0)

    @field_validator("watch", mode="before")
    @classmethod
    def _watch_shorthand(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"image": value}
        return value

    @model_validator(mode="after")
    def _exactly_one_action(self) -> "ScriptStep":
        set_fields = [name for name in self.model_fields_set if getattr(self, name) is not None]
        if len(set_fields) != 1:
            raise ValueError(f"each step needs exactly one action, got {sorted(set_fields)}")
        return self

    @property
    def kind(self) -> str:
        return next(name for name in self.model_fields_set if getattr(self, name) is not None)


class AutomationScript(BaseModel):
    name: Optional[str] = None
    steps: list[ScriptStep] = Field(default_factory=list)


@dataclass(slots=True)
class StepOutcome:
    index: int
    kind: str
    duration_s: float
    detail: Optional[str] = None


@dataclass(slots=True)
class ScriptResult:
    name: str
    steps: list[StepOutcome] = field(default_factory=list)


def load_script(path: Path | str) -> AutomationScript:
    script_path = Path(path)
    try:
        data = yaml.safe_load(script_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ScriptError(f"Cannot read script {script_path}: {exc}") from exc
    if isinstance(data, list):
        data = {"steps": data}
    if data is None:
        data = {}
    data.setdefault("name", script_path.stem)
    try:
        return AutomationScript.model_validate(data)
    except ValidationError as exc:
        raise ScriptError(f"Invalid script {script_path}: {exc}") from exc


class ScriptRunner:
    """Run script steps in order, failing fast on the first unmet expectation.

    The runner owns watch deadlines: it arms a loop timer that sets the abort
    signal, then re-checks the frame to tell a match from a timeout.
    """

    def __init__(
        self,
        facade: AutomationFacade,
        config: HarnessConfig,
        base_dir: Path,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._facade = facade
        self._config = config
        self._base_dir = base_dir
        self._sleep = sleep
        self._log = get_logger("script")

    def _resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self._base_dir / path

    def _load_image(self, path: Path) -> WatchImage:
        return load_watch_image(self._resolve(path))

    async def run(self, script: AutomationScript) -> ScriptResult:
        result = ScriptResult(name=script.name or "script")
        for index, step in enumerate(script.steps):
            started = time.monotonic()
            self._log.info("Step {} ({})", index, step.kind)
            detail = await self._run_step(index, step)
            result.steps.append(
                StepOutcome(
                    index=index,
                    kind=step.kind,
                    duration_s=time.monotonic() - started,
                    detail=detail,
                )
            )
        self._log.info("Script {} finished ({} steps)", result.name, len(result.steps))
        return result

    async def _run_step(self, index: int, step: ScriptStep) -> Optional[str]:
        kind = step.kind
        if kind == "strokes":
            await self._facade.send_strokes(step.strokes or [])
            return None
        if kind == "watch":
            return await self._watch(index, step.watch)
        if kind == "expect_image":
            image = self._load_image(step.expect_image)
            if not self._facade.has_image(image):
                raise ScriptStepError(
                    f"Frame does not show {step.expect_image}", step_index=index, kind=kind
                )
            return None
        if kind == "write":
            contents = self._resolve(step.write.source).read_bytes()
            await self._facade.write_file(step.write.path, contents)
            return f"{len(contents)} bytes"
        if kind == "read":
            return await self._read(index, step.read)
        await self._sleep(step.sleep_ms / 1000.0)
        return None

    async def _watch(self, index: int, step: WatchStep) -> str:
        image = self._load_image(step.image)
        timeout_s = step.timeout_s or self._config.watch.default_timeout_s
        abort = asyncio.Event()
        handle = asyncio.get_running_loop().call_later(timeout_s, abort.set)
        try:
            await self._facade.watch_for_image(image, abort, step.interval_ms)
        finally:
            handle.cancel()
        if not self._facade.has_image(image):
            raise ScriptStepError(
                f"Timed out after {timeout_s}s waiting for {step.image}",
                step_index=index,
                kind="watch",
            )
        return f"matched {step.image}"

    async def _read(self, index: int, step: ReadStep) -> str:
        contents = await self._facade.get_file(step.path)
        digest = hashlib.sha256(contents).hexdigest()
        if step.expect_sha256 and digest != step.expect_sha256.lower():
            raise ScriptStepError(
                f"{step.path} has sha256 {digest}, expected {step.expect_sha256}",
                step_index=index,
                kind="read",
            )
        if step.dest is not None:
            atomic_write_bytes(self._resolve(step.dest), contents)
        return digest


async def run_script(
    config: HarnessConfig,
    script_path: Path | str,
    factory_path: Optional[str] = None,
) -> ScriptResult:
    path = Path(script_path)
    script = load_script(path)
    async with DosboxSession.from_config(config, factory_path) as session:
        runner = ScriptRunner(session.facade, config, path.parent)
        return await runner.run(script)
