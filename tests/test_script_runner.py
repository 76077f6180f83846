from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path

import pytest
import yaml

from conftest import solid_patch
from dosharness.config import HarnessConfig, InputConfig
from dosharness.emulator.memory import InMemoryEmulatorRuntime
from dosharness.errors import ScriptError, ScriptStepError
from dosharness.script import ScriptRunner, load_script
from dosharness.session import DosboxSession
from dosharness.vision.watch_image import WatchImage, save_watch_image

BLUE = (0, 0, 255, 255)


def _fast_config(harness_config: HarnessConfig) -> HarnessConfig:
    return harness_config.model_copy(update={"input": InputConfig(settle_ms=0)})


def _paint_on_enter(emulator, code: int, is_down: bool) -> None:
    if code == 13 and not is_down:
        emulator.canvas.paint(0, 0, solid_patch(8, 8, BLUE))


def _write_fixture(tmp_path: Path) -> Path:
    frame = solid_patch(640, 480, (0, 0, 0, 255))
    frame[0:8, 0:8] = BLUE
    return save_watch_image(WatchImage.from_frame(frame, 0, 0, 8, 8), tmp_path / "blue.json")


def _write_script(tmp_path: Path, steps) -> Path:
    path = tmp_path / "script.yml"
    path.write_text(yaml.safe_dump({"name": "demo", "steps": steps}), encoding="utf-8")
    return path


def _run(config: HarnessConfig, script_path: Path, on_key=None):
    runtime = InMemoryEmulatorRuntime(store_config=config.store, on_key=on_key)

    async def scenario():
        async with DosboxSession(config, runtime) as session:
            runner = ScriptRunner(session.facade, config, script_path.parent)
            return await runner.run(load_script(script_path))

    return asyncio.run(scenario()), runtime


def test_script_runs_every_step(harness_config, tmp_path) -> None:
    config = _fast_config(harness_config)
    _write_fixture(tmp_path)
    (tmp_path / "input.sav").write_bytes(b"SAVEGAME")
    script = _write_script(
        tmp_path,
        [
            {"strokes": [":run", "enter"]},
            {"watch": {"image": "blue.json", "timeout_s": 2, "interval_ms": 1}},
            {"expect_image": "blue.json"},
            {"write": {"path": "/game/slot1.sav", "source": "input.sav"}},
            {"sleep_ms": 1},
            {
                "read": {
                    "path": "/game/slot1.sav",
                    "dest": "out/slot1.sav",
                    "expect_sha256": hashlib.sha256(b"SAVEGAME").hexdigest(),
                }
            },
        ],
    )

    result, runtime = _run(config, script, on_key=_paint_on_enter)

    assert result.name == "demo"
    assert [step.kind for step in result.steps] == [
        "strokes",
        "watch",
        "expect_image",
        "write",
        "sleep_ms",
        "read",
    ]
    assert (tmp_path / "out" / "slot1.sav").read_bytes() == b"SAVEGAME"
    assert runtime.instances[0].terminate_calls == 1


def test_watch_timeout_fails_the_step(harness_config, tmp_path) -> None:
    config = _fast_config(harness_config)
    _write_fixture(tmp_path)
    script = _write_script(
        tmp_path, [{"watch": {"image": "blue.json", "timeout_s": 0.05, "interval_ms": 5}}]
    )

    with pytest.raises(ScriptStepError) as excinfo:
        _run(config, script)

    assert excinfo.value.step_index == 0
    assert excinfo.value.kind == "watch"


def test_watch_shorthand_uses_default_timeout(harness_config, tmp_path) -> None:
    config = _fast_config(harness_config)
    _write_fixture(tmp_path)
    script = _write_script(tmp_path, [{"strokes": ["enter"]}, {"watch": "blue.json"}])

    result, _ = _run(config, script, on_key=_paint_on_enter)

    assert result.steps[1].detail == "matched blue.json"


def test_expect_image_mismatch_fails(harness_config, tmp_path) -> None:
    config = _fast_config(harness_config)
    _write_fixture(tmp_path)
    script = _write_script(tmp_path, [{"expect_image": "blue.json"}])

    with pytest.raises(ScriptStepError) as excinfo:
        _run(config, script)
    assert excinfo.value.kind == "expect_image"


def test_read_checksum_mismatch_fails(harness_config, tmp_path) -> None:
    config = _fast_config(harness_config)
    (tmp_path / "input.sav").write_bytes(b"A")
    script = _write_script(
        tmp_path,
        [
            {"write": {"path": "/game/a.sav", "source": "input.sav"}},
            {"read": {"path": "/game/a.sav", "expect_sha256": "00" * 32}},
        ],
    )

    with pytest.raises(ScriptStepError) as excinfo:
        _run(config, script)
    assert excinfo.value.step_index == 1


def test_script_may_be_a_bare_list(tmp_path) -> None:
    path = tmp_path / "steps.yml"
    path.write_text("- strokes: [enter]\n- sleep_ms: 5\n", encoding="utf-8")

    script = load_script(path)

    assert script.name == "steps"
    assert [step.kind for step in script.steps] == ["strokes", "sleep_ms"]


@pytest.mark.parametrize(
    "steps",
    [
        [{"strokes": ["enter"], "sleep_ms": 5}],
        [{}],
        [{"teleport": "x"}],
        [{"sleep_ms": -1}],
    ],
)
def test_invalid_steps_are_rejected(tmp_path, steps) -> None:
    with pytest.raises(ScriptError):
        load_script(_write_script(tmp_path, steps))


def test_unreadable_script(tmp_path) -> None:
    with pytest.raises(ScriptError):
        load_script(tmp_path / "nope.yml")
