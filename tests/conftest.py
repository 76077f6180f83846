from __future__ import annotations

import asyncio
import io
import sys
import zipfile
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dosharness.config import HarnessConfig, StoreConfig  # noqa: E402
from dosharness.storage.file_store import dispose_engines  # noqa: E402


class FakeClock:
    """Virtual time for coroutines that sleep through an injected function."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)

    def time(self) -> float:
        return self.now


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store_config(tmp_path: Path) -> StoreConfig:
    return StoreConfig(url=f"sqlite:///{tmp_path / 'idbfs.sqlite3'}")


@pytest.fixture
def harness_config(store_config: StoreConfig) -> HarnessConfig:
    return HarnessConfig(store=store_config)


@pytest.fixture(autouse=True)
def _dispose_store_engines():
    yield
    dispose_engines()


def solid_patch(width: int, height: int, color: tuple[int, int, int, int]) -> np.ndarray:
    patch = np.zeros((height, width, 4), dtype=np.uint8)
    patch[...] = np.asarray(color, dtype=np.uint8)
    return patch


def zip_bytes(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()
