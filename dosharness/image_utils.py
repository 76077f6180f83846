"""Image helper utilities for frame normalization and region encoding."""

from __future__ import annotations

import base64
from pathlib import Path

import numpy as np
from PIL import Image


def ensure_rgba(image: np.ndarray) -> np.ndarray:
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError("Expected RGB or RGBA image with shape HxWx3 or HxWx4")
    if image.dtype != np.uint8:
        image = image.astype(np.uint8)
    if image.shape[2] == 3:
        alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
        image = np.concatenate([image, alpha], axis=2)
    return np.ascontiguousarray(image)


def crop_region(frame: np.ndarray, sx: int, sy: int, sw: int, sh: int) -> np.ndarray | None:
    """Return the ``sw`` x ``sh`` region at ``(sx, sy)``, or ``None`` if it leaves the frame."""

    rgba = ensure_rgba(frame)
    height, width, _ = rgba.shape
    if sx < 0 or sy < 0 or sw <= 0 or sh <= 0:
        return None
    if sx + sw > width or sy + sh > height:
        return None
    return rgba[sy : sy + sh, sx : sx + sw]


def encode_region(region: np.ndarray) -> str:
    """Encode RGBA pixels row-major as base64 text."""

    rgba = ensure_rgba(region)
    return base64.b64encode(rgba.tobytes()).decode("ascii")


def decode_region(data: str, width: int, height: int) -> np.ndarray:
    raw = base64.b64decode(data.encode("ascii"), validate=True)
    expected = width * height * 4
    if len(raw) != expected:
        raise ValueError(
            f"Encoded region holds {len(raw)} bytes, expected {expected} for {width}x{height}"
        )
    return np.frombuffer(raw, dtype=np.uint8).reshape((height, width, 4))


def load_frame(path: Path | str) -> np.ndarray:
    with Image.open(path) as image:
        return ensure_rgba(np.asarray(image.convert("RGBA")))


def save_frame(frame: np.ndarray, path: Path | str) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(ensure_rgba(frame)).save(target, format="PNG")
    return target
