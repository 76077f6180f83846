"""Reference snapshots of a frame region used as visual milestones."""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from ..image_utils import crop_region, encode_region


class WatchImage(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    sx: int = Field(ge=0)
    sy: int = Field(ge=0)
    sw: int = Field(ge=1)
    sh: int = Field(ge=1)
    image_data: str = Field(alias="imageData", min_length=1)

    @classmethod
    def from_frame(cls, frame: np.ndarray, sx: int, sy: int, sw: int, sh: int) -> "WatchImage":
        region = crop_region(frame, sx, sy, sw, sh)
        if region is None:
            height, width = frame.shape[:2]
            raise ValueError(
                f"Region {sw}x{sh}+{sx}+{sy} does not fit a {width}x{height} frame"
            )
        return cls(sx=sx, sy=sy, sw=sw, sh=sh, image_data=encode_region(region))

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True))


def load_watch_image(path: Path | str) -> WatchImage:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return WatchImage.model_validate(payload)


def save_watch_image(image: WatchImage, path: Path | str) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(image.to_json(), encoding="utf-8")
    return target
