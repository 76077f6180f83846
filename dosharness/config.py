"""Configuration loading and validation using Pydantic models."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class EmulatorConfig(BaseModel):
    variant: str = Field("wdosbox", description="Emulator build to load (wdosbox, dosbox).")
    module_url_template: str = Field(
        "/dosbox/{variant}.js",
        description="Location of the emulator module; {variant} is substituted.",
    )
    autolock: bool = Field(True, description="Lock the pointer to the canvas on click.")
    factory: str = Field(
        "dosharness.emulator.memory:create_runtime",
        description="Import path (module:attribute) of the emulator runtime factory.",
    )
    canvas_width: int = Field(640, ge=1)
    canvas_height: int = Field(480, ge=1)

    @property
    def module_url(self) -> str:
        return self.module_url_template.format(variant=self.variant)

    @field_validator("factory")
    @classmethod
    def validate_factory(cls, value: str) -> str:
        module, sep, attr = value.partition(":")
        if not module or not sep or not attr:
            raise ValueError("factory must look like 'package.module:attribute'")
        return value


class GameConfig(BaseModel):
    archive: Optional[Path] = Field(
        None, description="Zip archive extracted into the mount path before boot."
    )
    exe: Optional[str] = Field(None, description="DOS executable started after boot.")
    mount_path: str = Field("/game", description="Virtual directory the archive lands in.")
    post_start: list[str] = Field(
        default_factory=list,
        description="Stroke tokens sent once the program has started.",
    )

    @field_validator("mount_path")
    @classmethod
    def validate_mount_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("mount_path must be absolute")
        return value.rstrip("/") or "/"


class InputConfig(BaseModel):
    settle_ms: int = Field(
        100,
        ge=0,
        description="Pause after every key-down and key-up event.",
    )


class WatchConfig(BaseModel):
    interval_ms: int = Field(64, ge=1, description="Delay between frame checks.")
    default_timeout_s: float = Field(
        30.0,
        gt=0,
        description="Deadline applied by the script runner when a step sets none.",
    )


class StoreConfig(BaseModel):
    url: str = Field(
        "sqlite:///./data/idbfs.sqlite3",
        description="SQLAlchemy URL of the persistent store the filesystem syncs to.",
    )
    name: str = Field(
        "/game",
        description="Store name; follows game.mount_path unless set explicitly.",
    )
    version: int = Field(21, ge=1, description="Schema version requested on open.")


class LoggingConfig(BaseModel):
    level: str = Field("INFO")
    log_dir: Optional[Path] = None
    serialize: bool = Field(False, description="Emit JSON lines instead of text.")
    retention_days: int = Field(14, ge=1, description="Days of rotated log files to keep.")


class HarnessConfig(BaseModel):
    emulator: EmulatorConfig = EmulatorConfig()
    game: GameConfig = GameConfig()
    input: InputConfig = InputConfig()
    watch: WatchConfig = WatchConfig()
    store: StoreConfig = StoreConfig()
    logging: LoggingConfig = LoggingConfig()

    @model_validator(mode="after")
    def bind_store_to_mount(self) -> "HarnessConfig":
        mount = self.game.mount_path
        if "name" not in self.store.model_fields_set:
            self.store = self.store.model_copy(update={"name": mount})
        elif self.store.name != mount:
            raise ValueError(
                f"store.name {self.store.name!r} must match game.mount_path {mount!r}"
            )
        return self


def load_config(path: Path | str | None) -> HarnessConfig:
    """Load YAML configuration from disk, falling back to defaults."""

    if path is None:
        return HarnessConfig()
    config_path = Path(path)
    if not config_path.exists():
        return HarnessConfig()
    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    config = HarnessConfig.model_validate(data)
    archive = config.game.archive
    if archive is not None and not archive.is_absolute():
        config.game.archive = (config_path.parent / archive).resolve()
    return config
