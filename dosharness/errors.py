"""Harness error types."""

from __future__ import annotations


class HarnessError(RuntimeError):
    """Base error for the automation harness."""


class InvalidStrokeError(HarnessError, ValueError):
    """A stroke token cannot be translated into key codes."""

    def __init__(self, message: str, *, token: str, character: str | None = None) -> None:
        super().__init__(message)
        self.token = token
        self.character = character


class NotReadyError(HarnessError):
    """The emulator has not finished booting or was already released."""


class VirtualFileNotFoundError(HarnessError, FileNotFoundError):
    """No synced record exists for a virtual path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"No synced file at {path}")
        self.path = path


class StoreVersionError(HarnessError):
    """Persistent store schema is newer than the requested version."""


class EmulatorSetupError(HarnessError):
    """Booting the emulated program failed."""


class ScriptError(HarnessError):
    """Invalid automation script."""


class ScriptStepError(ScriptError):
    """An automation step did not reach its expected outcome."""

    def __init__(self, message: str, *, step_index: int, kind: str) -> None:
        super().__init__(message)
        self.step_index = step_index
        self.kind = kind
