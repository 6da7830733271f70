"""Data models for the slot pool and dispatch results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from subagent.constants import (
    DEFAULT_ALIVE_FILENAME,
    DEFAULT_WAKEUP_FILENAME,
    MESSAGES_DIRNAME,
    SLOT_PREFIX,
    WORKSPACE_EXTENSION,
)


@dataclass(frozen=True)
class Slot:
    """A numbered slot directory under the pool root.

    Attributes:
        ordinal: Integer suffix of the directory name (``subagent-<ordinal>``)
        path: Absolute slot directory path
    """

    ordinal: int
    path: Path

    @classmethod
    def at(cls, root: Path, ordinal: int) -> "Slot":
        return cls(ordinal=ordinal, path=root / f"{SLOT_PREFIX}{ordinal}")

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def config_path(self) -> Path:
        return self.path / f"{self.name}{WORKSPACE_EXTENSION}"

    @property
    def messages_dir(self) -> Path:
        return self.path / MESSAGES_DIRNAME

    @property
    def wakeup_path(self) -> Path:
        return self.path / DEFAULT_WAKEUP_FILENAME

    @property
    def alive_path(self) -> Path:
        return self.path / DEFAULT_ALIVE_FILENAME


@dataclass
class ProvisionResult:
    created: list[Path] = field(default_factory=list)
    skipped_existing: list[Path] = field(default_factory=list)
    skipped_locked: list[Path] = field(default_factory=list)

    @property
    def total_unlocked(self) -> int:
        return len(self.created) + len(self.skipped_existing)


@dataclass
class SlotInfo:
    """JSON-serializable slot summary."""

    name: str
    path: str
    workspace: str | None
    locked: bool
    status: str


class DispatchState(str, Enum):
    IDLE = "idle"
    CLAIMING = "claiming"
    PREPARING = "preparing"
    AWAITING_HOST_READY = "awaiting_host_ready"
    DISPATCHED = "dispatched"
    AWAITING_RESPONSE = "awaiting_response"
    RELEASED = "released"
    FAILED = "failed"


@dataclass
class DispatchResult:
    exit_code: int
    state: DispatchState
    subagent_name: str | None = None
    response_file: Path | None = None
    temp_file: Path | None = None
    response: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0
