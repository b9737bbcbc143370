"""Data models used across the backuplit service."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import timedelta
from functools import reduce
from pathlib import Path
from typing import Iterable, Union

from backuplit.errors import ConfigError

DEFAULT_OBJECT_NAME = "backup"
GZIP_CONTENT_TYPE = "application/gzip"
DEFAULT_DEBOUNCE_WINDOW = timedelta(seconds=1)


class ChangeKind(enum.Flag):
    """Kinds of filesystem change a notification may carry."""

    CREATED = enum.auto()
    MODIFIED = enum.auto()
    DELETED = enum.auto()
    MOVED = enum.auto()
    CLOSED_WRITE = enum.auto()
    CLOSED_NO_WRITE = enum.auto()
    OPENED = enum.auto()

    @classmethod
    def parse(cls, value: Union[str, Iterable[str]]) -> "ChangeKind":
        """Build a flag union from names such as ``"created,closed_write"``."""
        if isinstance(value, str):
            names = value.split(",")
        else:
            names = list(value)

        kinds = []
        for raw_name in names:
            name = str(raw_name).strip().upper().replace("-", "_")
            if not name:
                continue
            try:
                kinds.append(cls[name])
            except KeyError:
                raise ConfigError(f"Unknown change kind: {raw_name!r}") from None

        if not kinds:
            raise ConfigError("At least one change kind is required")
        return reduce(lambda acc, kind: acc | kind, kinds)

    def names(self) -> list[str]:
        """Return the lowercase member names contained in this flag union."""
        return [member.name.lower() for member in type(self) if member in self]


DEFAULT_CHANGE_KINDS = (
    ChangeKind.CLOSED_WRITE
    | ChangeKind.CREATED
    | ChangeKind.DELETED
    | ChangeKind.MODIFIED
    | ChangeKind.CLOSED_NO_WRITE
)


@dataclass(frozen=True)
class IntervalPolicy:
    """Fire a backup every ``period``."""

    period: timedelta

    def __post_init__(self) -> None:
        if self.period <= timedelta(0):
            raise ConfigError(f"Interval period must be positive, got {self.period}")


@dataclass(frozen=True)
class EventDebouncePolicy:
    """Fire a backup on matching filesystem changes, at most once per window."""

    change_kinds: ChangeKind = DEFAULT_CHANGE_KINDS
    debounce_window: timedelta = DEFAULT_DEBOUNCE_WINDOW
    recursive: bool = True

    def __post_init__(self) -> None:
        if not self.change_kinds:
            raise ConfigError("Event policy needs at least one change kind")
        if self.debounce_window < timedelta(0):
            raise ConfigError(f"Debounce window cannot be negative, got {self.debounce_window}")


TriggerPolicy = Union[IntervalPolicy, EventDebouncePolicy]


@dataclass(frozen=True)
class BackupJob:
    """What to back up, where to, and when."""

    source_dir: Path
    bucket: str
    object_name: str = DEFAULT_OBJECT_NAME
    trigger_policy: TriggerPolicy = field(default_factory=EventDebouncePolicy)


@dataclass(frozen=True)
class BackupArtifact:
    """In-memory gzip tarball produced for one backup attempt."""

    object_name: str
    data: bytes = field(repr=False)
    content_type: str = GZIP_CONTENT_TYPE

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class BackupResult:
    """Summary of a completed backup attempt."""

    bucket: str
    object_name: str
    size_bytes: int
    duration_seconds: float


__all__ = [
    "BackupArtifact",
    "BackupJob",
    "BackupResult",
    "ChangeKind",
    "DEFAULT_CHANGE_KINDS",
    "DEFAULT_DEBOUNCE_WINDOW",
    "DEFAULT_OBJECT_NAME",
    "EventDebouncePolicy",
    "GZIP_CONTENT_TYPE",
    "IntervalPolicy",
    "TriggerPolicy",
]
