"""Exception hierarchy for the backuplit service."""

from __future__ import annotations


class BackuplitError(RuntimeError):
    """Base class for every failure raised by backuplit."""


class BackupError(BackuplitError):
    """Raised when a single backup attempt fails.

    ``stage`` names the pipeline step that failed (``"archive"`` or ``"upload"``).
    """

    stage = "backup"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ArchiveError(BackupError):
    """Raised when the source directory cannot be turned into an archive."""

    stage = "archive"


class UploadError(BackupError):
    """Raised when the blob sink rejects an upload or the transport fails."""

    stage = "upload"


class WatchError(BackuplitError):
    """Raised when change notifications cannot be subscribed to or stop arriving."""


class ConfigError(BackuplitError, ValueError):
    """Raised for configuration values that cannot be defaulted."""


__all__ = [
    "ArchiveError",
    "BackupError",
    "BackuplitError",
    "ConfigError",
    "UploadError",
    "WatchError",
]
