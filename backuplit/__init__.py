"""
Unattended single-directory backups to object storage.
"""

from .archiver import build_archive
from .errors import (
    ArchiveError,
    BackupError,
    BackuplitError,
    ConfigError,
    UploadError,
    WatchError,
)
from .models import (
    BackupArtifact,
    BackupJob,
    BackupResult,
    ChangeKind,
    EventDebouncePolicy,
    IntervalPolicy,
)
from .pipeline import BackupPipeline
from .storage import BlobSink, S3BlobSink

__all__ = [
    "ArchiveError",
    "BackupArtifact",
    "BackupError",
    "BackupJob",
    "BackupPipeline",
    "BackupResult",
    "BackuplitError",
    "BlobSink",
    "ChangeKind",
    "ConfigError",
    "EventDebouncePolicy",
    "IntervalPolicy",
    "S3BlobSink",
    "UploadError",
    "WatchError",
    "build_archive",
]
