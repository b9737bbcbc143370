"""One backup attempt: archive the source directory, then upload it."""

from __future__ import annotations

import logging
from pathlib import Path
from time import perf_counter
from typing import Callable, Optional

from backuplit.archiver import build_archive
from backuplit.errors import ArchiveError, BackupError, UploadError
from backuplit.models import BackupArtifact, BackupJob, BackupResult
from backuplit.storage import BlobSink

Archiver = Callable[[Path, str], BackupArtifact]


class BackupPipeline:
    """Run archive-and-upload attempts against a single blob sink.

    Attempts are synchronous and never retried here; failures surface as
    :class:`BackupError` subclasses whose ``stage`` says which step failed.
    """

    def __init__(
        self,
        sink: BlobSink,
        logger: Optional[logging.Logger] = None,
        *,
        archiver: Archiver = build_archive,
    ) -> None:
        self.sink = sink
        self.logger = logger or logging.getLogger(__name__)
        self.archiver = archiver

    def _archive(self, job: BackupJob) -> BackupArtifact:
        try:
            return self.archiver(job.source_dir, job.object_name)
        except BackupError:
            raise
        except Exception as exc:
            raise ArchiveError(f"Failed to archive {job.source_dir}: {exc}") from exc

    def _upload(self, job: BackupJob, artifact: BackupArtifact) -> None:
        try:
            self.sink.put_object(
                job.bucket,
                job.object_name,
                artifact.data,
                artifact.content_type,
            )
        except BackupError:
            raise
        except Exception as exc:
            raise UploadError(
                f"Failed to upload {job.object_name} to bucket {job.bucket}: {exc}"
            ) from exc

    def run_backup(self, job: BackupJob) -> BackupResult:
        self.logger.info("Starting backup of %s", job.source_dir)
        started = perf_counter()

        try:
            artifact = self._archive(job)
            self._upload(job, artifact)
        except BackupError as exc:
            self.logger.error("Backup of %s failed during %s: %s", job.source_dir, exc.stage, exc)
            raise

        result = BackupResult(
            bucket=job.bucket,
            object_name=job.object_name,
            size_bytes=artifact.size,
            duration_seconds=perf_counter() - started,
        )
        self.logger.info(
            "Backup completed: %s bytes uploaded to %s/%s in %.2fs",
            result.size_bytes,
            result.bucket,
            result.object_name,
            result.duration_seconds,
        )
        return result


__all__ = ["Archiver", "BackupPipeline"]
