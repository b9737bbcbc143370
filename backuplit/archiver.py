"""Build in-memory gzip tarballs of a directory tree."""

from __future__ import annotations

import io
import logging
import os
import tarfile
from pathlib import Path
from typing import Union

from backuplit.errors import ArchiveError
from backuplit.models import BackupArtifact

LOGGER = logging.getLogger(__name__)

# zlib's own default; tarfile would otherwise use 9.
GZIP_COMPRESSION_LEVEL = 6


def build_archive(source_dir: Union[str, Path], object_name: str) -> BackupArtifact:
    """Archive ``source_dir`` under a single top-level entry named ``object_name``.

    Symlinks are followed, so a dangling link fails the whole attempt. Any
    unreadable entry raises :class:`ArchiveError`; no partial archive is returned.
    """
    source = Path(source_dir)
    if not source.exists():
        raise ArchiveError(f"Source directory does not exist: {source}")
    if not source.is_dir():
        raise ArchiveError(f"Source path is not a directory: {source}")
    if not os.access(source, os.R_OK | os.X_OK):
        raise ArchiveError(f"Source directory is not readable: {source}")

    buffer = io.BytesIO()
    try:
        with tarfile.open(
            fileobj=buffer,
            mode="w:gz",
            compresslevel=GZIP_COMPRESSION_LEVEL,
            dereference=True,
        ) as tar:
            tar.add(str(source), arcname=object_name, recursive=True)
    except (OSError, tarfile.TarError) as exc:
        raise ArchiveError(f"Failed to archive {source}: {exc}") from exc

    artifact = BackupArtifact(object_name=object_name, data=buffer.getvalue())
    LOGGER.debug("Archived %s into %s bytes", source, artifact.size)
    return artifact


__all__ = ["GZIP_COMPRESSION_LEVEL", "build_archive"]
