import io
import logging
import sys
import tarfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backuplit.errors import ArchiveError, BackupError, UploadError  # noqa: E402
from backuplit.models import BackupJob  # noqa: E402
from backuplit.pipeline import BackupPipeline  # noqa: E402


class RecordingSink:
    """In-memory blob sink that overwrites objects like a real store."""

    def __init__(self, fail_with: Exception | None = None):
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.calls = 0
        self.fail_with = fail_with

    def put_object(self, bucket, object_name, data, content_type="application/gzip"):
        self.calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.objects[(bucket, object_name)] = (data, content_type)


def read_file(data: bytes, name: str) -> bytes:
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
        return tar.extractfile(name).read()


def make_pipeline(sink: RecordingSink) -> BackupPipeline:
    return BackupPipeline(sink, logging.getLogger("pipeline-tests"))


def test_run_backup_uploads_archive(tmp_path: Path) -> None:
    (tmp_path / "db.txt").write_text("v1")
    sink = RecordingSink()
    job = BackupJob(source_dir=tmp_path, bucket="bucket-a", object_name="db")

    result = make_pipeline(sink).run_backup(job)

    data, content_type = sink.objects[("bucket-a", "db")]
    assert content_type == "application/gzip"
    assert read_file(data, "db/db.txt") == b"v1"
    assert result.bucket == "bucket-a"
    assert result.object_name == "db"
    assert result.size_bytes == len(data)
    assert result.duration_seconds >= 0


def test_archive_failure_never_uploads(tmp_path: Path) -> None:
    sink = RecordingSink()
    job = BackupJob(source_dir=tmp_path / "missing", bucket="bucket-a")

    with pytest.raises(ArchiveError) as excinfo:
        make_pipeline(sink).run_backup(job)

    assert excinfo.value.stage == "archive"
    assert sink.calls == 0


def test_upload_failure_is_tagged_and_not_retried(tmp_path: Path) -> None:
    (tmp_path / "db.txt").write_text("v1")
    sink = RecordingSink(fail_with=UploadError("rejected"))
    job = BackupJob(source_dir=tmp_path, bucket="bucket-a")

    with pytest.raises(BackupError) as excinfo:
        make_pipeline(sink).run_backup(job)

    assert excinfo.value.stage == "upload"
    assert sink.calls == 1


def test_foreign_sink_error_is_wrapped_as_upload_error(tmp_path: Path) -> None:
    (tmp_path / "db.txt").write_text("v1")
    sink = RecordingSink(fail_with=ConnectionResetError("peer reset"))
    job = BackupJob(source_dir=tmp_path, bucket="bucket-a")

    with pytest.raises(UploadError) as excinfo:
        make_pipeline(sink).run_backup(job)

    assert excinfo.value.stage == "upload"
    assert isinstance(excinfo.value.__cause__, ConnectionResetError)
    assert sink.calls == 1


def test_foreign_archiver_error_is_wrapped_as_archive_error(tmp_path: Path) -> None:
    def broken_archiver(source_dir, object_name):
        raise ValueError("bad entry")

    sink = RecordingSink()
    pipeline = BackupPipeline(sink, archiver=broken_archiver)

    with pytest.raises(ArchiveError) as excinfo:
        pipeline.run_backup(BackupJob(source_dir=tmp_path, bucket="b"))

    assert excinfo.value.stage == "archive"
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert sink.calls == 0


def test_consecutive_backups_overwrite_same_object(tmp_path: Path) -> None:
    source = tmp_path / "source"
    source.mkdir()
    (source / "db.txt").write_text("first")
    sink = RecordingSink()
    pipeline = make_pipeline(sink)
    job = BackupJob(source_dir=source, bucket="bucket-a")

    pipeline.run_backup(job)
    first, _ = sink.objects[("bucket-a", "backup")]
    (source / "db.txt").write_text("second")
    (source / "new.txt").write_text("added")
    pipeline.run_backup(job)

    assert sink.calls == 2
    assert list(sink.objects) == [("bucket-a", "backup")]
    latest, _ = sink.objects[("bucket-a", "backup")]
    assert read_file(first, "backup/db.txt") == b"first"
    assert read_file(latest, "backup/db.txt") == b"second"
    assert read_file(latest, "backup/new.txt") == b"added"


def test_custom_archiver_is_used(tmp_path: Path) -> None:
    from backuplit.models import BackupArtifact

    seen = []

    def fake_archiver(source_dir, object_name):
        seen.append((source_dir, object_name))
        return BackupArtifact(object_name=object_name, data=b"fake")

    sink = RecordingSink()
    pipeline = BackupPipeline(sink, archiver=fake_archiver)
    pipeline.run_backup(BackupJob(source_dir=tmp_path, bucket="b", object_name="x"))

    assert seen == [(tmp_path, "x")]
    assert sink.objects[("b", "x")] == (b"fake", "application/gzip")
