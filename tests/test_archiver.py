import io
import sys
import tarfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backuplit.archiver import build_archive  # noqa: E402
from backuplit.errors import ArchiveError  # noqa: E402


def build_tree(base: Path) -> dict[str, bytes]:
    files = {
        "top.txt": b"top level",
        "data/db.sqlite": b"\x00\x01binary\xff" * 64,
        "data/nested/deep.log": b"line\n" * 10,
        "empty.bin": b"",
    }
    for relative, payload in files.items():
        target = base / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload)
    (base / "empty_dir").mkdir()
    return files


def read_members(data: bytes) -> dict[str, tarfile.TarInfo]:
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
        return {member.name: member for member in tar.getmembers()}


def test_archive_reproduces_tree_under_object_name(tmp_path: Path) -> None:
    source = tmp_path / "source"
    source.mkdir()
    files = build_tree(source)

    artifact = build_archive(source, "nightly")

    assert artifact.object_name == "nightly"
    assert artifact.content_type == "application/gzip"
    assert artifact.size == len(artifact.data)

    with tarfile.open(fileobj=io.BytesIO(artifact.data), mode="r:gz") as tar:
        members = tar.getmembers()
        regular = {m.name: tar.extractfile(m).read() for m in members if m.isfile()}
        directories = {m.name for m in members if m.isdir()}

    assert regular == {f"nightly/{name}": payload for name, payload in files.items()}
    assert directories == {
        "nightly",
        "nightly/data",
        "nightly/data/nested",
        "nightly/empty_dir",
    }
    assert all(m.name == "nightly" or m.name.startswith("nightly/") for m in members)


def test_archive_follows_symlinks(tmp_path: Path) -> None:
    outside = tmp_path / "outside.txt"
    outside.write_bytes(b"linked content")
    source = tmp_path / "source"
    source.mkdir()
    (source / "link.txt").symlink_to(outside)

    members = read_members(build_archive(source, "backup").data)

    assert members["backup/link.txt"].isfile()
    assert members["backup/link.txt"].size == len(b"linked content")


def test_archive_of_missing_directory_fails(tmp_path: Path) -> None:
    with pytest.raises(ArchiveError) as excinfo:
        build_archive(tmp_path / "missing", "backup")

    assert excinfo.value.stage == "archive"


def test_archive_of_regular_file_fails(tmp_path: Path) -> None:
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("data")

    with pytest.raises(ArchiveError):
        build_archive(not_a_dir, "backup")


def test_dangling_symlink_aborts_whole_archive(tmp_path: Path) -> None:
    source = tmp_path / "source"
    source.mkdir()
    (source / "ok.txt").write_text("fine")
    (source / "broken").symlink_to(tmp_path / "does-not-exist")

    with pytest.raises(ArchiveError):
        build_archive(source, "backup")


def test_archive_does_not_write_to_disk(tmp_path: Path) -> None:
    source = tmp_path / "source"
    source.mkdir()
    build_tree(source)
    before = sorted(p.relative_to(tmp_path) for p in tmp_path.rglob("*"))

    build_archive(source, "backup")

    after = sorted(p.relative_to(tmp_path) for p in tmp_path.rglob("*"))
    assert before == after
