"""Unit tests for ArchiveCreator."""

from unittest.mock import Mock, patch

import pytest

from rocksbuild.build.archive_creator import ArchiveCreator, ArchiveError
from rocksbuild.config import ToolchainFamily


@pytest.fixture
def ar_path(tmp_path):
    path = tmp_path / "bin" / "ar"
    path.parent.mkdir()
    path.write_text("")
    return path


@pytest.fixture
def objects(tmp_path):
    paths = [tmp_path / "a.o", tmp_path / "b.o"]
    for path in paths:
        path.write_text("")
    return paths


def _fake_ar(archive_path):
    def run(cmd, **kwargs):
        archive_path.write_text("!<arch>\n")
        return Mock(returncode=0, stdout="", stderr="")
    return run


def test_gnu_command(ar_path, objects, tmp_path):
    creator = ArchiveCreator(ar_path, ToolchainFamily.GNU)
    archive = tmp_path / "librocksdb.a"

    cmd = creator.build_command(archive, objects)

    assert cmd == [str(ar_path), "crs", str(archive)] + [str(o) for o in objects]


def test_msvc_command(ar_path, objects, tmp_path):
    creator = ArchiveCreator(ar_path, ToolchainFamily.MSVC)
    archive = tmp_path / "rocksdb.lib"

    cmd = creator.build_command(archive, objects)

    assert cmd[:3] == [str(ar_path), "/nologo", f"/OUT:{archive}"]


def test_create_archive(ar_path, objects, tmp_path):
    creator = ArchiveCreator(ar_path, ToolchainFamily.GNU)
    archive = tmp_path / "out" / "librocksdb.a"

    with patch("subprocess.run", side_effect=_fake_ar(archive)):
        result = creator.create_archive(archive, objects)

    assert result == archive
    assert archive.exists()


def test_existing_archive_replaced(ar_path, objects, tmp_path):
    """Test a stale archive is removed before archiving."""
    creator = ArchiveCreator(ar_path, ToolchainFamily.GNU)
    archive = tmp_path / "librocksdb.a"
    archive.write_text("stale")
    seen = []

    def run(cmd, **kwargs):
        seen.append(archive.exists())
        archive.write_text("fresh")
        return Mock(returncode=0, stdout="", stderr="")

    with patch("subprocess.run", side_effect=run):
        creator.create_archive(archive, objects)

    assert seen == [False]
    assert archive.read_text() == "fresh"


def test_no_objects(ar_path, tmp_path):
    creator = ArchiveCreator(ar_path, ToolchainFamily.GNU)

    with pytest.raises(ArchiveError, match="No object files"):
        creator.create_archive(tmp_path / "librocksdb.a", [])


def test_missing_archiver(objects, tmp_path):
    creator = ArchiveCreator(tmp_path / "missing-ar", ToolchainFamily.GNU)

    with pytest.raises(ArchiveError, match="Archiver not found"):
        creator.create_archive(tmp_path / "librocksdb.a", objects)


def test_archiver_failure(ar_path, objects, tmp_path):
    creator = ArchiveCreator(ar_path, ToolchainFamily.GNU)

    with patch("subprocess.run") as mock_run:
        mock_run.return_value = Mock(returncode=1, stdout="", stderr="ar: bad object")
        with pytest.raises(ArchiveError, match="bad object"):
            creator.create_archive(tmp_path / "librocksdb.a", objects)


def test_archive_not_created(ar_path, objects, tmp_path):
    creator = ArchiveCreator(ar_path, ToolchainFamily.GNU)

    with patch("subprocess.run") as mock_run:
        mock_run.return_value = Mock(returncode=0, stdout="", stderr="")
        with pytest.raises(ArchiveError, match="was not created"):
            creator.create_archive(tmp_path / "librocksdb.a", objects)
