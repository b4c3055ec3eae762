"""Unit tests for NativeCompiler."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from rocksbuild.build.archive_creator import ArchiveCreator
from rocksbuild.build.compilation_executor import CompilationError, CompilationExecutor
from rocksbuild.build.flag_builder import BuildConfiguration
from rocksbuild.build.native_compiler import NativeCompiler
from rocksbuild.config import ToolchainFamily
from rocksbuild.packages.toolchain import NativeToolchain


@pytest.fixture
def toolchain():
    return NativeToolchain(ToolchainFamily.GNU, Path("/usr/bin/c++"), Path("/usr/bin/ar"))


@pytest.fixture
def executor():
    executor = Mock(spec=CompilationExecutor)
    executor.needs_rebuild.return_value = True
    executor.compile_source.side_effect = lambda src, obj, config: obj
    return executor


@pytest.fixture
def archiver():
    archiver = Mock(spec=ArchiveCreator)
    archiver.create_archive.side_effect = lambda path, objects: path
    return archiver


def test_object_layout(toolchain, tmp_path):
    compiler = NativeCompiler(toolchain, tmp_path / "out")
    root = tmp_path / "rocksdb"

    obj = compiler.object_path(root / "db" / "db_impl.cc", root, "librocksdb.a")

    assert obj == tmp_path / "out" / "obj" / "librocksdb" / "db" / "db_impl.o"


def test_object_outside_root_uses_filename(toolchain, tmp_path):
    compiler = NativeCompiler(toolchain, tmp_path / "out")

    obj = compiler.object_path(tmp_path / "out" / "build_version.cc", tmp_path / "rocksdb", "librocksdb.a")

    assert obj == tmp_path / "out" / "obj" / "librocksdb" / "build_version.o"


def test_msvc_object_suffix(tmp_path):
    toolchain = NativeToolchain(ToolchainFamily.MSVC, Path("cl.exe"), Path("lib.exe"))
    compiler = NativeCompiler(toolchain, tmp_path)

    obj = compiler.object_path(tmp_path / "src" / "a.cc", tmp_path / "src", "rocksdb.lib")

    assert obj == tmp_path / "obj" / "rocksdb" / "a.obj"


def test_compile_all_and_archive(toolchain, executor, archiver, tmp_path):
    out = tmp_path / "out"
    root = tmp_path / "snappy"
    sources = [root / "snappy.cc", root / "snappy-c.cc"]
    config = BuildConfiguration()
    compiler = NativeCompiler(toolchain, out, executor=executor, archiver=archiver)

    archive = compiler.compile(sources, config, "libsnappy.a", source_root=root)

    assert archive == out / "libsnappy.a"
    assert executor.compile_source.call_count == 2
    archived = archiver.create_archive.call_args[0][1]
    assert archived == [
        out / "obj" / "libsnappy" / "snappy.o",
        out / "obj" / "libsnappy" / "snappy-c.o",
    ]


def test_up_to_date_objects_skipped(toolchain, executor, archiver, tmp_path):
    """Test fresh objects are archived without recompiling."""
    executor.needs_rebuild.return_value = False
    compiler = NativeCompiler(toolchain, tmp_path, executor=executor, archiver=archiver)

    compiler.compile([tmp_path / "a.cc"], BuildConfiguration(), "liba.a", source_root=tmp_path)

    executor.compile_source.assert_not_called()
    archiver.create_archive.assert_called_once()


def test_first_failure_aborts(toolchain, executor, archiver, tmp_path):
    executor.compile_source.side_effect = CompilationError("Compilation failed for a.cc")
    compiler = NativeCompiler(toolchain, tmp_path, executor=executor, archiver=archiver)

    with pytest.raises(CompilationError):
        compiler.compile(
            [tmp_path / "a.cc", tmp_path / "b.cc"],
            BuildConfiguration(),
            "liba.a",
            source_root=tmp_path,
        )

    assert executor.compile_source.call_count == 1
    archiver.create_archive.assert_not_called()
