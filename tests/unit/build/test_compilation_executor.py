"""Unit tests for CompilationExecutor."""

import dataclasses
import json
import os
import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from rocksbuild.build.compilation_executor import (
    CompilationError,
    CompilationExecutor,
    command_record_path,
    parse_depfile,
)
from rocksbuild.build.flag_builder import BuildConfiguration
from rocksbuild.config import ToolchainFamily


@pytest.fixture
def compiler(tmp_path):
    path = tmp_path / "bin" / "c++"
    path.parent.mkdir()
    path.write_text("")
    return path


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "src" / "db.cc"
    path.parent.mkdir()
    path.write_text("int x;\n")
    return path


@pytest.fixture
def config(tmp_path):
    return BuildConfiguration(
        defines={"NDEBUG": "1"},
        flags=("-std=c++11",),
        include_dirs=(tmp_path / "inc",),
    )


class TestBuildCommand:
    """Test command-line construction."""

    def test_gnu_command(self, compiler, source, config, tmp_path):
        executor = CompilationExecutor(compiler, ToolchainFamily.GNU)
        obj = tmp_path / "db.o"

        cmd = executor.build_command(source, obj, config)

        assert cmd == [
            str(compiler),
            "-c",
            "-fPIC",
            "-MMD",
            "-MF",
            str(tmp_path / "db.d"),
            "-std=c++11",
            "-DNDEBUG=1",
            f"-I{tmp_path / 'inc'}",
            str(source),
            "-o",
            str(obj),
        ]

    def test_msvc_command(self, compiler, source, config, tmp_path):
        executor = CompilationExecutor(compiler, ToolchainFamily.MSVC)
        obj = tmp_path / "db.obj"

        cmd = executor.build_command(source, obj, config)

        assert cmd[:3] == [str(compiler), "/nologo", "/c"]
        assert "/DNDEBUG=1" in cmd
        assert cmd[-2:] == [str(source), f"/Fo{obj}"]

    def test_object_suffix(self):
        assert CompilationExecutor.object_suffix(ToolchainFamily.GNU) == ".o"
        assert CompilationExecutor.object_suffix(ToolchainFamily.MSVC) == ".obj"


def _fake_compiler(header=None):
    """subprocess.run stand-in that writes the object and its depfile."""
    def run(cmd, **kwargs):
        obj = Path(cmd[cmd.index("-o") + 1])
        depfile = Path(cmd[cmd.index("-MF") + 1])
        source = cmd[cmd.index("-o") - 1]
        obj.write_text("object")
        deps = [source] + ([str(header)] if header else [])
        depfile.write_text(f"{obj}: " + " \\\n ".join(deps) + "\n")
        return Mock(returncode=0, stdout="", stderr="")
    return run


class TestParseDepfile:
    """Test depfile parsing."""

    def test_continuation_lines(self):
        text = "out/db.o: /src/db.cc /src/db.h \\\n /src/port.h\n"
        assert parse_depfile(text) == [Path("/src/db.cc"), Path("/src/db.h"), Path("/src/port.h")]

    def test_escaped_spaces(self):
        assert parse_depfile("a.o: my\\ dir/a.cc\n") == [Path("my dir/a.cc")]

    def test_phony_targets(self):
        text = "a.o: a.cc a.h\na.h:\n"
        assert parse_depfile(text) == [Path("a.cc"), Path("a.h")]


class TestNeedsRebuild:
    """Test incremental rebuild checks."""

    @pytest.fixture
    def header(self, source):
        path = source.parent / "db.h"
        path.write_text("#define ANSWER 1\n")
        return path

    @pytest.fixture
    def built(self, compiler, source, config, header, tmp_path):
        """An executor and an object compiled once with ``config``."""
        executor = CompilationExecutor(compiler, ToolchainFamily.GNU)
        obj = tmp_path / "obj" / "db.o"
        with patch("subprocess.run", side_effect=_fake_compiler(header)):
            executor.compile_source(source, obj, config)
        os.utime(source, (1000, 1000))
        os.utime(header, (1000, 1000))
        os.utime(obj, (2000, 2000))
        return executor, obj

    def test_missing_object(self, compiler, source, config, tmp_path):
        executor = CompilationExecutor(compiler, ToolchainFamily.GNU)
        assert executor.needs_rebuild(source, tmp_path / "missing.o", config)

    def test_up_to_date(self, built, source, config):
        executor, obj = built
        assert not executor.needs_rebuild(source, obj, config)

    def test_command_recorded(self, built, source, config):
        executor, obj = built
        record = command_record_path(obj)
        assert json.loads(record.read_text()) == executor.build_command(source, obj, config)

    def test_source_newer_than_object(self, built, source, config):
        executor, obj = built
        os.utime(source, (3000, 3000))

        assert executor.needs_rebuild(source, obj, config)

    def test_changed_define_rebuilds(self, built, source, config):
        """Test an object built with other defines is not reused."""
        executor, obj = built
        changed = dataclasses.replace(config, defines={"NDEBUG": "1", "ANSWER": "2"})

        assert executor.needs_rebuild(source, obj, changed)

    def test_changed_flags_rebuild(self, built, source, config):
        executor, obj = built
        changed = dataclasses.replace(config, flags=("-std=c++14",))

        assert executor.needs_rebuild(source, obj, changed)

    def test_header_newer_than_object(self, built, source, config, header):
        """Test editing only an included header forces a rebuild."""
        executor, obj = built
        header.write_text("#define ANSWER 2\n")
        os.utime(header, (3000, 3000))

        assert executor.needs_rebuild(source, obj, config)

    def test_deleted_header(self, built, source, config, header):
        executor, obj = built
        header.unlink()

        assert executor.needs_rebuild(source, obj, config)

    def test_missing_command_record(self, built, source, config):
        executor, obj = built
        command_record_path(obj).unlink()

        assert executor.needs_rebuild(source, obj, config)

    def test_missing_depfile(self, built, source, config):
        executor, obj = built
        obj.with_suffix(".d").unlink()

        assert executor.needs_rebuild(source, obj, config)

    def test_failed_compile_leaves_no_record(self, built, source, config):
        executor, obj = built

        with patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=1, stdout="", stderr="error")
            with pytest.raises(CompilationError):
                executor.compile_source(source, obj, config)

        assert not command_record_path(obj).exists()
        assert executor.needs_rebuild(source, obj, config)

    def test_msvc_always_rebuilds(self, compiler, source, config, tmp_path):
        executor = CompilationExecutor(compiler, ToolchainFamily.MSVC)
        obj = tmp_path / "db.obj"
        obj.write_text("")

        assert executor.depfile_path(obj) is None
        assert executor.needs_rebuild(source, obj, config)


class TestCompileSource:
    """Test running the compiler."""

    def test_success(self, compiler, source, config, tmp_path):
        executor = CompilationExecutor(compiler, ToolchainFamily.GNU)
        obj = tmp_path / "obj" / "db.o"

        with patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=0, stdout="", stderr="")
            result = executor.compile_source(source, obj, config)

        assert result == obj
        assert obj.parent.is_dir()
        assert mock_run.call_args[0][0][-1] == str(obj)

    def test_failure_reports_stderr(self, compiler, source, config, tmp_path):
        executor = CompilationExecutor(compiler, ToolchainFamily.GNU)

        with patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=1, stdout="", stderr="db.cc:1: error: boom")
            with pytest.raises(CompilationError) as exc_info:
                executor.compile_source(source, tmp_path / "db.o", config)

        assert "Compilation failed" in str(exc_info.value)
        assert "boom" in str(exc_info.value)

    def test_timeout(self, compiler, source, config, tmp_path):
        executor = CompilationExecutor(compiler, ToolchainFamily.GNU, timeout=1)

        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("c++", 1)):
            with pytest.raises(CompilationError, match="timeout"):
                executor.compile_source(source, tmp_path / "db.o", config)

    def test_missing_compiler(self, source, config, tmp_path):
        executor = CompilationExecutor(tmp_path / "nope", ToolchainFamily.GNU)

        with pytest.raises(CompilationError, match="Compiler not found"):
            executor.compile_source(source, tmp_path / "db.o", config)

    def test_missing_source(self, compiler, config, tmp_path):
        executor = CompilationExecutor(compiler, ToolchainFamily.GNU)

        with pytest.raises(CompilationError, match="Source file not found"):
            executor.compile_source(tmp_path / "gone.cc", tmp_path / "gone.o", config)
