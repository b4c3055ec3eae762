"""Tests for CLI utility helpers."""

import pytest

from rocksbuild.cli_utils import ErrorFormatter, PathValidator, format_size


class TestErrorFormatter:
    """Test error formatting and exit codes."""

    def test_print_error_goes_to_stderr(self, capsys):
        ErrorFormatter.print_error("Build failed!", "details here")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Build failed!" in captured.err
        assert "details here" in captured.err

    def test_print_success(self, capsys):
        ErrorFormatter.print_success("Done")
        assert "✓ Done" in capsys.readouterr().out

    def test_handle_build_error_exits_1(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_build_error("Build failed!", RuntimeError("boom"))

        assert exc_info.value.code == 1
        assert "boom" in capsys.readouterr().err

    def test_keyboard_interrupt_exits_130(self):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_keyboard_interrupt()
        assert exc_info.value.code == 130

    def test_unexpected_error_names_type(self, capsys):
        with pytest.raises(SystemExit):
            ErrorFormatter.handle_unexpected_error(ValueError("bad value"))
        assert "ValueError: bad value" in capsys.readouterr().err


class TestPathValidator:
    def test_valid_directory(self, tmp_path):
        PathValidator.validate_project_dir(tmp_path)

    def test_missing(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_project_dir(tmp_path / "missing")
        assert exc_info.value.code == 2

    def test_not_a_directory(self, tmp_path):
        path = tmp_path / "file"
        path.write_text("")
        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_project_dir(path)
        assert exc_info.value.code == 2


@pytest.mark.parametrize(
    "size,expected",
    [(512, "512 B"), (2048, "2.0 KB"), (3 * 1024 * 1024, "3.0 MB")],
)
def test_format_size(size, expected):
    assert format_size(size) == expected
