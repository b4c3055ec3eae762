"""
Pytest configuration for rocksbuild test suite.

This configuration enables the --full flag to run integration tests.
"""

import pytest


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (slow)",
    )


def pytest_configure(config):
    """Configure pytest based on command-line options."""
    if config.getoption("--full"):
        # Remove the default marker expression that excludes integration tests
        markexpr = config.getoption("-m", "")
        if markexpr == "not integration":
            # Clear the marker expression to run all tests
            config.option.markexpr = ""


@pytest.fixture
def make_env(tmp_path):
    """Factory for synthetic build environments rooted in tmp_path.

    Defaults to a Linux GNU target with an output directory and a home
    directory but no cache override or CARGO_HOME.
    """
    from rocksbuild.config import BuildEnvironment

    def _make(**overrides):
        fields = {
            "home_dir": tmp_path / "home",
            "out_dir": tmp_path / "out",
            "target": "x86_64-unknown-linux-gnu",
        }
        fields.update(overrides)
        return BuildEnvironment(**fields)

    return _make


@pytest.fixture
def vendored_project(tmp_path):
    """Project directory with minimal non-empty rocksdb/ and snappy/ trees."""
    project = tmp_path / "project"
    header = project / "rocksdb" / "include" / "rocksdb" / "c.h"
    header.parent.mkdir(parents=True)
    header.write_text("int rocksdb_open(void);\n")

    snappy = project / "snappy"
    snappy.mkdir()
    (snappy / "snappy.cc").write_text("// snappy\n")
    return project
