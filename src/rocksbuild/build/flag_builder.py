"""Compilation Flag Builder.

This module assembles the build configuration (defines, flags and include
directories) for the RocksDB and Snappy archives and renders it into
compiler command-line arguments.

Design:
    - BuildConfiguration is immutable once built
    - Defines shared by every platform: NDEBUG, SNAPPY (RocksDB only)
    - Dialect flag: -EHsc for MSVC, -std=c++11 for everything else
    - -Wno-unused-parameter is always passed for RocksDB; the unmodified
      sources emit megabytes of that warning otherwise
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from ..config import PlatformFamily, ToolchainFamily
from .sources import SourceSelection

GNU_DIALECT_FLAG = "-std=c++11"
MSVC_DIALECT_FLAG = "-EHsc"
WARNING_SUPPRESSION_FLAG = "-Wno-unused-parameter"

ROCKSDB_BASE_DEFINES: Dict[str, Optional[str]] = {
    "NDEBUG": "1",
    "SNAPPY": "1",
}

SNAPPY_BASE_DEFINES: Dict[str, Optional[str]] = {
    "NDEBUG": "1",
}


@dataclass(frozen=True)
class BuildConfiguration:
    """Defines, flags and include directories for one archive."""

    defines: Mapping[str, Optional[str]] = field(default_factory=dict)
    flags: Tuple[str, ...] = ()
    include_dirs: Tuple[Path, ...] = ()

    def define_flags(self, toolchain: ToolchainFamily) -> List[str]:
        """Render defines as ``-DNAME[=VALUE]`` (``/D`` for MSVC).

        Example:
            >>> BuildConfiguration(defines={"NDEBUG": "1", "X": None}).define_flags(ToolchainFamily.GNU)
            ['-DNDEBUG=1', '-DX']
        """
        prefix = "/D" if toolchain == ToolchainFamily.MSVC else "-D"
        rendered = []
        for name, value in self.defines.items():
            if value is None:
                rendered.append(f"{prefix}{name}")
            else:
                rendered.append(f"{prefix}{name}={value}")
        return rendered

    def include_flags(self, toolchain: ToolchainFamily) -> List[str]:
        """Render include directories as ``-I`` (``/I`` for MSVC) flags."""
        prefix = "/I" if toolchain == ToolchainFamily.MSVC else "-I"
        return [f"{prefix}{inc}" for inc in self.include_dirs]

    def compile_args(self, toolchain: ToolchainFamily) -> List[str]:
        """Flags, then defines, then includes."""
        return list(self.flags) + self.define_flags(toolchain) + self.include_flags(toolchain)


class FlagBuilder:
    """Builds the configuration for each native archive.

    This class handles:
    - The fixed include path set rooted at the project directory
    - Baseline and platform defines
    - Toolchain-dependent dialect flags
    """

    def __init__(self, project_dir: Path, toolchain: ToolchainFamily):
        """Initialize flag builder.

        Args:
            project_dir: Directory holding the rocksdb/ and snappy/ trees
            toolchain: Toolchain family used to pick the dialect flag
        """
        self.project_dir = Path(project_dir)
        self.toolchain = toolchain

    def dialect_flags(self) -> List[str]:
        if self.toolchain == ToolchainFamily.MSVC:
            return [MSVC_DIALECT_FLAG]
        return [GNU_DIALECT_FLAG]

    def rocksdb_include_dirs(self) -> Tuple[Path, ...]:
        root = self.project_dir
        return (
            root / "rocksdb" / "include",
            root / "rocksdb",
            root / "rocksdb" / "third-party" / "gtest-1.7.0" / "fused-src",
            root / "snappy",
            root,
        )

    def rocksdb_config(self, selection: SourceSelection) -> BuildConfiguration:
        """Configuration for librocksdb.a.

        Args:
            selection: Platform source selection supplying extra defines

        Returns:
            BuildConfiguration for the RocksDB archive
        """
        defines = dict(ROCKSDB_BASE_DEFINES)
        defines.update(selection.defines)

        flags = self.dialect_flags()
        flags.append(WARNING_SUPPRESSION_FLAG)

        return BuildConfiguration(
            defines=defines,
            flags=tuple(flags),
            include_dirs=self.rocksdb_include_dirs(),
        )

    def snappy_config(self) -> BuildConfiguration:
        """Configuration for libsnappy.a."""
        return BuildConfiguration(
            defines=dict(SNAPPY_BASE_DEFINES),
            flags=tuple(self.dialect_flags()),
            include_dirs=(self.project_dir / "snappy", self.project_dir),
        )


def describe_platform(family: PlatformFamily, toolchain: ToolchainFamily) -> str:
    """Short human-readable label, e.g. 'linux (gnu)'."""
    return f"{family.value} ({toolchain.value})"
