"""Platform Source-Set Selection.

This module turns the fixed RocksDB source inventory into the list of files
to compile for one target platform. Selection is a pure function of the
baseline inventory and the platform family; nothing here touches the
filesystem except loading the inventory shipped with the package.

Selection Rules:
    - util/build_version.cc is always dropped (a pre-generated replacement
      is compiled instead)
    - Linux, macOS, FreeBSD: sources unchanged, OS_* plus POSIX defines
    - Windows: POSIX port/env/io sources swapped for their port/win
      counterparts, OS_WIN defined, rpcrt4 linked
    - Unknown platforms: no platform-specific adjustment
"""

from dataclasses import dataclass, field
from importlib import resources
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import PlatformFamily

INVENTORY_RESOURCE = "rocksdb_lib_sources.txt"
BUILD_VERSION_RESOURCE = "build_version.cc"

BUILD_VERSION_SOURCE = "util/build_version.cc"

POSIX_DEFINES: Dict[str, Optional[str]] = {
    "ROCKSDB_PLATFORM_POSIX": "1",
    "ROCKSDB_LIB_IO_POSIX": "1",
}

POSIX_OS_DEFINES = {
    PlatformFamily.LINUX: "OS_LINUX",
    PlatformFamily.MACOS: "OS_MACOSX",
    PlatformFamily.FREEBSD: "OS_FREEBSD",
}

WINDOWS_REMOVED_SOURCES = (
    "port/port_posix.cc",
    "util/env_posix.cc",
    "util/io_posix.cc",
)

WINDOWS_ADDED_SOURCES = (
    "port/win/port_win.cc",
    "port/win/env_win.cc",
    "port/win/env_default.cc",
    "port/win/win_logger.cc",
    "port/win/io_win.cc",
)

WINDOWS_LINK_LIBS = ("rpcrt4",)

SNAPPY_SOURCES = (
    "snappy.cc",
    "snappy-sinksource.cc",
    "snappy-c.cc",
)


@dataclass(frozen=True)
class SourceSelection:
    """Outcome of source selection for one platform."""

    family: PlatformFamily
    files: Tuple[str, ...]
    defines: Dict[str, Optional[str]] = field(default_factory=dict)
    link_libs: Tuple[str, ...] = ()


def _unique(entries: Iterable[str]) -> List[str]:
    seen = set()
    files = []
    for entry in entries:
        if entry not in seen:
            seen.add(entry)
            files.append(entry)
    return files


def parse_inventory(text: str) -> List[str]:
    """Split an inventory into paths, keeping order and dropping repeats."""
    return _unique(text.split())


def load_baseline_inventory() -> List[str]:
    """Load the RocksDB source inventory shipped with the package."""
    text = (resources.files("rocksbuild") / "data" / INVENTORY_RESOURCE).read_text(encoding="utf-8")
    return parse_inventory(text)


def build_version_source() -> str:
    """Contents of the pre-generated build_version.cc replacement."""
    return (resources.files("rocksbuild") / "data" / BUILD_VERSION_RESOURCE).read_text(encoding="utf-8")


def select_sources(baseline: Iterable[str], family: PlatformFamily) -> SourceSelection:
    """Derive the files, defines and link libraries for ``family``.

    Args:
        baseline: RocksDB source inventory, relative to the rocksdb/ tree
        family: Target platform family

    Returns:
        SourceSelection for the platform
    """
    files = [f for f in _unique(baseline) if f != BUILD_VERSION_SOURCE]
    defines: Dict[str, Optional[str]] = {}
    link_libs: Tuple[str, ...] = ()

    if family in POSIX_OS_DEFINES:
        defines[POSIX_OS_DEFINES[family]] = "1"
        defines.update(POSIX_DEFINES)
    elif family == PlatformFamily.WINDOWS:
        defines["OS_WIN"] = "1"
        files = [f for f in files if f not in WINDOWS_REMOVED_SOURCES]
        files.extend(f for f in WINDOWS_ADDED_SOURCES if f not in files)
        link_libs = WINDOWS_LINK_LIBS

    return SourceSelection(
        family=family,
        files=tuple(files),
        defines=defines,
        link_libs=link_libs,
    )
