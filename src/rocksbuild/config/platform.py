"""Target Platform Detection.

This module maps target triples (e.g. ``x86_64-unknown-linux-gnu``) onto the
coarse platform families that decide which RocksDB sources and defines are
used for a build.

Triple Layout:
    arch-vendor-os[-env]

    - x86_64-unknown-linux-gnu   -> LINUX
    - aarch64-apple-darwin       -> MACOS
    - x86_64-unknown-freebsd     -> FREEBSD
    - x86_64-pc-windows-msvc     -> WINDOWS (toolchain env: msvc)
    - x86_64-pc-windows-gnu      -> WINDOWS (toolchain env: gnu)
"""

import platform
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PlatformFamily(Enum):
    """Coarse classification of the target operating system."""

    LINUX = "linux"
    MACOS = "macos"
    FREEBSD = "freebsd"
    WINDOWS = "windows"
    UNKNOWN = "unknown"

    @property
    def is_posix(self) -> bool:
        return self in (PlatformFamily.LINUX, PlatformFamily.MACOS, PlatformFamily.FREEBSD)


class ToolchainFamily(Enum):
    """Native toolchain flavour used to drive compiler and archiver."""

    GNU = "gnu"
    MSVC = "msvc"


_OS_FAMILIES = {
    "linux": PlatformFamily.LINUX,
    "darwin": PlatformFamily.MACOS,
    "macos": PlatformFamily.MACOS,
    "freebsd": PlatformFamily.FREEBSD,
    "windows": PlatformFamily.WINDOWS,
}


@dataclass(frozen=True)
class TargetTriple:
    """A parsed target triple."""

    arch: str
    vendor: str
    os: str
    env: Optional[str] = None

    @classmethod
    def parse(cls, triple: str) -> "TargetTriple":
        """Parse a target triple string.

        Missing components are left empty rather than raising, so that an
        unusual triple still degrades to ``PlatformFamily.UNKNOWN``.

        Example:
            >>> TargetTriple.parse("x86_64-pc-windows-msvc").env
            'msvc'
        """
        parts = triple.strip().split("-")
        parts += [""] * (3 - len(parts))
        env = parts[3] if len(parts) > 3 and parts[3] else None
        return cls(arch=parts[0], vendor=parts[1], os=parts[2], env=env)

    @property
    def family(self) -> PlatformFamily:
        return _OS_FAMILIES.get(self.os, PlatformFamily.UNKNOWN)

    def __str__(self) -> str:
        parts = [self.arch, self.vendor, self.os]
        if self.env:
            parts.append(self.env)
        return "-".join(parts)


def host_triple() -> str:
    """Best-effort target triple for the running interpreter.

    Used when no ``TARGET`` is supplied, e.g. when the build is started by
    hand instead of by Cargo.
    """
    system = platform.system()
    machine = platform.machine().lower() or "unknown"
    machine = {"amd64": "x86_64", "arm64": "aarch64"}.get(machine, machine)

    if system == "Linux":
        return f"{machine}-unknown-linux-gnu"
    if system == "Darwin":
        return f"{machine}-apple-darwin"
    if system == "FreeBSD":
        return f"{machine}-unknown-freebsd"
    if system == "Windows":
        return f"{machine}-pc-windows-msvc"
    return f"{machine}-unknown-{system.lower() or 'unknown'}"
