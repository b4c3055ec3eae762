"""Native Toolchain Binary Finder.

This module locates the C++ compiler and static archiver used to build the
native archives.

Binary Naming Conventions:
    - GNU-style: c++ (or $CXX), ar (or $AR)
    - MSVC: cl.exe (or $CXX), lib.exe (or $AR)

Overrides may be bare names looked up on PATH or explicit paths. A cross
build (target architecture or OS differs from the host) needs an explicit
compiler; the host compiler is never used for it.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config import BuildEnvironment, ToolchainFamily


class BinaryNotFoundError(Exception):
    """Raised when a required toolchain binary is not found."""

    pass


DEFAULT_BINARIES = {
    ToolchainFamily.GNU: ("c++", "ar"),
    ToolchainFamily.MSVC: ("cl.exe", "lib.exe"),
}


@dataclass(frozen=True)
class NativeToolchain:
    """Resolved compiler and archiver for one toolchain family."""

    family: ToolchainFamily
    compiler: Path
    archiver: Path

    @classmethod
    def detect(cls, env: BuildEnvironment) -> "NativeToolchain":
        """Resolve the toolchain for ``env``.

        Args:
            env: Build environment (toolchain family and CXX/AR overrides)

        Returns:
            NativeToolchain with absolute binary paths

        Raises:
            BinaryNotFoundError: If the compiler or archiver cannot be found,
                or a cross build has no target compiler configured
        """
        family = env.toolchain_family
        if env.is_cross and not env.cxx:
            underscored = env.target.replace("-", "_")
            raise BinaryNotFoundError(
                f"Cross-compiling for {env.target} on {env.host} needs a target C++ compiler. "
                + f"Set CXX_{underscored} or TARGET_CXX (and AR_{underscored} or TARGET_AR)."
            )
        default_cxx, default_ar = DEFAULT_BINARIES[family]
        return cls(
            family=family,
            compiler=find_binary(env.cxx or default_cxx, "C++ compiler"),
            archiver=find_binary(env.ar or default_ar, "archiver"),
        )


def find_binary(name: str, description: str) -> Path:
    """Find a binary by path or on PATH.

    Args:
        name: Executable name or path
        description: Human-readable role for error messages

    Returns:
        Path to the binary

    Raises:
        BinaryNotFoundError: If nothing matches
    """
    candidate = Path(name)
    if candidate.parent != Path(".") and candidate.exists():
        return candidate

    found: Optional[str] = shutil.which(name)
    if found is None:
        raise BinaryNotFoundError(
            f"{description} not found: {name}. Install a native toolchain "
            + "or point CXX/AR at one."
        )
    return Path(found)
