"""Build Environment Provider.

This module collects every process-environment input the build reads into a
single immutable object. The orchestrator receives a ``BuildEnvironment`` at
construction, so tests can pass synthetic environments instead of mutating
``os.environ``.

Environment Variables:
    LIBROCKSDB_DIR         Explicit directory holding a prebuilt librocksdb.a
    CARGO_HOME             Package-cache root (artifacts under libcache/)
    OUT_DIR                Build-output directory
    TARGET                 Target triple (defaults to the host triple)
    HOST                   Host triple (defaults to the running interpreter's)
    CARGO_CFG_TARGET_ENV   Toolchain env (msvc, gnu, ...)
    CXX_<target>, CXX      Compiler override; per target first, then
                           TARGET_CXX (cross builds) or HOST_CXX, then CXX
    AR_<target>, AR        Archiver override, looked up like CXX
    BINDGEN                bindgen executable override
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .platform import PlatformFamily, TargetTriple, ToolchainFamily, host_triple


class EnvironmentConfigError(Exception):
    """Raised when a required environment input is missing or invalid."""
    pass


def _path_or_none(value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    return Path(value)


@dataclass(frozen=True)
class BuildEnvironment:
    """Read-only inputs of a single build invocation."""

    lib_dir: Optional[Path] = None
    cargo_home: Optional[Path] = None
    home_dir: Optional[Path] = None
    out_dir: Optional[Path] = None
    target: str = ""
    host: str = ""
    target_env: Optional[str] = None
    cxx: Optional[str] = None
    ar: Optional[str] = None
    bindgen: str = "bindgen"

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "BuildEnvironment":
        """Build an environment from a variable mapping.

        Args:
            environ: Variable mapping (defaults to ``os.environ``)

        Returns:
            BuildEnvironment populated from the mapping
        """
        if environ is None:
            environ = os.environ

        host = environ.get("HOST") or host_triple()
        target = environ.get("TARGET") or host

        return cls(
            lib_dir=_path_or_none(environ.get("LIBROCKSDB_DIR")),
            cargo_home=_path_or_none(environ.get("CARGO_HOME")),
            home_dir=_home_from(environ),
            out_dir=_path_or_none(environ.get("OUT_DIR")),
            target=target,
            host=host,
            target_env=environ.get("CARGO_CFG_TARGET_ENV") or None,
            cxx=_tool_override(environ, "CXX", target, host),
            ar=_tool_override(environ, "AR", target, host),
            bindgen=environ.get("BINDGEN") or "bindgen",
        )

    @property
    def triple(self) -> TargetTriple:
        return TargetTriple.parse(self.target)

    @property
    def platform_family(self) -> PlatformFamily:
        return self.triple.family

    @property
    def toolchain_family(self) -> ToolchainFamily:
        """Toolchain flavour: explicit target env first, then the triple."""
        env = self.target_env or self.triple.env
        if env == "msvc":
            return ToolchainFamily.MSVC
        return ToolchainFamily.GNU

    @property
    def is_cross(self) -> bool:
        """True if the target architecture or OS differs from the host's."""
        if not self.host:
            return False
        target, host = self.triple, TargetTriple.parse(self.host)
        return (target.arch, target.os) != (host.arch, host.os)

    def require_out_dir(self) -> Path:
        """Return the build-output directory.

        Raises:
            EnvironmentConfigError: If OUT_DIR was not provided
        """
        if self.out_dir is None:
            raise EnvironmentConfigError(
                "OUT_DIR is not set. Run under cargo or pass --out-dir."
            )
        return self.out_dir


def _home_from(environ: Mapping[str, str]) -> Optional[Path]:
    home = environ.get("HOME") or environ.get("USERPROFILE")
    if home:
        return Path(home)
    try:
        return Path.home()
    except RuntimeError:
        return None


def _tool_override(environ: Mapping[str, str], var: str, target: str, host: str) -> Optional[str]:
    """Look up a tool override the way the cc crate does.

    Order: ``VAR_<target>``, ``VAR_<target with underscores>``, then
    ``TARGET_VAR`` for cross builds or ``HOST_VAR`` otherwise, then ``VAR``.
    """
    kind = "TARGET" if target != host else "HOST"
    names = [
        f"{var}_{target}",
        f"{var}_{target.replace('-', '_')}",
        f"{kind}_{var}",
        var,
    ]
    for name in names:
        value = environ.get(name)
        if value:
            return value
    return None
