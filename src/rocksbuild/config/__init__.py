"""Configuration modules for rocksbuild."""

from .environment import BuildEnvironment, EnvironmentConfigError
from .platform import PlatformFamily, TargetTriple, ToolchainFamily, host_triple

__all__ = [
    "BuildEnvironment",
    "EnvironmentConfigError",
    "PlatformFamily",
    "TargetTriple",
    "ToolchainFamily",
    "host_triple",
]
