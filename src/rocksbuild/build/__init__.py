"""
Build system components for rocksbuild.

This module provides the build system implementation including:
- Platform source-set selection
- Build configuration (defines, flags, include paths)
- Compilation and archiving (c++/ar, cl/lib)
- Binding generation (bindgen)
- Build orchestration
"""

from .archive_creator import ArchiveCreator, ArchiveError
from .bindings import BindingGenerationError, BindingGenerator
from .compilation_executor import CompilationError, CompilationExecutor
from .flag_builder import BuildConfiguration, FlagBuilder
from .native_compiler import NativeCompiler
from .orchestrator import (
    BuildOrchestrator,
    BuildOrchestratorError,
    BuildResult,
    BuildState,
    archive_filename,
)
from .sources import SourceSelection, load_baseline_inventory, select_sources

__all__ = [
    'ArchiveCreator',
    'ArchiveError',
    'BindingGenerationError',
    'BindingGenerator',
    'BuildConfiguration',
    'BuildOrchestrator',
    'BuildOrchestratorError',
    'BuildResult',
    'BuildState',
    'CompilationError',
    'CompilationExecutor',
    'FlagBuilder',
    'NativeCompiler',
    'SourceSelection',
    'archive_filename',
    'load_baseline_inventory',
    'select_sources',
]
