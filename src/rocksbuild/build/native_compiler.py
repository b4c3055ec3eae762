"""Native Compilation Driver.

This module compiles a selected source set into one static archive in the
build-output directory. Files are compiled one after another; the first
failure aborts the whole archive.

Output Layout:
    OUT_DIR/
    ├── obj/
    │   └── {archive_stem}/       # One object per source, mirroring its path
    └── lib{name}.a               # Final archive
"""

from pathlib import Path
from typing import List, Optional, Sequence

from tqdm import tqdm

from ..packages.toolchain import NativeToolchain
from .archive_creator import ArchiveCreator
from .compilation_executor import CompilationExecutor
from .flag_builder import BuildConfiguration


class NativeCompiler:
    """Compiles source files and archives the resulting objects."""

    def __init__(
        self,
        toolchain: NativeToolchain,
        out_dir: Path,
        verbose: bool = False,
        executor: Optional[CompilationExecutor] = None,
        archiver: Optional[ArchiveCreator] = None
    ):
        """Initialize native compiler.

        Args:
            toolchain: Resolved compiler and archiver
            out_dir: Build-output directory for objects and archives
            verbose: Show per-file diagnostics and archive sizes
            executor: Compilation executor (built from toolchain if None)
            archiver: Archive creator (built from toolchain if None)
        """
        self.toolchain = toolchain
        self.out_dir = Path(out_dir)
        self.verbose = verbose
        self.executor = executor or CompilationExecutor(
            toolchain.compiler, toolchain.family, show_progress=verbose
        )
        self.archiver = archiver or ArchiveCreator(
            toolchain.archiver, toolchain.family, show_progress=verbose
        )

    def object_path(self, source: Path, source_root: Path, archive_name: str) -> Path:
        """Object file path for ``source`` inside the archive's object dir."""
        stem = archive_name.split(".", 1)[0]
        try:
            relative = source.relative_to(source_root)
        except ValueError:
            relative = Path(source.name)
        suffix = CompilationExecutor.object_suffix(self.toolchain.family)
        return self.out_dir / "obj" / stem / relative.with_suffix(suffix)

    def compile(
        self,
        sources: Sequence[Path],
        config: BuildConfiguration,
        archive_name: str,
        source_root: Optional[Path] = None
    ) -> Path:
        """Compile ``sources`` into ``OUT_DIR/archive_name``.

        Args:
            sources: Source files, compiled in order
            config: Build configuration shared by every file
            archive_name: Archive filename (e.g. 'librocksdb.a')
            source_root: Root used to lay out object paths

        Returns:
            Path to the archive

        Raises:
            CompilationError: If any file fails to compile
            ArchiveError: If archiving fails
        """
        if source_root is None:
            source_root = self.out_dir

        objects: List[Path] = []
        progress = tqdm(
            sources,
            desc=f"Compiling {archive_name}",
            unit="file",
            disable=not self.verbose,
        )
        try:
            for source in progress:
                source = Path(source)
                obj = self.object_path(source, source_root, archive_name)
                if self.executor.needs_rebuild(source, obj, config):
                    self.executor.compile_source(source, obj, config)
                objects.append(obj)
        finally:
            progress.close()

        return self.archiver.create_archive(self.out_dir / archive_name, objects)
