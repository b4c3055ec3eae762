"""
Build orchestration for the RocksDB native library.

This module sequences a complete build of the vendored RocksDB and Snappy
libraries for a Cargo build script:
- Precondition checks (vendored source trees present)
- Binding generation (bindgen over rocksdb/c.h)
- Artifact cache lookup for the RocksDB archive
- Source selection and compilation on a cache miss
- Cache write-back of the fresh archive
- Snappy compilation (never cached)
- Link directives for Cargo
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..config import BuildEnvironment, EnvironmentConfigError, ToolchainFamily
from ..packages.cache import ArtifactCache, CacheError
from ..packages.toolchain import BinaryNotFoundError, NativeToolchain
from ..packages.vendor import VendoredSource, VendoredSourceError, check_sources, default_sources
from .archive_creator import ArchiveError
from .bindings import BindingGenerationError, BindingGenerator
from .compilation_executor import CompilationError
from .flag_builder import FlagBuilder, describe_platform
from .native_compiler import NativeCompiler
from .sources import (
    SNAPPY_SOURCES,
    SourceSelection,
    build_version_source,
    load_baseline_inventory,
    select_sources,
)

logger = logging.getLogger(__name__)

ROCKSDB_HEADER = Path("rocksdb") / "include" / "rocksdb" / "c.h"


class BuildState(Enum):
    """States a build passes through, in order."""

    START = "start"
    PRECONDITIONS_CHECKED = "preconditions_checked"
    BINDINGS_GENERATED = "bindings_generated"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    COMPILING = "compiling"
    CACHE_WRITE_BACK = "cache_write_back"
    DONE = "done"


@dataclass
class BuildResult:
    """Result of a complete build operation."""

    success: bool
    rocksdb_archive: Optional[Path]
    snappy_archive: Optional[Path]
    bindings_path: Optional[Path]
    cache_hit: bool
    cache_dir: Optional[Path]
    directives: List[str] = field(default_factory=list)
    states: List[BuildState] = field(default_factory=list)
    build_time: float = 0.0
    message: str = ""

    @property
    def state(self) -> BuildState:
        return self.states[-1] if self.states else BuildState.START


class BuildOrchestratorError(Exception):
    """Exception raised for build orchestration errors."""
    pass


def archive_filename(name: str, toolchain: ToolchainFamily) -> str:
    """Static archive filename for library ``name``.

    Example:
        >>> archive_filename("rocksdb", ToolchainFamily.GNU)
        'librocksdb.a'
        >>> archive_filename("rocksdb", ToolchainFamily.MSVC)
        'rocksdb.lib'
    """
    if toolchain == ToolchainFamily.MSVC:
        return f"{name}.lib"
    return f"lib{name}.a"


class BuildOrchestrator:
    """
    Orchestrates the complete native build.

    Phases:
    1. Check the vendored rocksdb/ and snappy/ trees
    2. Generate bindings (always, even when the archive is cached)
    3. Restore librocksdb.a from the artifact cache if present
    4. Otherwise select sources, compile, and write the archive back to the cache
    5. Build libsnappy.a
    6. Emit link directives

    Every failure except cache write-back aborts the build.

    Example usage:
        env = BuildEnvironment.from_environ()
        orchestrator = BuildOrchestrator(env, project_dir=Path("."))
        result = orchestrator.build()
        print(result.rocksdb_archive)
    """

    def __init__(
        self,
        env: BuildEnvironment,
        project_dir: Path,
        cache: Optional[ArtifactCache] = None,
        binding_generator: Optional[BindingGenerator] = None,
        native_compiler: Optional[NativeCompiler] = None,
        sources: Optional[List[VendoredSource]] = None,
        cache_write_dir: Optional[Path] = None,
        write_cache: bool = True,
        emit_directives: bool = True,
        verbose: bool = False
    ):
        """
        Initialize build orchestrator.

        Args:
            env: Build environment (paths, target, toolchain)
            project_dir: Directory holding the vendored trees
            cache: Artifact cache (built from env if None)
            binding_generator: Binding generator (built from env if None)
            native_compiler: Native compiler (toolchain detected on first use if None)
            sources: Vendored trees to check (rocksdb and snappy if None)
            cache_write_dir: Explicit cache write destination
            write_cache: Store freshly built archives in the cache
            emit_directives: Print link directives to stdout
            verbose: Enable verbose output
        """
        self.env = env
        self.project_dir = Path(project_dir)
        self.cache = cache or ArtifactCache(env)
        self.binding_generator = binding_generator or BindingGenerator(env.bindgen, verbose=verbose)
        self._native_compiler = native_compiler
        self.sources = sources if sources is not None else default_sources(self.project_dir)
        self.cache_write_dir = cache_write_dir
        self.write_cache = write_cache
        self.emit_directives = emit_directives
        self.verbose = verbose

    @property
    def toolchain_family(self) -> ToolchainFamily:
        return self.env.toolchain_family

    @property
    def rocksdb_archive_name(self) -> str:
        return archive_filename("rocksdb", self.toolchain_family)

    @property
    def snappy_archive_name(self) -> str:
        return archive_filename("snappy", self.toolchain_family)

    def _compiler(self, out_dir: Path) -> NativeCompiler:
        if self._native_compiler is None:
            try:
                toolchain = NativeToolchain.detect(self.env)
            except BinaryNotFoundError as e:
                raise BuildOrchestratorError(str(e)) from e
            self._native_compiler = NativeCompiler(toolchain, out_dir, verbose=self.verbose)
        return self._native_compiler

    def build(self) -> BuildResult:
        """
        Execute the complete build.

        Returns:
            BuildResult with archive paths, cache outcome and directives

        Raises:
            BuildOrchestratorError: If any fatal phase fails
        """
        start_time = time.time()
        states = [BuildState.START]

        try:
            out_dir = self.env.require_out_dir()
        except EnvironmentConfigError as e:
            raise BuildOrchestratorError(str(e)) from e

        family = self.env.platform_family
        if self.verbose:
            print(f"Target: {self.env.target} [{describe_platform(family, self.toolchain_family)}]")
            print(f"Output: {out_dir}")

        # Phase 1: Vendored sources
        if self.verbose:
            print("[1/5] Checking vendored sources...")
        try:
            check_sources(self.sources)
        except VendoredSourceError as e:
            raise BuildOrchestratorError(str(e)) from e
        states.append(BuildState.PRECONDITIONS_CHECKED)

        # Phase 2: Bindings
        if self.verbose:
            print("[2/5] Generating bindings...")
        try:
            bindings_path = self.binding_generator.generate(self.project_dir / ROCKSDB_HEADER, out_dir)
        except BindingGenerationError as e:
            raise BuildOrchestratorError(str(e)) from e
        states.append(BuildState.BINDINGS_GENERATED)

        selection = select_sources(load_baseline_inventory(), family)

        # Phase 3: Cache lookup
        if self.verbose:
            print(f"[3/5] Looking up cached {self.rocksdb_archive_name}...")
        cache_dir = self._restore_cached(out_dir)
        cache_hit = cache_dir is not None

        if cache_hit:
            states.append(BuildState.CACHE_HIT)
            rocksdb_archive = out_dir / self.rocksdb_archive_name
            if self.verbose:
                print(f"      Copied cached {self.rocksdb_archive_name} from {cache_dir}")
        else:
            # Phase 4: Compile and write back
            states.extend([BuildState.CACHE_MISS, BuildState.COMPILING])
            if self.verbose:
                print(f"[4/5] Compiling {self.rocksdb_archive_name} ({len(selection.files)} files)...")
            rocksdb_archive = self._build_rocksdb(out_dir, selection)

            states.append(BuildState.CACHE_WRITE_BACK)
            cache_dir = self._write_back(out_dir)

        # Phase 5: Snappy
        if self.verbose:
            print(f"[5/5] Compiling {self.snappy_archive_name}...")
        snappy_archive = self._build_snappy(out_dir)
        states.append(BuildState.DONE)

        directives = self.link_directives(out_dir, selection)
        if self.emit_directives:
            for directive in directives:
                print(directive)

        return BuildResult(
            success=True,
            rocksdb_archive=rocksdb_archive,
            snappy_archive=snappy_archive,
            bindings_path=bindings_path,
            cache_hit=cache_hit,
            cache_dir=cache_dir,
            directives=directives,
            states=states,
            build_time=time.time() - start_time,
            message="Build successful",
        )

    def _restore_cached(self, out_dir: Path) -> Optional[Path]:
        """Copy a cached RocksDB archive into ``out_dir``.

        A hit that cannot be copied is treated as a miss.
        """
        try:
            return self.cache.restore(self.rocksdb_archive_name, out_dir)
        except CacheError as e:
            logger.warning("%s; rebuilding", e)
            return None

    def _build_rocksdb(self, out_dir: Path, selection: SourceSelection) -> Path:
        rocksdb_dir = self.project_dir / "rocksdb"
        sources = [rocksdb_dir / f for f in selection.files]
        sources.append(self._write_build_version(out_dir))

        config = FlagBuilder(self.project_dir, self.toolchain_family).rocksdb_config(selection)
        try:
            return self._compiler(out_dir).compile(
                sources, config, self.rocksdb_archive_name, source_root=rocksdb_dir
            )
        except (CompilationError, ArchiveError) as e:
            raise BuildOrchestratorError(f"Failed to build {self.rocksdb_archive_name}: {e}") from e

    def _build_snappy(self, out_dir: Path) -> Path:
        snappy_dir = self.project_dir / "snappy"
        sources = [snappy_dir / f for f in SNAPPY_SOURCES]

        config = FlagBuilder(self.project_dir, self.toolchain_family).snappy_config()
        try:
            return self._compiler(out_dir).compile(
                sources, config, self.snappy_archive_name, source_root=snappy_dir
            )
        except (CompilationError, ArchiveError) as e:
            raise BuildOrchestratorError(f"Failed to build {self.snappy_archive_name}: {e}") from e

    def _write_build_version(self, out_dir: Path) -> Path:
        """Materialize the pre-generated build_version.cc in ``out_dir``.

        The file is only rewritten when its contents change, so the object
        compiled from it stays up to date across builds.
        """
        path = out_dir / "build_version.cc"
        contents = build_version_source()
        try:
            if not path.exists() or path.read_text(encoding="utf-8") != contents:
                out_dir.mkdir(parents=True, exist_ok=True)
                path.write_text(contents, encoding="utf-8")
        except OSError as e:
            raise BuildOrchestratorError(f"Failed to write {path}: {e}") from e
        return path

    def _write_back(self, out_dir: Path) -> Optional[Path]:
        """Store the fresh RocksDB archive in the cache; never fails the build."""
        if not self.write_cache:
            return None
        try:
            stored = self.cache.store(self.rocksdb_archive_name, out_dir, self.cache_write_dir)
        except CacheError as e:
            logger.warning("Skipping cache write-back: %s", e)
            return None
        if self.verbose:
            print(f"      Cached {self.rocksdb_archive_name} in {stored.parent}")
        return stored.parent

    def link_directives(self, out_dir: Path, selection: SourceSelection) -> List[str]:
        """Cargo directives describing how to link the built archives."""
        directives = [
            f"cargo:rerun-if-changed={self.project_dir / 'rocksdb'}",
            f"cargo:rerun-if-changed={self.project_dir / 'snappy'}",
            f"cargo:rustc-link-search=native={out_dir}",
            "cargo:rustc-link-lib=static=rocksdb",
            "cargo:rustc-link-lib=static=snappy",
        ]
        for lib in selection.link_libs:
            directives.append(f"cargo:rustc-link-lib=dylib={lib}")
        return directives
