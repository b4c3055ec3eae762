"""
Command-line interface for rocksbuild.

This module provides the `rocksbuild` CLI tool for building the vendored
RocksDB and Snappy libraries, fetching their sources, and managing the
artifact cache.
"""

import argparse
import dataclasses
import logging
import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from rocksbuild import __version__
from rocksbuild.build import BuildOrchestrator, BuildOrchestratorError
from rocksbuild.cli_utils import ErrorFormatter, PathValidator, format_size
from rocksbuild.config import BuildEnvironment
from rocksbuild.packages import (
    ArtifactCache,
    CacheError,
    ChecksumError,
    DownloadError,
    ExtractionError,
    VendoredSourceError,
    VendorFetcher,
    default_sources,
)


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    project_dir: Path
    out_dir: Optional[Path] = None
    target: Optional[str] = None
    lib_dir: Optional[Path] = None
    cache_dir: Optional[Path] = None
    write_cache: bool = True
    verbose: bool = False


@dataclass
class FetchArgs:
    """Arguments for the fetch command."""

    project_dir: Path
    force: bool = False
    checksums: Dict[str, str] = field(default_factory=dict)
    require_checksum: bool = False
    verbose: bool = False


@dataclass
class CacheArgs:
    """Arguments for the cache command."""

    action: str
    lib_dir: Optional[Path] = None
    cache_dir: Optional[Path] = None


def _environment(
    lib_dir: Optional[Path] = None,
    target: Optional[str] = None,
    **overrides
) -> BuildEnvironment:
    environ = dict(os.environ)
    if target:
        # Per-target CXX_/AR_ overrides are resolved against this target
        environ["TARGET"] = target
    env = BuildEnvironment.from_environ(environ)
    if lib_dir is not None:
        overrides["lib_dir"] = lib_dir
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return dataclasses.replace(env, **overrides)


def _parse_checksums(parser: argparse.ArgumentParser, values: List[str]) -> Dict[str, str]:
    checksums = {}
    for value in values:
        name, sep, digest = value.partition("=")
        if not sep or not name or not digest:
            parser.error(f"--sha256 expects NAME=DIGEST, got: {value}")
        checksums[name] = digest
    return checksums


def build_command(args: BuildArgs) -> None:
    """Build the native libraries and print link directives.

    Examples:
        rocksbuild build                        # Build from the current directory
        rocksbuild build vendor/                # Build a specific project
        rocksbuild build --out-dir target/native
        rocksbuild build --lib-dir ~/prebuilt   # Reuse a prebuilt librocksdb.a
        rocksbuild build --no-cache-write       # Don't populate the cache
    """
    print(f"rocksbuild v{__version__}")

    try:
        env = _environment(args.lib_dir, out_dir=args.out_dir, target=args.target)

        orchestrator = BuildOrchestrator(
            env,
            project_dir=args.project_dir,
            cache_write_dir=args.cache_dir,
            write_cache=args.write_cache,
            verbose=args.verbose,
        )

        start_time = time.time()
        result = orchestrator.build()
        build_time = time.time() - start_time

        if args.verbose:
            ErrorFormatter.print_success("Build successful!")
            print(f"Bindings: {result.bindings_path}")
            print(f"RocksDB:  {result.rocksdb_archive}" + (" (cached)" if result.cache_hit else ""))
            print(f"Snappy:   {result.snappy_archive}")
            print(f"Build time: {build_time:.2f}s")
        sys.exit(0)

    except BuildOrchestratorError as e:
        ErrorFormatter.handle_build_error("Build failed!", e)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def fetch_command(args: FetchArgs) -> None:
    """Download the pinned RocksDB and Snappy releases into the project.

    Examples:
        rocksbuild fetch                 # Fill empty rocksdb/ and snappy/
        rocksbuild fetch --force         # Re-extract even if present
        rocksbuild fetch --sha256 rocksdb=<digest> --require-checksum
    """
    try:
        fetcher = VendorFetcher(
            download_dir=args.project_dir / ".rocksbuild" / "downloads",
            show_progress=True,
            checksums=args.checksums,
            require_checksum=args.require_checksum,
        )
        for source in default_sources(args.project_dir):
            fetcher.fetch(source, force=args.force)
        ErrorFormatter.print_success("Vendored sources ready")
        sys.exit(0)

    except (VendoredSourceError, DownloadError, ChecksumError, ExtractionError) as e:
        ErrorFormatter.handle_build_error("Fetch failed!", e)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def cache_command(args: CacheArgs) -> None:
    """Inspect or clean the artifact cache.

    Examples:
        rocksbuild cache info
        rocksbuild cache clean
        rocksbuild cache clean --cache-dir ~/prebuilt   # Clear an override dir instead
    """
    cache = ArtifactCache(_environment(args.lib_dir))

    try:
        if args.action == "info":
            dirs = cache.candidate_dirs()
            print("Cache locations (highest priority first):")
            for directory in dirs:
                marker = "" if directory.is_dir() else "  (missing)"
                print(f"  {directory}{marker}")

            entries = cache.entries()
            print()
            if not entries:
                print("No cached artifacts.")
            for entry in entries:
                print(f"  {entry.path}  ({format_size(entry.size)})")
        elif args.action == "clean":
            removed = cache.clean(args.cache_dir)
            for path in removed:
                print(f"  Removed: {path}")
            print(f"Removed {len(removed)} cached artifact(s)")
        sys.exit(0)

    except CacheError as e:
        ErrorFormatter.handle_build_error("Cache operation failed!", e)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)


def main() -> None:
    """rocksbuild - native build orchestrator for RocksDB.

    Build the vendored RocksDB and Snappy libraries, generate bindings,
    and print Cargo link directives.
    """
    parser = argparse.ArgumentParser(
        prog="rocksbuild",
        description="Build the vendored RocksDB and Snappy libraries for Cargo",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"rocksbuild {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build librocksdb and libsnappy and generate bindings",
    )
    build_parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Directory holding rocksdb/ and snappy/ (default: current directory)",
    )
    build_parser.add_argument(
        "-o",
        "--out-dir",
        type=Path,
        default=None,
        help="Build output directory (default: $OUT_DIR)",
    )
    build_parser.add_argument(
        "-t",
        "--target",
        default=None,
        help="Target triple (default: $TARGET or the host triple)",
    )
    build_parser.add_argument(
        "--lib-dir",
        type=Path,
        default=None,
        help="Directory with a prebuilt librocksdb (default: $LIBROCKSDB_DIR)",
    )
    build_parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Where to store the freshly built archive (default: first cache location)",
    )
    build_parser.add_argument(
        "--no-cache-write",
        action="store_true",
        help="Do not store the freshly built archive in the cache",
    )
    build_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )

    # Fetch command
    fetch_parser = subparsers.add_parser(
        "fetch",
        help="Download pinned RocksDB and Snappy sources",
    )
    fetch_parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    fetch_parser.add_argument(
        "--force",
        action="store_true",
        help="Re-extract sources even if already present",
    )
    fetch_parser.add_argument(
        "--sha256",
        action="append",
        default=[],
        metavar="NAME=DIGEST",
        help="Expected SHA256 of a source tarball (e.g. rocksdb=<digest>); repeatable",
    )
    fetch_parser.add_argument(
        "--require-checksum",
        action="store_true",
        help="Refuse to fetch a source without a known checksum",
    )
    fetch_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )

    # Cache command
    cache_parser = subparsers.add_parser(
        "cache",
        help="Inspect or clean the artifact cache",
    )
    cache_parser.add_argument(
        "action",
        choices=["info", "clean"],
        help="Cache action",
    )
    cache_parser.add_argument(
        "--lib-dir",
        type=Path,
        default=None,
        help="Override cache directory (default: $LIBROCKSDB_DIR)",
    )
    cache_parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Directory to clean (default: the libcache directories, never --lib-dir)",
    )

    parsed_args = parser.parse_args()

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    verbose = getattr(parsed_args, "verbose", False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    if hasattr(parsed_args, "project_dir"):
        PathValidator.validate_project_dir(parsed_args.project_dir)

    if parsed_args.command == "build":
        build_args = BuildArgs(
            project_dir=parsed_args.project_dir,
            out_dir=parsed_args.out_dir,
            target=parsed_args.target,
            lib_dir=parsed_args.lib_dir,
            cache_dir=parsed_args.cache_dir,
            write_cache=not parsed_args.no_cache_write,
            verbose=parsed_args.verbose,
        )
        build_command(build_args)
    elif parsed_args.command == "fetch":
        fetch_args = FetchArgs(
            project_dir=parsed_args.project_dir,
            force=parsed_args.force,
            checksums=_parse_checksums(parser, parsed_args.sha256),
            require_checksum=parsed_args.require_checksum,
            verbose=parsed_args.verbose,
        )
        fetch_command(fetch_args)
    elif parsed_args.command == "cache":
        cache_args = CacheArgs(
            action=parsed_args.action,
            lib_dir=parsed_args.lib_dir,
            cache_dir=parsed_args.cache_dir,
        )
        cache_command(cache_args)


if __name__ == "__main__":
    main()
