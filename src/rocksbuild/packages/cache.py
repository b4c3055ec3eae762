"""Artifact cache for prebuilt native archives.

This module finds previously built archives that can be reused instead of
compiling RocksDB again, and stores freshly built archives for later builds.

Cache Locations (highest priority first):
    $LIBROCKSDB_DIR/                 # Explicit override
    $CARGO_HOME/libcache/            # Package-cache root
    ~/.cargo/libcache/               # User home
        └── librocksdb.a             # Artifacts keyed by filename only

Artifacts are never validated beyond their presence and are never evicted.
Two builds writing the same entry at once may race.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from ..config import BuildEnvironment

logger = logging.getLogger(__name__)

LIBCACHE_DIRNAME = "libcache"
ARTIFACT_SUFFIXES = (".a", ".lib")

# A resolver returns a candidate cache directory, or None when its source is
# not configured.
Resolver = Callable[[], Optional[Path]]


def _same_file(src: Path, dest: Path) -> bool:
    """True if both paths exist and name the same file."""
    try:
        return src.exists() and dest.exists() and src.samefile(dest)
    except OSError:
        return False


class CacheError(Exception):
    """Raised when a cache directory cannot be created or written."""
    pass


@dataclass
class CacheEntry:
    """A cached artifact on disk."""

    path: Path
    size: int

    @property
    def name(self) -> str:
        return self.path.name


class ArtifactCache:
    """Resolves read and write locations for cached build artifacts.

    Both the read and write paths walk the same ordered resolver chain:
    explicit override, package-cache root, home directory. Reading accepts a
    directory only if the artifact exists there and never creates anything.
    Writing takes the first configured directory and creates it on demand.
    """

    def __init__(self, env: BuildEnvironment):
        """Initialize artifact cache.

        Args:
            env: Build environment supplying the candidate roots
        """
        self.env = env

    def _override_dir(self) -> Optional[Path]:
        return self.env.lib_dir

    def _cargo_home_dir(self) -> Optional[Path]:
        if self.env.cargo_home is None:
            return None
        return self.env.cargo_home / LIBCACHE_DIRNAME

    def _home_dir(self) -> Optional[Path]:
        if self.env.home_dir is None:
            return None
        return self.env.home_dir / ".cargo" / LIBCACHE_DIRNAME

    @property
    def resolvers(self) -> List[Resolver]:
        """Candidate directory resolvers in priority order."""
        return [self._override_dir, self._cargo_home_dir, self._home_dir]

    def candidate_dirs(self) -> List[Path]:
        """All configured candidate directories in priority order."""
        dirs = []
        for resolve in self.resolvers:
            candidate = resolve()
            if candidate is not None:
                dirs.append(candidate)
        return dirs

    def find_cached(self, filename: str) -> Optional[Path]:
        """Find the highest-priority directory already holding ``filename``.

        Args:
            filename: Artifact filename (e.g. 'librocksdb.a')

        Returns:
            Directory containing the artifact, or None on a miss
        """
        for candidate in self.candidate_dirs():
            if (candidate / filename).is_file():
                return candidate
        return None

    def restore(self, filename: str, dest_dir: Path) -> Optional[Path]:
        """Copy a cached artifact into ``dest_dir``.

        If the cache directory is ``dest_dir`` itself nothing is copied.

        Args:
            filename: Artifact filename
            dest_dir: Directory to copy the artifact into

        Returns:
            Cache directory the artifact came from, or None on a miss

        Raises:
            CacheError: If the artifact was found but could not be copied
        """
        cache_dir = self.find_cached(filename)
        if cache_dir is None:
            return None

        if _same_file(cache_dir / filename, dest_dir / filename):
            return cache_dir

        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(cache_dir / filename, dest_dir / filename)
        except OSError as e:
            raise CacheError(
                f"Failed to copy cached {filename} from {cache_dir} to {dest_dir}: {e}"
            ) from e

        return cache_dir

    def resolve_write_dir(self, cache_dir: Optional[Path] = None) -> Optional[Path]:
        """Resolve where a newly built artifact should be stored.

        Args:
            cache_dir: Explicit destination, takes precedence over the chain

        Returns:
            Destination directory, or None if no location is configured
        """
        if cache_dir is not None:
            return Path(cache_dir)
        dirs = self.candidate_dirs()
        return dirs[0] if dirs else None

    def store(
        self,
        filename: str,
        source_dir: Path,
        cache_dir: Optional[Path] = None
    ) -> Path:
        """Copy ``source_dir/filename`` into the write cache directory.

        Args:
            filename: Artifact filename
            source_dir: Directory holding the freshly built artifact
            cache_dir: Optional explicit destination directory

        Returns:
            Path of the cached copy

        Raises:
            CacheError: If no location is configured, the directory cannot be
                created, or the copy fails
        """
        dest_dir = self.resolve_write_dir(cache_dir)
        if dest_dir is None:
            raise CacheError(f"No cache location configured for {filename}")

        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Failed to create lib cache dir {dest_dir}: {e}") from e

        dest = dest_dir / filename
        if _same_file(source_dir / filename, dest):
            return dest

        try:
            shutil.copyfile(source_dir / filename, dest)
        except OSError as e:
            raise CacheError(f"Failed to write {filename} to {dest_dir}: {e}") from e

        logger.debug("Stored %s in %s", filename, dest_dir)
        return dest

    def entries(self) -> List[CacheEntry]:
        """List artifacts in every existing candidate directory."""
        entries = []
        for candidate in self.candidate_dirs():
            if not candidate.is_dir():
                continue
            for item in sorted(candidate.iterdir()):
                if item.is_file() and item.suffix in ARTIFACT_SUFFIXES:
                    entries.append(CacheEntry(path=item, size=item.stat().st_size))
        return entries

    def libcache_dirs(self) -> List[Path]:
        """Configured libcache directories, excluding the override directory."""
        dirs = []
        for resolve in (self._cargo_home_dir, self._home_dir):
            candidate = resolve()
            if candidate is not None:
                dirs.append(candidate)
        return dirs

    def clean(self, cache_dir: Optional[Path] = None) -> List[Path]:
        """Remove cached artifacts.

        Without ``cache_dir`` only the libcache directories are cleaned; the
        override directory holds user-supplied archives and is only touched
        when passed explicitly. Only archive files are removed; the
        directories and anything else in them are left in place.

        Args:
            cache_dir: Directory to clean instead of the libcache directories

        Returns:
            Paths that were removed
        """
        targets = [Path(cache_dir)] if cache_dir is not None else self.libcache_dirs()
        removed: List[Path] = []
        for target in targets:
            if target.is_dir():
                removed.extend(self._remove_archives(target))
        return removed

    def _remove_archives(self, directory: Path) -> List[Path]:
        removed: List[Path] = []
        for item in sorted(directory.iterdir()):
            if item.is_file() and item.suffix in ARTIFACT_SUFFIXES:
                try:
                    item.unlink()
                except OSError as e:
                    raise CacheError(f"Failed to remove {item}: {e}") from e
                removed.append(item)
        return removed
