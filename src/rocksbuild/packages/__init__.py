"""Package management for rocksbuild.

This module handles the artifact cache and the vendored RocksDB and Snappy
source trees, including downloading pinned releases.
"""

from .cache import ArtifactCache, CacheEntry, CacheError
from .downloader import ChecksumError, DownloadError, ExtractionError, PackageDownloader
from .vendor import (
    VendoredSource,
    VendoredSourceError,
    VendorFetcher,
    check_sources,
    default_sources,
)

__all__ = [
    "ArtifactCache",
    "CacheEntry",
    "CacheError",
    "PackageDownloader",
    "DownloadError",
    "ChecksumError",
    "ExtractionError",
    "VendoredSource",
    "VendoredSourceError",
    "VendorFetcher",
    "check_sources",
    "default_sources",
]
