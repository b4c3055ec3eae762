"""Source archive downloader with progress tracking.

This module downloads release tarballs of the vendored libraries and unpacks
them, optionally verifying a SHA256 checksum.
"""

import hashlib
import logging
import shutil
import tarfile
import zipfile
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import requests
from tqdm import tqdm

logger = logging.getLogger(__name__)


class DownloadError(Exception):
    """Raised when download fails."""

    pass


class ChecksumError(Exception):
    """Raised when checksum verification fails."""

    pass


class ExtractionError(Exception):
    """Raised when archive extraction fails."""

    pass


def file_sha256(path: Path, chunk_size: int = 65536) -> str:
    """Hex SHA256 digest of a file on disk."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


class PackageDownloader:
    """Downloads and extracts source archives with progress tracking."""

    def __init__(self, chunk_size: int = 8192, timeout: int = 30):
        """Initialize downloader.

        Args:
            chunk_size: Size of chunks for downloading and hashing
            timeout: Request timeout in seconds
        """
        self.chunk_size = chunk_size
        self.timeout = timeout

    def download(
        self,
        url: str,
        dest_path: Path,
        checksum: Optional[str] = None,
        show_progress: bool = True,
    ) -> Path:
        """Download a file from a URL.

        Args:
            url: URL to download from
            dest_path: Destination file path
            checksum: Optional SHA256 checksum for verification
            show_progress: Whether to show progress bar

        Returns:
            Path to the downloaded file

        Raises:
            DownloadError: If download fails
            ChecksumError: If checksum verification fails
        """
        dest_path = Path(dest_path)
        dest_path.parent.mkdir(parents=True, exist_ok=True)

        # Use temporary file during download
        temp_file = dest_path.with_suffix(dest_path.suffix + ".tmp")

        try:
            response = requests.get(url, stream=True, timeout=self.timeout)
            response.raise_for_status()

            total_size = int(response.headers.get("content-length", 0))

            progress_bar = None
            if show_progress and total_size > 0:
                filename = Path(urlparse(url).path).name
                progress_bar = tqdm(
                    total=total_size,
                    unit="B",
                    unit_scale=True,
                    unit_divisor=1024,
                    desc=f"Downloading {filename}",
                )

            sha256 = hashlib.sha256() if checksum else None

            with open(temp_file, "wb") as f:
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if chunk:
                        f.write(chunk)
                        if progress_bar:
                            progress_bar.update(len(chunk))
                        if sha256:
                            sha256.update(chunk)

            if progress_bar:
                progress_bar.close()

            if checksum and sha256:
                actual_checksum = sha256.hexdigest()
                if actual_checksum.lower() != checksum.lower():
                    temp_file.unlink()
                    raise ChecksumError(
                        f"Checksum mismatch for {url}\n"
                        + f"Expected: {checksum}\n"
                        + f"Got: {actual_checksum}"
                    )

            if dest_path.exists():
                dest_path.unlink()
            temp_file.rename(dest_path)

            return dest_path

        except requests.RequestException as e:
            if temp_file.exists():
                temp_file.unlink()
            raise DownloadError(f"Failed to download {url}: {e}") from e

        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

    def extract_archive(
        self,
        archive_path: Path,
        dest_dir: Path,
        strip_components: int = 0,
        show_progress: bool = True,
    ) -> Path:
        """Extract an archive file.

        Supports .tar.gz, .tar.bz2, .tar.xz and .zip formats.

        Args:
            archive_path: Path to the archive file
            dest_dir: Destination directory for extraction
            strip_components: Number of leading path components to drop,
                like ``tar --strip-components`` (release tarballs wrap
                everything in a single ``name-version/`` folder)
            show_progress: Whether to show progress information

        Returns:
            Path to the extracted directory

        Raises:
            ExtractionError: If extraction fails
        """
        archive_path = Path(archive_path)
        dest_dir = Path(dest_dir)

        if not archive_path.exists():
            raise ExtractionError(f"Archive not found: {archive_path}")

        dest_dir.mkdir(parents=True, exist_ok=True)
        staging_dir = dest_dir.parent / f".{dest_dir.name}.extract"

        try:
            if show_progress:
                print(f"Extracting {archive_path.name}...")

            if staging_dir.exists():
                shutil.rmtree(staging_dir)
            staging_dir.mkdir(parents=True)

            if archive_path.suffix == ".zip":
                with zipfile.ZipFile(archive_path, "r") as zip_file:
                    zip_file.extractall(staging_dir)
            elif archive_path.name.endswith((".tar.gz", ".tgz", ".tar.bz2", ".tar.xz")):
                with tarfile.open(archive_path, "r:*") as tar:
                    tar.extractall(staging_dir, filter="data")
            else:
                raise ExtractionError(
                    f"Unsupported archive format: {archive_path.suffix}"
                )

            root = staging_dir
            for _ in range(strip_components):
                children = list(root.iterdir())
                if len(children) != 1 or not children[0].is_dir():
                    raise ExtractionError(
                        f"Cannot strip leading directory from {archive_path.name}: "
                        + f"found {len(children)} top-level entries"
                    )
                root = children[0]

            for item in root.iterdir():
                target = dest_dir / item.name
                if target.is_dir():
                    shutil.rmtree(target)
                elif target.exists():
                    target.unlink()
                shutil.move(str(item), str(target))

            return dest_dir

        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Failed to extract {archive_path}: {e}") from e
        finally:
            if staging_dir.exists():
                shutil.rmtree(staging_dir, ignore_errors=True)

    def download_and_extract(
        self,
        url: str,
        cache_dir: Path,
        extract_dir: Path,
        checksum: Optional[str] = None,
        strip_components: int = 0,
        show_progress: bool = True,
    ) -> Path:
        """Download and extract a package in one operation.

        Args:
            url: URL to download from
            cache_dir: Directory to cache the downloaded archive
            extract_dir: Directory to extract to
            checksum: Optional SHA256 checksum
            strip_components: Leading path components to drop on extraction
            show_progress: Whether to show progress

        Returns:
            Path to the extracted directory
        """
        filename = Path(urlparse(url).path).name
        archive_path = cache_dir / filename

        if archive_path.exists() and checksum and file_sha256(archive_path).lower() != checksum.lower():
            logger.warning("Cached %s does not match its checksum; downloading again", archive_path)
            archive_path.unlink()

        if not archive_path.exists():
            self.download(url, archive_path, checksum, show_progress)
        elif show_progress:
            print(f"Using cached {filename}")

        return self.extract_archive(
            archive_path, extract_dir, strip_components=strip_components, show_progress=show_progress
        )
