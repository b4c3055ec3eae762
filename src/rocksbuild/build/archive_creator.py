"""Archive Creator.

This module handles creating static library archives from compiled object
files using the archiver tool (ar, or lib.exe for MSVC).
"""

import subprocess
from pathlib import Path
from typing import List

from ..config import ToolchainFamily


class ArchiveError(Exception):
    """Raised when archive creation operations fail."""
    pass


class ArchiveCreator:
    """Creates static library archives from object files."""

    def __init__(
        self,
        ar_path: Path,
        toolchain: ToolchainFamily,
        show_progress: bool = False,
        timeout: int = 300
    ):
        """Initialize archive creator.

        Args:
            ar_path: Path to archiver tool (ar/lib.exe)
            toolchain: Toolchain family, selects command-line syntax
            show_progress: Whether to show archive creation progress
            timeout: Archiver timeout in seconds
        """
        self.ar_path = ar_path
        self.toolchain = toolchain
        self.show_progress = show_progress
        self.timeout = timeout

    def build_command(self, archive_path: Path, object_files: List[Path]) -> List[str]:
        if self.toolchain == ToolchainFamily.MSVC:
            cmd = [str(self.ar_path), "/nologo", f"/OUT:{archive_path}"]
        else:
            # 'crs' flags: c=create, r=insert/replace, s=index (ranlib)
            cmd = [str(self.ar_path), "crs", str(archive_path)]
        cmd.extend(str(obj) for obj in object_files)
        return cmd

    def create_archive(self, archive_path: Path, object_files: List[Path]) -> Path:
        """Create static library archive from object files.

        An existing archive at ``archive_path`` is replaced, not appended to.

        Args:
            archive_path: Path for output archive
            object_files: List of object file paths to archive

        Returns:
            Path to generated archive file

        Raises:
            ArchiveError: If archive creation fails
        """
        if not object_files:
            raise ArchiveError("No object files provided for archive")

        if not self.ar_path.exists():
            raise ArchiveError(
                f"Archiver not found: {self.ar_path}. Ensure toolchain is installed."
            )

        archive_path.parent.mkdir(parents=True, exist_ok=True)
        if archive_path.exists():
            archive_path.unlink()

        cmd = self.build_command(archive_path, object_files)

        if self.show_progress:
            print(f"Creating {archive_path.name} archive from {len(object_files)} object files...")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise ArchiveError(f"Archive creation timeout for {archive_path.name}") from e
        except OSError as e:
            raise ArchiveError(f"Failed to create archive {archive_path.name}: {e}") from e

        if result.returncode != 0:
            error_msg = f"Archive creation failed for {archive_path.name}\n"
            error_msg += f"stderr: {result.stderr}\n"
            error_msg += f"stdout: {result.stdout}"
            raise ArchiveError(error_msg)

        if not archive_path.exists():
            raise ArchiveError(f"Archive was not created: {archive_path}")

        if self.show_progress:
            size = archive_path.stat().st_size
            print(f"✓ Created {archive_path.name}: {size:,} bytes ({size / 1024 / 1024:.2f} MB)")

        return archive_path
