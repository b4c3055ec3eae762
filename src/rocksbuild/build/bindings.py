"""Binding Generator.

This module runs the external ``bindgen`` tool over RocksDB's public C
header and writes the generated Rust bindings into the build-output
directory. Bindings are a hard prerequisite of the build: any failure here
aborts it.

Generator Options:
    --blocklist-type max_align_t   bindgen cannot lay this type out portably
    --ctypes-prefix libc           primitive C types come from the libc crate
"""

import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

BINDINGS_FILENAME = "bindings.rs"
BLOCKLISTED_TYPES = ("max_align_t",)
CTYPES_PREFIX = "libc"


class BindingGenerationError(Exception):
    """Raised when bindings cannot be generated or written."""
    pass


class BindingGenerator:
    """Invokes bindgen and persists its output."""

    def __init__(self, bindgen: str = "bindgen", timeout: int = 300, verbose: bool = False):
        """Initialize binding generator.

        Args:
            bindgen: bindgen executable name or path
            timeout: Generator timeout in seconds
            verbose: Echo generator warnings
        """
        self.bindgen = bindgen
        self.timeout = timeout
        self.verbose = verbose

    def build_command(self, header: Path, clang_args: Optional[List[str]] = None) -> List[str]:
        cmd = [self.bindgen, str(header)]
        for type_name in BLOCKLISTED_TYPES:
            cmd.extend(["--blocklist-type", type_name])
        cmd.extend(["--ctypes-prefix", CTYPES_PREFIX])
        if clang_args:
            cmd.append("--")
            cmd.extend(clang_args)
        return cmd

    def generate(
        self,
        header: Path,
        out_dir: Path,
        clang_args: Optional[List[str]] = None
    ) -> Path:
        """Generate bindings for ``header`` into ``out_dir/bindings.rs``.

        Args:
            header: Public C header (rocksdb/include/rocksdb/c.h)
            out_dir: Build-output directory
            clang_args: Extra arguments forwarded to libclang

        Returns:
            Path to the written bindings file

        Raises:
            BindingGenerationError: If the header is missing, bindgen fails
                or produces nothing, or the file cannot be written
        """
        if not header.is_file():
            raise BindingGenerationError(f"Header not found: {header}")

        if shutil.which(self.bindgen) is None and not Path(self.bindgen).exists():
            raise BindingGenerationError(
                f"bindgen not found: {self.bindgen}. "
                + "Install it with `cargo install bindgen-cli` or set BINDGEN."
            )

        cmd = self.build_command(header, clang_args)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise BindingGenerationError(f"bindgen timed out on {header}") from e
        except OSError as e:
            raise BindingGenerationError(f"unable to run bindgen: {e}") from e

        if result.returncode != 0:
            raise BindingGenerationError(
                f"unable to generate rocksdb bindings\nstderr: {result.stderr}"
            )

        if not result.stdout.strip():
            raise BindingGenerationError(f"bindgen produced no output for {header}")

        if self.verbose and result.stderr:
            print(result.stderr)

        out_path = Path(out_dir) / BINDINGS_FILENAME
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(result.stdout, encoding="utf-8")
        except OSError as e:
            raise BindingGenerationError(f"unable to write rocksdb bindings to {out_path}: {e}") from e

        return out_path
