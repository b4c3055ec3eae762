"""Compilation Executor.

This module handles executing compilation commands via subprocess with
proper error handling.

Design:
    - Wraps subprocess.run for compilation commands
    - GNU-style (c++ -c src -o obj) and MSVC (cl /c src /Fo obj) command lines
    - Records the command used for each object beside it ({obj}.cmd.json)
    - GNU builds also emit a make-style depfile ({obj}.d) listing headers
    - Provides clear error messages for compilation failures

An object is reused only when it was built by the same command and is newer
than its source and every header in its depfile. MSVC builds emit no
depfile, so their objects are always rebuilt.
"""

import json
import subprocess
from pathlib import Path
from typing import List, Optional

from ..config import ToolchainFamily
from .flag_builder import BuildConfiguration


class CompilationError(Exception):
    """Raised when compilation operations fail."""
    pass


def command_record_path(output_path: Path) -> Path:
    return output_path.with_name(output_path.name + ".cmd.json")


def parse_depfile(text: str) -> List[Path]:
    """Prerequisites listed in a make-style depfile (`obj: src hdr ...`)."""
    text = text.replace("\\\r\n", " ").replace("\\\n", " ")
    deps: List[Path] = []
    for line in text.splitlines():
        _, sep, prerequisites = line.partition(": ")
        if not sep:
            continue
        # Escaped spaces belong to the path
        prerequisites = prerequisites.replace("\\ ", "\0")
        for token in prerequisites.split():
            deps.append(Path(token.replace("\0", " ")))
    return deps


class CompilationExecutor:
    """Executes compilation commands for single translation units.

    This class handles:
    - Building compiler command lines per toolchain family
    - Deciding whether an existing object is still valid
    - Running the compiler subprocess
    """

    def __init__(
        self,
        compiler_path: Path,
        toolchain: ToolchainFamily,
        show_progress: bool = False,
        timeout: int = 600
    ):
        """Initialize compilation executor.

        Args:
            compiler_path: Path to compiler executable (c++/cl.exe)
            toolchain: Toolchain family, selects command-line syntax
            show_progress: Whether to echo compiler diagnostics
            timeout: Per-file compile timeout in seconds
        """
        self.compiler_path = compiler_path
        self.toolchain = toolchain
        self.show_progress = show_progress
        self.timeout = timeout

    @staticmethod
    def object_suffix(toolchain: ToolchainFamily) -> str:
        return ".obj" if toolchain == ToolchainFamily.MSVC else ".o"

    def depfile_path(self, output_path: Path) -> Optional[Path]:
        """Depfile written next to ``output_path``, or None for MSVC."""
        if self.toolchain == ToolchainFamily.MSVC:
            return None
        return output_path.with_suffix(".d")

    def build_command(
        self,
        source_path: Path,
        output_path: Path,
        config: BuildConfiguration
    ) -> List[str]:
        """Build the compiler command for one source file.

        Args:
            source_path: Path to source file
            output_path: Path for output object file
            config: Build configuration for the archive

        Returns:
            Command as a list of arguments
        """
        cmd = [str(self.compiler_path)]
        if self.toolchain == ToolchainFamily.MSVC:
            cmd.extend(["/nologo", "/c"])
            cmd.extend(config.compile_args(self.toolchain))
            cmd.append(str(source_path))
            cmd.append(f"/Fo{output_path}")
        else:
            cmd.extend(["-c", "-fPIC", "-MMD", "-MF", str(self.depfile_path(output_path))])
            cmd.extend(config.compile_args(self.toolchain))
            cmd.extend([str(source_path), "-o", str(output_path)])
        return cmd

    def needs_rebuild(
        self,
        source_path: Path,
        output_path: Path,
        config: BuildConfiguration
    ) -> bool:
        """Check whether ``output_path`` must be compiled again.

        Args:
            source_path: Path to source file
            output_path: Path to the existing object file
            config: Build configuration the object would be built with

        Returns:
            True if the object is missing, was built by a different
            command, or is older than its source or any recorded header
        """
        depfile = self.depfile_path(output_path)
        if depfile is None or not output_path.exists() or not depfile.exists():
            return True

        try:
            recorded = json.loads(command_record_path(output_path).read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return True
        if recorded != self.build_command(source_path, output_path, config):
            return True

        try:
            object_mtime = output_path.stat().st_mtime
            dependencies = [source_path] + parse_depfile(depfile.read_text(encoding="utf-8"))
            for dependency in dependencies:
                if dependency.stat().st_mtime > object_mtime:
                    return True
        except OSError:
            return True
        return False

    def compile_source(
        self,
        source_path: Path,
        output_path: Path,
        config: BuildConfiguration
    ) -> Path:
        """Compile a single source file.

        Args:
            source_path: Path to source file
            output_path: Path for output object file
            config: Build configuration for the archive

        Returns:
            Path to generated object file

        Raises:
            CompilationError: If compilation fails
        """
        if not self.compiler_path.exists():
            raise CompilationError(
                f"Compiler not found: {self.compiler_path}. Ensure toolchain is installed."
            )

        if not source_path.exists():
            raise CompilationError(f"Source file not found: {source_path}")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        record = command_record_path(output_path)
        if record.exists():
            record.unlink()
        cmd = self.build_command(source_path, output_path, config)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise CompilationError(f"Compilation timeout for {source_path.name}") from e
        except OSError as e:
            raise CompilationError(f"Failed to compile {source_path.name}: {e}") from e

        if result.returncode != 0:
            error_msg = f"Compilation failed for {source_path}\n"
            error_msg += f"command: {' '.join(cmd)}\n"
            error_msg += f"stderr: {result.stderr}\n"
            error_msg += f"stdout: {result.stdout}"
            raise CompilationError(error_msg)

        if self.show_progress and result.stderr:
            print(result.stderr)

        try:
            record.write_text(json.dumps(cmd), encoding="utf-8")
        except OSError as e:
            raise CompilationError(f"Failed to record command for {output_path.name}: {e}") from e

        return output_path
