"""CLI utility functions for rocksbuild.

This module provides common utilities used across CLI commands including:
- Error handling and formatting
- Project path validation
- Size formatting for cache listings
"""

import sys
from pathlib import Path


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message to stderr.

        Args:
            title: Error title (e.g., "Build failed")
            message: Error message details
        """
        print(file=sys.stderr)
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}", file=sys.stderr)
        print(file=sys.stderr)
        print(message, file=sys.stderr)
        print(file=sys.stderr)

    @staticmethod
    def print_success(message: str) -> None:
        """Print formatted success message.

        Args:
            message: Success message
        """
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        """Print formatted warning message to stderr.

        Args:
            message: Warning message
        """
        print(file=sys.stderr)
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}", file=sys.stderr)

    @staticmethod
    def handle_build_error(title: str, error: Exception) -> None:
        """Print a known build error and exit with status 1."""
        ErrorFormatter.print_error(title, str(error))
        sys.exit(1)

    @staticmethod
    def handle_permission_error(error: PermissionError) -> None:
        """Handle PermissionError with standard formatting.

        Args:
            error: The PermissionError to handle
        """
        ErrorFormatter.print_error("Error: Permission denied", str(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:", file=sys.stderr)
            print(traceback.format_exc(), file=sys.stderr)

        sys.exit(1)


class PathValidator:
    """Validates project paths and directories."""

    @staticmethod
    def validate_project_dir(project_dir: Path) -> None:
        """Validate that project directory exists and is a directory.

        Args:
            project_dir: Path to validate

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not project_dir.exists():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path does not exist: {project_dir}{ErrorFormatter.RESET}",
                file=sys.stderr,
            )
            sys.exit(2)
        if not project_dir.is_dir():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path is not a directory: {project_dir}{ErrorFormatter.RESET}",
                file=sys.stderr,
            )
            sys.exit(2)


def format_size(size: int) -> str:
    """Human-readable byte count, e.g. '12.3 MB'."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / 1024 / 1024:.1f} MB"
