"""Console output formatting utilities for shtest."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from shtest.model import Job, Module


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_generation_started(
        self,
        test_dir: Path,
        out_dir: Path,
        module_count: int,
    ) -> None:
        """Print generation start information."""
        print("\nGENERATION STARTED")
        print(f"Test dir: {test_dir}")
        print(f"Output dir: {out_dir}")
        print(f"Test files: {module_count}")
        print()

    def print_job(self, job: Job) -> None:
        """Print one generated job as `name: command`."""
        print(f"  {job.name}: {' '.join(job.args)}")

    def print_module(self, module: Module) -> None:
        """Print a module path, marking test files."""
        suffix = f" ({module.file})" if module.file is not None else ""
        print(f"  {module.display_path}{suffix}")

    def print_results(self, jobs: list[Job]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        print(f"  Jobs generated: {len(jobs)}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
