# errors.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


class ShtestError(Exception):
    """Base class for every error the pipeline surfaces to the caller."""


# ----------------------------------------------------------------------
# Collection (filesystem -> module graph)
# ----------------------------------------------------------------------

WALK = "walk"
READ_ROOT_DIR = "read_root_dir"
EMPTY = "empty"
INTERNAL = "internal"
DUPLICATE = "duplicate"


@dataclass
class CollectError(ShtestError):
    """
    Failure while turning a directory tree into a module graph.

    kind is one of:
      - "walk"           I/O failure below the root
      - "read_root_dir"  the root itself could not be listed
      - "empty"          nothing test-bearing under the root
      - "internal"       an invariant of the graph was violated (a bug)
      - "duplicate"      two sibling entries map to the same module name
    """
    kind: str
    message: str
    path: Optional[Path] = None

    def __str__(self) -> str:
        if self.path is not None:
            return f"{self.message}: '{self.path}'"
        return self.message


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------

@dataclass
class ParseError(ShtestError):
    """Syntax error in a test file. line/column are 1-based."""
    path: str
    line: int
    column: int
    message: str

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}: {self.message}"


@dataclass
class ReadError(ShtestError):
    """A test file could not be read."""
    path: Path
    reason: str

    def __str__(self) -> str:
        return f"failed to read test file '{self.path}': {self.reason}"


# ----------------------------------------------------------------------
# Generation
# ----------------------------------------------------------------------

@dataclass
class WriteError(ShtestError):
    """A generated test script could not be written."""
    path: Path
    reason: str

    def __str__(self) -> str:
        return f"failed to write generated test script '{self.path}': {self.reason}"


@dataclass
class DuplicateJobError(ShtestError):
    """Two or more tests would produce the same job name and script file."""
    names: List[str]

    def __str__(self) -> str:
        return f"Duplicate job names found: {self.names}"


# ----------------------------------------------------------------------
# Configuration
# ----------------------------------------------------------------------

@dataclass
class ConfigError(ShtestError):
    """kind is "missing" (file unreadable) or "parse" (bad contents)."""
    kind: str
    message: str
    path: Optional[Path] = None

    def __str__(self) -> str:
        if self.path is not None:
            return f"{self.message} ({self.path})"
        return self.message
