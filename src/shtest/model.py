# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class DiscoveryNode:
    """One filesystem entry seen while walking the test directory."""
    name: str
    is_leaf_file: bool
    source_path: Path


@dataclass(frozen=True)
class Module:
    """
    A test module: either a test file (leaf) or a directory of modules.

    Identity is the module path; the file is only carried along.
    """
    module_path: Tuple[str, ...]
    file: Optional[Path] = field(default=None, compare=False)

    @property
    def name(self) -> str:
        return self.module_path[-1]

    @property
    def is_leaf(self) -> bool:
        return self.file is not None

    @property
    def display_path(self) -> str:
        return "::".join(self.module_path)


@dataclass(frozen=True)
class Test:
    """A parsed test block: its name and raw body (line endings kept)."""

    name: str
    body: str


@dataclass(frozen=True)
class Job:
    """
    A runnable job: name + command + environment.

    `envs` is reserved for per-test environment injection and is
    currently always empty.
    """
    name: str
    args: Tuple[str, ...]
    envs: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "args": list(self.args),
            "envs": dict(self.envs),
        }
