"""Pytest configuration and fixtures for shtest tests."""

from pathlib import Path
from typing import Callable, Dict

import pytest

from shtest.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def _quiet_console():
    """Reset the global console so debug state never leaks between tests."""
    set_console(Console())
    yield
    set_console(Console())


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Build a test tree under tmp_path/tests from {relative path: contents}.

    A key ending in "/" creates an empty directory.
    """
    def _make(files: Dict[str, str]) -> Path:
        root = tmp_path / "tests"
        root.mkdir(exist_ok=True)
        for rel, contents in files.items():
            path = root / rel
            if rel.endswith("/"):
                path.mkdir(parents=True, exist_ok=True)
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(contents)
        return root

    return _make


@pytest.fixture
def sample_suite() -> str:
    """Two well-formed test blocks separated by blank lines."""
    return (
        "@test foo {\n"
        '    echo "hello from foo"\n'
        "}\n"
        "\n"
        "@test bar {\n"
        '    echo "hello from bar"\n'
        "    exit 0\n"
        "}\n"
    )
