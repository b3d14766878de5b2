# config.py
from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .collect import FILE_EXTENSION
from .errors import ConfigError

# The default name of the config file.
CONFIG_FILENAME = "shtest.toml"

DEFAULT_TEST_DIR = "tests"
DEFAULT_WORK_DIR = ".shtest"
SCRIPTS_DIRNAME = "scripts"

_KEYS = {"test-dir", "work-dir", "file-extension"}


@dataclass(frozen=True)
class Config:
    """
    Settings for a shtest run.

    test_dir:       where to look for test files
    work_dir:       where generated scripts and other outputs are stored
    file_extension: extension (without the dot) that marks a test file
    """
    test_dir: Path = Path(DEFAULT_TEST_DIR)
    work_dir: Path = Path(DEFAULT_WORK_DIR)
    file_extension: str = FILE_EXTENSION

    @property
    def scripts_dir(self) -> Path:
        return self.work_dir / SCRIPTS_DIRNAME


def config_path(path_override: str | Path | None = None) -> Path:
    """Location of the config file: the override, or ./shtest.toml."""
    if path_override is not None:
        return Path(path_override).expanduser().absolute()
    return Path.cwd() / CONFIG_FILENAME


def _str_value(data: dict, key: str, default: str, path: Path) -> str:
    value = data.get(key, default)
    if not isinstance(value, str) or not value:
        raise ConfigError("parse", f"'{key}' must be a non-empty string", path)
    return value


def parse_config(text: str, base_dir: Path, path: Optional[Path] = None) -> Config:
    """Parse config file contents; relative dirs resolve against base_dir."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError("parse", f"invalid config file: {e}", path) from e

    unknown = sorted(set(data) - _KEYS)
    if unknown:
        raise ConfigError("parse", f"unknown config key(s): {unknown}", path)

    test_dir = Path(_str_value(data, "test-dir", DEFAULT_TEST_DIR, path))
    work_dir = Path(_str_value(data, "work-dir", DEFAULT_WORK_DIR, path))
    ext = _str_value(data, "file-extension", FILE_EXTENSION, path).lstrip(".")

    return Config(
        test_dir=test_dir if test_dir.is_absolute() else base_dir / test_dir,
        work_dir=work_dir if work_dir.is_absolute() else base_dir / work_dir,
        file_extension=ext,
    )


def load_config(path_override: str | Path | None = None) -> Config:
    """
    Load the config file from the default location or a user-supplied one.

    Raises ConfigError(kind="missing") if the file cannot be read.
    """
    path = config_path(path_override)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError("missing", f"couldn't load config file: {e.strerror or e}", path) from e
    return parse_config(text, path.parent, path)
