"""Configuration for repository discovery and fan-out queries."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, NamedTuple

from multi_repo_git.repos.discovery import ScanPolicy

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MULTI_REPO_GIT_CONFIG"

DEFAULT_EXCLUDE_FOLDERS = (
    "node_modules",
    ".git",
    "dist",
    "build",
    "out",
    ".next",
    ".cache",
)


class ConfigError(Exception):
    """Raised when the configuration file cannot be used."""

    pass


class Config(NamedTuple):
    """Resolved configuration, read at the start of every discovery."""

    scan_nested: bool = True
    max_depth: int = 2
    exclude_folders: tuple[str, ...] = DEFAULT_EXCLUDE_FOLDERS
    roots: tuple[Path, ...] = ()
    max_workers: int = 8

    def scan_policy(self) -> ScanPolicy:
        return ScanPolicy(
            max_depth=self.max_depth,
            excluded_names=frozenset(self.exclude_folders),
            recurse_into_nested=self.scan_nested,
        )


def get_config_path() -> Path:
    """Get the config file path.

    Checks $MULTI_REPO_GIT_CONFIG first, then ~/.config/multi-repo-git/config.json.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "multi-repo-git" / "config.json"


def _expect(data: dict[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    value = data[key]
    # bool is an int subclass; keep "max_depth": true from passing as 1
    if kind is int and isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    if not isinstance(value, kind):
        raise ConfigError(f"'{key}' has the wrong type: {value!r}")
    return value


def parse_config(data: dict[str, Any]) -> Config:
    """Build a Config from a parsed JSON object, keeping defaults for missing keys."""
    if not isinstance(data, dict):
        raise ConfigError("Config must be a JSON object")

    values: dict[str, Any] = {}
    if "scan_nested" in data:
        values["scan_nested"] = _expect(data, "scan_nested", bool)
    if "max_depth" in data:
        max_depth = _expect(data, "max_depth", int)
        if max_depth < 0:
            raise ConfigError(f"'max_depth' must be >= 0, got {max_depth}")
        values["max_depth"] = max_depth
    if "exclude_folders" in data:
        folders = _expect(data, "exclude_folders", list)
        if not all(isinstance(f, str) for f in folders):
            raise ConfigError("'exclude_folders' must be a list of strings")
        values["exclude_folders"] = tuple(folders)
    if "roots" in data:
        roots = _expect(data, "roots", list)
        if not all(isinstance(r, str) for r in roots):
            raise ConfigError("'roots' must be a list of paths")
        values["roots"] = tuple(Path(r).expanduser() for r in roots)
    if "max_workers" in data:
        max_workers = _expect(data, "max_workers", int)
        if max_workers < 1:
            raise ConfigError(f"'max_workers' must be >= 1, got {max_workers}")
        values["max_workers"] = max_workers

    unknown = set(data) - set(Config._fields)
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))

    return Config(**values)


def load_config(path: Path | None = None) -> Config:
    """Load config from disk. A missing file yields the defaults."""
    config_path = path or get_config_path()
    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return Config()
    try:
        data = json.loads(config_path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config {config_path}: {e}") from e
    logger.debug("Loaded config from %s", config_path)
    return parse_config(data)
