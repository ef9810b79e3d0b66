"""Configuration management for orgtree.

Handles configuration loading from multiple sources with precedence:
CLI args > environment variables > .orgtreerc > pyproject.toml > defaults
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

# tomllib is only available in Python 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class OrgtreeConfig:
    """Configuration for orgtree.

    Attributes:
        db_path: Path to the SQLite database (default: "orgtree.db")
        busy_timeout: Seconds to wait for another writer's lock (default: 5.0)
        log_level: Logging level for the CLI (default: "WARNING")
        tree_name: File name used when exporting the hierarchy (default: "hierarchy.json")
    """

    db_path: str = "orgtree.db"
    busy_timeout: float = 5.0
    log_level: str = "WARNING"
    tree_name: str = "hierarchy.json"

    def __post_init__(self) -> None:
        """Normalize and validate configuration after initialization."""
        # Environment variables arrive as strings
        if isinstance(self.busy_timeout, str):
            try:
                self.busy_timeout = float(self.busy_timeout)
            except ValueError as e:
                raise ValueError(f"busy_timeout must be a number, got {self.busy_timeout!r}") from e
        if isinstance(self.log_level, str):
            self.log_level = self.log_level.upper()
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        if not self.db_path or not isinstance(self.db_path, str):
            raise ValueError("db_path must be a non-empty string")

        if isinstance(self.busy_timeout, bool) or not isinstance(self.busy_timeout, (int, float)):
            raise ValueError("busy_timeout must be a number")
        if self.busy_timeout <= 0:
            raise ValueError("busy_timeout must be greater than 0")

        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")

        if not self.tree_name or not isinstance(self.tree_name, str):
            raise ValueError("tree_name must be a non-empty string")
        if not self.tree_name.endswith(".json"):
            raise ValueError("tree_name must end with .json")

    def get_db_path(self, base_path: Path | None = None) -> Path:
        """Get the full path to the database.

        Relative paths are resolved against base_path (default: current directory).
        """
        path = Path(self.db_path)
        if path.is_absolute():
            return path
        return (base_path or Path.cwd()) / path

    def get_tree_path(self, base_path: Path | None = None) -> Path:
        """Get the path of the exported hierarchy, next to the database."""
        return self.get_db_path(base_path).parent / self.tree_name


def _get_config_field_names() -> set[str]:
    return {f.name for f in fields(OrgtreeConfig)}


def find_config_file(filename: str = ".orgtreerc", start_dir: Path | None = None) -> Path | None:
    """Find a configuration file by traversing up the directory tree.

    Args:
        filename: Name of the config file to find.
        start_dir: Directory to start searching from. Defaults to current directory.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        config_path = current / filename
        if config_path.is_file():
            return config_path

        parent = current.parent
        if parent == current:
            return None
        current = parent


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    with open(path, "rb") as f:
        result: dict[str, Any] = tomllib.load(f)
        return result


def _load_from_orgtreerc(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from the nearest .orgtreerc file, or {} if none."""
    config_path = find_config_file(".orgtreerc", start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
        valid_fields = _get_config_field_names()
        return {k: v for k, v in data.items() if k in valid_fields}
    except (tomllib.TOMLDecodeError, OSError):
        return {}


def _load_from_pyproject(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from the pyproject.toml [tool.orgtree] section."""
    config_path = find_config_file("pyproject.toml", start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
        section = data.get("tool", {}).get("orgtree", {})
        valid_fields = _get_config_field_names()
        return {k: v for k, v in section.items() if k in valid_fields}
    except (tomllib.TOMLDecodeError, OSError):
        return {}


def _load_from_env() -> dict[str, Any]:
    """Load configuration from ORGTREE_* environment variables."""
    env_mapping = {
        "ORGTREE_DB_PATH": "db_path",
        "ORGTREE_BUSY_TIMEOUT": "busy_timeout",
        "ORGTREE_LOG_LEVEL": "log_level",
        "ORGTREE_TREE_NAME": "tree_name",
    }

    result: dict[str, Any] = {}
    for env_var, config_key in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            result[config_key] = value

    return result


def _merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge configuration dictionaries; later ones take precedence."""
    result: dict[str, Any] = {}
    for config in configs:
        for key, value in config.items():
            if value is not None:
                result[key] = value
    return result


def load_config(
    cli_overrides: dict[str, Any] | None = None,
    start_dir: Path | None = None,
) -> OrgtreeConfig:
    """Load configuration with full precedence chain.

    Precedence (highest to lowest):
    1. CLI arguments (cli_overrides)
    2. Environment variables (ORGTREE_*)
    3. .orgtreerc file
    4. pyproject.toml [tool.orgtree] section
    5. Default values

    Args:
        cli_overrides: Configuration overrides from CLI arguments.
        start_dir: Directory to start searching for config files.

    Returns:
        Fully resolved OrgtreeConfig instance.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    valid_fields = _get_config_field_names()
    cli_config = {
        k: v for k, v in (cli_overrides or {}).items() if k in valid_fields and v is not None
    }

    merged = _merge_configs(
        _load_from_pyproject(start_dir),
        _load_from_orgtreerc(start_dir),
        _load_from_env(),
        cli_config,
    )
    return OrgtreeConfig(**merged)
