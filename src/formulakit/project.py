"""Project-level configuration loaded from ``formulakit.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "formulakit.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "result_column": "result",
    "on_error": "raise",  # raise | null
    "precision": None,  # None: full float repr in CLI output
    "logging_enabled": True,
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}

_ON_ERROR_CHOICES = ("raise", "null")

DEFAULT_CONFIG_YAML = """\
# formulakit project configuration
result_column: result
on_error: raise      # raise | null
precision: null      # decimal places for CLI output, null = full precision

logging:
  enabled: true
  fsync: false
  tail_bytes: 2097152
"""


def _flatten_logging_block(user_config: dict[str, Any]) -> dict[str, Any]:
    """Flatten a nested ``logging:`` block into ``logging_*`` keys.

    Supports::

        logging:
          enabled: false
          fsync: true
          tail_bytes: 1048576
    """
    block = user_config.pop("logging", None)
    if not isinstance(block, dict):
        return user_config
    for key, value in block.items():
        user_config[f"logging_{key}"] = value
    return user_config


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load project configuration from ``formulakit.yaml``, with defaults.

    Args:
        project_dir: Directory holding the config file (and ``logs/``).

    Returns:
        Merged configuration dict.

    Raises:
        ValueError: If a known key has an unusable value.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = Path(project_dir) / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{CONFIG_FILENAME} must contain a mapping")
        config.update(_flatten_logging_block(user_config))

    # a bare `on_error: null` loads as None
    if config["on_error"] is None:
        config["on_error"] = "null"
    if config["on_error"] not in _ON_ERROR_CHOICES:
        raise ValueError(
            f"on_error must be one of {list(_ON_ERROR_CHOICES)}, got {config['on_error']!r}"
        )
    precision = config["precision"]
    if precision is not None and (not isinstance(precision, int) or precision < 0):
        raise ValueError(f"precision must be a non-negative integer, got {precision!r}")
    return config


def init_project(project_dir: Path) -> Path:
    """Write a default ``formulakit.yaml`` into *project_dir*.

    Raises:
        FileExistsError: If the config file already exists.
    """
    project_dir = Path(project_dir)
    project_dir.mkdir(parents=True, exist_ok=True)
    config_path = project_dir / CONFIG_FILENAME
    if config_path.exists():
        raise FileExistsError(f"{config_path} already exists")
    config_path.write_text(DEFAULT_CONFIG_YAML)
    return config_path


def format_value(value: float, precision: int | None) -> str:
    """Render a result for display, honouring the configured precision."""
    if precision is None:
        return repr(int(value)) if value.is_integer() and abs(value) < 1e16 else repr(value)
    return f"{value:.{precision}f}"
