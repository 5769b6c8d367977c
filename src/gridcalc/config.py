"""Project-level configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "gridcalc.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "empty_display": "_",
    "column_separator": ",\t",
    "logging_enabled": True,
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}


def load_config(project_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from ``gridcalc.yaml``, with defaults.

    Args:
        project_dir: Directory holding ``gridcalc.yaml``.  ``None`` or a
            directory without the file yields the defaults.

    Returns:
        Merged configuration dict.  Unknown keys are kept as-is.

    Raises:
        ValueError: If the file does not hold a YAML mapping.
    """
    config = dict(DEFAULT_CONFIG)
    if project_dir is None:
        return config
    config_path = Path(project_dir) / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping, got {type(user_config).__name__}")
        config.update(user_config)
    return config
