"""YAML configuration for the engine and the arena."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Dict[str, Any]]:
    """Read a config file, falling back to the packaged defaults.

    Sections missing from ``path`` are taken from the packaged file so a user
    config only needs the keys it overrides.
    """

    with DEFAULT_CONFIG_PATH.open("r", encoding="utf-8") as fh:
        config: Dict[str, Dict[str, Any]] = yaml.safe_load(fh) or {}
    if path is None:
        return config

    with Path(path).open("r", encoding="utf-8") as fh:
        overrides = yaml.safe_load(fh) or {}
    if not isinstance(overrides, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    for section, values in overrides.items():
        merged = dict(config.get(section) or {})
        merged.update(values or {})
        config[section] = merged
    return config


def section(config: Dict[str, Dict[str, Any]], name: str) -> Dict[str, Any]:
    return dict(config.get(name) or {})


__all__ = ["DEFAULT_CONFIG_PATH", "load_config", "section"]
