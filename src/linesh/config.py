# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Configuration and data root resolution for linesh.

Handles:
- Data root resolution (LINESH_DATA_HOME, ~/.local/share)
- Crash log location
- Packaged YAML defaults loading (linesh/defaults/engine.yaml)
- Optional user override file (LINESH_CONFIG), deep-merged over defaults
- ANSI coloring constants for usage output
"""

from __future__ import annotations

import copy
import os
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any

import yaml


# -----------------------
# UI constants
# -----------------------

ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[38;5;69;1m",
    "reset": "\033[0m",
}

DEFAULTS_FILE = "engine.yaml"
CONFIG_ENV = "LINESH_CONFIG"
DATA_HOME_ENV = "LINESH_DATA_HOME"


# -----------------------
# Config model wrapper
# -----------------------


class YAMLConfig:
    """Simple config wrapper that implements ConfigModel protocol."""

    def __init__(self, config_dict: dict[str, Any]):
        self._config = config_dict

    @property
    def engine(self) -> dict[str, Any]:
        engine_cfg = self._config.get("engine", {})
        return engine_cfg if isinstance(engine_cfg, dict) else {}

    @property
    def comment_prefixes(self) -> tuple[str, ...]:
        prefixes = self.engine.get("comment_prefixes") or ["//", "#"]
        return tuple(str(p) for p in prefixes if p)

    @property
    def failure_policy(self) -> str:
        return str(self.engine.get("failure_policy", "exit"))

    @property
    def crash_log(self) -> bool:
        return bool(self.engine.get("crash_log", True))

    def get_path(self, path: str, default: Any = None) -> Any:
        """
        Nested lookup using dot-separated path.
        Example: get_path("ui.theme.style", {}) -> dict style mapping
        """
        if not path:
            return default

        cur: Any = self._config
        for part in path.split("."):
            if not isinstance(cur, dict):
                return default
            if part not in cur:
                return default
            cur = cur[part]
        return cur


# -----------------------
# Data root
# -----------------------


def get_data_root() -> Path:
    """Get the data root directory for linesh.

    Resolution order:
    1. LINESH_DATA_HOME environment variable (if set)
    2. ~/.local/share (default, XDG_DATA_HOME is ignored)
    """
    data_home = os.getenv(DATA_HOME_ENV)
    if data_home:
        return Path(data_home)
    return Path.home() / ".local" / "share"


def crash_log_path(data_root: Path) -> Path:
    """<data_root>/linesh/logs/crash.log"""
    return data_root / "linesh" / "logs" / "crash.log"


# -----------------------
# Defaults + overrides loading
# -----------------------


def _defaults_dir() -> Path:
    """Return the installed path to packaged defaults directory."""
    return Path(
        importlib_resources.files("linesh.defaults")
    )  # type: ignore[arg-type]


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config YAML {path} must load to a mapping/dict.")
    return data


def load_defaults_yaml(filename: str = DEFAULTS_FILE) -> dict[str, Any]:
    """
    Load a YAML file from linesh/defaults/.
    """
    defaults_dir = _defaults_dir()
    path = defaults_dir / filename
    if not path.exists():
        raise FileNotFoundError(
            f"Missing defaults YAML: {filename} "
            f"(looked in {defaults_dir})"
        )
    return _load_yaml_mapping(path)


def merge_config(
    base: dict[str, Any], override: dict[str, Any]
) -> dict[str, Any]:
    """Deep-merge override into a copy of base. Nested dicts merge,
    everything else is replaced."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(override_path: Path | None = None) -> YAMLConfig:
    """
    Load packaged defaults, then merge the user override file if any.

    The override path comes from the argument, else LINESH_CONFIG.
    """
    data = load_defaults_yaml()

    if override_path is None:
        env_path = os.getenv(CONFIG_ENV)
        if env_path:
            override_path = Path(env_path)

    if override_path is not None:
        if not override_path.exists():
            raise FileNotFoundError(f"Config file not found: {override_path}")
        data = merge_config(data, _load_yaml_mapping(override_path))

    return YAMLConfig(data)
