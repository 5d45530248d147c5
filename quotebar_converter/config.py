"""
Configuration Schema
--------------------
Defines the dataclass used to validate and structure the YAML configuration.
Acts as the single source of truth for directories, concurrency and price scale.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .validator import validate_keys

CONFIG_ENV_VAR = "QUOTEBAR_CONFIG"
DEFAULT_CONFIG_PATH = Path("configs/base.yaml")


@dataclass
class ConverterConfig:
    """Root configuration object."""

    data_directory: str = "data"
    tick_subdirectory: str = "forex/oanda/tick"
    destination_directory: str = "converted"
    error_log: Optional[str] = None
    max_workers: int = 5
    price_scale: int = 10000
    fail_on_job_error: bool = False

    def __post_init__(self) -> None:
        if int(self.max_workers) < 1:
            raise ValueError(f"Config Error: max_workers must be >= 1, got {self.max_workers}")
        if not float(self.price_scale) > 0:
            raise ValueError(f"Config Error: price_scale must be > 0, got {self.price_scale}")

    @property
    def tick_directory(self) -> Path:
        return Path(self.data_directory) / self.tick_subdirectory

    @property
    def error_log_path(self) -> Path:
        if self.error_log:
            return Path(self.error_log)
        return Path(self.destination_directory) / "error.log"


def load_config(path: str | Path) -> ConverterConfig:
    """
    Loads configuration from a YAML file.
    Unknown keys are rejected; missing keys keep their defaults.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(p, "r", encoding="utf-8") as f:
        data: Any = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config Error: expected a mapping at the top of {path}")

    validate_keys(data, ConverterConfig)
    return ConverterConfig(**data)


def resolve_config(path: str | Path | None = None) -> ConverterConfig:
    """
    Explicit path, else $QUOTEBAR_CONFIG, else configs/base.yaml when present,
    else built-in defaults.
    """
    if path is not None:
        return load_config(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return load_config(env_path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return ConverterConfig()
