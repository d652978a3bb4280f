"""Configuration system for zynav using Pydantic."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IndexConfig(BaseModel):
    """Symbol index configuration."""

    extension: str = ".zy"
    cache_dir: str = ".zynav/index"  # relative to the project root
    throttle_seconds: float = Field(default=1.5, ge=0.0)
    full_rebuild_min_changes: int = Field(default=200, ge=0)
    full_rebuild_ratio: float = Field(default=0.3, ge=0.0, le=1.0)
    max_file_size_kb: int = Field(default=1024, ge=1)
    skip_dirs: list[str] = Field(
        default_factory=lambda: [
            ".git", ".idea", ".zynav", "node_modules", "__pycache__",
            "venv", ".venv", "dist", "build",
        ]
    )


class WatcherConfig(BaseModel):
    """File-change watcher configuration."""

    enabled: bool = True
    debounce_seconds: float = Field(default=0.5, ge=0.0)


class ZynavConfig(BaseModel):
    """Root configuration model."""

    index: IndexConfig = Field(default_factory=IndexConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)


class EnvSettings(BaseSettings):
    """Environment variable overrides."""

    model_config = SettingsConfigDict(
        env_prefix="ZYNAV_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    throttle_seconds: float | None = None
    debounce_seconds: float | None = None
    log_level: str = "INFO"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dicts, override wins on conflicts."""
    result = {**base}
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load a YAML config file, return empty dict if not found."""
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _resolve_env_vars(value: Any) -> Any:
    """Recursively replace ${ENV_VAR} references with actual env values.

    If an env var is not set, the placeholder is preserved as-is.
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{(\w+)\}")
        return pattern.sub(
            lambda m: os.environ.get(m.group(1), m.group(0)),
            value,
        )
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def load_config(project_dir: Path | None = None, global_dir: Path | None = None) -> ZynavConfig:
    """Load configuration with layered precedence.

    Order (later overrides earlier):
    1. Built-in defaults (Pydantic defaults)
    2. ~/.zynav/config.yaml (global user config)
    3. <project>/.zynav/config.yaml (project-level config)
    4. Environment variables (ZYNAV_*, also read from .env)
    """
    global_config_dir = global_dir or (Path.home() / ".zynav")
    project_config_dir = (project_dir or Path.cwd()) / ".zynav"

    merged: dict[str, Any] = {}
    for config_path in [
        global_config_dir / "config.yaml",
        project_config_dir / "config.yaml",
    ]:
        layer = load_yaml_config(config_path)
        merged = _deep_merge(merged, layer)

    config = ZynavConfig(**_resolve_env_vars(merged))

    env = EnvSettings()
    if env.throttle_seconds is not None:
        config = config.model_copy(
            update={"index": config.index.model_copy(update={"throttle_seconds": env.throttle_seconds})}
        )
    if env.debounce_seconds is not None:
        config = config.model_copy(
            update={"watcher": config.watcher.model_copy(update={"debounce_seconds": env.debounce_seconds})}
        )

    return config
