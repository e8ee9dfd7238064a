"""Load and merge configuration from .diffchain.toml and env vars."""

from __future__ import annotations

import dataclasses
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from diffchain.config.schema import (
    LOG_LEVELS,
    ClassifierConfig,
    CommitConfig,
    DiffchainConfig,
    LoggingConfig,
    OutputConfig,
    StoreConfig,
)

CONFIG_FILENAME = ".diffchain.toml"


class ConfigError(Exception):
    """Raised when config is malformed or unreadable."""


def find_config_file(root: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = root / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _merge_env_overrides(cfg: DiffchainConfig) -> None:
    """Apply DIFFCHAIN_* environment variable overrides."""
    if val := os.environ.get("DIFFCHAIN_DATABASE_URL"):
        cfg.store.url = val
    if val := os.environ.get("DIFFCHAIN_FORMAT"):
        if val in ("terminal", "json"):
            cfg.output.format = val  # type: ignore[assignment]
    if val := os.environ.get("DIFFCHAIN_LOG_LEVEL"):
        if val.upper() in LOG_LEVELS:
            cfg.logging.level = val.upper()
    if val := os.environ.get("DIFFCHAIN_MAX_RETRIES"):
        try:
            cfg.commit.max_retries = max(0, int(val))
        except ValueError:
            pass
    if val := os.environ.get("DIFFCHAIN_EXTRA_EXTENSIONS"):
        cfg.classifier.extra_extensions.extend(
            e.strip() for e in val.split(",") if e.strip()
        )


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.get(section, {}).items() if k in valid_fields}
    return cls(**filtered)


def load_config(
    root: Optional[Path] = None,
    config_override: Optional[str] = None,
) -> DiffchainConfig:
    """Load, validate, and return a DiffchainConfig."""
    config_path = find_config_file(root or Path.cwd(), config_override)

    if config_path is None:
        cfg = DiffchainConfig()
    else:
        raw = _parse_toml(config_path)
        cfg = DiffchainConfig(
            version=raw.get("version", "1.0"),
            store=_build_section(raw, StoreConfig, "store"),
            commit=_build_section(raw, CommitConfig, "commit"),
            classifier=_build_section(raw, ClassifierConfig, "classifier"),
            output=_build_section(raw, OutputConfig, "output"),
            logging=_build_section(raw, LoggingConfig, "logging"),
        )

    if cfg.commit.hash_length < 8 or cfg.commit.hash_length > 64:
        raise ConfigError("commit.hash_length must be between 8 and 64")
    if cfg.output.format not in ("terminal", "json"):
        raise ConfigError(f"Unknown output format: {cfg.output.format}")

    _merge_env_overrides(cfg)
    return cfg
