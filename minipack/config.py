"""Configuration loading for minipack (.minipack.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .graph import DEFAULT_MAX_ASSETS

CONFIG_FILENAME = ".minipack.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class BundleConfig:
    """Represents the settings defined in .minipack.yml."""

    root: Path
    entry: Optional[Path] = None
    output: Optional[Path] = None
    dedupe: bool = True
    max_assets: int = DEFAULT_MAX_ASSETS
    cache_exports: bool = True
    extensions: List[str] = field(default_factory=list)
    strict: bool = True

    def with_overrides(self, **overrides: Any) -> "BundleConfig":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


def load_config(config_path: Path) -> BundleConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return BundleConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = BundleConfig(root=root)

    entry = _as_str(data.get("entry"))
    if entry:
        config.entry = root / entry
    output = _as_str(data.get("output"))
    if output:
        config.output = root / output

    dedupe = _as_bool(data.get("dedupe"))
    if dedupe is not None:
        config.dedupe = dedupe
    cache_exports = _as_bool(data.get("cache_exports"))
    if cache_exports is not None:
        config.cache_exports = cache_exports
    strict = _as_bool(data.get("strict"))
    if strict is not None:
        config.strict = strict

    max_assets = _as_int(data.get("max_assets"))
    if max_assets is not None:
        if max_assets < 1:
            raise ConfigError("max_assets must be a positive integer")
        config.max_assets = max_assets

    config.extensions = _as_str_list(data.get("extensions"))
    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = ["BundleConfig", "CONFIG_FILENAME", "ConfigError", "load_config"]
