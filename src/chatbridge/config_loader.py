# src/chatbridge/config_loader.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import yaml


class ConfigError(ValueError):
    pass


def _require(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            raise ConfigError(f"Missing config key: {dotted}")
        cur = cur[k]
    if typ is str and not isinstance(cur, str):
        raise ConfigError(f"'{dotted}' must be a string")
    return cur


def _optional_number(d: Dict[str, Any], key: str, where: str) -> None:
    val = d.get(key)
    if val is None:
        return
    if isinstance(val, bool) or not isinstance(val, (int, float)) or val <= 0:
        raise ConfigError(f"'{where}.{key}' must be a positive number")


def load_config(path: Path) -> Dict[str, Any]:
    if not path or not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    raw = yaml.safe_load(path.read_text())
    if not isinstance(raw, dict) or not raw:
        raise ConfigError(f"Config is empty or invalid YAML: {path}")

    # Validate required keys (no defaults here)
    _require(raw, "provider", str)
    _require(raw, "model", str)

    # Normalise provider names; the registry decides which ones exist
    raw["provider"] = raw["provider"].strip().lower()
    providers = raw.get("providers") or {}
    if not isinstance(providers, dict):
        raise ConfigError("'providers' must be a mapping")
    normalised: Dict[str, Dict[str, Any]] = {}
    for name, section in providers.items():
        section = section or {}
        if not isinstance(section, dict):
            raise ConfigError(f"'providers.{name}' must be a mapping")
        host = section.get("host")
        if host is not None and not isinstance(host, str):
            raise ConfigError(f"'providers.{name}.host' must be a string")
        _optional_number(section, "timeout", f"providers.{name}")
        normalised[str(name).lower()] = section
    raw["providers"] = normalised

    runtime = raw.get("runtime") or {}
    if not isinstance(runtime, dict):
        raise ConfigError("'runtime' must be a mapping")
    _optional_number(runtime, "timeout", "runtime")
    raw["runtime"] = runtime

    secrets = raw.get("secrets") or {}
    if not isinstance(secrets, dict):
        raise ConfigError("'secrets' must be a mapping")
    raw["secrets"] = secrets

    return raw
