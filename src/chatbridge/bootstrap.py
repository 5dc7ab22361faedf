from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

from .config_loader import ConfigError, load_config
from .core.ports import Provider
from .core.types import ConnectionSettings, Model
from .providers.catalog import DEFAULT_TIMEOUT
from .providers.registry import ProviderRegistry, default_registry
from .secrets.sources import SecretsResolver

logger = logging.getLogger(__name__)


def connection_settings(cfg: Dict[str, Any], resolver: SecretsResolver) -> ConnectionSettings:
    provider_name = cfg["provider"]
    provider_cfg = (cfg.get("providers") or {}).get(provider_name, {})

    api_key = resolver.secret(provider_name, "api_key")
    if not api_key:
        logger.warning("No API key found for provider '%s'", provider_name)

    return ConnectionSettings(
        name=provider_name,
        api_key=api_key or "",
        host=provider_cfg.get("host") or "",
        timeout=float(provider_cfg.get("timeout") or DEFAULT_TIMEOUT),
    )


def build_provider(cfg: Dict[str, Any], registry: Optional[ProviderRegistry] = None) -> Provider:
    registry = registry or default_registry()
    provider_name = cfg["provider"]
    if provider_name not in registry:
        raise ConfigError(f"Unknown provider '{provider_name}' (expected one of {registry.names()}).")

    secrets_cfg = cfg.get("secrets") or {}
    resolver = SecretsResolver(
        method=secrets_cfg.get("method", "env"),
        mapping=secrets_cfg.get("mapping") or {},
    )
    return registry.create(connection_settings(cfg, resolver))


def build_app(config_path: Path, registry: Optional[ProviderRegistry] = None) -> Dict[str, Any]:
    """
    Composition root: load .env and YAML, build the configured provider.
    Returns: dict with cfg, provider, model, stream_timeout.
    """
    load_dotenv()
    cfg = load_config(config_path)
    provider = build_provider(cfg, registry)
    return {
        "cfg": cfg,
        "provider": provider,
        "model": Model(name=cfg["model"], provider=cfg["provider"]),
        "stream_timeout": cfg["runtime"].get("timeout"),
    }
