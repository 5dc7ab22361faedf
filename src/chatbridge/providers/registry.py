from __future__ import annotations
from typing import Callable, Dict, List

from chatbridge.core.ports import Provider
from chatbridge.core.types import ConnectionSettings

ProviderFactory = Callable[[ConnectionSettings], Provider]


class ProviderRegistry:
    """
    Maps a provider name (case-insensitive) to a factory taking ConnectionSettings.
    Instances are passed explicitly to whatever composes providers.
    """

    def __init__(self) -> None:
        self._factories: Dict[str, ProviderFactory] = {}

    def add(self, name: str, factory: ProviderFactory) -> None:
        self._factories[name.lower()] = factory

    def register(self, name: str) -> Callable[[type], type]:
        """Class decorator; the class must expose create(settings)."""
        def deco(klass: type) -> type:
            self.add(name, klass.create)  # type: ignore[attr-defined]
            return klass
        return deco

    def get(self, name: str) -> ProviderFactory:
        key = name.lower()
        if key not in self._factories:
            raise KeyError(f"Provider '{name}' not registered")
        return self._factories[key]

    def create(self, settings: ConnectionSettings) -> Provider:
        return self.get(settings.name)(settings)

    def names(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._factories


def default_registry() -> ProviderRegistry:
    """A fresh registry holding the built-in backends."""
    from chatbridge.providers.echo import EchoProvider
    from chatbridge.providers.openai_compat import (
        DeepSeekProvider,
        GroqProvider,
        OpenAICompatibleProvider,
        OpenAIProvider,
        OpenRouterProvider,
    )

    registry = ProviderRegistry()
    for klass in (GroqProvider, OpenAIProvider, OpenRouterProvider, DeepSeekProvider,
                  OpenAICompatibleProvider, EchoProvider):
        registry.register(klass.provider_name)(klass)
    return registry
