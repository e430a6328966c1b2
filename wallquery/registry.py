"""
Provider Registry

The providers an application works with, built once at startup and passed to whatever needs
them. Nothing registers itself on import: build_registry lists the providers explicitly.
"""

from typing import Optional

from wallquery.errors import UnsupportedURL
from wallquery.providers.pexels import PexelsProvider
from wallquery.providers.unsplash import UnsplashProvider
from wallquery.providers.wallhaven import WallhavenProvider


PROVIDER_CLASSES = (WallhavenProvider, UnsplashProvider, PexelsProvider)


class ProviderRegistry:
    """Providers by name. Lookups ignore case."""

    def __init__(self, providers=()):
        self._providers = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider) -> None:
        key = provider.name.lower()
        if key in self._providers:
            raise ValueError(f"provider {provider.name} is already registered")
        self._providers[key] = provider

    def get(self, name: str):
        try:
            return self._providers[name.lower()]
        except KeyError:
            raise KeyError(f"unknown provider: {name}") from None

    def __getitem__(self, name: str):
        return self.get(name)

    def __contains__(self, name) -> bool:
        return isinstance(name, str) and name.lower() in self._providers

    def __iter__(self):
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)

    def names(self) -> list:
        return [provider.name for provider in self._providers.values()]

    def provider_for(self, raw_url: str):
        """Return the first provider that recognizes raw_url, raise UnsupportedURL if none does."""

        for provider in self._providers.values():
            if provider.is_supported(raw_url):
                return provider

        raise UnsupportedURL(str(raw_url).strip(), "no provider supports this URL")


def build_registry(config, api_keys: Optional[dict] = None) -> ProviderRegistry:
    """
    Create every known provider against config. api_keys optionally maps provider names to
    keys that override the configured ones.
    """

    api_keys = {name.lower(): key for name, key in (api_keys or {}).items()}

    return ProviderRegistry(
        cls(config, api_key=api_keys.get(cls.name.lower())) for cls in PROVIDER_CLASSES
    )
