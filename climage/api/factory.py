"""
Provider Factory
================

Registry of provider singletons and provider selection.
"""

import logging
from typing import Optional, List, Dict, Iterable, Sequence

from .base import BaseProvider
from ..core.config import Credentials
from ..core.exceptions import (
    UnknownProviderError,
    ProviderUnavailableError,
    NoProviderAvailableError,
)

logger = logging.getLogger(__name__)

AUTO = "auto"

# Auto-selection order, independent of registration order
PROVIDER_PRIORITY = ("xai", "fal", "google", "openai", "vercel")


class ProviderRegistry:
    """Provider instances keyed by id, with a fixed auto-selection order."""

    def __init__(
        self,
        providers: Iterable[BaseProvider] = (),
        priority: Sequence[str] = PROVIDER_PRIORITY,
    ):
        self._providers: Dict[str, BaseProvider] = {}
        self.priority = tuple(priority)
        for provider in providers:
            self.register(provider)

    def register(self, provider: BaseProvider) -> BaseProvider:
        self._providers[provider.id.lower()] = provider
        return provider

    def get(self, provider_id: str) -> Optional[BaseProvider]:
        return self._providers.get(provider_id.lower())

    def ordered(self) -> List[BaseProvider]:
        """Providers in priority order; unlisted ones follow, sorted by id."""
        ranked = [self._providers[pid] for pid in self.priority if pid in self._providers]
        rest = sorted(
            (p for pid, p in self._providers.items() if pid not in self.priority),
            key=lambda p: p.id,
        )
        return ranked + rest

    def pick(self, selector: Optional[str], credentials: Credentials) -> BaseProvider:
        """
        Select a provider for one call.

        Availability is checked against ``credentials`` every time, so key
        changes between calls take effect immediately.

        Raises:
            UnknownProviderError: Explicit id is not registered
            ProviderUnavailableError: Explicit provider has no credentials
            NoProviderAvailableError: Auto mode found nothing usable
        """
        selector = (selector or AUTO).strip().lower()

        if selector != AUTO:
            provider = self.get(selector)
            if provider is None:
                raise UnknownProviderError(selector)
            if not provider.is_available(credentials):
                raise ProviderUnavailableError(provider.id, provider.env_names)
            return provider

        for provider in self.ordered():
            if provider.is_available(credentials):
                logger.debug(f"Auto-selected provider: {provider.id}")
                return provider

        env_names = [name for p in self.ordered() for name in p.env_names[:1]]
        raise NoProviderAvailableError(env_names)

    def __contains__(self, provider_id: str) -> bool:
        return provider_id.lower() in self._providers

    def __len__(self) -> int:
        return len(self._providers)


_REGISTRY = ProviderRegistry()


def register_provider(cls):
    """Class decorator: instantiate the provider and add it to the default registry."""
    _REGISTRY.register(cls())
    return cls


def get_registry() -> ProviderRegistry:
    """Default registry with every built-in provider loaded."""
    from . import fal, google, openai, vercel, xai  # noqa: F401

    return _REGISTRY


def get_provider(name: str) -> BaseProvider:
    """
    Look up a built-in provider by id.

    Raises:
        UnknownProviderError: If the id is not registered
    """
    provider = get_registry().get(name)
    if provider is None:
        raise UnknownProviderError(name)
    return provider


def list_providers() -> List[BaseProvider]:
    """Built-in providers in auto-selection order."""
    return get_registry().ordered()


def pick_provider(
    selector: Optional[str],
    credentials: Credentials,
    registry: Optional[ProviderRegistry] = None,
) -> BaseProvider:
    """Select a provider from ``registry`` (default: built-ins)."""
    return (registry or get_registry()).pick(selector, credentials)
