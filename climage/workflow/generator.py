"""
Media Generator
===============

Top-level orchestration: one prompt in, a list of files on disk out.

A call runs these steps in order and stops at the first error:

1. Load ``.env`` files and snapshot the credentials
2. Normalize the options into a NormalizedRequest
3. Select a provider (explicit id or auto priority)
4. Check the provider produces the requested kind
5. Validate the request against the provider's capabilities
6. Let the provider produce raw media
7. Write one file per item, in the order the provider returned them
"""

import logging
from dataclasses import replace
from typing import Optional, List, Mapping

import httpx

from ..api.factory import ProviderRegistry, get_registry, list_providers
from ..core.config import Config, Credentials, load_env
from ..core.exceptions import UnsupportedKindError
from ..core.types import GenerateOptions, MediaKind, NormalizedRequest, PersistedMedia, RawMediaItem
from ..utils.storage import make_output_path, save_media
from .normalizer import normalize
from .validator import validate

logger = logging.getLogger(__name__)


class MediaGenerator:
    """
    Routes generation requests to providers and persists the results.

    Holds no per-call state; one instance can serve any number of calls.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        registry: Optional[ProviderRegistry] = None,
    ):
        self.config = config or Config()
        self.registry = registry or get_registry()

    async def generate(
        self,
        prompt: str,
        options: Optional[GenerateOptions] = None,
        *,
        env: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> List[PersistedMedia]:
        """
        Generate media for ``prompt`` and write it to disk.

        Args:
            prompt: Text prompt
            options: Generation options
            env: Credential variables to use instead of the process
                environment (``.env`` files are not loaded then)
            client: HTTP client to use instead of a fresh one

        Returns:
            One PersistedMedia per written file, in provider order
        """
        if env is None:
            load_env()
        credentials = Credentials.from_env(env)

        request = await normalize(
            prompt,
            options,
            default_provider=self.config.generation.provider,
            default_out_dir=self.config.output.out_dir,
        )

        provider = self.registry.pick(request.provider, credentials)
        if not provider.supports(request.kind):
            raise UnsupportedKindError(provider.id, request.kind.value)

        validate(request, provider.capabilities, provider.id)

        logger.info(f"Using provider {provider.id} for {request.kind.value} generation")

        if client is not None:
            items = await provider.generate(
                request, credentials, client, self.config.http.download_concurrency
            )
        else:
            async with httpx.AsyncClient(timeout=self.config.http.timeout) as own_client:
                items = await provider.generate(
                    request, credentials, own_client, self.config.http.download_concurrency
                )

        return self.persist(request, items)

    def persist(self, request: NormalizedRequest, items: List[RawMediaItem]) -> List[PersistedMedia]:
        """Write items in order; the first write failure aborts the rest."""
        batch_size = max(request.n, len(items))
        if request.out and batch_size > 1:
            logger.warning(
                f"--out is ignored for {batch_size} items; writing to {request.out_dir} instead"
            )

        results = []
        for position, item in enumerate(items):
            path = make_output_path(request, position, item.mime_type, batch_size)
            file_path = save_media(item.data, path)
            results.append(PersistedMedia.from_raw(item, file_path))
            logger.info(f"Saved {item.kind.value} to {file_path}")
        return results


async def generate_media(
    prompt: str,
    options: Optional[GenerateOptions] = None,
    *,
    config: Optional[Config] = None,
    env: Optional[Mapping[str, str]] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> List[PersistedMedia]:
    """Generate images or videos, depending on ``options.kind``."""
    return await MediaGenerator(config).generate(prompt, options, env=env, client=client)


async def generate_image(
    prompt: str,
    options: Optional[GenerateOptions] = None,
    **kwargs,
) -> List[PersistedMedia]:
    return await generate_media(prompt, _with_kind(options, MediaKind.IMAGE), **kwargs)


async def generate_video(
    prompt: str,
    options: Optional[GenerateOptions] = None,
    **kwargs,
) -> List[PersistedMedia]:
    return await generate_media(prompt, _with_kind(options, MediaKind.VIDEO), **kwargs)


def _with_kind(options: Optional[GenerateOptions], kind: MediaKind) -> GenerateOptions:
    return replace(options or GenerateOptions(), kind=kind)


__all__ = [
    "MediaGenerator",
    "generate_media",
    "generate_image",
    "generate_video",
    "list_providers",
]
