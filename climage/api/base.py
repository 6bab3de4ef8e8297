"""
Base Media Provider
===================

Abstract base class for all generative-media providers.

A provider answers each request with one of three shapes:

- ``SYNC_BATCH``: one call returns every item as a URL or inline bytes.
  Items carrying neither are skipped; the call fails only if none decode.
- ``ASYNC_JOB``: one call creates a job that is polled at a fixed interval
  for a bounded number of attempts.
- ``PER_ITEM``: the vendor makes one item per call, so ``n`` calls are made
  in order and any failure aborts the batch.

Subclasses pick the shape per request and implement the matching hooks;
the state machines themselves live here.
"""

import asyncio
import base64
import binascii
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, FrozenSet, Tuple

import httpx

from ..core.config import Credentials
from ..core.exceptions import (
    ProviderUnavailableError,
    VendorRequestError,
    VendorEmptyResultError,
    VendorTimeoutError,
    ModerationBlockedError,
)
from ..core.security import redact_url, redact_api_key
from ..utils.image_utils import parse_data_uri
from ..core.types import (
    AdapterShape,
    JobStatus,
    MediaKind,
    NormalizedRequest,
    ProviderCapabilities,
    RawMediaItem,
)

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_CONCURRENCY = 4


@dataclass(frozen=True)
class MediaRef:
    """A vendor's pointer to one generated item: a URL, inline bytes, or neither."""

    url: Optional[str] = None
    data: Optional[bytes] = field(default=None, repr=False)
    mime_type: Optional[str] = None
    model: Optional[str] = None

    @classmethod
    def from_base64(cls, b64: str, mime_type: Optional[str] = None, **kwargs) -> "MediaRef":
        try:
            data = base64.b64decode(b64)
        except (binascii.Error, ValueError):
            logger.warning("Vendor returned malformed base64 payload")
            data = None
        return cls(data=data, mime_type=mime_type, **kwargs)

    @property
    def usable(self) -> bool:
        return bool(self.url or self.data)


def parse_image_data(items: List[Any]) -> List[MediaRef]:
    """
    Read an OpenAI-style ``data`` array where each entry has ``url`` or ``b64_json``.

    Entries with neither become empty refs so batch positions are kept.
    """
    refs = []
    for item in items or []:
        if not isinstance(item, dict):
            refs.append(MediaRef())
        elif item.get("url"):
            refs.append(MediaRef(url=item["url"]))
        elif item.get("b64_json"):
            refs.append(MediaRef.from_base64(item["b64_json"]))
        else:
            refs.append(MediaRef())
    return refs


@dataclass(frozen=True)
class JobUpdate:
    """One poll result of an async job."""

    status: JobStatus
    media: Tuple[MediaRef, ...] = ()
    error: Optional[str] = None
    moderated: bool = False


class BaseProvider(ABC):
    """
    Abstract base class for media providers.

    Providers are registered once per process and hold no per-request
    state: credentials and the HTTP client arrive with every call.
    """

    id: str = ""
    display_name: str = ""
    kinds: FrozenSet[MediaKind] = frozenset({MediaKind.IMAGE})
    capabilities: ProviderCapabilities = ProviderCapabilities()
    env_names: Tuple[str, ...] = ()

    # Async job polling
    poll_interval: float = 5.0
    max_poll_attempts: int = 60

    # -------------------------------------------------------------------------
    # Abstract Methods
    # -------------------------------------------------------------------------

    @abstractmethod
    def resolve_model(self, request: NormalizedRequest) -> str:
        """Return the concrete vendor model for this request."""

    @abstractmethod
    def shape_for(self, request: NormalizedRequest, model: str) -> AdapterShape:
        """Return which request/response pattern serves this request."""

    # Shape hooks; a provider implements the ones its shapes use.

    async def request_batch(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> List[MediaRef]:
        raise NotImplementedError(f"{self.id} has no synchronous batch endpoint")

    async def create_job(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> str:
        raise NotImplementedError(f"{self.id} has no job endpoint")

    async def check_job(
        self,
        job_id: str,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> JobUpdate:
        raise NotImplementedError(f"{self.id} has no job endpoint")

    async def request_item(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
        index: int,
    ) -> Optional[MediaRef]:
        raise NotImplementedError(f"{self.id} has no single-item endpoint")

    def check_request(self, request: NormalizedRequest, model: str) -> None:
        """Model-specific checks the static capabilities cannot express."""

    # -------------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------------

    def supports(self, kind: MediaKind) -> bool:
        return kind in self.kinds

    def is_available(self, credentials: Credentials) -> bool:
        return credentials.has_any(self.env_names)

    def require_api_key(self, credentials: Credentials) -> str:
        api_key = credentials.resolve(self.env_names)
        if not api_key:
            raise ProviderUnavailableError(self.id, self.env_names)
        return api_key

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def generate(
        self,
        request: NormalizedRequest,
        credentials: Credentials,
        client: httpx.AsyncClient,
        download_concurrency: int = DEFAULT_DOWNLOAD_CONCURRENCY,
    ) -> List[RawMediaItem]:
        """
        Produce raw media for a validated request.

        Args:
            request: Normalized, capability-checked request
            credentials: Credential snapshot for this call
            client: HTTP client owned by the caller
            download_concurrency: Parallel downloads within one batch

        Returns:
            Decoded items in vendor order
        """
        api_key = self.require_api_key(credentials)
        model = self.resolve_model(request)
        self.check_request(request, model)
        shape = self.shape_for(request, model)

        logger.info(
            f"Generating {request.n} {request.kind.value}(s) with {self.display_name} "
            f"model={model} shape={shape.value}"
        )

        if shape == AdapterShape.SYNC_BATCH:
            refs = await self.request_batch(request, model, api_key, client)
            return await self._decode_batch(
                refs, request, model, api_key, client, download_concurrency
            )

        if shape == AdapterShape.ASYNC_JOB:
            job_id = await self.create_job(request, model, api_key, client)
            logger.info(f"{self.display_name} job created: {job_id}")
            update = await self.wait_for_completion(job_id, model, api_key, client)
            if not any(ref.usable for ref in update.media):
                if update.moderated:
                    raise ModerationBlockedError(
                        f"{self.display_name} {request.kind.value} generation was blocked "
                        f"by moderation (job {job_id})",
                        provider=self.id,
                    )
                raise VendorEmptyResultError(
                    f"{self.display_name} job {job_id} completed but returned no "
                    f"{request.kind.value}",
                    provider=self.id,
                )
            return await self._decode_batch(
                list(update.media), request, model, api_key, client, download_concurrency
            )

        return await self._generate_per_item(request, model, api_key, client)

    async def wait_for_completion(
        self,
        job_id: str,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> JobUpdate:
        """
        Poll a job until it completes, fails, or runs out of attempts.

        The status endpoint is queried exactly ``max_poll_attempts`` times at
        most, sleeping ``poll_interval`` seconds between queries.

        Raises:
            VendorRequestError: The vendor reported the job as failed
            VendorTimeoutError: The attempt budget was exhausted
        """
        for attempt in range(1, self.max_poll_attempts + 1):
            update = await self.check_job(job_id, model, api_key, client)
            logger.debug(
                f"Job {job_id} poll {attempt}/{self.max_poll_attempts}: {update.status.value}"
            )

            if update.status == JobStatus.COMPLETED:
                return update

            if update.status == JobStatus.FAILED:
                raise VendorRequestError(
                    f"{self.display_name} job {job_id} failed: {update.error or 'unknown error'}",
                    provider=self.id,
                )

            if attempt < self.max_poll_attempts:
                await asyncio.sleep(self.poll_interval)

        raise VendorTimeoutError(
            f"{self.display_name} generation timed out after {self.max_poll_attempts} "
            f"polls (job_id={job_id})",
            provider=self.id,
            job_id=job_id,
            attempts=self.max_poll_attempts,
        )

    async def _generate_per_item(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> List[RawMediaItem]:
        items = []
        for index in range(request.n):
            logger.debug(f"Generating {request.kind.value} {index + 1}/{request.n}")
            ref = await self.request_item(request, model, api_key, client, index)
            if ref is None or not ref.usable:
                raise VendorEmptyResultError(
                    f"{self.display_name} returned no {request.kind.value} for item {index + 1}",
                    provider=self.id,
                )
            items.append(await self._materialize(ref, index, request, model, api_key, client))
        return items

    async def _decode_batch(
        self,
        refs: List[MediaRef],
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
        download_concurrency: int,
    ) -> List[RawMediaItem]:
        refs = refs[: request.n]
        semaphore = asyncio.Semaphore(max(1, download_concurrency))

        async def decode(index: int, ref: MediaRef) -> Optional[RawMediaItem]:
            if not ref.usable:
                logger.error(
                    f"{self.display_name} item {index} has neither a URL nor inline data, skipping"
                )
                return None
            async with semaphore:
                return await self._materialize(ref, index, request, model, api_key, client)

        tasks = [asyncio.ensure_future(decode(i, ref)) for i, ref in enumerate(refs)]
        try:
            decoded = await asyncio.gather(*tasks)
        except Exception:
            # One failure fails the batch; stop the downloads still in flight
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        items = [item for item in decoded if item is not None]

        if not items:
            raise VendorEmptyResultError(
                f"{self.display_name} returned no usable {request.kind.value}s",
                provider=self.id,
            )
        return items

    async def _materialize(
        self,
        ref: MediaRef,
        index: int,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> RawMediaItem:
        data, mime_type = ref.data, ref.mime_type
        if data is None:
            data, header_mime = await self.download(ref.url, api_key, client)
            mime_type = mime_type or header_mime

        return RawMediaItem(
            kind=request.kind,
            provider=self.id,
            model=ref.model or model,
            index=index,
            data=data,
            source_url=ref.url,
            mime_type=mime_type,
        )

    # -------------------------------------------------------------------------
    # HTTP helpers
    # -------------------------------------------------------------------------

    def auth_headers(self, api_key: str) -> Dict[str, str]:
        """Headers authenticating a vendor API call."""
        return {"Authorization": f"Bearer {api_key}"}

    def download_headers(self, url: str, api_key: str) -> Dict[str, str]:
        """Generated media URLs are pre-signed unless a provider says otherwise."""
        return {}

    async def send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        action: str,
        **kwargs,
    ) -> httpx.Response:
        """
        Issue one HTTP call.

        Transport failures (connection errors, timeouts) become
        VendorRequestError; status handling is left to the caller.
        """
        try:
            return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.debug(f"{self.display_name} {action} transport error: {type(e).__name__}")
            raise VendorRequestError(
                f"{self.display_name} {action} failed: {redact_api_key(str(e)) or type(e).__name__}",
                provider=self.id,
            ) from e

    async def download(
        self,
        url: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> Tuple[bytes, Optional[str]]:
        """Fetch a generated file; returns (bytes, content type)."""
        logger.debug(f"Downloading {redact_url(url)}")
        response = await self.send(
            client, "GET", url, "download",
            headers=self.download_headers(url, api_key), follow_redirects=True,
        )
        if not response.is_success:
            raise VendorRequestError(
                f"{self.display_name} download failed",
                provider=self.id,
                status_code=response.status_code,
            )
        content_type = response.headers.get("content-type") or None
        logger.debug(f"Downloaded {len(response.content)} bytes, type: {content_type}")
        return response.content, content_type

    async def post_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        payload: Dict[str, Any],
        api_key: str,
        action: str,
        **kwargs,
    ) -> Dict[str, Any]:
        """POST a JSON body and return the decoded JSON answer."""
        headers = {**self.auth_headers(api_key), **kwargs.pop("headers", {})}
        response = await self.send(
            client, "POST", url, action, json=payload, headers=headers, **kwargs
        )
        return self.parse_response(response, action)

    async def get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        api_key: str,
        action: str,
        **kwargs,
    ) -> Dict[str, Any]:
        headers = {**self.auth_headers(api_key), **kwargs.pop("headers", {})}
        response = await self.send(client, "GET", url, action, headers=headers, **kwargs)
        return self.parse_response(response, action)

    def parse_response(self, response: httpx.Response, action: str) -> Dict[str, Any]:
        """
        Decode a vendor answer or raise VendorRequestError.

        The vendor's error body is kept, clipped to a bounded length.
        """
        if not response.is_success:
            body = redact_api_key(response.text or "")
            logger.debug(f"{self.display_name} error response: {body[:1000]}")
            raise VendorRequestError(
                f"{self.display_name} {action} failed",
                provider=self.id,
                status_code=response.status_code,
                response_body=body,
            )
        try:
            data = response.json()
        except ValueError:
            raise VendorRequestError(
                f"{self.display_name} {action} returned invalid JSON",
                provider=self.id,
                status_code=response.status_code,
                response_body=redact_api_key(response.text or ""),
            )
        return data if isinstance(data, dict) else {"data": data}

    async def fetch_input(self, ref: str, client: httpx.AsyncClient) -> Tuple[bytes, str]:
        """Raw bytes and MIME type of an input given as data URI or URL."""
        if ref.startswith("data:"):
            parsed = parse_data_uri(ref)
            if parsed is None:
                raise VendorRequestError(
                    f"Invalid data URI for {self.display_name} input image", provider=self.id
                )
            return parsed

        response = await self.send(client, "GET", ref, "input image fetch", follow_redirects=True)
        if not response.is_success:
            raise VendorRequestError(
                f"Failed to fetch input image {redact_url(ref)}",
                provider=self.id,
                status_code=response.status_code,
            )
        return response.content, response.headers.get("content-type", "image/png")

    def warn_ignored_inputs(self, supplied: int, used: int, what: str = "input images") -> None:
        """Log when a vendor endpoint consumes fewer inputs than supplied."""
        if supplied > used:
            logger.warning(
                f"{self.display_name} uses only {used} of {supplied} {what}; "
                f"{supplied - used} ignored"
            )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id!r}>"
