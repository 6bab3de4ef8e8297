"""
Shared fixtures: a scriptable provider, request builders and sample bytes.
"""

import base64
from typing import List, Optional

import httpx
import pytest

from climage.api.base import BaseProvider, JobUpdate, MediaRef
from climage.core.types import (
    AdapterShape,
    JobStatus,
    MediaKind,
    NormalizedRequest,
    OutputFormat,
    ProviderCapabilities,
)

# 1x1 transparent PNG
PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
PNG_BYTES = base64.b64decode(PNG_B64)


class StubProvider(BaseProvider):
    """Provider whose vendor answers are scripted by the test."""

    id = "stub"
    display_name = "Stub"
    kinds = frozenset({MediaKind.IMAGE, MediaKind.VIDEO})
    env_names = ("STUB_API_KEY",)
    capabilities = ProviderCapabilities(
        max_input_images=2,
        supports_video_interpolation=True,
        video_duration_range=(2, 8),
        supports_image_editing=True,
    )
    poll_interval = 0
    max_poll_attempts = 5

    def __init__(
        self,
        shape: AdapterShape = AdapterShape.SYNC_BATCH,
        refs: List[MediaRef] = (),
        updates: List[JobUpdate] = (),
        items: List[Optional[MediaRef]] = (),
    ):
        self.shape = shape
        self.refs = list(refs)
        self.updates = list(updates)
        self.items = list(items)
        self.calls = 0
        self.polls = 0

    def resolve_model(self, request: NormalizedRequest) -> str:
        return request.model or "stub-model"

    def shape_for(self, request: NormalizedRequest, model: str) -> AdapterShape:
        return self.shape

    async def request_batch(self, request, model, api_key, client):
        self.calls += 1
        return list(self.refs)

    async def create_job(self, request, model, api_key, client):
        self.calls += 1
        return "job-1"

    async def check_job(self, job_id, model, api_key, client):
        self.polls += 1
        if not self.updates:
            return JobUpdate(status=JobStatus.PROCESSING)
        return self.updates[min(self.polls, len(self.updates)) - 1]

    async def request_item(self, request, model, api_key, client, index):
        self.calls += 1
        return self.items[index] if index < len(self.items) else None


def stub_with(provider_id: str, env_names=None, **kwargs) -> StubProvider:
    provider = StubProvider(**kwargs)
    provider.id = provider_id
    provider.display_name = provider_id
    provider.env_names = tuple(env_names or (f"{provider_id.upper()}_API_KEY",))
    return provider


@pytest.fixture
def make_request(tmp_path):
    """Build a NormalizedRequest with sensible defaults."""

    def _make(**overrides) -> NormalizedRequest:
        fields = dict(
            prompt="a cat in a tree",
            provider="auto",
            n=1,
            kind=MediaKind.IMAGE,
            format=OutputFormat.PNG,
            out_dir=str(tmp_path),
            name_base="a-cat-in-a-tree",
            timestamp="20260101-120000",
        )
        fields.update(overrides)
        return NormalizedRequest(**fields)

    return _make


@pytest.fixture
def mock_client():
    """Build an AsyncClient that routes every request to ``handler``."""

    def _make(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Run in an empty working directory with no vendor keys set."""
    for name in (
        "XAI_API_KEY", "XAI_TOKEN", "GROK_API_KEY",
        "FAL_API_KEY", "FAL_KEY",
        "GEMINI_API_KEY", "GOOGLE_API_KEY", "GOOGLE_GENAI_API_KEY",
        "OPENAI_API_KEY", "OPENAI_KEY",
        "AI_GATEWAY_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path
