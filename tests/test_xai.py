"""
Tests for the xAI adapter against a mocked vendor.
"""

import json

import httpx
import pytest

from climage.api.xai import XaiProvider
from climage.core.config import Credentials
from climage.core.exceptions import ModerationBlockedError, VendorRequestError
from climage.core.types import MediaKind, OutputFormat

from conftest import PNG_B64, PNG_BYTES

CREDENTIALS = Credentials({"XAI_API_KEY": "xai-test-key"})


@pytest.fixture
def provider():
    provider = XaiProvider()
    provider.poll_interval = 0
    return provider


@pytest.mark.asyncio
async def test_image_generation(provider, make_request, mock_client):
    calls = []

    def handler(request):
        calls.append(request)
        if request.url.path == "/v1/images/generations":
            return httpx.Response(200, json={"data": [
                {"url": "https://imgen.x.ai/out/a.png"},
                {"b64_json": PNG_B64},
            ]})
        if request.url.host == "imgen.x.ai":
            return httpx.Response(200, content=b"png-a", headers={"content-type": "image/png"})
        return httpx.Response(404)

    request = make_request(n=2, aspect_ratio="4:3")
    items = await provider.generate(request, CREDENTIALS, mock_client(handler))

    body = json.loads(calls[0].content)
    assert calls[0].headers["authorization"] == "Bearer xai-test-key"
    assert body == {
        "model": "grok-imagine-image",
        "prompt": "a cat in a tree",
        "n": 2,
        "response_format": "url",
        "aspect_ratio": "4:3",
    }
    assert [item.data for item in items] == [b"png-a", PNG_BYTES]
    assert items[0].source_url == "https://imgen.x.ai/out/a.png"


@pytest.mark.asyncio
async def test_image_edit_uses_first_input_only(provider, make_request, mock_client, caplog):
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"data": [{"b64_json": PNG_B64}]})

    request = make_request(input_images=("data:image/png;base64,AAAA", "https://example.com/b.png"))
    await provider.generate(request, CREDENTIALS, mock_client(handler))

    assert bodies[0]["image_url"] == "data:image/png;base64,AAAA"
    assert "1 ignored" in caplog.text


@pytest.mark.asyncio
async def test_video_generation_polls_until_done(provider, make_request, mock_client):
    polls = []

    def handler(request):
        if request.method == "POST":
            body = json.loads(request.content)
            assert body["duration"] == 5
            assert body["image_url"] == "data:image/png;base64,AAAA"
            return httpx.Response(200, json={"request_id": "req-42"})
        if request.url.path == "/v1/videos/req-42":
            polls.append(1)
            if len(polls) < 3:
                return httpx.Response(200, json={"status": "pending"})
            return httpx.Response(200, json={
                "status": "done",
                "response": {
                    "model": "grok-imagine-video",
                    "video": {"url": "https://vidgen.x.ai/v.mp4", "respect_moderation": True},
                },
            })
        return httpx.Response(200, content=b"mp4-bytes", headers={"content-type": "video/mp4"})

    request = make_request(
        kind=MediaKind.VIDEO,
        format=OutputFormat.MP4,
        duration=5,
        start_frame="data:image/png;base64,AAAA",
    )
    items = await provider.generate(request, CREDENTIALS, mock_client(handler))

    assert len(polls) == 3
    assert items[0].data == b"mp4-bytes"
    assert items[0].mime_type == "video/mp4"
    assert items[0].model == "grok-imagine-video"


@pytest.mark.asyncio
async def test_video_default_duration(provider, make_request, mock_client):
    bodies = []

    def handler(request):
        if request.method == "POST":
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"request_id": "r"})
        if request.url.host == "vidgen.x.ai":
            return httpx.Response(200, content=b"mp4", headers={"content-type": "video/mp4"})
        return httpx.Response(200, json={
            "status": "done",
            "response": {"video": {"url": "https://vidgen.x.ai/x.mp4"}},
        })

    request = make_request(kind=MediaKind.VIDEO, format=OutputFormat.MP4)
    await provider.generate(request, CREDENTIALS, mock_client(handler))

    assert bodies[0]["duration"] == 6
    assert "image_url" not in bodies[0]


@pytest.mark.asyncio
async def test_video_moderated(provider, make_request, mock_client):
    def handler(request):
        if request.method == "POST":
            return httpx.Response(200, json={"request_id": "req-1"})
        return httpx.Response(200, json={
            "status": "done",
            "response": {"video": {"url": "", "respect_moderation": False}},
        })

    request = make_request(kind=MediaKind.VIDEO, format=OutputFormat.MP4)
    with pytest.raises(ModerationBlockedError):
        await provider.generate(request, CREDENTIALS, mock_client(handler))


@pytest.mark.asyncio
async def test_vendor_error_carries_status_and_body(provider, make_request, mock_client):
    def handler(request):
        return httpx.Response(400, json={"error": "bad aspect ratio"})

    with pytest.raises(VendorRequestError) as exc:
        await provider.generate(make_request(), CREDENTIALS, mock_client(handler))

    assert exc.value.status_code == 400
    assert "bad aspect ratio" in exc.value.message
