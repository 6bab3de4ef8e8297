"""
Tests for the fal.ai adapter against a mocked vendor.
"""

import json

import httpx
import pytest

from climage.api.fal import FalProvider, map_aspect_ratio, queue_app_id
from climage.core.config import Credentials
from climage.core.exceptions import CapabilityError, CapabilityViolation
from climage.core.types import MediaKind, OutputFormat

CREDENTIALS = Credentials({"FAL_KEY": "fal-test-key-0123456789"})
FRAME = "data:image/png;base64,AAAA"


@pytest.fixture
def provider():
    provider = FalProvider()
    provider.poll_interval = 0
    return provider


def video_request(make_request, **overrides):
    return make_request(kind=MediaKind.VIDEO, format=OutputFormat.MP4, **overrides)


def test_map_aspect_ratio():
    assert map_aspect_ratio("16:9") == "landscape_16_9"
    assert map_aspect_ratio("9:16") == "portrait_16_9"
    assert map_aspect_ratio("21:9") == "21:9"
    assert map_aspect_ratio("16:9", "fal-ai/kling-video/v3/pro/image-to-video") == "16:9"
    assert map_aspect_ratio(None) is None


def test_queue_app_id():
    assert queue_app_id("fal-ai/vidu/q2/image-to-video") == "fal-ai/vidu"
    assert queue_app_id("fal-ai/flux") == "fal-ai/flux"


def test_model_selection(provider, make_request):
    assert provider.resolve_model(make_request()) == "fal-ai/flux/dev"
    assert provider.resolve_model(make_request(input_images=(FRAME,))) == "fal-ai/flux/dev/image-to-image"
    assert provider.resolve_model(video_request(make_request)) == "fal-ai/ltxv-2/text-to-video/fast"
    assert provider.resolve_model(video_request(make_request, start_frame=FRAME)) == "fal-ai/vidu/q2/image-to-video"
    assert (
        provider.resolve_model(video_request(make_request, start_frame=FRAME, end_frame=FRAME))
        == "fal-ai/vidu/start-end-to-video"
    )
    assert (
        provider.resolve_model(video_request(make_request, input_images=(FRAME, FRAME)))
        == "fal-ai/vidu/q2/reference-to-video"
    )
    assert provider.resolve_model(make_request(model="fal-ai/recraft-v3")) == "fal-ai/recraft-v3"


@pytest.mark.parametrize(
    "model, duration, ok",
    [
        ("fal-ai/kling-video/v3/pro/image-to-video", 2, False),
        ("fal-ai/kling-video/v3/pro/image-to-video", 3, True),
        ("fal-ai/kling-video/v3/pro/image-to-video", 15, True),
        ("fal-ai/vidu/q2/image-to-video", 8, True),
        ("fal-ai/vidu/q2/image-to-video", 9, False),
        ("fal-ai/ltxv-2/text-to-video/fast", 12, True),
    ],
)
def test_model_duration_limits(provider, make_request, model, duration, ok):
    request = video_request(make_request, duration=duration, start_frame=FRAME)
    if ok:
        provider.check_request(request, model)
    else:
        with pytest.raises(CapabilityError) as exc:
            provider.check_request(request, model)
        assert exc.value.reason == CapabilityViolation.DURATION


def test_kling_v3_needs_start_frame(provider, make_request):
    with pytest.raises(CapabilityError) as exc:
        provider.check_request(video_request(make_request), "fal-ai/kling-video/v3/pro/image-to-video")
    assert exc.value.reason == CapabilityViolation.START_FRAME_REQUIRED


@pytest.mark.asyncio
async def test_image_generation(provider, make_request, mock_client):
    calls = []

    def handler(request):
        calls.append(request)
        if request.url.host == "fal.run":
            return httpx.Response(200, json={"images": [
                {"url": "https://v3.fal.media/files/a.jpg", "content_type": "image/jpeg"},
                {"url": None},
            ]})
        return httpx.Response(200, content=b"jpeg", headers={"content-type": "application/octet-stream"})

    items = await provider.generate(
        make_request(n=2, aspect_ratio="16:9"), CREDENTIALS, mock_client(handler)
    )

    submit = calls[0]
    assert str(submit.url) == "https://fal.run/fal-ai/flux/dev"
    assert submit.headers["authorization"] == "Key fal-test-key-0123456789"
    assert json.loads(submit.content) == {
        "prompt": "a cat in a tree",
        "num_images": 2,
        "image_size": "landscape_16_9",
    }
    # Second entry had no URL and is skipped
    assert len(items) == 1
    assert items[0].mime_type == "image/jpeg"


@pytest.mark.asyncio
async def test_video_queue_flow(provider, make_request, mock_client):
    seen = []
    status_calls = []

    def handler(request):
        seen.append((request.method, str(request.url)))
        url = str(request.url)
        if request.method == "POST":
            return httpx.Response(200, json={"request_id": "req-1", "status": "IN_QUEUE"})
        if url.endswith("/requests/req-1/status"):
            status_calls.append(1)
            status = "IN_PROGRESS" if len(status_calls) < 2 else "COMPLETED"
            return httpx.Response(200, json={"status": status})
        if url.endswith("/requests/req-1"):
            return httpx.Response(200, json={"video": {"url": "https://v3.fal.media/files/v.mp4", "content_type": "video/mp4"}})
        return httpx.Response(200, content=b"mp4", headers={"content-type": "video/mp4"})

    request = video_request(make_request, start_frame=FRAME, duration=4, aspect_ratio="16:9")
    items = await provider.generate(request, CREDENTIALS, mock_client(handler))

    assert seen[0] == ("POST", "https://queue.fal.run/fal-ai/vidu/q2/image-to-video")
    assert ("GET", "https://queue.fal.run/fal-ai/vidu/requests/req-1/status") in seen
    assert ("GET", "https://queue.fal.run/fal-ai/vidu/requests/req-1") in seen
    assert len(status_calls) == 2
    assert items[0].data == b"mp4"


def test_video_inputs(provider, make_request):
    start_end = provider.build_video_input(
        video_request(make_request, start_frame=FRAME, end_frame=FRAME, duration=4),
        "fal-ai/vidu/start-end-to-video",
    )
    assert start_end["start_image_url"] == FRAME
    assert start_end["end_image_url"] == FRAME
    assert start_end["duration"] == "4"

    refs = provider.build_video_input(
        video_request(make_request, input_images=(FRAME,) * 3, aspect_ratio="9:16"),
        "fal-ai/vidu/q2/reference-to-video",
    )
    assert refs["reference_image_urls"] == [FRAME] * 3
    assert refs["aspect_ratio"] == "portrait_16_9"

    kling = provider.build_video_input(
        video_request(make_request, start_frame=FRAME, aspect_ratio="16:9"),
        "fal-ai/kling-video/v3/pro/image-to-video",
    )
    assert kling["start_image_url"] == FRAME
    assert kling["aspect_ratio"] == "16:9"

    text_only = provider.build_video_input(video_request(make_request, n=2), "fal-ai/ltxv-2/text-to-video/fast")
    assert text_only == {"prompt": "a cat in a tree", "num_videos": 2}
