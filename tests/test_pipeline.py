import asyncio

import anthropic
import httpx
import pytest

from app.core.errors import DecodeError, ServiceError
from app.core.schemas import MediaFile, MediaType
from app.detectors.video import FrameSampler
from app.services.analysis import ForensicAnalyzer
from app.services.pipeline import AnalysisPipeline
from fakes import CaptureFactory, FakeClient, tool_response


def _pipeline(client, factory=None):
    sampler = FrameSampler(capture_factory=factory or CaptureFactory())
    analyzer = ForensicAnalyzer(client=client, model="test-model")
    return AnalysisPipeline(sampler, analyzer, frame_count=3)


def test_image_yields_service_result_unchanged(report):
    data = b"\xff\xd8" + b"\x42" * (2 * 1024 * 1024) + b"\xff\xd9"
    media = MediaFile(data=data, filename="photo.jpg", content_type="image/jpeg",
                      media_type=MediaType.IMAGE)
    client = FakeClient(response=tool_response(report))

    result = asyncio.run(_pipeline(client).run(media))

    assert result.model_dump(mode="json") == report
    images = [b for b in client.messages.calls[0]["messages"][0]["content"] if b["type"] == "image"]
    assert len(images) == 1
    assert images[0]["source"]["media_type"] == "image/jpeg"


def test_video_sends_three_ordered_keyframes(report):
    factory = CaptureFactory(duration=9.0)
    media = MediaFile(data=b"mp4 bytes", filename="clip.mp4", content_type="video/mp4",
                      media_type=MediaType.VIDEO)
    client = FakeClient(response=tool_response(report))

    asyncio.run(_pipeline(client, factory).run(media))

    assert factory.last.seeks == [2.25, 4.5, 6.75]
    images = [b for b in client.messages.calls[0]["messages"][0]["content"] if b["type"] == "image"]
    assert len(images) == 3
    assert all(b["source"]["media_type"] == "image/jpeg" for b in images)


def test_service_failure_produces_no_result():
    error = anthropic.APIConnectionError(
        request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    )
    media = MediaFile(data=b"png", filename="a.png", content_type="image/png",
                      media_type=MediaType.IMAGE)

    with pytest.raises(ServiceError):
        asyncio.run(_pipeline(FakeClient(error=error)).run(media))


def test_decode_failure_skips_service_call():
    client = FakeClient()
    media = MediaFile(data=b"junk", filename="bad.mp4", content_type="video/mp4",
                      media_type=MediaType.VIDEO)

    with pytest.raises(DecodeError):
        asyncio.run(_pipeline(client, CaptureFactory(opened=False)).run(media))
    assert client.messages.calls == []
