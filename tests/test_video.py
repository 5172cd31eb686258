import asyncio
import base64
import io
import os
import tempfile
import time

import cv2
import numpy as np
import pytest
from PIL import Image

from app.core.errors import DecodeError, SeekTimeoutError
from app.detectors.video import FrameSampler, _write_temp, sampling_instants
from fakes import CaptureFactory


def test_sampling_instants_are_interior_and_evenly_spaced():
    assert sampling_instants(9.0, 3) == [2.25, 4.5, 6.75]

    instants = sampling_instants(10.0, 4)
    assert instants == sorted(instants)
    assert all(0 < t < 10.0 for t in instants)


def test_sampling_instants_reject_bad_input():
    with pytest.raises(ValueError):
        sampling_instants(9.0, 0)
    with pytest.raises(DecodeError):
        sampling_instants(0.0, 3)


def test_sample_seeks_in_order_and_returns_jpeg_frames():
    factory = CaptureFactory(duration=9.0)
    sampler = FrameSampler(capture_factory=factory)

    frames = asyncio.run(sampler.sample(b"fake video bytes", 3))

    capture = factory.last
    assert capture.seeks == [2.25, 4.5, 6.75]
    assert [f.timestamp for f in frames] == [2.25, 4.5, 6.75]
    assert all(f.mime_type == "image/jpeg" for f in frames)

    image = Image.open(io.BytesIO(frames[0].decode()))
    assert image.format == "JPEG"
    assert image.size == (capture.width, capture.height)


def test_sample_releases_capture_and_temp_file():
    factory = CaptureFactory()
    sampler = FrameSampler(capture_factory=factory)

    asyncio.run(sampler.sample(b"fake video bytes", 2))

    capture = factory.last
    assert capture.released
    assert not os.path.exists(capture.path)


@pytest.mark.parametrize("frame_count", [0, -1])
def test_non_positive_frame_count_rejected_before_decoding(frame_count):
    factory = CaptureFactory()
    sampler = FrameSampler(capture_factory=factory)

    with pytest.raises(ValueError):
        asyncio.run(sampler.sample(b"fake video bytes", frame_count))
    assert factory.captures == []


def test_unopenable_video_is_decode_error():
    factory = CaptureFactory(opened=False)
    sampler = FrameSampler(capture_factory=factory)

    with pytest.raises(DecodeError):
        asyncio.run(sampler.sample(b"not a video", 3))
    assert factory.last.released
    assert not os.path.exists(factory.last.path)


def test_zero_duration_is_decode_error():
    factory = CaptureFactory(duration=0.0)
    sampler = FrameSampler(capture_factory=factory)

    with pytest.raises(DecodeError):
        asyncio.run(sampler.sample(b"empty clip", 3))


def test_failed_read_aborts_whole_sample():
    factory = CaptureFactory(fail_after=1)
    sampler = FrameSampler(capture_factory=factory)

    with pytest.raises(DecodeError):
        asyncio.run(sampler.sample(b"fake video bytes", 3))

    capture = factory.last
    # the second seek failed; no third seek was issued
    assert capture.seeks == [2.25, 4.5]
    assert capture.released


def _wait_until(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while not predicate() and time.monotonic() < deadline:
        time.sleep(0.01)
    return predicate()


def test_stalled_seek_times_out():
    factory = CaptureFactory(read_delay=0.3)
    sampler = FrameSampler(seek_timeout=0.05, capture_factory=factory)

    with pytest.raises(SeekTimeoutError) as excinfo:
        asyncio.run(sampler.sample(b"fake video bytes", 3))
    assert isinstance(excinfo.value, TimeoutError)
    # no further seek is issued after the stall
    assert factory.last.seeks == [2.25]


def test_stalled_seek_releases_only_after_read_returns():
    factory = CaptureFactory(read_delay=0.3)
    sampler = FrameSampler(seek_timeout=0.05, capture_factory=factory)

    with pytest.raises(SeekTimeoutError):
        asyncio.run(sampler.sample(b"fake video bytes", 3))

    capture = factory.last
    assert _wait_until(lambda: capture.released)
    assert not capture.released_during_read
    assert _wait_until(lambda: not os.path.exists(capture.path))


def test_refused_seek_is_decode_error():
    factory = CaptureFactory(seekable=False)
    sampler = FrameSampler(capture_factory=factory)

    with pytest.raises(DecodeError, match="seeking"):
        asyncio.run(sampler.sample(b"fake video bytes", 3))

    capture = factory.last
    assert capture.seeks == [2.25]
    assert capture.released


def test_seek_landing_far_from_target_is_decode_error():
    factory = CaptureFactory(landing_offset=-2.0)
    sampler = FrameSampler(capture_factory=factory)

    with pytest.raises(DecodeError, match="landed"):
        asyncio.run(sampler.sample(b"fake video bytes", 3))


def test_small_seek_drift_is_accepted():
    factory = CaptureFactory(landing_offset=-0.1)
    sampler = FrameSampler(capture_factory=factory)

    frames = asyncio.run(sampler.sample(b"fake video bytes", 3))

    assert [f.timestamp for f in frames] == [2.25, 4.5, 6.75]


def test_failed_temp_write_leaves_no_file(monkeypatch, tmp_path):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))

    with pytest.raises(TypeError):
        _write_temp("not bytes", ".mp4")
    assert list(tmp_path.iterdir()) == []


def test_real_clip_is_sampled_in_temporal_order(tmp_path):
    path = str(tmp_path / "clip.avi")
    fps, seconds, size = 4, 9, (64, 48)
    writer = cv2.VideoWriter(path, cv2.VideoWriter_fourcc(*"MJPG"), fps, size)
    if not writer.isOpened():
        pytest.skip("OpenCV build cannot write MJPG video")
    for index in range(fps * seconds):
        level = 25 * (index // fps)
        writer.write(np.full((size[1], size[0], 3), level, dtype=np.uint8))
    writer.release()

    frames = asyncio.run(FrameSampler().sample(path, 3))

    assert len(frames) == 3
    assert [f.timestamp for f in frames] == [2.25, 4.5, 6.75]
    means = [
        np.asarray(Image.open(io.BytesIO(base64.b64decode(f.data))).convert("L")).mean()
        for f in frames
    ]
    assert means[0] < means[1] < means[2]
    # the caller's file is left alone
    assert os.path.exists(path)
