# app/detectors/video.py

import asyncio
import base64
import io
import logging
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from app.core.errors import DecodeError, SeekTimeoutError
from app.core.schemas import EncodedFrame

logger = logging.getLogger(__name__)

VideoSource = Union[bytes, str, os.PathLike]


# -----------------------------
# SAMPLING POLICY
# -----------------------------
def sampling_instants(duration: float, frame_count: int) -> List[float]:
    """
    Evenly spaced interior instants (seconds) for ``frame_count`` frames.

    Policy:
      - t_i = duration / (frame_count + 1) * i, for i = 1..frame_count
      - never exactly 0 or ``duration`` (leading/trailing frames are often black)
    """
    if frame_count <= 0:
        raise ValueError(f"frame_count must be positive, got {frame_count}")
    if not duration or duration <= 0 or not np.isfinite(duration):
        raise DecodeError("Video has no playable duration.")

    interval = duration / (frame_count + 1)
    return [interval * i for i in range(1, frame_count + 1)]


def _video_duration(cap) -> float:
    fps = cap.get(cv2.CAP_PROP_FPS) or 0.0
    total_frames = cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0
    if fps <= 0 or total_frames <= 0:
        return 0.0
    return float(total_frames) / float(fps)


# -----------------------------
# CAPTURE
# -----------------------------
# how far the reported position may sit from the requested instant
SEEK_TOLERANCE_SECONDS = 1.0


def _seek_and_read(cap, instant: float) -> Tuple[bool, Optional[np.ndarray]]:
    if not cap.set(cv2.CAP_PROP_POS_MSEC, instant * 1000.0):
        raise DecodeError(f"The video does not support seeking to {instant:.2f}s.")

    # 0 means the backend does not report a position
    position = cap.get(cv2.CAP_PROP_POS_MSEC) or 0.0
    if position > 0:
        if abs(position / 1000.0 - instant) > SEEK_TOLERANCE_SECONDS:
            raise DecodeError(
                f"Seeking to {instant:.2f}s landed at {position / 1000.0:.2f}s."
            )
    return cap.read()


def _encode_jpeg(frame_bgr: np.ndarray, quality: int) -> bytes:
    if frame_bgr.ndim == 2:
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_GRAY2RGB)
    else:
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

    # canvas is the frame at its native size
    buf = io.BytesIO()
    Image.fromarray(rgb).save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def _write_temp(data: bytes, suffix: str) -> str:
    tmp = tempfile.NamedTemporaryFile(delete=False, suffix=suffix)
    try:
        with tmp:
            tmp.write(data)
    except Exception:
        os.remove(tmp.name)
        raise
    return tmp.name


def _release(cap, tmp_path: Optional[str]) -> None:
    if cap is not None:
        cap.release()
    if tmp_path and os.path.exists(tmp_path):
        os.remove(tmp_path)


class FrameSampler:
    """
    Extracts evenly spaced JPEG keyframes from a video.

    All work on a capture runs on one dedicated worker thread, so seeks are
    strictly sequential and the release is always queued behind the last
    read. Each seek must finish within ``seek_timeout`` seconds. Any failure
    aborts the whole sample. After a stalled seek the release runs once the
    stuck read returns; on every other path it completes before ``sample``
    returns.
    """

    def __init__(
        self,
        jpeg_quality: int = 70,
        seek_timeout: float = 10.0,
        capture_factory: Callable[[str], object] = cv2.VideoCapture,
    ):
        self.jpeg_quality = jpeg_quality
        self.seek_timeout = seek_timeout
        self._capture_factory = capture_factory

    async def sample(
        self,
        source: VideoSource,
        frame_count: int = 3,
        suffix: str = ".mp4",
    ) -> List[EncodedFrame]:
        if frame_count <= 0:
            raise ValueError(f"frame_count must be positive, got {frame_count}")

        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="frame-sampler")
        tmp_path = None
        cap = None
        stalled = False
        try:
            if isinstance(source, (bytes, bytearray)):
                tmp_path = await loop.run_in_executor(executor, _write_temp, bytes(source), suffix)
                path = tmp_path
            else:
                path = os.fspath(source)

            cap = await loop.run_in_executor(executor, self._capture_factory, path)
            if not cap.isOpened():
                raise DecodeError("Could not open the video for decoding.")

            duration = _video_duration(cap)
            instants = sampling_instants(duration, frame_count)
            logger.info(
                "[MediaForensics] Sampling %d frames from %.2fs video at %s",
                frame_count, duration, ", ".join(f"{t:.2f}s" for t in instants),
            )

            frames: List[EncodedFrame] = []
            for instant in instants:
                frames.append(await self._capture_at(loop, executor, cap, instant))
            return frames
        except SeekTimeoutError:
            stalled = True
            raise
        except cv2.error as e:
            raise DecodeError(f"Video decoding failed: {e}") from e
        finally:
            cleanup = executor.submit(_release, cap, tmp_path)
            executor.shutdown(wait=False)
            if stalled:
                logger.warning("[MediaForensics] Capture release deferred until the stalled seek returns")
            else:
                await asyncio.wrap_future(cleanup)

    async def _capture_at(self, loop, executor, cap, instant: float) -> EncodedFrame:
        try:
            ok, frame = await asyncio.wait_for(
                loop.run_in_executor(executor, _seek_and_read, cap, instant),
                timeout=self.seek_timeout,
            )
        except asyncio.TimeoutError as e:
            raise SeekTimeoutError(
                f"Seeking to {instant:.2f}s did not complete within {self.seek_timeout:g}s."
            ) from e

        if not ok or frame is None or frame.size == 0:
            raise DecodeError(f"Could not decode a frame at {instant:.2f}s.")

        jpeg = await asyncio.to_thread(_encode_jpeg, frame, self.jpeg_quality)
        return EncodedFrame(
            data=base64.b64encode(jpeg).decode("ascii"),
            mime_type="image/jpeg",
            timestamp=instant,
        )
