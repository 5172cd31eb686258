# app/services/pipeline.py
import logging
import mimetypes
from typing import List

from app.core.schemas import AnalysisResult, EncodedFrame, MediaFile, MediaType
from app.detectors.image import encode_image
from app.detectors.video import FrameSampler
from app.services.analysis import ForensicAnalyzer

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """Media file in, validated verdict out. Holds no state between runs."""

    def __init__(self, sampler: FrameSampler, analyzer: ForensicAnalyzer, frame_count: int = 3):
        self.sampler = sampler
        self.analyzer = analyzer
        self.frame_count = frame_count

    async def extract_frames(self, media: MediaFile) -> List[EncodedFrame]:
        if media.media_type is MediaType.IMAGE:
            return [await encode_image(media.data, media.content_type)]

        suffix = mimetypes.guess_extension(media.content_type) or ".mp4"
        return await self.sampler.sample(media.data, self.frame_count, suffix=suffix)

    async def run(self, media: MediaFile) -> AnalysisResult:
        frames = await self.extract_frames(media)
        logger.info(
            "[MediaForensics] %r: %d frame(s) ready for analysis",
            media.filename, len(frames),
        )
        return await self.analyzer.submit(frames)
