# app/api/deps.py
from fastapi import Depends

from app.core.config import Settings, get_settings
from app.detectors.video import FrameSampler
from app.services.analysis import ForensicAnalyzer, build_client
from app.services.pipeline import AnalysisPipeline


def get_analysis_client(settings: Settings = Depends(get_settings)):
    return build_client(settings)


def get_analyzer(
    settings: Settings = Depends(get_settings),
    client=Depends(get_analysis_client),
) -> ForensicAnalyzer:
    return ForensicAnalyzer.from_settings(settings, client=client)


def get_sampler(settings: Settings = Depends(get_settings)) -> FrameSampler:
    return FrameSampler(
        jpeg_quality=settings.JPEG_QUALITY,
        seek_timeout=settings.SEEK_TIMEOUT_SECONDS,
    )


def get_pipeline(
    settings: Settings = Depends(get_settings),
    sampler: FrameSampler = Depends(get_sampler),
    analyzer: ForensicAnalyzer = Depends(get_analyzer),
) -> AnalysisPipeline:
    return AnalysisPipeline(sampler, analyzer, frame_count=settings.VIDEO_FRAME_COUNT)
