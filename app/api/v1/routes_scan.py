# app/api/v1/routes_scan.py
import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from app.api.deps import get_analyzer, get_pipeline
from app.core.config import Settings, get_settings
from app.core.heuristics import check_consistency
from app.core.intake import read_upload
from app.core.schemas import AnalysisResponse, AnalysisResult, FrameScanRequest, MediaType
from app.detectors.image import frame_from_data_url
from app.services.analysis import ForensicAnalyzer
from app.services.pipeline import AnalysisPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["scan"])


def _consistency_warnings(result: AnalysisResult) -> List[str]:
    warnings = check_consistency(result)
    for warning in warnings:
        logger.warning("[MediaForensics] Inconsistent report: %s", warning)
    return warnings


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze_media(
    file: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    # 1. Intake: type and size checks, read bytes
    media = await read_upload(file, settings)

    # 2. Frames -> analysis service -> validated report
    result = await pipeline.run(media)

    frame_count = pipeline.frame_count if media.media_type is MediaType.VIDEO else 1
    return AnalysisResponse(
        media_type=media.media_type,
        frame_count=frame_count,
        result=result,
        warnings=_consistency_warnings(result),
    )


@router.post("/scan", response_model=AnalysisResponse)
async def scan_frames(
    req: FrameScanRequest,
    settings: Settings = Depends(get_settings),
    analyzer: ForensicAnalyzer = Depends(get_analyzer),
):
    if not req.frames:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No frames provided.",
        )
    if len(req.frames) > settings.MAX_SCAN_FRAMES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many frames; at most {settings.MAX_SCAN_FRAMES} are accepted.",
        )

    frames = [frame_from_data_url(data_url) for data_url in req.frames]
    result = await analyzer.submit(frames)

    return AnalysisResponse(
        frame_count=len(frames),
        result=result,
        warnings=_consistency_warnings(result),
    )
