# app/core/schemas.py
import base64
import binascii
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator


class MediaType(str, Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class Verdict(str, Enum):
    REAL = "REAL"
    SUSPICIOUS = "SUSPICIOUS"
    LIKELY_AI = "LIKELY_AI"

    @property
    def severity(self) -> int:
        return _VERDICT_SEVERITY[self]


_VERDICT_SEVERITY = {
    Verdict.REAL: 0,
    Verdict.SUSPICIOUS: 1,
    Verdict.LIKELY_AI: 2,
}


class MediaFile(BaseModel):
    """An accepted upload. Lives for one pipeline run."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    filename: str
    content_type: str
    media_type: MediaType

    @property
    def size(self) -> int:
        return len(self.data)


class EncodedFrame(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: str  # raw base64, no data-URL prefix
    mime_type: str = "image/jpeg"
    timestamp: Optional[float] = None  # seconds into the source video

    def decode(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Frame payload is not valid base64: {e}") from e


class TechnicalDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    lighting_consistency: StrictStr
    anatomy_geometry: StrictStr
    texture_quality: StrictStr


class AnalysisResult(BaseModel):
    """
    Structured verdict from the analysis service.

    Only ever built through ``model_validate`` on the service payload: a
    missing field, a wrong type or a score outside [0, 100] rejects the
    whole report.
    """
    model_config = ConfigDict(frozen=True)

    is_ai_generated: StrictBool
    confidence_score: float = Field(..., ge=0, le=100, strict=True)
    verdict: Verdict
    reasoning: StrictStr = Field(..., min_length=1)
    artifacts_detected: List[StrictStr]
    watermark_detected: StrictBool
    technical_details: TechnicalDetails

    @field_validator("reasoning")
    @classmethod
    def _reasoning_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reasoning must not be blank")
        return value


# -----------------------------
# HTTP MODELS
# -----------------------------
class FrameScanRequest(BaseModel):
    frames: List[str]  # data URLs or bare base64 frames extracted by the caller


class AnalysisResponse(BaseModel):
    media_type: Optional[MediaType] = None
    frame_count: int
    result: AnalysisResult
    warnings: List[str] = []
