# app/services/analysis.py
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import anthropic
from pydantic import ValidationError

from app.core.config import Settings
from app.core.errors import ServiceError
from app.core.schemas import AnalysisResult, EncodedFrame
from app.services.prompts import REPORT_TOOL, REPORT_TOOL_NAME, SYSTEM_PROMPT, build_instructions

logger = logging.getLogger(__name__)


def build_client(settings: Settings) -> anthropic.AsyncAnthropic:
    if not settings.ANTHROPIC_API_KEY:
        raise ServiceError("Analysis service is not configured (ANTHROPIC_API_KEY is not set).")
    return anthropic.AsyncAnthropic(
        api_key=settings.ANTHROPIC_API_KEY,
        timeout=settings.ANALYSIS_TIMEOUT_SECONDS,
        max_retries=0,
    )


def _extract_json_text(text: str) -> str:
    # models sometimes wrap JSON in markdown code blocks
    if "```json" in text:
        return text.split("```json")[1].split("```")[0].strip()
    if "```" in text:
        return text.split("```")[1].split("```")[0].strip()
    return text.strip()


def _report_payload(response: Any) -> Dict[str, Any]:
    """
    Pull the report out of a Messages API response.

    The forced tool call is the expected carrier; a JSON text block is
    accepted as a fallback.
    """
    blocks = getattr(response, "content", None) or []
    text_parts: List[str] = []

    for block in blocks:
        block_type = getattr(block, "type", None)
        if block_type == "tool_use" and getattr(block, "name", None) == REPORT_TOOL_NAME:
            payload = block.input
            if not isinstance(payload, dict):
                raise ServiceError("Forensic analysis failed: malformed response.")
            return payload
        if block_type == "text" and getattr(block, "text", ""):
            text_parts.append(block.text)

    text = "".join(text_parts).strip()
    if not text:
        raise ServiceError("Forensic analysis failed: no response from the analysis service.")

    try:
        payload = json.loads(_extract_json_text(text))
    except json.JSONDecodeError as e:
        raise ServiceError("Forensic analysis failed: malformed response.") from e
    if not isinstance(payload, dict):
        raise ServiceError("Forensic analysis failed: malformed response.")
    return payload


class ForensicAnalyzer:
    """
    Sends encoded frames to the analysis service and validates the report.

    One call per ``submit``; no retries and no caching. The client is
    injected so tests can substitute a fake.
    """

    def __init__(
        self,
        client: Any,
        model: str,
        temperature: float = 0.2,
        max_tokens: int = 2048,
    ):
        self._client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[Any] = None) -> "ForensicAnalyzer":
        return cls(
            client=client if client is not None else build_client(settings),
            model=settings.ANALYSIS_MODEL,
            temperature=settings.ANALYSIS_TEMPERATURE,
            max_tokens=settings.ANALYSIS_MAX_TOKENS,
        )

    def build_messages(self, frames: Sequence[EncodedFrame], instructions: str) -> List[Dict[str, Any]]:
        content: List[Dict[str, Any]] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": frame.mime_type,
                    "data": frame.data,
                },
            }
            for frame in frames
        ]
        content.append({"type": "text", "text": instructions})
        return [{"role": "user", "content": content}]

    async def submit(
        self,
        frames: Sequence[EncodedFrame],
        instructions: Optional[str] = None,
    ) -> AnalysisResult:
        if not frames:
            raise ValueError("At least one frame is required for analysis.")
        if instructions is None:
            instructions = build_instructions(len(frames))

        logger.info(
            "[MediaForensics] Submitting %d frame(s) to %s (temperature=%s)",
            len(frames), self.model, self.temperature,
        )
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=SYSTEM_PROMPT,
                tools=[REPORT_TOOL],
                tool_choice={"type": "tool", "name": REPORT_TOOL_NAME},
                messages=self.build_messages(frames, instructions),
            )
        except anthropic.APIError as e:
            logger.error("[MediaForensics] Analysis service call failed: %s", e)
            raise ServiceError("Forensic analysis failed due to an API error.") from e

        payload = _report_payload(response)
        try:
            result = AnalysisResult.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                "[MediaForensics] Rejected report that does not match the schema: %d error(s)",
                e.error_count(),
            )
            raise ServiceError(
                "Forensic analysis failed: the service returned an incomplete or invalid report."
            ) from e

        logger.info(
            "[MediaForensics] Verdict %s (score=%g, watermark=%s)",
            result.verdict.value, result.confidence_score, result.watermark_detected,
        )
        return result
