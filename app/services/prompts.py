# app/services/prompts.py
"""
Fixed instruction text and output schema sent with every analysis request.
"""

SYSTEM_PROMPT = (
    "You are a digital forensics analyst. Report your findings only through "
    "the submit_forensic_report tool."
)

FORENSIC_INSTRUCTIONS = """
Act as a world-class Digital Forensics Expert specializing in Generative AI detection.
Analyze the provided media content carefully.

Look for common Generative AI artifacts such as:
1. Inconsistent lighting or shadows.
2. Warped geometry (background lines not matching).
3. Anatomical errors (hands, eyes, teeth).
4. "AI Glaze" or overly smooth textures.
5. Text rendering errors.
6. Strange logical inconsistencies in the scene.
7. VISIBLE WATERMARKS OR SIGNATURES: Scan corners for text like "nanobanana",
   "Imagined with AI", color bars (common in DALL-E), or faint logo overlays.

Keep the verdict consistent with the score: low scores are REAL, middling
scores SUSPICIOUS, high scores LIKELY_AI.
""".strip()

SEQUENCE_INSTRUCTIONS = """
The {count} images are keyframes from a single video, in playback order.
Treat them as a sequence to detect temporal inconsistencies or morphing
artifacts common in deepfakes.
""".strip()

REPORT_TOOL_NAME = "submit_forensic_report"

ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "is_ai_generated": {
            "type": "boolean",
            "description": "Whether the media is likely AI generated",
        },
        "confidence_score": {
            "type": "number",
            "minimum": 0,
            "maximum": 100,
            "description": "Confidence score between 0 and 100",
        },
        "verdict": {"type": "string", "enum": ["REAL", "SUSPICIOUS", "LIKELY_AI"]},
        "reasoning": {
            "type": "string",
            "description": "A detailed paragraph explaining the forensic findings in plain language.",
        },
        "artifacts_detected": {
            "type": "array",
            "items": {"type": "string"},
            "description": (
                "List of specific visual artifacts found (e.g., 'warped fingers', "
                "'inconsistent shadows', 'glossy skin texture')"
            ),
        },
        "watermark_detected": {
            "type": "boolean",
            "description": (
                "Whether a visible watermark, text signature, or color bar typically "
                "associated with AI generators is present."
            ),
        },
        "technical_details": {
            "type": "object",
            "properties": {
                "lighting_consistency": {"type": "string"},
                "anatomy_geometry": {"type": "string"},
                "texture_quality": {"type": "string"},
            },
            "required": ["lighting_consistency", "anatomy_geometry", "texture_quality"],
        },
    },
    "required": [
        "is_ai_generated",
        "confidence_score",
        "verdict",
        "reasoning",
        "artifacts_detected",
        "watermark_detected",
        "technical_details",
    ],
}

REPORT_TOOL = {
    "name": REPORT_TOOL_NAME,
    "description": "Submit the structured forensic report for the provided media.",
    "input_schema": ANALYSIS_SCHEMA,
}


def build_instructions(frame_count: int) -> str:
    if frame_count > 1:
        return FORENSIC_INSTRUCTIONS + "\n\n" + SEQUENCE_INSTRUCTIONS.format(count=frame_count)
    return FORENSIC_INSTRUCTIONS
