# app/core/heuristics.py
from typing import List

from app.core.schemas import AnalysisResult, Verdict


def check_consistency(result: AnalysisResult) -> List[str]:
    """
    Cross-field sanity checks on a validated report.

    The service is asked to keep verdict, flag and score in agreement, but
    nothing enforces it. Disagreements are reported as warnings only; the
    result itself is never changed or rejected here.
    """
    warnings: List[str] = []

    if result.verdict is Verdict.LIKELY_AI and not result.is_ai_generated:
        warnings.append("Verdict is LIKELY_AI but is_ai_generated is false.")
    elif result.verdict is Verdict.REAL and result.is_ai_generated:
        warnings.append("Verdict is REAL but is_ai_generated is true.")

    if result.verdict is Verdict.REAL and result.confidence_score > 50:
        warnings.append(
            f"Verdict is REAL but confidence_score is high ({result.confidence_score:g})."
        )
    elif result.verdict is Verdict.LIKELY_AI and result.confidence_score < 50:
        warnings.append(
            f"Verdict is LIKELY_AI but confidence_score is low ({result.confidence_score:g})."
        )

    return warnings
