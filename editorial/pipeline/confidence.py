"""
Confidence scoring.

Per-stage confidence comes from issue counts (line edit stages) or from
a signal in the model reply. Overall confidence is the weighted mean
over the stages that actually ran, so any subset renormalizes.
"""

from typing import Dict, List, Any

from config.constants import (
    STAGE_WEIGHTS,
    DEFAULT_STAGE_WEIGHT,
    ISSUE_PENALIZED_CONFIDENCE,
    LOW_CONFIDENCE_THRESHOLD,
)
from .models import StageResult


def clamp_confidence(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def stage_weight(stage: int) -> float:
    return STAGE_WEIGHTS.get(stage, DEFAULT_STAGE_WEIGHT)


def issue_penalized_confidence(stage: int, issue_count: int) -> float:
    """
    max(floor, 1 - issues * penalty); the stage's clean value when no issues.

    Raises:
        KeyError: stage is not issue-penalized
    """
    no_issues, floor, penalty = ISSUE_PENALIZED_CONFIDENCE[stage]
    if issue_count == 0:
        return no_issues
    return clamp_confidence(max(floor, 1 - issue_count * penalty))


def calculate_overall_confidence(results: List[StageResult]) -> float:
    """Weighted average over executed stages; 0.0 when nothing ran"""
    total_weight = 0.0
    weighted_sum = 0.0
    for result in results:
        weight = stage_weight(result.stage)
        weighted_sum += result.confidence * weight
        total_weight += weight
    return weighted_sum / total_weight if total_weight > 0 else 0.0


def low_confidence_stages(
    results: List[StageResult],
    threshold: float = LOW_CONFIDENCE_THRESHOLD,
) -> List[int]:
    """Stages below threshold, in result order"""
    return [r.stage for r in results if r.confidence < threshold]


def stage_breakdown(results: List[StageResult]) -> List[Dict[str, Any]]:
    return [
        {
            "stage": r.stage,
            "agent_name": r.agent_name,
            "confidence": r.confidence,
            "issue_count": r.issue_count,
        }
        for r in results
    ]


def reprocessing_recommendations(low_stages: List[int]) -> List[str]:
    if low_stages:
        stages = ", ".join(str(s) for s in low_stages)
        return [f"Reprocess stages: {stages} due to low confidence scores"]
    return ["Manuscript meets quality thresholds"]
