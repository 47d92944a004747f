"""Confidence weights, document-level aggregation and threshold filtering.

Weights
-------
low 0.3, medium 0.5, high 0.7, very_high 0.9.  They exist only for
averaging and thresholding; callers only ever see ConfidenceLevel labels.

Aggregation
-----------
Arithmetic mean of span weights, banded back into a level:
≥ 0.8 very_high, ≥ 0.6 high, ≥ 0.4 medium, otherwise low.  A document
with no spans is low.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from piiguard.core.constants import ConfidenceLevel

if TYPE_CHECKING:
    from piiguard.pii.extractor import DetectionSpan

CONFIDENCE_WEIGHTS: dict[ConfidenceLevel, float] = {
    ConfidenceLevel.LOW: 0.3,
    ConfidenceLevel.MEDIUM: 0.5,
    ConfidenceLevel.HIGH: 0.7,
    ConfidenceLevel.VERY_HIGH: 0.9,
}

# (lower bound, level), highest first
_BANDS: tuple[tuple[float, ConfidenceLevel], ...] = (
    (0.8, ConfidenceLevel.VERY_HIGH),
    (0.6, ConfidenceLevel.HIGH),
    (0.4, ConfidenceLevel.MEDIUM),
)


def confidence_weight(level: ConfidenceLevel | str) -> float:
    return CONFIDENCE_WEIGHTS[ConfidenceLevel(level)]


def band(score: float) -> ConfidenceLevel:
    """Map a mean weight back to the nearest ConfidenceLevel band."""
    for lower, level in _BANDS:
        if score >= lower:
            return level
    return ConfidenceLevel.LOW


def aggregate_confidence(spans: Sequence[DetectionSpan]) -> ConfidenceLevel:
    if not spans:
        return ConfidenceLevel.LOW
    mean = sum(confidence_weight(span.confidence) for span in spans) / len(spans)
    return band(mean)


def filter_by_threshold(spans: Iterable[DetectionSpan], threshold: float) -> list[DetectionSpan]:
    """Keep spans whose weight is at least *threshold*, preserving order."""
    return [span for span in spans if confidence_weight(span.confidence) >= threshold]
