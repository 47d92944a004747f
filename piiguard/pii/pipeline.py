"""Detection pipeline: one call from raw text to a PIIDetectionResult.

Flow
----
1. Check the text (non-empty string, at most ``max_text_length``).
2. Span extractor over the registry's patterns plus any custom patterns.
3. NLP adapter, when ``enable_nlp`` is set.
4. Aggregate confidence over every span found so far.
5. Drop spans below ``confidence_threshold``.  Aggregation happens first so
   the reported confidence reflects the pre-filter signal.
6. Advisory suggestions from the surviving types plus any collaborator
   degradation notices.

Nothing here keeps a reference to the input text once a call returns.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, InstanceOf

from piiguard.core.constants import (
    CONTACT_TYPES,
    CRITICAL_TYPES,
    SUGGEST_CONSENT,
    SUGGEST_CRITICAL,
    SUGGEST_MASKING,
    SUGGEST_VALIDATOR_FAILED,
    ConfidenceLevel,
    PIIType,
)
from piiguard.core.errors import INVALID_INPUT, TEXT_TOO_LONG, DetectionError
from piiguard.core.settings import get_settings
from piiguard.pii.confidence import aggregate_confidence, filter_by_threshold
from piiguard.pii.extractor import DetectionSpan, SpanExtractor
from piiguard.pii.nlp_adapter import NLPAdapter
from piiguard.pii.patterns import PatternRegistry, PIIPattern
from piiguard.validation.phone_validator import PhoneValidator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Options and result
# ---------------------------------------------------------------------------

class DetectionOptions(BaseModel):
    """Per-call detection options; unset fields fall back to Settings."""

    model_config = ConfigDict(extra="forbid")

    enable_nlp: bool = Field(default_factory=lambda: get_settings().enable_nlp)
    confidence_threshold: float = Field(
        default_factory=lambda: get_settings().confidence_threshold, ge=0.0, le=1.0
    )
    max_text_length: int = Field(default_factory=lambda: get_settings().max_text_length, gt=0)
    enable_span_extraction: bool = True
    custom_patterns: list[InstanceOf[PIIPattern]] = Field(default_factory=list)
    strict_mode: bool = False
    include_context: bool = False
    context_window: int = Field(default_factory=lambda: get_settings().context_window, ge=0)


@dataclass(frozen=True)
class PIIDetectionResult:
    """Outcome of one detection call.

    ``has_pii`` and ``detected_types`` always describe the spans that
    survived threshold filtering, even when span extraction was disabled
    and ``spans`` is empty.
    """
    has_pii: bool
    detected_types: frozenset[PIIType]
    spans: list[DetectionSpan]
    suggestions: list[str]
    confidence: ConfidenceLevel
    metadata: dict[str, Any] = field(default_factory=dict)


def _coerce_options(options: DetectionOptions | Mapping[str, Any] | None) -> DetectionOptions:
    if options is None:
        return DetectionOptions()
    if isinstance(options, DetectionOptions):
        return options
    return DetectionOptions.model_validate(dict(options))


def _check_text(text: object, max_text_length: int) -> None:
    if not isinstance(text, str) or not text:
        raise DetectionError("Text input is required and must be a non-empty string", code=INVALID_INPUT)
    if len(text) > max_text_length:
        raise DetectionError(
            f"Text length {len(text)} exceeds maximum of {max_text_length}",
            code=TEXT_TOO_LONG,
            text_length=len(text),
            metadata={"max_text_length": max_text_length},
        )


def _suggestions_for(types: frozenset[PIIType]) -> list[str]:
    suggestions: list[str] = []
    if types:
        suggestions.append(SUGGEST_MASKING)
    if types & CRITICAL_TYPES:
        suggestions.append(SUGGEST_CRITICAL)
    if types & CONTACT_TYPES:
        suggestions.append(SUGGEST_CONSENT)
    return suggestions


# ---------------------------------------------------------------------------
# DetectionPipeline
# ---------------------------------------------------------------------------

class DetectionPipeline:
    """Pattern registry + span extractor + NLP adapter + aggregation.

    Parameters
    ----------
    registry:
        Patterns to scan with.  Defaults to a fresh built-in registry owned
        by this pipeline.
    extractor / nlp_adapter:
        Override the collaborators, e.g. with fakes in tests.
    """

    def __init__(
        self,
        registry: PatternRegistry | None = None,
        *,
        extractor: SpanExtractor | None = None,
        nlp_adapter: NLPAdapter | None = None,
    ) -> None:
        self.registry = registry if registry is not None else PatternRegistry.default()
        self.extractor = extractor or SpanExtractor(
            phone_validator=PhoneValidator(default_region=get_settings().phone_default_region)
        )
        self.nlp_adapter = nlp_adapter or NLPAdapter()

    def detect(
        self,
        text: str,
        options: DetectionOptions | Mapping[str, Any] | None = None,
    ) -> PIIDetectionResult:
        """Detect PII in *text*.

        Raises
        ------
        DetectionError
            *text* is missing, empty, not a string, longer than
            ``max_text_length``, or a pattern's matcher failed.
        """
        opts = _coerce_options(options)
        _check_text(text, opts.max_text_length)

        patterns = [*self.registry, *opts.custom_patterns]
        report = self.extractor.extract(
            text,
            patterns,
            strict_mode=opts.strict_mode,
            include_context=opts.include_context,
            context_window=opts.context_window,
        )
        spans = list(report.spans)
        collaborator_suggestions = [
            SUGGEST_VALIDATOR_FAILED.format(pii_type=pii_type.value)
            for pii_type in sorted(report.degraded_types)
        ]

        if opts.enable_nlp:
            nlp_report = self.nlp_adapter.analyze(
                text,
                include_context=opts.include_context,
                context_window=opts.context_window,
            )
            spans.extend(nlp_report.spans)
            collaborator_suggestions.extend(nlp_report.suggestions)

        # Stable sort: ties keep pattern registration order
        spans.sort(key=lambda span: span.start)

        confidence = aggregate_confidence(spans)
        kept = filter_by_threshold(spans, opts.confidence_threshold)
        detected_types = frozenset(span.type for span in kept)

        suggestions: list[str] = []
        for suggestion in _suggestions_for(detected_types) + collaborator_suggestions:
            if suggestion not in suggestions:
                suggestions.append(suggestion)

        logger.info(
            "Detection complete: spans=%d kept=%d types=%s confidence=%s text_length=%d",
            len(spans),
            len(kept),
            ",".join(sorted(t.value for t in detected_types)),
            confidence.value,
            len(text),
        )

        return PIIDetectionResult(
            has_pii=bool(kept),
            detected_types=detected_types,
            spans=kept if opts.enable_span_extraction else [],
            suggestions=suggestions,
            confidence=confidence,
            metadata={
                "total_matches": len(spans),
                "filtered_matches": len(kept),
                "confidence_threshold": opts.confidence_threshold,
                "nlp_enabled": opts.enable_nlp,
                "text_length": len(text),
                "patterns": len(patterns),
            },
        )

    def detect_multiple(
        self,
        texts: Iterable[str],
        options: DetectionOptions | Mapping[str, Any] | None = None,
    ) -> list[PIIDetectionResult]:
        """Run ``detect`` on each text independently, preserving order."""
        opts = _coerce_options(options)
        return [self.detect(text, opts) for text in texts]

    def has_pii(
        self,
        text: str,
        options: DetectionOptions | Mapping[str, Any] | None = None,
    ) -> bool:
        opts = _coerce_options(options).model_copy(update={"enable_span_extraction": False})
        return self.detect(text, opts).has_pii

    def count_by_type(
        self,
        text: str,
        options: DetectionOptions | Mapping[str, Any] | None = None,
    ) -> dict[PIIType, int]:
        """Return a count for every PIIType (zero when absent)."""
        opts = _coerce_options(options).model_copy(update={"enable_span_extraction": True})
        counts = {pii_type: 0 for pii_type in PIIType}
        for span in self.detect(text, opts).spans:
            counts[span.type] += 1
        return counts


# ---------------------------------------------------------------------------
# Module-level API (fresh default pipeline per call)
# ---------------------------------------------------------------------------

def detect_pii(
    text: str,
    options: DetectionOptions | Mapping[str, Any] | None = None,
) -> PIIDetectionResult:
    return DetectionPipeline().detect(text, options)


def detect_pii_multiple(
    texts: Iterable[str],
    options: DetectionOptions | Mapping[str, Any] | None = None,
) -> list[PIIDetectionResult]:
    return DetectionPipeline().detect_multiple(texts, options)


def has_pii(
    text: str,
    options: DetectionOptions | Mapping[str, Any] | None = None,
) -> bool:
    return DetectionPipeline().has_pii(text, options)


def count_pii_by_type(
    text: str,
    options: DetectionOptions | Mapping[str, Any] | None = None,
) -> dict[PIIType, int]:
    return DetectionPipeline().count_by_type(text, options)
