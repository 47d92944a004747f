"""Span extractor: regex hits to typed, confidence-scored DetectionSpans.

For every pattern, in registration order, every non-overlapping match is:

1. run through the pattern's false-positive filters (first rejection wins);
2. scored by the confidence rule registered for its type;
3. discarded in strict mode when the structural check did not pass;
4. emitted as a DetectionSpan with pattern metadata and optional context.

Spans from different patterns are never deduplicated against each other.

Confidence rules by type
------------------------
email                  EmailValidator: valid → high, else low
phone                  PhoneValidator: valid → high, possible → medium,
                       ≥10 digits → high, else low
ssn / creditcard / ip  high (the false-positive filters are the check)
anything else          the pattern's own ``confidence``, else medium

A validator that raises is a collaborator failure: the span is kept at
medium with ``validation_error`` metadata and the type is reported back so
the pipeline can add an advisory suggestion.

Safety rule: matched text is never logged.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Callable

from piiguard.core.constants import (
    DEFAULT_CONTEXT_WINDOW,
    SELF_CHECKED_TYPES,
    ConfidenceLevel,
    PIIType,
)
from piiguard.core.errors import VALIDATOR_FAILED, CollaboratorFailure
from piiguard.pii.patterns import PIIPattern
from piiguard.validation.base import StructuralValidator, ValidationResult
from piiguard.validation.email_validator import EmailValidator
from piiguard.validation.phone_validator import PhoneValidator

logger = logging.getLogger(__name__)

_PHONE_DIGIT_FALLBACK = 10


# ---------------------------------------------------------------------------
# DetectionSpan
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DetectionSpan:
    """A located, typed, confidence-scored PII substring.

    ``start`` / ``end`` are half-open character offsets into the scanned
    text, so ``text == source[start:end]``.  ``text`` is kept out of the
    repr so spans can be printed without leaking the value.
    """
    type: PIIType
    start: int
    end: int
    text: str = field(repr=False)
    confidence: ConfidenceLevel
    metadata: dict[str, Any] = field(default_factory=dict)


def extract_context(text: str, start: int, end: int, window: int = DEFAULT_CONTEXT_WINDOW) -> str:
    """Return ``...before[detected]after...`` with *window* characters each side."""
    before = text[max(0, start - window):start]
    after = text[end:min(len(text), end + window)]
    return f"...{before}[{text[start:end]}]{after}..."


@dataclass
class ExtractionReport:
    spans: list[DetectionSpan] = field(default_factory=list)
    raw_matches: int = 0
    degraded_types: set[PIIType] = field(default_factory=set)


@dataclass(frozen=True)
class _Verdict:
    confidence: ConfidenceLevel
    passed: bool


# ---------------------------------------------------------------------------
# SpanExtractor
# ---------------------------------------------------------------------------

class SpanExtractor:
    """Scans text with a sequence of PIIPatterns.

    Parameters
    ----------
    email_validator / phone_validator:
        Structural validators for the two types that have one.  Defaults
        are the built-in implementations.
    """

    def __init__(
        self,
        *,
        email_validator: StructuralValidator | None = None,
        phone_validator: StructuralValidator | None = None,
    ) -> None:
        self._email_validator = email_validator or EmailValidator()
        self._phone_validator = phone_validator or PhoneValidator()
        self._rules: dict[PIIType, Callable[[str], _Verdict]] = {
            PIIType.EMAIL: self._email_verdict,
            PIIType.PHONE: self._phone_verdict,
        }

    # ------------------------------------------------------------------
    # Confidence rules
    # ------------------------------------------------------------------

    def _validate(self, validator: StructuralValidator, pii_type: PIIType, candidate: str) -> ValidationResult:
        try:
            return validator.validate(candidate)
        except Exception as exc:
            raise CollaboratorFailure(
                f"{pii_type.value} validator raised {type(exc).__name__}",
                collaborator=f"{pii_type.value}_validator",
                code=VALIDATOR_FAILED,
            ) from exc

    def _email_verdict(self, candidate: str) -> _Verdict:
        result = self._validate(self._email_validator, PIIType.EMAIL, candidate)
        if result.is_valid:
            return _Verdict(ConfidenceLevel.HIGH, True)
        return _Verdict(ConfidenceLevel.LOW, False)

    def _phone_verdict(self, candidate: str) -> _Verdict:
        result = self._validate(self._phone_validator, PIIType.PHONE, candidate)
        if result.is_valid:
            return _Verdict(ConfidenceLevel.HIGH, True)
        if result.is_possible:
            return _Verdict(ConfidenceLevel.MEDIUM, True)
        digit_count = sum(c.isdigit() for c in candidate)
        if digit_count >= _PHONE_DIGIT_FALLBACK:
            return _Verdict(ConfidenceLevel.HIGH, True)
        return _Verdict(ConfidenceLevel.LOW, False)

    def _verdict(self, pattern: PIIPattern, candidate: str) -> _Verdict:
        rule = self._rules.get(pattern.type)
        if rule is not None:
            return rule(candidate)
        if pattern.type in SELF_CHECKED_TYPES:
            return _Verdict(ConfidenceLevel.HIGH, True)
        return _Verdict(pattern.confidence or ConfidenceLevel.MEDIUM, True)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(
        self,
        text: str,
        patterns: Iterable[PIIPattern],
        *,
        strict_mode: bool = False,
        include_context: bool = False,
        context_window: int = DEFAULT_CONTEXT_WINDOW,
    ) -> ExtractionReport:
        """Scan *text* with every pattern and return the accepted spans.

        Raises
        ------
        DetectionError
            A pattern's matcher failed (e.g. an invalid regex).
        """
        report = ExtractionReport()

        for pattern in patterns:
            for start, end in pattern.find_all(text):
                report.raw_matches += 1
                candidate = text[start:end]

                if not pattern.accepts(candidate):
                    continue

                metadata: dict[str, Any] = {
                    "pattern": pattern.description,
                    "risk_level": pattern.risk_level.value,
                }
                try:
                    verdict = self._verdict(pattern, candidate)
                except CollaboratorFailure as exc:
                    # SAFETY: log only metadata, never the candidate
                    logger.warning(
                        "Validator failure: pii_type=%s collaborator=%s",
                        pattern.type.value,
                        exc.collaborator,
                    )
                    report.degraded_types.add(pattern.type)
                    verdict = _Verdict(ConfidenceLevel.MEDIUM, True)
                    metadata["validation_error"] = True

                if strict_mode and not verdict.passed:
                    continue

                metadata["validation_passed"] = verdict.passed
                if include_context:
                    metadata["context"] = extract_context(text, start, end, context_window)

                report.spans.append(DetectionSpan(
                    type=pattern.type,
                    start=start,
                    end=end,
                    text=candidate,
                    confidence=verdict.confidence,
                    metadata=metadata,
                ))

        logger.debug(
            "Pattern scan complete: raw_matches=%d spans=%d text_length=%d",
            report.raw_matches,
            len(report.spans),
            len(text),
        )
        return report
