"""Tests for piiguard/pii/extractor.py — span extraction and per-type confidence."""
from __future__ import annotations

import logging
from unittest.mock import MagicMock

from piiguard.core.constants import ConfidenceLevel, PIIType, RiskLevel
from piiguard.pii.extractor import SpanExtractor, extract_context
from piiguard.pii.patterns import PatternRegistry, PIIPattern
from piiguard.validation.base import ValidationResult


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _extract(text: str, **kwargs):
    return SpanExtractor().extract(text, PatternRegistry.default(), **kwargs)


def _types(report) -> list[PIIType]:
    return [span.type for span in report.spans]


class _StubValidator:
    def __init__(self, result: ValidationResult) -> None:
        self.result = result

    def validate(self, candidate: str) -> ValidationResult:
        return self.result


# ===========================================================================
# extract_context
# ===========================================================================

class TestExtractContext:
    def test_window_both_sides(self) -> None:
        text = "0123456789ABCDEFGHIJ"
        assert extract_context(text, 10, 12, 3) == "...789[AB]CDE..."

    def test_clamped_at_edges(self) -> None:
        assert extract_context("abc", 0, 3, 10) == "...[abc]..."


# ===========================================================================
# SpanExtractor
# ===========================================================================

class TestSpanExtractor:
    def test_ssn_high_confidence(self) -> None:
        report = _extract("My SSN is 555-55-5555")
        assert len(report.spans) == 1
        span = report.spans[0]
        assert span.type == PIIType.SSN
        assert span.text == "555-55-5555"
        assert (span.start, span.end) == (10, 21)
        assert span.confidence == ConfidenceLevel.HIGH

    def test_offsets_slice_source(self) -> None:
        text = "mail john@example.com now"
        for span in _extract(text).spans:
            assert text[span.start:span.end] == span.text

    def test_metadata_fields(self) -> None:
        span = _extract("My SSN is 555-55-5555").spans[0]
        assert span.metadata["pattern"] == "US Social Security Numbers"
        assert span.metadata["risk_level"] == RiskLevel.CRITICAL.value
        assert span.metadata["validation_passed"] is True
        assert "context" not in span.metadata

    def test_context_included_on_request(self) -> None:
        span = _extract("My SSN is 555-55-5555", include_context=True, context_window=3).spans[0]
        assert span.metadata["context"] == "...is [555-55-5555]..."

    def test_card_passes_luhn(self) -> None:
        report = _extract("card 4111111111111111")
        assert _types(report) == [PIIType.CREDIT_CARD]
        assert report.spans[0].confidence == ConfidenceLevel.HIGH

    def test_card_failing_luhn_dropped(self) -> None:
        assert PIIType.CREDIT_CARD not in _types(_extract("card 4111111111111112"))

    def test_ip_only(self) -> None:
        assert _types(_extract("server 192.168.1.100")) == [PIIType.IP_ADDRESS]

    def test_valid_email_high(self) -> None:
        span = _extract("write to john@example.com").spans[0]
        assert span.type == PIIType.EMAIL
        assert span.confidence == ConfidenceLevel.HIGH

    def test_national_phone_high_by_digit_count(self) -> None:
        report = _extract("call (555) 123-4567")
        assert _types(report) == [PIIType.PHONE]
        assert report.spans[0].confidence == ConfidenceLevel.HIGH

    def test_possible_phone_medium(self) -> None:
        report = _extract("call +1-555-987-6543")
        assert _types(report) == [PIIType.PHONE]
        assert report.spans[0].confidence == ConfidenceLevel.MEDIUM

    def test_zip_default_medium(self) -> None:
        report = _extract("zip 94105")
        assert _types(report) == [PIIType.ZIP_CODE]
        assert report.spans[0].confidence == ConfidenceLevel.MEDIUM

    def test_pattern_confidence_override(self) -> None:
        pattern = PIIPattern(
            type=PIIType.VAT,
            matcher=r"\bVAT\d{6}\b",
            confidence=ConfidenceLevel.VERY_HIGH,
        )
        report = SpanExtractor().extract("id VAT123456", [pattern])
        assert report.spans[0].confidence == ConfidenceLevel.VERY_HIGH

    def test_overlapping_types_not_deduplicated(self) -> None:
        overlap = PIIPattern(type=PIIType.NATIONAL_ID, matcher=r"\d{3}-\d{2}-\d{4}")
        patterns = [*PatternRegistry.default(), overlap]
        report = SpanExtractor().extract("SSN 555-55-5555", patterns)
        assert sorted(_types(report)) == sorted([PIIType.SSN, PIIType.NATIONAL_ID])

    def test_raw_matches_counts_filtered_candidates(self) -> None:
        report = _extract("fake 123-45-6789")
        assert report.spans == []
        assert report.raw_matches >= 1

    def test_failed_email_low(self) -> None:
        invalid = ValidationResult(is_valid=False)
        extractor = SpanExtractor(email_validator=_StubValidator(invalid))
        report = extractor.extract("a@b.com", PatternRegistry.default())
        assert report.spans[0].confidence == ConfidenceLevel.LOW
        assert report.spans[0].metadata["validation_passed"] is False

    def test_strict_mode_discards_failed_validation(self) -> None:
        invalid = ValidationResult(is_valid=False)
        extractor = SpanExtractor(email_validator=_StubValidator(invalid))
        report = extractor.extract("a@b.com", PatternRegistry.default(), strict_mode=True)
        assert report.spans == []

    def test_strict_mode_keeps_possible_phone(self) -> None:
        report = _extract("call +1-555-987-6543", strict_mode=True)
        assert _types(report) == [PIIType.PHONE]

    def test_short_unparseable_phone_low_and_strict_drop(self) -> None:
        pattern = PIIPattern(type=PIIType.PHONE, matcher=r"\b\d{3}-\d{4}\b")
        loose = SpanExtractor().extract("dial 555-1234", [pattern])
        assert loose.spans[0].confidence == ConfidenceLevel.LOW
        strict = SpanExtractor().extract("dial 555-1234", [pattern], strict_mode=True)
        assert strict.spans == []


class TestValidatorFailure:
    def test_raising_validator_degrades_to_medium(self, caplog) -> None:
        broken = MagicMock()
        broken.validate.side_effect = RuntimeError("boom")
        extractor = SpanExtractor(email_validator=broken)

        with caplog.at_level(logging.WARNING, logger="piiguard.pii.extractor"):
            report = extractor.extract("john@example.com", PatternRegistry.default())

        span = report.spans[0]
        assert span.confidence == ConfidenceLevel.MEDIUM
        assert span.metadata["validation_error"] is True
        assert report.degraded_types == {PIIType.EMAIL}
        assert "john@example.com" not in caplog.text
        assert "pii_type=email" in caplog.text
