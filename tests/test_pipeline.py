"""Tests for piiguard/pii/pipeline.py — end-to-end detection."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from piiguard.core.constants import (
    SUGGEST_CONSENT,
    SUGGEST_CRITICAL,
    SUGGEST_MASKING,
    SUGGEST_NLP_FAILED,
    SUGGEST_VALIDATOR_FAILED,
    ConfidenceLevel,
    PIIType,
)
from piiguard.core.errors import INVALID_INPUT, TEXT_TOO_LONG, DetectionError
from piiguard.core.settings import get_settings
from piiguard.pii.extractor import SpanExtractor
from piiguard.pii.nlp_adapter import NLPAdapter
from piiguard.pii.patterns import PatternRegistry, PIIPattern
from piiguard.pii.pipeline import (
    DetectionOptions,
    DetectionPipeline,
    count_pii_by_type,
    detect_pii,
    detect_pii_multiple,
    has_pii,
)

CONTACT_TEXT = "Contact John Doe at john@example.com or call (555) 123-4567"
SSN_TEXT = "My SSN is 555-55-5555"


# ===========================================================================
# Scenarios
# ===========================================================================

class TestScenarios:
    def test_contact_details(self, pipeline) -> None:
        result = pipeline.detect(CONTACT_TEXT)
        assert result.has_pii is True
        assert {PIIType.EMAIL, PIIType.PHONE} <= result.detected_types

    def test_contact_details_with_names(self, make_extractor) -> None:
        adapter = NLPAdapter(make_extractor(persons=["John Doe"]))
        result = DetectionPipeline(nlp_adapter=adapter).detect(CONTACT_TEXT)

        assert result.detected_types == {PIIType.NAME, PIIType.EMAIL, PIIType.PHONE}
        assert [s.type for s in result.spans] == [PIIType.NAME, PIIType.EMAIL, PIIType.PHONE]
        assert result.spans[0].metadata["source"] == "nlp"

    def test_ssn(self, pipeline) -> None:
        result = pipeline.detect(SSN_TEXT)
        assert len(result.spans) == 1
        span = result.spans[0]
        assert span.type == PIIType.SSN
        assert span.text == "555-55-5555"
        assert span.confidence == ConfidenceLevel.HIGH

    def test_count_by_type(self) -> None:
        counts = count_pii_by_type("Emails: a@b.com, c@d.com. Phone: 555-123-4567")
        assert counts[PIIType.EMAIL] == 2
        assert counts[PIIType.PHONE] == 1
        assert set(counts) == set(PIIType)
        assert all(n == 0 for t, n in counts.items() if t not in {PIIType.EMAIL, PIIType.PHONE})

    def test_credit_card(self, pipeline) -> None:
        result = pipeline.detect("Pay with 4111111111111111 today")
        assert result.detected_types == {PIIType.CREDIT_CARD}

    def test_no_pii(self, pipeline) -> None:
        result = pipeline.detect("The weather is lovely today", {"enable_nlp": False})
        assert result.has_pii is False
        assert result.detected_types == frozenset()
        assert result.spans == []
        assert result.suggestions == []
        assert result.confidence == ConfidenceLevel.LOW


# ===========================================================================
# Invariants
# ===========================================================================

class TestInvariants:
    def test_detected_types_match_spans(self, pipeline) -> None:
        result = pipeline.detect(CONTACT_TEXT + " " + SSN_TEXT)
        assert result.detected_types == {s.type for s in result.spans}
        assert result.has_pii == bool(result.spans)

    def test_spans_ordered_by_start(self, pipeline) -> None:
        result = pipeline.detect("call (555) 123-4567 or john@example.com, SSN 555-55-5555")
        starts = [s.start for s in result.spans]
        assert starts == sorted(starts)

    def test_offsets_slice_source(self, pipeline) -> None:
        result = pipeline.detect(CONTACT_TEXT)
        for span in result.spans:
            assert CONTACT_TEXT[span.start:span.end] == span.text

    def test_threshold_monotonic(self, pipeline) -> None:
        text = "zip 94105, mail john@example.com, SSN 555-55-5555"
        counts = [
            len(pipeline.detect(text, {"confidence_threshold": t / 10}).spans)
            for t in range(11)
        ]
        assert counts == sorted(counts, reverse=True)

    def test_zero_threshold_keeps_medium(self, pipeline) -> None:
        result = pipeline.detect("zip 94105", {"confidence_threshold": 0.0})
        assert result.detected_types == {PIIType.ZIP_CODE}

    def test_default_threshold_drops_medium_but_reports_confidence(self, pipeline) -> None:
        result = pipeline.detect("zip 94105")
        assert result.has_pii is False
        assert result.confidence == ConfidenceLevel.MEDIUM
        assert result.metadata["total_matches"] == 1
        assert result.metadata["filtered_matches"] == 0

    def test_span_extraction_disabled(self, pipeline) -> None:
        result = pipeline.detect(SSN_TEXT, {"enable_span_extraction": False})
        assert result.spans == []
        assert result.has_pii is True
        assert result.detected_types == {PIIType.SSN}

    def test_pipelines_do_not_share_registry(self) -> None:
        first = DetectionPipeline()
        second = DetectionPipeline()
        first.registry.unregister(PIIType.SSN)
        assert second.detect(SSN_TEXT, {"enable_nlp": False}).has_pii is True
        assert first.detect(SSN_TEXT, {"enable_nlp": False}).has_pii is False


# ===========================================================================
# Input checks and options
# ===========================================================================

class TestInputErrors:
    def test_empty_text(self, pipeline) -> None:
        with pytest.raises(DetectionError) as exc_info:
            pipeline.detect("")
        assert exc_info.value.code == INVALID_INPUT

    def test_non_string(self, pipeline) -> None:
        with pytest.raises(DetectionError) as exc_info:
            pipeline.detect(12345)
        assert exc_info.value.code == INVALID_INPUT

    def test_too_long(self, pipeline) -> None:
        with pytest.raises(DetectionError) as exc_info:
            pipeline.detect("x" * 11, {"max_text_length": 10})
        assert exc_info.value.code == TEXT_TOO_LONG
        assert exc_info.value.text_length == 11
        assert exc_info.value.metadata["max_text_length"] == 10

    def test_exact_limit_accepted(self, pipeline) -> None:
        assert pipeline.detect("x" * 10, {"max_text_length": 10, "enable_nlp": False}).has_pii is False

    def test_message_has_no_text(self, pipeline) -> None:
        with pytest.raises(DetectionError) as exc_info:
            pipeline.detect("john@example.com", {"max_text_length": 5})
        assert "john@example.com" not in str(exc_info.value)


class TestOptions:
    def test_unknown_option_rejected(self, pipeline) -> None:
        with pytest.raises(ValidationError):
            pipeline.detect("text", {"enable_magic": True})

    def test_threshold_out_of_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DetectionOptions(confidence_threshold=1.5)

    def test_defaults_come_from_settings(self) -> None:
        opts = DetectionOptions()
        assert opts.confidence_threshold == 0.7
        assert opts.max_text_length == 50_000
        assert opts.enable_nlp is True
        assert opts.context_window == 10

    def test_env_override(self, monkeypatch, pipeline) -> None:
        monkeypatch.setenv("PIIGUARD_CONFIDENCE_THRESHOLD", "0.4")
        get_settings.cache_clear()
        assert pipeline.detect("zip 94105").detected_types == {PIIType.ZIP_CODE}

    def test_env_max_length(self, monkeypatch) -> None:
        monkeypatch.setenv("PIIGUARD_MAX_TEXT_LENGTH", "5")
        get_settings.cache_clear()
        with pytest.raises(DetectionError):
            detect_pii("hello world")

    def test_custom_pattern(self, pipeline) -> None:
        vat = PIIPattern(type=PIIType.VAT, matcher=r"\bGB\d{9}\b", confidence=ConfidenceLevel.HIGH)
        result = pipeline.detect("VAT GB123456789", {"custom_patterns": [vat]})
        assert PIIType.VAT in result.detected_types
        assert result.metadata["patterns"] == 10

    def test_custom_pattern_must_be_pattern(self, pipeline) -> None:
        with pytest.raises(ValidationError):
            pipeline.detect("text", {"custom_patterns": [r"\d+"]})

    def test_nlp_disabled_skips_extractor(self, fake_extractor, pipeline) -> None:
        pipeline.detect(CONTACT_TEXT, {"enable_nlp": False})
        assert fake_extractor.calls == []

    def test_context_included(self, pipeline) -> None:
        result = pipeline.detect(SSN_TEXT, {"include_context": True, "context_window": 3})
        assert result.spans[0].metadata["context"] == "...is [555-55-5555]..."

    def test_empty_registry(self) -> None:
        result = DetectionPipeline(PatternRegistry()).detect(SSN_TEXT, {"enable_nlp": False})
        assert result.has_pii is False


# ===========================================================================
# Suggestions and metadata
# ===========================================================================

class TestSuggestions:
    def test_critical(self, pipeline) -> None:
        assert pipeline.detect(SSN_TEXT).suggestions == [SUGGEST_MASKING, SUGGEST_CRITICAL]

    def test_contact(self, pipeline) -> None:
        assert pipeline.detect(CONTACT_TEXT).suggestions == [SUGGEST_MASKING, SUGGEST_CONSENT]

    def test_nlp_failure_degrades(self) -> None:
        broken = MagicMock()
        broken.extract_persons.side_effect = OSError("model not found")
        result = DetectionPipeline(nlp_adapter=NLPAdapter(broken)).detect(SSN_TEXT)

        assert result.detected_types == {PIIType.SSN}
        assert result.suggestions[-1] == SUGGEST_NLP_FAILED

    def test_validator_failure_degrades(self, pipeline) -> None:
        broken = MagicMock()
        broken.validate.side_effect = RuntimeError("boom")
        degraded = DetectionPipeline(
            extractor=SpanExtractor(email_validator=broken),
            nlp_adapter=pipeline.nlp_adapter,
        )
        result = degraded.detect("mail john@example.com", {"confidence_threshold": 0.5})

        assert result.spans[0].confidence == ConfidenceLevel.MEDIUM
        assert SUGGEST_VALIDATOR_FAILED.format(pii_type="email") in result.suggestions


class TestMetadata:
    def test_fields(self, pipeline) -> None:
        result = pipeline.detect(SSN_TEXT, {"enable_nlp": False})
        assert result.metadata == {
            "total_matches": 1,
            "filtered_matches": 1,
            "confidence_threshold": 0.7,
            "nlp_enabled": False,
            "text_length": len(SSN_TEXT),
            "patterns": 9,
        }


# ===========================================================================
# Batch and convenience helpers
# ===========================================================================

class TestHelpers:
    def test_detect_multiple_preserves_order(self, pipeline) -> None:
        results = pipeline.detect_multiple(["a@b.com", "nothing here", SSN_TEXT])
        assert [r.has_pii for r in results] == [True, False, True]

    def test_detect_multiple_propagates_error(self, pipeline) -> None:
        with pytest.raises(DetectionError):
            pipeline.detect_multiple(["a@b.com", ""])

    def test_module_detect_multiple(self) -> None:
        results = detect_pii_multiple([SSN_TEXT, "plain"])
        assert len(results) == 2

    def test_has_pii(self, pipeline) -> None:
        assert pipeline.has_pii(SSN_TEXT) is True
        assert pipeline.has_pii("plain words") is False

    def test_module_has_pii(self) -> None:
        assert has_pii("reach me at john@example.com") is True

    def test_count_ignores_span_extraction_flag(self, pipeline) -> None:
        counts = pipeline.count_by_type(SSN_TEXT, {"enable_span_extraction": False})
        assert counts[PIIType.SSN] == 1

    def test_module_detect_uses_default_extractor(self) -> None:
        result = detect_pii(SSN_TEXT)
        assert result.metadata["nlp_enabled"] is True
        assert SUGGEST_NLP_FAILED not in result.suggestions
