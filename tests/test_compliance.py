"""Tests for piiguard/policy/compliance.py."""
from __future__ import annotations

from piiguard.core.constants import PIIType, PolicyOperation
from piiguard.policy.compliance import check_detection, validate_compliance
from piiguard.policy.engine import PolicyEngine
from piiguard.policy.presets import create_policy_engine


def test_compliant_operations() -> None:
    ok, violations = validate_compliance(
        PolicyEngine(), PIIType.EMAIL, [PolicyOperation.STORE, PolicyOperation.PROCESS]
    )
    assert ok is True
    assert violations == []


def test_violations_in_operation_order() -> None:
    ok, violations = validate_compliance(
        PolicyEngine(), PIIType.SSN, ["export", "store", "log"]
    )
    assert ok is False
    assert violations == [
        "Operation 'export' not allowed for PII type 'ssn' (risk level: critical)",
        "Operation 'log' not allowed for PII type 'ssn' (risk level: critical)",
    ]


def test_empty_operations_is_compliant() -> None:
    assert validate_compliance(PolicyEngine(), PIIType.SSN, []) == (True, [])


def test_check_detection_lists_spans(pipeline) -> None:
    text = "Email john@example.com, SSN 555-55-5555"
    result = pipeline.detect(text)
    violations = check_detection(PolicyEngine(), result, PolicyOperation.LOG)

    assert len(violations) == 2
    assert violations[0].startswith("email at position 6-22: ")
    assert violations[1].startswith("ssn at position 28-39: ")
    assert all("john@example.com" not in v and "555-55-5555" not in v for v in violations)


def test_check_detection_allowed_operation(pipeline) -> None:
    result = pipeline.detect("server 192.168.1.100")
    assert check_detection(PolicyEngine(), result, PolicyOperation.LOG) == []


def test_check_detection_strict_preset_without_rule(pipeline) -> None:
    text = "card 4111111111111111"
    result = pipeline.detect(text)
    engine = create_policy_engine("strict")
    engine.remove_rule(PIIType.CREDIT_CARD)

    violations = check_detection(engine, result, PolicyOperation.STORE)
    assert violations == [
        "creditcard at position 5-21: No policy rule defined for PII type: creditcard"
    ]
