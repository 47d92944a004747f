"""Compliance checks that combine detection results with a policy engine.

Violation strings name PII types, offsets and policy reasons only; the
detected values themselves never appear.
"""
from __future__ import annotations

from collections.abc import Iterable

from piiguard.core.constants import PIIType, PolicyOperation
from piiguard.pii.pipeline import PIIDetectionResult
from piiguard.policy.engine import PolicyEngine


def validate_compliance(
    engine: PolicyEngine,
    pii_type: PIIType | str,
    operations: Iterable[PolicyOperation | str],
) -> tuple[bool, list[str]]:
    """Return ``(is_compliant, violations)`` for *operations* on *pii_type*."""
    violations = [
        decision.reason
        for decision in (engine.evaluate(pii_type, op) for op in operations)
        if not decision.allowed
    ]
    return not violations, violations


def check_detection(
    engine: PolicyEngine,
    result: PIIDetectionResult,
    operation: PolicyOperation | str,
) -> list[str]:
    """Return one violation per span whose type may not undergo *operation*.

    Format: ``"{type} at position {start}-{end}: {reason}"``.
    """
    violations: list[str] = []
    for span in result.spans:
        decision = engine.evaluate(span.type, operation)
        if not decision.allowed:
            violations.append(
                f"{span.type.value} at position {span.start}-{span.end}: {decision.reason}"
            )
    return violations
