"""piiguard: rule-driven PII detection and compliance policy evaluation.

Detection::

    from piiguard import detect_pii
    result = detect_pii("Contact john@example.com", {"enable_nlp": False})

Policy::

    from piiguard import create_policy_engine, PIIType, PolicyOperation
    engine = create_policy_engine("gdpr")
    engine.evaluate(PIIType.EMAIL, PolicyOperation.LOG).allowed   # False
"""
from piiguard.core.constants import ConfidenceLevel, PIIType, PolicyOperation, RiskLevel
from piiguard.core.errors import (
    CollaboratorFailure,
    DetectionError,
    PIIGuardError,
    PolicyConfigurationError,
)
from piiguard.pii.extractor import DetectionSpan
from piiguard.pii.patterns import PatternRegistry, PIIPattern
from piiguard.pii.pipeline import (
    DetectionOptions,
    DetectionPipeline,
    PIIDetectionResult,
    count_pii_by_type,
    detect_pii,
    detect_pii_multiple,
    has_pii,
)
from piiguard.policy.compliance import check_detection, validate_compliance
from piiguard.policy.engine import PolicyEngine
from piiguard.policy.presets import create_policy_engine
from piiguard.policy.rule import PolicyDecision, PolicyRule

__all__ = [
    "CollaboratorFailure",
    "ConfidenceLevel",
    "DetectionError",
    "DetectionOptions",
    "DetectionPipeline",
    "DetectionSpan",
    "PIIDetectionResult",
    "PIIGuardError",
    "PIIPattern",
    "PIIType",
    "PatternRegistry",
    "PolicyConfigurationError",
    "PolicyDecision",
    "PolicyEngine",
    "PolicyOperation",
    "PolicyRule",
    "RiskLevel",
    "check_detection",
    "count_pii_by_type",
    "create_policy_engine",
    "detect_pii",
    "detect_pii_multiple",
    "has_pii",
    "validate_compliance",
]
