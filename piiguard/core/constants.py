"""Shared enumerations and fixed values for detection and policy evaluation.

PIIType
-------
Every category the detector can emit and the policy engine can hold a rule
for.  Values are lowercase strings so that YAML presets and callers may use
either the enum member or its plain value.

RiskLevel
---------
low < moderate < high < critical.  Drives default policy strictness.

ConfidenceLevel
---------------
low < medium < high < very_high.  Each level maps to a fixed weight used
only for thresholding and averaging inside ``piiguard.pii.confidence``; the raw
weight is never placed on a detection result.

PolicyOperation
---------------
Actions a downstream system may take on a PII value.
"""
from __future__ import annotations

from enum import StrEnum


class PIIType(StrEnum):
    EMAIL = "email"
    PHONE = "phone"
    NAME = "name"
    ADDRESS = "address"
    SSN = "ssn"
    CREDIT_CARD = "creditcard"
    IP_ADDRESS = "ip"
    URL = "url"
    ZIP_CODE = "zipcode"
    NATIONAL_ID = "nationalid"
    DATE_OF_BIRTH = "dateofbirth"
    IBAN = "iban"
    VAT = "vat"


class RiskLevel(StrEnum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class ConfidenceLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class PolicyOperation(StrEnum):
    STORE = "store"
    PROCESS = "process"
    TRANSFER = "transfer"
    LOG = "log"
    DISPLAY = "display"
    EXPORT = "export"


# ---------------------------------------------------------------------------
# Detection limits
# ---------------------------------------------------------------------------

DEFAULT_MAX_TEXT_LENGTH: int = 50_000
DEFAULT_CONFIDENCE_THRESHOLD: float = 0.7
DEFAULT_CONTEXT_WINDOW: int = 10

# Types that pass straight to High once their false-positive filters accept
# the match; no structural validator exists for them.
SELF_CHECKED_TYPES: frozenset[PIIType] = frozenset({
    PIIType.SSN,
    PIIType.CREDIT_CARD,
    PIIType.IP_ADDRESS,
})

CRITICAL_TYPES: frozenset[PIIType] = frozenset({PIIType.SSN, PIIType.CREDIT_CARD})
CONTACT_TYPES: frozenset[PIIType] = frozenset({PIIType.EMAIL, PIIType.PHONE})

# ---------------------------------------------------------------------------
# Advisory suggestion texts
# ---------------------------------------------------------------------------

SUGGEST_MASKING = "Consider masking or redacting detected PII before logging or storing"
SUGGEST_CRITICAL = "Critical PII detected - ensure encryption and secure handling"
SUGGEST_CONSENT = "Contact information detected - verify consent for processing"
SUGGEST_ORGANIZATIONS = "Organization names detected - verify if these should be treated as PII"
SUGGEST_NLP_FAILED = "NLP processing failed - consider manual review for name detection"
SUGGEST_VALIDATOR_FAILED = (
    "Structural validation unavailable for {pii_type} - manual review recommended"
)
