"""Shared result types for structural validators.

ValidationResult
----------------
is_valid:        the candidate passed every structural rule.
is_possible:     the candidate is plausible but unconfirmed (phone numbers
                 that have a possible length for their region).  ``None``
                 when the validator could not even parse the candidate.
normalized:      canonical form when valid, else ``None``.
errors:          machine-readable failure codes, in the order found.
classification:  validator-specific facts (domain, region, number type ...).

Name and address validation answer a different question ("how likely is
this a person name / a postal address?") so their results carry a
confidence label and a type classification on top of the common fields.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from piiguard.core.constants import ConfidenceLevel

# Failure codes
REQUIRED_FIELD = "REQUIRED_FIELD"
FIELD_TOO_LONG = "FIELD_TOO_LONG"
INVALID_EMAIL = "INVALID_EMAIL"
INVALID_PHONE = "INVALID_PHONE"
INVALID_NAME = "INVALID_NAME"
INVALID_ADDRESS = "INVALID_ADDRESS"


@dataclass
class ValidationResult:
    is_valid: bool
    is_possible: bool | None = None
    normalized: str | None = None
    errors: list[str] = field(default_factory=list)
    classification: dict[str, Any] = field(default_factory=dict)


@dataclass
class NameValidationResult(ValidationResult):
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    is_likely_name: bool = False
    name_type: str = "unknown"
    first_name: str | None = None
    last_name: str | None = None


@dataclass
class AddressValidationResult(ValidationResult):
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    address_type: str = "unknown"
    components: dict[str, str | None] = field(default_factory=dict)
    is_complete: bool = False


class StructuralValidator(Protocol):
    """Anything with ``validate(candidate) -> ValidationResult``."""

    def validate(self, candidate: str) -> ValidationResult:
        ...
