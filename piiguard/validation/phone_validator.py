"""Phone number validator.

Parses a candidate with ``phonenumbers``.  Without a default region only
numbers carrying an international ``+`` prefix can be parsed; national
forms such as ``(555) 123-4567`` come back with ``is_possible=None`` and
leave the decision to the caller's digit-count fallback.

``normalized`` is the E.164 form (e.g. ``+12125551234``) for valid numbers.

Safety rule: raw values are never logged.
"""
from __future__ import annotations

import logging

import phonenumbers

from piiguard.validation.base import INVALID_PHONE, REQUIRED_FIELD, ValidationResult

logger = logging.getLogger(__name__)

_NUMBER_TYPE_NAMES: dict[int, str] = {
    value: name.lower()
    for name, value in vars(phonenumbers.PhoneNumberType).items()
    if name.isupper() and isinstance(value, int)
}


class PhoneValidator:
    """Structural validator for phone numbers.

    Parameters
    ----------
    default_region:
        ISO-3166-1 alpha-2 code assumed when the candidate has no
        international prefix.  ``None`` parses region-less.
    """

    def __init__(self, default_region: str | None = None) -> None:
        self._default_region = default_region

    def validate(self, candidate: str) -> ValidationResult:
        if not candidate or not candidate.strip():
            return ValidationResult(is_valid=False, errors=[REQUIRED_FIELD])

        try:
            parsed = phonenumbers.parse(candidate, self._default_region)
        except phonenumbers.NumberParseException:
            # SAFETY: do not log raw value
            logger.debug("phone_validator: could not parse input (length=%d)", len(candidate))
            return ValidationResult(is_valid=False, is_possible=None, errors=[INVALID_PHONE])

        is_valid = phonenumbers.is_valid_number(parsed)
        is_possible = phonenumbers.is_possible_number(parsed)
        classification = {
            "region": phonenumbers.region_code_for_number(parsed),
            "number_type": _NUMBER_TYPE_NAMES.get(phonenumbers.number_type(parsed), "unknown"),
            "country_code": parsed.country_code,
        }

        return ValidationResult(
            is_valid=is_valid,
            is_possible=is_possible,
            normalized=(
                phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
                if is_valid
                else None
            ),
            errors=[] if is_valid else [INVALID_PHONE],
            classification=classification,
        )
