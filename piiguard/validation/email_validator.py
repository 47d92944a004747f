"""Email validator.

Rule-based subset of RFC 5321 / 5322 sufficient to confirm a regex hit:

* exactly one ``@``; total length at most 320 characters;
* local part 1–64 characters of dot-separated atext atoms (no empty atom,
  so no leading, trailing or doubled dots);
* domain of at least two labels, each 1–63 alphanumeric / hyphen characters
  that neither start nor end with ``-``;
* alphabetic top-level domain of at least two letters.

``normalized`` is the lowercase address with Gmail dot-folding applied:
dots in the local part of ``@gmail.com`` / ``@googlemail.com`` addresses
are removed because Gmail treats them as the same mailbox.  Sub-address
tags (``user+tag@domain``) are kept.

Safety rule: raw values are never logged.
"""
from __future__ import annotations

import logging
import re

from piiguard.validation.base import (
    FIELD_TOO_LONG,
    INVALID_EMAIL,
    REQUIRED_FIELD,
    ValidationResult,
)

logger = logging.getLogger(__name__)

_MAX_LENGTH = 320
_MAX_LOCAL_LENGTH = 64

_ATOM_RE = re.compile(r"^[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+$")
_LABEL_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")
_TLD_RE = re.compile(r"^[A-Za-z]{2,}$")

# Domains where dots in the local part are insignificant
_GMAIL_DOMAINS = frozenset({"gmail.com", "googlemail.com"})

_DISPOSABLE_DOMAINS = frozenset({
    "10minutemail.com",
    "guerrillamail.com",
    "mailinator.com",
    "tempmail.org",
    "yopmail.com",
    "temp-mail.org",
    "sharklasers.com",
})

_FREE_PROVIDER_DOMAINS = frozenset({
    "gmail.com",
    "googlemail.com",
    "yahoo.com",
    "hotmail.com",
    "outlook.com",
    "icloud.com",
    "protonmail.com",
})


def normalize_email(raw: str) -> str:
    """Return *raw* lowercased and stripped, with Gmail dot-folding."""
    stripped = raw.strip().lower()
    if "@" not in stripped:
        return stripped

    local, _, domain = stripped.rpartition("@")
    if domain in _GMAIL_DOMAINS:
        local = local.replace(".", "")
    return f"{local}@{domain}"


def _local_part_errors(local: str) -> list[str]:
    if not local:
        return [INVALID_EMAIL]
    if len(local) > _MAX_LOCAL_LENGTH:
        return [FIELD_TOO_LONG]
    if not all(_ATOM_RE.match(atom) for atom in local.split(".")):
        return [INVALID_EMAIL]
    return []


def _domain_errors(domain: str) -> list[str]:
    labels = domain.split(".")
    if len(labels) < 2:
        return [INVALID_EMAIL]
    if not all(_LABEL_RE.match(label) for label in labels):
        return [INVALID_EMAIL]
    if not _TLD_RE.match(labels[-1]):
        return [INVALID_EMAIL]
    return []


class EmailValidator:
    """Structural validator for email addresses."""

    def validate(self, candidate: str) -> ValidationResult:
        if not candidate or not candidate.strip():
            return ValidationResult(is_valid=False, errors=[REQUIRED_FIELD])

        value = candidate.strip()
        errors: list[str] = []

        if len(value) > _MAX_LENGTH:
            errors.append(FIELD_TOO_LONG)

        if value.count("@") != 1:
            errors.append(INVALID_EMAIL)
            logger.debug("email_validator: '@' count != 1 (length=%d)", len(value))
            return ValidationResult(is_valid=False, errors=errors)

        local, _, domain = value.partition("@")
        errors.extend(_local_part_errors(local))
        errors.extend(_domain_errors(domain))

        domain_lower = domain.lower()
        classification = {
            "domain": domain_lower,
            "is_disposable": domain_lower in _DISPOSABLE_DOMAINS,
            "is_free_provider": domain_lower in _FREE_PROVIDER_DOMAINS,
        }

        is_valid = not errors
        return ValidationResult(
            is_valid=is_valid,
            normalized=normalize_email(value) if is_valid else None,
            errors=errors,
            classification=classification,
        )
