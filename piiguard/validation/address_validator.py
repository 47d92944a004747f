"""Postal-address validator.

Rule-based, multi-geography heuristics.  No external APIs, no network.

Confidence
----------
High    PO box, or street number followed by a street-type word
        ("12 Baker Street")
Medium  street number followed by any word ("12 Baker")
Low     anything else, including bare place names

``address_type`` is ``po_box`` for PO boxes, ``commercial`` when a business
indicator appears (``suite``, ``plaza``, ``inc`` ...), else ``residential``.
``components`` holds the recognised parts; ``country`` is an
ISO-3166-1 alpha-2 code from ``detect_country()``.

Safety rule: raw values are never logged.
"""
from __future__ import annotations

import logging
import re
from typing import Callable

from piiguard.core.constants import ConfidenceLevel
from piiguard.validation.base import (
    FIELD_TOO_LONG,
    INVALID_ADDRESS,
    REQUIRED_FIELD,
    AddressValidationResult,
)

logger = logging.getLogger(__name__)

_MAX_LENGTH = 500

# ---------------------------------------------------------------------------
# Street-level patterns
# ---------------------------------------------------------------------------

_STREET_NUM_RE = re.compile(r"^\s*(\d+[A-Za-z]?)\s+(\w.*)$")

_STREET_TYPE_RE = re.compile(
    r"\b(?:street|st|avenue|ave|road|rd|boulevard|blvd|lane|ln|drive|dr|"
    r"court|ct|place|pl|way|circle|cir|parkway|pkwy|terrace|highway|hwy)\b\.?",
    re.IGNORECASE,
)

_UNIT_RE = re.compile(
    r"\b(?:apt|apartment|unit|suite|ste|floor|fl|room|rm)\s*\.?\s*#?\s*([A-Za-z0-9]+)"
    r"|#\s*([A-Za-z0-9]+)",
    re.IGNORECASE,
)

_PO_BOX_RE = re.compile(
    r"\b(?:p\.?\s*o\.?\s*box|post\s*office\s*box|postal\s*box)\s*\.?\s*(\d+)",
    re.IGNORECASE,
)

_COMMERCIAL_RE = re.compile(
    r"\b(?:corp|corporation|inc|incorporated|ltd|limited|llc|company|office|"
    r"building|center|centre|plaza|mall|store|shop|business|suite)\b",
    re.IGNORECASE,
)

# ---------------------------------------------------------------------------
# Per-geography postal code patterns and normalizers
# ---------------------------------------------------------------------------

def _upper_no_space(s: str) -> str:
    return s.upper().replace(" ", "")


def _as_is(s: str) -> str:
    return s


_POSTAL_CONFIG: dict[str, tuple[re.Pattern[str], Callable[[str], str]]] = {
    "US": (re.compile(r"\b(\d{5}(?:-\d{4})?)\b"), _as_is),
    "GB": (re.compile(r"\b([A-Z]{1,2}\d[A-Z\d]?\s*\d[A-Z]{2})\b", re.IGNORECASE), _upper_no_space),
    "IN": (re.compile(r"\b([1-9]\d{5})\b"), _as_is),
    "CA": (re.compile(r"\b([A-Z]\d[A-Z]\s*\d[A-Z]\d)\b", re.IGNORECASE), _upper_no_space),
    "AU": (re.compile(r"\b(\d{4})\b"), _as_is),
    "EU": (re.compile(r"\b(\d{4,5})\b"), _as_is),
}

# ---------------------------------------------------------------------------
# US state tables
# ---------------------------------------------------------------------------

_STATE_NAMES: dict[str, str] = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT",
    "delaware": "DE", "florida": "FL", "georgia": "GA", "hawaii": "HI",
    "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
    "kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME",
    "maryland": "MD", "massachusetts": "MA", "michigan": "MI",
    "minnesota": "MN", "mississippi": "MS", "missouri": "MO",
    "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM",
    "new york": "NY", "north carolina": "NC", "north dakota": "ND",
    "ohio": "OH", "oklahoma": "OK", "oregon": "OR",
    "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT",
    "vermont": "VT", "virginia": "VA", "washington": "WA",
    "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY",
    "district of columbia": "DC",
}

_VALID_ABBREVS: frozenset[str] = frozenset(_STATE_NAMES.values())
_SORTED_STATE_NAMES: list[str] = sorted(_STATE_NAMES, key=len, reverse=True)

# Searched case-insensitively on the full string; most specific first.
_COUNTRY_KEYWORDS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b(?:india|bharat)\b", re.IGNORECASE), "IN"),
    (re.compile(r"\b(?:united\s+kingdom|u\.k\.|uk|england|scotland|wales|great\s+britain)\b", re.IGNORECASE), "GB"),
    (re.compile(r"\bcanada\b", re.IGNORECASE), "CA"),
    (re.compile(r"\baustralia\b", re.IGNORECASE), "AU"),
    (re.compile(r"\b(?:germany|deutschland)\b", re.IGNORECASE), "DE"),
    (re.compile(r"\bfrance\b", re.IGNORECASE), "FR"),
    (re.compile(r"\b(?:united\s+states|u\.s\.a\.|u\.s\.|usa)\b", re.IGNORECASE), "US"),
]


def detect_country(raw: str) -> str | None:
    """Return the ISO-3166-1 alpha-2 country code detected in *raw*, or None.

    Detection order (first match wins): country-name keywords, UK postcode,
    Indian PIN, Canadian postal code, US state name, US state abbreviation,
    US ZIP.
    """
    for pattern, code in _COUNTRY_KEYWORDS:
        if pattern.search(raw):
            return code

    for code in ("GB", "IN", "CA"):
        if _POSTAL_CONFIG[code][0].search(raw):
            return code

    raw_lower = raw.lower()
    for name in _SORTED_STATE_NAMES:
        if re.search(r"\b" + re.escape(name) + r"\b", raw_lower):
            return "US"

    for m in re.finditer(r"\b([A-Z]{2})\b", raw):
        if m.group(1) in _VALID_ABBREVS:
            return "US"

    if _POSTAL_CONFIG["US"][0].search(raw):
        return "US"

    return None


def _extract_state(text: str) -> str | None:
    text_lower = text.lower()
    for name in _SORTED_STATE_NAMES:
        if re.search(r"\b" + re.escape(name) + r"\b", text_lower):
            return _STATE_NAMES[name]
    for m in re.finditer(r"\b([A-Z]{2})\b", text):
        if m.group(1) in _VALID_ABBREVS:
            return m.group(1)
    return None


class AddressValidator:
    """Structural validator for postal addresses."""

    def validate(self, candidate: str) -> AddressValidationResult:
        if not candidate or not candidate.strip():
            return AddressValidationResult(is_valid=False, errors=[REQUIRED_FIELD])

        text = candidate.strip()
        errors: list[str] = []
        if len(text) > _MAX_LENGTH:
            errors.append(FIELD_TOO_LONG)

        components: dict[str, str | None] = {}
        confidence = ConfidenceLevel.LOW
        address_type = "unknown"

        lines = [line.strip() for line in re.split(r"[\n\r]+", text) if line.strip()]
        segments = [seg.strip() for seg in lines[0].split(",") if seg.strip()] if lines else []
        first_segment = segments[0] if segments else ""

        # --- Street line / PO box ----------------------------------------
        po_box = _PO_BOX_RE.search(text)
        if po_box:
            components["po_box"] = po_box.group(1)
            address_type = "po_box"
            confidence = ConfidenceLevel.HIGH
        else:
            street = _STREET_NUM_RE.match(first_segment)
            if street:
                components["street_number"] = street.group(1)
                components["street_name"] = street.group(2).strip()
                confidence = ConfidenceLevel.MEDIUM
                if _STREET_TYPE_RE.search(street.group(2)):
                    confidence = ConfidenceLevel.HIGH
            elif first_segment:
                components["street_name"] = first_segment

            unit = _UNIT_RE.search(text)
            if unit:
                components["unit"] = unit.group(1) or unit.group(2)

        # --- Country / postal code / state -------------------------------
        country = detect_country(text)
        postal_pat, postal_norm = _POSTAL_CONFIG.get(country or "US", _POSTAL_CONFIG["EU"])
        postal = postal_pat.search(text)
        if postal and postal.group(1) != components.get("street_number"):
            components["postal_code"] = postal_norm(postal.group(1))
        if country == "US":
            components["state"] = _extract_state(text)
        components["country"] = country

        if len(segments) > 1:
            city = segments[1]
            if "postal_code" in components or "state" in components:
                city = re.sub(r"\s*\b\d{5}(?:-\d{4})?\b", "", city).strip()
            components["city"] = city or None
        elif len(lines) > 1:
            components["city"] = lines[1].split(",")[0].strip() or None

        # --- Address type -----------------------------------------------
        if address_type == "unknown":
            address_type = "commercial" if _COMMERCIAL_RE.search(text) else "residential"

        has_street = bool(components.get("street_number") and components.get("street_name"))
        is_complete = (has_street or "po_box" in components) and bool(
            components.get("city") or components.get("postal_code")
        )

        if confidence == ConfidenceLevel.LOW:
            errors.append(INVALID_ADDRESS)
            logger.debug("address_validator: no street signal (length=%d)", len(text))

        is_valid = not errors
        return AddressValidationResult(
            is_valid=is_valid,
            normalized=", ".join(" ".join(line.split()) for line in lines).lower() if is_valid else None,
            errors=errors,
            classification={"line_count": len(lines)},
            confidence=confidence,
            address_type=address_type,
            components=components,
            is_complete=is_complete,
        )
