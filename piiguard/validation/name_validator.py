"""Person-name validator.

Decides how likely a string is a personal name.  Rules applied in order
----------------------------------------------------------------------
1. Strip leading / trailing whitespace; empty input is rejected.
2. Disqualifiers: placeholder values (``test``, ``admin``, ``n/a`` ...),
   digits, special characters, e-mail or URL shapes, and known
   country / city tokens.  A disqualified string is never a likely name.
3. Non-Latin script (Chinese, Arabic, Devanagari, ...) is accepted as a
   person name with Medium confidence; title-case rules do not apply.
4. Leading honorifics are removed before the word analysis.
5. A trailing organisation suffix (``Inc``, ``Ltd``, ``GmbH`` ...)
   classifies the string as an organisation.
6. Two or more title-case words: person, High.  One title-case word:
   person, Medium (rejected as invalid unless ``allow_single_name``).
   Letters only but not title-cased: person, Low.

Safety rule: raw values are never logged.
"""
from __future__ import annotations

import logging
import re

from piiguard.core.constants import ConfidenceLevel
from piiguard.validation.base import (
    FIELD_TOO_LONG,
    INVALID_NAME,
    REQUIRED_FIELD,
    NameValidationResult,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Non-Latin script detection
# ---------------------------------------------------------------------------

# Latin Extended blocks (ü, é, ñ ...) are not listed; they are Latin text.
_NON_LATIN_RANGES: tuple[tuple[int, int], ...] = (
    (0x0600, 0x06FF),  # Arabic
    (0x0900, 0x097F),  # Devanagari
    (0x0E00, 0x0E7F),  # Thai
    (0x3040, 0x30FF),  # Japanese Hiragana + Katakana
    (0x4E00, 0x9FFF),  # CJK Unified Ideographs
    (0xAC00, 0xD7AF),  # Korean Hangul syllables
)


def has_non_latin_chars(text: str) -> bool:
    """Return True if *text* contains any character from a non-Latin script."""
    for char in text:
        cp = ord(char)
        for start, end in _NON_LATIN_RANGES:
            if start <= cp <= end:
                return True
    return False


# ---------------------------------------------------------------------------
# Word tables
# ---------------------------------------------------------------------------

# Stripped only from the leading position; longest alternatives first.
_HONORIFIC_RE = re.compile(
    r"^(?:"
    r"professor|miss|mrs|mr|ms|prof|rev|dr|sir|dame|lord|lady|"
    r"shri|kumari|smt|sri|"
    r"herr|frau|"
    r"mme|mlle|m\.|"
    r"srta|sra"
    r")\.?\s+",
    re.IGNORECASE,
)

_NAME_SUFFIXES: frozenset[str] = frozenset({
    "jr", "sr", "ii", "iii", "iv", "phd", "md", "esq", "cpa",
})

_NON_NAMES: frozenset[str] = frozenset({
    "test", "admin", "user", "guest", "anonymous", "unknown", "null",
    "undefined", "none", "na", "n/a", "tbd", "temp", "temporary",
    "example", "sample",
})

_ORG_SUFFIXES: frozenset[str] = frozenset({
    "inc", "llc", "ltd", "llp", "plc", "corp", "corporation", "company",
    "co", "gmbh", "ag", "sa", "bv", "group", "holdings", "foundation",
    "university", "bank", "association", "institute", "partners",
})

# A string equal to one of these is a location, not a name.
_GEO_TOKENS: frozenset[str] = frozenset({
    "india", "united states", "united kingdom", "uk", "us", "usa",
    "canada", "australia", "germany", "france", "china", "japan",
    "brazil", "mexico", "italy", "spain", "russia", "netherlands",
    "mumbai", "delhi", "bangalore", "london", "paris", "berlin", "rome",
    "madrid", "beijing", "shanghai", "tokyo", "dubai", "singapore",
    "new york", "california", "texas",
})

_HAS_DIGIT_RE = re.compile(r"\d")
_SPECIAL_CHARS_RE = re.compile(r"[!@#$%^&*()_+=\[\]{}|\\:\";?/<>]")
_EMAIL_LIKE_RE = re.compile(r"@.*\.")
_URL_LIKE_RE = re.compile(r"https?://|www\.", re.IGNORECASE)

_NAME_CHARS = frozenset("-'.")


def _is_name_word(word: str) -> bool:
    return bool(word) and word[0].isalpha() and all(c.isalpha() or c in _NAME_CHARS for c in word)


def _is_title_word(word: str) -> bool:
    return _is_name_word(word) and word[0].isupper()


def normalize_name_capitalization(name: str) -> str:
    """Return *name* in title case; hyphen and apostrophe parts capitalised."""
    return " ".join(name.split()).title()


class NameValidator:
    """Structural validator for person names.

    Parameters
    ----------
    allow_single_name:
        Accept a single word as a valid name.
    allow_non_latin:
        Accept names written in a non-Latin script.
    min_length / max_length:
        Character bounds on the stripped candidate.
    """

    def __init__(
        self,
        *,
        allow_single_name: bool = False,
        allow_non_latin: bool = True,
        min_length: int = 2,
        max_length: int = 100,
    ) -> None:
        self._allow_single_name = allow_single_name
        self._allow_non_latin = allow_non_latin
        self._min_length = min_length
        self._max_length = max_length

    def _disqualified(self, text: str) -> bool:
        lower = text.lower()
        return (
            lower in _NON_NAMES
            or lower in _GEO_TOKENS
            or bool(_HAS_DIGIT_RE.search(text))
            or bool(_SPECIAL_CHARS_RE.search(text))
            or bool(_EMAIL_LIKE_RE.search(text))
            or bool(_URL_LIKE_RE.search(text))
        )

    def validate(self, candidate: str) -> NameValidationResult:
        if not candidate or not candidate.strip():
            return NameValidationResult(is_valid=False, errors=[REQUIRED_FIELD])

        text = candidate.strip()
        errors: list[str] = []
        if len(text) < self._min_length:
            errors.append(INVALID_NAME)
        if len(text) > self._max_length:
            errors.append(FIELD_TOO_LONG)

        if self._disqualified(text):
            logger.debug("name_validator: disqualified candidate (length=%d)", len(text))
            return NameValidationResult(is_valid=False, errors=errors + [INVALID_NAME])

        # 1. Non-Latin names: no title-case analysis
        if has_non_latin_chars(text):
            if not self._allow_non_latin:
                errors.append(INVALID_NAME)
            return NameValidationResult(
                is_valid=not errors,
                normalized=" ".join(text.split()) if not errors else None,
                errors=errors,
                confidence=ConfidenceLevel.MEDIUM,
                is_likely_name=True,
                name_type="person",
            )

        # 2. Strip leading honorific, then any trailing suffix
        core = _HONORIFIC_RE.sub("", text).strip()
        words = core.replace(",", " ").split()
        if not words:
            return NameValidationResult(is_valid=False, errors=errors + [INVALID_NAME])

        # 3. Organisation suffix
        if words[-1].lower().rstrip(".") in _ORG_SUFFIXES and len(words) > 1:
            return NameValidationResult(
                is_valid=False,
                errors=errors + [INVALID_NAME],
                confidence=ConfidenceLevel.MEDIUM,
                is_likely_name=True,
                name_type="organization",
                classification={"word_count": len(words)},
            )

        if len(words) > 1 and words[-1].lower().rstrip(".") in _NAME_SUFFIXES:
            words = words[:-1]

        # 4. Word-shape analysis
        first_name: str | None = None
        last_name: str | None = None
        if len(words) >= 2 and all(_is_title_word(w) for w in words):
            confidence = ConfidenceLevel.HIGH
            first_name, last_name = words[0], words[-1]
        elif len(words) == 1 and _is_title_word(words[0]):
            confidence = ConfidenceLevel.MEDIUM
            first_name = words[0]
            if not self._allow_single_name:
                errors.append(INVALID_NAME)
        elif all(_is_name_word(w) for w in words):
            confidence = ConfidenceLevel.LOW
            first_name = words[0]
            last_name = words[-1] if len(words) > 1 else None
        else:
            return NameValidationResult(is_valid=False, errors=errors + [INVALID_NAME])

        is_valid = not errors
        return NameValidationResult(
            is_valid=is_valid,
            normalized=normalize_name_capitalization(text) if is_valid else None,
            errors=errors,
            classification={"word_count": len(words)},
            confidence=confidence,
            is_likely_name=True,
            name_type="person",
            first_name=first_name,
            last_name=last_name,
        )
