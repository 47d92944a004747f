"""Pattern registry and the built-in PII pattern catalogue.

Each PIIPattern pairs a PII type with a matcher and an ordered chain of
false-positive filters.  The span extractor walks the registry in
registration order and keeps a match only when every filter accepts it.

Matchers
--------
A matcher is anything with ``find_all(text) -> Iterator[(start, end)]``
yielding non-overlapping, half-open character offsets.  Plain regex
strings and compiled ``re.Pattern`` objects are wrapped in RegexMatcher
automatically.  Regexes compile lazily, so an invalid expression fails
at match time with ``DetectionError(code=PATTERN_INVALID)``, not at
registration.

Registration order of the built-in catalogue
--------------------------------------------
Email, Phone (domestic), Phone (international), SSN, CreditCard,
IPAddress, ZipCode, IBAN, DateOfBirth.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterator, Protocol

from piiguard.core.constants import ConfidenceLevel, PIIType, RiskLevel
from piiguard.core.errors import PATTERN_INVALID, DetectionError

FalsePositiveFilter = Callable[[str], bool]


# ---------------------------------------------------------------------------
# Matcher abstraction
# ---------------------------------------------------------------------------

class Matcher(Protocol):
    def find_all(self, text: str) -> Iterator[tuple[int, int]]:
        ...


class RegexMatcher:
    """Matcher backed by a regular expression, compiled on first use."""

    def __init__(self, pattern: str | re.Pattern[str]) -> None:
        self._source = pattern
        self._compiled: re.Pattern[str] | None = pattern if isinstance(pattern, re.Pattern) else None

    @property
    def source(self) -> str:
        return self._source.pattern if isinstance(self._source, re.Pattern) else self._source

    def _compile(self) -> re.Pattern[str]:
        if self._compiled is None:
            try:
                self._compiled = re.compile(self._source)
            except re.error as exc:
                raise DetectionError(
                    f"Pattern failed to compile: {exc.msg}",
                    code=PATTERN_INVALID,
                ) from exc
        return self._compiled

    def find_all(self, text: str) -> Iterator[tuple[int, int]]:
        for match in self._compile().finditer(text):
            # Zero-width matches carry no text and are never PII
            if match.end() > match.start():
                yield match.start(), match.end()


# ---------------------------------------------------------------------------
# Pattern definition
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PIIPattern:
    """A single PII pattern.

    Attributes
    ----------
    type:                    PII category emitted for every accepted match.
    matcher:                 Regex string, compiled regex, or Matcher.
    description:             Human-readable label copied to span metadata.
    risk_level:              Severity copied to span metadata.
    false_positive_filters:  Predicates over the matched text; all must
                             return True for the match to be kept.
    confidence:              Fixed confidence for types that have no
                             structural validator.  ``None`` uses the
                             type's default rule.
    """
    type: PIIType
    matcher: str | re.Pattern[str] | Matcher | None
    description: str = ""
    risk_level: RiskLevel = RiskLevel.MODERATE
    false_positive_filters: tuple[FalsePositiveFilter, ...] = ()
    confidence: ConfidenceLevel | None = None
    _resolved: Matcher | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", PIIType(self.type))
        object.__setattr__(self, "risk_level", RiskLevel(self.risk_level))
        object.__setattr__(self, "false_positive_filters", tuple(self.false_positive_filters))
        if isinstance(self.matcher, (str, re.Pattern)):
            object.__setattr__(self, "_resolved", RegexMatcher(self.matcher))
        elif self.matcher is not None:
            object.__setattr__(self, "_resolved", self.matcher)

    def find_all(self, text: str) -> Iterator[tuple[int, int]]:
        """Yield ``(start, end)`` offsets of every raw match in *text*."""
        if self._resolved is None:
            raise DetectionError(
                f"Pattern for type {self.type.value!r} has no matcher",
                code=PATTERN_INVALID,
            )
        return self._resolved.find_all(text)

    def accepts(self, matched_text: str) -> bool:
        """Return True when every false-positive filter accepts *matched_text*."""
        return all(check(matched_text) for check in self.false_positive_filters)


# ---------------------------------------------------------------------------
# Luhn (Mod-10) check: post-filter for credit card matches
# ---------------------------------------------------------------------------

def luhn_check(number_str: str) -> bool:
    """Return True if *number_str* passes the Luhn (Mod-10) algorithm.

    Non-digit characters are stripped before checking so that card numbers
    with spaces or dashes are handled transparently.
    """
    digits = [int(c) for c in number_str if c.isdigit()]
    if not digits:
        return False
    total = 0
    for i, digit in enumerate(reversed(digits)):
        if i % 2 == 1:          # double every second digit from the right
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def _digits(text: str) -> str:
    return "".join(c for c in text if c.isdigit())


# ---------------------------------------------------------------------------
# False-positive filters
# ---------------------------------------------------------------------------

def _no_consecutive_dots(match: str) -> bool:
    return ".." not in match


def _no_edge_dots(match: str) -> bool:
    return not match.startswith(".") and not match.endswith(".")


def _single_at_sign(match: str) -> bool:
    return match.count("@") == 1


_FAKE_AREA_PREFIXES = ("000", "111", "222", "333", "444", "666", "777", "888", "999")


def _plausible_area_code(match: str) -> bool:
    return not _digits(match).startswith(_FAKE_AREA_PREFIXES)


def _domestic_digit_count(match: str) -> bool:
    return 10 <= len(_digits(match)) <= 11


def _international_digit_count(match: str) -> bool:
    # ITU-T E.164
    return 7 <= len(_digits(match)) <= 15


_FAKE_SSNS = frozenset({"123456789", "987654321"})


def _not_fake_ssn(match: str) -> bool:
    return _digits(match) not in _FAKE_SSNS


_FAKE_CARDS = frozenset({"1111111111111111", "0000000000000000"})


def _not_fake_card(match: str) -> bool:
    return _digits(match) not in _FAKE_CARDS


def _octets_in_range(match: str) -> bool:
    return all(int(part) <= 255 for part in match.split("."))


def _plausible_zip(match: str) -> bool:
    return match.split("-")[0] not in ("00000", "99999")


# ---------------------------------------------------------------------------
# Built-in pattern catalogue
# ---------------------------------------------------------------------------

# A match may only start where a local-part run starts, which keeps the scan
# linear on long runs with no "@".
EMAIL_REGEX = (
    r"(?<![A-Za-z0-9.!#$%&'*+/=?^_`{|}~-])"
    r"[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*\b"
)
PHONE_DOMESTIC_REGEX = (
    r"(?<!\w)(?:\+?1[-.\s]?)?\(?([2-9][0-8][0-9])\)?[-.\s]?([0-9]{3})[-.\s]?([0-9]{4})\b"
)
PHONE_INTERNATIONAL_REGEX = r"\+(?:[0-9] ?){6,14}[0-9]"
SSN_REGEX = r"\b(?!000|666|9\d\d)\d{3}-?(?!00)\d{2}-?(?!0000)\d{4}\b"
CREDIT_CARD_REGEX = (
    r"\b(?:4[0-9]{12}(?:[0-9]{3})?|5[1-5][0-9]{14}|3[47][0-9]{13}|3[0-9]{13}"
    r"|6(?:011|5[0-9]{2})[0-9]{12})\b"
)
IPV4_REGEX = (
    r"\b(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\b"
)
ZIP_CODE_REGEX = r"\b\d{5}(?:-\d{4})?\b"
IBAN_REGEX = r"\b[A-Z]{2}\d{2}[A-Z0-9]{4}\d{7}(?:[A-Z0-9]?){0,16}\b"
DATE_OF_BIRTH_REGEX = (
    r"\b(?:0[1-9]|1[0-2])[-/](?:0[1-9]|[12]\d|3[01])[-/](?:19|20)\d{2}\b"
)


def builtin_patterns() -> list[PIIPattern]:
    """Return a fresh list of the built-in patterns in registration order."""
    return [
        PIIPattern(
            type=PIIType.EMAIL,
            matcher=EMAIL_REGEX,
            description="Email addresses (RFC 5322 compliant)",
            risk_level=RiskLevel.HIGH,
            false_positive_filters=(_no_consecutive_dots, _no_edge_dots, _single_at_sign),
        ),
        PIIPattern(
            type=PIIType.PHONE,
            matcher=PHONE_DOMESTIC_REGEX,
            description="US phone numbers",
            risk_level=RiskLevel.HIGH,
            false_positive_filters=(_plausible_area_code, _domestic_digit_count),
        ),
        PIIPattern(
            type=PIIType.PHONE,
            matcher=PHONE_INTERNATIONAL_REGEX,
            description="International phone numbers (E.164)",
            risk_level=RiskLevel.HIGH,
            false_positive_filters=(_international_digit_count,),
        ),
        PIIPattern(
            type=PIIType.SSN,
            matcher=SSN_REGEX,
            description="US Social Security Numbers",
            risk_level=RiskLevel.CRITICAL,
            false_positive_filters=(_not_fake_ssn,),
        ),
        PIIPattern(
            type=PIIType.CREDIT_CARD,
            matcher=CREDIT_CARD_REGEX,
            description="Credit card numbers (Visa, MasterCard, Amex, Diners, Discover)",
            risk_level=RiskLevel.CRITICAL,
            false_positive_filters=(luhn_check, _not_fake_card),
        ),
        PIIPattern(
            type=PIIType.IP_ADDRESS,
            matcher=IPV4_REGEX,
            description="IPv4 addresses",
            risk_level=RiskLevel.MODERATE,
            false_positive_filters=(_octets_in_range,),
        ),
        PIIPattern(
            type=PIIType.ZIP_CODE,
            matcher=ZIP_CODE_REGEX,
            description="US ZIP codes",
            risk_level=RiskLevel.LOW,
            false_positive_filters=(_plausible_zip,),
        ),
        PIIPattern(
            type=PIIType.IBAN,
            matcher=IBAN_REGEX,
            description="International Bank Account Numbers",
            risk_level=RiskLevel.CRITICAL,
        ),
        PIIPattern(
            type=PIIType.DATE_OF_BIRTH,
            matcher=DATE_OF_BIRTH_REGEX,
            description="Dates of birth (MM/DD/YYYY)",
            risk_level=RiskLevel.HIGH,
        ),
    ]


# ---------------------------------------------------------------------------
# PatternRegistry
# ---------------------------------------------------------------------------

class PatternRegistry:
    """Ordered, per-instance collection of PIIPattern objects.

    Not safe to mutate while another thread is scanning with it; build a
    modified ``copy()`` and swap the reference instead.
    """

    def __init__(self, patterns: list[PIIPattern] | None = None) -> None:
        self._patterns: list[PIIPattern] = []
        for pattern in patterns or []:
            self.register(pattern)

    def register(self, pattern: PIIPattern) -> None:
        """Append *pattern*; patterns sharing a type co-exist."""
        if pattern.matcher is None or (isinstance(pattern.matcher, str) and not pattern.matcher):
            raise DetectionError(
                f"Pattern for type {pattern.type.value!r} requires a non-empty matcher",
                code=PATTERN_INVALID,
            )
        self._patterns.append(pattern)

    def unregister(self, pii_type: PIIType | str) -> bool:
        """Remove every pattern of *pii_type*; return True if any was removed."""
        target = PIIType(pii_type)
        before = len(self._patterns)
        self._patterns = [p for p in self._patterns if p.type != target]
        return len(self._patterns) != before

    def list_all(self) -> list[PIIPattern]:
        """Return the registered patterns in registration order."""
        return list(self._patterns)

    def copy(self) -> PatternRegistry:
        return PatternRegistry(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __iter__(self) -> Iterator[PIIPattern]:
        return iter(list(self._patterns))

    @classmethod
    def default(cls) -> PatternRegistry:
        """Return a registry seeded with the built-in catalogue."""
        return cls(builtin_patterns())
