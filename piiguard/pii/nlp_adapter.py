"""NLP collaborator adapter.

Turns the unlocated person / place / organisation mentions returned by an
entity extractor into located DetectionSpans:

* person mentions are kept when NameValidator says they are a likely
  person name; places are kept when AddressValidator gives them more than
  low confidence;
* every case-insensitive whole-word occurrence of an accepted mention in
  the source text becomes one span tagged ``source="nlp"``;
* organisation mentions only produce an advisory suggestion.

The model runs once per call: extractors that define ``extract_entities``
are asked for every mention kind in one pass.

The extractor is an environmental dependency.  If it is missing, raises,
or returns ``None``, the adapter returns no spans and a "manual review"
suggestion instead of failing the detection call.

Safety rule: mentions are never logged, only counts.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Protocol

from piiguard.core.constants import (
    DEFAULT_CONTEXT_WINDOW,
    SUGGEST_NLP_FAILED,
    SUGGEST_ORGANIZATIONS,
    SUGGEST_VALIDATOR_FAILED,
    ConfidenceLevel,
    PIIType,
)
from piiguard.core.errors import NLP_UNAVAILABLE, VALIDATOR_FAILED, CollaboratorFailure
from piiguard.pii.extractor import DetectionSpan, extract_context
from piiguard.validation.address_validator import AddressValidator
from piiguard.validation.name_validator import NameValidator

logger = logging.getLogger(__name__)


class EntityExtractor(Protocol):
    def extract_persons(self, text: str) -> list[str]:
        ...

    def extract_places(self, text: str) -> list[str]:
        ...

    def extract_organizations(self, text: str) -> list[str]:
        ...


class GroupedEntityExtractor(EntityExtractor, Protocol):
    """Extractor that can return every mention kind from one model pass.

    ``extract_entities`` returns a mapping with ``persons``, ``places`` and
    ``organizations`` keys; the adapter prefers it over the per-kind calls.
    """

    def extract_entities(self, text: str) -> dict[str, list[str]]:
        ...


@lru_cache(maxsize=1)
def get_default_extractor() -> EntityExtractor:
    """Return the process-wide spaCy-backed extractor, built on first use.

    Raises
    ------
    CollaboratorFailure
        spaCy / Presidio are not importable or no model is installed.
    """
    try:
        from piiguard.pii.spacy_extractor import SpacyEntityExtractor
    except ImportError as exc:
        raise CollaboratorFailure(
            "NLP dependencies are not installed",
            collaborator="entity_extractor",
            code=NLP_UNAVAILABLE,
        ) from exc
    return SpacyEntityExtractor()


@dataclass
class NLPReport:
    spans: list[DetectionSpan] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


def _unique_mentions(mentions: list[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for mention in mentions:
        cleaned = mention.strip()
        key = cleaned.casefold()
        if cleaned and key not in seen:
            seen.add(key)
            unique.append(cleaned)
    return unique


class NLPAdapter:
    """Adapts an EntityExtractor to the detection span model.

    Parameters
    ----------
    extractor:
        The entity extractor to call.  ``None`` resolves the default
        spaCy extractor lazily on first use.
    extractor_factory:
        Zero-argument callable used to build the extractor when
        *extractor* is ``None``; defaults to ``get_default_extractor``.
    """

    def __init__(
        self,
        extractor: EntityExtractor | None = None,
        *,
        extractor_factory: Callable[[], EntityExtractor] | None = None,
        name_validator: NameValidator | None = None,
        address_validator: AddressValidator | None = None,
    ) -> None:
        self._extractor = extractor
        self._extractor_factory = extractor_factory
        self._name_validator = name_validator or NameValidator(allow_single_name=True)
        self._address_validator = address_validator or AddressValidator()

    def _build_extractor(self) -> EntityExtractor:
        if self._extractor_factory is not None:
            return self._extractor_factory()
        return get_default_extractor()

    def _call(self, extractor: EntityExtractor, method: str, text: str) -> Any:
        try:
            mentions = getattr(extractor, method)(text)
        except CollaboratorFailure:
            raise
        except Exception as exc:
            raise CollaboratorFailure(
                f"Entity extractor {method} raised {type(exc).__name__}",
                collaborator="entity_extractor",
                code=NLP_UNAVAILABLE,
            ) from exc
        if mentions is None:
            raise CollaboratorFailure(
                f"Entity extractor {method} returned no result",
                collaborator="entity_extractor",
                code=NLP_UNAVAILABLE,
            )
        return mentions

    def _mentions(self, text: str) -> tuple[list[str], list[str], list[str]]:
        """Return (persons, places, organizations) from a single extractor pass."""
        if self._extractor is not None:
            extractor = self._extractor
        else:
            try:
                extractor = self._build_extractor()
            except CollaboratorFailure:
                raise
            except Exception as exc:
                raise CollaboratorFailure(
                    f"Entity extractor construction raised {type(exc).__name__}",
                    collaborator="entity_extractor",
                    code=NLP_UNAVAILABLE,
                ) from exc

        # Looked up on the class: only extractors that define the grouped
        # call use it, everything else gets the three per-kind calls.
        if callable(getattr(type(extractor), "extract_entities", None)):
            grouped = self._call(extractor, "extract_entities", text)
            if not isinstance(grouped, Mapping):
                raise CollaboratorFailure(
                    "Entity extractor extract_entities returned a non-mapping result",
                    collaborator="entity_extractor",
                    code=NLP_UNAVAILABLE,
                )
            return (
                list(grouped.get("persons", [])),
                list(grouped.get("places", [])),
                list(grouped.get("organizations", [])),
            )
        return (
            list(self._call(extractor, "extract_persons", text)),
            list(self._call(extractor, "extract_places", text)),
            list(self._call(extractor, "extract_organizations", text)),
        )

    def _locate(
        self,
        text: str,
        mention: str,
        pii_type: PIIType,
        confidence: ConfidenceLevel,
        metadata: dict[str, Any],
        include_context: bool,
        context_window: int,
    ) -> list[DetectionSpan]:
        spans: list[DetectionSpan] = []
        pattern = re.compile(r"\b" + re.escape(mention) + r"\b", re.IGNORECASE)
        for match in pattern.finditer(text):
            span_metadata = {"source": "nlp", **metadata}
            if include_context:
                span_metadata["context"] = extract_context(
                    text, match.start(), match.end(), context_window
                )
            spans.append(DetectionSpan(
                type=pii_type,
                start=match.start(),
                end=match.end(),
                text=match.group(0),
                confidence=confidence,
                metadata=span_metadata,
            ))
        return spans

    def _validate(self, validator: NameValidator | AddressValidator, pii_type: PIIType, mention: str):
        try:
            return validator.validate(mention)
        except Exception as exc:
            raise CollaboratorFailure(
                f"{pii_type.value} validator raised {type(exc).__name__}",
                collaborator=f"{pii_type.value}_validator",
                code=VALIDATOR_FAILED,
            ) from exc

    def analyze(
        self,
        text: str,
        *,
        include_context: bool = False,
        context_window: int = DEFAULT_CONTEXT_WINDOW,
    ) -> NLPReport:
        """Return NLP-derived spans and any advisory suggestions for *text*."""
        report = NLPReport()

        try:
            persons, places, organizations = self._mentions(text)
        except CollaboratorFailure as exc:
            logger.warning(
                "NLP collaborator unavailable: collaborator=%s code=%s",
                exc.collaborator,
                exc.code,
            )
            report.suggestions.append(SUGGEST_NLP_FAILED)
            return report

        for mention in _unique_mentions(persons):
            try:
                result = self._validate(self._name_validator, PIIType.NAME, mention)
            except CollaboratorFailure as exc:
                logger.warning("Validator failure: pii_type=name collaborator=%s", exc.collaborator)
                report.suggestions.append(SUGGEST_VALIDATOR_FAILED.format(pii_type=PIIType.NAME.value))
                continue
            if not (result.is_likely_name and result.name_type == "person"):
                continue
            report.spans.extend(self._locate(
                text,
                mention,
                PIIType.NAME,
                result.confidence,
                {
                    "name_type": result.name_type,
                    "first_name": result.first_name,
                    "last_name": result.last_name,
                },
                include_context,
                context_window,
            ))

        for mention in _unique_mentions(places):
            try:
                result = self._validate(self._address_validator, PIIType.ADDRESS, mention)
            except CollaboratorFailure as exc:
                logger.warning("Validator failure: pii_type=address collaborator=%s", exc.collaborator)
                report.suggestions.append(SUGGEST_VALIDATOR_FAILED.format(pii_type=PIIType.ADDRESS.value))
                continue
            if result.confidence == ConfidenceLevel.LOW:
                continue
            report.spans.extend(self._locate(
                text,
                mention,
                PIIType.ADDRESS,
                result.confidence,
                {
                    "address_type": result.address_type,
                    "components": dict(result.components),
                },
                include_context,
                context_window,
            ))

        if organizations:
            report.suggestions.append(SUGGEST_ORGANIZATIONS)

        logger.debug(
            "NLP analysis complete: persons=%d places=%d organizations=%d spans=%d",
            len(persons),
            len(places),
            len(organizations),
            len(report.spans),
        )
        return report
