"""Default entity extractor backed by a local spaCy model via Presidio.

Uses Presidio's ``NlpEngineProvider`` to load the spaCy pipeline and reads
named entities from the resulting NLP artifacts.

Air-gap rule
------------
Only models already installed as Python packages are used.  The model is
resolved up front (``PIIGUARD_SPACY_MODEL`` or the best installed of
trf > lg > md > sm) so that Presidio never falls back to downloading one.
Pre-stage a model with ``python -m spacy download en_core_web_lg`` (or an
offline wheel).

Never log raw text values; only entity counts appear in log output.
"""
from __future__ import annotations

import logging

import spacy.util
from presidio_analyzer.nlp_engine import NlpEngineProvider

from piiguard.core.errors import NLP_UNAVAILABLE, CollaboratorFailure
from piiguard.core.settings import get_settings

logger = logging.getLogger(__name__)

_MODEL_PREFERENCE = ("en_core_web_trf", "en_core_web_lg", "en_core_web_md", "en_core_web_sm")

# Both native spaCy labels and their Presidio equivalents are accepted, so
# the extractor works whether or not the engine remaps entity labels.
_PERSON_LABELS = frozenset({"PERSON", "PER"})
_PLACE_LABELS = frozenset({"LOCATION", "GPE", "LOC", "FAC"})
_ORGANIZATION_LABELS = frozenset({"ORGANIZATION", "ORG", "NORP"})


def resolve_spacy_model(preferred: str | None = None) -> str:
    """Return an installed spaCy model name.

    Raises
    ------
    CollaboratorFailure
        *preferred* is not installed, or no English model is installed.
    """
    if preferred:
        if spacy.util.is_package(preferred):
            return preferred
        raise CollaboratorFailure(
            f"spaCy model {preferred!r} is not installed",
            collaborator="entity_extractor",
            code=NLP_UNAVAILABLE,
        )
    for name in _MODEL_PREFERENCE:
        if spacy.util.is_package(name):
            return name
    raise CollaboratorFailure(
        "No spaCy English model is installed",
        collaborator="entity_extractor",
        code=NLP_UNAVAILABLE,
    )


class SpacyEntityExtractor:
    """Entity extractor over a local spaCy model.

    One instance should be created per process (model loading is expensive).
    Nothing about a processed text is kept once a call returns.
    """

    def __init__(self, model_name: str | None = None) -> None:
        self.model_name = resolve_spacy_model(model_name or get_settings().spacy_model)

        nlp_configuration = {
            "nlp_engine_name": "spacy",
            "models": [{"lang_code": "en", "model_name": self.model_name}],
            "ner_model_configuration": {
                "labels_to_ignore": [],
                "model_to_presidio_entity_mapping": {
                    "PERSON": "PERSON",
                    "PER": "PERSON",
                    "GPE": "LOCATION",
                    "LOC": "LOCATION",
                    "FAC": "LOCATION",
                    "ORG": "ORGANIZATION",
                    "NORP": "ORGANIZATION",
                },
            },
        }
        provider = NlpEngineProvider(nlp_configuration=nlp_configuration)
        self._engine = provider.create_engine()
        logger.info("Entity extractor ready: model=%s", self.model_name)

    def _entities(self, text: str) -> list[tuple[str, str]]:
        artifacts = self._engine.process_text(text, "en")
        entities = [(ent.label_, ent.text) for ent in artifacts.entities]
        logger.debug("spaCy entities extracted: count=%d", len(entities))
        return entities

    def _by_labels(self, text: str, labels: frozenset[str]) -> list[str]:
        return [value for label, value in self._entities(text) if label in labels]

    def extract_persons(self, text: str) -> list[str]:
        return self._by_labels(text, _PERSON_LABELS)

    def extract_places(self, text: str) -> list[str]:
        return self._by_labels(text, _PLACE_LABELS)

    def extract_organizations(self, text: str) -> list[str]:
        return self._by_labels(text, _ORGANIZATION_LABELS)

    def extract_entities(self, text: str) -> dict[str, list[str]]:
        """Return persons, places and organizations from a single model pass."""
        entities = self._entities(text)
        return {
            "persons": [value for label, value in entities if label in _PERSON_LABELS],
            "places": [value for label, value in entities if label in _PLACE_LABELS],
            "organizations": [value for label, value in entities if label in _ORGANIZATION_LABELS],
        }
