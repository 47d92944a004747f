import pytest

from piiguard.core.settings import get_settings
from piiguard.pii import nlp_adapter
from piiguard.pii.nlp_adapter import NLPAdapter
from piiguard.pii.pipeline import DetectionPipeline


class FakeEntityExtractor:
    """In-memory entity extractor returning canned mentions."""

    def __init__(
        self,
        persons: list[str] | None = None,
        places: list[str] | None = None,
        organizations: list[str] | None = None,
    ) -> None:
        self.persons = persons or []
        self.places = places or []
        self.organizations = organizations or []
        self.calls: list[str] = []

    def extract_persons(self, text: str) -> list[str]:
        self.calls.append("persons")
        return list(self.persons)

    def extract_places(self, text: str) -> list[str]:
        self.calls.append("places")
        return list(self.places)

    def extract_organizations(self, text: str) -> list[str]:
        self.calls.append("organizations")
        return list(self.organizations)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    for name in (
        "PIIGUARD_MAX_TEXT_LENGTH",
        "PIIGUARD_CONFIDENCE_THRESHOLD",
        "PIIGUARD_ENABLE_NLP",
        "PIIGUARD_CONTEXT_WINDOW",
        "PIIGUARD_POLICY_PRESET",
        "PIIGUARD_POLICY_PRESET_DIR",
        "PIIGUARD_PHONE_DEFAULT_REGION",
        "PIIGUARD_SPACY_MODEL",
        "PIIGUARD_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    # The real spaCy model is never loaded in tests
    monkeypatch.setattr(nlp_adapter, "get_default_extractor", lambda: FakeEntityExtractor())
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_extractor():
    return FakeEntityExtractor


@pytest.fixture
def fake_extractor() -> FakeEntityExtractor:
    return FakeEntityExtractor()


@pytest.fixture
def pipeline(fake_extractor: FakeEntityExtractor) -> DetectionPipeline:
    return DetectionPipeline(nlp_adapter=NLPAdapter(fake_extractor))
