"""Exception hierarchy.

Two failure classes are treated asymmetrically:

* Configuration problems (bad rule, bad preset, unusable text) are programmer
  errors and are raised synchronously to the caller.
* Collaborator problems (NLP extractor or structural validator raising) are
  environmental; ``CollaboratorFailure`` is raised inside the engine, caught
  by the pipeline and turned into an advisory suggestion.

Safety rule: no message built here may contain a PII value; only types,
offsets, counts and lengths.
"""
from __future__ import annotations

from typing import Any

# Machine-readable codes
INVALID_INPUT = "INVALID_INPUT"
TEXT_TOO_LONG = "TEXT_TOO_LONG"
PATTERN_INVALID = "PATTERN_INVALID"
NLP_UNAVAILABLE = "NLP_UNAVAILABLE"
VALIDATOR_FAILED = "VALIDATOR_FAILED"
CONFIG_INVALID = "CONFIG_INVALID"
PRESET_UNKNOWN = "PRESET_UNKNOWN"


class PIIGuardError(Exception):
    """Base class for every error raised by piiguard."""

    def __init__(self, message: str, *, code: str, metadata: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.metadata = metadata or {}


class DetectionError(PIIGuardError, ValueError):
    """Raised when text cannot be scanned (missing, empty, too long) or a matcher breaks."""

    def __init__(
        self,
        message: str,
        *,
        code: str = INVALID_INPUT,
        text_length: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, metadata=metadata)
        self.text_length = text_length


class PolicyConfigurationError(PIIGuardError, ValueError):
    """Raised for a malformed policy rule or preset; ``field`` names the culprit."""

    def __init__(
        self,
        message: str,
        *,
        field: str,
        code: str = CONFIG_INVALID,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, metadata=metadata)
        self.field = field


class CollaboratorFailure(PIIGuardError, RuntimeError):
    """Raised when the NLP extractor or a structural validator fails."""

    def __init__(
        self,
        message: str,
        *,
        collaborator: str,
        code: str = NLP_UNAVAILABLE,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, metadata=metadata)
        self.collaborator = collaborator
