"""PolicyRule and PolicyDecision dataclasses, plus rule validation.

A PolicyRule states how one PII type may be handled: its risk level, the
operations allowed on it, whether it may be logged, and whether masking
or encryption is required.  ``validate_rule`` checks a candidate rule and
returns a normalised copy (strings coerced to enums), raising
``PolicyConfigurationError`` that names the offending field.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from piiguard.core.constants import PIIType, PolicyOperation, RiskLevel
from piiguard.core.errors import PolicyConfigurationError


@dataclass(frozen=True)
class PolicyRule:
    """Compliance rule for a single PII type."""

    type: PIIType
    risk_level: RiskLevel
    allow_logging: bool
    require_masking: bool
    require_encryption: bool
    allowed_operations: frozenset[PolicyOperation]
    retention_days: int | None = None


@dataclass(frozen=True)
class PolicyDecision:
    """Allow/deny outcome for a (type, operation) pair.  Never persisted."""

    allowed: bool
    requires_masking: bool
    requires_encryption: bool
    reason: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class PolicyPreset:
    """Named engine configuration: a strict/permissive flag plus rule overrides.

    Presets are selected when an engine is created; the engine does not
    keep a reference to the preset afterwards.
    """

    preset_id: str
    name: str
    regulatory_framework: str
    strict_mode: bool
    rules: list[PolicyRule] = field(default_factory=list)
    include_defaults: bool = True


def _coerce(enum_cls, value: object, field_name: str):
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        raise PolicyConfigurationError(
            f"Invalid {field_name}: {value!r}",
            field=field_name,
        ) from None


def _coerce_operations(value: object) -> frozenset[PolicyOperation]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise PolicyConfigurationError(
            "allowed_operations must be a collection of operations",
            field="allowed_operations",
        )
    operations = frozenset(_coerce(PolicyOperation, op, "allowed_operations") for op in value)
    if not operations:
        raise PolicyConfigurationError(
            "allowed_operations must not be empty",
            field="allowed_operations",
        )
    return operations


def validate_rule(rule: PolicyRule) -> PolicyRule:
    """Return *rule* with every field checked and coerced.

    Raises
    ------
    PolicyConfigurationError
        ``field`` names the first offending attribute.
    """
    if rule.type is None:
        raise PolicyConfigurationError("Rule type is required", field="type")
    pii_type = _coerce(PIIType, rule.type, "type")
    risk_level = _coerce(RiskLevel, rule.risk_level, "risk_level")
    operations = _coerce_operations(rule.allowed_operations)

    retention = rule.retention_days
    if retention is not None:
        if isinstance(retention, bool) or not isinstance(retention, int):
            raise PolicyConfigurationError(
                "retention_days must be an integer",
                field="retention_days",
            )
        if retention < 0:
            raise PolicyConfigurationError(
                "retention_days must be non-negative",
                field="retention_days",
            )

    for flag in ("allow_logging", "require_masking", "require_encryption"):
        if not isinstance(getattr(rule, flag), bool):
            raise PolicyConfigurationError(f"{flag} must be a boolean", field=flag)

    return PolicyRule(
        type=pii_type,
        risk_level=risk_level,
        allow_logging=rule.allow_logging,
        require_masking=rule.require_masking,
        require_encryption=rule.require_encryption,
        allowed_operations=operations,
        retention_days=retention,
    )


_RULE_FIELDS: tuple[str, ...] = (
    "type",
    "risk_level",
    "allow_logging",
    "require_masking",
    "require_encryption",
    "allowed_operations",
)


def rule_from_mapping(data: Mapping[str, Any]) -> PolicyRule:
    """Build a validated PolicyRule from a plain mapping (e.g. parsed YAML).

    Raises
    ------
    PolicyConfigurationError
        A required key is missing or a value is invalid.
    """
    if not isinstance(data, Mapping):
        raise PolicyConfigurationError(
            f"Rule must be a mapping, got {type(data).__name__}",
            field="rule",
        )
    for name in _RULE_FIELDS:
        if name not in data:
            raise PolicyConfigurationError(f"Missing required rule field: {name}", field=name)

    return validate_rule(PolicyRule(
        type=data["type"],
        risk_level=data["risk_level"],
        allow_logging=data["allow_logging"],
        require_masking=data["require_masking"],
        require_encryption=data["require_encryption"],
        allowed_operations=data["allowed_operations"],
        retention_days=data.get("retention_days"),
    ))
