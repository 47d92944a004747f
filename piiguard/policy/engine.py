"""Policy rule store and evaluator.

Decision order for ``evaluate(type, operation)``
-----------------------------------------------
1. No rule for the type: strict mode denies and requires masking and
   encryption; permissive mode allows, tagged as a default decision.
2. Operation not in the rule's allowed operations: deny, carrying the
   rule's masking / encryption flags and its risk level.
3. ``log`` on a type whose rule forbids logging: deny with masking
   required, even when ``log`` is in the allowed operations.
4. Otherwise allow, carrying the rule's flags and retention period.

One rule per type; the last rule added for a type wins.  An engine owns its
rule table; nothing is shared between instances.  Mutation is not safe
concurrently with evaluation.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from piiguard.core.constants import PIIType, PolicyOperation, RiskLevel
from piiguard.core.errors import PolicyConfigurationError
from piiguard.policy.rule import PolicyDecision, PolicyRule, validate_rule

logger = logging.getLogger(__name__)

_ALL_OPERATIONS = frozenset(PolicyOperation)

DEFAULT_RULES: tuple[PolicyRule, ...] = (
    PolicyRule(
        type=PIIType.SSN,
        risk_level=RiskLevel.CRITICAL,
        allow_logging=False,
        require_masking=True,
        require_encryption=True,
        allowed_operations=frozenset({PolicyOperation.STORE, PolicyOperation.PROCESS}),
        retention_days=365,
    ),
    PolicyRule(
        type=PIIType.CREDIT_CARD,
        risk_level=RiskLevel.CRITICAL,
        allow_logging=False,
        require_masking=True,
        require_encryption=True,
        allowed_operations=frozenset({PolicyOperation.PROCESS}),
        retention_days=90,
    ),
    PolicyRule(
        type=PIIType.DATE_OF_BIRTH,
        risk_level=RiskLevel.HIGH,
        allow_logging=False,
        require_masking=True,
        require_encryption=True,
        allowed_operations=frozenset({
            PolicyOperation.STORE, PolicyOperation.PROCESS, PolicyOperation.DISPLAY,
        }),
        retention_days=1095,
    ),
    PolicyRule(
        type=PIIType.ADDRESS,
        risk_level=RiskLevel.HIGH,
        allow_logging=False,
        require_masking=True,
        require_encryption=False,
        allowed_operations=frozenset({
            PolicyOperation.STORE, PolicyOperation.PROCESS,
            PolicyOperation.DISPLAY, PolicyOperation.EXPORT,
        }),
        retention_days=1095,
    ),
    PolicyRule(
        type=PIIType.EMAIL,
        risk_level=RiskLevel.MODERATE,
        allow_logging=False,
        require_masking=True,
        require_encryption=False,
        allowed_operations=frozenset({
            PolicyOperation.STORE, PolicyOperation.PROCESS, PolicyOperation.DISPLAY,
            PolicyOperation.TRANSFER, PolicyOperation.EXPORT,
        }),
        retention_days=2555,
    ),
    PolicyRule(
        type=PIIType.PHONE,
        risk_level=RiskLevel.MODERATE,
        allow_logging=False,
        require_masking=True,
        require_encryption=False,
        allowed_operations=frozenset({
            PolicyOperation.STORE, PolicyOperation.PROCESS, PolicyOperation.DISPLAY,
            PolicyOperation.TRANSFER, PolicyOperation.EXPORT,
        }),
        retention_days=2555,
    ),
    PolicyRule(
        type=PIIType.NAME,
        risk_level=RiskLevel.MODERATE,
        allow_logging=False,
        require_masking=True,
        require_encryption=False,
        allowed_operations=frozenset({
            PolicyOperation.STORE, PolicyOperation.PROCESS, PolicyOperation.DISPLAY,
            PolicyOperation.TRANSFER, PolicyOperation.EXPORT,
        }),
        retention_days=2555,
    ),
    PolicyRule(
        type=PIIType.ZIP_CODE,
        risk_level=RiskLevel.LOW,
        allow_logging=True,
        require_masking=False,
        require_encryption=False,
        allowed_operations=_ALL_OPERATIONS,
        retention_days=3650,
    ),
    PolicyRule(
        type=PIIType.IP_ADDRESS,
        risk_level=RiskLevel.LOW,
        allow_logging=True,
        require_masking=False,
        require_encryption=False,
        allowed_operations=frozenset({
            PolicyOperation.LOG, PolicyOperation.PROCESS, PolicyOperation.DISPLAY,
        }),
        retention_days=365,
    ),
)


def _as_type(value: PIIType | str) -> PIIType:
    try:
        return PIIType(value)
    except ValueError:
        raise PolicyConfigurationError(f"Invalid type: {value!r}", field="type") from None


def _as_operation(value: PolicyOperation | str) -> PolicyOperation:
    try:
        return PolicyOperation(value)
    except ValueError:
        raise PolicyConfigurationError(f"Invalid operation: {value!r}", field="operation") from None


class PolicyEngine:
    """Maps PII types to compliance rules and evaluates operations on them.

    Parameters
    ----------
    rules:
        Rules applied on top of the defaults (or on an empty table when
        *include_defaults* is False).
    strict_mode:
        Deny every operation on types that have no rule.
    include_defaults:
        Seed the table with ``DEFAULT_RULES`` first.
    """

    def __init__(
        self,
        rules: Iterable[PolicyRule] | None = None,
        *,
        strict_mode: bool = False,
        include_defaults: bool = True,
    ) -> None:
        self._rules: dict[PIIType, PolicyRule] = {}
        self._strict_mode = strict_mode
        if include_defaults:
            for rule in DEFAULT_RULES:
                self._rules[rule.type] = rule
        for rule in rules or ():
            self.add_rule(rule)

    # ------------------------------------------------------------------
    # Rule store
    # ------------------------------------------------------------------

    def add_rule(self, rule: PolicyRule) -> None:
        """Validate and store *rule*, replacing any rule for the same type.

        Raises
        ------
        PolicyConfigurationError
            The rule is malformed; the store is left unchanged.
        """
        validated = validate_rule(rule)
        self._rules[validated.type] = validated
        logger.debug("Policy rule set: pii_type=%s risk_level=%s", validated.type.value, validated.risk_level.value)

    def remove_rule(self, pii_type: PIIType | str) -> bool:
        """Remove the rule for *pii_type*; return True if one existed."""
        return self._rules.pop(_as_type(pii_type), None) is not None

    def get_rules(self) -> dict[PIIType, PolicyRule]:
        return dict(self._rules)

    def get_rule_for_type(self, pii_type: PIIType | str) -> PolicyRule | None:
        return self._rules.get(_as_type(pii_type))

    def set_strict_mode(self, strict: bool) -> None:
        self._strict_mode = strict

    def is_strict_mode(self) -> bool:
        return self._strict_mode

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, pii_type: PIIType | str, operation: PolicyOperation | str) -> PolicyDecision:
        """Decide whether *operation* may be performed on *pii_type*.

        Raises
        ------
        PolicyConfigurationError
            *pii_type* or *operation* is not a recognised value.
        """
        pii_type = _as_type(pii_type)
        operation = _as_operation(operation)
        rule = self._rules.get(pii_type)

        if rule is None:
            if self._strict_mode:
                return PolicyDecision(
                    allowed=False,
                    requires_masking=True,
                    requires_encryption=True,
                    reason=f"No policy rule defined for PII type: {pii_type.value}",
                    metadata={"strict_mode": True},
                )
            return PolicyDecision(
                allowed=True,
                requires_masking=False,
                requires_encryption=False,
                reason=f"No specific rule found, using permissive default for {pii_type.value}",
                metadata={"default_rule": True},
            )

        if operation not in rule.allowed_operations:
            return PolicyDecision(
                allowed=False,
                requires_masking=rule.require_masking,
                requires_encryption=rule.require_encryption,
                reason=(
                    f"Operation '{operation.value}' not allowed for PII type "
                    f"'{pii_type.value}' (risk level: {rule.risk_level.value})"
                ),
                metadata={
                    "risk_level": rule.risk_level,
                    "allowed_operations": sorted(op.value for op in rule.allowed_operations),
                },
            )

        if operation == PolicyOperation.LOG and not rule.allow_logging:
            return PolicyDecision(
                allowed=False,
                requires_masking=True,
                requires_encryption=rule.require_encryption,
                reason=(
                    f"Logging not allowed for PII type '{pii_type.value}' "
                    f"due to risk level: {rule.risk_level.value}"
                ),
                metadata={"risk_level": rule.risk_level},
            )

        return PolicyDecision(
            allowed=True,
            requires_masking=rule.require_masking,
            requires_encryption=rule.require_encryption,
            reason=f"Operation '{operation.value}' allowed for PII type '{pii_type.value}'",
            metadata={
                "risk_level": rule.risk_level,
                "retention_days": rule.retention_days,
            },
        )

    # ------------------------------------------------------------------
    # Convenience queries
    # ------------------------------------------------------------------

    def can_log(self, pii_type: PIIType | str) -> bool:
        return self.evaluate(pii_type, PolicyOperation.LOG).allowed

    def can_store(self, pii_type: PIIType | str) -> bool:
        return self.evaluate(pii_type, PolicyOperation.STORE).allowed

    def requires_masking(self, pii_type: PIIType | str, operation: PolicyOperation | str) -> bool:
        return self.evaluate(pii_type, operation).requires_masking

    def requires_encryption(self, pii_type: PIIType | str, operation: PolicyOperation | str) -> bool:
        return self.evaluate(pii_type, operation).requires_encryption

    def get_risk_level(self, pii_type: PIIType | str) -> RiskLevel | None:
        rule = self.get_rule_for_type(pii_type)
        return rule.risk_level if rule is not None else None

    def get_retention_days(self, pii_type: PIIType | str) -> int | None:
        rule = self.get_rule_for_type(pii_type)
        return rule.retention_days if rule is not None else None
