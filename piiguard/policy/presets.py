"""Preset registry and the ``create_policy_engine`` factory.

Maintains a lookup table of available presets (built-in + custom YAML)
keyed by ``preset_id``.  Built-ins: ``strict``, ``permissive``, ``gdpr``,
``ccpa``.  Extra presets are loaded from ``PIIGUARD_POLICY_PRESET_DIR``
when set; a custom preset with a built-in id replaces the built-in.
"""
from __future__ import annotations

import logging

from piiguard.core.errors import PRESET_UNKNOWN, PolicyConfigurationError
from piiguard.core.settings import get_settings
from piiguard.policy.engine import PolicyEngine
from piiguard.policy.loader import load_all_presets
from piiguard.policy.rule import PolicyPreset

logger = logging.getLogger(__name__)


class PresetRegistry:
    """In-memory registry of available policy presets."""

    def __init__(self, presets: list[PolicyPreset] | None = None) -> None:
        self._presets: dict[str, PolicyPreset] = {}
        if presets is not None:
            for p in presets:
                self._presets[p.preset_id] = p

    def register(self, preset: PolicyPreset) -> None:
        """Register (or replace) a preset."""
        self._presets[preset.preset_id] = preset

    def get(self, preset_id: str) -> PolicyPreset:
        """Return the preset with *preset_id*.

        Raises
        ------
        PolicyConfigurationError
            No preset is registered under *preset_id*.
        """
        try:
            return self._presets[preset_id]
        except KeyError:
            raise PolicyConfigurationError(
                f"Unknown policy preset: {preset_id!r}",
                field="preset",
                code=PRESET_UNKNOWN,
                metadata={"available": sorted(self._presets)},
            ) from None

    def list_all(self) -> list[PolicyPreset]:
        """Return all registered presets sorted by ``preset_id``."""
        return sorted(self._presets.values(), key=lambda p: p.preset_id)

    @classmethod
    def default(cls) -> PresetRegistry:
        """Return a registry of the built-in presets plus any configured extras."""
        registry = cls(load_all_presets())
        extra_dir = get_settings().policy_preset_dir
        if extra_dir:
            for preset in load_all_presets(extra_dir):
                registry.register(preset)
            logger.info("Custom policy presets loaded from configured directory")
        return registry


def build_engine(preset: PolicyPreset) -> PolicyEngine:
    return PolicyEngine(
        preset.rules,
        strict_mode=preset.strict_mode,
        include_defaults=preset.include_defaults,
    )


def create_policy_engine(
    preset: str | None = None,
    registry: PresetRegistry | None = None,
) -> PolicyEngine:
    """Return a new PolicyEngine configured from the named preset.

    *preset* defaults to ``PIIGUARD_POLICY_PRESET`` (``permissive``).

    Raises
    ------
    PolicyConfigurationError
        *preset* is not a known preset id (``field="preset"``).
    """
    preset_id = preset or get_settings().policy_preset
    registry = registry or PresetRegistry.default()
    engine = build_engine(registry.get(preset_id))
    logger.debug("Policy engine created: preset=%s strict=%s", preset_id, engine.is_strict_mode())
    return engine
