"""Policy preset YAML loader.

Loads preset definitions from ``piiguard/config/policies/*.yaml`` (or any
directory) and returns ``PolicyPreset`` instances.  Each document holds
``preset_id``, ``name``, ``regulatory_framework``, ``strict_mode`` and a
``rules`` list; ``include_defaults`` (default true) seeds the engine with
the default rule table before the listed rules are applied.
"""
from __future__ import annotations

from pathlib import Path

import yaml

from piiguard.core.errors import PolicyConfigurationError
from piiguard.policy.rule import PolicyPreset, rule_from_mapping

BUILTIN_PRESET_DIR = Path(__file__).resolve().parent.parent / "config" / "policies"

_REQUIRED_FIELDS: frozenset[str] = frozenset({
    "preset_id",
    "name",
    "regulatory_framework",
    "strict_mode",
    "rules",
})


def load_preset(path: str | Path) -> PolicyPreset:
    """Load a single preset from a YAML file.

    Raises
    ------
    PolicyConfigurationError
        The file is not valid YAML, the document is not a mapping, a
        required field is missing, or a rule is malformed.  ``field``
        names the culprit.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise PolicyConfigurationError(
                f"{path.name}: invalid YAML", field="preset"
            ) from exc

    if not isinstance(data, dict):
        raise PolicyConfigurationError(
            f"{path.name}: expected a YAML mapping, got {type(data).__name__}",
            field="preset",
        )

    missing = _REQUIRED_FIELDS - data.keys()
    if missing:
        raise PolicyConfigurationError(
            f"{path.name}: missing required fields: {sorted(missing)}",
            field=sorted(missing)[0],
        )

    if not isinstance(data["strict_mode"], bool):
        raise PolicyConfigurationError(
            f"{path.name}: strict_mode must be a boolean",
            field="strict_mode",
        )

    include_defaults = data.get("include_defaults", True)
    if not isinstance(include_defaults, bool):
        raise PolicyConfigurationError(
            f"{path.name}: include_defaults must be a boolean",
            field="include_defaults",
        )

    raw_rules = data["rules"] or []
    if not isinstance(raw_rules, list):
        raise PolicyConfigurationError(f"{path.name}: rules must be a list", field="rules")

    rules = []
    for index, raw in enumerate(raw_rules):
        try:
            rules.append(rule_from_mapping(raw))
        except PolicyConfigurationError as exc:
            raise PolicyConfigurationError(
                f"{path.name}: rule {index}: {exc}",
                field=exc.field,
            ) from exc

    return PolicyPreset(
        preset_id=str(data["preset_id"]),
        name=str(data["name"]),
        regulatory_framework=str(data["regulatory_framework"]),
        strict_mode=data["strict_mode"],
        rules=rules,
        include_defaults=include_defaults,
    )


def load_all_presets(directory: str | Path = BUILTIN_PRESET_DIR) -> list[PolicyPreset]:
    """Load all ``*.yaml`` preset files from *directory*.

    Raises
    ------
    PolicyConfigurationError
        If any YAML file fails validation.
    """
    directory = Path(directory)
    presets: list[PolicyPreset] = []
    for path in sorted(directory.iterdir()):
        if path.suffix not in (".yaml", ".yml"):
            continue
        presets.append(load_preset(path))
    return presets
