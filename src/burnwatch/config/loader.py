"""
SLO configuration loading.

Parses YAML SLO definitions into validated SLOSpec objects.

Search order:
1. Explicit path (--config flag or BURNWATCH_CONFIG_PATH)
2. burnwatch.yaml in the current directory
3. ~/.burnwatch/config.yaml (user home)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from burnwatch.core.errors import ConfigurationError
from burnwatch.slos.models import DEFAULT_TIERS, BurnRateTier, SLOSpec, parse_duration

logger = structlog.get_logger()


@dataclass
class ConfigLoadResult:
    """Valid SLOs plus the problems found while loading."""

    slos: list[SLOSpec] = field(default_factory=list)
    errors: dict[str, list[str]] = field(default_factory=dict)
    warnings: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "slos": [s.to_dict() for s in self.slos],
            "errors": self.errors,
            "warnings": self.warnings,
        }


def get_config_path(explicit_path: str | Path | None = None) -> Path | None:
    """
    Find the configuration file to use.

    Returns:
        Path to config file or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        return None

    cwd_config = Path.cwd() / "burnwatch.yaml"
    if cwd_config.exists():
        return cwd_config

    home_config = Path.home() / ".burnwatch" / "config.yaml"
    if home_config.exists():
        return home_config

    return None


def parse_tier(data: dict[str, Any]) -> BurnRateTier:
    """
    Parse one tier mapping.

    Raises:
        ConfigurationError: If required fields are missing or malformed
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"Tier must be a mapping, got {type(data).__name__}")

    for required in ("short_window", "long_window", "threshold"):
        if required not in data:
            raise ConfigurationError(f"Missing required field: {required}")

    try:
        return BurnRateTier(
            short_window=parse_duration(data["short_window"]),
            long_window=parse_duration(data["long_window"]),
            threshold=float(data["threshold"]),
            for_duration=parse_duration(data.get("for", 0)),
            severity=str(data.get("severity", "critical")),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid tier: {exc}") from exc


def parse_slo_dict(data: dict[str, Any]) -> SLOSpec:
    """
    Parse one SLO mapping into an SLOSpec (not yet validated).

    Raises:
        ConfigurationError: If required fields are missing or malformed
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"SLO must be a mapping, got {type(data).__name__}")

    name = data.get("name")
    if not name:
        raise ConfigurationError("Missing required field: name")

    target = data.get("target")
    if target is None:
        raise ConfigurationError("Missing required field: target", {"slo": name})

    tiers_data = data.get("tiers")
    if tiers_data is None:
        tiers = DEFAULT_TIERS
    elif isinstance(tiers_data, list):
        tiers = tuple(parse_tier(t) for t in tiers_data)
    else:
        raise ConfigurationError("tiers must be a list", {"slo": name})

    labels = data.get("labels") or {}
    if not isinstance(labels, dict):
        raise ConfigurationError("labels must be a mapping", {"slo": name})

    try:
        return SLOSpec(
            name=str(name),
            target=float(target),
            tiers=tiers,
            period=parse_duration(data.get("period", "30d")),
            description=str(data.get("description", "")),
            labels={str(k): str(v) for k, v in labels.items()},
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid SLO {name!r}: {exc}", {"slo": name}) from exc


def load_slo_dict(data: dict[str, Any], strict: bool = False) -> ConfigLoadResult:
    """
    Parse and validate every SLO in a configuration mapping.

    Invalid SLOs are left out of the result and reported under their name.
    With ``strict`` the first problem raises instead.

    Raises:
        ConfigurationError: If the document is malformed, or on any problem when strict
    """
    if not isinstance(data, dict) or not isinstance(data.get("slos"), list):
        raise ConfigurationError("Configuration must contain a list under 'slos'")

    result = ConfigLoadResult()
    seen: set[str] = set()

    for index, entry in enumerate(data["slos"]):
        label = f"slos[{index}]"
        if isinstance(entry, dict) and entry.get("name"):
            label = entry["name"]
        try:
            slo = parse_slo_dict(entry)
        except ConfigurationError as exc:
            if strict:
                raise
            result.errors.setdefault(str(label), []).append(exc.message)
            continue

        errors = slo.validate()
        if slo.name in seen:
            errors.append(f"duplicate SLO name: {slo.name}")
        if errors:
            if strict:
                raise ConfigurationError(
                    f"Invalid SLO {slo.name!r}: {'; '.join(errors)}", {"slo": slo.name}
                )
            result.errors.setdefault(slo.name, []).extend(errors)
            continue

        seen.add(slo.name)
        warnings = slo.warnings()
        if warnings:
            result.warnings[slo.name] = warnings
            for warning in warnings:
                logger.warning("slo_config_warning", slo=slo.name, warning=warning)
        result.slos.append(slo)

    for name, errors in result.errors.items():
        logger.error("slo_config_rejected", slo=name, errors=errors)

    return result


def load_slo_config(path: str | Path | None = None, strict: bool = False) -> ConfigLoadResult:
    """
    Load SLO definitions from a YAML file.

    Raises:
        ConfigurationError: If the file is missing or not valid YAML
    """
    config_path = get_config_path(path)
    if config_path is None:
        raise ConfigurationError(
            f"SLO config file not found: {path or 'burnwatch.yaml'}",
        )

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

    logger.debug("loaded_config", path=str(config_path))
    return load_slo_dict(data, strict=strict)
