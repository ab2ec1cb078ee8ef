"""Settings loading.

Reads an optional JSON file and falls back to component defaults for every
missing key. A missing or malformed file yields the defaults.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

from trustroute._logging import get_logger
from trustroute.bootstrap.confidence import ConfidenceConfig
from trustroute.bootstrap.detector import DEFAULT_MANDATORY, DetectionConfig
from trustroute.registry.models import RankingWeights
from trustroute.safety.firebreak import (
    DEFAULT_EMERGENCY_CONTACTS,
    DepthThresholds,
    EscalationConfig,
    LiabilityBands,
)
from trustroute.safety.models import EmergencyContact, OverrideAuthority

logger = get_logger("config")

CONFIG_ENV_VAR: Final[str] = "TRUSTROUTE_CONFIG"
DEFAULT_CONFIG_PATH: Final[Path] = Path.home() / ".trustroute" / "config.json"


@dataclass(frozen=True)
class Settings:
    """Loaded configuration for all components."""

    source: str = "defaults"
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    confidence: ConfidenceConfig = field(default_factory=ConfidenceConfig)
    escalation: EscalationConfig = field(default_factory=EscalationConfig)
    ranking: RankingWeights = field(default_factory=RankingWeights)
    flag_overrides: dict[str, bool] = field(default_factory=dict)


def resolve_config_path(path: Path | None = None) -> Path:
    if path is not None:
        return path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    return Path(env_path) if env_path else DEFAULT_CONFIG_PATH


def _detection(data: dict[str, Any]) -> DetectionConfig:
    defaults = DetectionConfig()
    return DetectionConfig(
        minimum_keyword_matches=data.get(
            "minimum_keyword_matches", defaults.minimum_keyword_matches
        ),
        fuzzy_matching=data.get("fuzzy_matching", defaults.fuzzy_matching),
        saturation_matches=data.get("saturation_matches", defaults.saturation_matches),
        custom_keywords=data.get("custom_keywords", {}),
        mandatory_capabilities=tuple(data.get("mandatory_capabilities", DEFAULT_MANDATORY)),
    )


def _confidence(data: dict[str, Any]) -> ConfidenceConfig:
    defaults = ConfidenceConfig()
    return ConfidenceConfig(
        initial=data.get("initial", defaults.initial),
        validated=data.get("validated", defaults.validated),
        proven=data.get("proven", defaults.proven),
        completions_for_proven=data.get(
            "completions_for_proven", defaults.completions_for_proven
        ),
        baseline_weight=data.get("baseline_weight", defaults.baseline_weight),
    )


def _escalation(data: dict[str, Any]) -> EscalationConfig:
    defaults = EscalationConfig()
    depth_data = data.get("depth_thresholds", {})
    liability_data = data.get("liability", {})

    contacts = DEFAULT_EMERGENCY_CONTACTS
    if "emergency_contacts" in data:
        contacts = tuple(
            EmergencyContact(
                authority=OverrideAuthority(c["authority"]),
                contact_id=c["contact_id"],
                response_time_sla_minutes=int(c.get("response_time_sla_minutes", 60)),
            )
            for c in data["emergency_contacts"]
        )

    return EscalationConfig(
        depth_thresholds=DepthThresholds(
            supervisor=depth_data.get("supervisor", defaults.depth_thresholds.supervisor),
            manager=depth_data.get("manager", defaults.depth_thresholds.manager),
            executive=depth_data.get("executive", defaults.depth_thresholds.executive),
        ),
        high_value_limit=data.get("high_value_limit", defaults.high_value_limit),
        critical_system_approval=data.get(
            "critical_system_approval", defaults.critical_system_approval
        ),
        external_delegation_approval=data.get(
            "external_delegation_approval", defaults.external_delegation_approval
        ),
        max_emergency_depth=data.get("max_emergency_depth", defaults.max_emergency_depth),
        emergency_contacts=contacts,
        liability=LiabilityBands(**{**vars(defaults.liability), **liability_data}),
    )


def _ranking(data: dict[str, Any]) -> RankingWeights:
    defaults = RankingWeights()
    return RankingWeights(
        specialization_weight=data.get("specialization_weight", defaults.specialization_weight),
        workload_penalty=data.get("workload_penalty", defaults.workload_penalty),
    )


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from a JSON file or use defaults.

    Args:
        config_path: Path to a config.json file. If None, uses
            $TRUSTROUTE_CONFIG or ~/.trustroute/config.json.

    Returns:
        Settings object
    """
    path = resolve_config_path(config_path)
    if not path.exists():
        return Settings()

    try:
        with path.open("r") as f:
            data = json.load(f)

        return Settings(
            source=str(path),
            detection=_detection(data.get("detection", {})),
            confidence=_confidence(data.get("confidence", {})),
            escalation=_escalation(data.get("escalation", {})),
            ranking=_ranking(data.get("ranking", {})),
            flag_overrides={k: bool(v) for k, v in data.get("flags", {}).items()},
        )
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.warning("config_load_failed", path=str(path), error=str(exc))
        return Settings()
