"""Feature flags gating delegation behavior."""

from __future__ import annotations

from .manager import (
    DEFAULT_FLAGS,
    EMERGENCY_MARKER,
    MASTER_SWITCH,
    SECURITY_FLAGS,
    FeatureFlagManager,
    FlagConfig,
    FlagContext,
    FlagEvaluation,
    FlagMetadata,
    get_feature_flag_manager,
    initialize_feature_flags,
    is_delegation_enabled,
    is_feature_enabled,
    rollout_bucket,
)

__all__ = [
    "DEFAULT_FLAGS",
    "EMERGENCY_MARKER",
    "FeatureFlagManager",
    "FlagConfig",
    "FlagContext",
    "FlagEvaluation",
    "FlagMetadata",
    "MASTER_SWITCH",
    "SECURITY_FLAGS",
    "get_feature_flag_manager",
    "initialize_feature_flags",
    "is_delegation_enabled",
    "is_feature_enabled",
    "rollout_bucket",
]
