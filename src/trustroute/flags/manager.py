"""
Feature Flag Manager: Gated Rollout for Delegation Features

Evaluation order (first match wins):
    1. master switch off           -> disabled (security flags follow the master)
    2. expired                     -> disabled
    3. dependency disabled         -> disabled
    4. user allow-list             -> listed users only
    5. environment/tenant mismatch -> disabled
    6. outside rollout bucket      -> disabled
    7. manual enabled value
"""

from __future__ import annotations

import copy
import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Final, Mapping

from trustroute._logging import get_logger
from trustroute.errors import FlagConfigError

logger = get_logger("FeatureFlagManager")

MASTER_SWITCH: Final[str] = "delegation_enabled"

DEFAULT_FLAGS: Final[dict[str, bool]] = {
    MASTER_SWITCH: False,
    "contract_management": True,
    "reputation_tracking": True,
    "permission_attenuation": True,
    "verification_framework": True,
    "chain_tracking": True,
    "security_monitoring": True,
    "mcp_integration": True,
    "performance_metrics": True,
    "predictive_routing": False,
    "capability_learning": False,
    "multi_tenancy": False,
}

# Always on while the master switch is on
SECURITY_FLAGS: Final[frozenset[str]] = frozenset(
    {"permission_attenuation", "security_monitoring"}
)

EMERGENCY_MARKER: Final[str] = "EMERGENCY KILLSWITCH"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    try:
        return _as_utc(datetime.fromisoformat(str(value)))
    except ValueError as exc:
        raise FlagConfigError(f"Invalid timestamp: {value!r}") from exc


@dataclass(frozen=True)
class FlagMetadata:
    """Who changed a flag, when, and why."""

    reason: str | None = None
    actor: str | None = None
    timestamp: datetime = field(default_factory=_now)


@dataclass
class FlagConfig:
    """Configuration of a single feature flag."""

    flag: str
    enabled: bool = False
    rollout_percentage: float | None = None
    environments: list[str] = field(default_factory=list)
    tenants: list[str] = field(default_factory=list)
    users: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    expires_at: datetime | None = None
    metadata: FlagMetadata | None = None

    def to_dict(self) -> dict[str, Any]:
        meta = self.metadata
        return {
            "flag": self.flag,
            "enabled": self.enabled,
            "rollout_percentage": self.rollout_percentage,
            "environments": list(self.environments),
            "tenants": list(self.tenants),
            "users": list(self.users),
            "dependencies": list(self.dependencies),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "metadata": None
            if meta is None
            else {
                "reason": meta.reason,
                "actor": meta.actor,
                "timestamp": meta.timestamp.isoformat(),
            },
        }

    @classmethod
    def from_dict(cls, flag: str, data: Mapping[str, Any]) -> FlagConfig:
        meta_data = data.get("metadata")
        metadata = None
        if isinstance(meta_data, Mapping):
            metadata = FlagMetadata(
                reason=meta_data.get("reason"),
                actor=meta_data.get("actor"),
                timestamp=_parse_datetime(meta_data.get("timestamp")) or _now(),
            )
        return cls(
            flag=flag,
            enabled=bool(data.get("enabled", False)),
            rollout_percentage=data.get("rollout_percentage"),
            environments=list(data.get("environments") or []),
            tenants=list(data.get("tenants") or []),
            users=list(data.get("users") or []),
            dependencies=list(data.get("dependencies") or []),
            expires_at=_parse_datetime(data.get("expires_at")),
            metadata=metadata,
        )


@dataclass(frozen=True)
class FlagContext:
    """Request-scoped inputs for flag evaluation."""

    environment: str | None = None
    tenant_id: str | None = None
    user_id: str | None = None
    request_id: str | None = None
    properties: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FlagEvaluation:
    """Result of evaluating a flag."""

    flag: str
    enabled: bool
    reason: str
    override_source: str | None = None


def rollout_bucket(flag: str, subject: str) -> float:
    """Stable bucket in [0, 100) for a flag and subject."""
    digest = hashlib.sha256(f"{flag}:{subject}".encode()).digest()
    return int.from_bytes(digest[:8], "big") % 10000 / 100.0


def _validate(config: FlagConfig) -> None:
    if not config.flag:
        raise FlagConfigError("Flag id must be a non-empty string")
    pct = config.rollout_percentage
    if pct is not None and (
        isinstance(pct, bool) or not isinstance(pct, (int, float)) or not 0 <= pct <= 100
    ):
        raise FlagConfigError(
            f"rollout_percentage must be in [0, 100], got {pct!r} for '{config.flag}'"
        )


class FeatureFlagManager:
    """Evaluates and mutates delegation feature flags."""

    def __init__(self, overrides: Mapping[str, bool] | None = None) -> None:
        """Initialize with default flags.

        Args:
            overrides: Optional per-flag enabled values applied over the defaults
        """
        self._configs: dict[str, FlagConfig] = {}
        self._reset(overrides)

    def _reset(self, overrides: Mapping[str, bool] | None = None) -> None:
        values = {**DEFAULT_FLAGS, **(overrides or {})}
        self._configs = {
            flag: FlagConfig(flag=flag, enabled=bool(enabled)) for flag, enabled in values.items()
        }

    # ── Evaluation ─────────────────────────────────────────────────────

    def is_enabled(self, flag: str, context: FlagContext | None = None) -> FlagEvaluation:
        """Evaluate a flag for a context.

        Args:
            flag: Flag id
            context: Optional request context

        Returns:
            Evaluation with the decision and the rule that made it
        """
        return self._evaluate(flag, context or FlagContext())

    def _evaluate(self, flag: str, context: FlagContext) -> FlagEvaluation:
        config = self._configs.get(flag)
        if config is None:
            return FlagEvaluation(flag, False, "No configuration found", "default")

        if flag != MASTER_SWITCH:
            master = self._evaluate(MASTER_SWITCH, context)
            if not master.enabled:
                return FlagEvaluation(
                    flag, False, "Master delegation switch is disabled", "master"
                )
            if flag in SECURITY_FLAGS:
                return FlagEvaluation(
                    flag, True, "Security feature is always enabled", "security"
                )

        if config.expires_at is not None and _as_utc(config.expires_at) <= _now():
            return FlagEvaluation(flag, False, "Feature flag has expired", "expiration")

        for dependency in config.dependencies:
            result = self._evaluate(dependency, context)
            if not result.enabled:
                return FlagEvaluation(
                    flag,
                    False,
                    f"Dependency '{dependency}' is not enabled: {result.reason}",
                    "dependency",
                )

        if config.users and context.user_id is not None:
            if context.user_id in config.users:
                return FlagEvaluation(flag, True, "User in allowed users list", "user")
            return FlagEvaluation(flag, False, "User not in allowed users list", "user")

        if (
            config.environments
            and context.environment is not None
            and context.environment not in config.environments
        ):
            return FlagEvaluation(
                flag, False, f"Not enabled for environment: {context.environment}", "environment"
            )

        if config.tenants and context.tenant_id is not None and context.tenant_id not in config.tenants:
            return FlagEvaluation(
                flag, False, f"Not enabled for tenant: {context.tenant_id}", "tenant"
            )

        if config.rollout_percentage is not None:
            subject = (
                context.user_id or context.request_id or context.tenant_id or "anonymous"
            )
            if rollout_bucket(flag, subject) >= config.rollout_percentage:
                return FlagEvaluation(
                    flag,
                    False,
                    f"Outside rollout percentage ({config.rollout_percentage:g}%)",
                    "percentage",
                )

        if config.enabled:
            return FlagEvaluation(flag, True, "Feature is enabled", "manual")
        return FlagEvaluation(flag, False, "Feature is disabled", "manual")

    def get_all_flags(self, context: FlagContext | None = None) -> dict[str, FlagEvaluation]:
        ctx = context or FlagContext()
        return {flag: self._evaluate(flag, ctx) for flag in self._configs}

    def get_config(self, flag: str) -> FlagConfig | None:
        """Return a copy of a flag's configuration."""
        config = self._configs.get(flag)
        return copy.deepcopy(config) if config is not None else None

    # ── Mutation ───────────────────────────────────────────────────────

    def configure(self, config: FlagConfig) -> FlagConfig:
        """Replace a flag's configuration with a validated copy of config.

        Raises:
            FlagConfigError: If the rollout percentage is outside [0, 100]
        """
        _validate(config)
        stored = copy.deepcopy(config)
        if stored.expires_at is not None:
            stored.expires_at = _as_utc(stored.expires_at)
        if stored.metadata is None:
            stored.metadata = FlagMetadata(reason="configured")
        self._configs[stored.flag] = stored
        logger.info("flag_configured", flag=stored.flag, enabled=stored.enabled)
        return copy.deepcopy(stored)

    def enable(
        self,
        flag: str,
        *,
        rollout_percentage: float | None = None,
        environments: list[str] | None = None,
        tenants: list[str] | None = None,
        users: list[str] | None = None,
        dependencies: list[str] | None = None,
        expires_at: datetime | None = None,
        reason: str | None = None,
        actor: str | None = None,
    ) -> FlagConfig:
        """Enable a flag; targeting options left as None keep their current value."""
        current = self._configs.get(flag) or FlagConfig(flag=flag)
        updated = FlagConfig(
            flag=flag,
            enabled=True,
            rollout_percentage=(
                rollout_percentage if rollout_percentage is not None else current.rollout_percentage
            ),
            environments=list(environments if environments is not None else current.environments),
            tenants=list(tenants if tenants is not None else current.tenants),
            users=list(users if users is not None else current.users),
            dependencies=list(
                dependencies if dependencies is not None else current.dependencies
            ),
            expires_at=expires_at if expires_at is not None else current.expires_at,
            metadata=FlagMetadata(reason=reason, actor=actor),
        )
        _validate(updated)
        self._configs[flag] = updated
        logger.info("flag_enabled", flag=flag, reason=reason, actor=actor)
        return copy.deepcopy(updated)

    def disable(self, flag: str, reason: str | None = None, actor: str | None = None) -> FlagConfig:
        current = self._configs.get(flag) or FlagConfig(flag=flag)
        current.enabled = False
        current.metadata = FlagMetadata(reason=reason, actor=actor)
        self._configs[flag] = current
        logger.info("flag_disabled", flag=flag, reason=reason, actor=actor)
        return copy.deepcopy(current)

    def emergency_disable(self, reason: str, actor: str | None = None) -> None:
        """Disable the master switch and every flag at once."""
        metadata = FlagMetadata(reason=f"{EMERGENCY_MARKER}: {reason}", actor=actor)
        for config in self._configs.values():
            config.enabled = False
            config.metadata = metadata
        logger.warning(
            "flag_emergency_disabled", reason=reason, actor=actor, flags=len(self._configs)
        )

    # ── Import / export ────────────────────────────────────────────────

    def export_config(self) -> dict[str, dict[str, Any]]:
        """Export all flag configurations as JSON-safe data."""
        return {flag: config.to_dict() for flag, config in self._configs.items()}

    def import_config(self, data: Mapping[str, Mapping[str, Any]]) -> None:
        """Replace all flag configurations with imported data.

        Raises:
            FlagConfigError: If any entry is invalid; current state is kept
        """
        configs: dict[str, FlagConfig] = {}
        for flag, entry in data.items():
            if not isinstance(entry, Mapping):
                raise FlagConfigError(f"Flag '{flag}' configuration must be a mapping")
            config = FlagConfig.from_dict(flag, entry)
            _validate(config)
            configs[flag] = config
        self._configs = configs
        logger.info("flags_imported", flags=len(configs))


# ═══════════════════════════════════════════════════════════════════════════
# PROCESS-WIDE HANDLE
# ═══════════════════════════════════════════════════════════════════════════

_manager: FeatureFlagManager | None = None


def initialize_feature_flags(overrides: Mapping[str, bool] | None = None) -> FeatureFlagManager:
    """Create and install the process-wide flag manager."""
    global _manager
    _manager = FeatureFlagManager(overrides)
    return _manager


def get_feature_flag_manager() -> FeatureFlagManager:
    """Return the installed flag manager.

    Raises:
        RuntimeError: If initialize_feature_flags() has not been called
    """
    if _manager is None:
        raise RuntimeError("Feature flags not initialized; call initialize_feature_flags()")
    return _manager


def is_feature_enabled(flag: str, context: FlagContext | None = None) -> bool:
    return get_feature_flag_manager().is_enabled(flag, context).enabled


def is_delegation_enabled(context: FlagContext | None = None) -> bool:
    return is_feature_enabled(MASTER_SWITCH, context)
