"""Data models for liability firebreaks, overrides and escalations."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _whole_hops(depth: float) -> int:
    """Round a depth up to whole hops; non-finite depths are rejected."""
    if not math.isfinite(depth):
        raise ValueError(f"delegation_depth must be finite, got {depth}")
    return math.ceil(depth)


class OverrideAuthority(str, Enum):
    """Authority tiers, lowest first."""

    AGENT = "agent"
    SUPERVISOR = "supervisor"
    MANAGER = "manager"
    EXECUTIVE = "executive"
    EMERGENCY = "emergency"


AUTHORITY_ORDER: tuple[OverrideAuthority, ...] = tuple(OverrideAuthority)


def authority_rank(authority: OverrideAuthority | str) -> int:
    return AUTHORITY_ORDER.index(OverrideAuthority(authority))


def escalate_authority(*levels: OverrideAuthority | str) -> OverrideAuthority:
    """Highest of the given authority levels (AGENT when none given)."""
    if not levels:
        return OverrideAuthority.AGENT
    return max((OverrideAuthority(level) for level in levels), key=authority_rank)


class LiabilityLevel(str, Enum):
    NONE = "none"
    LIMITED = "limited"
    SHARED = "shared"
    FULL = "full"


class OverrideStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class Urgency(str, Enum):
    EMERGENCY = "emergency"
    URGENT = "urgent"
    ROUTINE = "routine"


class BusinessImpact(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class FirebreakContext:
    """Risk-relevant facts about a proposed delegation.

    ``None`` for a boolean means "unknown" and is treated as True.
    """

    delegation_depth: int = 0
    estimated_value: float = 0.0
    involves_critical_systems: bool | None = False
    is_external_delegation: bool | None = False
    chain_agents: list[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> FirebreakContext:
        """Build a context from loosely-typed input.

        Raises:
            ValueError: If a numeric field cannot be interpreted
        """
        depth = data.get("delegation_depth", 0)
        value = data.get("estimated_value", 0.0)
        try:
            depth = _whole_hops(float(depth)) if depth is not None else 0
            value = float(value) if value is not None else 0.0
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid firebreak context: {exc}") from exc
        return cls(
            delegation_depth=depth,
            estimated_value=value,
            involves_critical_systems=data.get("involves_critical_systems"),
            is_external_delegation=data.get("is_external_delegation"),
            chain_agents=[str(a) for a in data.get("chain_agents") or []],
        )

    def sanitized(self) -> FirebreakContext:
        """Clamp negatives to zero and resolve unknowns toward higher risk."""
        value = float(self.estimated_value)
        if math.isnan(value):
            value = math.inf
        return FirebreakContext(
            delegation_depth=max(0, _whole_hops(float(self.delegation_depth))),
            estimated_value=max(0.0, value),
            involves_critical_systems=self.involves_critical_systems is not False,
            is_external_delegation=self.is_external_delegation is not False,
            chain_agents=list(self.chain_agents),
        )


@dataclass(frozen=True)
class FirebreakCheck:
    """Result of a single firebreak gate."""

    passed: bool
    firebreak: str | None = None
    required_authority: OverrideAuthority = OverrideAuthority.AGENT


@dataclass(frozen=True)
class FirebreakResult:
    """Outcome of enforcing all firebreaks on a delegation."""

    firebreaks_passed: bool
    blocking_firebreaks: list[str]
    liability_level: LiabilityLevel
    chain_length: int
    manual_override_available: bool
    required_authority: OverrideAuthority
    validation_timestamp: datetime = field(default_factory=utc_now)


@dataclass
class OverrideRequest:
    """A request to proceed with a delegation despite a firebreak."""

    requesting_agent: str
    target_agent: str
    authority_level: OverrideAuthority | str
    context: FirebreakContext
    justification: str = ""
    urgency: Urgency = Urgency.ROUTINE
    business_impact: BusinessImpact = BusinessImpact.MEDIUM
    expires_at: datetime | None = None


@dataclass
class OverrideResult:
    """Recorded outcome of an override request."""

    override_id: str
    status: OverrideStatus
    requesting_agent: str
    target_agent: str
    authority_level: OverrideAuthority
    required_authority: OverrideAuthority
    context: FirebreakContext
    justification: str
    urgency: Urgency
    business_impact: BusinessImpact
    expires_at: datetime
    required_approvals: list[OverrideAuthority] = field(default_factory=list)
    auto_approved: bool = False
    rejection_reason: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class EmergencyContact:
    authority: OverrideAuthority
    contact_id: str
    response_time_sla_minutes: int


@dataclass
class EscalationRequest:
    """An emergency escalation raised by an agent."""

    agent_id: str
    emergency_level: str
    reason: str
    requested_bypass_depth: int | None = None
    context: FirebreakContext | None = None


@dataclass(frozen=True)
class EscalationRecord:
    """Recorded emergency escalation. Bypass is never granted automatically."""

    escalation_id: str
    agent_id: str
    emergency_level: str
    reason: str
    emergency_contact: EmergencyContact | None
    contact_notified: bool
    exceeds_emergency_depth: bool
    status: str = "escalated"
    bypass_granted: bool = False
    approval_required: bool = True
    escalation_timestamp: datetime = field(default_factory=utc_now)
