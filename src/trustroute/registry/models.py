"""
Capability Registry Data Models

Manifests describe what an agent can do and how much that claim is trusted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CapabilityEntry:
    """A single declared capability with its confidence level."""

    capability_id: str
    confidence_level: float
    name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class CapabilityManifest:
    """
    Per-agent capability declaration.

    ``overall_confidence`` is filled in as the mean of the capability
    confidences when left as None at registration time.
    """

    agent_id: str
    capabilities: list[CapabilityEntry] = field(default_factory=list)
    agent_name: str | None = None
    overall_confidence: float | None = None
    specializations: set[str] = field(default_factory=set)
    last_updated: datetime = field(default_factory=utc_now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def get_capability(self, capability_id: str) -> CapabilityEntry | None:
        for entry in self.capabilities:
            if entry.capability_id == capability_id:
                return entry
        return None

    def mean_confidence(self) -> float:
        if not self.capabilities:
            return 0.0
        return sum(c.confidence_level for c in self.capabilities) / len(self.capabilities)


@dataclass(frozen=True)
class CapabilityMatch:
    """An agent that holds a requested capability."""

    agent_id: str
    agent_name: str | None
    capability_id: str
    confidence_level: float


@dataclass(frozen=True)
class RankedAgent:
    """Ranking row produced by ``CapabilityRegistry.rank_agents``."""

    agent_id: str
    agent_name: str | None
    score: float
    match_score: float
    overall_confidence: float
    workload: int = 0


@dataclass(frozen=True)
class RankingWeights:
    """Tunable weights for match scoring and ranking."""

    specialization_weight: float = 0.15
    workload_penalty: float = 0.1

    def __post_init__(self) -> None:
        for field_name in ["specialization_weight", "workload_penalty"]:
            value = getattr(self, field_name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{field_name} must be in [0.0, 1.0], got {value}")
