"""
Capability Registry: Discovery and Trust-Weighted Ranking

Keeps the latest manifest per agent plus an independent open-task counter,
and answers "who can do this, and who should do it next".

Match score:
    coverage * ((1 - w_spec) * avg_confidence + w_spec * specialization_overlap)

Ranking score:
    (w * match + (1 - w) * overall_confidence) / (1 + penalty * open_tasks)
"""

from __future__ import annotations

import copy
import math
from typing import Any, Iterable, Sequence

from trustroute._logging import get_logger
from trustroute.errors import ManifestValidationError

from .models import (
    CapabilityManifest,
    CapabilityMatch,
    RankedAgent,
    RankingWeights,
    utc_now,
)

logger = get_logger("CapabilityRegistry")


def _is_unit_interval(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value) and 0.0 <= value <= 1.0


def _check_confidence(value: Any, label: str) -> None:
    if not _is_unit_interval(value):
        raise ValueError(f"{label} must be in [0.0, 1.0], got {value!r}")


def validate_manifest(manifest: CapabilityManifest) -> None:
    """Raise ManifestValidationError if the manifest cannot be stored."""
    if not isinstance(manifest.agent_id, str) or not manifest.agent_id.strip():
        raise ManifestValidationError("Manifest agent_id must be a non-empty string")

    for entry in manifest.capabilities:
        if not _is_unit_interval(entry.confidence_level):
            raise ManifestValidationError(
                f"Invalid confidence for capability '{entry.capability_id}' "
                f"of agent '{manifest.agent_id}': {entry.confidence_level!r} "
                "(must be in [0.0, 1.0])"
            )

    if manifest.overall_confidence is not None and not _is_unit_interval(
        manifest.overall_confidence
    ):
        raise ManifestValidationError(
            f"Invalid overall confidence for agent '{manifest.agent_id}': "
            f"{manifest.overall_confidence!r} (must be in [0.0, 1.0])"
        )


def _specialization_covers(capability_id: str, specializations: Iterable[str]) -> bool:
    needle = capability_id.lower().replace("_", "-")
    return any(needle in tag.lower().replace("_", "-") for tag in specializations)


class CapabilityRegistry:
    """In-memory capability registry with workload-aware ranking."""

    def __init__(self, weights: RankingWeights | None = None) -> None:
        self.weights = weights or RankingWeights()
        self._manifests: dict[str, CapabilityManifest] = {}
        self._workloads: dict[str, int] = {}

    # ── Registration ───────────────────────────────────────────────────

    def register_manifest(self, manifest: CapabilityManifest) -> CapabilityManifest:
        """Validate and store a manifest, replacing any previous one.

        Args:
            manifest: Manifest to register. The caller's object is not retained.

        Returns:
            A copy of the stored manifest

        Raises:
            ManifestValidationError: If any confidence is outside [0, 1] or the
                agent id is empty. The registry is left untouched.
        """
        validate_manifest(manifest)
        stored = self._prepare(manifest)
        replaced = stored.agent_id in self._manifests
        self._manifests[stored.agent_id] = stored
        logger.info(
            "manifest_registered",
            agent_id=stored.agent_id,
            capabilities=len(stored.capabilities),
            overall_confidence=round(stored.overall_confidence or 0.0, 3),
            replaced=replaced,
        )
        return copy.deepcopy(stored)

    def register_manifests(
        self, manifests: Sequence[CapabilityManifest]
    ) -> list[CapabilityManifest]:
        """Register many manifests; nothing is stored unless all validate."""
        for manifest in manifests:
            validate_manifest(manifest)
        return [self.register_manifest(m) for m in manifests]

    @staticmethod
    def _prepare(manifest: CapabilityManifest) -> CapabilityManifest:
        stored = copy.deepcopy(manifest)
        stored.specializations = set(stored.specializations)
        if stored.overall_confidence is None:
            stored.overall_confidence = stored.mean_confidence()
        stored.last_updated = utc_now()
        return stored

    def get_manifest(self, agent_id: str) -> CapabilityManifest | None:
        """Return a copy of an agent's manifest; use the update methods to change it."""
        manifest = self._manifests.get(agent_id)
        return copy.deepcopy(manifest) if manifest is not None else None

    def list_manifests(self) -> list[CapabilityManifest]:
        return [copy.deepcopy(m) for m in self._manifests.values()]

    def remove_manifest(self, agent_id: str) -> bool:
        """Drop an agent's manifest and workload. Returns False if unknown."""
        if agent_id not in self._manifests:
            return False
        del self._manifests[agent_id]
        self._workloads.pop(agent_id, None)
        logger.info("manifest_removed", agent_id=agent_id)
        return True

    def clear(self) -> None:
        self._manifests.clear()
        self._workloads.clear()

    # ── Discovery ──────────────────────────────────────────────────────

    def find_by_capability(
        self, capability_id: str, min_confidence: float | None = None
    ) -> list[CapabilityMatch]:
        """Find agents holding a capability at or above a confidence floor."""
        floor = 0.0 if min_confidence is None else min_confidence
        matches: list[CapabilityMatch] = []
        for manifest in self._manifests.values():
            entry = manifest.get_capability(capability_id)
            if entry is not None and entry.confidence_level >= floor:
                matches.append(
                    CapabilityMatch(
                        agent_id=manifest.agent_id,
                        agent_name=manifest.agent_name,
                        capability_id=capability_id,
                        confidence_level=entry.confidence_level,
                    )
                )
        return matches

    def find_by_capabilities(
        self, capability_ids: Sequence[str], min_confidence: float | None = None
    ) -> list[CapabilityManifest]:
        """Find agents holding every listed capability."""
        if not capability_ids:
            return []
        floor = 0.0 if min_confidence is None else min_confidence
        results = []
        for manifest in self._manifests.values():
            entries = [manifest.get_capability(cid) for cid in capability_ids]
            if all(e is not None and e.confidence_level >= floor for e in entries):
                results.append(copy.deepcopy(manifest))
        return results

    def find_by_specialization(self, tag: str) -> list[CapabilityManifest]:
        wanted = tag.lower()
        return [
            copy.deepcopy(m)
            for m in self._manifests.values()
            if any(s.lower() == wanted for s in m.specializations)
        ]

    # ── Scoring ────────────────────────────────────────────────────────

    def calculate_match_score(
        self, agent_id: str, required_capabilities: Sequence[str]
    ) -> float:
        """Score how well an agent covers a set of required capabilities.

        Args:
            agent_id: Agent to score
            required_capabilities: Capability ids the task needs

        Returns:
            Score in [0, 1]; 0.0 for unknown agents or an empty requirement
        """
        manifest = self._manifests.get(agent_id)
        if manifest is None or not required_capabilities:
            return 0.0

        required = list(dict.fromkeys(required_capabilities))
        held = [
            entry
            for entry in (manifest.get_capability(cid) for cid in required)
            if entry is not None
        ]
        if not held:
            return 0.0

        coverage = len(held) / len(required)
        avg_confidence = sum(e.confidence_level for e in held) / len(held)
        overlap = sum(
            1 for cid in required if _specialization_covers(cid, manifest.specializations)
        ) / len(required)

        w_spec = self.weights.specialization_weight
        score = coverage * ((1.0 - w_spec) * avg_confidence + w_spec * overlap)
        return max(0.0, min(1.0, score))

    def rank_agents(
        self,
        required_capabilities: Sequence[str],
        confidence_weight: float | None = None,
        consider_workload: bool = False,
    ) -> list[RankedAgent]:
        """Rank agents holding at least one required capability, best first.

        Args:
            required_capabilities: Capability ids the task needs
            confidence_weight: Optional blend of match score (w) and overall
                confidence (1 - w). None uses the match score alone.
            consider_workload: Penalize agents with open tasks

        Returns:
            Ranked agents, highest score first; empty if nobody matches
        """
        if confidence_weight is not None:
            _check_confidence(confidence_weight, "confidence_weight")

        ranked: list[RankedAgent] = []
        for manifest in self._manifests.values():
            match = self.calculate_match_score(manifest.agent_id, required_capabilities)
            if match <= 0.0:
                continue

            overall = manifest.overall_confidence or 0.0
            if confidence_weight is None:
                score = match
            else:
                score = confidence_weight * match + (1.0 - confidence_weight) * overall

            workload = self._workloads.get(manifest.agent_id, 0)
            if consider_workload and workload:
                score = score / (1.0 + self.weights.workload_penalty * workload)

            ranked.append(
                RankedAgent(
                    agent_id=manifest.agent_id,
                    agent_name=manifest.agent_name,
                    score=round(score, 4),
                    match_score=round(match, 4),
                    overall_confidence=overall,
                    workload=workload,
                )
            )

        ranked.sort(key=lambda r: r.score, reverse=True)
        return ranked

    # ── Workload ───────────────────────────────────────────────────────

    def increment_workload(self, agent_id: str) -> int:
        self._workloads[agent_id] = self._workloads.get(agent_id, 0) + 1
        return self._workloads[agent_id]

    def decrement_workload(self, agent_id: str) -> int:
        self._workloads[agent_id] = max(0, self._workloads.get(agent_id, 0) - 1)
        return self._workloads[agent_id]

    def get_workload(self, agent_id: str) -> int:
        return self._workloads.get(agent_id, 0)

    # ── Confidence updates ─────────────────────────────────────────────

    def update_confidence(self, agent_id: str, capability_id: str, value: float) -> bool:
        """Set one capability's confidence and recompute the overall mean.

        Raises:
            ValueError: If value is outside [0, 1]

        Returns:
            False if the agent or capability is unknown
        """
        _check_confidence(value, "confidence")
        manifest = self._manifests.get(agent_id)
        if manifest is None:
            return False
        entry = manifest.get_capability(capability_id)
        if entry is None:
            return False

        previous = entry.confidence_level
        entry.confidence_level = value
        manifest.overall_confidence = manifest.mean_confidence()
        manifest.last_updated = utc_now()
        logger.info(
            "confidence_updated",
            agent_id=agent_id,
            capability_id=capability_id,
            previous=previous,
            current=value,
        )
        return True

    def update_overall_confidence(self, agent_id: str, value: float) -> bool:
        _check_confidence(value, "overall_confidence")
        manifest = self._manifests.get(agent_id)
        if manifest is None:
            return False
        manifest.overall_confidence = value
        manifest.last_updated = utc_now()
        return True

    # ── Stats ──────────────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """Get registry statistics."""
        manifests = list(self._manifests.values())
        by_capability: dict[str, int] = {}
        for manifest in manifests:
            for entry in manifest.capabilities:
                by_capability[entry.capability_id] = by_capability.get(entry.capability_id, 0) + 1

        avg = (
            sum(m.overall_confidence or 0.0 for m in manifests) / len(manifests)
            if manifests
            else 0.0
        )
        return {
            "total_agents": len(manifests),
            "total_capabilities": sum(len(m.capabilities) for m in manifests),
            "by_capability": by_capability,
            "avg_overall_confidence": round(avg, 4),
            "open_tasks": sum(self._workloads.values()),
        }
