"""Capability registry: manifests, discovery and ranking."""

from __future__ import annotations

from .models import (
    CapabilityEntry,
    CapabilityManifest,
    CapabilityMatch,
    RankedAgent,
    RankingWeights,
)
from .registry import CapabilityRegistry, validate_manifest

__all__ = [
    "CapabilityEntry",
    "CapabilityManifest",
    "CapabilityMatch",
    "CapabilityRegistry",
    "RankedAgent",
    "RankingWeights",
    "validate_manifest",
]
