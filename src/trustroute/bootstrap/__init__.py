"""Bootstrap pipeline: agent sources to capability manifests."""

from __future__ import annotations

from .analyzer import AgentAnalyzer
from .confidence import ConfidenceConfig, ConfidenceInitializer
from .detector import DEFAULT_KEYWORDS, CapabilityDetector, DetectionConfig
from .models import (
    AgentSource,
    AnalyzedAgent,
    BootstrapResult,
    CapabilityDetection,
    ConfidenceTier,
    FileSource,
    JsonSource,
    MarkdownSource,
    Recommendation,
    RecommendationPriority,
    StructuredSource,
)
from .pipeline import CapabilityBootstrap, bootstrap_agent, bootstrap_agents, slugify

__all__ = [
    "AgentAnalyzer",
    "AgentSource",
    "AnalyzedAgent",
    "BootstrapResult",
    "CapabilityBootstrap",
    "CapabilityDetection",
    "CapabilityDetector",
    "ConfidenceConfig",
    "ConfidenceInitializer",
    "ConfidenceTier",
    "DEFAULT_KEYWORDS",
    "DetectionConfig",
    "FileSource",
    "JsonSource",
    "MarkdownSource",
    "Recommendation",
    "RecommendationPriority",
    "StructuredSource",
    "bootstrap_agent",
    "bootstrap_agents",
    "slugify",
]
