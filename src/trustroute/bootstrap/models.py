"""
Bootstrap Data Models

Agent sources are a closed set of variants; the analyzer dispatches on the
variant type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Union

from trustroute.registry.models import CapabilityManifest


@dataclass(frozen=True)
class MarkdownSource:
    """Markdown agent definition, optionally with YAML frontmatter."""

    content: str
    path: str | None = None


@dataclass(frozen=True)
class StructuredSource:
    """An in-memory agent object (e.g. exported from code)."""

    agent: Mapping[str, Any]


@dataclass(frozen=True)
class JsonSource:
    """A JSON agent definition, either decoded or as raw text."""

    definition: Mapping[str, Any] | str


@dataclass(frozen=True)
class FileSource:
    """An agent definition on disk; the suffix selects the variant."""

    path: Path | str


AgentSource = Union[MarkdownSource, StructuredSource, JsonSource, FileSource]


@dataclass
class AnalyzedAgent:
    """Name, description and raw content extracted from a source."""

    name: str
    description: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CapabilityDetection:
    """A capability inferred from agent content."""

    capability_id: str
    detection_confidence: float
    matched_keywords: tuple[str, ...] = ()

    @property
    def is_mandatory_fill(self) -> bool:
        return self.matched_keywords == ("mandatory",)


class ConfidenceTier(str, Enum):
    """Trust tier of a capability claim."""

    INITIAL = "initial"
    VALIDATED = "validated"
    PROVEN = "proven"


class RecommendationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Recommendation:
    """A prioritized suggestion for raising confidence."""

    priority: RecommendationPriority
    message: str


@dataclass
class BootstrapResult:
    """Outcome of bootstrapping a single agent source."""

    agent_id: str
    manifest: CapabilityManifest
    detected_capabilities: list[CapabilityDetection] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
