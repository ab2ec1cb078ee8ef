"""
Capability Detector: Keyword Heuristics

Infers capability ids from agent content using per-capability keyword
families. Matching is case-insensitive substring search by default, or
word-boundary matching when fuzzy matching is turned off.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Final, Mapping, Sequence

from .models import CapabilityDetection

# Keyword families per capability id
DEFAULT_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
    # General engineering
    "testing": (
        "test", "testing", "pytest", "jest", "vitest", "assertion", "coverage", "qa",
    ),
    "security": (
        "security", "secure", "authentication", "authorization", "encryption",
        "secrets", "vulnerability",
    ),
    "code_generation": (
        "code", "component", "implementation", "generate", "develop", "build",
    ),
    "code_review": (
        "code review", "review", "pull request", "feedback", "reviewer", "lint",
    ),
    "refactoring": (
        "refactor", "refactoring", "cleanup", "technical debt", "restructure", "simplify",
    ),
    "debugging": (
        "debug", "debugging", "stack trace", "root cause", "bug", "troubleshoot",
    ),
    "documentation": (
        "documentation", "docs", "readme", "docstring", "api reference", "guide",
    ),
    "deployment": (
        "deploy", "deployment", "ci/cd", "pipeline", "docker", "kubernetes", "release",
    ),
    "data_analysis": (
        "data analysis", "dataset", "pandas", "statistics", "metrics", "visualization", "sql",
    ),
    "pattern_enforcement": (
        "pattern", "architecture", "enforce", "convention", "standard", "compliance",
    ),
    "performance_optimization": (
        "performance", "optimization", "speed", "lighthouse", "core web vitals", "bundle",
    ),
    "prompt_engineering": (
        "prompt", "prompt design", "prompt optimization", "llm prompting",
    ),
    # Testing specializations
    "production_testing": (
        "test", "testing", "99%", "pass rate", "quality", "vitest", "playwright",
    ),
    "test_generation": (
        "unit test", "integration test", "test suite", "test coverage", "tdd",
    ),
    # Security specializations
    "security_scanning": (
        "security", "vulnerability", "audit", "owasp", "penetration", "threat",
    ),
    "accessibility_audit": (
        "accessibility", "a11y", "wcag", "screen reader", "inclusive", "contrast",
    ),
    # Web and design systems
    "design_token_compliance": (
        "design token", "spacing", "typography", "semantic_colors",
        "hardcoded", "design system", "token compliance", "tailwind",
    ),
    "design_token_enforcement": (
        "design token", "token validation", "style compliance", "css tokens",
    ),
    "pagelayout_architecture": (
        "pagelayout", "layout", "archivelayout", "articlelayout", "page structure",
    ),
    "nextjs_architecture": (
        "next.js", "app router", "server component", "api route", "nextjs",
    ),
    "content_creation_seo": (
        "content", "blog", "seo", "mdx", "marketing", "writing",
    ),
    "mcp_server_development": (
        "mcp", "model context protocol", "server development", "protocol implementation",
    ),
}

DEFAULT_MANDATORY: Final[tuple[str, ...]] = ("pattern_enforcement",)

# Confidence assigned when a single keyword match is backed by the agent name
NAME_MATCH_CONFIDENCE: Final[float] = 0.75


@dataclass(frozen=True)
class DetectionConfig:
    """Capability detection settings."""

    minimum_keyword_matches: int = 2
    fuzzy_matching: bool = True
    saturation_matches: int = 4
    custom_keywords: Mapping[str, Sequence[str]] = field(default_factory=dict)
    mandatory_capabilities: tuple[str, ...] = DEFAULT_MANDATORY

    def __post_init__(self) -> None:
        if self.minimum_keyword_matches < 1:
            raise ValueError(
                f"minimum_keyword_matches must be >= 1, got {self.minimum_keyword_matches}"
            )
        if self.saturation_matches < 1:
            raise ValueError(f"saturation_matches must be >= 1, got {self.saturation_matches}")


class CapabilityDetector:
    """Detect capabilities in agent content by keyword families."""

    def __init__(self, config: DetectionConfig | None = None) -> None:
        self.config = config or DetectionConfig()
        self.keywords: dict[str, tuple[str, ...]] = {
            **DEFAULT_KEYWORDS,
            **{
                cid: tuple(k.lower() for k in words)
                for cid, words in self.config.custom_keywords.items()
            },
        }
        self._patterns: dict[str, re.Pattern[str]] = {}
        if not self.config.fuzzy_matching:
            for words in self.keywords.values():
                for keyword in words:
                    if keyword not in self._patterns:
                        self._patterns[keyword] = re.compile(
                            rf"(?<!\w){re.escape(keyword)}(?!\w)"
                        )

    def _matches(self, keyword: str, content: str) -> bool:
        if self.config.fuzzy_matching:
            return keyword in content
        return self._patterns[keyword].search(content) is not None

    @staticmethod
    def _name_mentions(capability_id: str, name: str) -> bool:
        return (
            capability_id.replace("_", "-") in name
            or capability_id.replace("_", " ") in name
            or capability_id in name
        )

    def detect(self, content: str, agent_name: str) -> list[CapabilityDetection]:
        """Detect capabilities from agent content.

        Args:
            content: Raw agent content
            agent_name: Agent name, used for the single-match name rule

        Returns:
            Detected capabilities, mandatory capabilities always included
        """
        content_lower = content.lower()
        name_lower = agent_name.lower()
        detections: list[CapabilityDetection] = []

        for capability_id, words in self.keywords.items():
            matched = tuple(k for k in words if self._matches(k, content_lower))
            if not matched:
                continue

            if len(matched) >= self.config.minimum_keyword_matches:
                denominator = min(len(words), self.config.saturation_matches)
                detections.append(
                    CapabilityDetection(
                        capability_id=capability_id,
                        detection_confidence=min(1.0, len(matched) / denominator),
                        matched_keywords=matched,
                    )
                )
            elif self._name_mentions(capability_id, name_lower):
                detections.append(
                    CapabilityDetection(
                        capability_id=capability_id,
                        detection_confidence=NAME_MATCH_CONFIDENCE,
                        matched_keywords=(*matched, f"name:{agent_name}"),
                    )
                )

        detected_ids = {d.capability_id for d in detections}
        for capability_id in self.config.mandatory_capabilities:
            if capability_id not in detected_ids:
                detections.append(
                    CapabilityDetection(
                        capability_id=capability_id,
                        detection_confidence=1.0,
                        matched_keywords=("mandatory",),
                    )
                )

        return detections
