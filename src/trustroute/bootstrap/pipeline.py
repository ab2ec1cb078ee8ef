"""
Capability Bootstrap: Source to Manifest

Runs analyze -> detect -> initialize confidence for each agent source and
assembles a registry-ready manifest with warnings and suggestions.
"""

from __future__ import annotations

import re
from typing import Final, Iterable

from trustroute._logging import get_logger
from trustroute.registry.models import CapabilityEntry, CapabilityManifest

from .analyzer import UNKNOWN_AGENT, AgentAnalyzer
from .confidence import ConfidenceConfig, ConfidenceInitializer
from .detector import CapabilityDetector, DetectionConfig
from .models import AgentSource, BootstrapResult, CapabilityDetection

logger = get_logger("CapabilityBootstrap")

LOW_CONFIDENCE_THRESHOLD: Final[float] = 0.60
DEFAULT_SPECIALIZATION_THRESHOLD: Final[float] = 0.5


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or UNKNOWN_AGENT


class CapabilityBootstrap:
    """Builds capability manifests from agent definitions."""

    def __init__(
        self,
        detection_config: DetectionConfig | None = None,
        confidence_config: ConfidenceConfig | None = None,
        specialization_threshold: float = DEFAULT_SPECIALIZATION_THRESHOLD,
    ) -> None:
        """Initialize the pipeline.

        Args:
            detection_config: Keyword detection settings
            confidence_config: Confidence tier thresholds
            specialization_threshold: Minimum detection confidence for a
                capability to be listed as a specialization
        """
        if not 0.0 <= specialization_threshold <= 1.0:
            raise ValueError(
                f"specialization_threshold must be in [0.0, 1.0], got {specialization_threshold}"
            )
        self.analyzer = AgentAnalyzer()
        self.detector = CapabilityDetector(detection_config)
        self.initializer = ConfidenceInitializer(confidence_config)
        self.specialization_threshold = specialization_threshold

    def bootstrap(
        self,
        source: AgentSource,
        validated: bool = False,
        completions: int = 0,
    ) -> BootstrapResult:
        """Bootstrap one agent source into a manifest.

        Args:
            source: Agent source variant
            validated: Whether the agent's capabilities have been validated
            completions: Successful task completions on record

        Returns:
            Bootstrap result with manifest, detections, warnings and suggestions
        """
        agent = self.analyzer.analyze(source)
        detections = self.detector.detect(agent.content, agent.name)

        capabilities = [
            CapabilityEntry(
                capability_id=d.capability_id,
                confidence_level=self.initializer.initialize_confidence(
                    d.detection_confidence, validated=validated, completions=completions
                ),
                metadata={"matched_keywords": list(d.matched_keywords)},
            )
            for d in detections
        ]
        overall = (
            sum(c.confidence_level for c in capabilities) / len(capabilities)
            if capabilities
            else 0.0
        )

        agent_id = slugify(agent.name)
        manifest = CapabilityManifest(
            agent_id=agent_id,
            agent_name=agent.name,
            capabilities=capabilities,
            overall_confidence=overall,
            specializations=self._specializations(detections),
            metadata={
                "description": agent.description,
                "source": type(source).__name__,
                "tier": self.initializer.tier(validated, completions).value,
            },
        )

        warnings: list[str] = []
        if agent.name == UNKNOWN_AGENT:
            warnings.append("Agent name could not be determined; using 'unknown-agent'")

        result = BootstrapResult(
            agent_id=agent_id,
            manifest=manifest,
            detected_capabilities=detections,
            warnings=warnings,
            suggestions=self._suggestions(agent.description, detections, overall, completions),
        )
        logger.info(
            "agent_bootstrapped",
            agent_id=agent_id,
            capabilities=len(capabilities),
            overall_confidence=round(overall, 3),
        )
        return result

    def bootstrap_batch(self, sources: Iterable[AgentSource]) -> list[BootstrapResult]:
        """Bootstrap many sources; a failing source is logged and skipped."""
        results: list[BootstrapResult] = []
        for index, source in enumerate(sources):
            try:
                results.append(self.bootstrap(source))
            except Exception as exc:
                logger.warning(
                    "bootstrap_source_failed",
                    index=index,
                    source=type(source).__name__,
                    error=str(exc),
                )
        return results

    def _specializations(self, detections: list[CapabilityDetection]) -> set[str]:
        return {
            d.capability_id
            for d in detections
            if not d.is_mandatory_fill
            and d.detection_confidence >= self.specialization_threshold
        }

    def _suggestions(
        self,
        description: str,
        detections: list[CapabilityDetection],
        overall: float,
        completions: int,
    ) -> list[str]:
        suggestions: list[str] = []
        if not description:
            suggestions.append("Add a description to improve capability detection")

        mandatory = set(self.detector.config.mandatory_capabilities)
        if all(d.capability_id in mandatory for d in detections):
            suggestions.append(
                "Only mandatory capabilities detected; describe the agent's skills explicitly"
            )

        if overall < LOW_CONFIDENCE_THRESHOLD:
            suggestions.append(
                f"Overall confidence is low ({overall:.2f}); "
                "validate capabilities to increase trust"
            )

        suggestions.extend(
            r.message
            for r in self.initializer.get_validation_recommendations(overall, completions)
        )
        return suggestions


def bootstrap_agent(
    source: AgentSource, validated: bool = False, completions: int = 0
) -> BootstrapResult:
    """Bootstrap one source with a default pipeline."""
    return CapabilityBootstrap().bootstrap(source, validated=validated, completions=completions)


def bootstrap_agents(sources: Iterable[AgentSource]) -> list[BootstrapResult]:
    """Bootstrap many sources with a default pipeline."""
    return CapabilityBootstrap().bootstrap_batch(sources)
