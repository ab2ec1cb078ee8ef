"""
Confidence Initializer: Tiered Trust for Capability Claims

Tiers:
    initial    blend of baseline and detection confidence
    validated  linear climb from the validated floor toward the proven ceiling
    proven     ceiling, reached after enough successful completions
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import ConfidenceTier, Recommendation, RecommendationPriority


@dataclass(frozen=True)
class ConfidenceConfig:
    """Confidence tier thresholds."""

    initial: float = 0.50
    validated: float = 0.75
    proven: float = 0.95
    completions_for_proven: int = 10
    baseline_weight: float = 0.7

    def __post_init__(self) -> None:
        for field_name in ["initial", "validated", "proven", "baseline_weight"]:
            value = getattr(self, field_name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{field_name} must be in [0.0, 1.0], got {value}")
        if not self.initial <= self.validated <= self.proven:
            raise ValueError(
                "confidence tiers must satisfy initial <= validated <= proven, got "
                f"{self.initial}, {self.validated}, {self.proven}"
            )
        if self.completions_for_proven < 1:
            raise ValueError(
                f"completions_for_proven must be >= 1, got {self.completions_for_proven}"
            )


class ConfidenceInitializer:
    """Assigns confidence levels from detection strength and track record."""

    def __init__(self, config: ConfidenceConfig | None = None) -> None:
        self.config = config or ConfidenceConfig()

    def tier(self, validated: bool = False, completions: int = 0) -> ConfidenceTier:
        if max(0, completions) >= self.config.completions_for_proven:
            return ConfidenceTier.PROVEN
        if validated:
            return ConfidenceTier.VALIDATED
        return ConfidenceTier.INITIAL

    def initialize_confidence(
        self,
        detection_confidence: float,
        validated: bool = False,
        completions: int = 0,
    ) -> float:
        """Compute a capability's confidence level.

        Args:
            detection_confidence: Detector score in [0, 1]
            validated: Whether a human or test run has validated the capability
            completions: Successful task completions on record

        Returns:
            Confidence level in [0, 1]
        """
        cfg = self.config
        completions = max(0, completions)
        tier = self.tier(validated, completions)

        detection = max(0.0, min(1.0, detection_confidence))
        blend = cfg.initial * cfg.baseline_weight + detection * (1.0 - cfg.baseline_weight)

        # Tier values are floors: a higher tier never scores below the blend.
        if tier is ConfidenceTier.PROVEN:
            value = max(blend, cfg.proven)
        elif tier is ConfidenceTier.VALIDATED:
            progress = completions / cfg.completions_for_proven
            value = max(blend, cfg.validated + (cfg.proven - cfg.validated) * progress)
        else:
            value = blend

        return max(0.0, min(1.0, value))

    def get_validation_recommendations(
        self, current_confidence: float, completions: int = 0
    ) -> list[Recommendation]:
        """Suggest next steps to raise confidence, highest priority first."""
        cfg = self.config
        completions = max(0, completions)
        recommendations: list[Recommendation] = []

        if current_confidence >= cfg.proven or completions >= cfg.completions_for_proven:
            return recommendations

        if current_confidence < cfg.validated:
            recommendations.append(
                Recommendation(
                    RecommendationPriority.HIGH,
                    "Seek validation: run the capability against a test suite "
                    "or request human review",
                )
            )
            if current_confidence < cfg.initial:
                recommendations.append(
                    Recommendation(
                        RecommendationPriority.MEDIUM,
                        "Add explicit capability descriptions to improve detection",
                    )
                )

        remaining = cfg.completions_for_proven - completions
        recommendations.append(
            Recommendation(
                RecommendationPriority.LOW
                if current_confidence < cfg.validated
                else RecommendationPriority.MEDIUM,
                f"Complete {remaining} more successful tasks to reach proven status",
            )
        )
        return recommendations
