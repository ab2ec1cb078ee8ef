"""Safety controls for agent delegation."""

from __future__ import annotations

from .firebreak import (
    CRITICAL_SYSTEM,
    DEPTH_EXCEEDED,
    EXTERNAL,
    HIGH_VALUE,
    DepthThresholds,
    EscalationConfig,
    LiabilityBands,
    LiabilityFirebreakEnforcer,
)
from .models import (
    BusinessImpact,
    EmergencyContact,
    EscalationRecord,
    EscalationRequest,
    FirebreakCheck,
    FirebreakContext,
    FirebreakResult,
    LiabilityLevel,
    OverrideAuthority,
    OverrideRequest,
    OverrideResult,
    OverrideStatus,
    Urgency,
    authority_rank,
    escalate_authority,
)

__all__ = [
    "BusinessImpact",
    "CRITICAL_SYSTEM",
    "DEPTH_EXCEEDED",
    "DepthThresholds",
    "EXTERNAL",
    "EmergencyContact",
    "EscalationConfig",
    "EscalationRecord",
    "EscalationRequest",
    "FirebreakCheck",
    "FirebreakContext",
    "FirebreakResult",
    "HIGH_VALUE",
    "LiabilityBands",
    "LiabilityFirebreakEnforcer",
    "LiabilityLevel",
    "OverrideAuthority",
    "OverrideRequest",
    "OverrideResult",
    "OverrideStatus",
    "Urgency",
    "authority_rank",
    "escalate_authority",
]
