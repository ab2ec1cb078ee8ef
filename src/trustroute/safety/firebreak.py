"""Liability firebreaks for agent-to-agent delegation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Final, Mapping

from trustroute._logging import get_logger
from trustroute.errors import OverrideError

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
    utc_now,
)

logger = get_logger("LiabilityFirebreakEnforcer")

DEPTH_EXCEEDED: Final[str] = "delegation_depth_exceeded"
HIGH_VALUE: Final[str] = "high_value_delegation"
CRITICAL_SYSTEM: Final[str] = "critical_system_delegation"
EXTERNAL: Final[str] = "external_delegation"

OVERRIDE_WINDOWS: Final[dict[Urgency, timedelta]] = {
    Urgency.EMERGENCY: timedelta(hours=1),
    Urgency.URGENT: timedelta(hours=4),
    Urgency.ROUTINE: timedelta(hours=24),
}

_URGENCY_ORDER: Final[tuple[Urgency, ...]] = tuple(Urgency)
_IMPACT_ORDER: Final[tuple[BusinessImpact, ...]] = tuple(BusinessImpact)


@dataclass(frozen=True)
class DepthThresholds:
    supervisor: int = 3
    manager: int = 5
    executive: int = 7

    def __post_init__(self) -> None:
        if not 0 <= self.supervisor <= self.manager <= self.executive:
            raise ValueError(
                "depth thresholds must satisfy 0 <= supervisor <= manager <= executive, got "
                f"{self.supervisor}, {self.manager}, {self.executive}"
            )


@dataclass(frozen=True)
class LiabilityBands:
    """Depth/value cut-offs for liability assignment."""

    none_max_depth: int = 1
    none_max_value: float = 100.0
    shared_min_depth: int = 4
    shared_min_value: float = 5000.0
    full_min_value: float = 50000.0


DEFAULT_EMERGENCY_CONTACTS: Final[tuple[EmergencyContact, ...]] = (
    EmergencyContact(OverrideAuthority.SUPERVISOR, "supervisor@trustroute.local", 30),
    EmergencyContact(OverrideAuthority.MANAGER, "manager@trustroute.local", 60),
    EmergencyContact(OverrideAuthority.EXECUTIVE, "executive@trustroute.local", 120),
)


@dataclass(frozen=True)
class EscalationConfig:
    """Firebreak thresholds and escalation contacts."""

    depth_thresholds: DepthThresholds = field(default_factory=DepthThresholds)
    high_value_limit: float = 100000.0
    critical_system_approval: bool = True
    external_delegation_approval: bool = True
    max_emergency_depth: int = 10
    emergency_contacts: tuple[EmergencyContact, ...] = DEFAULT_EMERGENCY_CONTACTS
    liability: LiabilityBands = field(default_factory=LiabilityBands)

    def __post_init__(self) -> None:
        if self.high_value_limit < 0:
            raise ValueError(f"high_value_limit must be >= 0, got {self.high_value_limit}")
        if self.max_emergency_depth < self.depth_thresholds.executive:
            raise ValueError(
                f"max_emergency_depth must be >= executive threshold, got {self.max_emergency_depth}"
            )


class LiabilityFirebreakEnforcer:
    """Blocks risky delegations until the right authority signs off."""

    def __init__(self, config: EscalationConfig | None = None) -> None:
        """Initialize the enforcer.

        Args:
            config: Thresholds and contacts (defaults to EscalationConfig())
        """
        self.config = config or EscalationConfig()
        self._overrides: dict[str, OverrideResult] = {}
        self._escalations: list[EscalationRecord] = []
        self._stats: dict[str, Any] = {
            "total_validations": 0,
            "firebreaks_passed": 0,
            "firebreaks_blocked": 0,
            "block_reasons": {},
            "liability_distribution": {level.value: 0 for level in LiabilityLevel},
        }

    # ── Individual gates ───────────────────────────────────────────────

    def check_depth(self, context: FirebreakContext) -> FirebreakCheck:
        if context.delegation_depth > self.config.depth_thresholds.executive:
            return FirebreakCheck(
                passed=False,
                firebreak=DEPTH_EXCEEDED,
                required_authority=OverrideAuthority.EMERGENCY,
            )
        return FirebreakCheck(passed=True)

    def check_value(self, context: FirebreakContext, approved: int = -1) -> FirebreakCheck:
        if (
            context.estimated_value > self.config.high_value_limit
            and approved < authority_rank(OverrideAuthority.MANAGER)
        ):
            return FirebreakCheck(
                passed=False, firebreak=HIGH_VALUE, required_authority=OverrideAuthority.MANAGER
            )
        return FirebreakCheck(passed=True)

    def check_critical_systems(
        self, context: FirebreakContext, approved: int = -1
    ) -> FirebreakCheck:
        if (
            context.involves_critical_systems
            and self.config.critical_system_approval
            and approved < authority_rank(OverrideAuthority.MANAGER)
        ):
            return FirebreakCheck(
                passed=False,
                firebreak=CRITICAL_SYSTEM,
                required_authority=OverrideAuthority.MANAGER,
            )
        return FirebreakCheck(passed=True)

    def check_external(self, context: FirebreakContext, approved: int = -1) -> FirebreakCheck:
        if (
            context.is_external_delegation
            and self.config.external_delegation_approval
            and approved < authority_rank(OverrideAuthority.EXECUTIVE)
        ):
            return FirebreakCheck(
                passed=False, firebreak=EXTERNAL, required_authority=OverrideAuthority.EXECUTIVE
            )
        return FirebreakCheck(passed=True)

    def check_all(
        self, from_agent: str, to_agent: str, context: FirebreakContext
    ) -> list[FirebreakCheck]:
        """Run every gate against a sanitized context."""
        approved = self._approved_rank(from_agent, to_agent)
        return [
            self.check_depth(context),
            self.check_value(context, approved),
            self.check_critical_systems(context, approved),
            self.check_external(context, approved),
        ]

    # ── Enforcement ────────────────────────────────────────────────────

    def enforce_firebreaks(
        self,
        from_agent: str,
        to_agent: str,
        context: FirebreakContext | Mapping[str, Any],
    ) -> FirebreakResult:
        """Decide whether a delegation may proceed.

        Args:
            from_agent: Delegating agent
            to_agent: Receiving agent
            context: Delegation facts; a mapping is converted and sanitized

        Returns:
            Firebreak result with blocking gates, liability and authority
        """
        if not isinstance(context, FirebreakContext):
            context = FirebreakContext.from_mapping(context)
        ctx = context.sanitized()

        blocking = [c for c in self.check_all(from_agent, to_agent, ctx) if not c.passed]
        required = escalate_authority(*(c.required_authority for c in blocking))
        liability = self.assess_liability(ctx)

        chain = ctx.chain_agents or [a for a in (from_agent, to_agent) if a]
        result = FirebreakResult(
            firebreaks_passed=not blocking,
            blocking_firebreaks=[c.firebreak for c in blocking if c.firebreak],
            liability_level=liability,
            chain_length=max(1, len(chain)),
            manual_override_available=bool(blocking),
            required_authority=required,
        )

        self._record(result)
        log = logger.warning if blocking else logger.info
        log(
            "firebreak_enforced",
            from_agent=from_agent,
            to_agent=to_agent,
            passed=result.firebreaks_passed,
            blocking=result.blocking_firebreaks,
            liability=liability.value,
            required_authority=required.value,
        )
        return result

    def assess_liability(self, context: FirebreakContext) -> LiabilityLevel:
        """Band a sanitized context into a liability level."""
        bands = self.config.liability
        depth = context.delegation_depth
        value = context.estimated_value

        if (
            context.involves_critical_systems
            or context.is_external_delegation
            or value > self.config.high_value_limit
            or value > bands.full_min_value
            or (depth > self.config.depth_thresholds.executive and value > bands.shared_min_value)
        ):
            return LiabilityLevel.FULL
        if depth <= bands.none_max_depth and value < bands.none_max_value:
            return LiabilityLevel.NONE
        if depth >= bands.shared_min_depth or value > bands.shared_min_value:
            return LiabilityLevel.SHARED
        return LiabilityLevel.LIMITED

    def required_authority(self, context: FirebreakContext) -> OverrideAuthority:
        """Authority needed to override a delegation with this context."""
        ctx = context.sanitized()
        thresholds = self.config.depth_thresholds
        depth = ctx.delegation_depth

        if depth <= thresholds.supervisor:
            levels = [OverrideAuthority.AGENT]
        elif depth <= thresholds.manager:
            levels = [OverrideAuthority.SUPERVISOR]
        elif depth <= thresholds.executive:
            levels = [OverrideAuthority.MANAGER]
        else:
            levels = [OverrideAuthority.EMERGENCY]

        if ctx.estimated_value > self.config.high_value_limit:
            levels.append(OverrideAuthority.MANAGER)
        if ctx.involves_critical_systems and self.config.critical_system_approval:
            levels.append(OverrideAuthority.MANAGER)
        if ctx.is_external_delegation and self.config.external_delegation_approval:
            levels.append(OverrideAuthority.EXECUTIVE)
        return escalate_authority(*levels)

    def _record(self, result: FirebreakResult) -> None:
        stats = self._stats
        stats["total_validations"] += 1
        if result.firebreaks_passed:
            stats["firebreaks_passed"] += 1
        else:
            stats["firebreaks_blocked"] += 1
            for name in result.blocking_firebreaks:
                stats["block_reasons"][name] = stats["block_reasons"].get(name, 0) + 1
        stats["liability_distribution"][result.liability_level.value] += 1

    # ── Overrides ──────────────────────────────────────────────────────

    def request_override(self, request: OverrideRequest) -> OverrideResult:
        """File a manual override request.

        Insufficient authority is returned as a rejected result, not raised.
        """
        now = utc_now()
        given = OverrideAuthority(request.authority_level)
        required = self.required_authority(request.context)
        urgency = Urgency(request.urgency)

        result = OverrideResult(
            override_id=f"ovr_{uuid.uuid4().hex[:12]}",
            status=OverrideStatus.PENDING,
            requesting_agent=request.requesting_agent,
            target_agent=request.target_agent,
            authority_level=given,
            required_authority=required,
            context=request.context,
            justification=request.justification,
            urgency=urgency,
            business_impact=BusinessImpact(request.business_impact),
            expires_at=request.expires_at or now + OVERRIDE_WINDOWS[urgency],
            created_at=now,
        )

        if authority_rank(given) < authority_rank(required):
            result.status = OverrideStatus.REJECTED
            result.rejection_reason = (
                f"Insufficient authority level: {given.value}. Required: {required.value}"
            )
        else:
            result.required_approvals = [required]

        self._overrides[result.override_id] = result
        logger.info(
            "override_requested",
            override_id=result.override_id,
            requesting_agent=request.requesting_agent,
            target_agent=request.target_agent,
            status=result.status.value,
            required_authority=required.value,
        )
        return result

    def approve_override(
        self,
        override_id: str,
        approver: str,
        approver_authority: OverrideAuthority | str,
    ) -> OverrideResult:
        """Approve a pending override.

        Raises:
            OverrideError: If the override is unknown, not pending, expired,
                or the approver's authority is below the required level
        """
        override = self._overrides.get(override_id)
        if override is None:
            raise OverrideError(f"Override not found: {override_id}")
        if override.status is not OverrideStatus.PENDING:
            raise OverrideError(
                f"Override {override_id} is not pending (status: {override.status.value})"
            )
        if utc_now() >= override.expires_at:
            override.status = OverrideStatus.EXPIRED
            raise OverrideError(f"Override {override_id} has expired")

        authority = OverrideAuthority(approver_authority)
        if authority_rank(authority) < authority_rank(override.required_authority):
            raise OverrideError(
                f"Insufficient authority level: {authority.value}. "
                f"Required: {override.required_authority.value}"
            )

        override.status = OverrideStatus.APPROVED
        override.approved_by = approver
        override.approved_at = utc_now()
        override.required_approvals = []
        logger.info(
            "override_approved",
            override_id=override_id,
            approver=approver,
            authority=authority.value,
        )
        return override

    def get_override(self, override_id: str) -> OverrideResult | None:
        return self._overrides.get(override_id)

    def get_pending_overrides(self) -> list[OverrideResult]:
        """Pending overrides, most urgent and most impactful first."""
        pending = [o for o in self._overrides.values() if o.status is OverrideStatus.PENDING]
        pending.sort(
            key=lambda o: (
                _URGENCY_ORDER.index(o.urgency),
                _IMPACT_ORDER.index(o.business_impact),
                o.created_at,
            )
        )
        return pending

    def cleanup_expired_overrides(self, now: datetime | None = None) -> int:
        """Mark pending overrides past their expiry as expired."""
        now = now or utc_now()
        expired = 0
        for override in self._overrides.values():
            if override.status is OverrideStatus.PENDING and now >= override.expires_at:
                override.status = OverrideStatus.EXPIRED
                expired += 1
        if expired:
            logger.info("overrides_expired", count=expired)
        return expired

    def _approved_rank(self, from_agent: str, to_agent: str) -> int:
        now = utc_now()
        ranks = [
            authority_rank(o.required_authority)
            for o in self._overrides.values()
            if o.status is OverrideStatus.APPROVED
            and o.requesting_agent == from_agent
            and o.target_agent == to_agent
            and now < o.expires_at
        ]
        return max(ranks, default=-1)

    # ── Escalation ─────────────────────────────────────────────────────

    def process_emergency_escalation(self, request: EscalationRequest) -> EscalationRecord:
        """Record an emergency escalation and notify the matching contact."""
        contact = self._select_contact(request.context)
        exceeds = (
            request.requested_bypass_depth is not None
            and request.requested_bypass_depth > self.config.max_emergency_depth
        )
        record = EscalationRecord(
            escalation_id=f"esc_{uuid.uuid4().hex[:12]}",
            agent_id=request.agent_id,
            emergency_level=request.emergency_level,
            reason=request.reason,
            emergency_contact=contact,
            contact_notified=contact is not None,
            exceeds_emergency_depth=exceeds,
        )
        self._escalations.append(record)
        logger.warning(
            "emergency_escalation",
            escalation_id=record.escalation_id,
            agent_id=request.agent_id,
            emergency_level=request.emergency_level,
            contact=contact.contact_id if contact else None,
            exceeds_emergency_depth=exceeds,
        )
        return record

    def _select_contact(self, context: FirebreakContext | None) -> EmergencyContact | None:
        contacts = self.config.emergency_contacts
        if not contacts:
            return None
        if context is None:
            return contacts[0]
        needed = authority_rank(self.required_authority(context))
        for contact in contacts:
            if authority_rank(contact.authority) == needed:
                return contact
        for contact in contacts:
            if authority_rank(contact.authority) >= needed:
                return contact
        return contacts[-1]

    def get_escalations(self) -> list[EscalationRecord]:
        return list(self._escalations)

    # ── Stats ──────────────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """Get enforcement statistics."""
        return {
            "total_validations": self._stats["total_validations"],
            "firebreaks_passed": self._stats["firebreaks_passed"],
            "firebreaks_blocked": self._stats["firebreaks_blocked"],
            "block_reasons": dict(self._stats["block_reasons"]),
            "liability_distribution": dict(self._stats["liability_distribution"]),
            "pending_overrides": len(self.get_pending_overrides()),
            "escalations": len(self._escalations),
        }
