"""Tests for the feature flag engine."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from trustroute.errors import FlagConfigError
from trustroute.flags import (
    EMERGENCY_MARKER,
    MASTER_SWITCH,
    FeatureFlagManager,
    FlagConfig,
    FlagContext,
    get_feature_flag_manager,
    initialize_feature_flags,
    is_delegation_enabled,
    is_feature_enabled,
    rollout_bucket,
)
from trustroute.flags import manager as manager_module


@pytest.fixture
def flags() -> FeatureFlagManager:
    """Manager with the master switch on."""
    return FeatureFlagManager({MASTER_SWITCH: True})


class TestMasterSwitch:
    """Test master and security flag behavior."""

    def test_master_off_by_default(self) -> None:
        manager = FeatureFlagManager()
        result = manager.is_enabled("reputation_tracking")

        assert result.enabled is False
        assert "Master" in result.reason

    def test_master_on_enables_defaults(self, flags: FeatureFlagManager) -> None:
        assert flags.is_enabled("reputation_tracking").enabled is True
        assert flags.is_enabled("predictive_routing").enabled is False

    def test_security_flags_always_on(self, flags: FeatureFlagManager) -> None:
        """Security flags stay on while the master is on, even if disabled."""
        flags.disable("security_monitoring", reason="noise")

        result = flags.is_enabled("security_monitoring")
        assert result.enabled is True
        assert result.override_source == "security"

    def test_security_flags_follow_master(self) -> None:
        assert FeatureFlagManager().is_enabled("permission_attenuation").enabled is False

    def test_unknown_flag(self, flags: FeatureFlagManager) -> None:
        result = flags.is_enabled("does_not_exist")

        assert result.enabled is False
        assert "No configuration" in result.reason


class TestEvaluationRules:
    """Test expiry, dependencies and targeting."""

    def test_expired_flag(self, flags: FeatureFlagManager) -> None:
        flags.enable(
            "predictive_routing",
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )

        result = flags.is_enabled("predictive_routing")
        assert result.enabled is False
        assert "expired" in result.reason

    def test_future_expiry_still_enabled(self, flags: FeatureFlagManager) -> None:
        flags.enable("predictive_routing", expires_at=datetime.now(timezone.utc) + timedelta(days=1))
        assert flags.is_enabled("predictive_routing").enabled is True

    def test_disabled_dependency(self, flags: FeatureFlagManager) -> None:
        """A flag is off while any dependency is off, and the reason names it."""
        flags.configure(
            FlagConfig("capability_learning", enabled=True, dependencies=["predictive_routing"])
        )

        result = flags.is_enabled("capability_learning")
        assert result.enabled is False
        assert "predictive_routing" in result.reason

        flags.enable("predictive_routing")
        assert flags.is_enabled("capability_learning").enabled is True

    def test_user_allow_list(self, flags: FeatureFlagManager) -> None:
        """Listed users are enabled; other users are not."""
        flags.enable("predictive_routing", users=["vip"], rollout_percentage=0)

        assert flags.is_enabled("predictive_routing", FlagContext(user_id="vip")).enabled is True
        other = flags.is_enabled("predictive_routing", FlagContext(user_id="someone"))
        assert other.enabled is False
        assert "not in allowed users" in other.reason

    def test_environment_targeting(self, flags: FeatureFlagManager) -> None:
        flags.enable("predictive_routing", environments=["staging"])

        prod = flags.is_enabled("predictive_routing", FlagContext(environment="production"))
        staging = flags.is_enabled("predictive_routing", FlagContext(environment="staging"))
        assert prod.enabled is False
        assert "production" in prod.reason
        assert staging.enabled is True

    def test_tenant_targeting(self, flags: FeatureFlagManager) -> None:
        flags.enable("multi_tenancy", tenants=["acme"])

        assert flags.is_enabled("multi_tenancy", FlagContext(tenant_id="acme")).enabled is True
        assert flags.is_enabled("multi_tenancy", FlagContext(tenant_id="other")).enabled is False

    def test_rollout_is_stable(self, flags: FeatureFlagManager) -> None:
        """The same user always gets the same rollout decision."""
        flags.enable("predictive_routing", rollout_percentage=50)
        ctx = FlagContext(user_id="user-42")

        first = flags.is_enabled("predictive_routing", ctx).enabled
        assert all(flags.is_enabled("predictive_routing", ctx).enabled == first for _ in range(20))

    def test_rollout_distribution(self, flags: FeatureFlagManager) -> None:
        """Roughly the configured share of users is enabled."""
        flags.enable("predictive_routing", rollout_percentage=50)

        enabled = sum(
            flags.is_enabled("predictive_routing", FlagContext(user_id=f"user-{i}")).enabled
            for i in range(1000)
        )
        assert 400 < enabled < 600

    def test_rollout_bounds(self, flags: FeatureFlagManager) -> None:
        flags.enable("predictive_routing", rollout_percentage=0)
        assert not any(
            flags.is_enabled("predictive_routing", FlagContext(user_id=f"u{i}")).enabled
            for i in range(100)
        )

        flags.enable("predictive_routing", rollout_percentage=100)
        assert all(
            flags.is_enabled("predictive_routing", FlagContext(user_id=f"u{i}")).enabled
            for i in range(100)
        )

    def test_rollout_bucket_range(self) -> None:
        assert 0.0 <= rollout_bucket("flag", "subject") < 100.0
        assert rollout_bucket("flag", "subject") == rollout_bucket("flag", "subject")


class TestMutation:
    """Test configure, enable, disable and the emergency killswitch."""

    def test_enable_stamps_metadata(self, flags: FeatureFlagManager) -> None:
        config = flags.enable("predictive_routing", reason="pilot", actor="ops")

        assert config.metadata is not None
        assert config.metadata.reason == "pilot"
        assert config.metadata.actor == "ops"

    def test_enable_keeps_existing_targeting(self, flags: FeatureFlagManager) -> None:
        flags.enable("predictive_routing", environments=["staging"])
        flags.disable("predictive_routing")
        config = flags.enable("predictive_routing")

        assert config.environments == ["staging"]

    def test_invalid_rollout_rejected(self, flags: FeatureFlagManager) -> None:
        with pytest.raises(FlagConfigError):
            flags.configure(FlagConfig("predictive_routing", enabled=True, rollout_percentage=150))
        with pytest.raises(ValueError):
            flags.enable("predictive_routing", rollout_percentage=-1)

        assert flags.get_config("predictive_routing").rollout_percentage is None

    def test_configure_stores_a_copy(self, flags: FeatureFlagManager) -> None:
        """Later edits to a configured object cannot bypass validation."""
        config = FlagConfig("predictive_routing", enabled=True, rollout_percentage=50)
        returned = flags.configure(config)
        config.rollout_percentage = 150
        returned.enabled = False
        flags.get_config("predictive_routing").users.append("intruder")

        stored = flags.get_config("predictive_routing")
        assert stored.rollout_percentage == 50
        assert stored.enabled is True
        assert stored.users == []

    def test_emergency_disable(self, flags: FeatureFlagManager) -> None:
        """The killswitch turns off the master and every flag."""
        flags.emergency_disable("incident 42", actor="oncall")

        assert flags.is_enabled(MASTER_SWITCH).enabled is False
        assert flags.is_enabled("security_monitoring").enabled is False
        for name in ("reputation_tracking", MASTER_SWITCH, "multi_tenancy"):
            config = flags.get_config(name)
            assert config.enabled is False
            assert config.metadata.reason == f"{EMERGENCY_MARKER}: incident 42"

    def test_get_all_flags(self, flags: FeatureFlagManager) -> None:
        evaluations = flags.get_all_flags()

        assert evaluations[MASTER_SWITCH].enabled is True
        assert evaluations["multi_tenancy"].enabled is False
        assert len(evaluations) == 12


class TestImportExport:
    def test_export_import(self, flags: FeatureFlagManager) -> None:
        """Imported configuration evaluates the same as the exported one."""
        flags.enable("predictive_routing", users=["vip"], reason="beta")
        exported = flags.export_config()

        restored = FeatureFlagManager()
        restored.import_config(exported)

        ctx = FlagContext(user_id="vip")
        assert restored.is_enabled("predictive_routing", ctx) == flags.is_enabled(
            "predictive_routing", ctx
        )
        assert restored.get_config("predictive_routing").metadata.reason == "beta"

    def test_import_is_wholesale(self, flags: FeatureFlagManager) -> None:
        flags.import_config({MASTER_SWITCH: {"enabled": True}})

        assert flags.get_config("reputation_tracking") is None
        assert flags.is_enabled(MASTER_SWITCH).enabled is True

    def test_invalid_import_keeps_state(self, flags: FeatureFlagManager) -> None:
        with pytest.raises(FlagConfigError):
            flags.import_config({"predictive_routing": {"rollout_percentage": 200}})

        assert flags.get_config("reputation_tracking") is not None


class TestGlobalHandle:
    """Test the explicit process-wide initializer."""

    def test_uninitialized_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(manager_module, "_manager", None)
        with pytest.raises(RuntimeError):
            get_feature_flag_manager()

    def test_initialize(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(manager_module, "_manager", None)
        manager = initialize_feature_flags({MASTER_SWITCH: True})

        assert get_feature_flag_manager() is manager
        assert is_delegation_enabled() is True
        assert is_feature_enabled("chain_tracking") is True
        assert is_feature_enabled("predictive_routing") is False
