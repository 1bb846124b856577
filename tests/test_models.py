"""Tests for zonekit.models module."""

from __future__ import annotations

import dataclasses

import pytest

from zonekit.models import CommandResult, RunState, StepFailure, ZonePhase


class TestCommandResult:
    def test_ok(self):
        assert CommandResult(0, "", "").ok
        assert not CommandResult(3, "", "boom").ok


class TestRunState:
    def test_new_state_is_empty(self):
        state = RunState()
        assert state.is_empty()
        assert state.phase == ZonePhase.IDLE

    @pytest.mark.parametrize("field", ["zone_name", "zone_ip", "zone_port"])
    def test_any_resource_field_makes_state_non_empty(self, field):
        state = RunState(**{field: 1025 if field == "zone_port" else "x"})
        assert not state.is_empty()

    def test_connection_fields_alone_count_as_empty(self):
        assert RunState(hostname="gz", port=2222, username="kitchen").is_empty()

    def test_to_dict_drops_unset_fields(self):
        state = RunState(zone_name="demo", phase=ZonePhase.ZONE_BOOTED)
        assert state.to_dict() == {"zone_name": "demo", "phase": "zone_booted"}

    def test_dict_round_trip_keeps_failures(self):
        state = RunState(
            zone_name="demo",
            zone_ip="10.0.0.5",
            zone_port=4022,
            phase=ZonePhase.NAT_REMOVED,
            failures=[StepFailure(step="zoneadm halt", exit_status=1, detail="not running")],
        )
        restored = RunState.from_dict(state.to_dict())
        assert restored == state
        assert isinstance(restored.failures[0], StepFailure)

    def test_from_dict_ignores_unknown_keys(self):
        restored = RunState.from_dict({"zone_name": "demo", "legacy": True})
        assert restored.zone_name == "demo"

    def test_from_dict_rejects_unknown_phase(self):
        with pytest.raises(ValueError):
            RunState.from_dict({"phase": "exploded"})


class TestZoneConfig:
    def test_snapshot_is_frozen(self, default_zone_config):
        with pytest.raises(dataclasses.FrozenInstanceError):
            default_zone_config.zone_name = "other"  # type: ignore[misc]
