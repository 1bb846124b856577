"""Tests for zonekit.state module."""

from __future__ import annotations

import pytest
import yaml

from zonekit.exceptions import ZoneError
from zonekit.models import RunState, StepFailure, ZonePhase
from zonekit.state import StateStore


class TestStateStore:
    def test_missing_file_loads_empty_state(self, tmp_path):
        state = StateStore(tmp_path / "default.yml").load()
        assert state.is_empty()

    def test_save_and_load(self, tmp_path):
        store = StateStore(tmp_path / ".kitchen" / "default.yml")
        store.save(
            RunState(
                zone_name="demo",
                zone_ip="10.0.0.5",
                zone_port=4022,
                hostname="gz",
                port=4022,
                username="kitchen",
                phase=ZonePhase.NETWORK_READY,
            )
        )
        data = yaml.safe_load(store.path.read_text())
        assert data["zone_name"] == "demo"
        assert data["phase"] == "network_ready"

        loaded = store.load()
        assert loaded.zone_port == 4022
        assert loaded.phase == ZonePhase.NETWORK_READY

    def test_empty_state_removes_file(self, tmp_path):
        store = StateStore(tmp_path / "default.yml")
        store.save(RunState(zone_name="demo"))
        assert store.path.exists()
        store.save(RunState(failures=[StepFailure("zoneadm halt", 1, "x")]))
        assert not store.path.exists()

    def test_clear_missing_file(self, tmp_path):
        StateStore(tmp_path / "default.yml").clear()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "default.yml"
        path.write_text("zone_name: [oops\n")
        with pytest.raises(ZoneError, match="invalid YAML"):
            StateStore(path).load()

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "default.yml"
        path.write_text("- demo\n")
        with pytest.raises(ZoneError, match="must contain a mapping"):
            StateStore(path).load()

    def test_malformed_phase(self, tmp_path):
        path = tmp_path / "default.yml"
        path.write_text("zone_name: demo\nphase: melted\n")
        with pytest.raises(ZoneError, match="malformed"):
            StateStore(path).load()
