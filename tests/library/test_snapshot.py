"""Tests for loading property snapshots from YAML."""

import logging

import pytest

from netstate.dataplan import DataLeft, DataPlanType
from netstate.exceptions import SnapshotLoadError
from netstate.snapshot import Snapshot, load_snapshot, parse_snapshot

SNAPSHOT_YAML = """
devices:
  /device/wlan0:
    Type: wifi
    Powered: true
  /device/cellular0:
    Type: cellular
    Cellular.Carrier: Example Mobile
services:
  /service/wifi1:
    Type: wifi
    Name: HomeNet
    Security: psk
    State: online
    Device: /device/wlan0
  /service/cellular1:
    Type: cellular
    Name: Carrier
    State: idle
    Cellular.ActivationState: activated
remembered:
  /profile/user/wifi1:
    Type: wifi
    Name: HomeNet
    Security: psk
ip_configs:
  /device/wlan0:
    - address: 192.168.1.20
      netmask: 255.255.255.0
data_plans:
  /service/cellular1:
    - name: Base
      plan_type: metered_base
      start: 2024-01-01T00:00:00+00:00
      end: 2099-01-01T00:00:00+00:00
      data_bytes: 1073741824
      bytes_used: 52428800
"""


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / "home.yaml"
    path.write_text(SNAPSHOT_YAML)
    return path


class TestLoadSnapshot:
    """Tests for load_snapshot()."""

    def test_load(self, snapshot_file):
        snapshot = load_snapshot(str(snapshot_file))

        assert set(snapshot.devices) == {"/device/wlan0", "/device/cellular0"}
        assert snapshot.services["/service/wifi1"]["Name"] == "HomeNet"
        assert list(snapshot.remembered) == ["/profile/user/wifi1"]
        plan = snapshot.data_plans["/service/cellular1"][0]
        assert plan.plan_type is DataPlanType.METERED_BASE
        assert plan.start.year == 2024

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_snapshot(str(tmp_path / "missing.yaml"))

    def test_directory(self, tmp_path):
        with pytest.raises(SnapshotLoadError, match="not a file"):
            load_snapshot(str(tmp_path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("services: [unclosed")
        with pytest.raises(SnapshotLoadError, match="Invalid YAML"):
            load_snapshot(str(path))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_snapshot(str(path)) == Snapshot()

    def test_root_must_be_dictionary(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(SnapshotLoadError, match="Root"):
            load_snapshot(str(path))


class TestParseSnapshot:
    """Tests for parse_snapshot() validation."""

    def test_section_must_be_dictionary(self):
        with pytest.raises(SnapshotLoadError, match="'services' must be a dictionary"):
            parse_snapshot({"services": ["a"]})

    def test_entry_must_be_dictionary(self):
        with pytest.raises(SnapshotLoadError, match="services./service/a"):
            parse_snapshot({"services": {"/service/a": "wifi"}})

    def test_ip_configs_must_be_list(self):
        with pytest.raises(SnapshotLoadError):
            parse_snapshot({"ip_configs": {"/device/wlan0": {"address": "1.2.3.4"}}})

    def test_invalid_data_plan(self):
        with pytest.raises(SnapshotLoadError, match="Invalid data plan"):
            parse_snapshot({"data_plans": {"/service/cell": [{"name": "x"}]}})

    def test_unknown_sections_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger="netstate"):
            snapshot = parse_snapshot({"services": {}, "extras": {}})
        assert snapshot.services == {}
        assert "extras" in caplog.text

    def test_empty_sections(self):
        snapshot = parse_snapshot({"services": None})
        assert snapshot.services == {}


class TestBuildLibrary:
    """Tests for replaying a snapshot through a library."""

    @pytest.mark.asyncio
    async def test_build_library(self, snapshot_file):
        library = await load_snapshot(str(snapshot_file)).build_library()

        wifi = library.find_network_by_path("/service/wifi1")
        assert wifi.ip_address == "192.168.1.20"
        assert library.find_remembered_network_by_unique_id(wifi.unique_id) is not None

        cellular = library.find_network_by_path("/service/cellular1")
        assert len(cellular.data_plans) == 1
        assert cellular.data_left is DataLeft.NORMAL

    @pytest.mark.asyncio
    async def test_empty_snapshot(self):
        library = await Snapshot().build_library()
        assert library.networks == []
        assert library.devices == []
