"""Unit tests for property parsing."""

import pytest

from netstate.certificates import CertificatePattern
from netstate.device import NetworkDevice
from netstate.models import (
    ActivationState,
    ClientCertType,
    ConnectionErrorCode,
    ConnectionSecurity,
    ConnectionState,
    DeviceType,
    EAPPhase2Auth,
    NetworkTechnology,
    PropertyIndex,
    ProviderType,
    SimLockState,
    SimPinRequire,
)
from netstate.network import CellularNetwork, EthernetNetwork, VirtualNetwork, WifiNetwork
from netstate.parser import DEVICE_PARSER, IGNORED, ParseResult, apply_property, parser_for


def snapshot(network):
    """Observable state of a network, for before/after comparison."""
    return network.to_dict(), dict(network.property_map), network.unique_id


class TestUnknownProperties:
    """Tests for keys and values the parser does not understand."""

    @pytest.mark.parametrize(
        "network",
        [
            EthernetNetwork("/service/eth"),
            WifiNetwork("/service/wifi"),
            CellularNetwork("/service/cell"),
            VirtualNetwork("/service/vpn"),
        ],
    )
    def test_unknown_key_leaves_network_untouched(self, network):
        before = snapshot(network)

        update = apply_property(network, "Vendor.Frobnicate", 42)

        assert update is IGNORED
        assert not update.handled
        assert snapshot(network) == before

    @pytest.mark.parametrize(
        "key,value",
        [
            ("State", "levitating"),
            ("State", 3),
            ("AutoConnect", "yes"),
            ("Strength", "80"),
            ("Security", "rot13"),
            ("UIData", "{not json"),
            ("Type", "cellular"),
        ],
    )
    def test_malformed_value_ignored(self, key, value):
        """Test a value of the wrong shape is ignored, not half-applied."""
        wifi = WifiNetwork("/service/wifi")
        before = snapshot(wifi)

        update = apply_property(wifi, key, value)

        assert update.result is ParseResult.IGNORED
        assert snapshot(wifi) == before

    def test_cellular_key_on_wifi_ignored(self):
        wifi = WifiNetwork("/service/wifi")
        assert apply_property(wifi, "Cellular.ActivationState", "activated") is IGNORED


class TestTypedFields:
    """Tests for properties with typed fields."""

    def test_field_updated(self):
        network = EthernetNetwork("/service/eth")
        update = apply_property(network, "AutoConnect", True)

        assert update.handled
        assert update.changed
        assert update.index is PropertyIndex.AUTO_CONNECT
        assert network.auto_connect is True

    def test_same_value_not_changed(self):
        network = EthernetNetwork("/service/eth")
        apply_property(network, "Priority", 1)
        update = apply_property(network, "Priority", 1)
        assert update.handled
        assert not update.changed

    def test_error_unknown_value(self):
        """Test unrecognized error strings map to UNKNOWN."""
        network = EthernetNetwork("/service/eth")
        apply_property(network, "Error", "flux-capacitor")
        assert network.error is ConnectionErrorCode.UNKNOWN

    def test_ui_data_from_json(self):
        network = EthernetNetwork("/service/eth")
        apply_property(network, "UIData", '{"onc_source": "device_policy"}')
        assert network.ui_data == {"onc_source": "device_policy"}


class TestPropertyMap:
    """Tests for properties stored without a typed field."""

    def test_set_and_delete(self):
        network = EthernetNetwork("/service/eth")

        update = apply_property(network, "GUID", "abc-123")
        assert update.changed
        assert network.get_property(PropertyIndex.GUID) == "abc-123"

        update = apply_property(network, "GUID", None)
        assert update.changed
        assert not network.has_property(PropertyIndex.GUID)

    def test_delete_missing_is_not_a_change(self):
        network = EthernetNetwork("/service/eth")
        update = apply_property(network, "GUID", None)
        assert update.handled
        assert not update.changed

    def test_map_value_is_copied(self):
        network = EthernetNetwork("/service/eth")
        config = {"Address": "10.0.0.2"}
        apply_property(network, "IPConfig", config)
        config["Address"] = "changed"
        assert network.get_property(PropertyIndex.IP_CONFIG) == {"Address": "10.0.0.2"}

    def test_wifi_bssid_in_map(self):
        wifi = WifiNetwork("/service/wifi")
        apply_property(wifi, "WiFi.BSSID", "00:11:22:33:44:55")
        assert wifi.get_property(PropertyIndex.WIFI_BSSID) == "00:11:22:33:44:55"


class TestStateUpdates:
    """Tests for the State property."""

    def test_state_change_reports_transition(self):
        network = EthernetNetwork("/service/eth")
        update = apply_property(network, "State", "association")

        assert update.changed
        assert update.transition is not None
        assert update.transition.current is ConnectionState.ASSOCIATION
        assert network.connecting

    def test_same_state_no_transition(self):
        network = EthernetNetwork("/service/eth")
        network.state = ConnectionState.IDLE
        update = apply_property(network, "State", "idle")
        assert update.handled
        assert update.transition is None
        assert not update.changed

    def test_failure_after_attempt_notifies(self):
        network = WifiNetwork("/service/wifi")
        apply_property(network, "State", "association")
        update = apply_property(network, "State", "failure")

        assert update.transition.notify_failure
        assert network.error is not ConnectionErrorCode.NO_ERROR


class TestIdentity:
    """Tests for unique id recomputation."""

    def test_security_change_changes_identity(self):
        wifi = WifiNetwork("/service/wifi")
        parser_for(wifi).update_from_info(wifi, {"Name": "Home", "Security": "none"})
        assert wifi.unique_id == "none|Home"

        update = apply_property(wifi, "Security", "rsn")

        assert update.identity_changed
        assert wifi.unique_id == "psk|Home"

    def test_wpa_to_rsn_keeps_identity(self):
        wifi = WifiNetwork("/service/wifi")
        parser_for(wifi).update_from_info(wifi, {"Name": "Home", "Security": "wpa"})
        update = apply_property(wifi, "Security", "rsn")
        assert update.changed
        assert not update.identity_changed

    def test_update_from_info_drops_ignored(self):
        network = EthernetNetwork("/service/eth")
        updates = parser_for(network).update_from_info(
            network, {"Name": "Wired", "Bogus": 1, "Type": "ethernet"}
        )
        assert [u.index for u in updates] == [PropertyIndex.NAME, PropertyIndex.TYPE]
        assert network.unique_id == "Wired"


class TestWifiParser:
    """Tests for WiFi-specific properties."""

    def test_hex_ssid(self):
        wifi = WifiNetwork("/service/wifi")
        update = apply_property(wifi, "WiFi.HexSSID", "486f6d65")
        assert update.changed
        assert wifi.name == "Home"

    def test_invalid_hex_ssid_ignored(self):
        wifi = WifiNetwork("/service/wifi")
        wifi.set_name("Home")
        assert apply_property(wifi, "WiFi.HexSSID", "xyz") is IGNORED
        assert wifi.name == "Home"

    def test_phase_2_from_wire(self):
        wifi = WifiNetwork("/service/wifi")
        apply_property(wifi, "EAP.InnerEAP", "autheap=MSCHAPV2")
        assert wifi.eap_phase_2_auth is EAPPhase2Auth.MSCHAPV2

    def test_passphrase_goes_to_vault(self):
        wifi = WifiNetwork("/service/wifi")
        apply_property(wifi, "Passphrase", "hunter22")
        assert wifi.credentials.is_present("passphrase")
        assert wifi.passphrase == "hunter22"

    def test_client_cert_pattern(self):
        wifi = WifiNetwork("/service/wifi")
        apply_property(wifi, "ClientCertType", "pattern")
        apply_property(wifi, "ClientCertPattern", {"Subject": {"CommonName": "alice"}})

        assert wifi.client_cert_type is ClientCertType.PATTERN
        assert isinstance(wifi.client_cert_pattern, CertificatePattern)
        assert not wifi.client_cert_pattern.empty()

    def test_security_parsed(self):
        wifi = WifiNetwork("/service/wifi")
        apply_property(wifi, "Security", "802_1x")
        assert wifi.encryption is ConnectionSecurity.IEEE8021X


class TestCellularParser:
    """Tests for cellular-specific properties."""

    def test_activation_state_confirms_pending(self):
        cellular = CellularNetwork("/service/cell")
        cellular.activation_state = ActivationState.ACTIVATING
        cellular.activation_pending = True

        update = apply_property(cellular, "Cellular.ActivationState", "activating")

        assert update.changed
        assert not cellular.activation_pending

    def test_technology(self):
        cellular = CellularNetwork("/service/cell")
        apply_property(cellular, "Cellular.NetworkTechnology", "HSPA+")
        assert cellular.network_technology is NetworkTechnology.HSPA_PLUS

    def test_unknown_technology_maps_to_unknown(self):
        cellular = CellularNetwork("/service/cell")
        cellular.network_technology = NetworkTechnology.LTE
        apply_property(cellular, "Cellular.NetworkTechnology", "6G")
        assert cellular.network_technology is NetworkTechnology.UNKNOWN

    def test_apn(self):
        cellular = CellularNetwork("/service/cell")
        apply_property(cellular, "Cellular.APN", {"apn": "internet", "username": "u"})
        assert cellular.apn.apn == "internet"
        assert cellular.apn.username == "u"


class TestVirtualNetworkParser:
    """Tests for VPN provider parsing."""

    def test_provider_dictionary(self):
        vpn = VirtualNetwork("/service/vpn")
        update = apply_property(vpn, "Provider", {"Type": "openvpn", "Host": "vpn.example.com"})

        assert update.changed
        assert update.identity_changed
        assert vpn.provider_type is ProviderType.OPEN_VPN
        assert vpn.server_hostname == "vpn.example.com"
        assert vpn.unique_id == "openvpn|vpn.example.com"

    def test_l2tpipsec_with_cert_is_user_cert(self):
        """Test the client cert in the same dictionary selects the cert flavour."""
        vpn = VirtualNetwork("/service/vpn")
        apply_property(
            vpn,
            "Provider",
            {"Type": "l2tpipsec", "Host": "vpn.example.com", "L2TPIPsec.ClientCertID": "ABCD"},
        )
        assert vpn.provider_type is ProviderType.L2TP_IPSEC_USER_CERT
        assert vpn.client_cert_id == "ABCD"

    def test_l2tpipsec_without_cert_is_psk(self):
        vpn = VirtualNetwork("/service/vpn")
        apply_property(vpn, "Provider", {"Type": "l2tpipsec"})
        assert vpn.provider_type is ProviderType.L2TP_IPSEC_PSK

    def test_unknown_provider_entries_skipped(self):
        vpn = VirtualNetwork("/service/vpn")
        apply_property(vpn, "Provider", {"Host": "vpn.example.com", "Unknown": 1})
        assert vpn.server_hostname == "vpn.example.com"

    def test_openvpn_user_key(self):
        vpn = VirtualNetwork("/service/vpn")
        apply_property(vpn, "OpenVPN.User", "alice")
        assert vpn.username == "alice"


class TestDeviceParser:
    """Tests for device properties."""

    def test_type_and_name(self):
        device = NetworkDevice("/device/wlan0")
        DEVICE_PARSER.update_from_info(device, {"Type": "wifi", "Name": "wlan0", "Powered": True})
        assert device.type is DeviceType.WIFI
        assert device.name == "wlan0"
        assert device.powered

    def test_unknown_key(self):
        device = NetworkDevice("/device/wlan0")
        before = device.to_dict()
        assert DEVICE_PARSER.update_status(device, "Vendor.Thing", 1) is IGNORED
        assert device.to_dict() == before

    def test_sim_lock_status(self):
        device = NetworkDevice("/device/cellular0")
        update = DEVICE_PARSER.update_status(
            device,
            "Cellular.SIMLockStatus",
            {"LockType": "sim-pin", "RetriesLeft": 3, "LockEnabled": True},
        )

        assert update.changed
        assert device.sim_lock_state is SimLockState.PIN
        assert device.sim_retries_left == 3
        assert device.sim_pin_required is SimPinRequire.REQUIRED

    def test_sim_lock_status_without_retries(self):
        """Test missing retries stay unknown rather than zero."""
        device = NetworkDevice("/device/cellular0")
        DEVICE_PARSER.update_status(device, "Cellular.SIMLockStatus", {"LockType": ""})
        assert device.sim_lock_state is SimLockState.UNLOCKED
        assert device.sim_retries_left is None

    def test_malformed_sim_lock_status_untouched(self):
        """Test a bad entry leaves every SIM field unchanged."""
        device = NetworkDevice("/device/cellular0")
        update = DEVICE_PARSER.update_status(
            device,
            "Cellular.SIMLockStatus",
            {"LockType": "sim-pin", "RetriesLeft": "three"},
        )
        assert update is IGNORED
        assert device.sim_lock_state is SimLockState.UNKNOWN

    def test_found_networks(self):
        device = NetworkDevice("/device/cellular0")
        DEVICE_PARSER.update_status(
            device,
            "Cellular.FoundNetworks",
            [{"status": "available", "network_id": "310260", "technology": "LTE"}],
        )
        assert [n.network_id for n in device.found_cellular_networks] == ["310260"]

    def test_found_networks_wrong_shape(self):
        device = NetworkDevice("/device/cellular0")
        assert DEVICE_PARSER.update_status(device, "Cellular.FoundNetworks", "none") is IGNORED
