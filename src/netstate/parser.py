"""Property update parsing.

Each entity kind has a parser that maps raw ``(key, value)`` pairs from the
stack onto typed fields. A key with a typed field always updates that field;
a known key without one is stored in the network's property map. Unknown
keys and values of the wrong shape are reported as
``ParseResult.IGNORED`` and leave the entity untouched.

Classes:
    ParseResult: Handled / ignored outcome
    PropertyUpdate: Outcome of applying one property
    NetworkParser: Base network parser (also used for Ethernet)
    WifiNetworkParser, CellularNetworkParser, VirtualNetworkParser
    NetworkDeviceParser
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type, Union

from netstate import constants as k
from netstate.certificates import CertificatePattern
from netstate.device import NetworkDevice
from netstate.models import (
    ActivationState,
    CellularApn,
    CellularOperator,
    ClientCertType,
    ConnectionErrorCode,
    ConnectionSecurity,
    ConnectionState,
    ConnectionType,
    DeviceType,
    EAPMethod,
    EAPPhase2Auth,
    FoundCellularNetwork,
    NetworkTechnology,
    PropertyIndex,
    ProviderType,
    RoamingState,
    SimLockState,
    SimPinRequire,
    TechnologyFamily,
    parse_enum,
)
from netstate.network import PHASE_2_FROM_WIRE, CellularNetwork, Network, VirtualNetwork, WifiNetwork
from netstate.state import StateTransition

logger = logging.getLogger(__name__)


class ParseResult(Enum):
    """Whether a property was understood."""

    HANDLED = "handled"
    IGNORED = "ignored"


@dataclass(frozen=True)
class PropertyUpdate:
    """Outcome of applying one property to an entity.

    Attributes:
        result: Whether the property was understood.
        index: Semantic property that was applied.
        changed: A typed field or property map entry changed value.
        transition: State transition caused by the update, if any.
        identity_changed: The network's unique id changed; registries
            must re-index it.
    """

    result: ParseResult
    index: Optional[PropertyIndex] = None
    changed: bool = False
    transition: Optional[StateTransition] = None
    identity_changed: bool = False

    @property
    def handled(self) -> bool:
        return self.result is ParseResult.HANDLED


IGNORED = PropertyUpdate(ParseResult.IGNORED)

_MISSING = object()


# =============================================================================
# Value Converters
# =============================================================================
# Each converter returns the typed value or raises ValueError for a value
# of the wrong shape.


def _string(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected string, got {type(value).__name__}")
    return value


def _boolean(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"expected boolean, got {type(value).__name__}")
    return value


def _integer(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"expected integer, got {type(value).__name__}")
    return value


def _mapping(value: Any) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"expected dictionary, got {type(value).__name__}")
    return value


def _enum(enum_cls: Type[Enum], default: Optional[Enum] = None) -> Callable[[Any], Enum]:
    """Converter for an enum; unknown strings map to ``default`` if given."""

    def convert(value: Any) -> Enum:
        member = parse_enum(enum_cls, _string(value), default)
        if member is None:
            raise ValueError(f"unknown {enum_cls.__name__} value {value!r}")
        return member

    return convert


def _assign(target: Any, attr: str, value: Any) -> bool:
    """Set ``target.attr`` and report whether it changed."""
    if getattr(target, attr) == value:
        return False
    setattr(target, attr, value)
    return True


FieldSpec = Tuple[str, Callable[[Any], Any]]


# =============================================================================
# Network Parsers
# =============================================================================


class NetworkParser:
    """Parser for properties shared by every network kind."""

    connection_type = ConnectionType.ETHERNET

    KEY_MAP: Dict[str, PropertyIndex] = {
        k.KEY_STATE: PropertyIndex.STATE,
        k.KEY_ERROR: PropertyIndex.ERROR,
        k.KEY_NAME: PropertyIndex.NAME,
        k.KEY_TYPE: PropertyIndex.TYPE,
        k.KEY_DEVICE: PropertyIndex.DEVICE,
        k.KEY_CONNECTABLE: PropertyIndex.CONNECTABLE,
        k.KEY_IS_ACTIVE: PropertyIndex.IS_ACTIVE,
        k.KEY_PRIORITY: PropertyIndex.PRIORITY,
        k.KEY_AUTO_CONNECT: PropertyIndex.AUTO_CONNECT,
        k.KEY_SAVE_CREDENTIALS: PropertyIndex.SAVE_CREDENTIALS,
        k.KEY_PROFILE: PropertyIndex.PROFILE,
        k.KEY_PROXY_CONFIG: PropertyIndex.PROXY_CONFIG,
        k.KEY_UI_DATA: PropertyIndex.UI_DATA,
        k.KEY_FAVORITE: PropertyIndex.FAVORITE,
        k.KEY_GUID: PropertyIndex.GUID,
        k.KEY_MODE: PropertyIndex.MODE,
        k.KEY_CHECK_PORTAL: PropertyIndex.CHECK_PORTAL,
        k.KEY_IP_CONFIG: PropertyIndex.IP_CONFIG,
    }

    FIELDS: Dict[PropertyIndex, FieldSpec] = {
        PropertyIndex.DEVICE: ("device_path", _string),
        PropertyIndex.CONNECTABLE: ("connectable", _boolean),
        PropertyIndex.IS_ACTIVE: ("is_active", _boolean),
        PropertyIndex.PRIORITY: ("priority", _integer),
        PropertyIndex.AUTO_CONNECT: ("auto_connect", _boolean),
        PropertyIndex.SAVE_CREDENTIALS: ("save_credentials", _boolean),
        PropertyIndex.PROFILE: ("profile_path", _string),
        PropertyIndex.PROXY_CONFIG: ("proxy_config", _string),
        PropertyIndex.FAVORITE: ("favorite", _boolean),
    }

    # Known properties without a typed field
    MAP_INDICES = frozenset(
        {
            PropertyIndex.GUID,
            PropertyIndex.MODE,
            PropertyIndex.CHECK_PORTAL,
            PropertyIndex.IP_CONFIG,
        }
    )

    IDENTITY_INDICES = frozenset({PropertyIndex.NAME})

    def __init__(self) -> None:
        self._special: Dict[PropertyIndex, Callable[[Any, Any], Any]] = {
            PropertyIndex.STATE: self._parse_state,
            PropertyIndex.ERROR: self._parse_error,
            PropertyIndex.NAME: self._parse_name,
            PropertyIndex.TYPE: self._parse_type,
            PropertyIndex.UI_DATA: self._parse_ui_data,
        }

    def index_for(self, key: str) -> Optional[PropertyIndex]:
        return self.KEY_MAP.get(key)

    def update_status(self, network: Network, key: str, value: Any) -> PropertyUpdate:
        """Apply one property to ``network``.

        Args:
            network: Network to update.
            key: Raw property key.
            value: Raw property value; None clears a property map entry.

        Returns:
            The outcome; ``IGNORED`` leaves the network untouched.
        """
        index = self.index_for(key)
        if index is None:
            logger.debug("Ignoring unknown property %s on %s", key, network.service_path)
            return IGNORED
        return self.apply_index(network, index, value, key)

    def apply_index(self, network: Network, index: PropertyIndex, value: Any, key: str = "") -> PropertyUpdate:
        try:
            changed = self._apply(network, index, value)
        except ValueError as e:
            logger.debug("Ignoring malformed %s on %s: %s", key or index.name, network.service_path, e)
            return IGNORED
        if changed is None:
            return IGNORED

        transition = None
        if isinstance(changed, StateTransition):
            transition, changed = changed, True

        identity_changed = False
        if index in self.IDENTITY_INDICES:
            previous = network.unique_id
            network.calculate_unique_id()
            identity_changed = network.unique_id != previous

        return PropertyUpdate(
            ParseResult.HANDLED,
            index=index,
            changed=changed,
            transition=transition,
            identity_changed=identity_changed,
        )

    def update_from_info(self, network: Network, info: Mapping[str, Any]) -> list[PropertyUpdate]:
        """Apply a full property dictionary, then recompute the unique id."""
        updates = [self.update_status(network, key, value) for key, value in info.items()]
        network.calculate_unique_id()
        return [update for update in updates if update.handled]

    def _apply(self, network: Network, index: PropertyIndex, value: Any) -> Any:
        """Apply a converted value.

        Returns:
            Whether the value changed (a StateTransition for a state
            change), or None if the index is not handled here.
        """
        special = self._special.get(index)
        if special is not None:
            return special(network, value)

        spec = self.FIELDS.get(index)
        if spec is not None:
            attr, convert = spec
            return _assign(network, attr, convert(value))

        if index in self.MAP_INDICES:
            if value is None:
                changed = network.has_property(index)
            else:
                changed = network.get_property(index, _MISSING) != value
            network.update_property_map(index, value)
            return changed

        return None

    # =========================================================================
    # Special Cases
    # =========================================================================

    def _parse_state(self, network: Network, value: Any) -> Union[StateTransition, bool]:
        transition = network.set_state(_enum(ConnectionState)(value))
        return transition if transition is not None else False

    def _parse_error(self, network: Network, value: Any) -> bool:
        error = _enum(ConnectionErrorCode, ConnectionErrorCode.UNKNOWN)(value)
        return _assign(network, "error", error)

    def _parse_name(self, network: Network, value: Any) -> bool:
        previous = network.name
        network.set_name(_string(value))
        return network.name != previous

    def _parse_type(self, network: Network, value: Any) -> bool:
        # The kind of a network is fixed at creation
        if _enum(ConnectionType)(value) is not network.connection_type:
            raise ValueError(f"type {value!r} does not match {network.connection_type.value}")
        return False

    def _parse_ui_data(self, network: Network, value: Any) -> bool:
        if isinstance(value, str):
            try:
                value = json.loads(value) if value else {}
            except json.JSONDecodeError as e:
                raise ValueError(f"invalid UI data: {e}") from e
        return _assign(network, "ui_data", dict(_mapping(value)))


class _ClientCertMixin:
    """Client certificate selection properties shared by WiFi and VPN."""

    def _parse_client_cert_type(self, network: Network, value: Any) -> bool:
        return _assign(network, "client_cert_type", _enum(ClientCertType)(value))

    def _parse_client_cert_pattern(self, network: Network, value: Any) -> bool:
        return _assign(network, "client_cert_pattern", CertificatePattern.from_dict(_mapping(value)))


class WifiNetworkParser(_ClientCertMixin, NetworkParser):
    """Parser for WiFi services."""

    connection_type = ConnectionType.WIFI

    KEY_MAP = {
        **NetworkParser.KEY_MAP,
        k.KEY_STRENGTH: PropertyIndex.STRENGTH,
        k.KEY_SSID: PropertyIndex.SSID,
        k.KEY_WIFI_HEX_SSID: PropertyIndex.WIFI_HEX_SSID,
        k.KEY_WIFI_FREQUENCY: PropertyIndex.WIFI_FREQUENCY,
        k.KEY_WIFI_BSSID: PropertyIndex.WIFI_BSSID,
        k.KEY_SECURITY: PropertyIndex.SECURITY,
        k.KEY_PASSPHRASE: PropertyIndex.PASSPHRASE,
        k.KEY_PASSPHRASE_REQUIRED: PropertyIndex.PASSPHRASE_REQUIRED,
        k.KEY_IDENTITY: PropertyIndex.IDENTITY,
        k.KEY_EAP_METHOD: PropertyIndex.EAP_METHOD,
        k.KEY_EAP_PHASE_2_AUTH: PropertyIndex.EAP_PHASE_2_AUTH,
        k.KEY_EAP_IDENTITY: PropertyIndex.EAP_IDENTITY,
        k.KEY_EAP_ANONYMOUS_IDENTITY: PropertyIndex.EAP_ANONYMOUS_IDENTITY,
        k.KEY_EAP_PASSWORD: PropertyIndex.EAP_PASSPHRASE,
        k.KEY_EAP_CA_CERT_NSS: PropertyIndex.EAP_CA_CERT_NSS,
        k.KEY_EAP_CERT_ID: PropertyIndex.EAP_CLIENT_CERT_ID,
        k.KEY_EAP_KEY_ID: PropertyIndex.EAP_KEY_ID,
        k.KEY_EAP_USE_SYSTEM_CAS: PropertyIndex.EAP_USE_SYSTEM_CAS,
        k.KEY_CLIENT_CERT_TYPE: PropertyIndex.CLIENT_CERT_TYPE,
        k.KEY_CLIENT_CERT_PATTERN: PropertyIndex.CLIENT_CERT_PATTERN,
    }

    FIELDS = {
        **NetworkParser.FIELDS,
        PropertyIndex.STRENGTH: ("strength", _integer),
        PropertyIndex.SECURITY: ("encryption", _enum(ConnectionSecurity)),
        PropertyIndex.PASSPHRASE: ("passphrase", _string),
        PropertyIndex.PASSPHRASE_REQUIRED: ("passphrase_required", _boolean),
        PropertyIndex.IDENTITY: ("identity", _string),
        PropertyIndex.EAP_METHOD: ("eap_method", _enum(EAPMethod, EAPMethod.UNKNOWN)),
        PropertyIndex.EAP_IDENTITY: ("eap_identity", _string),
        PropertyIndex.EAP_ANONYMOUS_IDENTITY: ("eap_anonymous_identity", _string),
        PropertyIndex.EAP_PASSPHRASE: ("eap_passphrase", _string),
        PropertyIndex.EAP_CA_CERT_NSS: ("eap_server_ca_cert_nss_nickname", _string),
        PropertyIndex.EAP_CLIENT_CERT_ID: ("eap_client_cert_id", _string),
        PropertyIndex.EAP_USE_SYSTEM_CAS: ("eap_use_system_cas", _boolean),
    }

    MAP_INDICES = NetworkParser.MAP_INDICES | {
        PropertyIndex.WIFI_FREQUENCY,
        PropertyIndex.WIFI_BSSID,
        PropertyIndex.EAP_KEY_ID,
    }

    IDENTITY_INDICES = frozenset(
        {PropertyIndex.NAME, PropertyIndex.SSID, PropertyIndex.WIFI_HEX_SSID, PropertyIndex.SECURITY}
    )

    def __init__(self) -> None:
        super().__init__()
        self._special.update(
            {
                PropertyIndex.SSID: self._parse_ssid,
                PropertyIndex.WIFI_HEX_SSID: self._parse_hex_ssid,
                PropertyIndex.EAP_PHASE_2_AUTH: self._parse_phase_2_auth,
                PropertyIndex.CLIENT_CERT_TYPE: self._parse_client_cert_type,
                PropertyIndex.CLIENT_CERT_PATTERN: self._parse_client_cert_pattern,
            }
        )

    def _parse_ssid(self, network: WifiNetwork, value: Any) -> bool:
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value)
        elif not isinstance(value, str):
            raise ValueError(f"expected SSID, got {type(value).__name__}")
        previous = network.name
        network.set_ssid(value)
        return network.name != previous

    def _parse_hex_ssid(self, network: WifiNetwork, value: Any) -> bool:
        previous = network.name
        if not network.set_hex_ssid(_string(value)):
            raise ValueError("invalid hex SSID")
        return network.name != previous

    def _parse_phase_2_auth(self, network: WifiNetwork, value: Any) -> bool:
        auth = PHASE_2_FROM_WIRE.get(_string(value), EAPPhase2Auth.AUTO)
        return _assign(network, "eap_phase_2_auth", auth)


class CellularNetworkParser(NetworkParser):
    """Parser for cellular services."""

    connection_type = ConnectionType.CELLULAR

    KEY_MAP = {
        **NetworkParser.KEY_MAP,
        k.KEY_STRENGTH: PropertyIndex.STRENGTH,
        k.KEY_ACTIVATION_STATE: PropertyIndex.ACTIVATION_STATE,
        k.KEY_NETWORK_TECHNOLOGY: PropertyIndex.NETWORK_TECHNOLOGY,
        k.KEY_ROAMING_STATE: PropertyIndex.ROAMING_STATE,
        k.KEY_OPERATOR_NAME: PropertyIndex.OPERATOR_NAME,
        k.KEY_OPERATOR_CODE: PropertyIndex.OPERATOR_CODE,
        k.KEY_CELLULAR_APN: PropertyIndex.CELLULAR_APN,
        k.KEY_CELLULAR_LAST_GOOD_APN: PropertyIndex.CELLULAR_LAST_GOOD_APN,
        k.KEY_USAGE_URL: PropertyIndex.USAGE_URL,
        k.KEY_PAYMENT_URL: PropertyIndex.PAYMENT_URL,
        k.KEY_POST_DATA: PropertyIndex.POST_DATA,
    }

    FIELDS = {
        **NetworkParser.FIELDS,
        PropertyIndex.STRENGTH: ("strength", _integer),
        PropertyIndex.NETWORK_TECHNOLOGY: (
            "network_technology",
            _enum(NetworkTechnology, NetworkTechnology.UNKNOWN),
        ),
        PropertyIndex.ROAMING_STATE: ("roaming_state", _enum(RoamingState, RoamingState.UNKNOWN)),
        PropertyIndex.OPERATOR_NAME: ("operator_name", _string),
        PropertyIndex.OPERATOR_CODE: ("operator_code", _string),
        PropertyIndex.CELLULAR_APN: ("apn", lambda value: CellularApn.from_dict(_mapping(value))),
        PropertyIndex.CELLULAR_LAST_GOOD_APN: (
            "last_good_apn",
            lambda value: CellularApn.from_dict(_mapping(value)),
        ),
        PropertyIndex.USAGE_URL: ("usage_url", _string),
        PropertyIndex.PAYMENT_URL: ("payment_url", _string),
        PropertyIndex.POST_DATA: ("post_data", _string),
    }

    def __init__(self) -> None:
        super().__init__()
        self._special[PropertyIndex.ACTIVATION_STATE] = self._parse_activation_state

    def _parse_activation_state(self, network: CellularNetwork, value: Any) -> bool:
        state = _enum(ActivationState, ActivationState.UNKNOWN)(value)
        changed = network.activation_state is not state or network.activation_pending
        network.confirm_activation_state(state)
        return changed


class VirtualNetworkParser(_ClientCertMixin, NetworkParser):
    """Parser for VPN services.

    The stack nests most VPN properties in a ``Provider`` dictionary; its
    ``Type`` entry is applied last so that the L2TP/IPsec flavour can be
    inferred from a client certificate id in the same dictionary.
    """

    connection_type = ConnectionType.VPN

    KEY_MAP = {
        **NetworkParser.KEY_MAP,
        k.KEY_PROVIDER: PropertyIndex.PROVIDER,
        k.KEY_PROVIDER_TYPE: PropertyIndex.PROVIDER_TYPE,
        k.KEY_PROVIDER_HOST: PropertyIndex.HOST,
        k.KEY_VPN_DOMAIN: PropertyIndex.VPN_DOMAIN,
        k.KEY_L2TPIPSEC_CA_CERT_NSS: PropertyIndex.CA_CERT_NSS,
        k.KEY_OPENVPN_CA_CERT_NSS: PropertyIndex.CA_CERT_NSS,
        k.KEY_L2TPIPSEC_PSK: PropertyIndex.PSK_PASSPHRASE,
        k.KEY_L2TPIPSEC_PSK_REQUIRED: PropertyIndex.PSK_PASSPHRASE_REQUIRED,
        k.KEY_L2TPIPSEC_USER: PropertyIndex.USERNAME,
        k.KEY_OPENVPN_USER: PropertyIndex.USERNAME,
        k.KEY_L2TPIPSEC_PASSWORD: PropertyIndex.USER_PASSPHRASE,
        k.KEY_OPENVPN_PASSWORD: PropertyIndex.USER_PASSPHRASE,
        k.KEY_L2TPIPSEC_PASSWORD_REQUIRED: PropertyIndex.USER_PASSPHRASE_REQUIRED,
        k.KEY_OPENVPN_PASSWORD_REQUIRED: PropertyIndex.USER_PASSPHRASE_REQUIRED,
        k.KEY_L2TPIPSEC_CLIENT_CERT_ID: PropertyIndex.CLIENT_CERT_ID,
        k.KEY_OPENVPN_CLIENT_CERT_ID: PropertyIndex.CLIENT_CERT_ID,
        k.KEY_L2TPIPSEC_GROUP_NAME: PropertyIndex.GROUP_NAME,
        k.KEY_CLIENT_CERT_TYPE: PropertyIndex.CLIENT_CERT_TYPE,
        k.KEY_CLIENT_CERT_PATTERN: PropertyIndex.CLIENT_CERT_PATTERN,
    }

    # Short key names used inside the Provider dictionary
    PROVIDER_KEY_MAP = {
        "Type": PropertyIndex.PROVIDER_TYPE,
        "Host": PropertyIndex.HOST,
    }

    FIELDS = {
        **NetworkParser.FIELDS,
        PropertyIndex.HOST: ("server_hostname", _string),
        PropertyIndex.CA_CERT_NSS: ("ca_cert_nss", _string),
        PropertyIndex.PSK_PASSPHRASE: ("psk_passphrase", _string),
        PropertyIndex.PSK_PASSPHRASE_REQUIRED: ("psk_passphrase_required", _boolean),
        PropertyIndex.USERNAME: ("username", _string),
        PropertyIndex.USER_PASSPHRASE: ("user_passphrase", _string),
        PropertyIndex.USER_PASSPHRASE_REQUIRED: ("user_passphrase_required", _boolean),
        PropertyIndex.CLIENT_CERT_ID: ("client_cert_id", _string),
        PropertyIndex.GROUP_NAME: ("group_name", _string),
    }

    MAP_INDICES = NetworkParser.MAP_INDICES | {PropertyIndex.VPN_DOMAIN}

    IDENTITY_INDICES = frozenset(
        {PropertyIndex.NAME, PropertyIndex.PROVIDER, PropertyIndex.PROVIDER_TYPE, PropertyIndex.HOST}
    )

    def __init__(self) -> None:
        super().__init__()
        self._special.update(
            {
                PropertyIndex.PROVIDER: self._parse_provider,
                PropertyIndex.PROVIDER_TYPE: self._parse_provider_type,
                PropertyIndex.CLIENT_CERT_TYPE: self._parse_client_cert_type,
                PropertyIndex.CLIENT_CERT_PATTERN: self._parse_client_cert_pattern,
            }
        )

    def _parse_provider(self, network: VirtualNetwork, value: Any) -> bool:
        provider = _mapping(value)
        indexed = []
        for key, item in provider.items():
            index = self.PROVIDER_KEY_MAP.get(key) or self.index_for(key)
            if index is None or index is PropertyIndex.PROVIDER:
                logger.debug("Ignoring unknown provider property %s on %s", key, network.service_path)
                continue
            indexed.append((index, item))
        # Type last: it depends on the client certificate id
        indexed.sort(key=lambda pair: pair[0] is PropertyIndex.PROVIDER_TYPE)

        changed = False
        for index, item in indexed:
            try:
                changed = bool(self._apply(network, index, item)) or changed
            except ValueError as e:
                logger.debug("Ignoring malformed provider %s on %s: %s", index.name, network.service_path, e)
        return changed

    def _parse_provider_type(self, network: VirtualNetwork, value: Any) -> bool:
        raw = _string(value)
        if raw == k.PROVIDER_TYPE_L2TP_IPSEC:
            if network.client_cert_id:
                provider_type = ProviderType.L2TP_IPSEC_USER_CERT
            else:
                provider_type = ProviderType.L2TP_IPSEC_PSK
        else:
            provider_type = _enum(ProviderType)(raw)
        return _assign(network, "provider_type", provider_type)


PARSERS: Dict[ConnectionType, NetworkParser] = {
    ConnectionType.ETHERNET: NetworkParser(),
    ConnectionType.WIFI: WifiNetworkParser(),
    ConnectionType.CELLULAR: CellularNetworkParser(),
    ConnectionType.VPN: VirtualNetworkParser(),
}


def parser_for(network: Network) -> NetworkParser:
    """Parser matching the network's connection kind."""
    return PARSERS[network.connection_type]


def apply_property(network: Network, key: str, value: Any) -> PropertyUpdate:
    """Apply one raw property to a network."""
    return parser_for(network).update_status(network, key, value)


# =============================================================================
# Device Parser
# =============================================================================


class NetworkDeviceParser:
    """Parser for device properties."""

    KEY_MAP: Dict[str, PropertyIndex] = {
        k.KEY_DEVICE_TYPE: PropertyIndex.TYPE,
        k.KEY_DEVICE_NAME: PropertyIndex.NAME,
        k.KEY_POWERED: PropertyIndex.POWERED,
        k.KEY_SCANNING: PropertyIndex.SCANNING,
        k.KEY_SIM_LOCK_STATUS: PropertyIndex.SIM_LOCK_STATUS,
        k.KEY_DATA_ROAMING_ALLOWED: PropertyIndex.DATA_ROAMING_ALLOWED,
        k.KEY_CARRIER: PropertyIndex.CARRIER,
        k.KEY_FIRMWARE_REVISION: PropertyIndex.FIRMWARE_REVISION,
        k.KEY_HARDWARE_REVISION: PropertyIndex.HARDWARE_REVISION,
        k.KEY_MANUFACTURER: PropertyIndex.MANUFACTURER,
        k.KEY_MODEL_ID: PropertyIndex.MODEL_ID,
        k.KEY_IMEI: PropertyIndex.IMEI,
        k.KEY_IMSI: PropertyIndex.IMSI,
        k.KEY_MEID: PropertyIndex.MEID,
        k.KEY_ESN: PropertyIndex.ESN,
        k.KEY_MDN: PropertyIndex.MDN,
        k.KEY_MIN: PropertyIndex.MIN,
        k.KEY_PRL_VERSION: PropertyIndex.PRL_VERSION,
        k.KEY_HOME_PROVIDER: PropertyIndex.HOME_PROVIDER,
        k.KEY_SELECTED_NETWORK: PropertyIndex.SELECTED_NETWORK,
        k.KEY_FOUND_NETWORKS: PropertyIndex.FOUND_NETWORKS,
        k.KEY_SUPPORT_NETWORK_SCAN: PropertyIndex.SUPPORT_NETWORK_SCAN,
        k.KEY_TECHNOLOGY_FAMILY: PropertyIndex.TECHNOLOGY_FAMILY,
    }

    FIELDS: Dict[PropertyIndex, FieldSpec] = {
        PropertyIndex.TYPE: ("type", _enum(DeviceType, DeviceType.OTHER)),
        PropertyIndex.NAME: ("name", _string),
        PropertyIndex.POWERED: ("powered", _boolean),
        PropertyIndex.SCANNING: ("scanning", _boolean),
        PropertyIndex.DATA_ROAMING_ALLOWED: ("data_roaming_allowed", _boolean),
        PropertyIndex.CARRIER: ("carrier", _string),
        PropertyIndex.FIRMWARE_REVISION: ("firmware_revision", _string),
        PropertyIndex.HARDWARE_REVISION: ("hardware_revision", _string),
        PropertyIndex.MANUFACTURER: ("manufacturer", _string),
        PropertyIndex.MODEL_ID: ("model_id", _string),
        PropertyIndex.IMEI: ("imei", _string),
        PropertyIndex.IMSI: ("imsi", _string),
        PropertyIndex.MEID: ("meid", _string),
        PropertyIndex.ESN: ("esn", _string),
        PropertyIndex.MDN: ("mdn", _string),
        PropertyIndex.MIN: ("min", _string),
        PropertyIndex.PRL_VERSION: ("prl_version", _integer),
        PropertyIndex.HOME_PROVIDER: (
            "home_provider",
            lambda value: CellularOperator.from_dict(_mapping(value)),
        ),
        PropertyIndex.SELECTED_NETWORK: ("selected_cellular_network", _string),
        PropertyIndex.SUPPORT_NETWORK_SCAN: ("support_network_scan", _boolean),
        PropertyIndex.TECHNOLOGY_FAMILY: (
            "technology_family",
            _enum(TechnologyFamily, TechnologyFamily.UNKNOWN),
        ),
    }

    def update_status(self, device: NetworkDevice, key: str, value: Any) -> PropertyUpdate:
        """Apply one property to ``device``."""
        index = self.KEY_MAP.get(key)
        if index is None:
            logger.debug("Ignoring unknown property %s on %s", key, device.device_path)
            return IGNORED
        try:
            if index is PropertyIndex.SIM_LOCK_STATUS:
                changed = self._parse_sim_lock_status(device, value)
            elif index is PropertyIndex.FOUND_NETWORKS:
                changed = self._parse_found_networks(device, value)
            else:
                attr, convert = self.FIELDS[index]
                changed = _assign(device, attr, convert(value))
        except ValueError as e:
            logger.debug("Ignoring malformed %s on %s: %s", key, device.device_path, e)
            return IGNORED
        return PropertyUpdate(ParseResult.HANDLED, index=index, changed=changed)

    def update_from_info(self, device: NetworkDevice, info: Mapping[str, Any]) -> list[PropertyUpdate]:
        updates = [self.update_status(device, key, value) for key, value in info.items()]
        return [update for update in updates if update.handled]

    def _parse_sim_lock_status(self, device: NetworkDevice, value: Any) -> bool:
        status = _mapping(value)
        lock_type = status.get(k.KEY_SIM_LOCK_TYPE)
        retries = status.get(k.KEY_SIM_LOCK_RETRIES_LEFT)
        enabled = status.get(k.KEY_SIM_LOCK_ENABLED)

        # Validate everything before touching the device
        lock_state = _enum(SimLockState, SimLockState.UNKNOWN)(lock_type) if lock_type is not None else None
        retries_left = _integer(retries) if retries is not None else None
        pin_required = None
        if enabled is not None:
            pin_required = SimPinRequire.REQUIRED if _boolean(enabled) else SimPinRequire.NOT_REQUIRED

        changed = False
        if lock_state is not None:
            changed = _assign(device, "sim_lock_state", lock_state) or changed
        if retries_left is not None:
            changed = _assign(device, "sim_retries_left", retries_left) or changed
        if pin_required is not None:
            changed = _assign(device, "sim_pin_required", pin_required) or changed
        return changed

    def _parse_found_networks(self, device: NetworkDevice, value: Any) -> bool:
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"expected list, got {type(value).__name__}")
        found = [FoundCellularNetwork.from_dict(_mapping(item)) for item in value]
        return _assign(device, "found_cellular_networks", found)


DEVICE_PARSER = NetworkDeviceParser()
