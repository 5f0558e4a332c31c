"""Data models for the network entity state manager.

This module defines the enumerations and small value types shared by
devices, networks, parsers and the library.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

from netstate import constants as k

E = TypeVar("E", bound=Enum)


# =============================================================================
# Enumerations
# =============================================================================


class DeviceType(Enum):
    """Kind of network device (radio or modem)."""

    ETHERNET = "ethernet"
    WIFI = "wifi"
    CELLULAR = "cellular"
    OTHER = "other"


class ConnectionType(Enum):
    """Fixed connection kind of a network service."""

    ETHERNET = "ethernet"
    WIFI = "wifi"
    CELLULAR = "cellular"
    VPN = "vpn"


class ConnectionState(Enum):
    """Connection state of a network service."""

    UNKNOWN = "unknown"
    IDLE = "idle"
    CARRIER = "carrier"
    ASSOCIATION = "association"
    CONFIGURATION = "configuration"
    READY = "ready"
    DISCONNECT = "disconnect"
    FAILURE = "failure"
    ACTIVATION_FAILURE = "activation-failure"
    PORTAL = "portal"
    ONLINE = "online"


class ConnectionErrorCode(Enum):
    """Last connection error carried by a network.

    NO_ERROR is the only empty value; once a network is in FAILURE the
    error is never NO_ERROR.
    """

    NO_ERROR = ""
    OUT_OF_RANGE = "out-of-range"
    PIN_MISSING = "pin-missing"
    DHCP_FAILED = "dhcp-failed"
    CONNECT_FAILED = "connect-failed"
    BAD_PASSPHRASE = "bad-passphrase"
    BAD_WEPKEY = "bad-wepkey"
    ACTIVATION_FAILED = "activation-failed"
    NEED_EVDO = "need-evdo"
    NEED_HOME_NETWORK = "need-home-network"
    OTASP_FAILED = "otasp-failed"
    AAA_FAILED = "aaa-failed"
    INTERNAL = "internal-error"
    DNS_LOOKUP_FAILED = "dns-lookup-failed"
    HTTP_GET_FAILED = "http-get-failed"
    IPSEC_PSK_AUTH_FAILED = "ipsec-psk-auth-failed"
    IPSEC_CERT_AUTH_FAILED = "ipsec-cert-auth-failed"
    PPP_AUTH_FAILED = "ppp-auth-failed"
    UNKNOWN = "unknown"


class ConnectionSecurity(Enum):
    """WiFi encryption scheme."""

    UNKNOWN = "unknown"
    NONE = "none"
    WEP = "wep"
    WPA = "wpa"
    RSN = "rsn"
    PSK = "psk"
    IEEE8021X = "802_1x"


class EAPMethod(Enum):
    """Outer EAP method of an 802.1X network."""

    UNKNOWN = ""
    PEAP = k.EAP_METHOD_PEAP
    TLS = k.EAP_METHOD_TLS
    TTLS = k.EAP_METHOD_TTLS
    LEAP = k.EAP_METHOD_LEAP


class EAPPhase2Auth(Enum):
    """Inner (phase 2) authentication of an 802.1X network."""

    AUTO = "auto"
    MD5 = "md5"
    MSCHAPV2 = "mschapv2"
    MSCHAP = "mschap"
    PAP = "pap"
    CHAP = "chap"


class ClientCertType(Enum):
    """How a client certificate is selected for a network."""

    NONE = "none"
    REF = "ref"
    PATTERN = "pattern"


class ActivationState(Enum):
    """Cellular service activation state."""

    UNKNOWN = "unknown"
    NOT_ACTIVATED = "not-activated"
    ACTIVATING = "activating"
    PARTIALLY_ACTIVATED = "partially-activated"
    ACTIVATED = "activated"


class NetworkTechnology(Enum):
    """Cellular radio access technology."""

    UNKNOWN = "unknown"
    ONE_X_RTT = "1xRTT"
    EVDO = "EVDO"
    GPRS = "GPRS"
    EDGE = "EDGE"
    UMTS = "UMTS"
    HSPA = "HSPA"
    HSPA_PLUS = "HSPA+"
    LTE = "LTE"
    LTE_ADVANCED = "LTE Advanced"
    GSM = "GSM"

    @property
    def display_name(self) -> str:
        """Short technology label; these abbreviations are never localized."""
        if self is NetworkTechnology.HSPA_PLUS:
            return "HSPA Plus"
        if self is NetworkTechnology.UNKNOWN:
            return ""
        return self.value


class RoamingState(Enum):
    """Cellular roaming state."""

    UNKNOWN = "unknown"
    HOME = "home"
    ROAMING = "roaming"


class ProviderType(Enum):
    """VPN provider type."""

    L2TP_IPSEC_PSK = "l2tpipsec_psk"
    L2TP_IPSEC_USER_CERT = "l2tpipsec_user_cert"
    OPEN_VPN = "openvpn"


class SimLockState(Enum):
    """SIM lock state reported by a cellular device."""

    UNKNOWN = "unknown"
    UNLOCKED = ""
    PIN = "sim-pin"
    PUK = "sim-puk"


class SimPinRequire(Enum):
    """Tri-state: does the SIM require a PIN on power-up."""

    UNKNOWN = "unknown"
    NOT_REQUIRED = "not-required"
    REQUIRED = "required"


class TechnologyFamily(Enum):
    """Cellular modem technology family."""

    UNKNOWN = "unknown"
    CDMA = "CDMA"
    GSM = "GSM"


class IPConfigType(Enum):
    """IP configuration method."""

    UNKNOWN = "unknown"
    IPV4 = "ipv4"
    IPV6 = "ipv6"
    DHCP = "dhcp"
    BOOTP = "bootp"
    ZEROCONF = "zeroconf"
    DHCP6 = "dhcp6"
    PPP = "ppp"


class PropertyIndex(Enum):
    """Semantic property identifier, decoupled from the raw key string."""

    # Common service properties
    STATE = auto()
    ERROR = auto()
    NAME = auto()
    TYPE = auto()
    DEVICE = auto()
    CONNECTABLE = auto()
    IS_ACTIVE = auto()
    PRIORITY = auto()
    AUTO_CONNECT = auto()
    SAVE_CREDENTIALS = auto()
    PROFILE = auto()
    PROXY_CONFIG = auto()
    UI_DATA = auto()
    FAVORITE = auto()
    GUID = auto()
    MODE = auto()
    CHECK_PORTAL = auto()
    IP_CONFIG = auto()
    STRENGTH = auto()
    CLIENT_CERT_TYPE = auto()
    CLIENT_CERT_PATTERN = auto()

    # WiFi
    SSID = auto()
    WIFI_HEX_SSID = auto()
    WIFI_FREQUENCY = auto()
    WIFI_BSSID = auto()
    SECURITY = auto()
    PASSPHRASE = auto()
    PASSPHRASE_REQUIRED = auto()
    IDENTITY = auto()
    EAP_METHOD = auto()
    EAP_PHASE_2_AUTH = auto()
    EAP_IDENTITY = auto()
    EAP_ANONYMOUS_IDENTITY = auto()
    EAP_PASSPHRASE = auto()
    EAP_CA_CERT_NSS = auto()
    EAP_CLIENT_CERT_ID = auto()
    EAP_KEY_ID = auto()
    EAP_USE_SYSTEM_CAS = auto()
    EAP_PIN = auto()

    # Cellular service
    ACTIVATION_STATE = auto()
    NETWORK_TECHNOLOGY = auto()
    ROAMING_STATE = auto()
    OPERATOR_NAME = auto()
    OPERATOR_CODE = auto()
    CELLULAR_APN = auto()
    CELLULAR_LAST_GOOD_APN = auto()
    USAGE_URL = auto()
    PAYMENT_URL = auto()
    POST_DATA = auto()

    # VPN
    PROVIDER = auto()
    PROVIDER_TYPE = auto()
    HOST = auto()
    VPN_DOMAIN = auto()
    CA_CERT_NSS = auto()
    PSK_PASSPHRASE = auto()
    PSK_PASSPHRASE_REQUIRED = auto()
    USERNAME = auto()
    USER_PASSPHRASE = auto()
    USER_PASSPHRASE_REQUIRED = auto()
    CLIENT_CERT_ID = auto()
    GROUP_NAME = auto()

    # Device
    POWERED = auto()
    SCANNING = auto()
    SIM_LOCK_STATUS = auto()
    DATA_ROAMING_ALLOWED = auto()
    CARRIER = auto()
    FIRMWARE_REVISION = auto()
    HARDWARE_REVISION = auto()
    MANUFACTURER = auto()
    MODEL_ID = auto()
    IMEI = auto()
    IMSI = auto()
    MEID = auto()
    ESN = auto()
    MDN = auto()
    MIN = auto()
    PRL_VERSION = auto()
    HOME_PROVIDER = auto()
    SELECTED_NETWORK = auto()
    FOUND_NETWORKS = auto()
    SUPPORT_NETWORK_SCAN = auto()
    TECHNOLOGY_FAMILY = auto()


def parse_enum(enum_cls: Type[E], value: Any, default: Optional[E] = None) -> Optional[E]:
    """Map a raw wire value onto an enum member.

    Args:
        enum_cls: Enum class whose values are the wire strings.
        value: Raw value from the stack.
        default: Returned when the value is not a known member.

    Returns:
        Matching member, or ``default``.
    """
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return default
    try:
        return enum_cls(value)
    except ValueError:
        lowered = value.lower()
        for member in enum_cls:
            if isinstance(member.value, str) and member.value.lower() == lowered:
                return member
        return default


# =============================================================================
# Value Types
# =============================================================================


_NETMASK_BITS = {
    "255": 8,
    "254": 7,
    "252": 6,
    "248": 5,
    "240": 4,
    "224": 3,
    "192": 2,
    "128": 1,
    "0": 0,
}


@dataclass
class NetworkIPConfig:
    """IP assignment reported for a device."""

    device_path: str
    type: IPConfigType = IPConfigType.UNKNOWN
    address: str = ""
    netmask: str = ""
    gateway: str = ""
    name_servers: str = ""  # comma separated

    def prefix_length(self) -> int:
        """Convert the dotted netmask to a prefix length.

        Returns:
            Prefix length, or -1 if the netmask is not a contiguous
            dotted-quad mask.
        """
        tokens = self.netmask.split(".") if self.netmask else []
        if len(tokens) != 4:
            return -1

        prefix = 0
        for count, token in enumerate(tokens):
            if token not in _NETMASK_BITS:
                return -1
            # Once a partial octet is seen every following octet must be zero
            if prefix // 8 != count:
                if token != "0":
                    return -1
                continue
            prefix += _NETMASK_BITS[token]
        return prefix

    @classmethod
    def from_dict(cls, device_path: str, data: Mapping[str, Any]) -> "NetworkIPConfig":
        """Create from a raw IP config dictionary."""
        name_servers = data.get("name_servers", "")
        if isinstance(name_servers, (list, tuple)):
            name_servers = ",".join(str(s) for s in name_servers)
        return cls(
            device_path=device_path,
            type=parse_enum(IPConfigType, data.get("type"), IPConfigType.UNKNOWN),
            address=str(data.get("address", "") or ""),
            netmask=str(data.get("netmask", "") or ""),
            gateway=str(data.get("gateway", "") or ""),
            name_servers=str(name_servers or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "device_path": self.device_path,
            "type": self.type.value,
            "address": self.address,
            "netmask": self.netmask,
            "gateway": self.gateway,
            "name_servers": self.name_servers,
        }


@dataclass
class CellularApn:
    """Access point name and its authentication fields."""

    apn: str = ""
    network_id: str = ""
    username: str = ""
    password: str = ""
    name: str = ""
    localized_name: str = ""
    language: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CellularApn":
        """Create from a raw APN dictionary; missing fields become empty."""

        def _get(key: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else ""

        return cls(
            apn=_get(k.KEY_APN),
            network_id=_get(k.KEY_APN_NETWORK_ID),
            username=_get(k.KEY_APN_USERNAME),
            password=_get(k.KEY_APN_PASSWORD),
            name=_get(k.KEY_APN_NAME),
            localized_name=_get(k.KEY_APN_LOCALIZED_NAME),
            language=_get(k.KEY_APN_LANGUAGE),
        )

    def to_connect_dict(self) -> Dict[str, str]:
        """Only the fields needed to establish a connection."""
        return {
            k.KEY_APN: self.apn,
            k.KEY_APN_NETWORK_ID: self.network_id,
            k.KEY_APN_USERNAME: self.username,
            k.KEY_APN_PASSWORD: self.password,
        }


@dataclass
class FoundCellularNetwork:
    """Cellular network found by a device scan."""

    status: str = ""
    network_id: str = ""
    short_name: str = ""
    long_name: str = ""
    technology: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FoundCellularNetwork":
        """Create from a raw scan result dictionary."""
        return cls(
            status=str(data.get(k.KEY_FOUND_STATUS, "")),
            network_id=str(data.get(k.KEY_FOUND_NETWORK_ID, "")),
            short_name=str(data.get(k.KEY_FOUND_SHORT_NAME, "")),
            long_name=str(data.get(k.KEY_FOUND_LONG_NAME, "")),
            technology=str(data.get(k.KEY_FOUND_TECHNOLOGY, "")),
        )


@dataclass
class CellularOperator:
    """Home provider or serving operator identity."""

    name: str = ""
    code: str = ""
    country: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CellularOperator":
        """Create from a raw operator dictionary."""
        return cls(
            name=str(data.get(k.KEY_OPERATOR_NAME_FIELD, "")),
            code=str(data.get(k.KEY_OPERATOR_CODE_FIELD, "")),
            country=str(data.get(k.KEY_OPERATOR_COUNTRY_FIELD, "")),
        )
