"""Network service entities.

A :class:`Network` holds the state shared by every connection kind; the
four subclasses add kind-specific fields and override a handful of hooks
(unique identity, credential erasure, connection preconditions).

Every user-facing setter follows the same order: check that the transport
is ready, send the write to the property sink, then update the local field.
Incoming updates from the stack go through :mod:`netstate.parser` instead
and never touch the sink.

Example:
    >>> wifi = WifiNetwork("/service/wifi_home")
    >>> wifi.set_name("Home")
    >>> wifi.encryption = ConnectionSecurity.WPA
    >>> wifi.calculate_unique_id()
    >>> wifi.unique_id
    'psk|Home'
"""

import copy
import logging
import unicodedata
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urlencode

from netstate import constants as k
from netstate.certificates import CertificateMatcher, CertificatePattern, Continuation
from netstate.credentials import CredentialVault
from netstate.dataplan import CellularDataPlan, DataLeft
from netstate.exceptions import ActivationRejectedError
from netstate.models import (
    ActivationState,
    CellularApn,
    ClientCertType,
    ConnectionErrorCode,
    ConnectionSecurity,
    ConnectionState,
    ConnectionType,
    EAPMethod,
    EAPPhase2Auth,
    NetworkTechnology,
    PropertyIndex,
    ProviderType,
    RoamingState,
)
from netstate.state import StateTransition, apply_transition, is_connected_state, is_connecting_state
from netstate.transport import PropertySource, TransportContext

logger = logging.getLogger(__name__)

REPLACEMENT_CHARACTER = "\ufffd"


def validate_utf8(value: Union[str, bytes]) -> str:
    """Decode a display name, replacing unreadable or control characters.

    Undecodable UTF-8 sequences and code points below 0x20 both become
    U+FFFD.
    """
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    return "".join(REPLACEMENT_CHARACTER if ord(ch) < 0x20 else ch for ch in value)


def decode_ssid(raw: Union[str, bytes]) -> Union[str, bytes]:
    """Convert SSID bytes to text when they are not UTF-8.

    UTF-8 input is returned untouched (as bytes) so that name validation
    handles it. Other input is decoded as cp1252, falling back to latin-1,
    and NFC-normalized.
    """
    if isinstance(raw, str):
        return raw
    try:
        raw.decode("utf-8")
        return raw
    except UnicodeDecodeError:
        pass
    try:
        text = raw.decode("cp1252")
    except UnicodeDecodeError:
        # cp1252 leaves five bytes undefined; latin-1 maps every byte
        text = raw.decode("latin-1")
    return unicodedata.normalize("NFC", text)


def _secret_field(name: str) -> property:
    """Attribute backed by the entity's credential vault."""

    def getter(self: "Network") -> str:
        return self.credentials.get(name)

    def setter(self: "Network", value: str) -> None:
        self.credentials.set(name, value or "")

    return property(getter, setter, doc=f"Credential field '{name}'.")


class Network:
    """Base network service.

    Attributes:
        service_path: Stable path assigned by the stack.
        connection_type: Fixed kind of the service.
        unique_id: Identity derived from identity-affecting fields; changes
            whenever they change.
        property_map: Raw values of properties without a typed field.
        credentials: Secrets owned by this network.
    """

    connection_type: ConnectionType = ConnectionType.ETHERNET
    CREDENTIAL_FIELDS: Tuple[str, ...] = ()

    def __init__(self, service_path: str, context: Optional[TransportContext] = None) -> None:
        self.service_path = service_path
        self.name = ""
        self.unique_id = ""
        self.device_path = ""
        self.ip_address = ""

        self.state = ConnectionState.UNKNOWN
        self.error = ConnectionErrorCode.NO_ERROR
        self.connectable = True
        self.connection_started = False
        self.is_active = False
        self.notify_failure = False

        self.priority = k.PRIORITY_NOT_SET
        self.priority_order = 0
        self.auto_connect = False
        self.save_credentials = False
        self.favorite = False
        self.added = False
        self.strength = 0

        self.profile_path = ""
        self.proxy_config = ""
        self.ui_data: Dict[str, Any] = {}

        self.client_cert_type = ClientCertType.NONE
        self.client_cert_pattern = CertificatePattern()

        self.property_map: Dict[PropertyIndex, Any] = {}
        self.credentials = CredentialVault(self.CREDENTIAL_FIELDS)
        self._context = context

    def bind(self, context: Optional[TransportContext]) -> None:
        self._context = context

    # =========================================================================
    # State
    # =========================================================================

    @property
    def connecting(self) -> bool:
        return is_connecting_state(self.state)

    @property
    def connected(self) -> bool:
        return is_connected_state(self.state)

    @property
    def connecting_or_connected(self) -> bool:
        return self.connecting or self.connected

    @property
    def disconnected(self) -> bool:
        return not self.connecting_or_connected

    @property
    def failed(self) -> bool:
        return self.state is ConnectionState.FAILURE

    @property
    def online(self) -> bool:
        return self.state is ConnectionState.ONLINE

    @property
    def restricted_pool(self) -> bool:
        return self.state is ConnectionState.PORTAL

    def set_state(self, new_state: ConnectionState) -> Optional[StateTransition]:
        """Apply a state reported by the stack.

        Returns:
            The transition, or None if the state did not change.
        """
        self._check_thread()
        return apply_transition(self, new_state)

    async def refresh_ip_address(self, source: Optional[PropertySource]) -> None:
        """Re-read the IP address of a connected network from its device.

        The address is cleared first; it is only re-populated when the
        network is connected and attached to a device.
        """
        self.ip_address = ""
        if source is None:
            return
        if self.connected and self.device_path:
            for config in await source.list_ip_configs(self.device_path):
                address = config.get("address", "")
                if address:
                    self.ip_address = address
                    break

    # =========================================================================
    # Identity
    # =========================================================================

    def set_name(self, name: Union[str, bytes]) -> None:
        self.name = validate_utf8(name)

    def calculate_unique_id(self) -> None:
        """Recompute :attr:`unique_id` from the current fields."""
        self.unique_id = self.name

    def requires_user_profile(self) -> bool:
        """Whether the network can only be saved in a user profile."""
        return False

    # =========================================================================
    # Property Map
    # =========================================================================

    def update_property_map(self, index: PropertyIndex, value: Any) -> None:
        """Store a raw value for ``index``; None removes the entry."""
        if value is None:
            self.property_map.pop(index, None)
            return
        self.property_map[index] = copy.deepcopy(value)
        logger.debug("Updated property map on network %s [%s]", self.unique_id, index.name)

    def get_property(self, index: PropertyIndex, default: Any = None) -> Any:
        return self.property_map.get(index, default)

    def has_property(self, index: PropertyIndex) -> bool:
        return index in self.property_map

    # =========================================================================
    # Credentials
    # =========================================================================

    def erase_credentials(self) -> None:
        """Securely erase every secret held by this network."""
        self.credentials.erase_all()

    def copy_credentials_from_remembered(self, remembered: "Network") -> None:
        """Fill missing secrets from the remembered entry of the same service."""
        pass

    def set_client_cert_id(self, cert_id: str) -> bool:
        """Record the client certificate chosen for this network."""
        return False

    # =========================================================================
    # Transport Writes
    # =========================================================================

    def _log_extra(self) -> Dict[str, str]:
        extra = {"service_path": self.service_path}
        if self.device_path:
            extra["device_path"] = self.device_path
        return extra

    def _check_thread(self) -> None:
        if self._context is not None:
            self._context.check_thread()

    def _ready(self, operation: str) -> bool:
        if self._context is None:
            logger.debug("Network %s not bound, skipping %s", self.service_path, operation)
            return False
        return self._context.ensure_ready(operation)

    def _set_value(self, key: str, value: Any, attr: Optional[str] = None) -> bool:
        if not self._ready(f"set {key}"):
            return False
        self._context.sink.set_property(self.service_path, key, value)
        if attr:
            setattr(self, attr, value)
        return True

    def _clear_value(self, key: str, attr: Optional[str] = None, empty: Any = "") -> bool:
        if not self._ready(f"clear {key}"):
            return False
        self._context.sink.clear_property(self.service_path, key)
        if attr:
            setattr(self, attr, empty)
        return True

    def _set_or_clear_string(self, key: str, value: str, attr: Optional[str] = None) -> bool:
        if value:
            return self._set_value(key, value, attr)
        return self._clear_value(key, attr)

    # =========================================================================
    # User Setters
    # =========================================================================

    def set_preferred(self, preferred: bool) -> bool:
        if preferred:
            return self._set_value(k.KEY_PRIORITY, k.PRIORITY_PREFERRED, "priority")
        return self._clear_value(k.KEY_PRIORITY, "priority", k.PRIORITY_NOT_SET)

    @property
    def preferred(self) -> bool:
        return self.priority != k.PRIORITY_NOT_SET

    def set_auto_connect(self, auto_connect: bool) -> bool:
        return self._set_value(k.KEY_AUTO_CONNECT, auto_connect, "auto_connect")

    def set_save_credentials(self, save_credentials: bool) -> bool:
        return self._set_value(k.KEY_SAVE_CREDENTIALS, save_credentials, "save_credentials")

    def set_profile_path(self, profile_path: str) -> bool:
        logger.debug("Setting profile for %s to %s", self.name, profile_path)
        return self._set_or_clear_string(k.KEY_PROFILE, profile_path, "profile_path")

    def set_proxy_config(self, proxy_config: str) -> bool:
        return self._set_or_clear_string(k.KEY_PROXY_CONFIG, proxy_config, "proxy_config")

    def clear_ui_data(self) -> bool:
        if not self._clear_value(k.KEY_UI_DATA):
            return False
        self.ui_data = {}
        return True

    # =========================================================================
    # Connection
    # =========================================================================

    def attempt_connection(
        self,
        on_resolved: Callable[[], Any],
        matcher: Optional[CertificateMatcher] = None,
    ) -> Continuation:
        """Prepare the connection, then call ``on_resolved``.

        Networks selecting their client certificate by pattern resolve it
        first, which may hand the continuation to an enrollment handler.
        """
        if self.client_cert_type is ClientCertType.PATTERN:
            return (matcher or CertificateMatcher()).resolve(self, on_resolved)
        continuation = Continuation(on_resolved, name=self.service_path)
        continuation.run()
        return continuation

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary. Secrets are reported by presence only."""
        return {
            "service_path": self.service_path,
            "type": self.connection_type.value,
            "name": self.name,
            "unique_id": self.unique_id,
            "state": self.state.value,
            "error": self.error.value,
            "connectable": self.connectable,
            "auto_connect": self.auto_connect,
            "priority": self.priority,
            "strength": self.strength,
            "device_path": self.device_path,
            "ip_address": self.ip_address,
            "profile_path": self.profile_path,
            "credentials": [name for name in self.credentials.field_names() if self.credentials.is_present(name)],
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.service_path!r}, state={self.state.value})"


class EthernetNetwork(Network):
    """Wired network."""

    connection_type = ConnectionType.ETHERNET


# =============================================================================
# WiFi
# =============================================================================


_PHASE_2_PEAP = {
    EAPPhase2Auth.MD5: k.EAP_PHASE_2_PEAP_MD5,
    EAPPhase2Auth.MSCHAPV2: k.EAP_PHASE_2_PEAP_MSCHAPV2,
}

_PHASE_2_TTLS = {
    EAPPhase2Auth.MD5: k.EAP_PHASE_2_TTLS_MD5,
    EAPPhase2Auth.MSCHAPV2: k.EAP_PHASE_2_TTLS_MSCHAPV2,
    EAPPhase2Auth.MSCHAP: k.EAP_PHASE_2_TTLS_MSCHAP,
    EAPPhase2Auth.PAP: k.EAP_PHASE_2_TTLS_PAP,
    EAPPhase2Auth.CHAP: k.EAP_PHASE_2_TTLS_CHAP,
}

# Wire value -> enum, used by the parser
PHASE_2_FROM_WIRE = {
    **{value: auth for auth, value in _PHASE_2_TTLS.items()},
    **{value: auth for auth, value in _PHASE_2_PEAP.items()},
}


class WifiNetwork(Network):
    """WiFi network, including 802.1X (EAP) configuration.

    ``passphrase`` mirrors the value known to the stack while
    ``user_passphrase`` holds what the user typed; the user value wins.
    """

    connection_type = ConnectionType.WIFI
    CREDENTIAL_FIELDS = (
        "passphrase",
        "user_passphrase",
        "eap_client_cert_id",
        "eap_identity",
        "eap_anonymous_identity",
        "eap_passphrase",
    )

    passphrase = _secret_field("passphrase")
    user_passphrase = _secret_field("user_passphrase")
    eap_client_cert_id = _secret_field("eap_client_cert_id")
    eap_identity = _secret_field("eap_identity")
    eap_anonymous_identity = _secret_field("eap_anonymous_identity")
    eap_passphrase = _secret_field("eap_passphrase")

    def __init__(self, service_path: str, context: Optional[TransportContext] = None) -> None:
        super().__init__(service_path, context)
        self.encryption = ConnectionSecurity.NONE
        self.passphrase_required = False
        self.identity = ""
        self.eap_method = EAPMethod.UNKNOWN
        self.eap_phase_2_auth = EAPPhase2Auth.AUTO
        self.eap_server_ca_cert_nss_nickname = ""
        self.eap_use_system_cas = True

    def calculate_unique_id(self) -> None:
        encryption = self.encryption
        # The stack treats WPA and RSN as PSK
        if encryption in (ConnectionSecurity.WPA, ConnectionSecurity.RSN):
            encryption = ConnectionSecurity.PSK
        self.unique_id = f"{encryption.value}|{self.name}"

    def set_ssid(self, ssid: Union[str, bytes]) -> bool:
        """Set the display name from raw SSID bytes or text."""
        self.set_name(decode_ssid(ssid))
        return True

    def set_hex_ssid(self, ssid_hex: str) -> bool:
        """Set the name from an ASCII hex dump such as ``"48656c6c6f"``.

        Returns:
            False if the dump is not valid hex; the name is unchanged.
        """
        try:
            raw = bytes.fromhex(ssid_hex)
        except (ValueError, TypeError):
            logger.warning("Illegal hex char found in %s", k.KEY_WIFI_HEX_SSID)
            return False
        return self.set_ssid(raw)

    # =========================================================================
    # Passphrase
    # =========================================================================

    def get_passphrase(self) -> str:
        return self.user_passphrase or self.passphrase

    def set_passphrase(self, passphrase: str) -> bool:
        """Set the user passphrase.

        An empty value restores the passphrase remembered by the stack and
        clears the property.
        """
        if not self._ready("set_passphrase"):
            return False
        if passphrase:
            self.user_passphrase = passphrase
            self.passphrase = passphrase
            self._context.sink.set_property(self.service_path, k.KEY_PASSPHRASE, passphrase)
        else:
            self.user_passphrase = self.passphrase
            self._context.sink.clear_property(self.service_path, k.KEY_PASSPHRASE)
        return True

    def is_passphrase_required(self) -> bool:
        if self.error in (ConnectionErrorCode.BAD_PASSPHRASE, ConnectionErrorCode.BAD_WEPKEY):
            return True
        # 802.1X needs configuration exactly when the stack says it cannot connect
        if self.encryption is ConnectionSecurity.IEEE8021X:
            return not self.connectable
        return self.passphrase_required

    def requires_user_profile(self) -> bool:
        # Client certificates are only stored for individual users
        if self.encryption is not ConnectionSecurity.IEEE8021X:
            return False
        if self.eap_method is not EAPMethod.TLS:
            return False
        return bool(self.eap_client_cert_id) or self.client_cert_type is ClientCertType.PATTERN

    # =========================================================================
    # EAP
    # =========================================================================

    def set_identity(self, identity: str) -> bool:
        return self._set_value(k.KEY_IDENTITY, identity, "identity")

    def set_eap_method(self, method: EAPMethod) -> bool:
        if not self._ready("set_eap_method"):
            return False
        self.eap_method = method
        if method is EAPMethod.UNKNOWN:
            self._context.sink.clear_property(self.service_path, k.KEY_EAP_METHOD)
        else:
            self._context.sink.set_property(self.service_path, k.KEY_EAP_METHOD, method.value)
        return True

    def set_eap_phase_2_auth(self, auth: EAPPhase2Auth) -> bool:
        """Set the inner authentication; PEAP and TTLS use different wire values."""
        if not self._ready("set_eap_phase_2_auth"):
            return False
        self.eap_phase_2_auth = auth
        if auth is EAPPhase2Auth.AUTO:
            self._context.sink.clear_property(self.service_path, k.KEY_EAP_PHASE_2_AUTH)
            return True
        if self.eap_method is EAPMethod.PEAP and auth in _PHASE_2_PEAP:
            value = _PHASE_2_PEAP[auth]
        else:
            value = _PHASE_2_TTLS[auth]
        self._context.sink.set_property(self.service_path, k.KEY_EAP_PHASE_2_AUTH, value)
        return True

    def set_eap_server_ca_cert_nss_nickname(self, nickname: str) -> bool:
        logger.debug("SetEAPServerCaCertNssNickname %s", nickname)
        return self._set_or_clear_string(k.KEY_EAP_CA_CERT_NSS, nickname, "eap_server_ca_cert_nss_nickname")

    def set_eap_client_cert_id(self, cert_id: str) -> bool:
        if not self._set_or_clear_string(k.KEY_EAP_CERT_ID, cert_id, "eap_client_cert_id"):
            return False
        # TLS connections need both CertID and KeyID, which carry the same id
        self._set_or_clear_string(k.KEY_EAP_KEY_ID, cert_id)
        return True

    def set_client_cert_id(self, cert_id: str) -> bool:
        return self.set_eap_client_cert_id(cert_id)

    def set_eap_use_system_cas(self, use_system_cas: bool) -> bool:
        return self._set_value(k.KEY_EAP_USE_SYSTEM_CAS, use_system_cas, "eap_use_system_cas")

    def set_eap_identity(self, identity: str) -> bool:
        return self._set_or_clear_string(k.KEY_EAP_IDENTITY, identity, "eap_identity")

    def set_eap_anonymous_identity(self, identity: str) -> bool:
        return self._set_or_clear_string(k.KEY_EAP_ANONYMOUS_IDENTITY, identity, "eap_anonymous_identity")

    def set_eap_passphrase(self, passphrase: str) -> bool:
        return self._set_or_clear_string(k.KEY_EAP_PASSWORD, passphrase, "eap_passphrase")

    def set_certificate_pin(self, pin: str) -> bool:
        return self._set_or_clear_string(k.KEY_EAP_PIN, pin)

    def get_encryption_string(self) -> str:
        """Short, unlocalized label for the encryption scheme."""
        if self.encryption is ConnectionSecurity.NONE:
            return ""
        if self.encryption is ConnectionSecurity.IEEE8021X:
            if self.eap_method is EAPMethod.UNKNOWN:
                return "8021X"
            return f"8021X+{self.eap_method.value}"
        if self.encryption is ConnectionSecurity.UNKNOWN:
            return "Unknown"
        return self.encryption.value.upper()

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "encryption": self.get_encryption_string(),
                "passphrase_required": self.is_passphrase_required(),
                "eap_method": self.eap_method.value,
            }
        )
        return data


# =============================================================================
# Cellular
# =============================================================================


class CellularNetwork(Network):
    """Cellular data service.

    ``activation_pending`` is True between an accepted activation request
    and the first activation state reported by the stack, while
    ``activation_state`` already reads ACTIVATING.
    """

    connection_type = ConnectionType.CELLULAR

    def __init__(self, service_path: str, context: Optional[TransportContext] = None) -> None:
        super().__init__(service_path, context)
        self.activation_state = ActivationState.UNKNOWN
        self.activation_pending = False
        self.network_technology = NetworkTechnology.UNKNOWN
        self.roaming_state = RoamingState.UNKNOWN
        self.operator_name = ""
        self.operator_code = ""
        self.apn = CellularApn()
        self.last_good_apn = CellularApn()
        self.usage_url = ""
        self.payment_url = ""
        self.post_data = ""
        self.needs_new_plan = False
        self.data_left = DataLeft.UNKNOWN
        self.data_plans: List[CellularDataPlan] = []

    @property
    def activated(self) -> bool:
        return self.activation_state is ActivationState.ACTIVATED

    @property
    def roaming(self) -> bool:
        return self.roaming_state is RoamingState.ROAMING

    def start_activation(self, carrier: str = "") -> bool:
        """Ask the stack to activate the service.

        On acceptance the activation state is set to ACTIVATING right away,
        so that unrelated status updates arriving before the stack confirms
        are not read as "activation never started".

        Returns:
            True if the request was accepted.
        """
        if not self._ready("start_activation"):
            return False
        try:
            accepted = self._context.sink.request_activation(self.service_path, carrier)
        except ActivationRejectedError as e:
            logger.warning("Activation of %s rejected: %s", self.service_path, e, extra=self._log_extra())
            return False
        if not accepted:
            logger.warning("Activation of %s not accepted", self.service_path, extra=self._log_extra())
            return False
        logger.info("Activation started for %s", self.service_path, extra=self._log_extra())
        self.activation_state = ActivationState.ACTIVATING
        self.activation_pending = True
        return True

    def confirm_activation_state(self, state: ActivationState) -> None:
        """Record an activation state reported by the stack."""
        self.activation_state = state
        self.activation_pending = False

    def refresh_data_plans_if_needed(self) -> bool:
        if not self._ready("refresh_data_plans"):
            return False
        if self.connected and self.activated:
            self._context.sink.request_data_plan_update(self.service_path)
            return True
        return False

    def set_apn(self, apn: CellularApn) -> bool:
        """Write the APN, or clear it when the access point name is empty."""
        if apn.apn:
            if not self._set_value(k.KEY_CELLULAR_APN, apn.to_connect_dict()):
                return False
            self.apn = apn
            return True
        if not self._clear_value(k.KEY_CELLULAR_APN):
            return False
        self.apn = CellularApn()
        return True

    def supports_data_plan(self) -> bool:
        return bool(self.usage_url or self.payment_url)

    def supports_activation(self) -> bool:
        return self.supports_data_plan()

    def needs_activation(self) -> bool:
        return (
            self.activation_state not in (ActivationState.ACTIVATED, ActivationState.UNKNOWN)
            or self.needs_new_plan
        )

    def get_account_info_url(self, redirect_url: str = k.ACCOUNT_REDIRECT_URL) -> str:
        """URL of the carrier account page.

        When the carrier wants its parameters POSTed, the redirect page is
        used with ``post_data`` and ``formUrl`` query parameters.
        """
        if not self.post_data:
            return self.payment_url
        query = urlencode({"post_data": self.post_data, "formUrl": self.payment_url})
        separator = "&" if "?" in redirect_url else "?"
        return f"{redirect_url}{separator}{query}"

    def get_network_technology_string(self) -> str:
        return self.network_technology.display_name

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "activation_state": self.activation_state.value,
                "network_technology": self.get_network_technology_string(),
                "roaming_state": self.roaming_state.value,
                "operator_name": self.operator_name,
                "apn": self.apn.apn,
                "supports_data_plan": self.supports_data_plan(),
            }
        )
        return data


# =============================================================================
# VPN
# =============================================================================


class VirtualNetwork(Network):
    """VPN service (L2TP/IPsec or OpenVPN)."""

    connection_type = ConnectionType.VPN
    CREDENTIAL_FIELDS = ("ca_cert_nss", "psk_passphrase", "client_cert_id", "user_passphrase")

    ca_cert_nss = _secret_field("ca_cert_nss")
    psk_passphrase = _secret_field("psk_passphrase")
    client_cert_id = _secret_field("client_cert_id")
    user_passphrase = _secret_field("user_passphrase")

    def __init__(self, service_path: str, context: Optional[TransportContext] = None) -> None:
        super().__init__(service_path, context)
        self.provider_type = ProviderType.L2TP_IPSEC_PSK
        self.server_hostname = ""
        self.username = ""
        self.group_name = ""
        # Assume credentials are missing until the stack says otherwise
        self.psk_passphrase_required = True
        self.user_passphrase_required = True

    @property
    def is_openvpn(self) -> bool:
        return self.provider_type is ProviderType.OPEN_VPN

    def calculate_unique_id(self) -> None:
        self.unique_id = f"{self.provider_type.value}|{self.server_hostname}"

    def requires_user_profile(self) -> bool:
        return True

    def copy_credentials_from_remembered(self, remembered: Network) -> None:
        if not isinstance(remembered, VirtualNetwork):
            return
        logger.debug("Copy VPN credentials: %s username: %s", self.name, remembered.username)
        if not self.ca_cert_nss:
            self.ca_cert_nss = remembered.ca_cert_nss
        if not self.psk_passphrase:
            self.psk_passphrase = remembered.psk_passphrase
        if not self.client_cert_id:
            self.client_cert_id = remembered.client_cert_id
        if not self.username:
            self.username = remembered.username
        if not self.user_passphrase:
            self.user_passphrase = remembered.user_passphrase

    def is_psk_passphrase_required(self) -> bool:
        return self.psk_passphrase_required and not self.psk_passphrase

    def is_user_passphrase_required(self) -> bool:
        return self.user_passphrase_required and not self.user_passphrase

    def need_more_info_to_connect(self) -> bool:
        """Whether the user must supply more details before connecting.

        OpenVPN always needs more info: the stack does not yet report
        ``Connectable`` reliably for it.
        """
        if not self.server_hostname or not self.username or self.is_user_passphrase_required():
            return True
        if self.error is not ConnectionErrorCode.NO_ERROR:
            return True
        if self.provider_type is ProviderType.L2TP_IPSEC_PSK:
            return self.is_psk_passphrase_required()
        if self.provider_type is ProviderType.L2TP_IPSEC_USER_CERT:
            return not self.client_cert_id
        return True

    # =========================================================================
    # Credentials
    # =========================================================================

    def set_ca_cert_nss(self, ca_cert_nss: str) -> bool:
        key = k.KEY_OPENVPN_CA_CERT_NSS if self.is_openvpn else k.KEY_L2TPIPSEC_CA_CERT_NSS
        return self._set_value(key, ca_cert_nss, "ca_cert_nss")

    def set_l2tpipsec_psk_credentials(
        self, psk_passphrase: str, username: str, user_passphrase: str, group_name: str
    ) -> bool:
        """Configure PSK authentication; empty secrets keep the stored ones."""
        if not self._ready("set_l2tpipsec_psk_credentials"):
            return False
        if psk_passphrase:
            self._set_value(k.KEY_L2TPIPSEC_PSK, psk_passphrase, "psk_passphrase")
        self._set_value(k.KEY_L2TPIPSEC_USER, username, "username")
        if user_passphrase:
            self._set_value(k.KEY_L2TPIPSEC_PASSWORD, user_passphrase, "user_passphrase")
        self._set_value(k.KEY_L2TPIPSEC_GROUP_NAME, group_name, "group_name")
        return True

    def set_l2tpipsec_cert_credentials(
        self, client_cert_id: str, username: str, user_passphrase: str, group_name: str
    ) -> bool:
        if not self._ready("set_l2tpipsec_cert_credentials"):
            return False
        self._set_value(k.KEY_L2TPIPSEC_CLIENT_CERT_ID, client_cert_id, "client_cert_id")
        self._set_value(k.KEY_L2TPIPSEC_USER, username, "username")
        if user_passphrase:
            self._set_value(k.KEY_L2TPIPSEC_PASSWORD, user_passphrase, "user_passphrase")
        self._set_value(k.KEY_L2TPIPSEC_GROUP_NAME, group_name, "group_name")
        return True

    def set_openvpn_credentials(self, client_cert_id: str, username: str, user_passphrase: str, otp: str) -> bool:
        """Configure OpenVPN; the one-time password is write-only."""
        if not self._ready("set_openvpn_credentials"):
            return False
        self._set_value(k.KEY_OPENVPN_CLIENT_CERT_ID, client_cert_id, "client_cert_id")
        self._set_value(k.KEY_OPENVPN_USER, username, "username")
        if user_passphrase:
            self._set_value(k.KEY_OPENVPN_PASSWORD, user_passphrase, "user_passphrase")
        self._set_value(k.KEY_OPENVPN_OTP, otp)
        return True

    def set_certificate_slot_and_pin(self, slot: str, pin: str) -> bool:
        if not self._ready("set_certificate_slot_and_pin"):
            return False
        if self.is_openvpn:
            self._set_or_clear_string(k.KEY_OPENVPN_CLIENT_CERT_SLOT, slot)
            self._set_or_clear_string(k.KEY_OPENVPN_PIN, pin)
        else:
            self._set_or_clear_string(k.KEY_L2TPIPSEC_CLIENT_CERT_SLOT, slot)
            self._set_or_clear_string(k.KEY_L2TPIPSEC_PIN, pin)
        return True

    def set_client_cert_id(self, cert_id: str) -> bool:
        key = k.KEY_OPENVPN_CLIENT_CERT_ID if self.is_openvpn else k.KEY_L2TPIPSEC_CLIENT_CERT_ID
        return self._set_value(key, cert_id, "client_cert_id")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "provider_type": self.provider_type.value,
                "server_hostname": self.server_hostname,
                "username": self.username,
                "need_more_info": self.need_more_info_to_connect(),
            }
        )
        return data


NETWORK_CLASSES = {
    ConnectionType.ETHERNET: EthernetNetwork,
    ConnectionType.WIFI: WifiNetwork,
    ConnectionType.CELLULAR: CellularNetwork,
    ConnectionType.VPN: VirtualNetwork,
}


def create_network(
    connection_type: ConnectionType,
    service_path: str,
    context: Optional[TransportContext] = None,
) -> Network:
    """Instantiate the network class for ``connection_type``."""
    return NETWORK_CLASSES[connection_type](service_path, context)
