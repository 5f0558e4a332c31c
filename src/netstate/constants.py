"""Property key constants for the network entity state manager.

This module defines the raw property key strings delivered by the network
stack for services and devices, plus the wire values of the enumerated
properties that have no dedicated enum.
"""

# =============================================================================
# Service (Network) Properties
# =============================================================================

KEY_STATE = "State"
KEY_ERROR = "Error"
KEY_NAME = "Name"
KEY_TYPE = "Type"
KEY_DEVICE = "Device"
KEY_CONNECTABLE = "Connectable"
KEY_IS_ACTIVE = "IsActive"
KEY_PRIORITY = "Priority"
KEY_AUTO_CONNECT = "AutoConnect"
KEY_SAVE_CREDENTIALS = "SaveCredentials"
KEY_PROFILE = "Profile"
KEY_PROXY_CONFIG = "ProxyConfig"
KEY_UI_DATA = "UIData"
KEY_FAVORITE = "Favorite"
KEY_GUID = "GUID"
KEY_MODE = "Mode"
KEY_CHECK_PORTAL = "CheckPortal"
KEY_IP_CONFIG = "IPConfig"
KEY_STRENGTH = "Strength"

# Client certificate selection (shared by WiFi 802.1X and VPN)
KEY_CLIENT_CERT_TYPE = "ClientCertType"
KEY_CLIENT_CERT_PATTERN = "ClientCertPattern"

# =============================================================================
# WiFi Properties
# =============================================================================

KEY_SSID = "SSID"
KEY_WIFI_HEX_SSID = "WiFi.HexSSID"
KEY_WIFI_FREQUENCY = "WiFi.Frequency"
KEY_WIFI_BSSID = "WiFi.BSSID"
KEY_SECURITY = "Security"
KEY_PASSPHRASE = "Passphrase"
KEY_PASSPHRASE_REQUIRED = "PassphraseRequired"
KEY_IDENTITY = "Identity"
KEY_EAP_METHOD = "EAP.EAP"
KEY_EAP_PHASE_2_AUTH = "EAP.InnerEAP"
KEY_EAP_IDENTITY = "EAP.Identity"
KEY_EAP_ANONYMOUS_IDENTITY = "EAP.AnonymousIdentity"
KEY_EAP_PASSWORD = "EAP.Password"
KEY_EAP_CA_CERT_NSS = "EAP.CACertNSS"
KEY_EAP_CERT_ID = "EAP.CertID"
KEY_EAP_KEY_ID = "EAP.KeyID"
KEY_EAP_USE_SYSTEM_CAS = "EAP.UseSystemCAs"
KEY_EAP_PIN = "EAP.PIN"

# EAP method wire values
EAP_METHOD_PEAP = "PEAP"
EAP_METHOD_TLS = "TLS"
EAP_METHOD_TTLS = "TTLS"
EAP_METHOD_LEAP = "LEAP"

# Phase 2 authentication wire values (PEAP and TTLS spell them differently)
EAP_PHASE_2_PEAP_MD5 = "auth=MD5"
EAP_PHASE_2_PEAP_MSCHAPV2 = "auth=MSCHAPV2"
EAP_PHASE_2_TTLS_MD5 = "autheap=MD5"
EAP_PHASE_2_TTLS_MSCHAPV2 = "autheap=MSCHAPV2"
EAP_PHASE_2_TTLS_MSCHAP = "autheap=MSCHAP"
EAP_PHASE_2_TTLS_PAP = "autheap=PAP"
EAP_PHASE_2_TTLS_CHAP = "autheap=CHAP"

# =============================================================================
# Cellular Service Properties
# =============================================================================

KEY_ACTIVATION_STATE = "Cellular.ActivationState"
KEY_NETWORK_TECHNOLOGY = "Cellular.NetworkTechnology"
KEY_ROAMING_STATE = "Cellular.RoamingState"
KEY_OPERATOR_NAME = "Cellular.OperatorName"
KEY_OPERATOR_CODE = "Cellular.OperatorCode"
KEY_CELLULAR_APN = "Cellular.APN"
KEY_CELLULAR_LAST_GOOD_APN = "Cellular.LastGoodAPN"
KEY_USAGE_URL = "Cellular.UsageUrl"
KEY_PAYMENT_URL = "Cellular.PaymentURL"
KEY_POST_DATA = "Cellular.PaymentPostData"

# APN dictionary fields
KEY_APN = "apn"
KEY_APN_NETWORK_ID = "network_id"
KEY_APN_USERNAME = "username"
KEY_APN_PASSWORD = "password"
KEY_APN_NAME = "name"
KEY_APN_LOCALIZED_NAME = "localized_name"
KEY_APN_LANGUAGE = "language"

# =============================================================================
# VPN Properties
# =============================================================================

KEY_PROVIDER = "Provider"
KEY_PROVIDER_TYPE = "Provider.Type"
KEY_PROVIDER_HOST = "Provider.Host"
KEY_VPN_DOMAIN = "VPN.Domain"

KEY_L2TPIPSEC_CA_CERT_NSS = "L2TPIPsec.CACertNSS"
KEY_L2TPIPSEC_PSK = "L2TPIPsec.PSK"
KEY_L2TPIPSEC_PSK_REQUIRED = "L2TPIPsec.PSKRequired"
KEY_L2TPIPSEC_USER = "L2TPIPsec.User"
KEY_L2TPIPSEC_PASSWORD = "L2TPIPsec.Password"
KEY_L2TPIPSEC_PASSWORD_REQUIRED = "L2TPIPsec.PasswordRequired"
KEY_L2TPIPSEC_CLIENT_CERT_ID = "L2TPIPsec.ClientCertID"
KEY_L2TPIPSEC_CLIENT_CERT_SLOT = "L2TPIPsec.ClientCertSlot"
KEY_L2TPIPSEC_PIN = "L2TPIPsec.PIN"
KEY_L2TPIPSEC_GROUP_NAME = "L2TPIPsec.GroupName"

KEY_OPENVPN_CA_CERT_NSS = "OpenVPN.CACertNSS"
KEY_OPENVPN_USER = "OpenVPN.User"
KEY_OPENVPN_PASSWORD = "OpenVPN.Password"
KEY_OPENVPN_PASSWORD_REQUIRED = "OpenVPN.PasswordRequired"
KEY_OPENVPN_CLIENT_CERT_ID = "OpenVPN.Pkcs11.ID"
KEY_OPENVPN_CLIENT_CERT_SLOT = "OpenVPN.Pkcs11.Slot"
KEY_OPENVPN_PIN = "OpenVPN.Pkcs11.PIN"
KEY_OPENVPN_OTP = "OpenVPN.OTP"

# Generic provider type reported by the stack before the auth flavour is known
PROVIDER_TYPE_L2TP_IPSEC = "l2tpipsec"

# =============================================================================
# Device Properties
# =============================================================================

KEY_DEVICE_TYPE = "Type"
KEY_DEVICE_NAME = "Name"
KEY_POWERED = "Powered"
KEY_SCANNING = "Scanning"
KEY_SIM_LOCK_STATUS = "Cellular.SIMLockStatus"
KEY_SIM_LOCK_TYPE = "LockType"
KEY_SIM_LOCK_RETRIES_LEFT = "RetriesLeft"
KEY_SIM_LOCK_ENABLED = "LockEnabled"
KEY_DATA_ROAMING_ALLOWED = "Cellular.AllowRoaming"
KEY_CARRIER = "Cellular.Carrier"
KEY_FIRMWARE_REVISION = "Cellular.FirmwareRevision"
KEY_HARDWARE_REVISION = "Cellular.HardwareRevision"
KEY_MANUFACTURER = "Cellular.Manufacturer"
KEY_MODEL_ID = "Cellular.ModelID"
KEY_IMEI = "Cellular.IMEI"
KEY_IMSI = "Cellular.IMSI"
KEY_MEID = "Cellular.MEID"
KEY_ESN = "Cellular.ESN"
KEY_MDN = "Cellular.MDN"
KEY_MIN = "Cellular.MIN"
KEY_PRL_VERSION = "Cellular.PRLVersion"
KEY_HOME_PROVIDER = "Cellular.HomeProvider"
KEY_SELECTED_NETWORK = "Cellular.SelectedNetwork"
KEY_FOUND_NETWORKS = "Cellular.FoundNetworks"
KEY_SUPPORT_NETWORK_SCAN = "Cellular.SupportNetworkScan"
KEY_TECHNOLOGY_FAMILY = "Cellular.Family"

# Home provider / found network dictionary fields
KEY_OPERATOR_NAME_FIELD = "name"
KEY_OPERATOR_CODE_FIELD = "code"
KEY_OPERATOR_COUNTRY_FIELD = "country"
KEY_FOUND_STATUS = "status"
KEY_FOUND_NETWORK_ID = "network_id"
KEY_FOUND_SHORT_NAME = "short_name"
KEY_FOUND_LONG_NAME = "long_name"
KEY_FOUND_TECHNOLOGY = "technology"

# =============================================================================
# Defaults
# =============================================================================

PRIORITY_NOT_SET: int = 0
"""Priority value of a network that was never marked preferred."""

PRIORITY_PREFERRED: int = 1
"""Priority value written when the user marks a network preferred."""

ACCOUNT_REDIRECT_URL: str = (
    "chrome-extension://iadeocfgjdjdmpenejdbfeaocpbikmab/redirect.html?autoPost=1"
)
"""Page that re-POSTs carrier account parameters to the payment portal."""
