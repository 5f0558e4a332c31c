"""
Pytest configuration and fixtures for netstate tests.

This module provides shared fixtures for testing netstate components,
including an in-memory transport standing in for the network stack and
generated X.509 certificates for the pattern matcher.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from netstate.library import NetworkLibrary
from netstate.transport import StubTransport, TransportContext


# ============================================================================
# Property Snapshots
# ============================================================================

WIFI_PATH = "/service/wifi_home"
WIFI_OFFICE_PATH = "/service/wifi_office"
ETHERNET_PATH = "/service/ethernet_eth0"
CELLULAR_PATH = "/service/cellular_0"
VPN_PATH = "/service/vpn_work"

WLAN_DEVICE = "/device/wlan0"
CELLULAR_DEVICE = "/device/cellular0"


def service_properties() -> dict:
    """A small but complete set of visible services."""
    return {
        ETHERNET_PATH: {
            "Type": "ethernet",
            "Name": "Ethernet",
            "State": "idle",
        },
        WIFI_PATH: {
            "Type": "wifi",
            "Name": "HomeNet",
            "Security": "psk",
            "State": "online",
            "Strength": 80,
            "Device": WLAN_DEVICE,
            "WiFi.BSSID": "00:11:22:33:44:55",
        },
        WIFI_OFFICE_PATH: {
            "Type": "wifi",
            "Name": "Office",
            "Security": "802_1x",
            "State": "idle",
            "Strength": 40,
            "EAP.EAP": "TLS",
        },
        CELLULAR_PATH: {
            "Type": "cellular",
            "Name": "Carrier",
            "State": "idle",
            "Cellular.ActivationState": "activated",
            "Cellular.NetworkTechnology": "LTE",
            "Cellular.PaymentURL": "https://carrier.example/pay",
        },
        VPN_PATH: {
            "Type": "vpn",
            "Name": "Work VPN",
            "Provider": {"Type": "l2tpipsec", "Host": "vpn.example.com"},
            "State": "idle",
        },
    }


def device_properties() -> dict:
    return {
        WLAN_DEVICE: {"Type": "wifi", "Name": "wlan0", "Powered": True},
        CELLULAR_DEVICE: {
            "Type": "cellular",
            "Name": "cellular0",
            "Powered": True,
            "Cellular.SIMLockStatus": {"LockType": "", "RetriesLeft": 3, "LockEnabled": False},
            "Cellular.Carrier": "Example Mobile",
        },
    }


# ============================================================================
# Transport Fixtures
# ============================================================================


@pytest.fixture
def transport() -> StubTransport:
    """In-memory transport serving the default snapshot."""
    return StubTransport(
        services=service_properties(),
        devices=device_properties(),
        ip_configs={WLAN_DEVICE: [{"address": "192.168.1.20", "netmask": "255.255.255.0"}]},
    )


@pytest.fixture
def context(transport) -> TransportContext:
    """Transport context bound to the stub transport."""
    return TransportContext(sink=transport, source=transport)


@pytest.fixture
def library(transport) -> NetworkLibrary:
    """Empty library wired to the stub transport (call ``refresh()`` to load)."""
    return NetworkLibrary(sink=transport, source=transport)


# ============================================================================
# Certificate Fixtures
# ============================================================================


def make_certificate(
    subject_cn: str,
    issuer_cn: str = "Example CA",
    organization: str = "Example Org",
    organizational_unit: Optional[str] = None,
    extended_usages: Iterable[x509.ObjectIdentifier] = (ExtendedKeyUsageOID.CLIENT_AUTH,),
    digital_signature: bool = True,
    not_before: Optional[datetime] = None,
    lifetime: timedelta = timedelta(days=365),
) -> x509.Certificate:
    """Generate a certificate signed by a throwaway issuer key.

    Args:
        subject_cn: Subject common name.
        issuer_cn: Issuer common name (the issuer key is not kept).
        organization: Subject and issuer organization.
        organizational_unit: Optional subject organizational unit.
        extended_usages: Extended key usages to include.
        digital_signature: Set the digitalSignature key usage bit.
        not_before: Start of validity, defaults to one day ago.
        lifetime: Validity period.
    """
    key = ec.generate_private_key(ec.SECP256R1())
    issuer_key = ec.generate_private_key(ec.SECP256R1())

    subject_attrs = [
        x509.NameAttribute(NameOID.COMMON_NAME, subject_cn),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
    ]
    if organizational_unit:
        subject_attrs.append(x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, organizational_unit))

    issuer = x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, issuer_cn),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
        ]
    )

    start = not_before or datetime.now(timezone.utc) - timedelta(days=1)
    builder = (
        x509.CertificateBuilder()
        .subject_name(x509.Name(subject_attrs))
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(start)
        .not_valid_after(start + lifetime)
        .add_extension(
            x509.KeyUsage(
                digital_signature=digital_signature,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
    )
    usages = list(extended_usages)
    if usages:
        builder = builder.add_extension(x509.ExtendedKeyUsage(usages), critical=False)
    return builder.sign(issuer_key, hashes.SHA256())


@pytest.fixture
def client_certificate() -> x509.Certificate:
    """Valid client-auth certificate issued by "Example CA"."""
    return make_certificate("alice", organizational_unit="Engineering")
