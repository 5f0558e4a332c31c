"""Network entity state manager.

This package keeps an in-memory model of the network devices and services
reported by a lower-level network stack.

Features:
- Device and network (Ethernet, WiFi, Cellular, VPN) entities
- Property update parsing with a generic property map
- Connection state machine with failure bookkeeping
- Credential vault with secure erase
- Client certificate pattern matching with deferred enrollment
- Cellular data plan arithmetic

Quick Start:
    >>> from netstate import NetworkLibrary, StubTransport
    >>>
    >>> transport = StubTransport(services={
    ...     "/service/wifi1": {"Type": "wifi", "Name": "HomeNet", "Security": "psk"},
    ... })
    >>> library = NetworkLibrary(sink=transport, source=transport)
    >>> await library.refresh()
    >>> network = library.find_network_by_path("/service/wifi1")
    >>> network.set_passphrase("secret")
    True
    >>> library.connect_to_network(network)
"""

# Core Classes
from netstate.library import NetworkLibrary, ReconcileResult
from netstate.device import NetworkDevice
from netstate.network import (
    CellularNetwork,
    EthernetNetwork,
    Network,
    VirtualNetwork,
    WifiNetwork,
    create_network,
)
from netstate.parser import ParseResult, PropertyUpdate, apply_property, parser_for

# State and Events
from netstate.state import StateTransition, apply_transition
from netstate.events import ChangeEvent, EntityKind, ObserverRegistry

# Credentials and Certificates
from netstate.credentials import CredentialVault, SecretString, secure_erase
from netstate.certificates import (
    CertificateMatcher,
    CertificatePattern,
    CertificateStore,
    Continuation,
    EnrollmentHandler,
    InMemoryCertificateStore,
    IssuerSubjectPattern,
)

# Data Plans
from netstate.dataplan import (
    CellularDataPlan,
    DataLeft,
    DataPlanThresholds,
    DataPlanType,
)

# Transport
from netstate.transport import PropertySink, PropertySource, StubTransport, TransportContext

# Configuration
from netstate.config import LoggingConfig, NetStateConfig

# Models
from netstate.models import (
    ActivationState,
    CellularApn,
    ClientCertType,
    ConnectionErrorCode,
    ConnectionSecurity,
    ConnectionState,
    ConnectionType,
    DeviceType,
    EAPMethod,
    EAPPhase2Auth,
    NetworkIPConfig,
    PropertyIndex,
    ProviderType,
    SimLockState,
)

# Exceptions
from netstate.exceptions import (
    ActivationRejectedError,
    ConfigurationError,
    ContinuationError,
    DeviceNotFoundError,
    NetStateError,
    NetworkNotFoundError,
    SnapshotLoadError,
    ThreadAffinityError,
    TransportUnavailableError,
)

__all__ = [
    # Core
    "NetworkLibrary",
    "ReconcileResult",
    "NetworkDevice",
    "Network",
    "EthernetNetwork",
    "WifiNetwork",
    "CellularNetwork",
    "VirtualNetwork",
    "create_network",
    "ParseResult",
    "PropertyUpdate",
    "apply_property",
    "parser_for",
    # State and Events
    "StateTransition",
    "apply_transition",
    "ChangeEvent",
    "EntityKind",
    "ObserverRegistry",
    # Credentials and Certificates
    "CredentialVault",
    "SecretString",
    "secure_erase",
    "CertificateMatcher",
    "CertificatePattern",
    "CertificateStore",
    "Continuation",
    "EnrollmentHandler",
    "InMemoryCertificateStore",
    "IssuerSubjectPattern",
    # Data Plans
    "CellularDataPlan",
    "DataLeft",
    "DataPlanThresholds",
    "DataPlanType",
    # Transport
    "PropertySink",
    "PropertySource",
    "StubTransport",
    "TransportContext",
    # Configuration
    "LoggingConfig",
    "NetStateConfig",
    # Models
    "ActivationState",
    "CellularApn",
    "ClientCertType",
    "ConnectionErrorCode",
    "ConnectionSecurity",
    "ConnectionState",
    "ConnectionType",
    "DeviceType",
    "EAPMethod",
    "EAPPhase2Auth",
    "NetworkIPConfig",
    "PropertyIndex",
    "ProviderType",
    "SimLockState",
    # Exceptions
    "ActivationRejectedError",
    "ConfigurationError",
    "ContinuationError",
    "DeviceNotFoundError",
    "NetStateError",
    "NetworkNotFoundError",
    "SnapshotLoadError",
    "ThreadAffinityError",
    "TransportUnavailableError",
]

__version__ = "0.1.0"
