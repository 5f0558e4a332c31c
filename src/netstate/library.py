"""Network library: registries of devices and networks.

The library owns every :class:`NetworkDevice` and :class:`Network` instance.
It reconciles full snapshots from the stack, applies single property
updates, keeps the unique-identity indexes and per-kind orderings in step
with the registries, and notifies observers once a change is fully applied.

Classes:
    ReconcileResult: Paths added, removed and changed by a snapshot
    NetworkLibrary: Registries, queries and user requests
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from netstate import constants as k
from netstate.certificates import CertificateMatcher, CertificateStore, Continuation, EnrollmentHandler
from netstate.config import NetStateConfig
from netstate.dataplan import CellularDataPlan, DataLeft, deduplicate_plans, significant_data_plan
from netstate.device import NetworkDevice
from netstate.events import ChangeEvent, EntityKind, Observer, ObserverRegistry
from netstate.exceptions import DeviceNotFoundError, NetworkNotFoundError, TransportUnavailableError
from netstate.models import ConnectionType, parse_enum
from netstate.network import (
    CellularNetwork,
    EthernetNetwork,
    Network,
    VirtualNetwork,
    WifiNetwork,
    create_network,
)
from netstate.parser import DEVICE_PARSER, IGNORED, PropertyUpdate, parser_for
from netstate.transport import PropertySink, PropertySource, TransportContext

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of reconciling one snapshot against a registry."""

    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    changed: Dict[str, List[PropertyUpdate]] = field(default_factory=dict)

    @property
    def membership_changed(self) -> bool:
        return bool(self.added or self.removed)


class NetworkLibrary:
    """In-memory model of the devices and networks known to the stack.

    Two registries hold networks: the visible set (services the stack
    currently sees) and the remembered set (saved profile entries). Each has
    its own unique-identity index, rebuilt whenever membership or identity
    changes, so lookups never return an entity that was removed.

    Example:
        >>> transport = StubTransport(services={...}, devices={...})
        >>> library = NetworkLibrary(sink=transport, source=transport)
        >>> await library.refresh()
        >>> library.wifi_networks[0].name
        'HomeNet'
    """

    def __init__(
        self,
        sink: Optional[PropertySink] = None,
        source: Optional[PropertySource] = None,
        config: Optional[NetStateConfig] = None,
        certificate_store: Optional[CertificateStore] = None,
        enrollment_handler: Optional[EnrollmentHandler] = None,
    ) -> None:
        self.config = config or NetStateConfig()
        self._context = TransportContext(
            sink=sink,
            source=source,
            enforce_thread_affinity=self.config.enforce_thread_affinity,
        )
        self._matcher = CertificateMatcher(certificate_store, enrollment_handler)
        self.observers = ObserverRegistry()

        # Registries (owning)
        self._devices: Dict[str, NetworkDevice] = {}
        self._networks: Dict[str, Network] = {}
        self._remembered: Dict[str, Network] = {}

        # Indexes and orderings (non-owning, rebuilt from the registries)
        self._network_order: List[str] = []
        self._remembered_order: List[str] = []
        self._unique_id_index: Dict[str, Network] = {}
        self._remembered_unique_id_index: Dict[str, Network] = {}

        self._data_plans: Dict[str, List[CellularDataPlan]] = {}

    @property
    def context(self) -> TransportContext:
        return self._context

    @property
    def matcher(self) -> CertificateMatcher:
        return self._matcher

    # =========================================================================
    # Snapshot Reconciliation
    # =========================================================================

    async def refresh(self) -> bool:
        """Pull full device and service snapshots from the property source.

        Returns:
            False if no source is configured or it is unavailable.
        """
        source = self._context.source
        if source is None:
            logger.debug("No property source, skipping refresh")
            return False
        try:
            devices = await source.get_device_properties()
            services = await source.get_service_properties()
        except TransportUnavailableError as e:
            logger.warning("Refresh skipped: %s", e)
            return False
        await self.update_device_list(devices)
        await self.update_network_service_list(services)
        return True

    async def update_network_service_list(
        self, services: Mapping[str, Mapping[str, Any]]
    ) -> ReconcileResult:
        """Reconcile the visible set against a full service snapshot.

        Existing instances are updated in place; services missing from the
        snapshot are removed together with their index entries and
        observers. Snapshot order is the visible order.
        """
        self._context.check_thread()
        result = self._reconcile(self._networks, services)
        self._network_order = [path for path in services if path in self._networks]
        self._rebuild_visible_index()

        for path in result.added:
            counterpart = self._remembered_unique_id_index.get(self._networks[path].unique_id)
            if counterpart is not None:
                self._networks[path].copy_credentials_from_remembered(counterpart)

        await self._refresh_ip_addresses(self._networks, result)

        logger.info(
            "Service list updated: %d added, %d removed, %d changed",
            len(result.added),
            len(result.removed),
            len(result.changed),
        )
        await self._notify_changes(EntityKind.NETWORK, result)
        if result.membership_changed:
            await self.observers.notify(ChangeEvent(EntityKind.NETWORK_LIST))
        return result

    async def update_remembered_network_list(
        self, services: Mapping[str, Mapping[str, Any]]
    ) -> ReconcileResult:
        """Reconcile the remembered set against the profile's entries.

        Snapshot order is the preference order; ``priority_order`` is set
        to each entry's position.
        """
        self._context.check_thread()
        result = self._reconcile(self._remembered, services)
        self._remembered_order = [path for path in services if path in self._remembered]
        for position, path in enumerate(self._remembered_order):
            self._remembered[path].priority_order = position
        self._rebuild_remembered_index()

        for network in self._networks.values():
            counterpart = self._remembered_unique_id_index.get(network.unique_id)
            if counterpart is not None:
                network.copy_credentials_from_remembered(counterpart)

        logger.info(
            "Remembered list updated: %d added, %d removed",
            len(result.added),
            len(result.removed),
        )
        if result.membership_changed or result.changed:
            await self.observers.notify(ChangeEvent(EntityKind.NETWORK_LIST))
        return result

    async def update_device_list(self, devices: Mapping[str, Mapping[str, Any]]) -> ReconcileResult:
        """Reconcile the device registry against a full device snapshot."""
        self._context.check_thread()
        result = ReconcileResult()

        for path in [path for path in self._devices if path not in devices]:
            del self._devices[path]
            self.observers.remove_entity(path)
            result.removed.append(path)

        for path, properties in devices.items():
            device = self._devices.get(path)
            if device is None:
                device = NetworkDevice(path, self._context)
                self._devices[path] = device
                result.added.append(path)
            updates = DEVICE_PARSER.update_from_info(device, properties)
            if path not in result.added and any(update.changed for update in updates):
                result.changed[path] = updates

        logger.info(
            "Device list updated: %d added, %d removed, %d changed",
            len(result.added),
            len(result.removed),
            len(result.changed),
        )
        await self._notify_changes(EntityKind.DEVICE, result)
        if result.membership_changed:
            await self.observers.notify(ChangeEvent(EntityKind.DEVICE_LIST))
        return result

    def _reconcile(
        self, registry: Dict[str, Network], services: Mapping[str, Mapping[str, Any]]
    ) -> ReconcileResult:
        result = ReconcileResult()

        for path in [path for path in registry if path not in services]:
            self._drop(registry, path)
            result.removed.append(path)

        for path, properties in services.items():
            network = registry.get(path)
            if network is None:
                network = self._create(path, properties)
                if network is None:
                    continue
                registry[path] = network
                parser_for(network).update_from_info(network, properties)
                result.added.append(path)
                continue
            updates = parser_for(network).update_from_info(network, properties)
            if any(update.changed for update in updates):
                result.changed[path] = updates

        return result

    def _create(self, path: str, properties: Mapping[str, Any]) -> Optional[Network]:
        connection_type = parse_enum(ConnectionType, properties.get(k.KEY_TYPE))
        if connection_type is None:
            logger.debug("Skipping service %s with unsupported type %r", path, properties.get(k.KEY_TYPE))
            return None
        return create_network(connection_type, path, self._context)

    def _drop(self, registry: Dict[str, Network], path: str) -> None:
        network = registry.pop(path)
        network.erase_credentials()
        if path not in self._networks and path not in self._remembered:
            self.observers.remove_entity(path)
        self._data_plans.pop(path, None)

    def _rebuild_visible_index(self) -> None:
        self._unique_id_index = self._build_index(self._networks[path] for path in self._network_order)

    def _rebuild_remembered_index(self) -> None:
        self._remembered_unique_id_index = self._build_index(
            self._remembered[path] for path in self._remembered_order
        )

    @staticmethod
    def _build_index(networks: Iterable[Network]) -> Dict[str, Network]:
        index: Dict[str, Network] = {}
        for network in networks:
            # First entry wins so re-announcements do not shadow the original
            if network.unique_id and network.unique_id not in index:
                index[network.unique_id] = network
        return index

    async def _refresh_ip_addresses(self, registry: Mapping[str, Network], result: ReconcileResult) -> None:
        for path, updates in result.changed.items():
            if any(u.transition is not None and u.transition.needs_ip_refresh for u in updates):
                await registry[path].refresh_ip_address(self._context.source)
        for path in result.added:
            network = registry[path]
            if network.connected:
                await network.refresh_ip_address(self._context.source)

    async def _notify_changes(self, kind: EntityKind, result: ReconcileResult) -> None:
        for path, updates in result.changed.items():
            changed = [update for update in updates if update.changed]
            transition = next((u.transition for u in reversed(changed) if u.transition is not None), None)
            await self.observers.notify(
                ChangeEvent(kind, path, index=changed[-1].index, transition=transition)
            )

    # =========================================================================
    # Property Updates
    # =========================================================================

    async def apply_network_property(self, service_path: str, key: str, value: Any) -> PropertyUpdate:
        """Apply one property pushed by the stack for a service.

        The property is applied to the visible entry and, if the same path
        is also remembered, to the remembered entry.

        Returns:
            The update for the visible entry (or the remembered one if the
            service is not visible); ``IGNORED`` for an unknown path.
        """
        self._context.check_thread()
        visible = self._networks.get(service_path)
        remembered = self._remembered.get(service_path)
        if visible is None and remembered is None:
            logger.debug("Property %s for unknown service %s", key, service_path)
            return IGNORED

        update = IGNORED
        if remembered is not None:
            update = parser_for(remembered).update_status(remembered, key, value)
            if update.identity_changed:
                self._rebuild_remembered_index()
        if visible is not None:
            update = parser_for(visible).update_status(visible, key, value)
            if update.identity_changed:
                self._rebuild_visible_index()
            if update.transition is not None and update.transition.needs_ip_refresh:
                await visible.refresh_ip_address(self._context.source)

        if update.changed:
            await self.observers.notify(
                ChangeEvent(EntityKind.NETWORK, service_path, index=update.index, transition=update.transition)
            )
        return update

    async def apply_device_property(self, device_path: str, key: str, value: Any) -> PropertyUpdate:
        """Apply one property pushed by the stack for a device."""
        self._context.check_thread()
        device = self._devices.get(device_path)
        if device is None:
            logger.debug("Property %s for unknown device %s", key, device_path)
            return IGNORED
        update = DEVICE_PARSER.update_status(device, key, value)
        if update.changed:
            await self.observers.notify(ChangeEvent(EntityKind.DEVICE, device_path, index=update.index))
        return update

    # =========================================================================
    # User Requests
    # =========================================================================

    def connect_to_network(self, network: Network) -> Optional[Continuation]:
        """Start connecting to a visible network.

        Networks selecting their certificate by pattern resolve it first;
        the returned continuation may still be pending if enrollment took
        over.

        Returns:
            The continuation that issues the connect request, or None if the
            transport is unavailable.
        """
        if not self._context.ensure_ready("connect"):
            return None

        def on_resolved() -> None:
            # Enrollment may finish long after the network went away
            if self._networks.get(network.service_path) is not network:
                logger.info(
                    "Network %s disappeared before connecting",
                    network.service_path,
                    extra={"service_path": network.service_path},
                )
                return
            if not self._context.ensure_ready("connect"):
                return
            network.connection_started = True
            self._context.sink.connect_service(network.service_path)

        return network.attempt_connection(on_resolved, self._matcher)

    def disconnect_from_network(self, network: Network) -> bool:
        if not self._context.ensure_ready("disconnect"):
            return False
        self._context.sink.disconnect_service(network.service_path)
        return True

    async def forget_network(self, service_path: str) -> bool:
        """Forget a remembered network and erase its secrets.

        ``service_path`` may name the remembered entry or its visible
        counterpart.

        Returns:
            True if a remembered entry was found and forgotten.
        """
        if not self._context.ensure_ready("forget"):
            return False

        remembered = self._remembered.get(service_path)
        if remembered is None:
            visible = self._networks.get(service_path)
            if visible is not None:
                remembered = self._remembered_unique_id_index.get(visible.unique_id)
        if remembered is None:
            logger.debug("No remembered network for %s", service_path)
            return False

        self._context.sink.forget_service(remembered.service_path)
        visible = self._unique_id_index.get(remembered.unique_id)
        if visible is not None:
            visible.erase_credentials()
        await self._remove_remembered([remembered.service_path])
        logger.info("Forgot network %s", remembered.service_path, extra={"service_path": remembered.service_path})
        return True

    async def remove_profile(self, profile_path: str) -> int:
        """Drop every remembered entry stored in ``profile_path``.

        Returns:
            Number of entries removed.
        """
        self._context.check_thread()
        paths = [path for path, network in self._remembered.items() if network.profile_path == profile_path]
        if paths:
            await self._remove_remembered(paths)
        logger.info("Removed profile %s (%d networks)", profile_path, len(paths))
        return len(paths)

    async def _remove_remembered(self, paths: Sequence[str]) -> None:
        for path in paths:
            self._drop(self._remembered, path)
        self._remembered_order = [path for path in self._remembered_order if path in self._remembered]
        for position, path in enumerate(self._remembered_order):
            self._remembered[path].priority_order = position
        self._rebuild_remembered_index()
        await self.observers.notify(ChangeEvent(EntityKind.NETWORK_LIST))

    def erase_all_credentials(self) -> None:
        """Securely erase the secrets of every visible and remembered network."""
        self._context.check_thread()
        for network in list(self._networks.values()) + list(self._remembered.values()):
            network.erase_credentials()
        logger.info("Erased credentials of %d networks", len(self._networks) + len(self._remembered))

    async def logout(self) -> None:
        """Erase every secret and drop the user's remembered networks."""
        self.erase_all_credentials()
        if self._remembered:
            await self._remove_remembered(list(self._remembered))
        self._data_plans.clear()

    def activate_cellular(self, service_path: str, carrier: str = "") -> bool:
        network = self._networks.get(service_path)
        if not isinstance(network, CellularNetwork):
            logger.debug("No cellular network at %s", service_path)
            return False
        return network.start_activation(carrier)

    def account_info_url(self, service_path: str) -> str:
        """Carrier account URL for a cellular network, "" if unknown."""
        network = self._networks.get(service_path)
        if not isinstance(network, CellularNetwork):
            return ""
        return network.get_account_info_url(self.config.account_redirect_url)

    # =========================================================================
    # Data Plans
    # =========================================================================

    async def update_cellular_data_plans(
        self, service_path: str, plans: Iterable[CellularDataPlan]
    ) -> bool:
        """Replace the cached plans of a cellular network.

        Duplicate plans are dropped; the network's ``data_left`` is
        classified from its significant plan. ``needs_new_plan`` is set
        while that plan is used up.

        Returns:
            False if no visible cellular network has ``service_path``.
        """
        self._context.check_thread()
        network = self._networks.get(service_path)
        if not isinstance(network, CellularNetwork):
            logger.debug("Data plans for unknown cellular network %s", service_path)
            return False

        unique_plans = deduplicate_plans(plans)
        self._data_plans[service_path] = unique_plans
        network.data_plans = unique_plans
        significant = significant_data_plan(unique_plans)
        network.data_left = (
            significant.data_left(self.config.thresholds) if significant is not None else DataLeft.UNKNOWN
        )
        # An exhausted plan has to be replaced before the service is usable again
        network.needs_new_plan = network.data_left is DataLeft.NONE
        logger.debug("%s has %d data plans (%s)", service_path, len(unique_plans), network.data_left.value)
        await self.observers.notify(ChangeEvent(EntityKind.DATA_PLAN, service_path))
        return True

    def get_data_plans(self, service_path: str) -> List[CellularDataPlan]:
        return list(self._data_plans.get(service_path, []))

    def significant_data_plan(self, service_path: str) -> Optional[CellularDataPlan]:
        return significant_data_plan(self._data_plans.get(service_path, []))

    # =========================================================================
    # Queries
    # =========================================================================

    def find_network_by_path(self, service_path: str) -> Optional[Network]:
        return self._networks.get(service_path)

    def find_remembered_network_by_path(self, service_path: str) -> Optional[Network]:
        return self._remembered.get(service_path)

    def find_network_by_unique_id(self, unique_id: str) -> Optional[Network]:
        return self._unique_id_index.get(unique_id)

    def find_remembered_network_by_unique_id(self, unique_id: str) -> Optional[Network]:
        return self._remembered_unique_id_index.get(unique_id)

    def find_device_by_path(self, device_path: str) -> Optional[NetworkDevice]:
        return self._devices.get(device_path)

    def require_network(self, service_path: str) -> Network:
        """Visible network at ``service_path``.

        Raises:
            NetworkNotFoundError: If there is none.
        """
        network = self._networks.get(service_path)
        if network is None:
            raise NetworkNotFoundError(service_path)
        return network

    def require_device(self, device_path: str) -> NetworkDevice:
        """Device at ``device_path``.

        Raises:
            DeviceNotFoundError: If there is none.
        """
        device = self._devices.get(device_path)
        if device is None:
            raise DeviceNotFoundError(device_path)
        return device

    @property
    def devices(self) -> List[NetworkDevice]:
        return list(self._devices.values())

    @property
    def networks(self) -> List[Network]:
        """Visible networks in stack order."""
        return [self._networks[path] for path in self._network_order]

    @property
    def remembered_networks(self) -> List[Network]:
        """Remembered networks, most preferred first."""
        return [self._remembered[path] for path in self._remembered_order]

    def _visible_of(self, network_cls: type) -> List[Any]:
        return [network for network in self.networks if isinstance(network, network_cls)]

    @property
    def ethernet_networks(self) -> List[EthernetNetwork]:
        return self._visible_of(EthernetNetwork)

    @property
    def wifi_networks(self) -> List[WifiNetwork]:
        """Visible WiFi networks, most relevant first."""
        return sorted(
            self._visible_of(WifiNetwork),
            key=lambda n: (n.connected, n.connecting, n.priority, n.strength),
            reverse=True,
        )

    @property
    def cellular_networks(self) -> List[CellularNetwork]:
        return self._visible_of(CellularNetwork)

    @property
    def virtual_networks(self) -> List[VirtualNetwork]:
        return self._visible_of(VirtualNetwork)

    @property
    def remembered_wifi_networks(self) -> List[WifiNetwork]:
        return [n for n in self.remembered_networks if isinstance(n, WifiNetwork)]

    @property
    def remembered_virtual_networks(self) -> List[VirtualNetwork]:
        return [n for n in self.remembered_networks if isinstance(n, VirtualNetwork)]

    def _active(self, networks: Sequence[Network]) -> Optional[Network]:
        for network in networks:
            if network.connecting_or_connected:
                return network
        return None

    @property
    def ethernet_network(self) -> Optional[EthernetNetwork]:
        return self._active(self.ethernet_networks)

    @property
    def wifi_network(self) -> Optional[WifiNetwork]:
        return self._active(self.wifi_networks)

    @property
    def cellular_network(self) -> Optional[CellularNetwork]:
        return self._active(self.cellular_networks)

    @property
    def virtual_network(self) -> Optional[VirtualNetwork]:
        return self._active(self.virtual_networks)

    def connected_networks(self) -> List[Network]:
        return [network for network in self.networks if network.connected]

    def connecting_networks(self) -> List[Network]:
        return [network for network in self.networks if network.connecting]

    def connected(self) -> bool:
        return any(network.connected for network in self._networks.values())

    def connecting(self) -> bool:
        return any(network.connecting for network in self._networks.values())

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, kind: EntityKind, callback: Observer) -> Callable[[], None]:
        return self.observers.subscribe_kind(kind, callback)

    def subscribe_network(self, service_path: str, callback: Observer) -> Callable[[], None]:
        return self.observers.subscribe_entity(service_path, callback)

    def subscribe_device(self, device_path: str, callback: Observer) -> Callable[[], None]:
        return self.observers.subscribe_entity(device_path, callback)
