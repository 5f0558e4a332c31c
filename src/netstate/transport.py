"""Transport interfaces between the state manager and the network stack.

This module defines the two abstract collaborators the core talks to:

    PropertySink: outbound property writes and user requests.
    PropertySource: inbound property queries (snapshots and IP configs).

It also provides :class:`TransportContext`, the handle entities use to reach
the sink and enforce the single-owner-thread rule, and :class:`StubTransport`,
an in-memory implementation of both interfaces used by tests and the CLI.
"""

import abc
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from netstate.exceptions import ActivationRejectedError, ThreadAffinityError, TransportUnavailableError

logger = logging.getLogger(__name__)


class PropertySink(abc.ABC):
    """Outbound side of the stack: property writes and requests.

    Calls are synchronous from the caller's point of view; the stack answers
    through later property updates.
    """

    @abc.abstractmethod
    def is_available(self) -> bool:
        """Whether the sink can accept requests right now."""
        pass

    @abc.abstractmethod
    def set_property(self, path: str, key: str, value: Any) -> None:
        """Request a property write on a service or device."""
        pass

    @abc.abstractmethod
    def clear_property(self, path: str, key: str) -> None:
        """Request a property to be cleared on a service or device."""
        pass

    @abc.abstractmethod
    def connect_service(self, service_path: str) -> None:
        pass

    @abc.abstractmethod
    def disconnect_service(self, service_path: str) -> None:
        pass

    @abc.abstractmethod
    def forget_service(self, service_path: str) -> None:
        """Remove a remembered service from its profile."""
        pass

    @abc.abstractmethod
    def request_activation(self, service_path: str, carrier: str) -> bool:
        """Submit a cellular activation request.

        Returns:
            True if the request was accepted for processing.

        Raises:
            ActivationRejectedError: If the stack refuses outright.
        """
        pass

    @abc.abstractmethod
    def request_data_plan_update(self, modem_path: str) -> None:
        pass

    @abc.abstractmethod
    def request_scan(self, device_path: str) -> None:
        pass


class PropertySource(abc.ABC):
    """Inbound side of the stack: property queries."""

    @abc.abstractmethod
    async def get_service_properties(self) -> dict[str, dict[str, Any]]:
        """Full snapshot of visible services, keyed by service path."""
        pass

    @abc.abstractmethod
    async def get_device_properties(self) -> dict[str, dict[str, Any]]:
        """Full snapshot of devices, keyed by device path."""
        pass

    @abc.abstractmethod
    async def list_ip_configs(self, device_path: str) -> list[dict[str, Any]]:
        """IP configurations currently assigned to a device."""
        pass


class TransportContext:
    """Binding between entities and the transport.

    Every mutating entity operation calls :meth:`ensure_ready` first. When
    the sink is missing or unavailable the operation becomes a silent no-op;
    a call from a thread other than the owner raises
    :class:`ThreadAffinityError`.

    Attributes:
        sink: Outbound collaborator, or None while not connected.
        source: Inbound collaborator, or None.
        owner_thread: Ident of the thread allowed to mutate entities.
        enforce_thread_affinity: Whether off-thread calls are rejected.
    """

    def __init__(
        self,
        sink: Optional[PropertySink] = None,
        source: Optional[PropertySource] = None,
        enforce_thread_affinity: bool = True,
        owner_thread: Optional[int] = None,
    ) -> None:
        self.sink = sink
        self.source = source
        self.enforce_thread_affinity = enforce_thread_affinity
        self.owner_thread = owner_thread if owner_thread is not None else threading.get_ident()

    def check_thread(self) -> None:
        """Reject a call made off the owning thread.

        Raises:
            ThreadAffinityError: If called from another thread.
        """
        if not self.enforce_thread_affinity:
            return
        current = threading.get_ident()
        if current != self.owner_thread:
            raise ThreadAffinityError(self.owner_thread, current)

    def ensure_ready(self, operation: str = "") -> bool:
        """Check the owner thread and sink availability.

        Returns:
            True if the caller may proceed, False if it must do nothing.
        """
        self.check_thread()
        if self.sink is None or not self.sink.is_available():
            logger.debug("Transport unavailable, skipping %s", operation or "operation")
            return False
        return True


@dataclass
class PropertyWrite:
    """One request recorded by :class:`StubTransport`."""

    action: str
    path: str
    key: Optional[str] = None
    value: Any = None


@dataclass
class StubTransport(PropertySink, PropertySource):
    """In-memory transport.

    Serves property snapshots from plain dictionaries and records every
    outbound request in :attr:`writes`. While ``available`` is False every
    request and snapshot query raises :class:`TransportUnavailableError`.

    Example:
        >>> transport = StubTransport(services={"/service/eth0": {"Type": "ethernet"}})
        >>> transport.set_property("/service/eth0", "AutoConnect", True)
        >>> transport.writes[0].key
        'AutoConnect'
    """

    services: dict[str, dict[str, Any]] = field(default_factory=dict)
    devices: dict[str, dict[str, Any]] = field(default_factory=dict)
    ip_configs: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    available: bool = True
    reject_activation: bool = False
    writes: list[PropertyWrite] = field(default_factory=list)

    def is_available(self) -> bool:
        return self.available

    def _record(self, action: str, path: str, key: Optional[str] = None, value: Any = None) -> None:
        if not self.available:
            raise TransportUnavailableError(action, path)
        self.writes.append(PropertyWrite(action, path, key, value))

    def set_property(self, path: str, key: str, value: Any) -> None:
        self._record("set", path, key, value)

    def clear_property(self, path: str, key: str) -> None:
        self._record("clear", path, key)

    def connect_service(self, service_path: str) -> None:
        self._record("connect", service_path)

    def disconnect_service(self, service_path: str) -> None:
        self._record("disconnect", service_path)

    def forget_service(self, service_path: str) -> None:
        self._record("forget", service_path)

    def request_activation(self, service_path: str, carrier: str) -> bool:
        if not self.available:
            raise TransportUnavailableError("activate", service_path)
        if self.reject_activation:
            raise ActivationRejectedError(service_path, "rejected by stub")
        self._record("activate", service_path, value=carrier)
        return True

    def request_data_plan_update(self, modem_path: str) -> None:
        self._record("data_plan_update", modem_path)

    def request_scan(self, device_path: str) -> None:
        self._record("scan", device_path)

    async def get_service_properties(self) -> dict[str, dict[str, Any]]:
        if not self.available:
            raise TransportUnavailableError("get_service_properties")
        return {path: dict(props) for path, props in self.services.items()}

    async def get_device_properties(self) -> dict[str, dict[str, Any]]:
        if not self.available:
            raise TransportUnavailableError("get_device_properties")
        return {path: dict(props) for path, props in self.devices.items()}

    async def list_ip_configs(self, device_path: str) -> list[dict[str, Any]]:
        return list(self.ip_configs.get(device_path, []))

    def writes_for(self, path: str) -> list[PropertyWrite]:
        """Recorded requests targeting ``path``."""
        return [w for w in self.writes if w.path == path]

    def last_value(self, path: str, key: str) -> Any:
        """Last value written to ``key`` on ``path``, None if cleared or never set."""
        for write in reversed(self.writes):
            if write.path == path and write.key == key:
                return write.value if write.action == "set" else None
        return None
