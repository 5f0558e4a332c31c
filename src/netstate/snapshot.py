"""YAML loader for property snapshots.

A snapshot file captures what the network stack reports at one point in
time. It is loaded into a :class:`StubTransport` and replayed through a
:class:`NetworkLibrary`, which is how the CLI renders a snapshot.

File layout::

    devices:
      /device/wlan0:
        Type: wifi
        Powered: true
    services:
      /service/wifi1:
        Type: wifi
        Name: HomeNet
        Security: psk
        State: online
        Device: /device/wlan0
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
          end: 2024-02-01T00:00:00+00:00
          data_bytes: 1073741824
          bytes_used: 52428800

Example:
    >>> snapshot = load_snapshot("snapshots/home.yaml")
    >>> library = await snapshot.build_library()
    >>> len(library.networks)
    3
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from netstate.config import NetStateConfig
from netstate.dataplan import CellularDataPlan
from netstate.exceptions import SnapshotLoadError
from netstate.library import NetworkLibrary
from netstate.transport import StubTransport

logger = logging.getLogger(__name__)

SECTIONS = ("devices", "services", "remembered", "ip_configs", "data_plans")


@dataclass
class Snapshot:
    """Parsed contents of a snapshot file."""

    devices: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    services: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    remembered: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    ip_configs: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    data_plans: Dict[str, List[CellularDataPlan]] = field(default_factory=dict)

    def transport(self) -> StubTransport:
        """In-memory transport serving this snapshot."""
        return StubTransport(
            services={path: dict(props) for path, props in self.services.items()},
            devices={path: dict(props) for path, props in self.devices.items()},
            ip_configs={path: list(configs) for path, configs in self.ip_configs.items()},
        )

    async def build_library(self, config: Optional[NetStateConfig] = None) -> NetworkLibrary:
        """Replay the snapshot through a new library."""
        transport = self.transport()
        library = NetworkLibrary(sink=transport, source=transport, config=config)
        await library.refresh()
        await library.update_remembered_network_list(self.remembered)
        for service_path, plans in self.data_plans.items():
            await library.update_cellular_data_plans(service_path, plans)
        return library


def _section(file_path: str, data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise SnapshotLoadError(file_path, f"'{name}' must be a dictionary")
    for path, value in section.items():
        if name in ("ip_configs", "data_plans"):
            if not isinstance(value, list):
                raise SnapshotLoadError(file_path, f"'{name}.{path}' must be a list")
        elif not isinstance(value, dict):
            raise SnapshotLoadError(file_path, f"'{name}.{path}' must be a dictionary")
    return section


def parse_snapshot(data: Dict[str, Any], file_path: str = "<memory>") -> Snapshot:
    """Build a :class:`Snapshot` from already-parsed YAML data.

    Raises:
        SnapshotLoadError: If a section has the wrong shape.
    """
    unknown = set(data) - set(SECTIONS)
    if unknown:
        logger.warning("Ignoring unknown snapshot sections: %s", ", ".join(sorted(unknown)))

    plans: Dict[str, List[CellularDataPlan]] = {}
    for service_path, raw_plans in _section(file_path, data, "data_plans").items():
        try:
            plans[service_path] = [CellularDataPlan.from_dict(raw) for raw in raw_plans]
        except (TypeError, ValueError) as e:
            raise SnapshotLoadError(file_path, f"Invalid data plan for {service_path}: {e}") from e

    return Snapshot(
        devices=_section(file_path, data, "devices"),
        services=_section(file_path, data, "services"),
        remembered=_section(file_path, data, "remembered"),
        ip_configs=_section(file_path, data, "ip_configs"),
        data_plans=plans,
    )


def load_snapshot(file_path: str) -> Snapshot:
    """Load a snapshot from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        SnapshotLoadError: If the file cannot be read or parsed.
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    if not path.is_file():
        raise SnapshotLoadError(file_path, "Path is not a file")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SnapshotLoadError(file_path, f"Invalid YAML: {e}") from e
    except OSError as e:
        raise SnapshotLoadError(file_path, f"IO error: {e}") from e

    if data is None:
        logger.debug("Empty snapshot file: %s", file_path)
        return Snapshot()

    if not isinstance(data, dict):
        raise SnapshotLoadError(file_path, "Root must be a dictionary")

    snapshot = parse_snapshot(data, file_path)
    logger.info(
        "Loaded snapshot %s: %d devices, %d services, %d remembered",
        file_path,
        len(snapshot.devices),
        len(snapshot.services),
        len(snapshot.remembered),
    )
    return snapshot
