"""Network device (radio or modem) entity."""

import logging
from typing import Any, Dict, List, Optional

from netstate import constants as k
from netstate.models import (
    CellularOperator,
    DeviceType,
    FoundCellularNetwork,
    SimLockState,
    SimPinRequire,
    TechnologyFamily,
)
from netstate.transport import TransportContext

logger = logging.getLogger(__name__)


class NetworkDevice:
    """A radio or modem known to the network stack.

    Attributes:
        device_path: Stable path assigned by the stack.
        type: Device kind.
        sim_retries_left: Remaining SIM unlock attempts, None until the
            device reports them.
        sim_pin_required: Whether the SIM asks for a PIN on power-up.
    """

    def __init__(self, device_path: str, context: Optional[TransportContext] = None) -> None:
        self.device_path = device_path
        self.type = DeviceType.OTHER
        self.name = ""
        self.powered = False
        self.scanning = False

        # SIM
        self.sim_lock_state = SimLockState.UNKNOWN
        self.sim_retries_left: Optional[int] = None
        self.sim_pin_required = SimPinRequire.UNKNOWN

        # Cellular metadata
        self.data_roaming_allowed = False
        self.carrier = ""
        self.firmware_revision = ""
        self.hardware_revision = ""
        self.manufacturer = ""
        self.model_id = ""
        self.imei = ""
        self.imsi = ""
        self.meid = ""
        self.esn = ""
        self.mdn = ""
        self.min = ""
        self.prl_version = 0
        self.home_provider = CellularOperator()
        self.selected_cellular_network = ""
        self.found_cellular_networks: List[FoundCellularNetwork] = []
        self.support_network_scan = False
        self.technology_family = TechnologyFamily.UNKNOWN

        self._context = context

    def bind(self, context: Optional[TransportContext]) -> None:
        self._context = context

    @property
    def is_cellular(self) -> bool:
        return self.type is DeviceType.CELLULAR

    @property
    def sim_locked(self) -> bool:
        return self.sim_lock_state in (SimLockState.PIN, SimLockState.PUK)

    @property
    def sim_retries_known(self) -> bool:
        return self.sim_retries_left is not None

    def _ready(self, operation: str) -> bool:
        if self._context is None:
            logger.debug("Device %s not bound, skipping %s", self.device_path, operation)
            return False
        return self._context.ensure_ready(operation)

    # =========================================================================
    # User Requests
    # =========================================================================

    def set_data_roaming_allowed(self, allowed: bool) -> bool:
        """Allow or forbid data roaming on a cellular device.

        Returns:
            True if the request was sent.
        """
        if not self._ready("set_data_roaming_allowed"):
            return False
        self._context.sink.set_property(self.device_path, k.KEY_DATA_ROAMING_ALLOWED, allowed)
        self.data_roaming_allowed = allowed
        return True

    def request_scan(self) -> bool:
        """Ask the device to scan for networks."""
        if not self._ready("request_scan"):
            return False
        self._context.sink.request_scan(self.device_path)
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {
            "device_path": self.device_path,
            "type": self.type.value,
            "name": self.name,
            "powered": self.powered,
            "scanning": self.scanning,
        }
        if self.is_cellular:
            data.update(
                {
                    "sim_lock_state": self.sim_lock_state.value,
                    "sim_retries_left": self.sim_retries_left,
                    "sim_pin_required": self.sim_pin_required.value,
                    "data_roaming_allowed": self.data_roaming_allowed,
                    "carrier": self.carrier,
                    "manufacturer": self.manufacturer,
                    "model_id": self.model_id,
                    "firmware_revision": self.firmware_revision,
                    "technology_family": self.technology_family.value,
                    "home_provider": self.home_provider.name,
                }
            )
        return data

    def __repr__(self) -> str:
        return f"NetworkDevice({self.device_path!r}, type={self.type.value})"
