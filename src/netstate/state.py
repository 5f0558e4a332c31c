"""Connection state machine rules.

Every state change of a network goes through :func:`apply_transition`, which
updates the network's bookkeeping flags and reports what the caller must do
next (IP refresh, failure notification) as a :class:`StateTransition`.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from netstate.models import ConnectionErrorCode, ConnectionState

if TYPE_CHECKING:
    from netstate.network import Network

logger = logging.getLogger(__name__)

# States during which a connection attempt is in flight
CONNECTING_STATES = frozenset(
    {
        ConnectionState.CARRIER,
        ConnectionState.ASSOCIATION,
        ConnectionState.CONFIGURATION,
    }
)

CONNECTED_STATES = frozenset(
    {
        ConnectionState.READY,
        ConnectionState.PORTAL,
        ConnectionState.ONLINE,
    }
)

# Connection attempt bookkeeping treats everything else as in progress
TERMINAL_STATES = frozenset(
    {
        ConnectionState.READY,
        ConnectionState.ONLINE,
        ConnectionState.FAILURE,
        ConnectionState.ACTIVATION_FAILURE,
    }
)

# Entering FAILURE from these states is not worth telling the user about
QUIET_FAILURE_ORIGINS = frozenset({ConnectionState.UNKNOWN, ConnectionState.IDLE})


def is_connecting_state(state: ConnectionState) -> bool:
    return state in CONNECTING_STATES


def is_connected_state(state: ConnectionState) -> bool:
    return state in CONNECTED_STATES


def is_terminal_state(state: ConnectionState) -> bool:
    return state in TERMINAL_STATES


@dataclass(frozen=True)
class StateTransition:
    """Outcome of a state change on one network.

    Attributes:
        service_path: Path of the network that changed.
        previous: State before the change.
        current: State after the change.
        notify_failure: The user should be told the connection failed.
        needs_ip_refresh: The IP assignment must be re-queried before
            observers are told about the change.
    """

    service_path: str
    previous: ConnectionState
    current: ConnectionState
    notify_failure: bool = False
    needs_ip_refresh: bool = False

    @property
    def is_failure(self) -> bool:
        return self.current is ConnectionState.FAILURE


def apply_transition(network: "Network", new_state: ConnectionState) -> Optional[StateTransition]:
    """Move a network to ``new_state``.

    Setting the current state again is a no-op and returns None, so no
    observer fires and no flag changes.

    Args:
        network: Network to update in place.
        new_state: State reported by the stack.

    Returns:
        The transition, or None when the state did not change.
    """
    previous = network.state
    if new_state is previous:
        return None

    network.state = new_state
    if not is_connecting_state(new_state):
        network.connection_started = False

    notify_failure = False
    if new_state is ConnectionState.FAILURE:
        if previous not in QUIET_FAILURE_ORIGINS:
            notify_failure = True
            network.notify_failure = True
            # A failure must always carry an error for retry logic to act on
            if network.error is ConnectionErrorCode.NO_ERROR:
                network.error = ConnectionErrorCode.UNKNOWN

    logger.debug("%s.State = %s (was %s)", network.service_path, new_state.value, previous.value)

    return StateTransition(
        service_path=network.service_path,
        previous=previous,
        current=new_state,
        notify_failure=notify_failure,
        needs_ip_refresh=new_state is not ConnectionState.FAILURE,
    )
