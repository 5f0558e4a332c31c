"""Observer registry for network and device changes.

Observers subscribe either to one entity (by path) or to every entity of a
kind, and are awaited after a change has been fully applied.

Classes:
    ChangeEvent: Description of one applied change
    ObserverRegistry: Subscription and notification
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from netstate.models import PropertyIndex
from netstate.state import StateTransition

log = logging.getLogger(__name__)


class EntityKind(Enum):
    """Subscription scope for kind-wide observers."""

    NETWORK = "network"
    DEVICE = "device"
    NETWORK_LIST = "network_list"
    DEVICE_LIST = "device_list"
    DATA_PLAN = "data_plan"


@dataclass(frozen=True)
class ChangeEvent:
    """An applied change delivered to observers.

    Attributes:
        kind: What changed.
        path: Entity path, empty for list-level events.
        index: Property that changed, if any.
        transition: State transition, if the change moved the state.
    """

    kind: EntityKind
    path: str = ""
    index: Optional[PropertyIndex] = None
    transition: Optional[StateTransition] = None


Observer = Callable[[ChangeEvent], Union[Awaitable[None], None]]


class ObserverRegistry:
    """Per-entity and per-kind observer subscriptions.

    Example:
        >>> registry = ObserverRegistry()
        >>> async def on_change(event):
        ...     print(event.path)
        >>> unsubscribe = registry.subscribe_entity("/service/wifi1", on_change)
        >>> await registry.notify(ChangeEvent(EntityKind.NETWORK, "/service/wifi1"))
        >>> unsubscribe()
    """

    def __init__(self) -> None:
        self._kind_observers: dict[EntityKind, list[Observer]] = {}
        self._entity_observers: dict[str, list[Observer]] = {}

    # =========================================================================
    # Subscription
    # =========================================================================

    def subscribe_kind(self, kind: EntityKind, callback: Observer) -> Callable[[], None]:
        """Subscribe to every change of one kind.

        Returns:
            Unsubscribe function.
        """
        self._kind_observers.setdefault(kind, []).append(callback)

        def unsubscribe() -> None:
            observers = self._kind_observers.get(kind, [])
            if callback in observers:
                observers.remove(callback)

        return unsubscribe

    def subscribe_entity(self, path: str, callback: Observer) -> Callable[[], None]:
        """Subscribe to changes of one entity.

        Returns:
            Unsubscribe function.
        """
        self._entity_observers.setdefault(path, []).append(callback)

        def unsubscribe() -> None:
            observers = self._entity_observers.get(path, [])
            if callback in observers:
                observers.remove(callback)
            if not observers:
                self._entity_observers.pop(path, None)

        return unsubscribe

    def remove_entity(self, path: str) -> None:
        """Drop all observers of an entity that no longer exists."""
        self._entity_observers.pop(path, None)

    def has_entity_observers(self, path: str) -> bool:
        return bool(self._entity_observers.get(path))

    def clear(self) -> None:
        self._kind_observers.clear()
        self._entity_observers.clear()

    # =========================================================================
    # Notification
    # =========================================================================

    async def notify(self, event: ChangeEvent) -> None:
        """Deliver ``event`` to entity observers, then kind observers.

        Observer errors are logged and do not stop delivery to the others.
        """
        callbacks: list[Observer] = []
        if event.path:
            callbacks.extend(self._entity_observers.get(event.path, []))
        callbacks.extend(self._kind_observers.get(event.kind, []))

        # Copy so observers may unsubscribe while being notified
        for callback in list(callbacks):
            try:
                result: Any = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                log.error(f"Error in observer for {event.kind.value} {event.path}: {e}")
