"""Unit tests for the observer registry."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from netstate.events import ChangeEvent, EntityKind, ObserverRegistry


@pytest.fixture
def registry():
    return ObserverRegistry()


class TestObserverRegistry:
    """Tests for ObserverRegistry."""

    @pytest.mark.asyncio
    async def test_entity_and_kind_observers(self, registry):
        entity_callback = MagicMock()
        kind_callback = AsyncMock()
        registry.subscribe_entity("/service/wifi", entity_callback)
        registry.subscribe_kind(EntityKind.NETWORK, kind_callback)

        event = ChangeEvent(EntityKind.NETWORK, "/service/wifi")
        await registry.notify(event)

        entity_callback.assert_called_once_with(event)
        kind_callback.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_other_entity_not_notified(self, registry):
        callback = MagicMock()
        registry.subscribe_entity("/service/wifi", callback)

        await registry.notify(ChangeEvent(EntityKind.NETWORK, "/service/eth"))

        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_entity_observers_run_first(self, registry):
        order = []
        registry.subscribe_kind(EntityKind.NETWORK, lambda e: order.append("kind"))
        registry.subscribe_entity("/service/wifi", lambda e: order.append("entity"))

        await registry.notify(ChangeEvent(EntityKind.NETWORK, "/service/wifi"))

        assert order == ["entity", "kind"]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, registry):
        callback = MagicMock()
        unsubscribe = registry.subscribe_entity("/service/wifi", callback)
        unsubscribe()

        await registry.notify(ChangeEvent(EntityKind.NETWORK, "/service/wifi"))

        callback.assert_not_called()
        assert not registry.has_entity_observers("/service/wifi")

    @pytest.mark.asyncio
    async def test_unsubscribe_during_notify(self, registry):
        """Test an observer can unsubscribe itself while being notified."""
        calls = []

        def once(event):
            calls.append(event)
            unsubscribe()

        unsubscribe = registry.subscribe_kind(EntityKind.NETWORK_LIST, once)
        await registry.notify(ChangeEvent(EntityKind.NETWORK_LIST))
        await registry.notify(ChangeEvent(EntityKind.NETWORK_LIST))

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_stop_delivery(self, registry):
        failing = MagicMock(side_effect=RuntimeError("boom"))
        healthy = MagicMock()
        registry.subscribe_kind(EntityKind.DEVICE, failing)
        registry.subscribe_kind(EntityKind.DEVICE, healthy)

        await registry.notify(ChangeEvent(EntityKind.DEVICE, "/device/wlan0"))

        healthy.assert_called_once()

    def test_remove_entity(self, registry):
        registry.subscribe_entity("/service/wifi", MagicMock())
        registry.remove_entity("/service/wifi")
        assert not registry.has_entity_observers("/service/wifi")

    @pytest.mark.asyncio
    async def test_clear(self, registry):
        callback = MagicMock()
        registry.subscribe_kind(EntityKind.DATA_PLAN, callback)
        registry.clear()

        await registry.notify(ChangeEvent(EntityKind.DATA_PLAN, "/service/cell"))

        callback.assert_not_called()
