"""Unit tests for the transport context and the in-memory transport."""

import threading

import pytest

from netstate.exceptions import ActivationRejectedError, ThreadAffinityError, TransportUnavailableError
from netstate.transport import PropertySource, StubTransport, TransportContext


@pytest.fixture
def stub():
    return StubTransport(
        services={"/service/eth0": {"Type": "ethernet"}},
        ip_configs={"/device/eth0": [{"address": "10.0.0.2"}]},
    )


class TestTransportContext:
    """Tests for TransportContext."""

    def test_ready(self, stub):
        assert TransportContext(sink=stub).ensure_ready("set")

    def test_no_sink(self):
        assert not TransportContext().ensure_ready("set")

    def test_unavailable_sink(self, stub):
        stub.available = False
        assert not TransportContext(sink=stub).ensure_ready("set")

    def test_other_thread_rejected(self, stub):
        context = TransportContext(sink=stub)
        errors = []

        def worker():
            try:
                context.ensure_ready("set")
            except ThreadAffinityError as e:
                errors.append(e)

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

        assert len(errors) == 1
        assert errors[0].owner_thread == context.owner_thread

    def test_affinity_disabled(self, stub):
        context = TransportContext(sink=stub, enforce_thread_affinity=False, owner_thread=-1)
        assert context.ensure_ready("set")


class TestStubTransport:
    """Tests for StubTransport."""

    def test_records_writes(self, stub):
        stub.set_property("/service/eth0", "AutoConnect", True)
        stub.clear_property("/service/eth0", "AutoConnect")
        stub.connect_service("/service/eth0")

        assert [w.action for w in stub.writes_for("/service/eth0")] == ["set", "clear", "connect"]
        assert stub.last_value("/service/eth0", "AutoConnect") is None

    def test_last_value(self, stub):
        stub.set_property("/service/eth0", "Priority", 1)
        assert stub.last_value("/service/eth0", "Priority") == 1
        assert stub.last_value("/service/eth0", "Name") is None

    def test_unavailable_rejects_requests(self, stub):
        stub.available = False
        with pytest.raises(TransportUnavailableError) as exc_info:
            stub.set_property("/service/eth0", "AutoConnect", True)
        assert exc_info.value.operation == "set"
        assert exc_info.value.path == "/service/eth0"
        assert stub.writes == []

    def test_activation(self, stub):
        assert stub.request_activation("/service/cell", "Example Mobile")
        assert stub.writes[0].value == "Example Mobile"

    def test_activation_rejected(self, stub):
        stub.reject_activation = True
        with pytest.raises(ActivationRejectedError):
            stub.request_activation("/service/cell", "Example Mobile")

    @pytest.mark.asyncio
    async def test_snapshots_are_copies(self, stub):
        services = await stub.get_service_properties()
        services["/service/eth0"]["Name"] = "changed"
        assert "Name" not in stub.services["/service/eth0"]
        assert await stub.list_ip_configs("/device/eth0") == [{"address": "10.0.0.2"}]
        assert await stub.list_ip_configs("/device/wlan0") == []

    @pytest.mark.asyncio
    async def test_unavailable_rejects_queries(self, stub):
        stub.available = False
        with pytest.raises(TransportUnavailableError):
            await stub.get_service_properties()


class TestPropertySource:
    """Tests for the PropertySource interface."""

    @pytest.mark.asyncio
    async def test_base_methods_are_documented_noops(self):
        class EmptySource(PropertySource):
            async def get_service_properties(self):
                return await super().get_service_properties()

            async def get_device_properties(self):
                return await super().get_device_properties()

            async def list_ip_configs(self, device_path):
                return await super().list_ip_configs(device_path)

        source = EmptySource()

        assert await source.get_service_properties() is None
        assert await source.get_device_properties() is None
        assert PropertySource.get_service_properties.__doc__
        assert PropertySource.get_device_properties.__doc__
