from __future__ import annotations

import pytest

from fakes import FakeBus, FakeScheduler

from i2cbridge.core.errors import AdminCommandError, TransportIOError
from i2cbridge.core.model import BridgeConfig, DispatchOutcome, HandlerState, StateValue
from i2cbridge.core.service import BridgeService
from i2cbridge.core.state_store import InMemoryStateStore

DEVICES = (
    {
        "address": 0x20,
        "type": "PCF8574",
        "polling_interval_ms": 200,
        "pins": [{"direction": "out"}] * 4 + [{"direction": "in-pu"}] * 4,
    },
)


class BusFactory:
    def __init__(self) -> None:
        self.opened: dict[int, FakeBus] = {}

    def __call__(self, bus_number: int) -> FakeBus:
        bus = FakeBus(bus_number)
        self.opened[bus_number] = bus
        return bus


def _service(devices=DEVICES) -> tuple[BridgeService, BusFactory, InMemoryStateStore]:
    factory = BusFactory()
    store = InMemoryStateStore("i2c.0")
    service = BridgeService(
        BridgeConfig(bus_number=1, devices=devices),
        store=store,
        transport_factory=factory,
        scheduler=FakeScheduler(),
    )
    return service, factory, store


def test_start_routes_store_writes_to_handlers() -> None:
    service, factory, store = _service()
    service.start()
    bus = factory.opened[1]
    bus.calls.clear()

    store.set_state("0x20.1", True, ack=False)

    assert bus.calls == [("write_byte", 0x20, 0xF2)]
    assert store.states["i2c.0.0x20.1"] == StateValue(val=True, ack=True)


def test_start_seeds_outputs_from_acknowledged_states() -> None:
    service, factory, store = _service()
    store.states["i2c.0.0x20.3"] = StateValue(val=True, ack=True)

    service.start()

    assert service.handlers[0x20].write_value == 0xF8


def test_unexpected_write_is_unsupported() -> None:
    service, _, store = _service()
    service.start()
    assert service.on_state_change("i2c.0.0x55.0", StateValue(val=True)) is DispatchOutcome.UNSUPPORTED


def test_stop_stops_handlers_and_closes_bus(monkeypatch: pytest.MonkeyPatch) -> None:
    service, factory, _ = _service()
    service.start()
    handler = service.handlers[0x20]

    def broken_stop() -> None:
        raise RuntimeError("stuck")

    monkeypatch.setattr(handler, "stop", broken_stop)
    service.stop()

    assert factory.opened[1].closed


def test_start_without_devices_opens_bus_only() -> None:
    service, factory, _ = _service(devices=())
    service.start()
    assert service.handlers == {}
    assert 1 in factory.opened


def test_search_on_running_bus() -> None:
    service, factory, _ = _service()
    service.start()
    factory.opened[1].scan_result = [0x20, 0x48]

    assert service.search(1) == [0x20, 0x48]
    assert not factory.opened[1].closed


def test_search_on_other_bus_uses_temporary_transport() -> None:
    service, factory, _ = _service()
    service.start()

    service.search(3)

    assert factory.opened[3].calls == [("scan",), ("close",)]
    assert not factory.opened[1].closed


def test_raw_read_and_write() -> None:
    service, factory, _ = _service(devices=())
    assert service.read(0x50, length=2) == b"\xaa\xaa"
    assert service.read(0x50, register=0x10, length=3) == b"\x00\x01\x02"
    assert service.write(0x50, b"\x01\x02", register=0x04) == b"\x01\x02"
    assert factory.opened[1].calls == [
        ("read_raw", 0x50, 2),
        ("read_block", 0x50, 0x10, 3),
        ("write_block", 0x50, 0x04, b"\x01\x02"),
    ]


def test_handle_message_dispatch() -> None:
    service, factory, _ = _service(devices=())
    assert service.handle_message("search", "1") == []
    assert service.handle_message("read", {"address": 0x50, "bytes": 1}) == b"\xaa"
    assert service.handle_message("write", {"address": 0x50, "data": b"\x07"}) == b"\x07"
    assert service.handle_message("reboot", {"x": 1}) == {"x": 1}


@pytest.mark.parametrize(
    ("command", "message"),
    [
        ("search", "one"),
        ("read", {"address": "0x50"}),
        ("read", {"address": 0x50, "bytes": 0}),
        ("write", {"address": 0x50, "data": "0102"}),
        ("write", None),
    ],
)
def test_handle_message_rejects_invalid(command: str, message: object) -> None:
    service, _, _ = _service(devices=())
    with pytest.raises(AdminCommandError):
        service.handle_message(command, message)


def test_handle_message_propagates_transport_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    service, factory, _ = _service(devices=())

    def failing_read(address: int, length: int) -> bytes:
        raise TransportIOError("nack")

    monkeypatch.setattr(service.bus, "read_raw", failing_read)
    with pytest.raises(TransportIOError):
        service.handle_message("read", {"address": 0x50})


def test_handlers_poll_through_scheduler() -> None:
    service, factory, store = _service()
    service.start()
    factory.opened[1].default_byte = 0x10

    service.scheduler.timers[0].fire()

    assert store.states["i2c.0.0x20.4"] == StateValue(val=True, ack=True)
    assert service.handlers[0x20].state is HandlerState.STARTED
