from __future__ import annotations

from typing import Any

from fakes import FakeBus, device, make_context

from i2cbridge.devices.big_endian import BigEndianDeviceHandlerBase, swap_word


class RegisterDevice(BigEndianDeviceHandlerBase):
    family = "TEST16"

    def start(self) -> None:
        self._begin_start()

    def send_current_value(self) -> bool:
        return True

    def read_current_value(self, force: bool) -> None:
        pass

    def change_output(self, pin: int, value: Any) -> None:
        pass


def _device(bus: FakeBus) -> RegisterDevice:
    return RegisterDevice(device((), address=0x40, type_name="TEST16"), make_context(bus))


def test_swap_word() -> None:
    assert swap_word(0x1234) == 0x3412
    assert swap_word(0x00FF) == 0xFF00
    assert swap_word(0) == 0


def test_write_word_swaps_before_transport() -> None:
    bus = FakeBus()
    _device(bus).write_word(0x06, 0x1234)
    assert bus.calls == [("write_word", 0x40, 0x06, 0x3412)]


def test_read_word_swaps_after_transport() -> None:
    bus = FakeBus()
    bus.words[(0x40, 0x12)] = 0xCDAB
    assert _device(bus).read_word(0x12) == 0xABCD


def test_word_echo_round_trip() -> None:
    bus = FakeBus()
    handler = _device(bus)
    for value in range(0x10000):
        handler.write_word(0x14, value)
        assert handler.read_word(0x14) == value
