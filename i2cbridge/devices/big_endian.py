"""Base for chips whose 16-bit registers are big-endian on the wire."""

from __future__ import annotations

from i2cbridge.devices.base import DeviceHandlerBase


def swap_word(value: int) -> int:
    return ((value >> 8) & 0xFF) | ((value << 8) & 0xFF00)


class BigEndianDeviceHandlerBase(DeviceHandlerBase):
    """SMBus word transfers are little-endian; swap on the way in and out."""

    def read_word(self, command: int) -> int:
        return swap_word(self.bus.read_word(self.address, command))

    def write_word(self, command: int, value: int) -> None:
        self.bus.write_word(self.address, command, swap_word(value))
