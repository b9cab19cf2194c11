"""Linux i2c-dev transport implementation using smbus2."""

from __future__ import annotations

import logging

from smbus2 import SMBus, i2c_msg

from i2cbridge.core.errors import TransportIOError, TransportOpenError
from i2cbridge.core.hexutil import to_hex_string

SCAN_FIRST_ADDRESS = 0x03
SCAN_LAST_ADDRESS = 0x77
LOGGER = logging.getLogger(__name__)


class SMBusTransport:
    def __init__(self, bus_number: int, bus: SMBus) -> None:
        self.bus_number = bus_number
        self._bus: SMBus | None = bus

    @classmethod
    def open(cls, bus_number: int) -> SMBusTransport:
        try:
            bus = SMBus(bus_number)
        except OSError as exc:
            raise TransportOpenError(
                f"Could not open /dev/i2c-{bus_number}: {exc}. Check the bus is enabled."
            ) from exc
        LOGGER.info("Opened bus %d", bus_number)
        return cls(bus_number, bus)

    @property
    def bus(self) -> SMBus:
        if self._bus is None:
            raise TransportOpenError(f"Bus {self.bus_number} is closed")
        return self._bus

    def close(self) -> None:
        if self._bus is None:
            return
        try:
            self._bus.close()
        finally:
            self._bus = None
            LOGGER.info("Closed bus %d", self.bus_number)

    def read_byte(self, address: int) -> int:
        try:
            return self.bus.read_byte(address)
        except OSError as exc:
            raise TransportIOError(f"Read byte from {to_hex_string(address)} failed: {exc}") from exc

    def write_byte(self, address: int, value: int) -> None:
        try:
            self.bus.write_byte(address, value & 0xFF)
        except OSError as exc:
            raise TransportIOError(f"Write byte to {to_hex_string(address)} failed: {exc}") from exc

    def read_word(self, address: int, command: int) -> int:
        try:
            return self.bus.read_word_data(address, command)
        except OSError as exc:
            raise TransportIOError(
                f"Read word {to_hex_string(command)} from {to_hex_string(address)} failed: {exc}"
            ) from exc

    def write_word(self, address: int, command: int, value: int) -> None:
        try:
            self.bus.write_word_data(address, command, value & 0xFFFF)
        except OSError as exc:
            raise TransportIOError(
                f"Write word {to_hex_string(command)} to {to_hex_string(address)} failed: {exc}"
            ) from exc

    def read_block(self, address: int, command: int, length: int) -> bytes:
        try:
            return bytes(self.bus.read_i2c_block_data(address, command, length))
        except OSError as exc:
            raise TransportIOError(
                f"Read block {to_hex_string(command)} from {to_hex_string(address)} failed: {exc}"
            ) from exc

    def write_block(self, address: int, command: int, data: bytes) -> None:
        try:
            self.bus.write_i2c_block_data(address, command, list(data))
        except OSError as exc:
            raise TransportIOError(
                f"Write block {to_hex_string(command)} to {to_hex_string(address)} failed: {exc}"
            ) from exc

    def read_raw(self, address: int, length: int) -> bytes:
        msg = i2c_msg.read(address, length)
        try:
            self.bus.i2c_rdwr(msg)
        except OSError as exc:
            raise TransportIOError(f"Read from {to_hex_string(address)} failed: {exc}") from exc
        return bytes(list(msg))

    def write_raw(self, address: int, data: bytes) -> None:
        try:
            self.bus.i2c_rdwr(i2c_msg.write(address, data))
        except OSError as exc:
            raise TransportIOError(f"Write to {to_hex_string(address)} failed: {exc}") from exc

    def scan(self) -> list[int]:
        found: list[int] = []
        for address in range(SCAN_FIRST_ADDRESS, SCAN_LAST_ADDRESS + 1):
            try:
                self.bus.read_byte(address)
            except OSError:
                continue
            found.append(address)
        LOGGER.debug("Scan on bus %d found %s", self.bus_number, [to_hex_string(a) for a in found])
        return found
