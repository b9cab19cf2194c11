"""Bus transport interfaces."""

from __future__ import annotations

from typing import Protocol


class BusTransport(Protocol):
    bus_number: int

    def close(self) -> None:
        ...

    def read_byte(self, address: int) -> int:
        ...

    def write_byte(self, address: int, value: int) -> None:
        ...

    def read_word(self, address: int, command: int) -> int:
        """Read a 16-bit word in host (little-endian SMBus) byte order."""

    def write_word(self, address: int, command: int, value: int) -> None:
        ...

    def read_block(self, address: int, command: int, length: int) -> bytes:
        ...

    def write_block(self, address: int, command: int, data: bytes) -> None:
        ...

    def read_raw(self, address: int, length: int) -> bytes:
        """Plain read without a register byte."""

    def write_raw(self, address: int, data: bytes) -> None:
        ...

    def scan(self) -> list[int]:
        """Return the 7-bit addresses that acknowledge an address-only transfer."""
