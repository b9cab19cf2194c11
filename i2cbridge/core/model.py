"""Core data models used across config loading, state sync, and handlers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PinDirection(str, Enum):
    INPUT_NO_PULLUP = "in-no"
    INPUT_PULLUP = "in-pu"
    OUTPUT = "out"

    @property
    def is_input(self) -> bool:
        return self is not PinDirection.OUTPUT


@dataclass(frozen=True)
class PinConfig:
    direction: PinDirection = PinDirection.OUTPUT
    inverted: bool = False

    @property
    def is_input(self) -> bool:
        return self.direction.is_input


@dataclass(frozen=True)
class DeviceConfig:
    address: int
    type: str
    name: str
    polling_interval_ms: int = 200
    interrupt: str | None = None
    pins: tuple[PinConfig, ...] = ()
    native: dict[str, Any] = field(default_factory=dict, compare=False)

    def pin(self, index: int) -> PinConfig:
        """Return the pin config, defaulting unlisted pins to uninverted outputs."""
        if 0 <= index < len(self.pins):
            return self.pins[index]
        return PinConfig()


@dataclass(frozen=True)
class BridgeConfig:
    bus_number: int
    namespace: str = "i2c.0"
    devices: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True)
class StateValue:
    val: Any
    ack: bool = False


class DispatchOutcome(Enum):
    LOCAL = "local"
    FOREIGN = "foreign"
    ACK_ECHO = "ack-echo"
    UNSUPPORTED = "unsupported"
    DELETED = "deleted"


class HandlerState(Enum):
    CREATED = "created"
    STARTED = "started"
    STOPPED = "stopped"
