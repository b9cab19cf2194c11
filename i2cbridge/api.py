"""Stable public API for embedding i2cbridge in other tools.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from pathlib import Path

from i2cbridge.core.config_loader import load_config
from i2cbridge.core.errors import (
    AdminCommandError,
    ConfigLoadError,
    ConfigurationError,
    ConfigValidationError,
    DeviceLifecycleError,
    DuplicateAddressError,
    I2cBridgeError,
    StateStoreError,
    TransportError,
    TransportIOError,
    TransportOpenError,
    UnknownDeviceTypeError,
)
from i2cbridge.core.model import (
    BridgeConfig,
    DeviceConfig,
    DispatchOutcome,
    HandlerState,
    PinConfig,
    PinDirection,
    StateValue,
)
from i2cbridge.core.registry import DeviceRegistry, HandlerFactory
from i2cbridge.core.scheduler import Scheduler
from i2cbridge.core.service import BridgeService, TransportFactory
from i2cbridge.core.state_store import InMemoryStateStore, StateStore
from i2cbridge.devices.base import DeviceHandlerBase, HandlerContext, PinBankHandler
from i2cbridge.devices.big_endian import BigEndianDeviceHandlerBase
from i2cbridge.transports.base import BusTransport

__all__ = [
    "I2cBridgeError",
    "AdminCommandError",
    "ConfigLoadError",
    "ConfigurationError",
    "ConfigValidationError",
    "DeviceLifecycleError",
    "DuplicateAddressError",
    "StateStoreError",
    "TransportError",
    "TransportIOError",
    "TransportOpenError",
    "UnknownDeviceTypeError",
    "BridgeConfig",
    "DeviceConfig",
    "DispatchOutcome",
    "HandlerState",
    "PinConfig",
    "PinDirection",
    "StateValue",
    "BusTransport",
    "StateStore",
    "InMemoryStateStore",
    "Scheduler",
    "DeviceHandlerBase",
    "BigEndianDeviceHandlerBase",
    "PinBankHandler",
    "HandlerContext",
    "Client",
]


class Client:
    """Public client wrapping configuration, bus ownership and device handlers.

    New device families are added with :meth:`register_device_family` before
    :meth:`start`.
    """

    def __init__(
        self,
        config: BridgeConfig,
        *,
        store: StateStore | None = None,
        transport_factory: TransportFactory | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._registry = DeviceRegistry()
        self._service = BridgeService(
            config,
            store=store,
            transport_factory=transport_factory,
            scheduler=scheduler,
            registry=self._registry,
        )

    @classmethod
    def from_file(cls, path: Path | str, **kwargs) -> Client:
        return cls(load_config(path), **kwargs)

    @property
    def store(self) -> StateStore:
        return self._service.store

    @property
    def handlers(self) -> dict[int, DeviceHandlerBase]:
        return self._service.handlers

    def register_device_family(self, type_name: str, factory: HandlerFactory) -> None:
        self._registry.register_device_family(type_name, factory)

    def start(self) -> None:
        self._service.start()

    def stop(self) -> None:
        self._service.stop()

    def search(self, bus_number: int) -> list[int]:
        return self._service.search(bus_number)

    def read(self, address: int, *, register: int | None = None, length: int = 1) -> bytes:
        return self._service.read(address, register, length)

    def write(self, address: int, data: bytes, *, register: int | None = None) -> bytes:
        return self._service.write(address, data, register)
