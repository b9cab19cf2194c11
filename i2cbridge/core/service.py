"""Service layer used by the CLI runner and the public API."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from i2cbridge.core.errors import AdminCommandError, TransportError
from i2cbridge.core.hexutil import to_hex_string
from i2cbridge.core.model import BridgeConfig, DispatchOutcome, StateValue
from i2cbridge.core.registry import DeviceRegistry, DeviceResolution
from i2cbridge.core.scheduler import AsyncioScheduler, Scheduler
from i2cbridge.core.state_store import InMemoryStateStore, StateStore
from i2cbridge.core.state_sync import StateSync
from i2cbridge.devices.base import DeviceHandlerBase, HandlerContext
from i2cbridge.transports.base import BusTransport
from i2cbridge.transports.smbus import SMBusTransport

TransportFactory = Callable[[int], BusTransport]
LOGGER = logging.getLogger(__name__)


class BridgeService:
    def __init__(
        self,
        config: BridgeConfig,
        *,
        store: StateStore | None = None,
        transport_factory: TransportFactory | None = None,
        scheduler: Scheduler | None = None,
        registry: DeviceRegistry | None = None,
    ) -> None:
        self.config = config
        self.store = store or InMemoryStateStore(config.namespace)
        self.sync = StateSync(self.store)
        self.transport_factory = transport_factory or SMBusTransport.open
        self.scheduler = scheduler or AsyncioScheduler()
        self.registry = registry or DeviceRegistry()
        self._bus: BusTransport | None = None
        self.store.add_change_listener(self.on_state_change)

    @property
    def bus(self) -> BusTransport:
        if self._bus is None:
            self._bus = self.transport_factory(self.config.bus_number)
        return self._bus

    @property
    def handlers(self) -> dict[int, DeviceHandlerBase]:
        return self.registry.handlers

    def resolve_devices(self) -> list[DeviceResolution]:
        return self.registry.resolve(self.config.devices)

    def start(self) -> None:
        self.sync.load_acknowledged()
        bus = self.bus
        if not self.config.devices:
            LOGGER.info("No devices configured")
            return

        context = HandlerContext(bus=bus, sync=self.sync, scheduler=self.scheduler)
        self.registry.create_handlers(self.config.devices, context)
        self.registry.start_all()
        self.store.subscribe_states("*")

    def stop(self) -> None:
        try:
            self.registry.stop_all()
        finally:
            self.close()

    def close(self) -> None:
        if self._bus is None:
            return
        bus, self._bus = self._bus, None
        bus.close()

    def on_state_change(self, state_id: str, state: StateValue | None) -> DispatchOutcome:
        return self.sync.on_state_change(state_id, state)

    def search(self, bus_number: int) -> list[int]:
        if bus_number == self.config.bus_number:
            LOGGER.debug("Searching on current bus %d", bus_number)
            found = self.bus.scan()
        else:
            LOGGER.debug("Searching on new bus %d", bus_number)
            search_bus = self.transport_factory(bus_number)
            try:
                found = search_bus.scan()
            finally:
                search_bus.close()
        LOGGER.info("Search found: %s", [to_hex_string(a) for a in found])
        return found

    def read(self, address: int, register: int | None = None, length: int = 1) -> bytes:
        if register is not None:
            return self.bus.read_block(address, register, length)
        return self.bus.read_raw(address, length)

    def write(self, address: int, data: bytes, register: int | None = None) -> bytes:
        if register is not None:
            self.bus.write_block(address, register, data)
        else:
            self.bus.write_raw(address, data)
        return data

    def handle_message(self, command: str, message: Any) -> Any:
        """Answer an administrative request; unknown commands echo the message."""
        if command == "search":
            try:
                bus_number = int(message)
            except (TypeError, ValueError) as exc:
                raise AdminCommandError(f"Invalid search message: {message!r}") from exc
            return self.search(bus_number)

        if command == "read":
            address, register = _message_target(message, "read")
            length = message.get("bytes", 1)
            if not isinstance(length, int) or length < 1:
                raise AdminCommandError("Invalid read message: 'bytes' must be a positive integer")
            try:
                return self.read(address, register, length)
            except TransportError:
                LOGGER.error("Error reading from %s", to_hex_string(address))
                raise

        if command == "write":
            address, register = _message_target(message, "write")
            data = message.get("data")
            if not isinstance(data, (bytes, bytearray)):
                raise AdminCommandError("Invalid write message: 'data' must be bytes")
            try:
                return self.write(address, bytes(data), register)
            except TransportError:
                LOGGER.error("Error writing to %s", to_hex_string(address))
                raise

        LOGGER.warning("Unknown command: %s", command)
        return message


def _message_target(message: Any, command: str) -> tuple[int, int | None]:
    if not isinstance(message, dict) or not isinstance(message.get("address"), int):
        raise AdminCommandError(f"Invalid {command} message")
    register = message.get("register")
    if register is not None and not isinstance(register, int):
        raise AdminCommandError(f"Invalid {command} message: 'register' must be an integer")
    return message["address"], register
