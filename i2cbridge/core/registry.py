"""Device family registry and handler lifecycle sequencing."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from i2cbridge.core.config_loader import parse_device_config
from i2cbridge.core.errors import ConfigurationError, DuplicateAddressError, UnknownDeviceTypeError
from i2cbridge.core.hexutil import to_hex_string
from i2cbridge.core.model import DeviceConfig
from i2cbridge.devices.base import DeviceHandlerBase, HandlerContext
from i2cbridge.devices.mcp23017 import MCP23017Handler
from i2cbridge.devices.pcf8574 import PCF8574Handler

HandlerFactory = Callable[[DeviceConfig, HandlerContext], DeviceHandlerBase]
LOGGER = logging.getLogger(__name__)

BUILTIN_FAMILIES: dict[str, HandlerFactory] = {
    "PCF8574": PCF8574Handler,
    "MCP23017": MCP23017Handler,
}


@dataclass(frozen=True)
class DeviceResolution:
    record: Any
    config: DeviceConfig | None
    error: str | None

    @property
    def ok(self) -> bool:
        return self.error is None


class DeviceRegistry:
    def __init__(self, families: dict[str, HandlerFactory] | None = None) -> None:
        self.families: dict[str, HandlerFactory] = dict(BUILTIN_FAMILIES if families is None else families)
        self.handlers: dict[int, DeviceHandlerBase] = {}

    def register_device_family(self, type_name: str, factory: HandlerFactory) -> None:
        if type_name in self.families:
            LOGGER.warning("Device family '%s' replaced", type_name)
        self.families[type_name] = factory

    def factory_for(self, type_name: str) -> HandlerFactory:
        factory = self.families.get(type_name)
        if factory is None:
            known = ", ".join(sorted(self.families))
            raise UnknownDeviceTypeError(f"No handler for device type '{type_name}'. Known: {known}")
        return factory

    def resolve(self, records: Iterable[Any]) -> list[DeviceResolution]:
        """Parse and check every record without creating handlers."""
        resolutions: list[DeviceResolution] = []
        seen: set[int] = set()
        for record in records:
            try:
                config = parse_device_config(record)
                self.factory_for(config.type)
                if config.address in seen:
                    raise DuplicateAddressError(
                        f"Address {to_hex_string(config.address)} is already used by another device"
                    )
            except ConfigurationError as exc:
                resolutions.append(DeviceResolution(record=record, config=None, error=str(exc)))
                continue
            seen.add(config.address)
            resolutions.append(DeviceResolution(record=record, config=config, error=None))
        return resolutions

    def create_handlers(self, records: Iterable[Any], context: HandlerContext) -> dict[int, DeviceHandlerBase]:
        for resolution in self.resolve(records):
            if not resolution.ok:
                LOGGER.warning("Skipping device: %s", resolution.error)
                continue
            config = resolution.config
            hex_address = to_hex_string(config.address)
            try:
                handler = self.factory_for(config.type)(config, context)
            except Exception as exc:
                LOGGER.warning("Couldn't create %s for address %s: %s", config.type, hex_address, exc)
                continue
            self.handlers[config.address] = handler
            LOGGER.info("Created %s for address %s", config.type, hex_address)
        return self.handlers

    def start_all(self) -> None:
        for address, handler in self.handlers.items():
            try:
                handler.start()
            except Exception:
                LOGGER.exception("Couldn't start %s at %s", handler.family, to_hex_string(address))

    def stop_all(self) -> None:
        for address, handler in self.handlers.items():
            try:
                handler.stop()
            except Exception:
                LOGGER.exception("Couldn't stop %s at %s", handler.family, to_hex_string(address))
