"""Device handler base: lifecycle, polling timer and interrupt subscription."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from i2cbridge.core.errors import DeviceLifecycleError, I2cBridgeError
from i2cbridge.core.hexutil import to_hex_string
from i2cbridge.core.model import DeviceConfig, HandlerState, PinConfig
from i2cbridge.core.scheduler import Scheduler, TimerHandle
from i2cbridge.core.state_sync import StateSync
from i2cbridge.transports.base import BusTransport

MIN_POLLING_INTERVAL_MS = 50
LOGGER = logging.getLogger(__name__)


@dataclass
class HandlerContext:
    """What a handler may touch: the shared bus, the state layer and the timer source."""

    bus: BusTransport
    sync: StateSync
    scheduler: Scheduler


class DeviceHandlerBase(ABC):
    """Per-device handler.

    Subclasses implement the protocol bytes (``start``, ``send_current_value``,
    ``read_current_value``); this class owns the ``Created -> Started -> Stopped``
    state machine, the polling timer and the interrupt subscription.
    """

    family = "device"

    def __init__(self, config: DeviceConfig, context: HandlerContext) -> None:
        self.config = config
        self.context = context
        self.address = config.address
        self.name = config.name or self.family
        self.hex_address = to_hex_string(self.address)
        self.state = HandlerState.CREATED
        self.polling_timer: TimerHandle | None = None
        self.polling_interval_ms: int | None = None
        self.interrupt_id: str | None = None
        self._output_pins: list[int] = []

    @property
    def bus(self) -> BusTransport:
        return self.context.bus

    @property
    def sync(self) -> StateSync:
        return self.context.sync

    def pin_config(self, index: int) -> PinConfig:
        return self.config.pin(index)

    @abstractmethod
    def start(self) -> None:
        ...

    @abstractmethod
    def send_current_value(self) -> bool:
        """Write the current output image; return False if the bus write failed."""

    @abstractmethod
    def read_current_value(self, force: bool) -> None:
        ...

    @abstractmethod
    def change_output(self, pin: int, value: Any) -> None:
        """Apply a local write request for an output pin."""

    def stop(self) -> None:
        self.debug("Stopping")
        if self.polling_timer is not None:
            self.polling_timer.cancel()
            self.polling_timer = None
        if self.interrupt_id is not None:
            self.sync.remove_foreign_change_listener(self.interrupt_id, self._on_interrupt)
            # another device may share the interrupt line
            if not self.sync.has_foreign_change_listener(self.interrupt_id):
                self.sync.store.unsubscribe_foreign_states(self.interrupt_id)
            self.interrupt_id = None
        for pin in self._output_pins:
            self.sync.remove_local_change_listener(self.state_id(pin))
        self._output_pins = []
        self.state = HandlerState.STOPPED

    def _begin_start(self) -> None:
        if self.state is not HandlerState.CREATED:
            raise DeviceLifecycleError(
                f"{self.family} {self.hex_address} cannot start from state '{self.state.value}'"
            )
        self.debug("Starting")
        self.state = HandlerState.STARTED

    def _declare_device(self) -> None:
        self.sync.store.extend_object(
            self.hex_address,
            {
                "type": "device",
                "common": {"name": f"{self.hex_address} ({self.name})", "role": "sensor"},
                "native": self.config.native,
            },
        )

    def _declare_pin(self, pin: int, pin_config: PinConfig, label: str | None = None) -> None:
        is_input = pin_config.is_input
        label = label if label is not None else str(pin)
        self.sync.store.extend_object(
            self.state_id(pin),
            {
                "type": "state",
                "common": {
                    "name": f"{self.hex_address} {'Input' if is_input else 'Output'} {label}",
                    "read": is_input,
                    "write": not is_input,
                    "type": "boolean",
                    "role": "indicator" if is_input else "switch",
                },
                "native": {"direction": pin_config.direction.value, "inverted": pin_config.inverted},
            },
        )

    def _arm_triggers(self, has_input: bool) -> None:
        if not has_input:
            return
        if self.config.polling_interval_ms > 0:
            self.polling_interval_ms = max(MIN_POLLING_INTERVAL_MS, self.config.polling_interval_ms)
            self.polling_timer = self.context.scheduler.call_repeating(
                self.polling_interval_ms / 1000, self._on_poll
            )
            self.debug(f"Polling enabled ({self.polling_interval_ms} ms)")
        if self.config.interrupt:
            self._subscribe_interrupt(self.config.interrupt)

    def _subscribe_interrupt(self, interrupt_id: str) -> None:
        store = self.sync.store
        if store.get_object(interrupt_id) is None:
            self.warn(f"Interrupt object {interrupt_id} not found!")
            return
        store.subscribe_foreign_states(interrupt_id)
        self.sync.register_foreign_change_listener(interrupt_id, self._on_interrupt)
        self.interrupt_id = interrupt_id
        self.debug("Interrupt enabled")

    def _on_poll(self) -> None:
        self._run_read("poll")

    def _on_interrupt(self, _value: Any) -> None:
        self.debug("Interrupt detected")
        self._run_read("interrupt")

    def _run_read(self, trigger: str) -> None:
        if self.state is not HandlerState.STARTED:
            return
        try:
            self.read_current_value(False)
        except I2cBridgeError as exc:
            self.error(f"{trigger} read failed: {exc}")

    def state_id(self, pin: int | str) -> str:
        return f"{self.hex_address}.{pin}"

    def add_output_listener(self, pin: int) -> None:
        self._output_pins.append(pin)
        self.sync.register_local_change_listener(
            self.state_id(pin), lambda _old, new: self.change_output(pin, new)
        )

    def set_state_ack(self, pin: int | str, value: Any) -> None:
        self.sync.set_acknowledged(self.state_id(pin), value)

    def get_state_value(self, pin: int | str) -> Any:
        return self.sync.get_cached_value(self.state_id(pin))

    def _log(self, level: int, message: str) -> None:
        LOGGER.log(level, "%s %s: %s", self.family, self.hex_address, message)

    def debug(self, message: str) -> None:
        self._log(logging.DEBUG, message)

    def warn(self, message: str) -> None:
        self._log(logging.WARNING, message)

    def error(self, message: str) -> None:
        self._log(logging.ERROR, message)


class PinBankHandler(DeviceHandlerBase):
    """Handler for chips that expose their pins as one output image and one input image.

    ``pin_masks[i]`` is the bit of pin ``i`` in both images. ``image_sent`` is
    true only while the last attempt to put ``write_value`` on the bus succeeded.
    """

    pin_masks: list[int] = []

    def __init__(self, config: DeviceConfig, context: HandlerContext) -> None:
        super().__init__(config, context)
        self.write_value = 0
        self.read_value = 0
        self.image_sent = False

    def change_output(self, pin: int, value: Any) -> None:
        mask = self.pin_masks[pin]
        old_value = self.write_value
        real_value = not value if self.pin_config(pin).inverted else bool(value)
        new_value = old_value | mask if real_value else old_value & ~mask
        if new_value == old_value and self.image_sent:
            self.set_state_ack(pin, value)
            return

        self.write_value = new_value
        if not self.send_current_value():
            self.write_value = old_value
            return
        self.set_state_ack(pin, value)

    def _seed_output(self, pin: int, pin_config: PinConfig, pending: dict[int, bool]) -> bool:
        """Return the physical level for an output pin from its last acknowledged value.

        Pins without a cached value start at their default level (``inverted``);
        that default is recorded in ``pending`` to be acknowledged once the
        initial bus write has succeeded.
        """
        value = self.get_state_value(pin)
        if value is None:
            value = pin_config.inverted
            pending[pin] = value
        return (not value) if pin_config.inverted else bool(value)

    def _ack_pending(self, pending: dict[int, bool]) -> None:
        for pin, value in pending.items():
            self.set_state_ack(pin, value)

    def _ack_input_changes(self, old: int, new: int, force: bool) -> None:
        for pin, mask in enumerate(self.pin_masks):
            pin_config = self.pin_config(pin)
            if not pin_config.is_input:
                continue
            if not force and (old & mask) == (new & mask):
                continue
            value = (new & mask) != 0
            if pin_config.inverted:
                value = not value
            self.set_state_ack(pin, value)
