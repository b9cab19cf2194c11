"""MCP23017 16-bit I/O expander (IOCON.BANK = 0 register layout)."""

from __future__ import annotations

from i2cbridge.core.errors import TransportError
from i2cbridge.core.hexutil import to_hex_string
from i2cbridge.core.model import DeviceConfig, PinDirection
from i2cbridge.devices.base import HandlerContext, PinBankHandler
from i2cbridge.devices.big_endian import BigEndianDeviceHandlerBase

REG_IODIR = 0x00
REG_IPOL = 0x02
REG_GPPU = 0x0C
REG_GPIO = 0x12
REG_OLAT = 0x14

PIN_COUNT = 16


def pin_mask(pin: int) -> int:
    # port A arrives first on the wire, so it is the high byte after the swap
    if pin < 8:
        return 1 << (pin + 8)
    return 1 << (pin - 8)


def pin_label(pin: int) -> str:
    return f"{'A' if pin < 8 else 'B'}{pin % 8}"


PIN_MASKS = [pin_mask(pin) for pin in range(PIN_COUNT)]


class MCP23017Handler(BigEndianDeviceHandlerBase, PinBankHandler):
    family = "MCP23017"
    pin_masks = PIN_MASKS

    def __init__(self, config: DeviceConfig, context: HandlerContext) -> None:
        super().__init__(config, context)
        self.direction_value = 0
        self.pullup_value = 0
        self.registers_configured = False

    def start(self) -> None:
        self._begin_start()
        self._declare_device()

        pending: dict[int, bool] = {}
        for pin, mask in enumerate(PIN_MASKS):
            pin_config = self.pin_config(pin)
            if pin_config.is_input:
                self.direction_value |= mask
                if pin_config.direction is PinDirection.INPUT_PULLUP:
                    self.pullup_value |= mask
            else:
                self.add_output_listener(pin)
                if self._seed_output(pin, pin_config, pending):
                    self.write_value |= mask
            self._declare_pin(pin, pin_config, pin_label(pin))

        if self.send_current_value():
            self._ack_pending(pending)

        self.read_current_value(True)
        self._arm_triggers(self.direction_value != 0)

    def _configure_registers(self) -> bool:
        self.debug(
            f"Setting direction to {to_hex_string(self.direction_value, 4)}, "
            f"pull-ups to {to_hex_string(self.pullup_value, 4)}"
        )
        try:
            self.write_word(REG_IODIR, self.direction_value)
            self.write_word(REG_GPPU, self.pullup_value)
            # polarity is handled in software, same as the byte-oriented family
            self.write_word(REG_IPOL, 0)
        except TransportError as exc:
            self.error(f"Couldn't configure registers: {exc}")
            return False
        self.registers_configured = True
        return True

    def send_current_value(self) -> bool:
        # IODIR still holds its reset value until configuration succeeds
        if not self.registers_configured and not self._configure_registers():
            self.image_sent = False
            return False
        self.debug(f"Sending {to_hex_string(self.write_value, 4)}")
        try:
            self.write_word(REG_OLAT, self.write_value)
        except TransportError as exc:
            self.error(f"Couldn't send current value: {exc}")
            self.image_sent = False
            return False
        self.image_sent = True
        return True

    def read_current_value(self, force: bool) -> None:
        old_value = self.read_value
        try:
            value = self.read_word(REG_GPIO)
        except TransportError as exc:
            self.error(f"Couldn't read current value: {exc}")
            return

        self.read_value = value
        if value == old_value and not force:
            return

        self.debug(f"Read {to_hex_string(value, 4)}")
        self._ack_input_changes(old_value, value, force)
