"""PCF8574 8-bit quasi-bidirectional I/O expander."""

from __future__ import annotations

from i2cbridge.core.errors import TransportError
from i2cbridge.core.hexutil import to_hex_string
from i2cbridge.devices.base import PinBankHandler

PIN_COUNT = 8
PIN_MASKS = [1 << pin for pin in range(PIN_COUNT)]
GLITCH_VALUE = 0xFF
READ_ATTEMPTS = 3


class PCF8574Handler(PinBankHandler):
    """One byte out, one byte in.

    Input pins are driven high in ``write_value`` so the chip's weak pull-up
    lets the external signal pull them down.
    """

    family = "PCF8574"
    pin_masks = PIN_MASKS

    def start(self) -> None:
        self._begin_start()
        self._declare_device()

        has_input = False
        pending: dict[int, bool] = {}
        for pin, mask in enumerate(PIN_MASKS):
            pin_config = self.pin_config(pin)
            if pin_config.is_input:
                has_input = True
                self.write_value |= mask
            else:
                self.add_output_listener(pin)
                if self._seed_output(pin, pin_config, pending):
                    self.write_value |= mask
            self._declare_pin(pin, pin_config)

        self.debug(f"Setting initial value to {to_hex_string(self.write_value)}")
        if self.send_current_value():
            self._ack_pending(pending)

        self.read_current_value(True)
        self._arm_triggers(has_input)

    def send_current_value(self) -> bool:
        self.debug(f"Sending {to_hex_string(self.write_value)}")
        try:
            self.bus.write_byte(self.address, self.write_value)
        except TransportError as exc:
            self.error(f"Couldn't send current value: {exc}")
            self.image_sent = False
            return False
        self.image_sent = True
        return True

    def read_current_value(self, force: bool) -> None:
        old_value = self.read_value
        attempts = 0
        try:
            while True:
                # the write sets the direction of every pin before we sample them
                self.bus.write_byte(self.address, self.write_value)
                self.image_sent = True
                value = self.bus.read_byte(self.address)
                attempts += 1
                # all ones may be a reset glitch
                if force or value != GLITCH_VALUE or attempts >= READ_ATTEMPTS:
                    break
        except TransportError as exc:
            self.error(f"Couldn't read current value: {exc}")
            return

        self.read_value = value
        if value == old_value and not force:
            return

        self.debug(f"Read {to_hex_string(value)}")
        self._ack_input_changes(old_value, value, force)
