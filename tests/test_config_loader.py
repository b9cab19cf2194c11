from __future__ import annotations

from pathlib import Path

import pytest

from i2cbridge.core.config_loader import load_config, parse_device_config
from i2cbridge.core.errors import ConfigLoadError, ConfigurationError, ConfigValidationError
from i2cbridge.core.model import PinDirection

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "config.example.yaml"


def _write_config(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_example_config_loads() -> None:
    config = load_config(EXAMPLE_CONFIG)
    assert config.bus_number == 1
    assert config.namespace == "i2c.0"
    device = parse_device_config(config.devices[0])
    assert device.address == 0x20
    assert device.interrupt == "gpio.0.17"
    assert device.pins[3].inverted is True
    assert device.pins[4].direction is PinDirection.INPUT_PULLUP


def test_defaults_applied(tmp_path: Path) -> None:
    config = load_config(_write_config(tmp_path / "c.yaml", "bus_number: 0\n"))
    assert config.namespace == "i2c.0"
    assert config.devices == ()


def test_missing_bus_number_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigValidationError):
        load_config(_write_config(tmp_path / "c.yaml", "namespace: i2c.1\n"))


def test_unknown_root_key_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigValidationError):
        load_config(_write_config(tmp_path / "c.yaml", "bus_number: 1\nbus_speed: 400\n"))


def test_duplicate_yaml_keys_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigValidationError):
        load_config(_write_config(tmp_path / "c.yaml", "bus_number: 1\nbus_number: 2\n"))


def test_root_must_be_mapping(tmp_path: Path) -> None:
    with pytest.raises(ConfigValidationError):
        load_config(_write_config(tmp_path / "c.yaml", "- 1\n- 2\n"))


def test_missing_file_is_load_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError):
        load_config(tmp_path / "missing.yaml")


def test_device_records_are_not_validated_at_load(tmp_path: Path) -> None:
    config = load_config(
        _write_config(
            tmp_path / "c.yaml",
            """
bus_number: 1
devices:
  - type: PCF8574
  - address: 0x21
    type: PCF8574
""",
        )
    )
    assert len(config.devices) == 2


def test_parse_device_record() -> None:
    device = parse_device_config(
        {
            "address": "0x27",
            "type": "PCF8574",
            "polling_interval_ms": 0,
            "interrupt": "",
            "pins": [{"direction": "in"}, {"direction": "out", "inverted": True}, {}],
        }
    )
    assert device.address == 0x27
    assert device.name == "PCF8574"
    assert device.polling_interval_ms == 0
    assert device.interrupt is None
    assert device.pins[0].direction is PinDirection.INPUT_NO_PULLUP
    assert device.pins[1].inverted is True
    assert device.pins[2].direction is PinDirection.OUTPUT
    assert device.pin(7).direction is PinDirection.OUTPUT
    assert device.pin(7).inverted is False


def test_yes_is_not_a_boolean(tmp_path: Path) -> None:
    config = load_config(
        _write_config(
            tmp_path / "c.yaml",
            """
bus_number: 1
devices:
  - address: 0x20
    type: PCF8574
    name: on
    pins:
      - direction: out
        inverted: yes
""",
        )
    )
    assert config.devices[0]["name"] == "on"
    with pytest.raises(ConfigurationError):
        parse_device_config(config.devices[0])


@pytest.mark.parametrize(
    "record",
    [
        {"address": 0x80, "type": "PCF8574"},
        {"address": "0x99", "type": "PCF8574"},
        {"address": True, "type": "PCF8574"},
        {"address": 0x20, "type": "PCF8574", "polling_interval_ms": -1},
        "PCF8574@0x20",
    ],
)
def test_bad_device_records(record: object) -> None:
    with pytest.raises(ConfigurationError):
        parse_device_config(record)
