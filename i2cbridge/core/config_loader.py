"""Configuration loading and validation for YAML-based bridge configs."""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from i2cbridge.core.errors import ConfigLoadError, ConfigurationError, ConfigValidationError
from i2cbridge.core.hexutil import parse_int
from i2cbridge.core.model import BridgeConfig, DeviceConfig, PinConfig, PinDirection

_DIRECTION_ALIASES = {"in": PinDirection.INPUT_NO_PULLUP}
DEFAULT_NAMESPACE = "i2c.0"
DEFAULT_POLLING_INTERVAL_MS = 200
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]

# Only the literal true/false spellings are booleans; "on"/"off"/"yes" stay strings.
UniqueKeyLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@lru_cache(maxsize=1)
def _load_schema() -> dict[str, Any]:
    schema_text = resources.files("i2cbridge.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validators.validator_for(schema).check_schema(schema)
    return schema


def _validator_for(schema: dict[str, Any]) -> Any:
    validator_cls = validators.validator_for(_load_schema())
    return validator_cls(schema)


def _device_validator() -> Any:
    root = _load_schema()
    # keep $defs reachable so the pin $ref resolves
    device_schema = dict(root["$defs"]["device"])
    device_schema["$defs"] = root["$defs"]
    return _validator_for(device_schema)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _describe(exc: ValidationError) -> str:
    path = ".".join(str(p) for p in exc.path)
    where = f" ({path})" if path else ""
    return f"{where}: {exc.message}"


def build_config(doc: dict[str, Any], source: Path | str = "<config>") -> BridgeConfig:
    try:
        _validator_for(_load_schema()).validate(doc)
    except ValidationError as exc:
        raise ConfigValidationError(f"Schema validation failed for {source}{_describe(exc)}") from exc

    return BridgeConfig(
        bus_number=int(doc["bus_number"]),
        namespace=doc.get("namespace", DEFAULT_NAMESPACE),
        devices=tuple(doc.get("devices") or ()),
    )


def load_config(path: Path | str) -> BridgeConfig:
    path = Path(path)
    config = build_config(_read_yaml(path), path)
    LOGGER.debug("Loaded %d device record(s) from %s", len(config.devices), path)
    return config


def _parse_pin(raw: dict[str, Any]) -> PinConfig:
    direction_name = raw.get("direction", PinDirection.OUTPUT.value)
    direction = _DIRECTION_ALIASES.get(direction_name) or PinDirection(direction_name)
    return PinConfig(direction=direction, inverted=raw.get("inverted") is True)


def parse_device_config(record: Any) -> DeviceConfig:
    """Turn one raw device record into a DeviceConfig.

    Raises ConfigurationError for records the registry must skip.
    """
    if not isinstance(record, dict):
        raise ConfigurationError(f"Device record must be a mapping, got {type(record).__name__}")
    if not record.get("type"):
        raise ConfigurationError("Device record is missing 'type'")
    if record.get("address") is None:
        raise ConfigurationError(f"Device record for {record['type']} is missing 'address'")

    try:
        _device_validator().validate(record)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid {record['type']} device record{_describe(exc)}") from exc

    address = parse_int(record["address"])
    if not 0 <= address <= 0x7F:
        raise ConfigurationError(f"Address {record['address']} is outside the 7-bit range")

    interrupt = record.get("interrupt") or None
    return DeviceConfig(
        address=address,
        type=record["type"],
        name=record.get("name") or record["type"],
        polling_interval_ms=int(record.get("polling_interval_ms", DEFAULT_POLLING_INTERVAL_MS)),
        interrupt=interrupt,
        pins=tuple(_parse_pin(pin) for pin in record.get("pins") or ()),
        native=dict(record),
    )
