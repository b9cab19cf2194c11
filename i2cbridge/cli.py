"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import typer

from i2cbridge.core.config_loader import load_config
from i2cbridge.core.errors import I2cBridgeError
from i2cbridge.core.hexutil import parse_int, to_hex_string
from i2cbridge.core.model import BridgeConfig, StateValue
from i2cbridge.core.registry import DeviceRegistry
from i2cbridge.core.scheduler import AsyncioScheduler
from i2cbridge.core.service import BridgeService
from i2cbridge.core.state_store import InMemoryStateStore

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s] %(message)s"
LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Expose I2C expander pins as named states")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(format=LOG_FORMAT, level=logging.DEBUG if verbose else logging.INFO)


def _build_service(bus: int) -> BridgeService:
    return BridgeService(BridgeConfig(bus_number=bus))


def _parse_number(value: str, what: str) -> int:
    try:
        return parse_int(value)
    except ValueError:
        raise typer.BadParameter(f"{what} must be decimal or 0x-prefixed hex, got '{value}'") from None


def parse_assignment(line: str) -> tuple[str, Any]:
    """Parse ``<state id>=<value>`` as typed on stdin while running."""
    state_id, sep, raw = line.partition("=")
    state_id, raw = state_id.strip(), raw.strip()
    if not sep or not state_id or not raw:
        raise ValueError(f"Expected <state id>=<value>, got '{line.strip()}'")
    lowered = raw.lower()
    if lowered in ("true", "on", "1"):
        return state_id, True
    if lowered in ("false", "off", "0"):
        return state_id, False
    try:
        return state_id, parse_int(raw)
    except ValueError:
        return state_id, raw


@app.command("run")
def run_bridge(
    config_path: Path = typer.Argument(..., help="YAML configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every bus transfer"),
) -> None:
    """Start all configured devices and run until interrupted.

    Lines of the form ``0x20.3=true`` on stdin are written to the matching state.
    """
    _configure_logging(verbose)
    try:
        config = load_config(config_path)
        loop = asyncio.new_event_loop()
        store = InMemoryStateStore(config.namespace)

        def _echo(state_id: str, state: StateValue | None) -> None:
            if state is not None and state.ack:
                typer.echo(f"{state_id} = {state.val}")

        def _on_stdin() -> None:
            line = sys.stdin.readline()
            if not line:
                loop.remove_reader(sys.stdin)
                return
            if not line.strip():
                return
            try:
                state_id, value = parse_assignment(line)
            except ValueError as exc:
                typer.echo(f"Error: {exc}", err=True)
                return
            store.set_state(state_id, value, ack=False)

        store.add_change_listener(_echo)
        service = BridgeService(config, store=store, scheduler=AsyncioScheduler(loop))
        try:
            service.start()
            try:
                loop.add_reader(sys.stdin, _on_stdin)
            except (NotImplementedError, ValueError, OSError) as exc:
                LOGGER.debug("stdin control unavailable: %s", exc)
            loop.run_forever()
        except KeyboardInterrupt:
            typer.echo("Stopping", err=True)
        finally:
            service.stop()
            loop.close()
    except I2cBridgeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("devices")
def list_devices(config_path: Path = typer.Argument(..., help="YAML configuration file")) -> None:
    """List configured devices and whether each one can be started."""
    try:
        config = load_config(config_path)
        resolutions = DeviceRegistry().resolve(config.devices)
        if not resolutions:
            typer.echo("No devices configured")
            return
        for resolution in resolutions:
            if resolution.ok:
                device = resolution.config
                typer.echo(f"{to_hex_string(device.address)} {device.type} ({device.name})")
            else:
                typer.echo(f"skipped: {resolution.error}")
    except I2cBridgeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("scan")
def scan_bus(bus: int = typer.Option(1, "--bus", help="I2C bus number")) -> None:
    """List the addresses that respond on a bus."""
    service = _build_service(bus)
    try:
        found = service.search(bus)
        if not found:
            typer.echo(f"No devices found on bus {bus}")
            return
        typer.echo(" ".join(to_hex_string(address) for address in found))
    except I2cBridgeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    finally:
        service.close()


@app.command("read")
def read_raw(
    address: str,
    register: str | None = typer.Option(None, "--register", help="Register/command byte"),
    length: int = typer.Option(1, "--bytes", min=1, help="Number of bytes to read"),
    bus: int = typer.Option(1, "--bus", help="I2C bus number"),
) -> None:
    """Read raw bytes from a device, bypassing the device handlers."""
    target = _parse_number(address, "ADDRESS")
    command = _parse_number(register, "--register") if register is not None else None
    service = _build_service(bus)
    try:
        data = service.read(target, command, length)
        typer.echo(data.hex())
    except I2cBridgeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    finally:
        service.close()


@app.command("write")
def write_raw(
    address: str,
    data: str = typer.Argument(..., help="Hex payload, e.g. 'ff00'"),
    register: str | None = typer.Option(None, "--register", help="Register/command byte"),
    bus: int = typer.Option(1, "--bus", help="I2C bus number"),
) -> None:
    """Write raw bytes to a device, bypassing the device handlers."""
    target = _parse_number(address, "ADDRESS")
    command = _parse_number(register, "--register") if register is not None else None
    try:
        payload = bytes.fromhex(data.replace(" ", ""))
    except ValueError:
        raise typer.BadParameter(f"DATA must be hex, got '{data}'") from None
    if not payload:
        raise typer.BadParameter("DATA must not be empty")

    service = _build_service(bus)
    try:
        written = service.write(target, payload, command)
        typer.echo(f"Wrote {written.hex()} to {to_hex_string(target)}")
    except I2cBridgeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    finally:
        service.close()


def run() -> None:
    app()


if __name__ == "__main__":
    run()
