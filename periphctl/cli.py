"""Typer CLI entrypoint."""

from __future__ import annotations

import logging

import typer

from periphctl.core.errors import PeriphctlError
from periphctl.core.service import PeripheralService

app = typer.Typer(help="Connect to a BLE peripheral and read or write its characteristics")


def _build_service() -> PeripheralService:
    service = PeripheralService()
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _parse_hex(value: str, *, option: str) -> bytes:
    normalized = value.strip().lower().replace(" ", "")
    if normalized.startswith("0x"):
        normalized = normalized[2:]
    try:
        return bytes.fromhex(normalized)
    except ValueError:
        raise typer.BadParameter(f"'{value}' is not valid hex", param_hint=option) from None


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        )


@app.command("devices")
def list_devices() -> None:
    """List configured devices."""
    try:
        service = _build_service()
        devices = service.list_devices()
        if not devices:
            typer.echo("No devices configured")
            return

        for device in devices:
            typer.echo(f"{device.name}: {device.address}")
    except PeriphctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("characteristics")
def list_characteristics(
    target: str = typer.Argument(..., help="Configured device name or MAC address"),
) -> None:
    """Connect, discover, and list characteristics with their properties."""
    try:
        service = _build_service()
        profile, characteristics = service.characteristics(target)
        typer.echo(f"Target: {profile.name} ({profile.address})")
        if not characteristics:
            typer.echo("  No characteristics discovered")
        for characteristic in characteristics:
            typer.echo(f"  {characteristic.uuid}: {', '.join(characteristic.properties)}")
    except PeriphctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("read")
def read_characteristic(
    target: str = typer.Argument(..., help="Configured device name or MAC address"),
    uuid: str = typer.Argument(..., help="Characteristic UUID (16, 32 or 128-bit)"),
    default: str | None = typer.Option(
        None,
        "--default",
        help="Hex value to report when the characteristic is not available",
    ),
) -> None:
    """Read a characteristic value and print it as hex."""
    fallback = _parse_hex(default, option="--default") if default is not None else None
    try:
        service = _build_service()
        result = service.read(target, uuid, fallback)
        if result.value_hex is None:
            typer.echo(f"{result.uuid} on {result.profile.name}: <unavailable>")
        else:
            typer.echo(f"{result.uuid} on {result.profile.name}: {result.value_hex}")
    except PeriphctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("write")
def write_characteristic(
    target: str = typer.Argument(..., help="Configured device name or MAC address"),
    uuid: str = typer.Argument(..., help="Characteristic UUID (16, 32 or 128-bit)"),
    value: str = typer.Argument(..., help="Hex payload, e.g. 01ff"),
) -> None:
    """Write a hex payload to a characteristic."""
    payload = _parse_hex(value, option="VALUE")
    try:
        service = _build_service()
        result = service.write(target, uuid, payload)
        typer.echo(f"Wrote {result.payload_hex} to {result.uuid} on {result.profile.name}")
    except PeriphctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
