"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import time

import typer

from dynctl.core.bridge import StateBridge
from dynctl.core.errors import DynctlError
from dynctl.core.model import Device, DeviceKind
from dynctl.core.service import DeviceService
from dynctl.core.settings import load_settings

app = typer.Typer(help="Poll and control HTTP-driven buttons, toggles and dimmers")

_KINDS = ", ".join(k.value for k in DeviceKind)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests and state changes"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_service() -> DeviceService:
    return DeviceService()


def _state(device: Device, level: int) -> str:
    if device.error:
        return "error"
    if device.kind is DeviceKind.LED:
        return f"level={level}"
    if device.pressed:
        return "pressed"
    if device.kind is DeviceKind.TOGGLE:
        return "on" if device.on else "off"
    return "idle"


def _echo_devices(service: DeviceService) -> None:
    devices = service.list_devices()
    if not devices:
        typer.echo("No devices configured")
        return
    for device in devices:
        state = _state(device, service.level(device.id))
        typer.echo(f"{device.id}  {device.kind.value:<6} {device.name}  {device.url}  [{state}]")


def _fail(exc: DynctlError) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


@app.command("list")
def list_devices() -> None:
    """List configured devices and their last known state."""
    try:
        with _build_service() as service:
            _echo_devices(service)
    except DynctlError as exc:
        raise _fail(exc) from None


@app.command("add")
def add_device(
    name: str,
    url: str,
    kind: str = typer.Option("button", "--type", help=f"Device type: {_KINDS}"),
    secure: bool = typer.Option(False, "--secure", help="Send HTTP Basic credentials"),
    login: str | None = typer.Option(None, "--login"),
    password: str | None = typer.Option(None, "--password"),
) -> None:
    """Add a device."""
    try:
        with _build_service() as service:
            device = service.add_device(name, url, kind, secure=secure, login=login, password=password)
            typer.echo(f"Added {device.name} ({device.kind.value}) as {device.id}")
    except DynctlError as exc:
        raise _fail(exc) from None


@app.command("edit")
def edit_device(
    ref: str,
    name: str | None = typer.Option(None, "--name"),
    url: str | None = typer.Option(None, "--url"),
    kind: str | None = typer.Option(None, "--type", help=f"Device type: {_KINDS}"),
    secure: bool | None = typer.Option(None, "--secure/--no-secure"),
    login: str | None = typer.Option(None, "--login"),
    password: str | None = typer.Option(None, "--password"),
) -> None:
    """Change a device's configuration, keeping its id."""
    try:
        with _build_service() as service:
            device = service.find_device(ref)
            updated = service.update_device(
                device.id,
                name=name,
                url=url,
                kind=kind,
                secure=secure,
                login=login,
                password=password,
            )
            typer.echo(f"Updated {updated.name} ({updated.id})")
    except DynctlError as exc:
        raise _fail(exc) from None


@app.command("remove")
def remove_device(ref: str) -> None:
    """Delete a device by id or name."""
    try:
        with _build_service() as service:
            device = service.find_device(ref)
            service.delete_device(device.id)
            typer.echo(f"Removed {device.name}")
    except DynctlError as exc:
        raise _fail(exc) from None


@app.command("press")
def press(
    ref: str,
    hold: float = typer.Option(0.2, "--hold", min=0.0, help="Seconds between press and release"),
) -> None:
    """Press and release a button (or pulse any device)."""
    try:
        with _build_service() as service:
            device = service.find_device(ref)
            pressed = service.press(device.id)
            pressed.outcome.result()
            time.sleep(hold)
            service.release(device.id).outcome.result()
            current = service.get_device(device.id)
            typer.echo(f"Pressed {current.name}: {'error' if current.error else 'ok'}")
    except DynctlError as exc:
        raise _fail(exc) from None


@app.command("switch")
def switch(ref: str, state: str = typer.Argument(..., help="on or off")) -> None:
    """Turn a toggle on or off."""
    wanted = state.strip().lower()
    if wanted not in ("on", "off"):
        typer.echo("Error: STATE must be 'on' or 'off'", err=True)
        raise typer.Exit(code=1)
    try:
        with _build_service() as service:
            device = service.find_device(ref)
            service.switch(device.id, wanted == "on").outcome.result()
            current = service.refresh()
            result = next((d for d in current if d.id == device.id), None)
            if result is None or result.error:
                typer.echo(f"{device.name}: error")
                raise typer.Exit(code=1)
            typer.echo(f"{result.name}: {'on' if result.on else 'off'}")
    except DynctlError as exc:
        raise _fail(exc) from None


@app.command("level")
def level(ref: str, value: int = typer.Argument(..., help="Level 0-100")) -> None:
    """Set a dimmer level."""
    try:
        with _build_service() as service:
            device = service.find_device(ref)
            service.set_level(device.id, value).outcome.result()
            current = service.get_device(device.id)
            typer.echo(f"{current.name}: {'error' if current.error else f'level={value}'}")
    except DynctlError as exc:
        raise _fail(exc) from None


@app.command("status")
def status() -> None:
    """Poll every device once and print the results."""
    try:
        with _build_service() as service:
            service.refresh()
            _echo_devices(service)
    except DynctlError as exc:
        raise _fail(exc) from None


@app.command("import")
def import_devices(
    url: str,
    replace: bool = typer.Option(False, "--replace", help="Replace the current list instead of appending"),
) -> None:
    """Import a device list from a JSON (or YAML) URL."""
    try:
        with _build_service() as service:
            devices = service.import_from(url, replace=replace)
            typer.echo(f"Imported {len(devices)} device(s)")
    except DynctlError as exc:
        raise _fail(exc) from None


@app.command("trigger")
def trigger(name: str) -> None:
    """Signal a running `watch` session to pulse the named device."""
    try:
        settings = load_settings()
        StateBridge.from_paths(settings.local_store, settings.shared_store).signal_pressed(name)
        typer.echo(f"Signalled {name}")
    except DynctlError as exc:
        raise _fail(exc) from None


@app.command("watch")
def watch(
    count: int = typer.Option(0, "--count", min=0, help="Stop after this many updates (0 = forever)"),
) -> None:
    """Poll continuously, react to triggers, and print state every poll period."""
    try:
        with _build_service() as service:
            service.start(immediate=True)
            updates = 0
            try:
                while True:
                    time.sleep(service.settings.poll_interval_s)
                    _echo_devices(service)
                    updates += 1
                    if count and updates >= count:
                        break
                    typer.echo("")
            except KeyboardInterrupt:
                pass
    except DynctlError as exc:
        raise _fail(exc) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
