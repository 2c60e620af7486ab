"""Command-line interface for lanwake."""

import asyncio
import functools
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import click

from lanwake import __version__
from lanwake.config.loader import DEFAULT_CONFIG, ConfigError, Settings, load_settings
from lanwake.core.device import Device, DeviceUpdate
from lanwake.core.registry import DeviceRegistry, DuplicateNameError
from lanwake.core.store import PersistenceError, SQLiteDeviceStore
from lanwake.core.wol import WakeService, is_valid_mac, summarize

_MAC_HELP = "Use format: XX:XX:XX:XX:XX:XX or XX-XX-XX-XX-XX-XX"


def _setup_logging(verbose: bool, settings: Settings) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
    )


def _registry(ctx: click.Context) -> DeviceRegistry:
    """Open the device store and run the first-use bootstrap."""
    settings: Settings = ctx.obj["settings"]
    store = SQLiteDeviceStore(settings.db_path)
    try:
        store.init()
        registry = DeviceRegistry(store, legacy_path=settings.legacy_devices_path)
        registry.load_devices()
    except PersistenceError as exc:
        click.echo(f"Cannot open device store {settings.db_path}: {exc}", err=True)
        sys.exit(1)
    return registry


def _store_errors(f: Callable[..., Any]) -> Callable[..., Any]:
    """Report a failing device store as an error and exit 1."""

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except PersistenceError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)

    return wrapper


def _wol(ctx: click.Context) -> WakeService:
    settings: Settings = ctx.obj["settings"]
    return WakeService(default_broadcast=settings.default_broadcast, port=settings.wol_port)


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__, prog_name="lanwake")
@click.option(
    "--config",
    "-c",
    default=str(DEFAULT_CONFIG),
    envvar="LANWAKE_CONFIG",
    show_default=True,
    help="Path to lanwake config.yaml",
)
@click.option(
    "--db",
    envvar="DEVICES_DB_PATH",
    default=None,
    help="Path to the device database (overrides config)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config: str, db: Optional[str], verbose: bool) -> None:
    """Wake-on-LAN device manager.

    A successful wake only means the magic packet was sent. Wake-on-LAN is
    connectionless, so there is no confirmation that the target powered on.
    """
    try:
        settings = load_settings(Path(config))
    except ConfigError as exc:
        click.echo("Config validation errors:", err=True)
        for e in exc.errors:
            click.echo(f"  • {e}", err=True)
        sys.exit(1)
    if db:
        settings.db_path = Path(db)
    _setup_logging(verbose, settings)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


# ── wake commands ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("target")
@click.option("--broadcast", "-b", help="Broadcast address (MAC targets only)")
@click.pass_context
@_store_errors
def wake(ctx: click.Context, target: str, broadcast: Optional[str]) -> None:
    """Wake a device by name or MAC address."""
    wol = _wol(ctx)
    if is_valid_mac(target):
        result = asyncio.run(wol.wake(target, broadcast))
    else:
        device = _registry(ctx).get_device(target)
        if device is None:
            click.echo(f"Device '{target}' not found", err=True)
            sys.exit(1)
        result = asyncio.run(wol.wake_device(device))

    if not result.success:
        click.echo(f"✗  {result.message}", err=True)
        sys.exit(1)
    click.echo(f"✓  {result.message}")


@main.command("wake-all")
@click.pass_context
@_store_errors
def wake_all(ctx: click.Context) -> None:
    """Wake all configured devices."""
    devices = _registry(ctx).list_devices()
    if not devices:
        click.echo("No devices configured")
        return

    click.echo(f"Waking {len(devices)} device(s)…")
    results = asyncio.run(_wol(ctx).wake_multiple(devices))
    for r in results:
        if r.success:
            click.echo(f"✓  {r.message}")
        else:
            click.echo(f"✗  {r.message}", err=True)
    summary = summarize(results)
    click.echo(f"{summary['successful']}/{summary['total']} packet(s) sent")


# ── device management ─────────────────────────────────────────────────────────


@main.command("list")
@click.pass_context
@_store_errors
def list_devices(ctx: click.Context) -> None:
    """List all configured devices."""
    devices = _registry(ctx).list_devices()
    if not devices:
        click.echo("No devices configured")
        return
    click.echo(f"{'NAME':<24} {'MAC':<19} {'IP':<16} {'BROADCAST'}")
    click.echo("─" * 75)
    for d in devices:
        click.echo(f"{d.name:<24} {d.mac:<19} {d.ip or '-':<16} {d.broadcast or '-'}")


@main.command()
@click.argument("name")
@click.argument("mac")
@click.option("--ip", "-i", help="Device IP address")
@click.option("--broadcast", "-b", help="Broadcast address")
@click.pass_context
@_store_errors
def add(
    ctx: click.Context, name: str, mac: str, ip: Optional[str], broadcast: Optional[str]
) -> None:
    """Add a new device."""
    if not is_valid_mac(mac):
        click.echo(f"Invalid MAC address format. {_MAC_HELP}", err=True)
        sys.exit(1)
    device = Device(name=name, mac=mac, ip=ip or None, broadcast=broadcast or None)
    try:
        _registry(ctx).add_device(device)
    except DuplicateNameError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"✓  Device '{name}' added successfully")


@main.command()
@click.argument("name")
@click.pass_context
@_store_errors
def remove(ctx: click.Context, name: str) -> None:
    """Remove a device."""
    if not _registry(ctx).remove_device(name):
        click.echo(f"Device '{name}' not found", err=True)
        sys.exit(1)
    click.echo(f"✓  Device '{name}' removed successfully")


@main.command()
@click.argument("name")
@click.option("--name", "-n", "new_name", help="Rename the device")
@click.option("--mac", "-m", help="New MAC address")
@click.option("--ip", "-i", help="New IP address (empty string clears it)")
@click.option("--broadcast", "-b", help="New broadcast address (empty string clears it)")
@click.pass_context
@_store_errors
def update(
    ctx: click.Context,
    name: str,
    new_name: Optional[str],
    mac: Optional[str],
    ip: Optional[str],
    broadcast: Optional[str],
) -> None:
    """Update fields of a device; omitted options are left unchanged."""
    if mac is not None and not is_valid_mac(mac):
        click.echo(f"Invalid MAC address format. {_MAC_HELP}", err=True)
        sys.exit(1)

    supplied = {
        key: value
        for key, value in (("name", new_name), ("mac", mac), ("ip", ip), ("broadcast", broadcast))
        if value is not None
    }
    try:
        changes = DeviceUpdate(**supplied)
        updated = _registry(ctx).update_device(name, changes)
    except (ValueError, DuplicateNameError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    if not updated:
        click.echo(f"Device '{name}' not found", err=True)
        sys.exit(1)
    click.echo(f"✓  Device '{name}' updated successfully")


# ── serve command ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind host")
@click.option("--port", default=3000, show_default=True, envvar="PORT", help="Bind port")
@click.pass_context
@_store_errors
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Start the lanwake REST API server."""
    import uvicorn

    from lanwake.api.routes import create_app

    app = create_app(settings=ctx.obj["settings"])
    click.echo(f"Starting lanwake API at http://{host}:{port} (docs at /docs)")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
