"""FastAPI routes for the lanwake REST API."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lanwake import __version__
from lanwake.api.middleware import RequestIdMiddleware, RequestLoggingMiddleware
from lanwake.api.models import (
    DeviceListResponse,
    DeviceModel,
    DeviceUpdateRequest,
    WakeAllResponse,
    WakeMultipleRequest,
    WakeMultipleResponse,
    WakeRequest,
)
from lanwake.config.loader import DEFAULT_CONFIG, Settings, load_settings
from lanwake.core.device import Device, DeviceUpdate
from lanwake.core.registry import DeviceRegistry, DuplicateNameError
from lanwake.core.store import LanwakeError, SQLiteDeviceStore
from lanwake.core.wol import WakeResult, WakeService, is_valid_mac, summarize

logger = logging.getLogger(__name__)

_INVALID_MAC = "Invalid MAC address format"
_NOT_FOUND = "Device not found"


def _error(message: str, status_code: int, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def _validation_details(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]


def _wake_response(result: WakeResult) -> JSONResponse:
    """200 with the result on success, 500 with the result on send failure."""
    return JSONResponse(result.to_dict(), status_code=200 if result.success else 500)


def create_app(
    config_path: Optional[str] = None, settings: Optional[Settings] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config_path: Path to lanwake config.yaml. If None, uses the default location.
        settings: Pre-built Settings; takes precedence over ``config_path``.

    Returns:
        FastAPI application instance
    """
    if settings is None:
        settings = load_settings(Path(config_path) if config_path else DEFAULT_CONFIG)

    app = FastAPI(
        title="lanwake",
        version=__version__,
        description=(
            "Wake-on-LAN device registry. A successful wake means the magic packet "
            "was handed to the network stack; WoL cannot confirm the target woke."
        ),
    )

    # ── App state ─────────────────────────────────────────────────────────────
    store = SQLiteDeviceStore(settings.db_path)
    store.init()
    registry = DeviceRegistry(store, legacy_path=settings.legacy_devices_path)
    registry.load_devices()

    app.state.settings = settings
    app.state.registry = registry
    wol = WakeService(default_broadcast=settings.default_broadcast, port=settings.wol_port)
    app.state.wol = wol
    logger.info(
        "Device registry initialized at %s with %d device(s)",
        settings.db_path,
        len(registry.list_devices()),
    )

    # Last added runs first, so the request ID exists before logging.
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error("Invalid request body", 400, details=_validation_details(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return _error("Endpoint not found", 404)
        return _error(str(exc.detail), exc.status_code)

    @app.exception_handler(LanwakeError)
    async def store_error(request: Request, exc: LanwakeError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error(str(exc), 500)

    # ── Health ────────────────────────────────────────────────────────────────

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    # ── Devices ───────────────────────────────────────────────────────────────

    @app.get(
        "/api/devices", response_model=DeviceListResponse, response_model_exclude_none=True
    )
    async def list_devices() -> DeviceListResponse:
        devices = registry.list_devices()
        return DeviceListResponse(
            devices=[DeviceModel(**d.to_dict()) for d in devices], count=len(devices)
        )

    @app.get("/api/devices/{name}", response_model=None)
    async def get_device(name: str) -> Any:
        device = registry.get_device(name)
        if device is None:
            return _error(_NOT_FOUND, 404)
        return device.to_dict()

    @app.post("/api/devices", status_code=201, response_model=None)
    async def add_device(req: DeviceModel) -> Any:
        if not req.name or not req.mac:
            return _error("Name and MAC address are required", 400)
        if not is_valid_mac(req.mac):
            return _error(_INVALID_MAC, 400)
        device = Device(
            name=req.name, mac=req.mac, ip=req.ip or None, broadcast=req.broadcast or None
        )
        try:
            registry.add_device(device)
        except DuplicateNameError as exc:
            return _error(str(exc), 400)
        return JSONResponse(
            {"message": "Device added successfully", "device": device.to_dict()}, status_code=201
        )

    @app.put("/api/devices/{name}", response_model=None)
    async def update_device(name: str, req: DeviceUpdateRequest) -> Any:
        supplied = {field: getattr(req, field) for field in req.model_fields_set}
        if "name" in supplied and not supplied["name"]:
            return _error("Name cannot be empty", 400)
        if "mac" in supplied and not is_valid_mac(supplied["mac"] or ""):
            return _error(_INVALID_MAC, 400)
        try:
            updated = registry.update_device(name, DeviceUpdate(**supplied))
        except DuplicateNameError as exc:
            return _error(str(exc), 400)
        if not updated:
            return _error(_NOT_FOUND, 404)
        return {"message": "Device updated successfully"}

    @app.delete("/api/devices/{name}", response_model=None)
    async def remove_device(name: str) -> Any:
        if not registry.remove_device(name):
            return _error(_NOT_FOUND, 404)
        return {"message": "Device removed successfully"}

    # ── Wake ──────────────────────────────────────────────────────────────────

    @app.get("/api/wake", response_model=None)
    async def wake_query(
        device: Optional[str] = None,
        mac: Optional[str] = None,
        broadcast: Optional[str] = None,
    ) -> JSONResponse:
        if device:
            target = registry.get_device(device)
            if target is None:
                return _error(_NOT_FOUND, 404)
            return _wake_response(await wol.wake_device(target))
        if mac:
            if not is_valid_mac(mac):
                return _error(_INVALID_MAC, 400)
            return _wake_response(await wol.wake(mac, broadcast or None))
        return _error('Either "device" or "mac" query parameter is required', 400)

    @app.post("/api/wake/{name}", response_model=None)
    async def wake_by_name(name: str) -> JSONResponse:
        target = registry.get_device(name)
        if target is None:
            return _error(_NOT_FOUND, 404)
        return _wake_response(await wol.wake_device(target))

    @app.post("/api/wake", response_model=None)
    async def wake_by_mac(req: WakeRequest) -> JSONResponse:
        if not req.mac:
            return _error("MAC address is required", 400)
        if not is_valid_mac(req.mac):
            return _error(_INVALID_MAC, 400)
        return _wake_response(await wol.wake(req.mac, req.broadcast or None))

    @app.post("/api/wake-all", response_model=None)
    async def wake_all() -> Any:
        devices = registry.list_devices()
        if not devices:
            return _error("No devices configured", 404)
        results = await wol.wake_multiple(devices)
        return WakeAllResponse(
            results=[r.to_dict() for r in results], summary=summarize(results)
        ).model_dump(exclude_none=True)

    @app.post("/api/wake-multiple", response_model=None)
    async def wake_multiple(req: WakeMultipleRequest) -> Any:
        if not req.devices:
            return _error("Device names array is required", 400)

        found: list[Device] = []
        not_found: list[str] = []
        for name in req.devices:
            device = registry.get_device(name)
            if device is None:
                not_found.append(name)
            else:
                found.append(device)

        if not found:
            return _error("None of the specified devices were found", 404, notFound=not_found)

        results = await wol.wake_multiple(found)
        summary = {**summarize(results), "notFound": len(not_found)}
        return WakeMultipleResponse(
            results=[r.to_dict() for r in results], notFound=not_found, summary=summary
        ).model_dump()

    return app
