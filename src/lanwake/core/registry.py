"""Device registry: named, durable collection of wake targets."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from lanwake.core.device import Device, DeviceUpdate
from lanwake.core.store import DeviceStore, DuplicateNameError, PersistenceError

logger = logging.getLogger(__name__)

__all__ = ["DeviceRegistry", "DuplicateNameError", "PersistenceError", "EXAMPLE_DEVICE"]

EXAMPLE_DEVICE = Device(
    name="example-device",
    mac="00:11:22:33:44:55",
    ip="192.168.1.100",
    broadcast="192.168.1.255",
)


def _read_legacy_devices(path: Path) -> list[Device]:
    """
    Parse a legacy ``devices.json`` file.

    Raises:
        ValueError: If the file is not a JSON array of device objects
    """
    with open(path, encoding="utf-8") as f:
        data: Any = json.load(f)
    if not isinstance(data, list):
        raise ValueError("expected a JSON array of devices")
    devices: list[Device] = []
    for i, raw in enumerate(data):
        if not isinstance(raw, dict) or not raw.get("name") or not raw.get("mac"):
            raise ValueError(f"entry {i} is missing 'name' or 'mac'")
        devices.append(Device.from_dict(raw))
    return devices


class DeviceRegistry:
    """
    Resolves device names to records and validates mutations.

    Name matching is always case-insensitive. MAC format is the caller's
    responsibility; the registry only enforces name uniqueness, which is
    delegated to the store's uniqueness constraint.
    """

    def __init__(self, store: DeviceStore, legacy_path: Optional[Path] = None) -> None:
        self._store = store
        self._legacy_path = Path(legacy_path) if legacy_path else None

    def load_devices(self) -> None:
        """
        Seed an empty store on first use.

        Imports the legacy JSON file when present, otherwise inserts a single
        example device. Runs at most once per database: a store that was
        seeded before, or already holds devices, is left untouched even if
        every device has since been removed.
        """
        if self._store.is_seeded():
            return
        if self._store.count() > 0:
            self._store.mark_seeded()
            return

        if self._legacy_path and self._legacy_path.exists():
            try:
                legacy = _read_legacy_devices(self._legacy_path)
                migrated = self._store.insert_many(legacy, seed=True)
            except (OSError, ValueError, DuplicateNameError) as exc:
                logger.warning(
                    "Failed to migrate legacy devices file %s: %s", self._legacy_path, exc
                )
            else:
                if migrated:
                    logger.info("Migrated %d device(s) from %s", len(legacy), self._legacy_path)
                return

        if self._store.insert_many([EXAMPLE_DEVICE], seed=True):
            logger.info("Seeded empty device store with '%s'", EXAMPLE_DEVICE.name)

    def list_devices(self) -> list[Device]:
        return self._store.list()

    def get_device(self, name: str) -> Optional[Device]:
        return self._store.get(name)

    def add_device(self, device: Device) -> None:
        """
        Persist a new device.

        Raises:
            DuplicateNameError: If a device with the same name already exists
        """
        self._store.insert(device)
        logger.info("Added device '%s' (%s)", device.name, device.mac)

    def remove_device(self, name: str) -> bool:
        removed = self._store.delete(name)
        if removed:
            logger.info("Removed device '%s'", name)
        return removed

    def update_device(self, name: str, update: DeviceUpdate) -> bool:
        """
        Apply a partial update to the device matching ``name``.

        Returns:
            True if the device exists (an empty update changes nothing),
            False if no device matches

        Raises:
            DuplicateNameError: If the new name belongs to a different device
        """
        values = update.supplied()
        updated = self._store.update(name, values)
        if updated and values:
            logger.info("Updated device '%s': %s", name, ", ".join(sorted(values)))
        return updated
