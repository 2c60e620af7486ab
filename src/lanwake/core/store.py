"""SQLite-backed persistence for device records."""

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Protocol

from lanwake.core.device import Device

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS devices (
    name       TEXT NOT NULL UNIQUE COLLATE NOCASE,
    mac        TEXT NOT NULL,
    ip         TEXT,
    broadcast  TEXT
);
"""

_COLUMNS = ("name", "mac", "ip", "broadcast")

# PRAGMA user_version value once the first-use bootstrap has run.
_SEEDED_VERSION = 1


class LanwakeError(Exception):
    """Base class for registry and storage errors."""


class DuplicateNameError(LanwakeError):
    """Raised when a device name collides with an existing record."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Device '{name}' already exists")


class PersistenceError(LanwakeError):
    """Raised when the backing store fails."""


class DeviceStore(Protocol):
    """Durable mapping from case-insensitive device name to record."""

    def get(self, name: str) -> Optional[Device]: ...

    def list(self) -> list[Device]: ...

    def count(self) -> int: ...

    def insert(self, device: Device) -> None: ...

    def insert_many(self, devices: Iterable[Device], *, seed: bool = False) -> bool: ...

    def is_seeded(self) -> bool: ...

    def mark_seeded(self) -> None: ...

    def update(self, name: str, values: dict[str, Optional[str]]) -> bool: ...

    def delete(self, name: str) -> bool: ...


def _is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
    return "UNIQUE" in str(exc)


def _row_to_device(row: sqlite3.Row) -> Device:
    return Device(
        name=row["name"],
        mac=row["mac"],
        ip=row["ip"] or None,
        broadcast=row["broadcast"] or None,
    )


class SQLiteDeviceStore:
    """
    Device store backed by a single SQLite table.

    The ``name`` column is ``UNIQUE COLLATE NOCASE``: uniqueness is enforced by
    the database, so concurrent inserts of the same name cannot both succeed.
    A connection is opened per operation, which makes the store usable from
    worker threads as well as the event loop.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def init(self) -> None:
        """Create the database file and schema (idempotent)."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot create {self._path.parent}: {exc}") from exc
        with self._connect() as conn:
            conn.executescript(_SCHEMA_SQL)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self._path), timeout=10)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open database {self._path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc
        finally:
            conn.close()

    def get(self, name: str) -> Optional[Device]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT name, mac, ip, broadcast FROM devices WHERE name = ? COLLATE NOCASE",
                (name,),
            ).fetchone()
        return _row_to_device(row) if row else None

    def list(self) -> list[Device]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT name, mac, ip, broadcast FROM devices ORDER BY name COLLATE NOCASE"
            ).fetchall()
        return [_row_to_device(r) for r in rows]

    def count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM devices").fetchone()
        return int(row["n"])

    def insert(self, device: Device) -> None:
        self.insert_many([device])

    def is_seeded(self) -> bool:
        """True once the first-use bootstrap has written to this database."""
        with self._connect() as conn:
            row = conn.execute("PRAGMA user_version").fetchone()
        return int(row[0]) >= _SEEDED_VERSION

    def mark_seeded(self) -> None:
        with self._connect() as conn:
            conn.execute(f"PRAGMA user_version = {_SEEDED_VERSION}")

    def insert_many(self, devices: Iterable[Device], *, seed: bool = False) -> bool:
        """
        Insert all devices in one transaction; nothing is written on failure.

        With ``seed=True`` the insert is the first-use bootstrap: it is skipped
        if the database is already seeded, and the seeded marker is set in the
        same transaction as the rows.

        Returns:
            True if the rows were written, False if a seed was skipped

        Raises:
            DuplicateNameError: If any name collides (the whole batch is rolled back)
        """
        with self._connect() as conn:
            if seed:
                conn.execute("BEGIN IMMEDIATE")
                if conn.execute("PRAGMA user_version").fetchone()[0] >= _SEEDED_VERSION:
                    return False
            for device in devices:
                try:
                    conn.execute(
                        "INSERT INTO devices (name, mac, ip, broadcast) VALUES (?, ?, ?, ?)",
                        (device.name, device.mac, device.ip, device.broadcast),
                    )
                except sqlite3.IntegrityError as exc:
                    if not _is_unique_violation(exc):
                        raise
                    raise DuplicateNameError(device.name) from exc
            if seed:
                conn.execute(f"PRAGMA user_version = {_SEEDED_VERSION}")
        return True

    def update(self, name: str, values: dict[str, Optional[str]]) -> bool:
        """
        Write ``values`` over the record matching ``name``.

        Returns:
            True if a record matched, False otherwise
        """
        unknown = set(values) - set(_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown device fields: {sorted(unknown)}")
        with self._connect() as conn:
            if not values:
                row = conn.execute(
                    "SELECT 1 FROM devices WHERE name = ? COLLATE NOCASE", (name,)
                ).fetchone()
                return row is not None
            assignments = ", ".join(f"{col} = ?" for col in values)
            try:
                cur = conn.execute(
                    f"UPDATE devices SET {assignments} WHERE name = ? COLLATE NOCASE",
                    (*values.values(), name),
                )
            except sqlite3.IntegrityError as exc:
                if not _is_unique_violation(exc):
                    raise
                raise DuplicateNameError(values.get("name") or name) from exc
            return cur.rowcount > 0

    def delete(self, name: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM devices WHERE name = ? COLLATE NOCASE", (name,))
            return cur.rowcount > 0
