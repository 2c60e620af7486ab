"""Device records and partial updates."""

from dataclasses import dataclass, field, fields
from typing import Any, Optional, Union


class _Unset:
    """Marker for a field that was not supplied in an update."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass
class Device:
    """A named endpoint that can be woken with a magic packet."""

    name: str
    mac: str
    ip: Optional[str] = None
    broadcast: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape, omitting unset optional fields."""
        d: dict[str, Any] = {"name": self.name, "mac": self.mac}
        if self.ip:
            d["ip"] = self.ip
        if self.broadcast:
            d["broadcast"] = self.broadcast
        return d

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Device":
        return cls(
            name=raw["name"],
            mac=raw["mac"],
            ip=raw.get("ip") or None,
            broadcast=raw.get("broadcast") or None,
        )


@dataclass
class DeviceUpdate:
    """
    Explicit partial update for a Device.

    Each field is either UNSET (leave the stored value alone) or a value to
    write. For ``ip`` and ``broadcast`` a value of None or "" clears the field.
    """

    name: Union[str, _Unset] = field(default=UNSET)
    mac: Union[str, _Unset] = field(default=UNSET)
    ip: Union[str, None, _Unset] = field(default=UNSET)
    broadcast: Union[str, None, _Unset] = field(default=UNSET)

    def __post_init__(self) -> None:
        for required in ("name", "mac"):
            value = getattr(self, required)
            if value is not UNSET and not value:
                raise ValueError(f"'{required}' cannot be cleared")

    def supplied(self) -> dict[str, Optional[str]]:
        """Return only the supplied fields, with cleared optionals as None."""
        result: dict[str, Optional[str]] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is UNSET:
                continue
            result[f.name] = value or None
        return result

