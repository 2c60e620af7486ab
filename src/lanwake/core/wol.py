"""
Wake-on-LAN magic packet dispatch.

A magic packet is 102 bytes: six 0xFF bytes followed by the target MAC
repeated 16 times, sent as a single UDP broadcast datagram (port 9 by default).

WoL is connectionless and has no confirmation channel. A successful
WakeResult only means the local network stack accepted the datagram; it says
nothing about whether the target machine actually powered on.
"""

import asyncio
import logging
import re
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any, Optional

from wakeonlan import create_magic_packet, send_magic_packet

from lanwake.core.device import Device

logger = logging.getLogger(__name__)

DEFAULT_BROADCAST = "255.255.255.255"
DEFAULT_PORT = 9
UNKNOWN_DEVICE = "Unknown"

# Six hex octets, one separator used consistently throughout.
_MAC_RE = re.compile(r"^[0-9A-Fa-f]{2}([:-])(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}$")


def is_valid_mac(mac: str) -> bool:
    """Return True for ``XX:XX:XX:XX:XX:XX`` or ``XX-XX-XX-XX-XX-XX`` (hex, unmixed)."""
    return bool(_MAC_RE.match(mac))


def build_magic_packet(mac: str) -> bytes:
    """
    Build the 102-byte magic packet payload for ``mac``.

    This is the datagram ``WakeService`` puts on the wire (wakeonlan builds
    the same bytes inside ``send_magic_packet``). It lets callers inspect the
    payload without sending anything.

    Raises:
        ValueError: If ``mac`` is not a valid MAC address
    """
    if not is_valid_mac(mac):
        raise ValueError(f"Invalid MAC address: {mac}")
    return create_magic_packet(mac)


@dataclass
class WakeResult:
    """Outcome of a single wake attempt."""

    success: bool
    device: str
    mac: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def summarize(results: Sequence[WakeResult]) -> dict[str, int]:
    successful = sum(1 for r in results if r.success)
    return {"total": len(results), "successful": successful, "failed": len(results) - successful}


class WakeService:
    """
    Sends magic packets and reports each attempt as a WakeResult.

    Failures are returned as values, never raised. Sends are off-loaded to a
    worker thread so that ``wake_multiple`` can fan out without one send
    blocking the next.
    """

    def __init__(
        self, default_broadcast: str = DEFAULT_BROADCAST, port: int = DEFAULT_PORT
    ) -> None:
        self.default_broadcast = default_broadcast
        self.port = port

    def _send(self, mac: str, broadcast: Optional[str]) -> None:
        ip_address = broadcast or self.default_broadcast
        logger.info("Sending WOL magic packet to %s via %s:%d", mac, ip_address, self.port)
        send_magic_packet(mac, ip_address=ip_address, port=self.port)
        logger.debug("WOL packet sent successfully")

    async def _attempt(self, mac: str, broadcast: Optional[str]) -> Optional[str]:
        """Send one packet; return the failure reason, or None on success."""
        if not is_valid_mac(mac):
            logger.warning("Refusing to wake malformed MAC %r", mac)
            return "Invalid MAC address format"
        try:
            await asyncio.to_thread(self._send, mac, broadcast)
        except (OSError, ValueError) as exc:
            logger.warning("WOL send to %s failed: %s", mac, exc)
            return str(exc) or exc.__class__.__name__
        return None

    async def wake(self, mac: str, broadcast: Optional[str] = None) -> WakeResult:
        """Wake a bare MAC address; the result's device is "Unknown"."""
        error = await self._attempt(mac, broadcast)
        if error is not None:
            return WakeResult(False, UNKNOWN_DEVICE, mac, f"Failed to wake device: {error}")
        return WakeResult(True, UNKNOWN_DEVICE, mac, "Magic packet sent successfully")

    async def wake_device(self, device: Device) -> WakeResult:
        """Wake a registered device using its own broadcast address if set."""
        error = await self._attempt(device.mac, device.broadcast)
        if error is not None:
            return WakeResult(
                False, device.name, device.mac, f"Failed to wake {device.name}: {error}"
            )
        return WakeResult(
            True, device.name, device.mac, f"Magic packet sent to {device.name} successfully"
        )

    async def wake_multiple(self, devices: Sequence[Device]) -> list[WakeResult]:
        """
        Wake all ``devices`` concurrently.

        Returns:
            One WakeResult per device, in input order
        """
        outcomes = await asyncio.gather(
            *(self.wake_device(d) for d in devices), return_exceptions=True
        )
        results: list[WakeResult] = []
        for device, outcome in zip(devices, outcomes):
            if isinstance(outcome, BaseException):
                # CancelledError is a BaseException, not an Exception.
                reason = str(outcome) or outcome.__class__.__name__
                logger.error("Unexpected error waking %s: %s", device.name, reason)
                outcome = WakeResult(
                    False, device.name, device.mac, f"Failed to wake {device.name}: {reason}"
                )
            results.append(outcome)
        return results
