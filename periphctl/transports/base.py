"""Transport interfaces."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol

CONNECT_EVENT = "connect"
DISCONNECT_EVENT = "disconnect"

Listener = Callable[[], None]


class Characteristic(Protocol):
    uuid: str
    properties: Sequence[str]

    async def read(self) -> bytes:
        """Read the current value of the characteristic."""

    async def write(self, value: bytes, without_response: bool) -> None:
        """Write value, skipping the peripheral acknowledgment if without_response."""


class Peripheral(Protocol):
    @property
    def is_connected(self) -> bool:
        """Current link state as reported by the radio stack."""

    async def connect(self) -> None:
        """Open the link to the peripheral."""

    async def disconnect(self) -> None:
        """Close the link to the peripheral."""

    async def discover_all(self) -> tuple[Sequence[Any], Sequence[Characteristic]]:
        """Enumerate all services and characteristics of the connected peripheral."""

    def on(self, event: str, listener: Listener) -> Peripheral:
        """Subscribe to 'connect' / 'disconnect' notifications."""
