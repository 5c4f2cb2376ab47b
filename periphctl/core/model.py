"""Core data models used across config, device, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

READ = "read"
WRITE = "write"
WRITE_WITHOUT_RESPONSE = "write-without-response"


class DeviceState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    DISCOVERING = "discovering"
    READY = "ready"
    DISCONNECTING = "disconnecting"


@dataclass(frozen=True)
class Timeouts:
    connect_s: float = 15.0
    discover_s: float = 15.0
    disconnect_s: float = 2.0
    read_s: float = 5.0
    write_s: float = 10.0


@dataclass(frozen=True)
class DeviceProfile:
    name: str
    address: str


@dataclass(frozen=True)
class Settings:
    timeouts: Timeouts = field(default_factory=Timeouts)
    cancel_on_timeout: bool = False
    devices: dict[str, DeviceProfile] = field(default_factory=dict)


@dataclass(frozen=True)
class ServiceInfo:
    uuid: str
    description: str = ""


@dataclass(frozen=True)
class CharacteristicInfo:
    uuid: str
    properties: tuple[str, ...]


@dataclass(frozen=True)
class ReadResult:
    profile: DeviceProfile
    uuid: str
    value: bytes | None

    @property
    def value_hex(self) -> str | None:
        return self.value.hex() if self.value is not None else None


@dataclass(frozen=True)
class WriteResult:
    profile: DeviceProfile
    uuid: str
    payload_hex: str
