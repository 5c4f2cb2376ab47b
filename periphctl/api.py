"""Stable public API for building tooling on top of periphctl.

This module is the supported integration surface for third-party callers.
`Device` is exported for callers that drive their own event loop; `Client`
wraps one connect/operate/disconnect session per call.
"""

from __future__ import annotations

from periphctl.core.config import load_settings
from periphctl.core.device import Device
from periphctl.core.errors import (
    CharacteristicUnavailableError,
    CharacteristicUUIDError,
    ConfigLoadError,
    ConfigValidationError,
    DeviceError,
    DeviceSelectionError,
    OperationTimeoutError,
    PeriphctlError,
    TransportConnectError,
    TransportError,
    TransportIOError,
)
from periphctl.core.executor import InlineExecutor, TaskExecutor
from periphctl.core.model import (
    CharacteristicInfo,
    DeviceProfile,
    DeviceState,
    ReadResult,
    Settings,
    Timeouts,
    WriteResult,
)
from periphctl.core.service import PeripheralFactory, PeripheralService
from periphctl.transports.base import Characteristic, Peripheral
from periphctl.transports.bleak_peripheral import BleakPeripheral

__all__ = [
    "PeriphctlError",
    "CharacteristicUnavailableError",
    "CharacteristicUUIDError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DeviceError",
    "DeviceSelectionError",
    "OperationTimeoutError",
    "TransportError",
    "TransportConnectError",
    "TransportIOError",
    "CharacteristicInfo",
    "DeviceProfile",
    "DeviceState",
    "ReadResult",
    "Settings",
    "Timeouts",
    "WriteResult",
    "Characteristic",
    "Peripheral",
    "BleakPeripheral",
    "Device",
    "InlineExecutor",
    "TaskExecutor",
    "load_settings",
    "Client",
]


class Client:
    """Public client for interacting with configured peripherals.

    Each call opens a fresh session: connect (with discovery), run the
    operation, disconnect. Failures surface as `PeriphctlError` subclasses or
    as the transport's own errors; nothing is retried.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        peripheral_factory: PeripheralFactory | None = None,
        executor: TaskExecutor | None = None,
    ) -> None:
        self._service = PeripheralService(
            settings=settings,
            peripheral_factory=peripheral_factory,
            executor=executor,
        )

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_devices(self) -> list[DeviceProfile]:
        return self._service.list_devices()

    def resolve_device(self, target: str) -> DeviceProfile:
        return self._service.resolve_profile(target)

    def list_characteristics(self, target: str) -> list[CharacteristicInfo]:
        _, characteristics = self._service.characteristics(target)
        return characteristics

    def read_characteristic(
        self,
        target: str,
        uuid: str,
        default: bytes | None = None,
    ) -> ReadResult:
        return self._service.read(target, uuid, default)

    def write_characteristic(self, target: str, uuid: str, value: bytes) -> WriteResult:
        return self._service.write(target, uuid, value)
