"""Service layer used by CLI and the public API."""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from collections.abc import Callable
from typing import Any

from periphctl.core.config import load_settings, normalize_address
from periphctl.core.device import Device
from periphctl.core.errors import (
    CharacteristicUUIDError,
    ConfigValidationError,
    DeviceSelectionError,
)
from periphctl.core.executor import InlineExecutor, TaskExecutor
from periphctl.core.model import (
    CharacteristicInfo,
    DeviceProfile,
    ReadResult,
    Settings,
    WriteResult,
)
from periphctl.transports.base import Peripheral
from periphctl.transports.bleak_peripheral import BleakPeripheral

_UUID_RE = re.compile(
    r"^[0-9a-f]{4}$"
    r"|^[0-9a-f]{8}$"
    r"|^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)
_BASE_UUID_SUFFIX = "-0000-1000-8000-00805f9b34fb"
LOGGER = logging.getLogger(__name__)

PeripheralFactory = Callable[[str], Peripheral]


def normalize_uuid(value: str) -> str:
    """Expand 16/32-bit UUIDs to the full 128-bit form the radio stack reports."""
    normalized = value.strip().lower()
    if not _UUID_RE.match(normalized):
        raise CharacteristicUUIDError(
            f"'{value}' is not a 16-bit, 32-bit, or 128-bit UUID string"
        )
    if len(normalized) == 4:
        return f"0000{normalized}{_BASE_UUID_SUFFIX}"
    if len(normalized) == 8:
        return f"{normalized}{_BASE_UUID_SUFFIX}"
    return normalized


class PeripheralService:
    def __init__(
        self,
        *,
        settings: Settings | None = None,
        peripheral_factory: PeripheralFactory | None = None,
        executor: TaskExecutor | None = None,
    ) -> None:
        if settings is None:
            loaded = load_settings()
            self.settings = loaded.settings
            self.load_warnings = loaded.warnings
        else:
            self.settings = settings
            self.load_warnings = ()
        self.peripheral_factory = peripheral_factory or BleakPeripheral
        self.executor = executor or InlineExecutor()

    def list_devices(self) -> list[DeviceProfile]:
        return sorted(self.settings.devices.values(), key=lambda p: p.name)

    def resolve_profile(self, target: str) -> DeviceProfile:
        profile = self.settings.devices.get(target)
        if profile is not None:
            return profile

        try:
            address = normalize_address(target, context="target")
        except ConfigValidationError:
            raise DeviceSelectionError(
                f"Unknown device '{target}'. Use 'periphctl devices' to list configured devices "
                "or pass a MAC address."
            ) from None

        for candidate in self.settings.devices.values():
            if candidate.address == address:
                return candidate
        return DeviceProfile(name=address, address=address)

    def build_device(self, profile: DeviceProfile) -> Device:
        return Device(
            profile.name,
            self.peripheral_factory(profile.address),
            self.executor,
            timeouts=self.settings.timeouts,
            cancel_on_timeout=self.settings.cancel_on_timeout,
        )

    def characteristics(self, target: str) -> tuple[DeviceProfile, list[CharacteristicInfo]]:
        profile = self.resolve_profile(target)

        async def _list(device: Device) -> list[CharacteristicInfo]:
            return [
                CharacteristicInfo(uuid=c.uuid, properties=tuple(c.properties))
                for c in device.characteristics or ()
            ]

        return profile, self._run(profile, _list)

    def read(self, target: str, uuid: str, default: bytes | None = None) -> ReadResult:
        profile = self.resolve_profile(target)
        full_uuid = normalize_uuid(uuid)

        async def _read(device: Device) -> Any:
            return await device.read_characteristic(full_uuid, default)

        value = self._run(profile, _read)
        return ReadResult(
            profile=profile,
            uuid=full_uuid,
            value=bytes(value) if value is not None else None,
        )

    def write(self, target: str, uuid: str, value: bytes) -> WriteResult:
        profile = self.resolve_profile(target)
        full_uuid = normalize_uuid(uuid)

        async def _write(device: Device) -> None:
            await device.write_characteristic(full_uuid, value)

        self._run(profile, _write)
        return WriteResult(profile=profile, uuid=full_uuid, payload_hex=value.hex())

    def _run(self, profile: DeviceProfile, task: Callable[[Device], Any]) -> Any:
        return asyncio.run(self._session(profile, task))

    async def _session(self, profile: DeviceProfile, task: Callable[[Device], Any]) -> Any:
        device = self.build_device(profile)
        try:
            await device.connect()
            result = device.execute(task)
            if inspect.isawaitable(result):
                result = await result
            return result
        finally:
            try:
                await device.disconnect()
            except Exception as exc:
                LOGGER.warning("Disconnect from %s failed: %r", profile.name, exc)
