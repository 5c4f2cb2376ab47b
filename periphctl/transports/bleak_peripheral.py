"""BLE peripheral transport implemented on top of bleak."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from periphctl.core.errors import TransportConnectError, TransportIOError
from periphctl.core.model import ServiceInfo
from periphctl.transports.base import CONNECT_EVENT, DISCONNECT_EVENT, Listener

ClientFactory = Callable[..., Any]


def _default_client_factory(address: str, **kwargs: Any) -> Any:
    try:
        from bleak import BleakClient  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise TransportConnectError(
            "BLE transport requires 'bleak'. Install dependency and retry."
        ) from exc
    return BleakClient(address, **kwargs)


class BleakCharacteristic:
    def __init__(self, client: Any, characteristic: Any) -> None:
        self._client = client
        self._characteristic = characteristic
        self.uuid: str = characteristic.uuid
        self.properties: tuple[str, ...] = tuple(characteristic.properties)

    async def read(self) -> bytes:
        try:
            data = await self._client.read_gatt_char(self._characteristic)
        except Exception as exc:
            raise TransportIOError(f"BLE read of {self.uuid} failed: {exc}") from exc
        return bytes(data)

    async def write(self, value: bytes, without_response: bool) -> None:
        try:
            await self._client.write_gatt_char(
                self._characteristic,
                value,
                response=not without_response,
            )
        except Exception as exc:
            raise TransportIOError(f"BLE write of {self.uuid} failed: {exc}") from exc

    def __repr__(self) -> str:
        return f"BleakCharacteristic(uuid={self.uuid!r}, properties={self.properties!r})"


class BleakPeripheral:
    """Peripheral handle over a BleakClient that emits connect/disconnect events."""

    def __init__(
        self,
        address: str,
        *,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.address = address
        self._client_factory = client_factory or _default_client_factory
        self._client: Any = None
        self._listeners: dict[str, list[Listener]] = {
            CONNECT_EVENT: [],
            DISCONNECT_EVENT: [],
        }

    @property
    def is_connected(self) -> bool:
        return bool(self._client is not None and self._client.is_connected)

    def on(self, event: str, listener: Listener) -> BleakPeripheral:
        if event not in self._listeners:
            raise ValueError(f"Unknown peripheral event '{event}'")
        self._listeners[event].append(listener)
        return self

    async def connect(self) -> None:
        client = self._ensure_client()
        try:
            await client.connect()
        except Exception as exc:
            raise TransportConnectError(f"BLE connect failed for {self.address}: {exc}") from exc
        self._emit(CONNECT_EVENT)

    async def disconnect(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.disconnect()
        except Exception as exc:
            raise TransportConnectError(f"BLE disconnect failed for {self.address}: {exc}") from exc

    async def discover_all(self) -> tuple[list[ServiceInfo], list[BleakCharacteristic]]:
        if not self.is_connected:
            raise TransportIOError(f"Cannot discover services on {self.address}: not connected")

        services: list[ServiceInfo] = []
        characteristics: list[BleakCharacteristic] = []
        for service in self._client.services:
            services.append(ServiceInfo(uuid=service.uuid, description=service.description))
            for characteristic in service.characteristics:
                characteristics.append(BleakCharacteristic(self._client, characteristic))
        return services, characteristics

    def _ensure_client(self) -> Any:
        if self._client is None:
            self._client = self._client_factory(
                self.address,
                disconnected_callback=self._on_client_disconnected,
            )
        return self._client

    def _on_client_disconnected(self, _client: Any) -> None:
        self._emit(DISCONNECT_EVENT)

    def _emit(self, event: str) -> None:
        for listener in list(self._listeners[event]):
            listener()
