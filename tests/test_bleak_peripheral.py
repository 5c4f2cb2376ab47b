from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from periphctl.core.errors import TransportConnectError, TransportIOError
from periphctl.transports.bleak_peripheral import BleakPeripheral

BATTERY_LEVEL = "00002a19-0000-1000-8000-00805f9b34fb"


class FakeBleakClient:
    def __init__(self, address: str, *, disconnected_callback=None, connect_error=None) -> None:
        self.address = address
        self.disconnected_callback = disconnected_callback
        self.connect_error = connect_error
        self.is_connected = False
        self.writes: list[tuple[str, bytes, bool]] = []
        self.battery = SimpleNamespace(uuid=BATTERY_LEVEL, properties=["read", "notify"])
        self.services = [
            SimpleNamespace(
                uuid="0000180f-0000-1000-8000-00805f9b34fb",
                description="Battery Service",
                characteristics=[self.battery],
            )
        ]

    async def connect(self) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.is_connected = True

    async def disconnect(self) -> None:
        self.is_connected = False
        if self.disconnected_callback is not None:
            self.disconnected_callback(self)

    async def read_gatt_char(self, characteristic) -> bytearray:
        if not self.is_connected:
            raise OSError("not connected")
        return bytearray(b"\x64")

    async def write_gatt_char(self, characteristic, data, response=False) -> None:
        self.writes.append((characteristic.uuid, bytes(data), response))


def _peripheral(**client_kwargs) -> tuple[BleakPeripheral, list[FakeBleakClient]]:
    clients: list[FakeBleakClient] = []

    def factory(address, **kwargs):
        client = FakeBleakClient(address, **kwargs, **client_kwargs)
        clients.append(client)
        return client

    return BleakPeripheral("A0:14:3D:08:B4:90", client_factory=factory), clients


def test_connect_emits_event_and_discovers_characteristics() -> None:
    peripheral, clients = _peripheral()
    events: list[str] = []
    peripheral.on("connect", lambda: events.append("connect"))

    async def scenario():
        await peripheral.connect()
        return await peripheral.discover_all()

    services, characteristics = asyncio.run(scenario())
    assert events == ["connect"]
    assert peripheral.is_connected
    assert clients[0].address == "A0:14:3D:08:B4:90"
    assert [s.description for s in services] == ["Battery Service"]
    assert [c.uuid for c in characteristics] == [BATTERY_LEVEL]
    assert characteristics[0].properties == ("read", "notify")


def test_read_and_write_go_through_client() -> None:
    peripheral, clients = _peripheral()

    async def scenario():
        await peripheral.connect()
        _, characteristics = await peripheral.discover_all()
        value = await characteristics[0].read()
        await characteristics[0].write(b"\x01", True)
        await characteristics[0].write(b"\x02", False)
        return value

    assert asyncio.run(scenario()) == b"\x64"
    assert clients[0].writes == [
        (BATTERY_LEVEL, b"\x01", False),
        (BATTERY_LEVEL, b"\x02", True),
    ]


def test_client_disconnect_callback_emits_disconnect() -> None:
    peripheral, _ = _peripheral()
    events: list[str] = []
    peripheral.on("disconnect", lambda: events.append("disconnect"))

    async def scenario():
        await peripheral.connect()
        await peripheral.disconnect()

    asyncio.run(scenario())
    assert events == ["disconnect"]
    assert not peripheral.is_connected


def test_connect_failure_is_wrapped() -> None:
    peripheral, _ = _peripheral(connect_error=OSError("adapter off"))

    with pytest.raises(TransportConnectError) as excinfo:
        asyncio.run(peripheral.connect())
    assert "adapter off" in str(excinfo.value)


def test_discover_requires_connection() -> None:
    peripheral, _ = _peripheral()

    with pytest.raises(TransportIOError):
        asyncio.run(peripheral.discover_all())


def test_read_failure_is_wrapped() -> None:
    peripheral, clients = _peripheral()

    async def scenario():
        await peripheral.connect()
        _, characteristics = await peripheral.discover_all()
        clients[0].is_connected = False
        await characteristics[0].read()

    with pytest.raises(TransportIOError):
        asyncio.run(scenario())


def test_unknown_event_rejected() -> None:
    peripheral, _ = _peripheral()
    with pytest.raises(ValueError):
        peripheral.on("notify", lambda: None)


def test_disconnect_without_client_is_noop() -> None:
    peripheral, clients = _peripheral()
    asyncio.run(peripheral.disconnect())
    assert clients == []
