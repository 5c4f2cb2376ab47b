"""Stateful proxy for a single BLE peripheral.

A `Device` owns one transport handle and keeps the services and
characteristics discovered on it. Every operation is raced against a fixed
deadline; when the deadline wins the caller gets `OperationTimeoutError`, and
unless `cancel_on_timeout` is set the transport call keeps running and its late
side effects still land on the device.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from typing import Any, TypeVar

from periphctl.core.errors import CharacteristicUnavailableError, OperationTimeoutError
from periphctl.core.executor import TaskExecutor
from periphctl.core.model import WRITE, WRITE_WITHOUT_RESPONSE, DeviceState, Timeouts
from periphctl.transports.base import (
    CONNECT_EVENT,
    DISCONNECT_EVENT,
    Characteristic,
    Peripheral,
)

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class Device:
    def __init__(
        self,
        name: str,
        peripheral: Peripheral,
        executor: TaskExecutor,
        *,
        timeouts: Timeouts | None = None,
        cancel_on_timeout: bool = False,
    ) -> None:
        self.name = name
        self.peripheral = peripheral
        self._executor = executor
        self._timeouts = timeouts or Timeouts()
        self._cancel_on_timeout = cancel_on_timeout
        self._log = LOGGER.getChild(name)

        self._services: tuple[Any, ...] | None = None
        self._characteristics: tuple[Characteristic, ...] | None = None
        self._state = DeviceState.IDLE
        # Bumped on every disconnect event so stale discoveries can be dropped.
        self._epoch = 0
        self._lifecycle_lock = asyncio.Lock()

        self.peripheral.on(CONNECT_EVENT, self._on_connected)
        self.peripheral.on(DISCONNECT_EVENT, self._on_disconnected)

    @property
    def is_connected(self) -> bool:
        return self.peripheral.is_connected

    @property
    def state(self) -> DeviceState:
        return self._state

    @property
    def services(self) -> tuple[Any, ...] | None:
        return self._services

    @property
    def characteristics(self) -> tuple[Characteristic, ...] | None:
        return self._characteristics

    async def connect(self) -> None:
        """Connect and discover; completes only once characteristics are known."""
        async with self._lifecycle_lock:
            await self._race("connect", self._connect_and_discover(), self._timeouts.connect_s)

    async def disconnect(self) -> None:
        async with self._lifecycle_lock:
            await self._race("disconnect", self._disconnect(), self._timeouts.disconnect_s)

    async def read_characteristic(self, uuid: str, default: Any) -> Any:
        """Read uuid, or return default when it was not discovered."""
        return await self._race(f"read {uuid}", self._read(uuid, default), self._timeouts.read_s)

    async def write_characteristic(self, uuid: str, value: bytes) -> None:
        await self._race(f"write {uuid}", self._write(uuid, value), self._timeouts.write_s)

    def execute(self, task: Any) -> Any:
        return self._executor.execute(self, task)

    async def _discover(self) -> None:
        await self._race("discover", self._discover_all(), self._timeouts.discover_s)

    async def _connect_and_discover(self) -> None:
        self._set_state(DeviceState.CONNECTING)
        try:
            await self.peripheral.connect()
            self._set_state(DeviceState.DISCOVERING)
            await self._discover()
        except asyncio.CancelledError:
            self._set_state(DeviceState.IDLE)
            raise
        except Exception as exc:
            self._log.warning("Connect failed: %r", exc)
            self._set_state(DeviceState.IDLE)
            raise
        if self._characteristics is not None:
            self._set_state(DeviceState.READY)

    async def _discover_all(self) -> None:
        epoch = self._epoch
        self._log.debug("Discovering services/characteristics")
        services, characteristics = await self.peripheral.discover_all()
        if epoch != self._epoch:
            self._log.debug("Discarding discovery results; link dropped meanwhile")
            return
        self._services = tuple(services)
        self._characteristics = tuple(characteristics)
        self._log.debug(
            "Discovered %d services, %d characteristics",
            len(self._services),
            len(self._characteristics),
        )

    async def _disconnect(self) -> None:
        previous = self._state
        self._set_state(DeviceState.DISCONNECTING)
        try:
            await self.peripheral.disconnect()
        except asyncio.CancelledError:
            self._set_state(previous)
            raise
        except Exception as exc:
            self._log.warning("Disconnect failed: %r", exc)
            self._set_state(previous)
            raise
        # No event arrives when the link was never up; the cache is left to the event handler.
        if not self.peripheral.is_connected:
            self._set_state(DeviceState.IDLE)

    async def _read(self, uuid: str, default: Any) -> Any:
        self._log.debug("Reading %s", uuid)
        characteristic = self._find(uuid)
        if characteristic is None:
            self._log.debug("Characteristic %s not available. Returning default value.", uuid)
            return default

        try:
            data = await characteristic.read()
        except Exception as exc:
            self._log.warning("Failed to read characteristic %s: %r", uuid, exc)
            raise

        self._log.debug("Retrieved %s: %r", uuid, data)
        return data

    async def _write(self, uuid: str, value: bytes) -> None:
        self._log.debug("Writing %r to %s", value, uuid)
        characteristic = self._find(uuid)
        if characteristic is None:
            self._log.warning("Characteristic %s not available. Rejecting.", uuid)
            raise CharacteristicUnavailableError(uuid)

        without_response = _prefers_unacknowledged(characteristic.properties)
        try:
            await characteristic.write(value, without_response)
        except Exception as exc:
            self._log.warning("Failed to write characteristic %s: %r", uuid, exc)
            raise

        self._log.debug("Written %s", uuid)

    def _find(self, uuid: str) -> Characteristic | None:
        for characteristic in self._characteristics or ():
            if characteristic.uuid == uuid:
                return characteristic
        return None

    def _on_connected(self) -> None:
        self._log.info("Connected")

    def _on_disconnected(self) -> None:
        self._log.info("Disconnected")
        self._epoch += 1
        self._services = None
        self._characteristics = None
        self._set_state(DeviceState.IDLE)

    def _set_state(self, state: DeviceState) -> None:
        if state is not self._state:
            self._log.debug("State %s -> %s", self._state.value, state.value)
            self._state = state

    async def _race(self, operation: str, work: Awaitable[T], timeout_s: float) -> T:
        task = asyncio.ensure_future(work)
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout_s)
        except asyncio.CancelledError:
            if self._cancel_on_timeout:
                task.cancel()
            raise
        if task in done:
            return task.result()

        self._log.warning("%s timed out after %gs", operation, timeout_s)
        if self._cancel_on_timeout:
            task.cancel()
        else:
            task.add_done_callback(lambda t: self._log_late_outcome(operation, t))
        raise OperationTimeoutError(operation, timeout_s)

    def _log_late_outcome(self, operation: str, task: asyncio.Future[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._log.warning("%s failed after its timeout: %r", operation, exc)
        else:
            self._log.debug("%s completed after its timeout", operation)


def _prefers_unacknowledged(properties: Sequence[str]) -> bool:
    return WRITE_WITHOUT_RESPONSE in properties and WRITE not in properties
