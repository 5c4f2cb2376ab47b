"""Domain-specific errors for periphctl."""


class PeriphctlError(Exception):
    """Base error for periphctl."""


class ConfigLoadError(PeriphctlError):
    """Raised when the configuration file cannot be read."""


class ConfigValidationError(PeriphctlError):
    """Raised when the configuration does not conform to schema or semantics."""


class DeviceSelectionError(PeriphctlError):
    """Raised when a target cannot be resolved to a configured device."""


class DeviceError(PeriphctlError):
    """Base error for operations on a connected peripheral."""


class OperationTimeoutError(DeviceError):
    """Raised when an operation's deadline elapses before the transport settles.

    The underlying transport call is not necessarily stopped.
    """

    def __init__(self, operation: str, timeout_s: float) -> None:
        super().__init__(f"{operation} timed out after {timeout_s:g}s")
        self.operation = operation
        self.timeout_s = timeout_s


class CharacteristicUnavailableError(DeviceError):
    """Raised when writing to a characteristic that was not discovered."""

    def __init__(self, uuid: str) -> None:
        super().__init__(f"Characteristic {uuid} unavailable")
        self.uuid = uuid


class TransportError(PeriphctlError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised on BLE connect failures."""


class TransportIOError(TransportError):
    """Raised when a discovery, read or write fails on the link."""


class CharacteristicUUIDError(PeriphctlError):
    """Raised when a characteristic UUID string is malformed."""
