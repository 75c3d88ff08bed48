"""USB printer session management."""
from printer_bridge.device.backend import DeviceBackend, UsbDevice
from printer_bridge.device.descriptors import (
    DeviceDescriptor,
    DeviceFilter,
    default_filters,
    parse_usb_id,
)
from printer_bridge.device.enumerator import DeviceEnumerator
from printer_bridge.device.errors import (
    PrinterBridgeError,
    ConnectError,
    ConnectInProgress,
    DeviceOpenFailed,
    NoDeviceSelected,
    NoSuitableInterface,
    NotConnected,
    WriteError,
)
from printer_bridge.device.session import Session, SessionManager, SessionState
from printer_bridge.device.store import (
    DeviceDetailsStore,
    JsonFileDeviceStore,
    MemoryDeviceStore,
)
from printer_bridge.device.transfer import TransferExecutor, TransferResult

__all__ = [
    "DeviceBackend",
    "UsbDevice",
    "DeviceDescriptor",
    "DeviceFilter",
    "default_filters",
    "parse_usb_id",
    "DeviceEnumerator",
    "PrinterBridgeError",
    "ConnectError",
    "ConnectInProgress",
    "DeviceOpenFailed",
    "NoDeviceSelected",
    "NoSuitableInterface",
    "NotConnected",
    "WriteError",
    "Session",
    "SessionManager",
    "SessionState",
    "DeviceDetailsStore",
    "JsonFileDeviceStore",
    "MemoryDeviceStore",
    "TransferExecutor",
    "TransferResult",
]
