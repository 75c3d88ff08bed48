"""Printer bridge error types."""
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class PrinterBridgeError(Exception):
    """Base class for all printer bridge failures."""
    pass


class ConnectError(PrinterBridgeError):
    """Raised when a session could not be connected."""
    pass


class NoDeviceSelected(ConnectError):
    """The user or OS declined to pick a device, or nothing matched."""
    pass


class ConnectInProgress(ConnectError):
    """Another connection attempt is already running."""
    pass


class DeviceOpenFailed(ConnectError):
    """The device could not be found, opened or configured."""
    pass


class NoSuitableInterface(ConnectError):
    """No printer-class interface with an OUT endpoint was found."""
    pass


class WriteError(PrinterBridgeError):
    """Raised when a transfer to the printer failed."""
    pass


class NotConnected(WriteError):
    """A write was attempted without a ready session."""
    pass


def best_effort(action: str, func: Callable, *args) -> bool:
    """Run a cleanup or bookkeeping step, logging and ignoring failures.

    Returns:
        True if the step completed, False if it raised.
    """
    try:
        func(*args)
        return True
    except Exception as e:
        logger.warning(f"{action} failed: {e}")
        return False
