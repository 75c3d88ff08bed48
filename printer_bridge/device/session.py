"""Device session state machine.

A ``SessionManager`` owns exactly one ``Session`` and moves it between
four states::

    disconnected -> connecting -> connected
                         |             |
                         v             v
                       error      disconnected

Only one connect may be in flight per manager; a second one fails fast
with ``ConnectInProgress``. The session reports ``connected`` only when the
device is open and its printer interface is claimed.
"""
import logging
import threading
from enum import Enum
from typing import NamedTuple, Optional, Tuple

from printer_bridge.device.backend import UsbDevice
from printer_bridge.device.descriptors import (
    DIRECTION_OUT,
    PRINTER_CLASS,
    PRINTER_SUBCLASS,
    ConfigurationInfo,
    DeviceDescriptor,
)
from printer_bridge.device.enumerator import DeviceEnumerator, Target
from printer_bridge.device.errors import (
    ConnectError,
    ConnectInProgress,
    DeviceOpenFailed,
    NoSuitableInterface,
    NotConnected,
    best_effort,
)
from printer_bridge.device.store import DeviceDetailsStore, MemoryDeviceStore

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class _Claim(NamedTuple):
    device: UsbDevice
    interface: int
    endpoint: int


def find_printer_interface(configuration: Optional[ConfigurationInfo],
                           class_code: int = PRINTER_CLASS,
                           subclass_code: int = PRINTER_SUBCLASS) -> Tuple[int, int]:
    """Locate the printer interface and its OUT endpoint.

    Takes the first alternate whose class/subclass match, then the first
    OUT endpoint on that alternate. Later matches are never considered.

    Returns:
        (interface number, endpoint number)

    Raises:
        NoSuitableInterface: No matching alternate, or it has no OUT endpoint.
    """
    if configuration is not None:
        for interface in configuration.interfaces:
            for alternate in interface.alternates:
                if (alternate.interface_class, alternate.interface_subclass) != (class_code, subclass_code):
                    continue
                for endpoint in alternate.endpoints:
                    if endpoint.direction == DIRECTION_OUT:
                        return interface.number, endpoint.number
                raise NoSuitableInterface(
                    f"Printer interface {interface.number} has no OUT endpoint"
                )
    raise NoSuitableInterface("Could not find a suitable printer interface or endpoint")


class Session:
    """Runtime record of one device connection.

    Fields are read freely but only changed through the methods below,
    always under ``lock``. ``handle`` is set if and only if the state is
    CONNECTED, in which case ``claimed_interface`` and ``output_endpoint``
    are set too.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.state = SessionState.DISCONNECTED
        self.error: Optional[str] = None
        self.handle: Optional[UsbDevice] = None
        self.claimed_interface: Optional[int] = None
        self.output_endpoint: Optional[int] = None
        self.descriptor: Optional[DeviceDescriptor] = None

    @property
    def is_ready(self) -> bool:
        with self.lock:
            return self.state is SessionState.CONNECTED and self.handle is not None

    def transfer_target(self) -> Tuple[UsbDevice, int]:
        """Return (handle, endpoint) for a write.

        Raises:
            NotConnected: The session is not ready.
        """
        with self.lock:
            if not self.is_ready:
                raise NotConnected("Printer not connected")
            return self.handle, self.output_endpoint

    def status(self) -> dict:
        """Status surface: connecting, connected, disconnected or error."""
        with self.lock:
            result = {"status": self.state.value}
            if self.state is SessionState.ERROR:
                result["message"] = self.error
            elif self.state is SessionState.CONNECTED:
                result["device"] = self.descriptor.to_dict()
                result["interface"] = self.claimed_interface
                result["endpoint"] = self.output_endpoint
            return result

    def _clear(self):
        self.handle = None
        self.claimed_interface = None
        self.output_endpoint = None
        self.descriptor = None

    def _detach(self) -> Tuple[Optional[UsbDevice], Optional[int]]:
        handle, interface = self.handle, self.claimed_interface
        self._clear()
        self.state = SessionState.DISCONNECTED
        self.error = None
        return handle, interface

    def _begin_connect(self) -> Tuple[Optional[UsbDevice], Optional[int]]:
        stale = self._detach()
        self.state = SessionState.CONNECTING
        return stale

    def _set_connected(self, claim: _Claim):
        self.handle = claim.device
        self.claimed_interface = claim.interface
        self.output_endpoint = claim.endpoint
        self.descriptor = claim.device.descriptor
        self.state = SessionState.CONNECTED
        self.error = None

    def _set_error(self, reason: str):
        self._clear()
        self.state = SessionState.ERROR
        self.error = reason

    def __repr__(self):
        return f"Session({self.state.value}, {self.descriptor})"


class SessionManager:
    """Connects, tracks and tears down the printer session.

    Args:
        enumerator: Resolves connect targets to devices.
        store: Receives the connected device's details (best effort).
        class_code: Interface class of the printer function.
        subclass_code: Interface subclass of the printer function.
        configuration_value: Configuration to select; the device's first
            configuration when None.
    """

    def __init__(self, enumerator: DeviceEnumerator,
                 store: Optional[DeviceDetailsStore] = None,
                 class_code: int = PRINTER_CLASS,
                 subclass_code: int = PRINTER_SUBCLASS,
                 configuration_value: Optional[int] = None):
        self.enumerator = enumerator
        self.store = store if store is not None else MemoryDeviceStore()
        self.class_code = class_code
        self.subclass_code = subclass_code
        self.configuration_value = configuration_value
        self.session = Session()
        self._connecting = False

    @property
    def connecting(self) -> bool:
        return self._connecting

    def is_ready(self) -> bool:
        return self.session.is_ready

    def status(self) -> dict:
        return self.session.status()

    def connect(self, target: Target = None) -> Session:
        """Connect the session, or return it if it is already live.

        Args:
            target: A DeviceDescriptor, a filter set, or None for the
                enumerator's default filters.

        Raises:
            ConnectInProgress: Another connect is running.
            NoDeviceSelected: No device was picked.
            DeviceOpenFailed: The device could not be opened or configured.
            NoSuitableInterface: No printer interface with an OUT endpoint.
        """
        session = self.session
        with session.lock:
            if session.is_ready and session.handle.opened:
                return session
            if self._connecting:
                raise ConnectInProgress("Connection attempt already in progress")
            self._connecting = True
            stale_handle, stale_interface = session._begin_connect()

        try:
            if stale_handle is not None:
                logger.info("Releasing stale device handle before reconnecting")
                self._release(stale_handle, stale_interface)
            claim = self._open_and_claim(self.enumerator.resolve(target))
            with session.lock:
                session._set_connected(claim)
        except Exception as e:
            reason = str(e) or type(e).__name__
            with session.lock:
                session._set_error(reason)
            logger.error(f"Printer connection failed: {reason}")
            best_effort("Clearing stored device details", self.store.save, None)
            if isinstance(e, ConnectError):
                raise
            raise DeviceOpenFailed(reason) from e
        finally:
            with session.lock:
                self._connecting = False
                if session.state is SessionState.CONNECTING:
                    session._set_error("Connection attempt interrupted")

        logger.info(
            f"Printer connected: {claim.device.descriptor} "
            f"(interface {claim.interface}, endpoint {claim.endpoint})"
        )
        best_effort("Storing device details", self.store.save, claim.device.descriptor)
        return session

    def disconnect(self) -> Session:
        """Release the interface and close the device. Safe to call repeatedly.

        Raises:
            ConnectInProgress: A connect is running; retry once it settles.
        """
        session = self.session
        with session.lock:
            if self._connecting:
                raise ConnectInProgress("Cannot disconnect while a connection attempt is in progress")
            handle, interface = session._detach()

        if handle is None:
            logger.debug("No device connected to close")
            return session

        logger.info(f"Disconnecting {handle.descriptor}")
        self._release(handle, interface)
        best_effort("Clearing stored device details", self.store.save, None)
        return session

    def _release(self, handle: UsbDevice, interface: Optional[int]) -> None:
        if interface is not None:
            if handle.opened:
                best_effort(f"Releasing interface {interface}", handle.release_interface, interface)
            else:
                logger.debug(f"Device already closed, cannot release interface {interface}")
        if handle.opened:
            best_effort("Closing device", handle.close)

    def _select_configuration_value(self, device: UsbDevice) -> int:
        values = [config.value for config in device.configurations]
        if not values:
            raise DeviceOpenFailed(f"{device.descriptor} reports no configurations")
        if self.configuration_value is None:
            return values[0]
        if self.configuration_value not in values:
            raise DeviceOpenFailed(
                f"{device.descriptor} has no configuration {self.configuration_value}"
            )
        return self.configuration_value

    def _open_and_claim(self, device: UsbDevice) -> _Claim:
        """Open, configure and claim, in that order. Closes the device on failure."""
        logger.info(f"Opening {device.descriptor}")
        try:
            device.open()
        except Exception as e:
            raise DeviceOpenFailed(f"Failed to open {device.descriptor}: {e}") from e

        try:
            value = self._select_configuration_value(device)
            try:
                device.select_configuration(value)
            except Exception as e:
                raise DeviceOpenFailed(f"Failed to select configuration {value}: {e}") from e
            logger.debug(f"Configuration selected: {value}")

            interface, endpoint = find_printer_interface(
                device.configuration, self.class_code, self.subclass_code
            )
            try:
                device.claim_interface(interface)
            except Exception as e:
                raise DeviceOpenFailed(f"Failed to claim interface {interface}: {e}") from e
            logger.debug(f"Interface {interface} claimed")
        except Exception:
            best_effort("Closing device after failed connect", device.close)
            raise

        return _Claim(device, interface, endpoint)
