"""PyUSB implementation of the device-access layer."""
import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import usb.core
import usb.util

from printer_bridge.device.backend import DeviceBackend, UsbDevice
from printer_bridge.device.descriptors import (
    DIRECTION_IN,
    DIRECTION_OUT,
    AlternateInfo,
    ConfigurationInfo,
    DeviceDescriptor,
    DeviceFilter,
    EndpointInfo,
    InterfaceInfo,
    PRINTER_CLASS,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000

Chooser = Callable[[List[UsbDevice]], Optional[UsbDevice]]


def first_candidate(candidates: List[UsbDevice]) -> Optional[UsbDevice]:
    """Non-interactive chooser: take the first matching device."""
    return candidates[0] if candidates else None


def _read_string(device, attribute: str) -> Optional[str]:
    # String descriptors need an open handle and may be denied by the OS
    try:
        return getattr(device, attribute)
    except (usb.core.USBError, ValueError, NotImplementedError):
        return None


def read_configurations(device) -> Tuple[ConfigurationInfo, ...]:
    """Walk a PyUSB device's configuration tree into plain descriptors."""
    configurations = []
    for cfg in device:
        alternates: Dict[int, List[AlternateInfo]] = {}
        for intf in cfg:
            endpoints = tuple(
                EndpointInfo(
                    number=usb.util.endpoint_address(ep.bEndpointAddress),
                    direction=(
                        DIRECTION_OUT
                        if usb.util.endpoint_direction(ep.bEndpointAddress) == usb.util.ENDPOINT_OUT
                        else DIRECTION_IN
                    ),
                )
                for ep in intf
            )
            alternates.setdefault(intf.bInterfaceNumber, []).append(AlternateInfo(
                setting=intf.bAlternateSetting,
                interface_class=intf.bInterfaceClass,
                interface_subclass=intf.bInterfaceSubClass,
                endpoints=endpoints,
            ))
        configurations.append(ConfigurationInfo(
            value=cfg.bConfigurationValue,
            interfaces=tuple(
                InterfaceInfo(number=number, alternates=tuple(alts))
                for number, alts in alternates.items()
            ),
        ))
    return tuple(configurations)


class PyUSBDevice(UsbDevice):
    """A USB printer reached through libusb."""

    def __init__(self, device, timeout: int = DEFAULT_TIMEOUT_MS):
        self._device = device
        self.timeout = timeout
        self._opened = False
        self._configurations: Optional[Tuple[ConfigurationInfo, ...]] = None
        self._configuration: Optional[ConfigurationInfo] = None
        self._descriptor: Optional[DeviceDescriptor] = None
        self._detached: List[int] = []

    @property
    def bus_descriptor(self) -> DeviceDescriptor:
        """IDs and class codes only, read without opening a handle."""
        interface_class = interface_subclass = None
        classes = self.interface_classes()
        printer = [c for c in classes if c[0] == PRINTER_CLASS]
        if printer or classes:
            interface_class, interface_subclass = (printer or classes)[0]
        return DeviceDescriptor(
            vendor_id=self._device.idVendor,
            product_id=self._device.idProduct,
            interface_class=interface_class,
            interface_subclass=interface_subclass,
        )

    @property
    def descriptor(self) -> DeviceDescriptor:
        if self._descriptor is None:
            self._descriptor = replace(
                self.bus_descriptor,
                product_name=_read_string(self._device, "product"),
                serial_number=_read_string(self._device, "serial_number"),
            )
        return self._descriptor

    @property
    def strings_read(self) -> bool:
        return self._descriptor is not None

    @property
    def opened(self) -> bool:
        return self._opened

    @property
    def configurations(self) -> Tuple[ConfigurationInfo, ...]:
        if self._configurations is None:
            self._configurations = read_configurations(self._device)
        return self._configurations

    @property
    def configuration(self) -> Optional[ConfigurationInfo]:
        return self._configuration

    @property
    def device_class(self) -> Optional[int]:
        return self._device.bDeviceClass

    def open(self) -> None:
        """Open the device handle.

        PyUSB opens lazily on first I/O, so reading the active
        configuration forces the handle open and surfaces permission errors
        here rather than mid-claim.
        """
        try:
            self._device.get_active_configuration()
        except usb.core.USBError as e:
            # An unconfigured device reports no active configuration (errno None)
            if e.errno is not None:
                raise
        self._opened = True

    def select_configuration(self, value: int) -> None:
        try:
            self._device.set_configuration(value)
        except usb.core.USBError:
            # May already be configured (and busy) with the value we want
            active = self._device.get_active_configuration()
            if active.bConfigurationValue != value:
                raise
        self._configuration = next(
            (cfg for cfg in self.configurations if cfg.value == value), None
        )

    def claim_interface(self, number: int) -> None:
        # Detach kernel driver if active
        try:
            if self._device.is_kernel_driver_active(number):
                self._device.detach_kernel_driver(number)
                self._detached.append(number)
        except (usb.core.USBError, NotImplementedError):
            pass
        usb.util.claim_interface(self._device, number)

    def release_interface(self, number: int) -> None:
        usb.util.release_interface(self._device, number)
        if number in self._detached:
            self._detached.remove(number)
            try:
                self._device.attach_kernel_driver(number)
            except (usb.core.USBError, NotImplementedError) as e:
                logger.debug(f"Could not reattach kernel driver to interface {number}: {e}")

    def matches(self, filters: Iterable[DeviceFilter]) -> bool:
        # String descriptors open a handle, so read them only for devices
        # that already match on IDs and class
        bus = self.bus_descriptor
        classes = self.interface_classes()
        for device_filter in filters:
            if not replace(device_filter, serial_number=None).matches(bus, classes, self.device_class):
                continue
            if device_filter.serial_number is None:
                return True
            if device_filter.matches(self.descriptor, classes, self.device_class):
                return True
        return False

    def close(self) -> None:
        self._opened = False
        self._configuration = None
        usb.util.dispose_resources(self._device)

    def transfer_out(self, endpoint: int, data: bytes) -> int:
        # OUT endpoint addresses have the direction bit clear, so number == address
        return self._device.write(endpoint, data, timeout=self.timeout)


class PyUSBBackend(DeviceBackend):
    """Enumerates printers on the local USB bus.

    A device counts as authorized when it matches the configured allow-list
    or was picked through ``request_device`` earlier in this process.
    """

    def __init__(self, allow_list: Sequence[DeviceFilter] = (),
                 chooser: Chooser = first_candidate,
                 timeout: int = DEFAULT_TIMEOUT_MS):
        self.allow_list = tuple(allow_list)
        self.chooser = chooser
        self.timeout = timeout
        self._granted: List[DeviceDescriptor] = []

    def _scan(self) -> List[PyUSBDevice]:
        return [PyUSBDevice(dev, timeout=self.timeout) for dev in usb.core.find(find_all=True)]

    def _is_granted(self, device: PyUSBDevice) -> bool:
        ids = (device.bus_descriptor.vendor_id, device.bus_descriptor.product_id)
        granted = [d for d in self._granted if (d.vendor_id, d.product_id) == ids]
        return any(device.descriptor.same_device(d) for d in granted)

    def list_authorized(self) -> List[UsbDevice]:
        found = []
        for device in self._scan():
            if self._is_granted(device) or (self.allow_list and device.matches(self.allow_list)):
                found.append(device)
        return found

    def request_device(self, filters: Sequence[DeviceFilter]) -> Optional[UsbDevice]:
        candidates = [device for device in self._scan() if device.matches(filters)]
        logger.info(f"{len(candidates)} USB device(s) match the requested filters")
        chosen = self.chooser(candidates)
        for device in candidates:
            # Reading strings left a handle open on the devices not picked
            if device is not chosen and device.strings_read:
                device.close()
        if chosen is not None and not self._is_granted(chosen):
            self._granted.append(chosen.descriptor)
        return chosen
