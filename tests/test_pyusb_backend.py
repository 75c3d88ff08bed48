"""Tests for the PyUSB device-access layer, against stand-in libusb objects."""
from unittest.mock import MagicMock, patch

import pytest
import usb.core

from printer_bridge.device import DeviceFilter, default_filters
from printer_bridge.device.pyusb_backend import (
    PyUSBBackend,
    PyUSBDevice,
    first_candidate,
    read_configurations,
)


class Endpoint:
    def __init__(self, address):
        self.bEndpointAddress = address


class Interface:
    def __init__(self, number, setting, cls, subclass, endpoints):
        self.bInterfaceNumber = number
        self.bAlternateSetting = setting
        self.bInterfaceClass = cls
        self.bInterfaceSubClass = subclass
        self._endpoints = endpoints

    def __iter__(self):
        return iter(self._endpoints)


class Configuration:
    def __init__(self, value, interfaces):
        self.bConfigurationValue = value
        self._interfaces = interfaces

    def __iter__(self):
        return iter(self._interfaces)


class Device:
    """Enough of usb.core.Device for the adapter."""

    def __init__(self, vendor=0x04b8, product=0x0e15, configurations=None, product_name="TM-T20"):
        self.idVendor = vendor
        self.idProduct = product
        self.bDeviceClass = 0
        self._product_name = product_name
        self.string_reads = []
        self._configurations = configurations if configurations is not None else [
            Configuration(1, [
                Interface(0, 0, 0xff, 0, []),
                Interface(1, 0, 7, 1, [Endpoint(0x02), Endpoint(0x81)]),
                Interface(1, 1, 7, 2, [Endpoint(0x03)]),
            ]),
        ]
        self.get_active_configuration = MagicMock(return_value=self._configurations[0])
        self.set_configuration = MagicMock()
        self.is_kernel_driver_active = MagicMock(return_value=False)
        self.detach_kernel_driver = MagicMock()
        self.attach_kernel_driver = MagicMock()
        self.write = MagicMock(side_effect=lambda endpoint, data, timeout: len(data))

    def __iter__(self):
        return iter(self._configurations)

    @property
    def product(self):
        self.string_reads.append("product")
        if self._product_name is None:
            raise ValueError("The device has no langid")
        return self._product_name

    @property
    def serial_number(self):
        self.string_reads.append("serial_number")
        raise usb.core.USBError("Access denied", errno=13)


def test_read_configurations():
    (config,) = read_configurations(Device())

    assert config.value == 1
    assert [i.number for i in config.interfaces] == [0, 1]
    printer = config.interfaces[1]
    assert [a.setting for a in printer.alternates] == [0, 1]
    endpoints = printer.alternates[0].endpoints
    assert [(e.number, e.direction) for e in endpoints] == [(2, "out"), (1, "in")]


def test_descriptor():
    descriptor = PyUSBDevice(Device()).descriptor

    assert (descriptor.vendor_id, descriptor.product_id) == (0x04b8, 0x0e15)
    assert descriptor.product_name == "TM-T20"
    assert descriptor.serial_number is None
    assert (descriptor.interface_class, descriptor.interface_subclass) == (7, 1)


def test_descriptor_without_strings():
    assert PyUSBDevice(Device(product_name=None)).descriptor.product_name is None


def test_open_and_select_configuration():
    raw = Device()
    device = PyUSBDevice(raw)

    device.open()
    device.select_configuration(1)

    assert device.opened
    raw.set_configuration.assert_called_once_with(1)
    assert device.configuration.value == 1


def test_open_unconfigured_device():
    raw = Device()
    raw.get_active_configuration.side_effect = usb.core.USBError("Configuration not set")
    device = PyUSBDevice(raw)

    device.open()

    assert device.opened


def test_open_permission_denied():
    raw = Device()
    raw.get_active_configuration.side_effect = usb.core.USBError("Access denied", errno=13)

    with pytest.raises(usb.core.USBError):
        PyUSBDevice(raw).open()


def test_select_configuration_already_active():
    raw = Device()
    raw.set_configuration.side_effect = usb.core.USBError("Resource busy", errno=16)
    device = PyUSBDevice(raw)

    device.select_configuration(1)

    assert device.configuration.value == 1


def test_select_configuration_busy_with_other_value():
    raw = Device()
    raw.set_configuration.side_effect = usb.core.USBError("Resource busy", errno=16)

    with pytest.raises(usb.core.USBError):
        PyUSBDevice(raw).select_configuration(2)


@patch("printer_bridge.device.pyusb_backend.usb.util")
def test_claim_detaches_kernel_driver(mock_util):
    raw = Device()
    raw.is_kernel_driver_active.return_value = True
    device = PyUSBDevice(raw)

    device.claim_interface(1)
    device.release_interface(1)

    raw.detach_kernel_driver.assert_called_once_with(1)
    mock_util.claim_interface.assert_called_once_with(raw, 1)
    mock_util.release_interface.assert_called_once_with(raw, 1)
    raw.attach_kernel_driver.assert_called_once_with(1)


@patch("printer_bridge.device.pyusb_backend.usb.util")
def test_claim_without_kernel_driver_support(mock_util):
    raw = Device()
    raw.is_kernel_driver_active.side_effect = NotImplementedError
    device = PyUSBDevice(raw)

    device.claim_interface(1)

    mock_util.claim_interface.assert_called_once_with(raw, 1)


@patch("printer_bridge.device.pyusb_backend.usb.util.dispose_resources")
def test_close(mock_dispose):
    raw = Device()
    device = PyUSBDevice(raw)
    device.open()

    device.close()

    assert not device.opened
    mock_dispose.assert_called_once_with(raw)


def test_transfer_out():
    raw = Device()
    device = PyUSBDevice(raw, timeout=1234)

    assert device.transfer_out(2, b"\x1b\x40") == 2
    raw.write.assert_called_once_with(2, b"\x1b\x40", timeout=1234)


class TestBackend:

    def devices(self):
        printer = Device()
        arduino = Device(vendor=0x2341, product=0x0043, configurations=[
            Configuration(1, [Interface(0, 0, 2, 2, [Endpoint(0x83)])]),
        ])
        return [arduino, printer]

    def test_list_authorized_uses_allow_list(self):
        backend = PyUSBBackend(allow_list=default_filters([0x04b8]))
        with patch("printer_bridge.device.pyusb_backend.usb.core.find", return_value=self.devices()):
            found = backend.list_authorized()
        assert [d.descriptor.vendor_id for d in found] == [0x04b8]

    def test_request_device_grants_access(self):
        chooser = MagicMock(side_effect=first_candidate)
        backend = PyUSBBackend(chooser=chooser)
        devices = self.devices()
        with patch("printer_bridge.device.pyusb_backend.usb.core.find", return_value=devices):
            assert backend.list_authorized() == []
            chosen = backend.request_device([DeviceFilter(class_code=7)])
            assert chosen.descriptor.vendor_id == 0x04b8
            assert [d.descriptor.vendor_id for d in backend.list_authorized()] == [0x04b8]
        (candidates,), _ = chooser.call_args
        assert len(candidates) == 1

    def test_request_device_cancelled(self):
        backend = PyUSBBackend(chooser=lambda candidates: None)
        with patch("printer_bridge.device.pyusb_backend.usb.core.find", return_value=self.devices()):
            assert backend.request_device([DeviceFilter(vendor_id=0x04b8)]) is None
            assert backend.list_authorized() == []

    def test_list_authorized_skips_strings_of_other_devices(self):
        arduino, printer = devices = self.devices()
        backend = PyUSBBackend(allow_list=default_filters([0x04b8]))
        with patch("printer_bridge.device.pyusb_backend.usb.core.find", return_value=devices):
            found = backend.list_authorized()

        assert len(found) == 1
        assert arduino.string_reads == []
        assert printer.string_reads == []

    def test_granted_lookup_reads_only_matching_ids(self):
        arduino, printer = devices = self.devices()
        backend = PyUSBBackend()
        with patch("printer_bridge.device.pyusb_backend.usb.core.find", return_value=devices):
            backend.request_device([DeviceFilter(class_code=7)])
            backend.list_authorized()

        assert arduino.string_reads == []
        assert "product" in printer.string_reads

    def test_serial_filter_reads_strings_after_id_match(self):
        arduino, printer = devices = self.devices()
        backend = PyUSBBackend(allow_list=[DeviceFilter(vendor_id=0x04b8, serial_number="X1")])
        with patch("printer_bridge.device.pyusb_backend.usb.core.find", return_value=devices):
            assert backend.list_authorized() == []

        assert arduino.string_reads == []
        assert "serial_number" in printer.string_reads

    @patch("printer_bridge.device.pyusb_backend.usb.util.dispose_resources")
    def test_request_device_disposes_unpicked_candidates(self, mock_dispose):
        first, second = Device(), Device(product=0x0202)

        def choose(candidates):
            # The terminal prompt lists each candidate by name
            assert [c.descriptor.product_name for c in candidates] == ["TM-T20", "TM-T20"]
            return candidates[1]

        backend = PyUSBBackend(chooser=choose)
        with patch("printer_bridge.device.pyusb_backend.usb.core.find", return_value=[first, second]):
            chosen = backend.request_device([DeviceFilter(vendor_id=0x04b8)])

        assert chosen.descriptor.product_id == 0x0202
        mock_dispose.assert_called_once_with(first)
