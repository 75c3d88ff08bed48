"""Device enumeration and selection."""
import logging
from typing import Iterable, List, Optional, Sequence, Union

from printer_bridge.device.backend import DeviceBackend, UsbDevice
from printer_bridge.device.descriptors import DeviceDescriptor, DeviceFilter
from printer_bridge.device.errors import DeviceOpenFailed, NoDeviceSelected

logger = logging.getLogger(__name__)

Target = Union[DeviceDescriptor, Sequence[DeviceFilter], None]


class DeviceEnumerator:
    """Lists and picks candidate printers.

    Args:
        backend: Device-access layer to enumerate through.
        filters: Default filter set (the configured allow-list).
    """

    def __init__(self, backend: DeviceBackend, filters: Iterable[DeviceFilter] = ()):
        self.backend = backend
        self.filters = tuple(filters)

    def list_authorized(self) -> List[DeviceDescriptor]:
        """Descriptors of devices already granted to this process."""
        return [device.descriptor for device in self.backend.list_authorized()]

    def select_new(self, filters: Optional[Sequence[DeviceFilter]] = None) -> DeviceDescriptor:
        """Ask the user/OS to pick a device matching the filters.

        Raises:
            NoDeviceSelected: The request was cancelled or nothing matched.
        """
        return self._request(filters).descriptor

    def resolve(self, target: Target = None) -> UsbDevice:
        """Find the device a connect request refers to.

        A descriptor must match an authorized device. A filter set (or None
        for the defaults) takes the first authorized match and otherwise
        falls back to asking for a new device.
        """
        if isinstance(target, DeviceDescriptor):
            for device in self.backend.list_authorized():
                if device.descriptor.same_device(target):
                    return device
            raise DeviceOpenFailed(f"USB device {target} not found")

        filters = self.filters if target is None else tuple(target)
        for device in self.backend.list_authorized():
            if device.matches(filters):
                logger.debug(f"Using authorized device {device.descriptor}")
                return device

        logger.info("No authorized printer found, requesting device selection")
        return self._request(filters)

    def _request(self, filters: Optional[Sequence[DeviceFilter]]) -> UsbDevice:
        filters = self.filters if filters is None else tuple(filters)
        device = self.backend.request_device(filters)
        if device is None:
            raise NoDeviceSelected("No printer was selected")
        logger.info(f"Selected device: {device.descriptor}")
        return device
