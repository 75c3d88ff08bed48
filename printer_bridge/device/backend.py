"""Abstract device-access layer.

These are the primitives the session manager drives. ``PyUSBBackend`` is
the production implementation; tests plug in an in-memory one.
"""
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Tuple

from printer_bridge.device.descriptors import (
    ConfigurationInfo,
    DeviceDescriptor,
    DeviceFilter,
    matches_any,
)


class UsbDevice(ABC):
    """A single USB device as seen by the session manager."""

    @property
    @abstractmethod
    def descriptor(self) -> DeviceDescriptor:
        """Static identifying data of the device."""
        pass

    @property
    @abstractmethod
    def opened(self) -> bool:
        """Whether the device handle is currently open."""
        pass

    @property
    @abstractmethod
    def configurations(self) -> Sequence[ConfigurationInfo]:
        """All configurations the device reports, in descriptor order."""
        pass

    @property
    @abstractmethod
    def configuration(self) -> Optional[ConfigurationInfo]:
        """The currently selected configuration, if any."""
        pass

    @property
    def device_class(self) -> Optional[int]:
        return None

    @abstractmethod
    def open(self) -> None:
        pass

    @abstractmethod
    def select_configuration(self, value: int) -> None:
        pass

    @abstractmethod
    def claim_interface(self, number: int) -> None:
        pass

    @abstractmethod
    def release_interface(self, number: int) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def transfer_out(self, endpoint: int, data: bytes) -> int:
        """Bulk-write data to an OUT endpoint.

        Returns:
            Number of bytes the device accepted.
        """
        pass

    def interface_classes(self) -> List[Tuple[int, int]]:
        """(class, subclass) pairs across every configuration."""
        classes = []
        for config in self.configurations:
            classes.extend(config.interface_classes())
        return classes

    def matches(self, filters: Iterable[DeviceFilter]) -> bool:
        return matches_any(filters, self.descriptor, self.interface_classes(), self.device_class)

    def __repr__(self):
        return f"{type(self).__name__}({self.descriptor})"


class DeviceBackend(ABC):
    """Enumerates devices and hands out ``UsbDevice`` objects."""

    @abstractmethod
    def list_authorized(self) -> List[UsbDevice]:
        """Devices already granted to this process. Must not prompt."""
        pass

    @abstractmethod
    def request_device(self, filters: Sequence[DeviceFilter]) -> Optional[UsbDevice]:
        """Ask the user/OS to pick one device matching the filters.

        Returns:
            The chosen device, or None if cancelled or nothing matched.
            A chosen device is authorized for the rest of the process.
        """
        pass
