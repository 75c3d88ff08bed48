"""Device descriptors, filters and configuration topology."""
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

# USB printer class (bInterfaceClass 7, subclass 1)
PRINTER_CLASS = 0x07
PRINTER_SUBCLASS = 0x01

DIRECTION_IN = "in"
DIRECTION_OUT = "out"


def parse_usb_id(value: Union[str, int, None]) -> Optional[int]:
    """Parse a vendor/product ID given as an int or a hex string."""
    if value is None or value == "":
        return None
    if isinstance(value, int):
        return value
    return int(value, 16)


@dataclass(frozen=True)
class DeviceDescriptor:
    """Static identifying data for a candidate device."""
    vendor_id: int
    product_id: int
    product_name: Optional[str] = None
    serial_number: Optional[str] = None
    interface_class: Optional[int] = None
    interface_subclass: Optional[int] = None

    def same_device(self, other: "DeviceDescriptor") -> bool:
        """Check whether both descriptors identify the same physical device."""
        if (self.vendor_id, self.product_id) != (other.vendor_id, other.product_id):
            return False
        if self.serial_number and other.serial_number:
            return self.serial_number == other.serial_number
        return True

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses and storage."""
        return {
            "vendor_id": self.vendor_id,
            "product_id": self.product_id,
            "vendor_id_hex": f"{self.vendor_id:04x}",
            "product_id_hex": f"{self.product_id:04x}",
            "product_name": self.product_name,
            "serial_number": self.serial_number,
            "interface_class": self.interface_class,
            "interface_subclass": self.interface_subclass,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DeviceDescriptor":
        """Build a descriptor from a dict; IDs may be ints or hex strings."""
        return cls(
            vendor_id=parse_usb_id(data["vendor_id"]),
            product_id=parse_usb_id(data["product_id"]),
            product_name=data.get("product_name"),
            serial_number=data.get("serial_number"),
            interface_class=data.get("interface_class"),
            interface_subclass=data.get("interface_subclass"),
        )

    def __str__(self):
        name = self.product_name or "Unknown device"
        return f"{name} ({self.vendor_id:04x}:{self.product_id:04x})"


@dataclass(frozen=True)
class EndpointInfo:
    number: int
    direction: str


@dataclass(frozen=True)
class AlternateInfo:
    setting: int
    interface_class: int
    interface_subclass: int
    endpoints: Tuple[EndpointInfo, ...] = ()


@dataclass(frozen=True)
class InterfaceInfo:
    number: int
    alternates: Tuple[AlternateInfo, ...] = ()


@dataclass(frozen=True)
class ConfigurationInfo:
    value: int
    interfaces: Tuple[InterfaceInfo, ...] = ()

    def interface_classes(self) -> Iterable[Tuple[int, int]]:
        """Yield (class, subclass) for every alternate setting."""
        for interface in self.interfaces:
            for alternate in interface.alternates:
                yield alternate.interface_class, alternate.interface_subclass


@dataclass(frozen=True)
class DeviceFilter:
    """Match rule for candidate devices.

    Every field that is set must match. Class codes match either the
    device class or the class of any interface alternate.
    """
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None
    class_code: Optional[int] = None
    subclass_code: Optional[int] = None
    serial_number: Optional[str] = None

    def matches(self, descriptor: DeviceDescriptor,
                interface_classes: Iterable[Tuple[int, int]] = (),
                device_class: Optional[int] = None) -> bool:
        if self.vendor_id is not None and descriptor.vendor_id != self.vendor_id:
            return False
        if self.product_id is not None and descriptor.product_id != self.product_id:
            return False
        if self.serial_number is not None and descriptor.serial_number != self.serial_number:
            return False
        if self.class_code is None:
            return True

        candidates = list(interface_classes)
        if device_class:
            candidates.append((device_class, None))
        for class_code, subclass_code in candidates:
            if class_code != self.class_code:
                continue
            if self.subclass_code is None or subclass_code in (None, self.subclass_code):
                return True
        return False

    def to_dict(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}


def default_filters(vendor_ids: Iterable[int] = (),
                    class_code: Optional[int] = PRINTER_CLASS,
                    subclass_code: Optional[int] = PRINTER_SUBCLASS) -> Tuple[DeviceFilter, ...]:
    """Build the allow-list filter set: one filter per vendor plus the printer class."""
    filters = [DeviceFilter(vendor_id=vid) for vid in vendor_ids]
    if class_code is not None:
        filters.append(DeviceFilter(class_code=class_code, subclass_code=subclass_code))
    return tuple(filters)


def matches_any(filters: Iterable[DeviceFilter], descriptor: DeviceDescriptor,
                interface_classes: Iterable[Tuple[int, int]] = (),
                device_class: Optional[int] = None) -> bool:
    """Check a descriptor against a filter set. An empty set matches everything."""
    filters = tuple(filters)
    if not filters:
        return True
    interface_classes = tuple(interface_classes)
    return any(f.matches(descriptor, interface_classes, device_class) for f in filters)
