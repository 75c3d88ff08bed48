"""Persistence of the last connected device.

Stored details are for display only and never used to re-authorize a
device. The session manager calls stores through ``best_effort``, so a
failing store is logged and otherwise ignored.
"""
import json
import os
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from printer_bridge.device.descriptors import DeviceDescriptor


class DeviceDetailsStore(ABC):
    """Saves and loads the last successfully connected device."""

    @abstractmethod
    def save(self, descriptor: Optional[DeviceDescriptor]) -> None:
        """Store a descriptor, or clear the stored details when None."""
        pass

    @abstractmethod
    def load(self) -> Optional[DeviceDescriptor]:
        pass


class MemoryDeviceStore(DeviceDetailsStore):
    """Keeps the details for the lifetime of the process."""

    def __init__(self, descriptor: Optional[DeviceDescriptor] = None):
        self._descriptor = descriptor

    def save(self, descriptor: Optional[DeviceDescriptor]) -> None:
        self._descriptor = descriptor

    def load(self) -> Optional[DeviceDescriptor]:
        return self._descriptor


class JsonFileDeviceStore(DeviceDetailsStore):
    """Stores the details in a small JSON file (used by the CLI)."""

    def __init__(self, path: str):
        self.path = os.path.expanduser(path)

    def save(self, descriptor: Optional[DeviceDescriptor]) -> None:
        if descriptor is None:
            if os.path.exists(self.path):
                os.remove(self.path)
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        data = descriptor.to_dict()
        data["saved_at"] = datetime.utcnow().isoformat()
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def load(self) -> Optional[DeviceDescriptor]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, encoding="utf-8") as f:
            return DeviceDescriptor.from_dict(json.load(f))


class DatabaseDeviceStore(DeviceDetailsStore):
    """Stores the details in the service database.

    Runs inside its own application context so it also works from the
    startup connect and the interrupt handler.
    """

    def __init__(self, app):
        self.app = app

    def save(self, descriptor: Optional[DeviceDescriptor]) -> None:
        from printer_bridge import db
        from printer_bridge.models import StoredDevice

        with self.app.app_context():
            StoredDevice.query.delete()
            if descriptor is not None:
                db.session.add(StoredDevice.from_descriptor(descriptor))
            db.session.commit()

    def load(self) -> Optional[DeviceDescriptor]:
        from printer_bridge.models import StoredDevice

        with self.app.app_context():
            record = StoredDevice.query.first()
            return record.to_descriptor() if record else None
