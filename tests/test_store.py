"""Tests for the device-details stores."""
import json

from printer_bridge.device import DeviceDescriptor, JsonFileDeviceStore, MemoryDeviceStore
from printer_bridge.device.store import DatabaseDeviceStore
from printer_bridge.models import StoredDevice

DESCRIPTOR = DeviceDescriptor(0x6868, 0x0200, "XP-236B", "SN42", 7, 1)


def test_memory_store():
    store = MemoryDeviceStore()
    assert store.load() is None
    store.save(DESCRIPTOR)
    assert store.load() == DESCRIPTOR
    store.save(None)
    assert store.load() is None


def test_json_store(tmp_path):
    path = tmp_path / "state" / "device.json"
    store = JsonFileDeviceStore(str(path))

    assert store.load() is None
    store.save(DESCRIPTOR)

    data = json.loads(path.read_text())
    assert data["product_name"] == "XP-236B"
    assert "saved_at" in data
    assert store.load() == DESCRIPTOR

    store.save(None)
    assert not path.exists()
    store.save(None)


def test_database_store(app):
    store = DatabaseDeviceStore(app)

    assert store.load() is None
    store.save(DESCRIPTOR)
    store.save(DESCRIPTOR)
    assert store.load() == DESCRIPTOR

    with app.app_context():
        assert StoredDevice.query.count() == 1
        record = StoredDevice.query.first()
        assert record.to_dict()["vendor_id_hex"] == "6868"
        assert repr(record) == "<StoredDevice 6868:0200>"

    store.save(None)
    assert store.load() is None
