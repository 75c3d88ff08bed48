"""Database models."""
from datetime import datetime
from printer_bridge import db
from printer_bridge.device.descriptors import DeviceDescriptor


class StoredDevice(db.Model):
    """Last successfully connected printer."""
    __tablename__ = "stored_devices"

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.Integer, nullable=False)
    product_name = db.Column(db.String(255), nullable=True)
    serial_number = db.Column(db.String(255), nullable=True)
    interface_class = db.Column(db.Integer, nullable=True)
    interface_subclass = db.Column(db.Integer, nullable=True)
    saved_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def from_descriptor(cls, descriptor: DeviceDescriptor) -> "StoredDevice":
        return cls(
            vendor_id=descriptor.vendor_id,
            product_id=descriptor.product_id,
            product_name=descriptor.product_name,
            serial_number=descriptor.serial_number,
            interface_class=descriptor.interface_class,
            interface_subclass=descriptor.interface_subclass,
        )

    def to_descriptor(self) -> DeviceDescriptor:
        return DeviceDescriptor(
            vendor_id=self.vendor_id,
            product_id=self.product_id,
            product_name=self.product_name,
            serial_number=self.serial_number,
            interface_class=self.interface_class,
            interface_subclass=self.interface_subclass,
        )

    def to_dict(self):
        """Convert to dictionary for API responses."""
        result = self.to_descriptor().to_dict()
        result["saved_at"] = self.saved_at.isoformat() if self.saved_at else None
        return result

    def __repr__(self):
        return f"<StoredDevice {self.vendor_id:04x}:{self.product_id:04x}>"
