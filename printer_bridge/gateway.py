"""Request gateway between the HTTP layer and the session core."""
import logging
import threading
from typing import Optional

from printer_bridge.device import (
    SessionManager,
    TransferExecutor,
    TransferResult,
    WriteError,
    DeviceFilter,
)
from printer_bridge.device.enumerator import Target
from printer_bridge.device.errors import best_effort
from printer_bridge.device.store import DeviceDetailsStore
from printer_bridge.device.testpage import build_test_page

logger = logging.getLogger(__name__)


class PrintGateway:
    """Runs print requests one at a time against the managed session.

    Connects on demand before a write, and drops the session after a
    failed write so the next request starts from a fresh handle.
    """

    def __init__(self, manager: SessionManager,
                 executor: Optional[TransferExecutor] = None,
                 target: Target = None,
                 store: Optional[DeviceDetailsStore] = None):
        self.manager = manager
        self.executor = executor or TransferExecutor()
        self.target = target
        self.store = store if store is not None else manager.store
        self._lock = threading.Lock()

    @classmethod
    def target_from_ids(cls, vendor_id: Optional[int], product_id: Optional[int]) -> Target:
        """Narrow the connect target to a vendor (and product) when configured."""
        if vendor_id is None:
            return None
        return (DeviceFilter(vendor_id=vendor_id, product_id=product_id),)

    def _ensure_connected(self) -> None:
        if not self.manager.is_ready():
            logger.info("Printer not connected or in error state. Attempting connection...")
            self.manager.connect(self.target)

    def _write(self, data: bytes) -> TransferResult:
        try:
            return self.executor.write(self.manager.session, data)
        except WriteError:
            # Handle is suspect after a failed write
            best_effort("Disconnecting after failed write", self.manager.disconnect)
            raise

    def print_bytes(self, data: bytes) -> TransferResult:
        with self._lock:
            self._ensure_connected()
            return self._write(data)

    def print_test_page(self) -> TransferResult:
        with self._lock:
            self._ensure_connected()
            return self._write(build_test_page(self.manager.session.descriptor))

    def connect(self, target: Target = None) -> dict:
        with self._lock:
            self.manager.connect(target if target is not None else self.target)
            return self.manager.status()

    def disconnect(self) -> dict:
        with self._lock:
            self.manager.disconnect()
            return self.manager.status()

    def status(self) -> dict:
        return self.manager.status()

    def devices(self) -> list:
        return [d.to_dict() for d in self.manager.enumerator.list_authorized()]

    def stored_device(self) -> Optional[dict]:
        descriptor = self.store.load()
        return descriptor.to_dict() if descriptor else None
