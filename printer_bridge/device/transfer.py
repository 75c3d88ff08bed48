"""Bulk transfers to a connected printer."""
import logging
from dataclasses import dataclass

from printer_bridge.device.errors import WriteError
from printer_bridge.device.session import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferResult:
    bytes_written: int

    def to_dict(self) -> dict:
        return {"bytes_written": self.bytes_written}


class TransferExecutor:
    """Writes opaque byte buffers to a session's OUT endpoint.

    Each call is exactly one transfer: the buffer is not inspected, split
    or retried. Concurrent writes on one session must be serialized by the
    caller. A failed write leaves the session untouched; tearing it down is
    the caller's decision.
    """

    def write(self, session: Session, data: bytes) -> TransferResult:
        """Send data to the printer.

        Raises:
            NotConnected: The session is not ready; nothing was sent.
            WriteError: The transfer failed.
        """
        handle, endpoint = session.transfer_target()
        logger.debug(f"Transferring {len(data)} bytes to endpoint {endpoint}")
        try:
            written = handle.transfer_out(endpoint, bytes(data))
        except Exception as e:
            logger.error(f"Error writing data to printer: {e}")
            raise WriteError(f"Failed to send data: {e}") from e
        logger.info(f"Sent {written} of {len(data)} bytes")
        return TransferResult(bytes_written=written)
