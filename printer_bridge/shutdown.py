"""Process-level teardown of the printer session."""
import logging
import signal
import sys
import threading
from typing import Callable

from printer_bridge.device import SessionManager

logger = logging.getLogger(__name__)


def _disconnect(manager: SessionManager) -> None:
    try:
        manager.disconnect()
    except Exception as e:
        logger.warning(f"Error closing printer during shutdown: {e}")


def teardown(manager: SessionManager, timeout: float) -> bool:
    """Disconnect the session, waiting at most ``timeout`` seconds.

    The disconnect runs on a daemon thread so a device that never finishes
    closing cannot keep the process alive.

    Returns:
        True if the disconnect finished in time.
    """
    worker = threading.Thread(
        target=_disconnect, args=(manager,), name="printer-teardown", daemon=True
    )
    worker.start()
    worker.join(timeout)
    if worker.is_alive():
        logger.warning(f"Printer did not close within {timeout}s, exiting anyway")
        return False
    logger.info("Printer closed.")
    return True


def install_interrupt_handler(manager: SessionManager, timeout: float,
                              exit_func: Callable[[int], None] = sys.exit) -> Callable:
    """Close the printer on SIGINT/SIGTERM, then exit.

    Returns:
        The installed handler.
    """
    def handler(signum, frame):
        logger.info(f"Caught signal {signum}, shutting down")
        teardown(manager, timeout)
        exit_func(0)

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)
    return handler
