#!/usr/bin/env python3
"""Entry point for the USB printer bridge service."""
import logging
import os
import threading
from printer_bridge import create_app
from printer_bridge.device import ConnectError
from printer_bridge.shutdown import install_interrupt_handler

app = create_app(os.environ.get("FLASK_ENV", "default"))

logging.basicConfig(
    level=app.config["LOG_LEVEL"],
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("printer_bridge")


def connect_on_startup(gateway):
    """Initial connection attempt; failures are retried on the next print."""
    try:
        gateway.connect()
    except ConnectError as e:
        logger.warning(f"Initial printer connection failed: {e}")


if __name__ == "__main__":
    # Get host and port from environment or use defaults
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_ENV", "default") == "development"

    gateway = app.extensions["printer_bridge"]
    install_interrupt_handler(gateway.manager, app.config["SHUTDOWN_TIMEOUT"])
    if app.config["CONNECT_ON_STARTUP"]:
        threading.Thread(target=connect_on_startup, args=(gateway,), daemon=True).start()

    logger.info(f"Starting printer bridge on http://{host}:{port}")
    # The reloader would fork a second process competing for the device
    app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
