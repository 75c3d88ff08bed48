"""Flask application factory for the USB printer bridge service."""
import os
from flask import Flask
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def create_app(config_name: str = "default", backend=None, store=None):
    """Create and configure the Flask application.

    Args:
        config_name: Key into ``printer_bridge.config.config``.
        backend: Device-access layer; PyUSB when None.
        store: Device-details store; the service database when None.
    """
    app = Flask(__name__)

    # Load configuration
    from printer_bridge.config import config
    app.config.from_object(config[config_name])

    # Initialize extensions
    db.init_app(app)
    CORS(app, origins="*", send_wildcard=True)

    # Wire the session core
    from printer_bridge.device import DeviceEnumerator, SessionManager, default_filters
    from printer_bridge.device.store import DatabaseDeviceStore
    from printer_bridge.gateway import PrintGateway

    filters = default_filters(
        app.config["PRINTER_VENDOR_IDS"],
        app.config["PRINTER_CLASS_CODE"],
        app.config["PRINTER_SUBCLASS_CODE"],
    )
    if backend is None:
        from printer_bridge.device.pyusb_backend import PyUSBBackend
        backend = PyUSBBackend(allow_list=filters, timeout=app.config["TRANSFER_TIMEOUT_MS"])
    if store is None:
        store = DatabaseDeviceStore(app)

    manager = SessionManager(
        DeviceEnumerator(backend, filters),
        store=store,
        class_code=app.config["PRINTER_CLASS_CODE"],
        subclass_code=app.config["PRINTER_SUBCLASS_CODE"],
        configuration_value=app.config["PRINTER_CONFIGURATION"],
    )
    app.extensions["printer_bridge"] = PrintGateway(
        manager,
        target=PrintGateway.target_from_ids(
            app.config["PRINTER_VENDOR_ID"], app.config["PRINTER_PRODUCT_ID"]
        ),
    )

    # Register blueprints
    from printer_bridge.routes.api import api_bp
    app.register_blueprint(api_bp)

    # Create tables
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and not app.config.get("TESTING"):
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        from printer_bridge import models  # noqa: F401
        db.create_all()

    return app
