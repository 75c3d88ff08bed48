"""Application configuration."""
import os

basedir = os.path.abspath(os.path.dirname(__file__))


def _hex_list(value: str) -> list:
    return [int(item, 16) for item in value.split(",") if item.strip()]


def _optional_hex(name: str):
    value = os.environ.get(name, "").strip()
    return int(value, 16) if value else None


def _flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Raw print jobs up to 10MB
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    # Target device for the service process; unset means "any allowed printer"
    PRINTER_VENDOR_ID = _optional_hex("PRINTER_VENDOR_ID")
    PRINTER_PRODUCT_ID = _optional_hex("PRINTER_PRODUCT_ID")

    # Allow-list used for enumeration and device selection
    PRINTER_VENDOR_IDS = _hex_list(os.environ.get(
        "PRINTER_VENDOR_IDS",
        "0483,04b8,0519,0525,0721,0d3d,0dd4,0fe6,1504,154f,1a86,1d90,1fc9,2341,6868",
    ))
    PRINTER_CLASS_CODE = int(os.environ.get("PRINTER_CLASS_CODE", 7))
    PRINTER_SUBCLASS_CODE = int(os.environ.get("PRINTER_SUBCLASS_CODE", 1))
    PRINTER_CONFIGURATION = (
        int(os.environ["PRINTER_CONFIGURATION"]) if os.environ.get("PRINTER_CONFIGURATION") else None
    )

    TRANSFER_TIMEOUT_MS = int(os.environ.get("TRANSFER_TIMEOUT_MS", 5000))
    SHUTDOWN_TIMEOUT = float(os.environ.get("SHUTDOWN_TIMEOUT", 2.0))
    CONNECT_ON_STARTUP = _flag("CONNECT_ON_STARTUP", True)

    # Common thermal printer vendor IDs
    KNOWN_VENDORS = {
        0x04b8: "Epson",
        0x0519: "Star Micronics",
        0x0dd4: "Custom",
        0x0fe6: "Bixolon",
        0x1504: "Sewoo",
        0x0493: "MAG-TEK",
        0x1a86: "QinHeng (CH340)",
        0x6868: "Xprinter",
    }


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{os.path.join(os.path.dirname(basedir), 'instance', 'printer_bridge.db')}"
    )


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{os.path.join(os.path.dirname(basedir), 'instance', 'printer_bridge.db')}"
    )


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CONNECT_ON_STARTUP = False
    PRINTER_VENDOR_ID = None
    PRINTER_PRODUCT_ID = None
    SHUTDOWN_TIMEOUT = 0.2


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
