"""HTTP endpoints for the local print service."""
import logging
from flask import Blueprint, current_app, jsonify, request
from printer_bridge.device import (
    ConnectError,
    ConnectInProgress,
    DeviceFilter,
    NoDeviceSelected,
    NotConnected,
    PrinterBridgeError,
    WriteError,
    parse_usb_id,
)

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def get_gateway():
    return current_app.extensions["printer_bridge"]


@api_bp.errorhandler(PrinterBridgeError)
def handle_printer_error(error):
    """Map session and transfer failures to JSON error responses."""
    if isinstance(error, ConnectInProgress):
        return jsonify({"success": False, "error": str(error)}), 503
    if isinstance(error, NoDeviceSelected):
        return jsonify({"success": False, "error": str(error)}), 404
    if isinstance(error, NotConnected):
        return jsonify({"success": False, "error": str(error)}), 409
    if isinstance(error, ConnectError):
        return jsonify({"success": False, "error": f"Printer connection failed: {error}"}), 500
    if isinstance(error, WriteError):
        return jsonify({"success": False, "error": f"Failed to write data: {error}"}), 500
    return jsonify({"success": False, "error": str(error)}), 500


@api_bp.route("/health", methods=["GET"])
def health_check():
    return jsonify({"status": "ok"})


@api_bp.route("/print", methods=["POST"])
def print_raw():
    """Print a raw byte buffer.

    The request body is sent to the printer unchanged
    (Content-Type: application/octet-stream).
    """
    data = request.get_data(cache=False)
    logger.info(f"Received /print request ({len(data)} bytes)")
    if not data:
        return jsonify({"success": False, "error": "No print data received."}), 400

    result = get_gateway().print_bytes(data)
    return jsonify({"success": True, **result.to_dict()})


@api_bp.route("/test-page", methods=["POST"])
def print_test_page():
    """Print the self-test page on the connected printer."""
    result = get_gateway().print_test_page()
    return jsonify({"success": True, **result.to_dict()})


@api_bp.route("/status", methods=["GET"])
def status():
    """Connection status: connecting, connected, disconnected or error."""
    return jsonify(get_gateway().status())


@api_bp.route("/devices", methods=["GET"])
def list_devices():
    """List printers this process may use."""
    return jsonify({"devices": get_gateway().devices()})


@api_bp.route("/connect", methods=["POST"])
def connect():
    """Connect to the printer.

    Request body (optional):
    {
        "vendor_id": "04b8",
        "product_id": "0e15"  // optional
    }
    """
    data = request.get_json(silent=True) or {}
    target = None
    try:
        vendor_id = parse_usb_id(data.get("vendor_id"))
        product_id = parse_usb_id(data.get("product_id"))
    except (TypeError, ValueError):
        return jsonify({"success": False, "error": "vendor_id and product_id must be hex strings"}), 400
    if vendor_id is not None:
        target = (DeviceFilter(vendor_id=vendor_id, product_id=product_id),)

    return jsonify({"success": True, **get_gateway().connect(target)})


@api_bp.route("/disconnect", methods=["POST"])
def disconnect():
    return jsonify({"success": True, **get_gateway().disconnect()})


@api_bp.route("/device", methods=["GET"])
def stored_device():
    """Last successfully connected printer, for display."""
    return jsonify({"device": get_gateway().stored_device()})
