"""Plain-text ESC/POS self-test page."""
from typing import Optional

from printer_bridge.device.descriptors import DeviceDescriptor

ESC = b'\x1b'
GS = b'\x1d'

INIT = ESC + b'\x40'          # ESC @
BOLD_ON = ESC + b'\x45\x01'   # ESC E 1
BOLD_OFF = ESC + b'\x45\x00'  # ESC E 0
ALIGN_LEFT = ESC + b'\x61\x00'    # ESC a 0
ALIGN_CENTER = ESC + b'\x61\x01'  # ESC a 1
CUT_FULL = GS + b'\x56\x00'   # GS V 0


def _line(text: str) -> bytes:
    return text.encode("cp437", errors="replace") + b'\n'


def build_test_page(descriptor: Optional[DeviceDescriptor] = None,
                    connection: str = "USB") -> bytes:
    """Build a short test page.

    Args:
        descriptor: Connected device, printed as name and IDs when given.
        connection: Label for the connection line.
    """
    page = bytearray(INIT)
    page += ALIGN_CENTER + BOLD_ON
    page += _line("=== PRINTER TEST ===") + b'\n'
    page += BOLD_OFF + ALIGN_LEFT
    page += _line(f"Connection: {connection}")
    if descriptor is not None:
        page += _line(f"Device: {descriptor.product_name or 'Unknown'}")
        page += _line(f"ID: {descriptor.vendor_id:04x}:{descriptor.product_id:04x}")
    page += _line("Status: OK")
    # Feed paper past cutter
    page += b'\n' * 6
    page += CUT_FULL
    return bytes(page)
