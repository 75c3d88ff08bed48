#!/usr/bin/env python3
"""
USB Receipt Printer Bridge - interactive tool
Pick a printer, then send raw print data or a test page to it
"""

import argparse
import logging
import sys
from typing import List, Optional

from printer_bridge.config import Config
from printer_bridge.device import (
    DeviceEnumerator,
    DeviceFilter,
    JsonFileDeviceStore,
    PrinterBridgeError,
    SessionManager,
    TransferExecutor,
    UsbDevice,
    default_filters,
    parse_usb_id,
)
from printer_bridge.device.testpage import build_test_page

DEFAULT_STATE_FILE = "~/.printer-bridge/device.json"


def prompt_chooser(candidates: List[UsbDevice]) -> Optional[UsbDevice]:
    """Ask on the terminal which device to use. Empty input cancels."""
    if not candidates:
        print("✗ No matching printers found")
        return None

    print("Select a printer:")
    for index, device in enumerate(candidates, start=1):
        vendor = Config.KNOWN_VENDORS.get(device.descriptor.vendor_id, "Unknown")
        print(f"  [{index}] {vendor} - {device.descriptor}")

    choice = input("Printer number (Enter to cancel): ").strip()
    if not choice:
        return None
    try:
        return candidates[int(choice) - 1]
    except (ValueError, IndexError):
        print(f"✗ Invalid choice: {choice}")
        return None


def build_manager(args) -> SessionManager:
    from printer_bridge.device.pyusb_backend import PyUSBBackend

    filters = default_filters(Config.PRINTER_VENDOR_IDS, Config.PRINTER_CLASS_CODE,
                              Config.PRINTER_SUBCLASS_CODE)
    vendor_id = parse_usb_id(args.vendor_id)
    if vendor_id is not None:
        filters = (DeviceFilter(vendor_id=vendor_id, product_id=parse_usb_id(args.product_id)),)

    backend = PyUSBBackend(allow_list=filters, chooser=prompt_chooser,
                           timeout=Config.TRANSFER_TIMEOUT_MS)
    return SessionManager(
        DeviceEnumerator(backend, filters),
        store=JsonFileDeviceStore(args.state_file),
        class_code=Config.PRINTER_CLASS_CODE,
        subclass_code=Config.PRINTER_SUBCLASS_CODE,
        configuration_value=Config.PRINTER_CONFIGURATION,
    )


def cmd_devices(manager: SessionManager, args) -> int:
    devices = manager.enumerator.list_authorized()
    if not devices:
        print("  No authorized printers")
        return 1
    for descriptor in devices:
        vendor = Config.KNOWN_VENDORS.get(descriptor.vendor_id, "Unknown")
        print(f"  Found: {vendor} - {descriptor}")
    return 0


def cmd_select(manager: SessionManager, args) -> int:
    descriptor = manager.enumerator.select_new()
    print(f"✓ Selected {descriptor}")
    return 0


def cmd_last(manager: SessionManager, args) -> int:
    descriptor = manager.store.load()
    if descriptor is None:
        print("  No printer has been connected yet")
        return 1
    print(f"  Last printer: {descriptor}")
    return 0


def _send(manager: SessionManager, data: bytes) -> int:
    session = manager.connect()
    print(f"✓ Connected to {session.descriptor}")
    try:
        result = TransferExecutor().write(session, data)
        print(f"✓ Sent {result.bytes_written} bytes")
    finally:
        manager.disconnect()
    return 0


def cmd_print(manager: SessionManager, args) -> int:
    if args.file == "-":
        data = sys.stdin.buffer.read()
    else:
        with open(args.file, "rb") as f:
            data = f.read()
    if not data:
        print("✗ No print data")
        return 1
    return _send(manager, data)


def cmd_test(manager: SessionManager, args) -> int:
    # Connect first so the page can name the device; _send reuses the live session
    session = manager.connect()
    return _send(manager, build_test_page(session.descriptor))


COMMANDS = {
    "devices": cmd_devices,
    "select": cmd_select,
    "print": cmd_print,
    "test": cmd_test,
    "last": cmd_last,
}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="USB Receipt Printer Bridge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  printer-bridge devices
  printer-bridge select
  printer-bridge print receipt.bin
  printer-bridge --vendor-id 04b8 --product-id 0e15 test
        """
    )

    parser.add_argument("--vendor-id", help="Vendor ID in hex (e.g., 04b8)")
    parser.add_argument("--product-id", help="Product ID in hex (e.g., 0e15)")
    parser.add_argument("--state-file", default=DEFAULT_STATE_FILE,
                        help=f"Where to remember the last printer (default: {DEFAULT_STATE_FILE})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("devices", help="List authorized printers")
    subparsers.add_parser("select", help="Pick a printer")
    print_parser = subparsers.add_parser("print", help="Send a raw ESC/POS file")
    print_parser.add_argument("file", help="File to send, or - for stdin")
    subparsers.add_parser("test", help="Print a test page")
    subparsers.add_parser("last", help="Show the last connected printer")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else Config.LOG_LEVEL,
        format="%(levelname)s %(name)s: %(message)s",
    )

    manager = build_manager(args)
    try:
        return COMMANDS[args.command](manager, args)
    except PrinterBridgeError as e:
        print(f"✗ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
