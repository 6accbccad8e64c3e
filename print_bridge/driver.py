#!/usr/bin/env python3.11
"""
USB ESC/POS device driver for the print bridge.
This module wraps python-escpos and pyusb behind four primitives: discover, construct, open/close and send.
"""
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple

import usb.core
import usb.util
from escpos.printer import Usb

from print_bridge.error_handling import OpenFailed

# Logger for printer specific messages
printer_logger = logging.getLogger("thermal_printer")

USB_CLASS_PRINTER = 0x07


@dataclass(frozen=True)
class UsbCandidate:
    """A USB device exposing a printer-class interface."""
    vendor_id: int
    product_id: int
    label: str = ""

    def __str__(self) -> str:
        name = self.label or "USB printer"
        return f"{name} (0x{self.vendor_id:04x}:0x{self.product_id:04x})"


@dataclass(frozen=True)
class PrinterCommand:
    """
    One step of the command stream sent to the printer.

    kind is one of text, align, bold, size, feed, cut.
    """
    kind: str
    value: Any = None

    @classmethod
    def text(cls, line: str) -> "PrinterCommand":
        return cls("text", line)

    @classmethod
    def align(cls, alignment: str) -> "PrinterCommand":
        return cls("align", alignment)

    @classmethod
    def bold(cls, enabled: bool) -> "PrinterCommand":
        return cls("bold", enabled)

    @classmethod
    def size(cls, width: int, height: int) -> "PrinterCommand":
        return cls("size", (width, height))

    @classmethod
    def feed(cls, lines: int) -> "PrinterCommand":
        return cls("feed", lines)

    @classmethod
    def cut(cls) -> "PrinterCommand":
        return cls("cut")


def _get_string(device, index) -> str:
    try:
        return usb.util.get_string(device, index) if index else ""
    except (usb.core.USBError, ValueError):
        return ""


def _has_printer_interface(device) -> bool:
    for configuration in device:
        for interface in configuration:
            if interface.bInterfaceClass == USB_CLASS_PRINTER:
                return True
    return False


class EscposUsbDriver:
    """Class to handle USB thermal printer hardware through python-escpos."""

    def __init__(self, in_ep: Optional[int] = None, out_ep: Optional[int] = None, profile: Optional[str] = None):
        """
        Initialize the driver.

        Args:
            in_ep: USB input endpoint override (default: python-escpos default)
            out_ep: USB output endpoint override (default: python-escpos default)
            profile: python-escpos capability profile name
        """
        self.in_ep = in_ep
        self.out_ep = out_ep
        self.profile = profile

    def discover(self) -> List[UsbCandidate]:
        """
        Find attached USB devices that expose a printer-class interface.

        Returns:
            List of candidates, in bus enumeration order
        """
        candidates = []
        for device in usb.core.find(find_all=True):
            try:
                if not _has_printer_interface(device):
                    continue
            except usb.core.USBError as e:
                printer_logger.debug(f"Skipping unreadable USB device 0x{device.idVendor:04x}:0x{device.idProduct:04x}: {e}")
                continue
            label = f"{_get_string(device, device.iManufacturer)} {_get_string(device, device.iProduct)}".strip()
            candidates.append(UsbCandidate(device.idVendor, device.idProduct, label))
        return candidates

    def construct(self, vendor_id: int, product_id: int) -> Usb:
        """Create an unopened python-escpos USB printer for the given identifiers."""
        kwargs = {}
        if self.in_ep is not None:
            kwargs["in_ep"] = self.in_ep
        if self.out_ep is not None:
            kwargs["out_ep"] = self.out_ep
        if self.profile:
            kwargs["profile"] = self.profile
        printer_logger.info(f"Thermal printer configured with Vendor ID 0x{vendor_id:04x}, Product ID 0x{product_id:04x}")
        return Usb(vendor_id, product_id, **kwargs)

    def open(self, handle: Usb) -> None:
        """Open the USB channel of a handle."""
        try:
            handle.open()
        except Exception as e:
            raise OpenFailed(f"Failed to open printer: {e}", original_exception=e)

    def send(self, handle: Usb, commands: Iterable[PrinterCommand]) -> None:
        """Send a command stream to an open handle. Failures propagate as raised by python-escpos."""
        for command in commands:
            if command.kind == "text":
                handle.text(f"{command.value}\n")
            elif command.kind == "align":
                handle.set(align=command.value)
            elif command.kind == "bold":
                handle.set(bold=command.value)
            elif command.kind == "size":
                width, height = command.value
                if (width, height) == (1, 1):
                    handle.set(normal_textsize=True)
                else:
                    handle.set(custom_size=True, width=width, height=height)
            elif command.kind == "feed":
                handle.ln(command.value)
            elif command.kind == "cut":
                handle.cut()
            else:
                raise ValueError(f"Unknown printer command: {command.kind}")

    def close(self, handle: Usb) -> None:
        """Close the connection to the printer."""
        handle.close()


def resolve_identifiers(candidates: List[UsbCandidate],
                        vendor_id: Optional[int],
                        product_id: Optional[int]) -> Tuple[int, int]:
    """Prefer an explicitly configured vendor/product pair over the first discovered candidate."""
    if vendor_id is not None and product_id is not None:
        return vendor_id, product_id
    first = candidates[0]
    return first.vendor_id, first.product_id
