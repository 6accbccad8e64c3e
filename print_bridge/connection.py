#!/usr/bin/env python3.11
"""
Connection manager for the printer.
Owns the single device handle: lazy creation, reuse, single-flight initialization, reset and bounded close.
"""
import enum
import logging
import threading
from concurrent.futures import Future
from typing import Any, Optional

from print_bridge.driver import resolve_identifiers
from print_bridge.error_handling import ConfigurationError, NoDeviceFound, PrinterError

logger = logging.getLogger(__name__)

SUPPORTED_PRINTER_TYPES = ("usb",)


class ConnectionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class ConnectionManager:
    """
    Manages the one printer handle shared by every request.

    Concurrent callers of acquire() while an initialization is running wait on
    the same future, so they all get the same handle or the same error.
    """

    def __init__(self, driver, printer_type: str = "usb",
                 vendor_id: Optional[int] = None, product_id: Optional[int] = None):
        """
        Initialize the connection manager.

        Args:
            driver: Device driver providing discover, construct, open, send and close
            printer_type: Configured printer type (only usb is supported)
            vendor_id: Explicit USB vendor ID, used together with product_id
            product_id: Explicit USB product ID, used together with vendor_id
        """
        self.driver = driver
        self.printer_type = printer_type
        self.vendor_id = vendor_id
        self.product_id = product_id
        self._lock = threading.Lock()
        self._state = ConnectionState.UNINITIALIZED
        self._handle = None
        self._pending: Optional[Future] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    def acquire(self) -> Any:
        """
        Return the device handle, initializing it if needed.

        Raises:
            NoDeviceFound: Discovery found no printer
            ConfigurationError: The configured printer type is unsupported
            PrinterError: The initialization was superseded by a reset
        """
        with self._lock:
            if self._state is ConnectionState.READY:
                return self._handle
            if self._state is ConnectionState.INITIALIZING:
                pending = self._pending
                owner = False
            else:
                pending = Future()
                self._pending = pending
                self._state = ConnectionState.INITIALIZING
                owner = True

        if not owner:
            return pending.result()

        try:
            handle = self._initialize()
        except Exception as e:
            logger.error(f"Failed to initialize printer: {e}")
            with self._lock:
                if self._pending is pending:
                    self._state = ConnectionState.UNINITIALIZED
                    self._pending = None
            pending.set_exception(e)
            raise

        with self._lock:
            superseded = self._pending is not pending
            if not superseded:
                self._handle = handle
                self._state = ConnectionState.READY
                self._pending = None

        if superseded:
            self._close_quietly(handle)
            error = PrinterError("Printer connection was reset during initialization")
            pending.set_exception(error)
            raise error

        pending.set_result(handle)
        return handle

    def _initialize(self):
        if self.printer_type not in SUPPORTED_PRINTER_TYPES:
            raise ConfigurationError(
                f"Unsupported printer type: {self.printer_type}. Only USB printers are supported. "
                "Please set PRINTER_TYPE=usb in your .env file."
            )

        candidates = self.driver.discover()
        if not candidates:
            raise NoDeviceFound("No USB printer found")

        logger.info(f"Found USB printers: {', '.join(str(c) for c in candidates)}")

        vendor_id, product_id = resolve_identifiers(candidates, self.vendor_id, self.product_id)
        handle = self.driver.construct(vendor_id, product_id)
        logger.info("USB printer adapter initialized")
        return handle

    def current_handle(self) -> Optional[Any]:
        """Return the current handle without initializing one."""
        return self._handle

    def reset(self) -> None:
        """Drop the current handle and return to the uninitialized state. Safe to call repeatedly."""
        with self._lock:
            handle = self._handle
            self._handle = None
            self._pending = None
            self._state = ConnectionState.UNINITIALIZED

        if handle is not None:
            logger.info("Resetting printer connection...")
            self._close_quietly(handle)

    def _close_quietly(self, handle) -> None:
        try:
            self.driver.close(handle)
            logger.debug("Previous connection closed")
        except Exception as e:
            # Close errors during reset are ignored
            logger.info(f"Close error during reset (ignored): {e}")

    def close_gracefully(self, deadline: float) -> None:
        """
        Close the current handle, waiting at most `deadline` seconds.

        Used at shutdown. If the close does not finish in time the handle is
        dropped anyway.
        """
        with self._lock:
            handle = self._handle
            self._handle = None
            self._pending = None
            self._state = ConnectionState.UNINITIALIZED

        if handle is None:
            return

        def _close():
            try:
                self.driver.close(handle)
                logger.info("Printer connection closed")
            except Exception as e:
                logger.error(f"Error closing printer: {e}")

        closer = threading.Thread(target=_close, name="printer-close", daemon=True)
        closer.start()
        closer.join(deadline)
        if closer.is_alive():
            logger.warning("Printer close timeout, forcing close")
