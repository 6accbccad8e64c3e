#!/usr/bin/env python3.11
"""
Print service - the printer operations exposed to the HTTP layer.
Wires the device driver, connection manager, executor and retry policy together.
"""
import logging
from typing import Any, Dict, Mapping, Optional

from print_bridge.connection import ConnectionManager
from print_bridge.constants import (
    PRINTER_CLOSE_TIMEOUT,
    RECEIPT_PRINT_TIMEOUT,
    TEST_PRINT_TIMEOUT,
)
from print_bridge.driver import EscposUsbDriver
from print_bridge.error_handling import PrinterError
from print_bridge.executor import PrintExecutor
from print_bridge.print_job import DEFAULT_FOOTER_MARKERS, LineStyle, PrintJob, PrintLine, build_print_job
from print_bridge.receipt_formatter import DEFAULT_RECEIPT_CONFIG, create_test_receipt_data, format_receipt
from print_bridge.retry import RetryPolicy

logger = logging.getLogger(__name__)

TEST_PAGE = PrintJob((
    PrintLine("TEST PRINT", LineStyle.TITLE),
    PrintLine("", LineStyle.CENTER),
    PrintLine("Printer is working!", LineStyle.CENTER),
    PrintLine("打印机工作正常!", LineStyle.CENTER),
))


class PrintService:
    """Service class for receipt printing."""

    def __init__(self, connection: ConnectionManager, executor: PrintExecutor, retry: RetryPolicy,
                 receipt_config: Optional[Mapping[str, Any]] = None, debug: bool = False,
                 test_deadline: float = TEST_PRINT_TIMEOUT):
        self.connection = connection
        self.executor = executor
        self.retry = retry
        self.receipt_config = dict(DEFAULT_RECEIPT_CONFIG)
        self.receipt_config.update(receipt_config or {})
        self.debug = debug
        self.test_deadline = test_deadline

    def _footer_markers(self):
        configured = (self.receipt_config.get("footer_line1"), self.receipt_config.get("footer_line2"))
        return DEFAULT_FOOTER_MARKERS + tuple(marker for marker in configured if marker)

    def _receipt_job(self, order: Mapping[str, Any]) -> PrintJob:
        lines = format_receipt(order, self.receipt_config)
        job = build_print_job(lines, self.receipt_config.get("store_name", ""), self._footer_markers())
        if self.debug:
            logger.debug(f"Receipt content:\n{job.as_text()}")
        return job

    def print_receipt(self, order: Mapping[str, Any], label: str = "Print receipt") -> Dict[str, Any]:
        """
        Print a receipt, retrying transient printer failures.

        Args:
            order: Validated order data

        Returns:
            {"success": True, "message": ...}

        Raises:
            PrinterError: The receipt could not be printed
            ConfigurationError: The printer configuration is unusable
        """
        # The job is rebuilt on each attempt
        self.retry.run(
            lambda: self.executor.execute(self._receipt_job(order)),
            label=label,
        )
        logger.info(f"{label}: done")
        return {"success": True, "message": "Receipt printed successfully"}

    def print_test(self) -> Dict[str, Any]:
        """Print the sample receipt."""
        self.print_receipt(create_test_receipt_data(), label="Print test receipt")
        return {"success": True, "message": "Test receipt printed successfully"}

    def test_connectivity(self) -> bool:
        """
        Print the test page once, without retries.

        Raises:
            PrinterError: The printer could not print the test page
        """
        try:
            return self.executor.execute(TEST_PAGE, deadline=self.test_deadline)
        except Exception as e:
            raise PrinterError(f"Printer test failed: {e}", original_exception=e) from e

    def current_handle_for_health_check(self):
        return self.connection.current_handle()

    def close_gracefully(self, deadline: float = PRINTER_CLOSE_TIMEOUT) -> None:
        self.connection.close_gracefully(deadline)
        self.executor.shutdown()


def build_print_service(config: Mapping[str, Any]) -> PrintService:
    """Create the production print service from the configuration dictionary."""
    printer = config["printer"]
    usb = printer["usb"]
    driver = EscposUsbDriver(in_ep=usb.get("in_ep"), out_ep=usb.get("out_ep"), profile=printer.get("profile"))
    connection = ConnectionManager(driver, printer["type"], usb.get("vendor_id"), usb.get("product_id"))
    executor = PrintExecutor(connection, driver, default_deadline=RECEIPT_PRINT_TIMEOUT)
    retry = RetryPolicy(connection)
    return PrintService(connection, executor, retry, config["receipt"], debug=config["debug"])
