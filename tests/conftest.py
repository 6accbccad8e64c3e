import threading
import time

import pytest

from print_bridge.config import build_config
from print_bridge.connection import ConnectionManager
from print_bridge.driver import UsbCandidate
from print_bridge.error_handling import OpenFailed
from print_bridge.executor import PrintExecutor
from print_bridge.print_service import PrintService
from print_bridge.retry import RetryPolicy

EPSON = UsbCandidate(0x04B8, 0x0E03, "EPSON TM-T20")
XPRINTER = UsbCandidate(0x0416, 0x5011, "XPrinter")


class FakeHandle:
    def __init__(self, vendor_id, product_id):
        self.vendor_id = vendor_id
        self.product_id = product_id


class FakeDriver:
    """Stands in for the USB printer, recording every call."""

    def __init__(self, candidates=(EPSON,), discover_delay=0.0, open_delay=0.0,
                 open_error=None, send_error=None, close_error=None):
        self.candidates = list(candidates)
        self.discover_delay = discover_delay
        self.open_delay = open_delay
        self.open_error = open_error
        self.send_error = send_error
        self.close_error = close_error
        self.discover_calls = 0
        self.constructed = []
        self.opened = []
        self.sent = []
        self.closed = []
        self._lock = threading.Lock()

    def discover(self):
        with self._lock:
            self.discover_calls += 1
        time.sleep(self.discover_delay)
        return list(self.candidates)

    def construct(self, vendor_id, product_id):
        handle = FakeHandle(vendor_id, product_id)
        with self._lock:
            self.constructed.append(handle)
        return handle

    def open(self, handle):
        time.sleep(self.open_delay)
        if self.open_error is not None:
            raise OpenFailed(f"Failed to open printer: {self.open_error}")
        with self._lock:
            self.opened.append(handle)

    def send(self, handle, commands):
        if self.send_error is not None:
            raise self.send_error
        with self._lock:
            self.sent.append(list(commands))

    def close(self, handle):
        with self._lock:
            self.closed.append(handle)
        if self.close_error is not None:
            raise self.close_error


class RecordingSleep:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def connection(driver):
    return ConnectionManager(driver)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_service():
    """Build a PrintService around a fake driver, with no real delays."""
    created = []

    def _make(driver, max_attempts=3, deadline=2.0, receipt_config=None):
        connection = ConnectionManager(driver)
        executor = PrintExecutor(connection, driver, default_deadline=deadline,
                                 settle_delay=0, sleep=lambda seconds: None)
        retry = RetryPolicy(connection, max_attempts=max_attempts, base_delay=0, sleep=lambda seconds: None)
        service = PrintService(connection, executor, retry, receipt_config, test_deadline=deadline)
        created.append(service)
        return service

    yield _make

    for service in created:
        service.executor.shutdown()


@pytest.fixture
def app_config():
    return build_config({"API_KEY": "test-key", "STORE_NAME": "Test Store"})
