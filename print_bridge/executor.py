#!/usr/bin/env python3.11
"""
Print operation executor.
Runs acquire -> open -> emit -> cut -> close -> settle against the shared connection under a hard deadline.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Callable, Optional

from print_bridge.constants import POST_PRINT_DELAY, RECEIPT_PRINT_TIMEOUT
from print_bridge.error_handling import AppError, EmissionFailed, PrintFailed, PrintTimeout
from print_bridge.print_job import PrintJob, job_to_commands

logger = logging.getLogger(__name__)


class PrintExecutor:
    """Executes one print job at a time against the connection manager."""

    def __init__(self, connection, driver,
                 default_deadline: float = RECEIPT_PRINT_TIMEOUT,
                 settle_delay: float = POST_PRINT_DELAY,
                 sleep: Callable[[float], None] = time.sleep,
                 max_workers: int = 4):
        """
        Initialize the executor.

        Args:
            connection: ConnectionManager owning the device handle
            driver: Device driver used to open, send and close
            default_deadline: Seconds allowed for the whole sequence when execute() gets none
            settle_delay: Pause after the cut before the connection is torn down
            sleep: Sleep function (replaceable in tests)
            max_workers: Worker threads available to run print sequences
        """
        self.connection = connection
        self.driver = driver
        self.default_deadline = default_deadline
        self.settle_delay = settle_delay
        self._sleep = sleep
        # Timed out sequences keep their worker until device I/O returns
        self._workers = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="print-job")

    def execute(self, job: PrintJob, deadline: Optional[float] = None) -> bool:
        """
        Print a job, enforcing a deadline on the whole sequence.

        The connection is reset afterwards whatever the outcome, so the next
        job starts from a fresh handle.

        Args:
            job: The job to print
            deadline: Seconds allowed (default: the executor's default deadline)

        Returns:
            True when every line was sent and the paper was cut

        Raises:
            PrintTimeout: The deadline passed first
            PrintFailed: A step failed (OpenFailed and EmissionFailed are subclasses)
            NoDeviceFound, ConfigurationError: Propagated from the connection manager
        """
        deadline = self.default_deadline if deadline is None else deadline
        abandoned = threading.Event()
        future = self._workers.submit(self._run, job, abandoned)
        try:
            return future.result(timeout=deadline)
        except FutureTimeoutError:
            logger.error(f"Print job did not finish within {deadline:g}s")
            abandoned.set()
            # A job queued behind hung workers must not print after its caller timed out
            if future.cancel():
                logger.warning("Queued print job cancelled before it started")
            raise PrintTimeout("Printer operation timeout")
        except AppError:
            raise
        except Exception as e:
            raise PrintFailed(f"Printing failed: {e}", original_exception=e)
        finally:
            self.connection.reset()

    def _run(self, job: PrintJob, abandoned: threading.Event) -> bool:
        if abandoned.is_set():
            return False
        handle = self.connection.acquire()
        self.driver.open(handle)

        commands = job_to_commands(job)
        try:
            self.driver.send(handle, commands)
        except Exception as e:
            raise EmissionFailed(f"Printing failed: {e}", original_exception=e)

        # Close the logical job, then give the printer time to finish cutting
        self.driver.close(handle)
        self._sleep(self.settle_delay)
        logger.info(f"Printed {len(job)} lines")
        return True

    def shutdown(self) -> None:
        self._workers.shutdown(wait=False)
