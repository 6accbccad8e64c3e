#!/usr/bin/env python3.11
"""
Retry policy for printer operations.
Retries transient failures with exponential backoff, resetting the printer connection before each retry.
"""
import logging
import time
from typing import Callable, Optional, TypeVar

from print_bridge.constants import MAX_RETRY_ATTEMPTS, RETRY_BASE_DELAY
from print_bridge.error_handling import (
    ConfigurationError,
    NoDeviceFound,
    OpenFailed,
    PrintTimeout,
    RetryExhausted,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERROR_INDICATORS = (
    "timeout",
    "timed out",
    "busy",
    "eagain",
    "ebusy",
    "failed to open",
    "connection",
    "i/o error",
    "input/output error",
    "pipe error",
)


def is_transient_error(exc: BaseException) -> bool:
    """
    Decide whether an error may go away on retry.

    Missing hardware and bad configuration need an operator and are never
    retried, whatever their message says.
    """
    if isinstance(exc, (NoDeviceFound, ConfigurationError)):
        return False
    if isinstance(exc, (PrintTimeout, OpenFailed)):
        return True
    message = str(exc).lower()
    return any(indicator in message for indicator in TRANSIENT_ERROR_INDICATORS)


class RetryPolicy:
    """Wraps printer operations with bounded exponential-backoff retries."""

    def __init__(self, connection,
                 max_attempts: int = MAX_RETRY_ATTEMPTS,
                 base_delay: float = RETRY_BASE_DELAY,
                 sleep: Callable[[float], None] = time.sleep):
        self.connection = connection
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based)."""
        return self.base_delay * 2 ** (attempt - 1)

    def run(self, operation: Callable[[], T], max_attempts: Optional[int] = None, label: str = "operation") -> T:
        """
        Run an operation, retrying transient failures.

        The operation runs at most max_attempts + 1 times.

        Args:
            operation: Zero-argument callable to run
            max_attempts: Number of retries after the first attempt (default: the policy's)
            label: Name used in log messages and the final error

        Returns:
            Whatever the operation returns

        Raises:
            RetryExhausted: Every retry failed with a transient error
            Exception: The first permanent error, unchanged
        """
        retries = self.max_attempts if max_attempts is None else max_attempts
        attempt = 0

        while True:
            if attempt > 0:
                self.connection.reset()
                delay = self.backoff_delay(attempt)
                logger.info(f"{label}: retry {attempt}/{retries} in {delay:g}s")
                self._sleep(delay)

            try:
                return operation()
            except Exception as e:
                if not is_transient_error(e):
                    logger.error(f"{label}: permanent failure, not retrying: {e}")
                    raise
                logger.warning(f"{label}: transient failure on attempt {attempt + 1}: {e}")
                if attempt >= retries:
                    raise RetryExhausted(label, retries, e) from e
                attempt += 1
