#!/usr/bin/env python3.11
"""
Timeouts, delays and retry behaviour for the print bridge.
All values are in seconds.
"""

# Orderly printer close at shutdown; the handle is dropped after this
PRINTER_CLOSE_TIMEOUT = 2.0

# Deadline for the connectivity test page
TEST_PRINT_TIMEOUT = 10.0

# Deadline for a receipt print (longer receipts than the test page)
RECEIPT_PRINT_TIMEOUT = 15.0

# Pause after cut so the printer finishes before the connection is torn down
POST_PRINT_DELAY = 1.0

# Backoff before retry n is RETRY_BASE_DELAY * 2 ** (n - 1): 1s, 2s, 4s
RETRY_BASE_DELAY = 1.0

MAX_RETRY_ATTEMPTS = 3

# Largest accepted request body
MAX_CONTENT_LENGTH = 1024 * 1024

# Largest number of items accepted in one order
MAX_ORDER_ITEMS = 100
