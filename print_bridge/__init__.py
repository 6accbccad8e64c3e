"""
Receipt print bridge.
Accepts receipt print jobs over HTTP and drives a USB ESC/POS printer.
"""

__version__ = "1.0.0"
