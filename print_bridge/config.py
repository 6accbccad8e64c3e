#!/usr/bin/env python3.11
"""
Configuration for the print bridge.
Values come from environment variables, optionally loaded from a .env file in the project root.
"""
import os
import re
import logging
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from print_bridge.error_handling import ConfigurationError, log_and_raise

logger = logging.getLogger(__name__)

# Load environment variables from .env file
# Get the directory of this file and find the .env file in the project root
dotenv_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), '.env')
load_dotenv(dotenv_path)

VALID_PRINTER_TYPES = ['usb']
VALID_PAPER_WIDTHS = [32, 48]
PLACEHOLDER_API_KEYS = ['your-api-key-here', 'your_api_key_here', 'changeme', '']

DEFAULT_CORS_ORIGINS = ["http://localhost:5183", "http://localhost:5173"]


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_hex(name: str, value: Optional[str]) -> Optional[int]:
    """Parse a hexadecimal USB identifier such as '04b8' or '0x04b8'."""
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip(), 16)
    except ValueError:
        raise ConfigurationError(f"Invalid {name}: {value}. Expected a hexadecimal value such as 04b8.")


def build_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Build the configuration dictionary from environment variables.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        Dictionary with server, auth, printer, receipt, cors, rate_limit and debug sections
    """
    env = os.environ if environ is None else environ

    cors_origins = env.get("CORS_ORIGINS")

    return {
        "server": {
            "host": env.get("HOST", "0.0.0.0"),
            "port": env.get("PORT") or 3344,
        },
        "auth": {
            "api_key": (env.get("API_KEY") or "").strip(),
        },
        "printer": {
            "type": env.get("PRINTER_TYPE", "usb"),
            "usb": {
                "vendor_id": _parse_hex("USB_VENDOR_ID", env.get("USB_VENDOR_ID")),
                "product_id": _parse_hex("USB_PRODUCT_ID", env.get("USB_PRODUCT_ID")),
                "in_ep": _parse_hex("USB_IN_EP", env.get("USB_IN_EP")),
                "out_ep": _parse_hex("USB_OUT_EP", env.get("USB_OUT_EP")),
            },
            # python-escpos capability profile, e.g. TM-T88V
            "profile": env.get("PRINTER_PROFILE") or None,
        },
        "receipt": {
            "store_name": env.get("STORE_NAME", "XiPOS Store"),
            "store_address": env.get("STORE_ADDRESS", ""),
            "store_phone": env.get("STORE_PHONE", ""),
            "store_tax_id": env.get("STORE_TAX_ID", ""),
            "paper_width": _parse_int(env.get("PAPER_WIDTH"), 48),
            "currency_symbol": env.get("CURRENCY_SYMBOL", "RM"),
            "footer_line1": env.get("RECEIPT_FOOTER_LINE1", "Thank you for your purchase!"),
            "footer_line2": env.get("RECEIPT_FOOTER_LINE2", "Please come again"),
        },
        "cors": {
            "origins": [origin.strip() for origin in cors_origins.split(",")] if cors_origins else list(DEFAULT_CORS_ORIGINS),
        },
        "rate_limit": {
            "window_seconds": _parse_int(env.get("RATE_LIMIT_WINDOW"), 60000) / 1000.0,
            "print_max": _parse_int(env.get("RATE_LIMIT_PRINT_MAX"), 10),
            "test_max": _parse_int(env.get("RATE_LIMIT_TEST_MAX"), 3),
        },
        "debug": env.get("DEBUG", "False").lower() in ("true", "1", "t"),
    }


def validate_port(port) -> bool:
    """Check that a port number (int or numeric string) is between 1 and 65535."""
    try:
        port_num = int(port)
    except (TypeError, ValueError):
        logger.error(f"Invalid port: {port}. Port must be between 1 and 65535.")
        return False
    if port_num < 1 or port_num > 65535:
        logger.error(f"Invalid port: {port}. Port must be between 1 and 65535.")
        return False
    return True


def validate_paper_width(width) -> bool:
    """Check that the paper width is one of the supported character widths."""
    try:
        width_num = int(width)
    except (TypeError, ValueError):
        width_num = None
    if width_num not in VALID_PAPER_WIDTHS:
        logger.error(f"Invalid paper width: {width}. Paper width must be 32 or 48.")
        return False
    return True


def validate_printer_type(printer_type) -> bool:
    if printer_type not in VALID_PRINTER_TYPES:
        logger.error(
            f"Invalid printer type: {printer_type}. Currently only USB printers are supported. "
            f"Valid types: {', '.join(VALID_PRINTER_TYPES)}."
        )
        return False
    return True


_IP_PATTERN = re.compile(r'^(\d{1,3}\.){3}\d{1,3}$')


def validate_ip_address(ip) -> bool:
    """Check a dotted IPv4 address, each octet 0-255."""
    if not isinstance(ip, str) or not _IP_PATTERN.match(ip):
        logger.error(f"Invalid IP address format: {ip}. Expected format: x.x.x.x")
        return False

    for octet in ip.split('.'):
        if int(octet) > 255:
            logger.error(f"Invalid IP address: {ip}. Each octet must be between 0 and 255.")
            return False

    return True


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate all configuration values.

    Args:
        config: Configuration dictionary as returned by build_config

    Raises:
        ConfigurationError: Listing every invalid setting
    """
    problems = []

    if not validate_port(config["server"]["port"]):
        problems.append("server.port")

    if not validate_paper_width(config["receipt"]["paper_width"]):
        problems.append("receipt.paper_width")

    if not validate_printer_type(config["printer"]["type"]):
        problems.append("printer.type")

    network = config["printer"].get("network")
    if config["printer"]["type"] == "network" and network and network.get("ip"):
        if not validate_ip_address(network["ip"]):
            problems.append("printer.network.ip")

    if config["auth"]["api_key"] in PLACEHOLDER_API_KEYS:
        logger.error("API_KEY is required. Set a strong API_KEY in your .env file.")
        problems.append("auth.api_key")

    if problems:
        log_and_raise(
            ConfigurationError,
            "Configuration validation failed. Please fix the errors above.",
            details={'invalid_settings': problems}
        )

