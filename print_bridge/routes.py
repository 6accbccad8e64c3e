#!/usr/bin/env python3.11
"""
Routes for the print bridge.
This module contains the Flask routes: health check, printer test, test receipt and receipt printing.
"""
import hmac
import logging
from datetime import datetime, timezone
from functools import wraps
from numbers import Number

from flask import Blueprint, current_app, jsonify, request

from print_bridge.constants import MAX_ORDER_ITEMS
from print_bridge.error_handling import (
    AuthenticationError,
    ValidationError,
    api_exception_handler,
    validate_required_fields,
)
from print_bridge.rate_limit import rate_limited

logger = logging.getLogger(__name__)

# Create a Blueprint for the API
api_bp = Blueprint('api', __name__)


def get_print_service():
    """Return the print service registered on the current application."""
    return current_app.extensions["print_service"]


def require_api_key(func):
    """Reject requests whose X-API-Key header does not match the configured key."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        expected = current_app.config["PRINT_BRIDGE"]["auth"]["api_key"]
        provided = request.headers.get("X-API-Key", "")
        if not expected or not hmac.compare_digest(provided.encode(), expected.encode()):
            logger.warning(f"Unauthorized API access attempt from {request.remote_addr}")
            raise AuthenticationError()
        return func(*args, **kwargs)
    return wrapper


def _is_non_negative_number(value) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool) and value >= 0


def validate_order(order) -> None:
    """
    Validate an order payload before printing.

    Raises:
        ValidationError: Describing the first problem found
    """
    if not isinstance(order, dict):
        raise ValidationError("Invalid request: request body must be a JSON object")

    validate_required_fields(order, ["items"])

    items = order["items"]
    if not isinstance(items, list) or not items:
        raise ValidationError("Invalid order data: items must be a non-empty array")

    if len(items) > MAX_ORDER_ITEMS:
        raise ValidationError(f"Too many items. Maximum {MAX_ORDER_ITEMS} items per order.")

    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"Invalid item at index {index}: must be an object")
        if "quantity" in item and not _is_non_negative_number(item["quantity"]):
            raise ValidationError(f"Invalid item at index {index}: quantity must be a non-negative number")
        sell_price = item.get("sell_price", item.get("price"))
        if sell_price is not None and not _is_non_negative_number(sell_price):
            raise ValidationError(f"Invalid item at index {index}: sell_price must be a non-negative number")


# --- API Routes ---

@api_bp.route("/health")
def health():
    """Report whether a printer handle is currently held."""
    printer_connected = get_print_service().current_handle_for_health_check() is not None
    return jsonify({
        "status": "ok" if printer_connected else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "printer": {
            "connected": printer_connected,
            "type": current_app.config["PRINT_BRIDGE"]["printer"]["type"] or "none",
        },
    })


@api_bp.route("/test")
@api_exception_handler
@rate_limited("test")
@require_api_key
def test_printer():
    """Print the printer test page."""
    get_print_service().test_connectivity()
    return jsonify({"success": True, "message": "Test print sent successfully"})


@api_bp.route("/test-receipt", methods=["POST"])
@api_exception_handler
@rate_limited("test")
@require_api_key
def test_receipt():
    """Print the sample receipt."""
    return jsonify(get_print_service().print_test())


@api_bp.route("/print", methods=["POST"])
@api_exception_handler
@rate_limited("print")
@require_api_key
def print_receipt():
    """Print a receipt for the posted order."""
    order = request.get_json(silent=True)
    validate_order(order)

    if current_app.debug:
        logger.debug(f"Received print request: {order}")

    return jsonify(get_print_service().print_receipt(order))
