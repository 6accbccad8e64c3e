#!/usr/bin/env python3.11
"""
Receipt formatter - turns order data into plain-text lines sized to the paper width.
Pure formatting: no printer I/O happens here.
"""
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

PAYMENT_METHOD_NAMES = {
    "cash": "Cash",
    "credit": "Member Credit",
    "reward": "Reward Points",
    "qrpay": "QR Pay",
}

DEFAULT_RECEIPT_CONFIG = {
    "store_name": "XiPOS Store",
    "store_address": "",
    "store_phone": "",
    "store_tax_id": "",
    "paper_width": 48,
    "currency_symbol": "RM",
    "footer_line1": "Thank you for your purchase!",
    "footer_line2": "Please come again",
}


def fit_text(text: str, width: int) -> str:
    """Truncate text to the paper width."""
    return text[:width] if len(text) > width else text


def center_text(text: str, width: int) -> str:
    """Left-pad text so it sits in the middle of the paper."""
    padding = max(0, (width - len(text)) // 2)
    return " " * padding + text


def create_line(left: str, right: str, width: int) -> str:
    """Create a line with left and right aligned text, truncating the left part if both do not fit."""
    spaces = width - len(left) - len(right)
    if spaces < 0:
        return fit_text(left, width - len(right) - 1) + " " + right
    return left + " " * spaces + right


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def format_currency(amount: Any, currency_symbol: str = "RM") -> str:
    return f"{currency_symbol} {_to_float(amount):.2f}"


def format_quantity(quantity: float) -> str:
    return f"{quantity:g}"


def format_datetime(date_string: Optional[str] = None, now: Optional[datetime] = None) -> Tuple[str, str]:
    """
    Format a timestamp as receipt date and time strings.

    Args:
        date_string: ISO 8601 timestamp; missing or unparsable values use the current time
        now: Current time override (for tests)

    Returns:
        (date as dd/mm/yyyy, time as HH:MM:SS)
    """
    moment = None
    if date_string:
        try:
            moment = datetime.fromisoformat(str(date_string).replace("Z", "+00:00"))
        except ValueError:
            moment = None
    if moment is None:
        moment = now or datetime.now()
    elif moment.tzinfo is not None:
        # Receipts show the local wall clock
        moment = moment.astimezone()
    return moment.strftime("%d/%m/%Y"), moment.strftime("%H:%M:%S")


def format_receipt(order: Mapping[str, Any], receipt_config: Optional[Mapping[str, Any]] = None) -> List[str]:
    """
    Generate receipt content from order data.

    Args:
        order: Order data (items, totals, payment and cashier details)
        receipt_config: Receipt settings (store details, paper width, currency, footer)

    Returns:
        List of lines, each at most the paper width wide (except free-form footer messages)
    """
    settings: Dict[str, Any] = dict(DEFAULT_RECEIPT_CONFIG)
    settings.update(receipt_config or {})

    width = int(settings["paper_width"])
    symbol = settings["currency_symbol"]
    separator = "=" * width
    dashed = "-" * width
    lines: List[str] = []

    def money(amount):
        return format_currency(amount, symbol)

    # Store header
    if settings["store_name"]:
        lines.append(center_text(settings["store_name"].upper(), width))
    if settings["store_address"]:
        lines.append(center_text(settings["store_address"], width))
    if settings["store_phone"]:
        lines.append(center_text(settings["store_phone"], width))
    if settings["store_tax_id"]:
        lines.append(center_text(f"Tax ID: {settings['store_tax_id']}", width))
    lines.append(separator)

    # Receipt info
    date, time_of_day = format_datetime(order.get("created_at"))
    lines.append(create_line("Receipt #:", str(order.get("receipt_number") or order.get("id") or "N/A"), width))
    lines.append(create_line("Date:", date, width))
    lines.append(create_line("Time:", time_of_day, width))

    if order.get("cashier_name"):
        lines.append(create_line("Cashier:", str(order["cashier_name"]), width))
    if order.get("customer_name"):
        lines.append(create_line("Customer:", str(order["customer_name"]), width))

    lines.append(separator)

    # Items
    lines.append("ITEMS:")
    lines.append(dashed)

    items = order.get("items") or []
    for index, item in enumerate(items):
        name = item.get("product_name") or item.get("name") or f"Item {index + 1}"
        lines.append(fit_text(str(name), width))

        quantity = _to_float(item.get("quantity") or 1) or 1
        price = item.get("sell_price")
        if price is None:
            price = item.get("price")
        price = _to_float(price)

        lines.append(create_line(f"{format_quantity(quantity)} x {money(price)}", money(quantity * price), width))

        if index < len(items) - 1:
            lines.append("")

    lines.append(dashed)

    # Totals
    subtotal = _to_float(order.get("subtotal") or order.get("total_amount") or 0)
    lines.append(create_line("Subtotal:", money(subtotal), width))

    if _to_float(order.get("tax")) > 0:
        lines.append(create_line("Tax:", money(order["tax"]), width))
    if _to_float(order.get("discount")) > 0:
        lines.append(create_line("Discount:", money(order["discount"]), width))

    total = _to_float(order.get("total_amount") or subtotal)
    lines.append(separator)
    lines.append(create_line("TOTAL:", money(total), width))
    lines.append(separator)

    # Payment
    payment_method = order.get("payment_method") or "N/A"
    lines.append(create_line("Payment:", PAYMENT_METHOD_NAMES.get(payment_method, str(payment_method)), width))

    if order.get("payment_amount"):
        paid = _to_float(order["payment_amount"])
        lines.append(create_line("Paid:", money(paid), width))
        if payment_method == "cash" and paid > total:
            lines.append(create_line("Change:", money(paid - total), width))

    payment_data = order.get("payment_data") or {}
    if payment_data.get("member_name"):
        lines.append(dashed)
        lines.append(f"Member: {payment_data['member_name']}")
        if payment_data.get("member_code"):
            lines.append(f"Code: {payment_data['member_code']}")

    lines.append(separator)

    # Footer
    lines.append("")
    lines.append(center_text(settings["footer_line1"] or DEFAULT_RECEIPT_CONFIG["footer_line1"], width))
    lines.append(center_text(settings["footer_line2"] or DEFAULT_RECEIPT_CONFIG["footer_line2"], width))
    lines.append("")

    if order.get("footer_message"):
        lines.append(center_text(str(order["footer_message"]), width))
        lines.append("")

    return lines


def create_test_receipt_data() -> Dict[str, Any]:
    """Sample order printed by the test-receipt endpoint."""
    return {
        "id": "TEST001",
        "receipt_number": "TEST001",
        "created_at": datetime.now().isoformat(),
        "cashier_name": "Test Cashier",
        "items": [
            {"product_name": "Test Product 1", "quantity": 2, "sell_price": 10.50},
            {"product_name": "Test Product 2", "quantity": 1, "sell_price": 25.00},
        ],
        "subtotal": 46.00,
        "tax": 0,
        "discount": 0,
        "total_amount": 46.00,
        "payment_method": "cash",
        "payment_amount": 50.00,
    }
