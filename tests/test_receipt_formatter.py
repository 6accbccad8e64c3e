from datetime import datetime

import pytest

from print_bridge.receipt_formatter import (
    center_text,
    create_line,
    create_test_receipt_data,
    fit_text,
    format_currency,
    format_datetime,
    format_receipt,
)

RECEIPT_CONFIG = {
    "store_name": "Test Store",
    "store_address": "Test Address",
    "store_phone": "123-456-7890",
    "store_tax_id": "TAX123",
    "paper_width": 48,
}

ORDER = {
    "id": 17,
    "receipt_number": "R-0017",
    "created_at": "2024-03-05T14:07:09",
    "cashier_name": "Aminah",
    "customer_name": "Lee",
    "items": [
        {"product_name": "Kopi O", "quantity": 2, "sell_price": 3.5},
        {"name": "Roti Bakar", "quantity": 1, "price": 4},
    ],
    "subtotal": 11,
    "tax": 0.66,
    "discount": 1,
    "total_amount": 10.66,
    "payment_method": "cash",
    "payment_amount": 20,
}


def test_fit_text():
    assert fit_text("abcdef", 4) == "abcd"
    assert fit_text("abc", 4) == "abc"


def test_center_text():
    assert center_text("ab", 6) == "  ab"
    assert center_text("toolong", 4) == "toolong"


def test_create_line_justifies():
    line = create_line("Date:", "05/03/2024", 32)

    assert len(line) == 32
    assert line.startswith("Date:")
    assert line.endswith("05/03/2024")


def test_create_line_truncates_left_text():
    line = create_line("A very long product description", "RM 10.00", 20)

    assert line == "A very long RM 10.00"
    assert len(line) == 20


def test_format_currency():
    assert format_currency(3) == "RM 3.00"
    assert format_currency("4.5", "$") == "$ 4.50"
    assert format_currency(None) == "RM 0.00"


def test_format_datetime_from_iso_string():
    assert format_datetime("2024-03-05T14:07:09") == ("05/03/2024", "14:07:09")


@pytest.mark.parametrize("value", [None, "", "not a date"])
def test_format_datetime_falls_back_to_now(value):
    now = datetime(2023, 12, 31, 23, 59, 58)

    assert format_datetime(value, now=now) == ("31/12/2023", "23:59:58")


def test_receipt_layout():
    lines = format_receipt(ORDER, RECEIPT_CONFIG)

    assert lines[0].strip() == "TEST STORE"
    assert lines[1].strip() == "Test Address"
    assert lines[2].strip() == "123-456-7890"
    assert lines[3].strip() == "Tax ID: TAX123"
    assert lines[4] == "=" * 48
    assert create_line("Receipt #:", "R-0017", 48) in lines
    assert create_line("Date:", "05/03/2024", 48) in lines
    assert create_line("Time:", "14:07:09", 48) in lines
    assert create_line("Cashier:", "Aminah", 48) in lines
    assert create_line("Customer:", "Lee", 48) in lines
    assert all(len(line) <= 48 for line in lines)


def test_receipt_items_and_totals():
    lines = format_receipt(ORDER, RECEIPT_CONFIG)

    kopi = lines.index("Kopi O")
    assert lines[kopi + 1] == create_line("2 x RM 3.50", "RM 7.00", 48)
    assert lines[kopi + 2] == ""
    roti = lines.index("Roti Bakar")
    assert lines[roti + 1] == create_line("1 x RM 4.00", "RM 4.00", 48)

    assert create_line("Subtotal:", "RM 11.00", 48) in lines
    assert create_line("Tax:", "RM 0.66", 48) in lines
    assert create_line("Discount:", "RM 1.00", 48) in lines
    total = lines.index(create_line("TOTAL:", "RM 10.66", 48))
    assert lines[total - 1] == lines[total + 1] == "=" * 48


def test_receipt_payment_and_change():
    lines = format_receipt(ORDER, RECEIPT_CONFIG)

    assert create_line("Payment:", "Cash", 48) in lines
    assert create_line("Paid:", "RM 20.00", 48) in lines
    assert create_line("Change:", "RM 9.34", 48) in lines


def test_no_change_for_non_cash_payment():
    order = dict(ORDER, payment_method="qrpay")

    lines = format_receipt(order, RECEIPT_CONFIG)

    assert create_line("Payment:", "QR Pay", 48) in lines
    assert not any(line.startswith("Change:") for line in lines)


def test_member_details():
    order = dict(ORDER, payment_method="credit",
                 payment_data={"member_name": "Siti", "member_code": "M-42"})

    lines = format_receipt(order, RECEIPT_CONFIG)

    assert create_line("Payment:", "Member Credit", 48) in lines
    member = lines.index("Member: Siti")
    assert lines[member + 1] == "Code: M-42"


def test_footer_and_custom_message():
    lines = format_receipt(dict(ORDER, footer_message="See you soon"), RECEIPT_CONFIG)

    stripped = [line.strip() for line in lines]
    assert "Thank you for your purchase!" in stripped
    assert "Please come again" in stripped
    assert stripped[-2] == "See you soon"
    assert lines[-1] == ""


def test_empty_order_still_has_header_and_footer():
    lines = format_receipt({}, RECEIPT_CONFIG)

    assert lines[0].strip() == "TEST STORE"
    assert create_line("Receipt #:", "N/A", 48) in lines
    assert create_line("TOTAL:", "RM 0.00", 48) in lines
    assert create_line("Payment:", "N/A", 48) in lines
    assert "Please come again" in [line.strip() for line in lines]


def test_narrow_paper():
    lines = format_receipt(ORDER, dict(RECEIPT_CONFIG, paper_width=32))

    assert lines[4] == "=" * 32
    assert all(len(line) <= 32 for line in lines)


def test_unnamed_item_gets_position_label():
    lines = format_receipt({"items": [{"quantity": 1.5, "sell_price": 2}]}, RECEIPT_CONFIG)

    item = lines.index("Item 1")
    assert lines[item + 1] == create_line("1.5 x RM 2.00", "RM 3.00", 48)


def test_test_receipt_data_prints():
    lines = format_receipt(create_test_receipt_data(), RECEIPT_CONFIG)

    assert create_line("Receipt #:", "TEST001", 48) in lines
    assert create_line("TOTAL:", "RM 46.00", 48) in lines
    assert create_line("Change:", "RM 4.00", 48) in lines
