from datetime import date
from decimal import Decimal

import pytest

from statements.numeric import (
    extract_period,
    parse_currency,
    parse_int,
    parse_number,
    period_from_filename,
    row_amount,
    row_count,
    split_label_numbers,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("$1,234.56", Decimal("1234.56")),
        ("1,234", Decimal("1234")),
        ("(45.00)", Decimal("-45.00")),
        ("-12", Decimal("-12")),
        ("  0 ", Decimal("0")),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "n/a", "12abc", "$"])
def test_parse_number_rejects_non_numbers(raw):
    assert parse_number(raw) is None


def test_parse_int_skips_currency_and_decimals():
    assert parse_int("Visa $10.00 1,234 items") == 1234
    assert parse_int("Rate 2.95") is None


def test_parse_currency_takes_first_amount():
    assert parse_currency("Gross Sales 12 $1,500.25 $3.00") == Decimal("1500.25")


def test_split_label_numbers_peels_trailing_tokens():
    assert split_label_numbers("Visa 120 $6,000.00") == ("Visa", ["120", "$6,000.00"])
    assert split_label_numbers("SUMMARY BY CARD TYPE") == ("SUMMARY BY CARD TYPE", [])


def test_category_name_ending_in_digit_stays_in_label():
    assert split_label_numbers("MC MERIT 3 170 $9,110.44") == ("MC MERIT 3", ["170", "$9,110.44"])
    assert split_label_numbers("VISA CPS RETAIL 2 300 $ 20,000.00") == ("VISA CPS RETAIL 2", ["300", "20,000.00"])
    assert row_count("MC MERIT 3 170 $9,110.44") == 170
    assert row_amount("MC MERIT 3 170 $9,110.44") == Decimal("9110.44")
    # no amount on the row: nothing to anchor on, the first count is kept
    assert row_count("Chargebacks 3") == 3


def test_row_count_and_amount():
    line = "Mastercard 260 $15,110.44"
    assert row_count(line) == 260
    assert row_amount(line) == Decimal("15110.44")
    assert row_count("Gross Sales Volume $18,450.00") is None


def test_numeric_range_uses_end_month():
    period = extract_period("Statement Period 12/15/25 - 01/14/26")
    assert period is not None
    assert (period.year, period.month_index) == (2026, 0)
    assert period.start == date(2025, 12, 15)
    assert period.end == date(2026, 1, 14)
    assert period.label == "Jan 2026"


def test_written_range():
    period = extract_period("January 1, 2026 through January 31, 2026")
    assert period is not None
    assert period.label == "Jan 2026"


@pytest.mark.parametrize(
    "text,label",
    [
        ("Processing Month: February 2026", "Feb 2026"),
        ("Sept 2025 statement", "Sep 2025"),
        ("Period 2026-03", "Mar 2026"),
        ("Month 04/2026", "Apr 2026"),
        ("2026-05-01 to 2026-05-31", "May 2026"),
    ],
)
def test_single_month_labels(text, label):
    period = extract_period(text)
    assert period is not None
    assert period.label == label


def test_extract_period_none_without_date():
    assert extract_period("Total Amount Submitted $52,310.44") is None


@pytest.mark.parametrize(
    "filename,label",
    [
        ("statement_jan_2026.csv", "Jan 2026"),
        ("2026-01-fiserv.pdf", "Jan 2026"),
        ("March-2025.pdf", "Mar 2025"),
        ("tsys_2025_december.pdf", "Dec 2025"),
    ],
)
def test_period_from_filename(filename, label):
    period = period_from_filename(filename)
    assert period is not None
    assert period.label == label
    assert period.source == "filename"


def test_period_from_filename_without_date():
    assert period_from_filename("statement.pdf") is None
