from decimal import Decimal

from schemas.extraction import FieldStatus
from statements.keyword_extractor import (
    adjacent_line_extract,
    extract_keywords,
    inline_extract,
    normalize_text,
)


def test_inline_chargeback_count():
    result = extract_keywords("Chargeback Count: 45")
    assert result.get("tc15_count").value == Decimal(45)
    assert result.get("tc15_count").source == "generic:inline"


def test_adjacent_skips_blank_line():
    result = extract_keywords("\n".join(["Fraud Count", "", "12"]))
    value = result.get("tc40_count")
    assert value.value == Decimal(12)
    assert value.source == "generic:adjacent"


def test_inline_does_not_cross_lines():
    assert "tc40_count" not in inline_extract("Fraud Count\n\n12")


def test_inline_wins_over_adjacent():
    text = "Sales Count: 100\nSales Count\n999"
    result = extract_keywords(text)
    assert result.get("total_sales_count").value == Decimal(100)


def test_adjacent_lookahead_is_bounded():
    text = "\n".join(["Gross Volume", "n/a", "pending", "see page 2", "$4,000.00"])
    assert "total_sales_volume" not in adjacent_line_extract(text, lookahead=3)
    assert adjacent_line_extract(text, lookahead=4)["total_sales_volume"] == Decimal("4000.00")


def test_currency_and_separators():
    text = "Gross Volume  $500,000.00\nCNP Transactions: 1,250\nVisa Count 600"
    result = extract_keywords(text)
    assert result.get("total_sales_volume").value == Decimal("500000.00")
    assert result.get("cnp_txn_count").value == Decimal(1250)
    assert result.get("visa_txn_count").value == Decimal(600)


def test_zero_is_found_not_missing():
    result = extract_keywords("Fraud Count: 0")
    assert result.get("tc40_count").status is FieldStatus.ZERO


def test_missing_fields_are_not_found():
    result = extract_keywords("Nothing useful here")
    assert result.get("total_sales_count").status is FieldStatus.NOT_FOUND
    assert result.fields == {}


def test_normalize_text():
    assert normalize_text("a\r\nb\t\t c\n\n\n\nd  ") == "a\nb c\n\nd"
