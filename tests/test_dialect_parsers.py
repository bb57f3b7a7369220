from decimal import Decimal

from schemas.extraction import SOURCE_CONTRACT, DetectedFormat, FieldStatus
from statements.fiserv_parser import FiservParser, FiservSection, TRANSITIONS as FISERV_TRANSITIONS
from statements.statement_parsers import (
    ParserRegistry,
    has_no_chargebacks_notice,
    resolve_first,
    Strategy,
    walk_sections,
)
from statements.tsys_parser import TsysParser


def test_walk_sections_switches_on_headings(fiserv_lines):
    pairs = list(walk_sections(fiserv_lines, FISERV_TRANSITIONS, FiservSection.NEUTRAL))
    by_line = {line: state for state, line in pairs}
    assert by_line["Visa 420 $31,200.00"] is FiservSection.CARD_TYPE
    assert by_line["VISA CNP 120 $11,200.00"] is FiservSection.INTERCHANGE
    assert by_line["Monthly Service Fee $10.00"] is FiservSection.NEUTRAL
    # heading lines are consumed, not yielded
    assert "SUMMARY BY CARD TYPE" not in by_line


def test_resolve_first_prefers_earlier_strategy():
    strategies = [
        Strategy("a", lambda d: None),
        Strategy("b", lambda d: 7, warning="fallback"),
        Strategy("c", lambda d: 9),
    ]
    value, warning = resolve_first(strategies, object())
    assert value.value == Decimal(7)
    assert value.source == "b"
    assert warning == "fallback"


def test_resolve_first_nothing_found():
    value, warning = resolve_first([Strategy("a", lambda d: None)], object())
    assert value.status is FieldStatus.NOT_FOUND
    assert warning is None


def test_no_chargebacks_notice_variants():
    assert has_no_chargebacks_notice(["No Chargebacks/Reversals for this statement period"])
    assert has_no_chargebacks_notice(["NO CHARGEBACKS THIS MONTH"])
    assert not has_no_chargebacks_notice(["No chargebacks: 3"])


def test_fiserv_sample(fiserv_lines):
    result = FiservParser().extract(fiserv_lines)
    f = result.fields
    assert f.total_sales_count.value == Decimal(720)
    assert f.total_sales_count.source == "fiserv:card_type_total"
    assert f.visa_txn_count.value == Decimal(420)
    assert f.mastercard_txn_count.value == Decimal(260)
    assert f.cnp_txn_count.value == Decimal(210)
    assert f.total_sales_volume.value == Decimal("52310.44")
    assert f.tc15_count.status is FieldStatus.ZERO
    assert f.tc15_count.source == "fiserv:no_chargebacks_notice"
    assert f.statement_period.label == "Jan 2026"
    assert any("interchange" in w for w in result.warnings)


def test_fiserv_never_reports_fraud(fiserv_lines):
    f = FiservParser().extract(fiserv_lines).fields
    for name in ("tc40_count", "fraud_amount_usd"):
        value = getattr(f, name)
        assert value.status is FieldStatus.ZERO
        assert value.source == SOURCE_CONTRACT
        assert not value.is_evidence


def test_fiserv_chargeback_total_row_wins_over_itemized():
    lines = [
        "First Data Merchant Services",
        "CHARGEBACKS/REVERSALS",
        "Date Reference Amount",
        "01/12/26 4410001 $45.00",
        "01/20/26 4410002 $80.00",
        "01/22/26 4410003 $10.00",
        "Total Chargebacks/Reversals 2 $125.00",
    ]
    result = FiservParser().extract(lines)
    assert result.fields.tc15_count.value == Decimal(2)
    assert result.fields.tc15_count.source == "fiserv:chargeback_total"


def test_fiserv_itemized_chargebacks_fallback_warns():
    lines = [
        "CHARGEBACKS/REVERSALS",
        "01/12/26 4410001 $45.00",
        "01/20/26 4410002 $80.00",
        "Reversal 01/25/26 4410001 $45.00",
    ]
    result = FiservParser().extract(lines)
    assert result.fields.tc15_count.value == Decimal(2)
    assert any("itemised chargeback rows" in w for w in result.warnings)


def test_fiserv_card_type_sum_without_total_row():
    lines = [
        "SUMMARY BY CARD TYPE",
        "Visa 10 $100.00",
        "Mastercard 5 $50.00",
        "Adjustment Visa 3 $30.00",
    ]
    result = FiservParser().extract(lines)
    assert result.fields.total_sales_count.value == Decimal(15)
    assert result.fields.visa_txn_count.value == Decimal(10)
    assert any("no Total row" in w for w in result.warnings)


def test_tsys_sample(tsys_lines):
    result = TsysParser().extract(tsys_lines)
    f = result.fields
    assert f.total_sales_count.value == Decimal(310)
    assert f.total_sales_count.source == "tsys:activity_sales_count"
    assert f.visa_txn_count.value == Decimal(180)
    assert f.mastercard_txn_count.value == Decimal(130)
    assert f.cnp_txn_count.value == Decimal(95)
    assert f.cnp_txn_count.source == "tsys:activity_cnp"
    assert f.tc15_count.value == Decimal(3)
    assert f.total_sales_volume.value == Decimal("18450.00")
    assert f.statement_period.label == "Feb 2026"
    assert f.tc40_count.source == SOURCE_CONTRACT


def test_tsys_card_type_total_beats_activity_count(tsys_lines):
    lines = list(tsys_lines)
    lines.insert(lines.index("INTERCHANGE QUALIFICATION DETAIL"), "Total 312 $18,450.00")
    result = TsysParser().extract(lines)
    assert result.fields.total_sales_count.value == Decimal(312)
    assert result.fields.total_sales_count.source == "tsys:card_type_total"


def test_registry_race_picks_the_dialect_with_more_evidence(unmarked_tsys_lines):
    registry = ParserRegistry([FiservParser(), TsysParser()])
    winner, results = registry.race(unmarked_tsys_lines)
    assert winner is not None
    assert winner.format is DetectedFormat.TSYS
    assert len(results) == 2


def test_registry_race_without_evidence_has_no_winner():
    registry = ParserRegistry([FiservParser(), TsysParser()])
    winner, results = registry.race(["Hello", "Nothing to see here"])
    assert winner is None
    assert all(r.evidence_count == 0 for r in results)


def test_registry_race_tie_is_not_decisive():
    registry = ParserRegistry([FiservParser(), TsysParser()])
    # both dialects find the same "Gross Sales" amount and nothing else
    winner, _ = registry.race(["Gross Sales $1,000.00"])
    assert winner is None


def test_fiserv_interchange_categories_ending_in_digits():
    lines = [
        "INTERCHANGE CHARGES",
        "MC MERIT 3 170 $9,110.44",
        "VISA CPS RETAIL 2 300 $20,000.00",
    ]
    f = FiservParser().extract(lines).fields
    assert f.mastercard_txn_count.value == Decimal(170)
    assert f.visa_txn_count.value == Decimal(300)
    assert f.total_sales_count.value == Decimal(470)
    assert f.total_sales_count.source == "fiserv:interchange_sum"


def test_fiserv_no_chargebacks_notice_beats_chargeback_rows():
    lines = [
        "CHARGEBACKS/REVERSALS",
        "No Chargebacks/Reversals for this statement period",
        "01/12/26 4410001 $45.00",
        "Total Chargebacks/Reversals 2 $125.00",
    ]
    tc15 = FiservParser().extract(lines).fields.tc15_count
    assert tc15.status is FieldStatus.ZERO
    assert tc15.source == "fiserv:no_chargebacks_notice"


def test_tsys_no_chargebacks_notice_beats_chargeback_amounts(tsys_lines):
    lines = list(tsys_lines) + [
        "CHARGEBACK DETAIL",
        "Total Chargebacks $120.00",
        "No Chargebacks/Reversals for this statement period",
    ]
    tc15 = TsysParser().extract(lines).fields.tc15_count
    assert tc15.status is FieldStatus.ZERO
    assert tc15.source == "tsys:no_chargebacks_notice"
