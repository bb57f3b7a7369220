"""
TSYS / Global Payments merchant statements.

These statements open with an ACTIVITY SUMMARY block (Number of Sales,
Gross Sales Volume, Chargebacks, Card Not Present Sales), follow with a
CARD TYPE BREAKDOWN whose rows carry two-letter plan codes (VS, MC, DS, AX),
and itemise interchange in an INTERCHANGE QUALIFICATION DETAIL section.
Fraud (TC40) counts are not reported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from schemas.extraction import DetectedFormat, StatementPeriod
from statements.numeric import row_count, split_label_numbers
from statements.statement_parsers import (
    CardTypeSummary,
    ChargebackSummary,
    InterchangeSummary,
    StatementParser,
    Strategy,
    has_cnp_qualifier,
    is_adjustment,
    is_column_header,
    rows_by_section,
    scan_labeled_amount,
    scan_period,
    summarize_card_types,
    summarize_chargebacks,
    summarize_interchange,
)


class TsysSection(Enum):
    NEUTRAL = "neutral"
    ACTIVITY_SUMMARY = "activity_summary"
    CARD_TYPE = "card_type"
    INTERCHANGE = "interchange"
    CHARGEBACKS = "chargebacks"


TRANSITIONS: Tuple[Tuple[str, TsysSection], ...] = (
    ("activity summary", TsysSection.ACTIVITY_SUMMARY),
    ("deposit summary", TsysSection.ACTIVITY_SUMMARY),
    ("card type breakdown", TsysSection.CARD_TYPE),
    ("plan summary", TsysSection.CARD_TYPE),
    ("summary by card type", TsysSection.CARD_TYPE),
    ("interchange qualification detail", TsysSection.INTERCHANGE),
    ("interchange detail", TsysSection.INTERCHANGE),
    ("chargeback detail", TsysSection.CHARGEBACKS),
    ("chargebacks and reversals", TsysSection.CHARGEBACKS),
    ("fees", TsysSection.NEUTRAL),
    ("fee summary", TsysSection.NEUTRAL),
    ("adjustments", TsysSection.NEUTRAL),
    ("messages", TsysSection.NEUTRAL),
    ("deposit detail", TsysSection.NEUTRAL),
)

VOLUME_LABELS = ("gross sales volume", "total gross sales", "gross sales amount", "gross sales")
PERIOD_LABELS = ("processing month", "statement period", "statement date range", "reporting period")

_SALES_COUNT_LABELS = ("number of sales", "total sales count", "sales count", "total number of transactions")
_CHARGEBACK_LABELS = ("chargebacks", "chargeback count", "number of chargebacks")
_CNP_LABELS = ("card not present", "keyed/e-commerce", "e-commerce sales", "ecommerce sales")


@dataclass(frozen=True)
class ActivitySummary:
    sales_count: Optional[int] = None
    cnp_count: Optional[int] = None
    chargeback_count: Optional[int] = None


def summarize_activity(rows: Sequence[str]) -> ActivitySummary:
    """Labelled count rows of the activity summary; first occurrence of each wins."""
    found: Dict[str, int] = {}
    for line in rows:
        if is_adjustment(line) or is_column_header(line):
            continue
        label, _ = split_label_numbers(line)
        count = row_count(line)
        if count is None:
            continue
        lower = label.lower()
        if "sales_count" not in found and any(lower.startswith(l) for l in _SALES_COUNT_LABELS):
            found["sales_count"] = count
        elif "chargeback_count" not in found and any(lower.startswith(l) for l in _CHARGEBACK_LABELS) and "reversal" not in lower:
            found["chargeback_count"] = count
        elif "cnp_count" not in found and (any(l in lower for l in _CNP_LABELS) or has_cnp_qualifier(lower)):
            found["cnp_count"] = count
    return ActivitySummary(**found)


@dataclass(frozen=True)
class TsysDocument:
    activity: ActivitySummary = field(default_factory=ActivitySummary)
    card_types: CardTypeSummary = field(default_factory=CardTypeSummary)
    interchange: InterchangeSummary = field(default_factory=InterchangeSummary)
    chargebacks: ChargebackSummary = field(default_factory=ChargebackSummary)


INTERCHANGE_WARNING = "{label} derived from interchange category lines; verify."


class TsysParser(StatementParser[TsysDocument]):
    name = "TSYS"
    format = DetectedFormat.TSYS
    version = "0.2.0"

    def parse_document(self, lines: Sequence[str]) -> TsysDocument:
        sections = rows_by_section(lines, TRANSITIONS, TsysSection.NEUTRAL)
        return TsysDocument(
            activity=summarize_activity(sections.get(TsysSection.ACTIVITY_SUMMARY, ())),
            card_types=summarize_card_types(sections.get(TsysSection.CARD_TYPE, ())),
            interchange=summarize_interchange(sections.get(TsysSection.INTERCHANGE, ())),
            chargebacks=summarize_chargebacks(sections.get(TsysSection.CHARGEBACKS, ())),
        )

    def strategies(self) -> Dict[str, Sequence[Strategy[TsysDocument]]]:
        return {
            "total_sales_count": (
                Strategy("tsys:card_type_total", lambda d: d.card_types.total),
                Strategy("tsys:activity_sales_count", lambda d: d.activity.sales_count),
                Strategy(
                    "tsys:card_type_sum",
                    lambda d: d.card_types.itemized_sum,
                    warning="Sales count summed from card-type rows (no Total row found); verify.",
                ),
                Strategy(
                    "tsys:interchange_sum",
                    lambda d: d.interchange.item_sum,
                    warning=INTERCHANGE_WARNING.format(label="Sales count"),
                ),
            ),
            "visa_txn_count": self._brand_strategies("visa", "Visa"),
            "mastercard_txn_count": self._brand_strategies("mastercard", "Mastercard"),
            "cnp_txn_count": (
                Strategy("tsys:activity_cnp", lambda d: d.activity.cnp_count),
                Strategy(
                    "tsys:interchange_cnp",
                    lambda d: d.interchange.cnp_sum,
                    warning=INTERCHANGE_WARNING.format(label="CNP count"),
                ),
            ),
        }

    def _brand_strategies(self, brand: str, label: str) -> Sequence[Strategy[TsysDocument]]:
        return (
            Strategy(f"tsys:card_type_{brand}", lambda d: d.card_types.brands.get(brand)),
            Strategy(f"tsys:interchange_{brand}_total", lambda d: d.interchange.brand_totals.get(brand)),
            Strategy(
                f"tsys:interchange_{brand}_sum",
                lambda d: d.interchange.brand_item_sums.get(brand),
                warning=INTERCHANGE_WARNING.format(label=f"{label} count"),
            ),
        )

    def chargeback_strategies(self) -> Sequence[Strategy[TsysDocument]]:
        return (
            Strategy("tsys:activity_chargebacks", lambda d: d.activity.chargeback_count),
            Strategy("tsys:chargeback_total", lambda d: d.chargebacks.total),
            Strategy(
                "tsys:chargeback_items",
                lambda d: d.chargebacks.itemized,
                warning="Chargeback count taken by counting itemised chargeback rows; verify.",
            ),
        )

    def scan_volume(self, lines: Sequence[str]) -> Optional[Decimal]:
        return scan_labeled_amount(lines, VOLUME_LABELS)

    def scan_period(self, lines: Sequence[str]) -> Optional[StatementPeriod]:
        return scan_period(lines, PERIOD_LABELS, source="tsys")
