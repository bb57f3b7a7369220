"""
Fiserv / First Data (Clover) merchant statements.

Layout conventions relied on:
  * "SUMMARY BY CARD TYPE" lists one row per card brand with an item count and
    amount, closed by a "Total" row;
  * "CHARGEBACKS/REVERSALS" lists dated chargeback items closed by
    "Total Chargebacks/Reversals", or carries the notice
    "No Chargebacks/Reversals for this statement period";
  * "INTERCHANGE CHARGES" itemises qualification categories (VISA CPS/...,
    MC MERIT ...) with item counts, optionally with per-brand total rows;
  * gross volume is printed as "Total Amount Submitted" in the summary block.

Fiserv statements never report TC40 fraud counts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from schemas.extraction import DetectedFormat, StatementPeriod
from statements.statement_parsers import (
    CardTypeSummary,
    ChargebackSummary,
    InterchangeSummary,
    StatementParser,
    Strategy,
    rows_by_section,
    scan_labeled_amount,
    scan_period,
    summarize_card_types,
    summarize_chargebacks,
    summarize_interchange,
)


class FiservSection(Enum):
    NEUTRAL = "neutral"
    CARD_TYPE = "card_type"
    CHARGEBACKS = "chargebacks"
    INTERCHANGE = "interchange"


TRANSITIONS: Tuple[Tuple[str, FiservSection], ...] = (
    ("summary by card type", FiservSection.CARD_TYPE),
    ("card type summary", FiservSection.CARD_TYPE),
    ("chargebacks/reversals", FiservSection.CHARGEBACKS),
    ("chargebacks / reversals", FiservSection.CHARGEBACKS),
    ("interchange charges", FiservSection.INTERCHANGE),
    ("interchange detail", FiservSection.INTERCHANGE),
    ("summary by day", FiservSection.NEUTRAL),
    ("summary by batch", FiservSection.NEUTRAL),
    ("deposits", FiservSection.NEUTRAL),
    ("adjustments", FiservSection.NEUTRAL),
    ("fees", FiservSection.NEUTRAL),
    ("service charges", FiservSection.NEUTRAL),
    ("important", FiservSection.NEUTRAL),
)

VOLUME_LABELS = ("total amount submitted", "total gross sales", "gross sales", "amounts submitted")
PERIOD_LABELS = ("statement period", "processing period", "period covered", "statement date")


@dataclass(frozen=True)
class FiservDocument:
    card_types: CardTypeSummary = field(default_factory=CardTypeSummary)
    chargebacks: ChargebackSummary = field(default_factory=ChargebackSummary)
    interchange: InterchangeSummary = field(default_factory=InterchangeSummary)


INTERCHANGE_WARNING = "{label} derived from interchange category lines; verify."


class FiservParser(StatementParser[FiservDocument]):
    name = "Fiserv"
    format = DetectedFormat.FISERV
    version = "0.2.0"

    def parse_document(self, lines: Sequence[str]) -> FiservDocument:
        sections = rows_by_section(lines, TRANSITIONS, FiservSection.NEUTRAL)
        return FiservDocument(
            card_types=summarize_card_types(sections.get(FiservSection.CARD_TYPE, ())),
            chargebacks=summarize_chargebacks(sections.get(FiservSection.CHARGEBACKS, ())),
            interchange=summarize_interchange(sections.get(FiservSection.INTERCHANGE, ())),
        )

    def strategies(self) -> Dict[str, Sequence[Strategy[FiservDocument]]]:
        return {
            "total_sales_count": (
                Strategy("fiserv:card_type_total", lambda d: d.card_types.total),
                Strategy(
                    "fiserv:card_type_sum",
                    lambda d: d.card_types.itemized_sum,
                    warning="Sales count summed from card-type rows (no Total row found); verify.",
                ),
                Strategy(
                    "fiserv:interchange_total",
                    lambda d: d.interchange.total,
                    warning="Sales count taken from the interchange Total row; verify.",
                ),
                Strategy(
                    "fiserv:interchange_sum",
                    lambda d: d.interchange.item_sum,
                    warning=INTERCHANGE_WARNING.format(label="Sales count"),
                ),
            ),
            "visa_txn_count": self._brand_strategies("visa", "Visa"),
            "mastercard_txn_count": self._brand_strategies("mastercard", "Mastercard"),
            "cnp_txn_count": (
                Strategy(
                    "fiserv:interchange_cnp",
                    lambda d: d.interchange.cnp_sum,
                    warning=INTERCHANGE_WARNING.format(label="CNP count"),
                ),
            ),
        }

    def _brand_strategies(self, brand: str, label: str) -> Sequence[Strategy[FiservDocument]]:
        return (
            Strategy(f"fiserv:card_type_{brand}", lambda d: d.card_types.brands.get(brand)),
            Strategy(f"fiserv:interchange_{brand}_total", lambda d: d.interchange.brand_totals.get(brand)),
            Strategy(
                f"fiserv:interchange_{brand}_sum",
                lambda d: d.interchange.brand_item_sums.get(brand),
                warning=INTERCHANGE_WARNING.format(label=f"{label} count"),
            ),
        )

    def chargeback_strategies(self) -> Sequence[Strategy[FiservDocument]]:
        return (
            Strategy("fiserv:chargeback_total", lambda d: d.chargebacks.total),
            Strategy(
                "fiserv:chargeback_items",
                lambda d: d.chargebacks.itemized,
                warning="Chargeback count taken by counting itemised chargeback rows; verify.",
            ),
        )

    def scan_volume(self, lines: Sequence[str]) -> Optional[Decimal]:
        return scan_labeled_amount(lines, VOLUME_LABELS)

    def scan_period(self, lines: Sequence[str]) -> Optional[StatementPeriod]:
        return scan_period(lines, PERIOD_LABELS, source="fiserv")
