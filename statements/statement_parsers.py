from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, Generic, Iterator, List, Optional, Sequence, Tuple, TypeVar

from schemas.extraction import (
    SOURCE_CONTRACT,
    CanonicalFields,
    DetectedFormat,
    FieldValue,
    StatementPeriod,
)
from statements.format_detector import dialect_order
from statements.json_logger import get_json_logger
from statements.numeric import (
    extract_period,
    parse_currency,
    parse_number,
    row_count,
    split_label_numbers,
)

logger = get_json_logger("statements.parsers")

S = TypeVar("S", bound=Enum)
D = TypeVar("D")


# ----------------------------------------------------------------------------
# Section state machine
# ----------------------------------------------------------------------------
def heading_state(line: str, transitions: Sequence[Tuple[str, S]]) -> Optional[S]:
    """
    Return the section a heading line switches to, or None for ordinary rows.

    A heading starts with one of the dialect's phrases and carries no trailing
    numbers, so "Total Chargebacks/Reversals 3 $120.00" is a row, not a heading.
    """
    lower = line.strip().lower()
    for phrase, state in transitions:
        if lower.startswith(phrase):
            _, numbers = split_label_numbers(line)
            if not numbers:
                return state
    return None


def walk_sections(lines: Sequence[str], transitions: Sequence[Tuple[str, S]], neutral: S) -> Iterator[Tuple[S, str]]:
    """Yield (section, line) in line order; heading lines change state and are not yielded."""
    state = neutral
    for line in lines:
        next_state = heading_state(line, transitions)
        if next_state is not None:
            state = next_state
            continue
        yield state, line


def rows_by_section(lines: Sequence[str], transitions: Sequence[Tuple[str, S]], neutral: S) -> Dict[S, Tuple[str, ...]]:
    grouped: Dict[S, List[str]] = {}
    for state, line in walk_sections(lines, transitions, neutral):
        grouped.setdefault(state, []).append(line)
    return {state: tuple(rows) for state, rows in grouped.items()}


# ----------------------------------------------------------------------------
# Row classification
# ----------------------------------------------------------------------------
BRAND_PREFIXES: Tuple[Tuple[str, str], ...] = (
    ("visa", "visa"),
    ("vs ", "visa"),
    ("mastercard", "mastercard"),
    ("master card", "mastercard"),
    ("mc ", "mastercard"),
    ("discover", "discover"),
    ("ds ", "discover"),
    ("american express", "amex"),
    ("amex", "amex"),
    ("ax ", "amex"),
    ("jcb", "jcb"),
    ("diners", "diners"),
    ("debit", "debit"),
    ("db ", "debit"),
    ("ebt", "ebt"),
)

COLUMN_HEADER_WORDS = ("card type", "description", "items", "amount", "count", "volume", "plan", "rate", "reference", "tran code")
CNP_QUALIFIER_RE = re.compile(
    r"\b(?:cnp|card[\s-]not[\s-]present|e-?commerce|ecom|internet|mail/phone|mo/to|moto)\b",
    re.IGNORECASE,
)
DATED_ROW_RE = re.compile(r"^\d{1,2}/\d{1,2}(?:/\d{2,4})?\b")
NO_CHARGEBACKS_RE = re.compile(
    r"\bno\s+chargebacks?(?:\s*(?:/|and)\s*reversals?)?\b(?!\s*[:#]?\s*\$?\d)",
    re.IGNORECASE,
)
_TOTAL_BRAND_RE = re.compile(r"^(?:total\s+(?P<pre>.+)|(?P<post>.+?)\s+total)$", re.IGNORECASE)


def brand_of(label: str) -> Optional[str]:
    lower = label.strip().lower() + " "
    for prefix, brand in BRAND_PREFIXES:
        if lower.startswith(prefix):
            return brand
    return None


def is_adjustment(line: str) -> bool:
    return "adjust" in line.lower()


def is_column_header(line: str) -> bool:
    label, numbers = split_label_numbers(line)
    if numbers:
        return False
    lower = label.lower()
    return any(word in lower for word in COLUMN_HEADER_WORDS)


def is_total_label(label: str) -> bool:
    lower = label.strip().lower().rstrip(":")
    return lower in {"total", "totals", "grand total"} or lower.startswith("total ") or lower.startswith("grand total")


def total_brand(label: str) -> Optional[str]:
    """Brand of a "Total Visa" / "Visa Total" row, or None."""
    m = _TOTAL_BRAND_RE.match(label.strip().rstrip(":"))
    if not m:
        return None
    return brand_of(m.group("pre") or m.group("post") or "")


def is_total_row(label: str) -> bool:
    return is_total_label(label) or total_brand(label) is not None


def has_cnp_qualifier(label: str) -> bool:
    return bool(CNP_QUALIFIER_RE.search(label))


def has_no_chargebacks_notice(lines: Sequence[str]) -> bool:
    return any(NO_CHARGEBACKS_RE.search(line) for line in lines)


# ----------------------------------------------------------------------------
# Section summaries (immutable, computed once per document)
# ----------------------------------------------------------------------------
@dataclass(frozen=True)
class CardTypeSummary:
    total: Optional[int] = None
    brands: Dict[str, int] = field(default_factory=dict)
    itemized_sum: Optional[int] = None


def summarize_card_types(rows: Sequence[str]) -> CardTypeSummary:
    """
    Card-type breakdown: brand rows accumulate per brand; an explicit Total row
    is kept separately and is authoritative over the itemized sum.
    """
    total: Optional[int] = None
    brands: Dict[str, int] = {}
    itemized: Optional[int] = None
    for line in rows:
        if is_adjustment(line) or is_column_header(line):
            continue
        label, _ = split_label_numbers(line)
        count = row_count(line)
        if count is None or not label:
            continue
        if is_total_row(label):
            brand = total_brand(label)
            if brand is not None:
                brands[brand] = count
            elif total is None:
                total = count
            continue
        brand = brand_of(label)
        if brand is not None:
            brands[brand] = brands.get(brand, 0) + count
        itemized = (itemized or 0) + count
    return CardTypeSummary(total=total, brands=brands, itemized_sum=itemized)


@dataclass(frozen=True)
class InterchangeSummary:
    total: Optional[int] = None
    brand_totals: Dict[str, int] = field(default_factory=dict)
    brand_item_sums: Dict[str, int] = field(default_factory=dict)
    item_sum: Optional[int] = None
    cnp_sum: Optional[int] = None


def summarize_interchange(rows: Sequence[str]) -> InterchangeSummary:
    total: Optional[int] = None
    brand_totals: Dict[str, int] = {}
    brand_items: Dict[str, int] = {}
    item_sum: Optional[int] = None
    cnp_sum: Optional[int] = None
    for line in rows:
        if is_adjustment(line) or is_column_header(line):
            continue
        label, _ = split_label_numbers(line)
        count = row_count(line)
        if count is None or not label:
            continue
        if is_total_row(label):
            brand = total_brand(label)
            if brand is not None:
                brand_totals[brand] = count
            elif total is None:
                total = count
            continue
        brand = brand_of(label)
        if brand is not None:
            brand_items[brand] = brand_items.get(brand, 0) + count
        item_sum = (item_sum or 0) + count
        if has_cnp_qualifier(label):
            cnp_sum = (cnp_sum or 0) + count
    return InterchangeSummary(
        total=total,
        brand_totals=brand_totals,
        brand_item_sums=brand_items,
        item_sum=item_sum,
        cnp_sum=cnp_sum,
    )


@dataclass(frozen=True)
class ChargebackSummary:
    total: Optional[int] = None
    itemized: Optional[int] = None


def summarize_chargebacks(rows: Sequence[str]) -> ChargebackSummary:
    total: Optional[int] = None
    itemized = 0
    for line in rows:
        if is_adjustment(line):
            continue
        label, _ = split_label_numbers(line)
        if is_total_label(label):
            count = row_count(line)
            if count is not None and total is None:
                total = count
            continue
        if DATED_ROW_RE.match(line.strip()) and "reversal" not in line.lower():
            itemized += 1
    return ChargebackSummary(total=total, itemized=itemized or None)


# ----------------------------------------------------------------------------
# Dedicated single-purpose scans
# ----------------------------------------------------------------------------
def _amount_after(text: str) -> Optional[Decimal]:
    amount = parse_currency(text)
    if amount is None:
        _, numbers = split_label_numbers(text)
        amount = parse_number(numbers[0]) if numbers else None
    return amount


def scan_labeled_amount(lines: Sequence[str], labels: Sequence[str]) -> Optional[Decimal]:
    """Amount on the first line carrying the highest-priority label."""
    for label in labels:
        for line in lines:
            idx = line.lower().find(label)
            if idx < 0:
                continue
            amount = _amount_after(line[idx + len(label):])
            if amount is not None and amount >= 0:
                return amount
    return None


def scan_period(lines: Sequence[str], labels: Sequence[str], source: str) -> Optional[StatementPeriod]:
    """Period on a labelled line, or on the line right after a bare label."""
    for label in labels:
        for i, line in enumerate(lines):
            idx = line.lower().find(label)
            if idx < 0:
                continue
            period = extract_period(line[idx + len(label):], source=source)
            if period is None and i + 1 < len(lines):
                period = extract_period(lines[i + 1], source=source)
            if period is not None:
                return period
    return None


# ----------------------------------------------------------------------------
# Strategies
# ----------------------------------------------------------------------------
@dataclass(frozen=True)
class Strategy(Generic[D]):
    """One way of resolving a field; `warning` marks a reduced-confidence fallback."""

    source: str
    resolve: Callable[[D], Optional[object]]
    warning: Optional[str] = None


def resolve_first(strategies: Sequence[Strategy[D]], document: D) -> Tuple[FieldValue, Optional[str]]:
    """Try strategies in priority order; the first that yields a non-negative number wins."""
    for strategy in strategies:
        raw = strategy.resolve(document)
        if raw is None:
            continue
        value = Decimal(str(raw))
        if value < 0:
            continue
        return FieldValue.of(value, strategy.source), strategy.warning
    return FieldValue.not_found(), None


def contract_zero_warning(name: str) -> str:
    return (
        f"{name} statements do not report fraud (TC40) activity; fraud count and amount recorded as 0. "
        "Enter them manually if you have them from another source."
    )


@dataclass(frozen=True)
class DialectResult:
    format: DetectedFormat
    name: str
    fields: CanonicalFields
    warnings: Tuple[str, ...] = ()

    @property
    def evidence_count(self) -> int:
        return self.fields.evidence_count()


class StatementParser(ABC, Generic[D]):
    """Base interface for dialect-specific statement extractors."""

    name: str = "BASE"
    format: DetectedFormat = DetectedFormat.UNKNOWN
    version: str = "0.1.0"
    # Dialects that never report fraud counts fix these to ZERO by contract.
    contract_zero_fields: Tuple[str, ...] = ("tc40_count", "fraud_amount_usd")

    def supports(self, detected: DetectedFormat) -> bool:
        return detected is self.format

    @abstractmethod
    def parse_document(self, lines: Sequence[str]) -> D:
        """Walk the lines once and return the dialect's immutable section data."""
        raise NotImplementedError

    @abstractmethod
    def strategies(self) -> Dict[str, Sequence[Strategy[D]]]:
        """Ordered resolution strategies per canonical count/amount field."""
        raise NotImplementedError

    @abstractmethod
    def scan_volume(self, lines: Sequence[str]) -> Optional[Decimal]:
        raise NotImplementedError

    @abstractmethod
    def scan_period(self, lines: Sequence[str]) -> Optional[StatementPeriod]:
        raise NotImplementedError

    def chargeback_strategies(self) -> Sequence[Strategy[D]]:
        return ()

    def extract(self, lines: Sequence[str]) -> DialectResult:
        document = self.parse_document(lines)
        values: Dict[str, FieldValue] = {}
        warnings: List[str] = []

        for field_name, strategies in self.strategies().items():
            value, warning = resolve_first(strategies, document)
            values[field_name] = value
            if warning:
                warnings.append(warning)

        # An explicit "no chargebacks" notice short-circuits every other chargeback strategy
        if has_no_chargebacks_notice(lines):
            values["tc15_count"] = FieldValue.zero(f"{self.format.value}:no_chargebacks_notice")
        else:
            value, warning = resolve_first(self.chargeback_strategies(), document)
            values["tc15_count"] = value
            if warning:
                warnings.append(warning)

        volume = self.scan_volume(lines)
        values["total_sales_volume"] = (
            FieldValue.of(volume, f"{self.format.value}:gross_volume") if volume is not None else FieldValue.not_found()
        )

        for field_name in self.contract_zero_fields:
            values[field_name] = FieldValue.zero(SOURCE_CONTRACT)
        if self.contract_zero_fields:
            warnings.append(contract_zero_warning(self.name))

        fields = CanonicalFields(statement_period=self.scan_period(lines), **values)
        result = DialectResult(format=self.format, name=self.name, fields=fields, warnings=tuple(warnings))
        logger.info(
            "dialect_extracted",
            extra={"extra": {"dialect": self.format.value, "evidence": result.evidence_count, "missing": fields.missing()}},
        )
        return result


class ParserRegistry:
    def __init__(self, parsers: Optional[List[StatementParser]] = None) -> None:
        self.parsers = parsers or []

    def for_format(self, detected: DetectedFormat) -> Optional[StatementParser]:
        for p in self.parsers:
            if p.supports(detected):
                return p
        return None

    def ordered(self, priority: Optional[Sequence[str]] = None) -> List[StatementParser]:
        rank = {fmt: i for i, fmt in enumerate(dialect_order(priority))}
        return sorted(self.parsers, key=lambda p: rank.get(p.format, len(rank)))

    def race(self, lines: Sequence[str], priority: Optional[Sequence[str]] = None) -> Tuple[Optional[DialectResult], List[DialectResult]]:
        """
        Run every dialect over the same lines and pick the one with the most
        evidence-backed fields. Ties go to the priority order, but a tie at
        the top (or no evidence at all) is not a decisive win.
        """
        results = [p.extract(lines) for p in self.ordered(priority)]
        ranked = sorted(results, key=lambda r: -r.evidence_count)
        winner: Optional[DialectResult] = None
        if ranked and ranked[0].evidence_count > 0:
            if len(ranked) == 1 or ranked[0].evidence_count > ranked[1].evidence_count:
                winner = ranked[0]
        logger.info(
            "dialect_race",
            extra={"extra": {
                "scores": {r.format.value: r.evidence_count for r in results},
                "winner": winner.format.value if winner else None,
            }},
        )
        return winner, results
