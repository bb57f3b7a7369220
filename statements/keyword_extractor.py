"""
Generic two-pass keyword extraction over free statement text.

1. Inline pass: label and value on the same line, e.g. "Sales Count: 10,000"
   or "Gross Volume  $500,000.00". Ordered regexes per field;
   the first one that matches wins.
2. Adjacent pass: label alone on a line with the value on one of the next
   few non-empty lines, e.g. "Chargeback Count\\n45".

Inline results take precedence; the adjacent pass only fills fields the inline
pass missed. This extractor backs CSV summary exports and any PDF whose
layout no dialect recognised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional, Pattern, Tuple

from schemas.extraction import FieldValue
from settings.config import settings
from statements.numeric import parse_number

NUM = r"(\$?[0-9][0-9,]*(?:\.[0-9]+)?)"

KEYWORD_PATTERNS: Dict[str, Tuple[Pattern[str], ...]] = {
    "total_sales_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        rf"sales\s+count[ \t:*]+{NUM}",
        rf"total\s+sales[ \t:*]+{NUM}",
        rf"transaction\s+count[ \t:*]+{NUM}",
        rf"total\s+transactions?[ \t:*]+{NUM}",
        rf"(?:total\s+)?(?:txn|trx)\s+count[ \t:*]+{NUM}",
        rf"no\.?\s+of\s+transactions?[ \t:*]+{NUM}",
        rf"purchase\s+transactions?[ \t:*]+{NUM}",
        rf"total\s+items?[ \t:*]+{NUM}",
    )),
    "total_sales_volume": tuple(re.compile(p, re.IGNORECASE) for p in (
        rf"gross\s+volume[ \t:*$]+{NUM}",
        rf"gross\s+sales[ \t:*$]+{NUM}",
        rf"total\s+volume[ \t:*$]+{NUM}",
        rf"sales\s+volume[ \t:*$]+{NUM}",
        rf"total\s+sales\s+(?:amount|volume)[ \t:*$]+{NUM}",
        rf"gross\s+amount[ \t:*$]+{NUM}",
        rf"net\s+sales[ \t:*$]+{NUM}",
        rf"gross\s+receipts[ \t:*$]+{NUM}",
        rf"processing\s+volume[ \t:*$]+{NUM}",
    )),
    "tc15_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        rf"chargeback\s+count[ \t:*]+{NUM}",
        rf"total\s+chargebacks?[ \t:*]+{NUM}",
        rf"dispute\s+count[ \t:*]+{NUM}",
        rf"total\s+disputes?[ \t:*]+{NUM}",
        rf"no\.?\s+of\s+chargebacks?[ \t:*]+{NUM}",
        rf"cb\s+count[ \t:*]+{NUM}",
        rf"tc[-\s]?15[ \t:*]+{NUM}",
        rf"retrieval\s+requests?[ \t:*]+{NUM}",
        rf"dispute\s+(?:items?|transactions?)[ \t:*]+{NUM}",
    )),
    "tc40_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        rf"fraud\s+count[ \t:*]+{NUM}",
        rf"total\s+fraud[ \t:*]+{NUM}",
        rf"fraud\s+reports?[ \t:*]+{NUM}",
        rf"tc[-\s]?40[ \t:*]+{NUM}",
        rf"fraudulent\s+transactions?[ \t:*]+{NUM}",
        rf"confirmed\s+fraud[ \t:*]+{NUM}",
        rf"fraud\s+transactions?[ \t:*]+{NUM}",
        rf"fraud\s+items?[ \t:*]+{NUM}",
    )),
    "fraud_amount_usd": tuple(re.compile(p, re.IGNORECASE) for p in (
        rf"fraud\s+(?:amount|volume|dollars?)[ \t:*$]+{NUM}",
        rf"total\s+fraud\s+amount[ \t:*$]+{NUM}",
        rf"fraudulent\s+(?:amount|volume)[ \t:*$]+{NUM}",
        rf"tc[-\s]?40\s+(?:amount|volume)[ \t:*$]+{NUM}",
    )),
    "cnp_txn_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        rf"cnp\s+(?:transactions?|count)[ \t:*]+{NUM}",
        rf"card[\s-]not[\s-]present[ \t:*]+{NUM}",
        rf"e[\s-]?commerce\s+(?:transactions?|count)[ \t:*]+{NUM}",
        rf"online\s+(?:transactions?|count)[ \t:*]+{NUM}",
        rf"internet\s+transactions?[ \t:*]+{NUM}",
        rf"ecom(?:merce)?\s+(?:transactions?|count)[ \t:*]+{NUM}",
    )),
    "visa_txn_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        rf"visa\s+(?:transaction\s+)?(?:count|transactions?|items?)[ \t:*]+{NUM}",
        rf"total\s+visa[ \t:*]+{NUM}",
    )),
    "mastercard_txn_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        rf"master\s?card\s+(?:transaction\s+)?(?:count|transactions?|items?)[ \t:*]+{NUM}",
        rf"total\s+master\s?card[ \t:*]+{NUM}",
        rf"\bmc\s+(?:count|transactions?)[ \t:*]+{NUM}",
    )),
}

ADJACENT_LABELS: Dict[str, Tuple[Pattern[str], ...]] = {
    "total_sales_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        r"^sales\s+count$", r"^total\s+(?:transactions?|sales)$", r"^transaction\s+count$", r"^(?:total\s+)?(?:txn|trx)\s+count$",
    )),
    "total_sales_volume": tuple(re.compile(p, re.IGNORECASE) for p in (
        r"^gross\s+volume$", r"^gross\s+sales$", r"^(?:total\s+)?sales\s+volume$", r"^processing\s+volume$", r"^gross\s+amount$",
    )),
    "tc15_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        r"^chargeback\s+count$", r"^total\s+chargebacks?$", r"^dispute\s+count$", r"^total\s+disputes?$", r"^cb\s+count$",
    )),
    "tc40_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        r"^fraud\s+count$", r"^total\s+fraud$", r"^fraud\s+reports?$", r"^fraudulent\s+transactions?$",
    )),
    "fraud_amount_usd": tuple(re.compile(p, re.IGNORECASE) for p in (
        r"^fraud\s+amount$", r"^total\s+fraud\s+amount$", r"^fraudulent\s+amount$",
    )),
    "cnp_txn_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        r"^cnp\s+(?:transactions?|count)$", r"^card[\s-]not[\s-]present$", r"^e[\s-]?commerce\s+(?:count|transactions?)$",
    )),
    "visa_txn_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        r"^visa\s+(?:count|transactions?)$", r"^total\s+visa$",
    )),
    "mastercard_txn_count": tuple(re.compile(p, re.IGNORECASE) for p in (
        r"^master\s?card\s+(?:count|transactions?)$", r"^total\s+master\s?card$",
    )),
}

_LEADING_NUMBER_RE = re.compile(r"^\$?\s*([0-9][0-9,]*(?:\.[0-9]+)?)")


def normalize_text(raw: str) -> str:
    text = raw.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _non_negative(raw: Optional[str]) -> Optional[Decimal]:
    value = parse_number(raw)
    if value is None or value < 0:
        return None
    return value


def inline_extract(text: str) -> Dict[str, Decimal]:
    extracted: Dict[str, Decimal] = {}
    for field_name, patterns in KEYWORD_PATTERNS.items():
        for pattern in patterns:
            m = pattern.search(text)
            if not m:
                continue
            value = _non_negative(m.group(1))
            if value is not None:
                extracted[field_name] = value
                break
    return extracted


def adjacent_line_extract(text: str, lookahead: Optional[int] = None) -> Dict[str, Decimal]:
    reach = lookahead if lookahead is not None else settings.ADJACENT_LOOKAHEAD_LINES
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    extracted: Dict[str, Decimal] = {}
    for i, line in enumerate(lines):
        for field_name, patterns in ADJACENT_LABELS.items():
            if field_name in extracted:
                continue
            if not any(p.search(line) for p in patterns):
                continue
            for candidate in lines[i + 1:i + 1 + reach]:
                m = _LEADING_NUMBER_RE.match(candidate)
                if not m:
                    continue
                value = _non_negative(m.group(1))
                if value is not None:
                    extracted[field_name] = value
                    break
    return extracted


@dataclass(frozen=True)
class KeywordResult:
    fields: Dict[str, FieldValue] = field(default_factory=dict)

    def get(self, field_name: str) -> FieldValue:
        return self.fields.get(field_name, FieldValue.not_found())


def extract_keywords(text: str, lookahead: Optional[int] = None) -> KeywordResult:
    """
    Run both passes over normalised text. Fields absent from both passes are
    simply absent; the CNP proxy and missing-field warnings are applied later
    when the outcome is finalised.
    """
    normalized = normalize_text(text or "")
    inline = inline_extract(normalized)
    adjacent = adjacent_line_extract(normalized, lookahead)

    resolved: Dict[str, FieldValue] = {}
    for field_name, value in inline.items():
        resolved[field_name] = FieldValue.of(value, "generic:inline")
    for field_name, value in adjacent.items():
        if field_name not in resolved:
            resolved[field_name] = FieldValue.of(value, "generic:adjacent")
    return KeywordResult(fields=resolved)
