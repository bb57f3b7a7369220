# csv_mapper.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from schemas.extraction import FIELD_LABELS, NUMERIC_FIELDS, FieldValue, StatementPeriod
from statements.errors import UnreadableDocumentError
from statements.numeric import extract_period, parse_number

# First alias of every field is the header the blank CSV template uses.
COLUMN_ALIASES: Dict[str, List[str]] = {
    "total_sales_count": [
        "sales count", "total_transactions", "transaction_count", "txn_count", "sales_count",
        "total_sales", "total txns", "transactions", "total_txn_count",
        "total transaction count", "count", "purchase count",
    ],
    "total_sales_volume": [
        "gross volume", "total_volume", "sales_volume", "gross_volume", "total_amount",
        "gross_sales", "volume", "total_sales_volume", "gross_amount",
        "total volume", "sales amount", "net_sales", "processing volume",
    ],
    "cnp_txn_count": [
        "cnp_transactions", "card_not_present", "ecommerce_transactions",
        "online_transactions", "cnp_count", "cnp txns", "ecom_count",
        "card not present count", "internet_transactions", "cnp",
    ],
    "visa_txn_count": [
        "visa count", "visa_transactions", "visa_txn_count", "visa_txns", "visa_items", "visa",
    ],
    "mastercard_txn_count": [
        "mastercard count", "mastercard_transactions", "mastercard_txn_count", "mc_count",
        "mc_transactions", "mastercard_items", "mastercard",
    ],
    "tc15_count": [
        "chargeback count", "chargebacks", "disputes", "tc15", "chargeback_count",
        "dispute_count", "cb_count", "total_chargebacks", "total chargebacks",
        "number_of_chargebacks", "retrieval_requests", "tc15_count",
    ],
    "tc40_count": [
        "fraud count", "fraud", "tc40", "fraud_count", "fraud_transactions",
        "tc40_count", "fraud_reports", "total_fraud", "fraud items",
        "fraudulent_transactions", "confirmed_fraud",
    ],
    "fraud_amount_usd": [
        "fraud amount", "fraud_amount", "fraud_volume", "tc40_amount", "fraud_dollars",
        "total_fraud_amount", "fraudulent_amount",
    ],
}

PERIOD_ALIASES = ["statement_period", "period", "month", "statement month", "processing month"]

TEMPLATE_HEADERS: List[str] = [
    COLUMN_ALIASES[name][0]
    for name in ("total_sales_count", "total_sales_volume", "cnp_txn_count", "visa_txn_count",
                 "mastercard_txn_count", "tc15_count", "tc40_count", "fraud_amount_usd")
]


def normalize_header(header: Any) -> str:
    return re.sub(r"\s+", "_", str(header if header is not None else "").strip().lower())


def detect_column(headers: Sequence[Any], aliases: Sequence[str]) -> Optional[str]:
    """Return the original header matching the first alias (in alias order), or None."""
    normalized = [normalize_header(h) for h in headers]
    for alias in aliases:
        target = normalize_header(alias)
        if target in normalized:
            return str(headers[normalized.index(target)])
    return None


def _cell(row: Any, headers: Sequence[Any], column: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(column)
    for header, value in zip(headers, row):
        if str(header) == column:
            return value
    return None


@dataclass
class ColumnSum:
    value: FieldValue
    warnings: List[str] = field(default_factory=list)


def sum_column(rows: Sequence[Any], headers: Sequence[Any], column: str, field_name: str) -> ColumnSum:
    """
    Tri-state sum of one column. Blank and unparseable cells are excluded, not
    counted as 0; negatives are excluded with a warning. A column with no
    usable cell stays NOT_FOUND.
    """
    label = FIELD_LABELS[field_name]
    source = f"csv:column:{normalize_header(column)}"
    parsed = [parse_number(_cell(row, headers, column)) for row in rows]
    negatives = [v for v in parsed if v is not None and v < 0]
    usable = [v for v in parsed if v is not None and v >= 0]

    warnings: List[str] = []
    if negatives:
        warnings.append(
            f'Column "{column}" ({label}) has {len(negatives)} negative value(s); they were excluded from the total.'
        )
    if not usable:
        warnings.append(f'Column "{column}" ({label}) has no numeric values; enter manually.')
        return ColumnSum(FieldValue.not_found(), warnings)
    total = sum(usable, Decimal(0))
    return ColumnSum(FieldValue.of(total, source), warnings)


@dataclass
class CsvMapping:
    fields: Dict[str, FieldValue]
    columns: Dict[str, Optional[str]]
    warnings: List[str] = field(default_factory=list)
    absent: List[str] = field(default_factory=list)
    period: Optional[StatementPeriod] = None


def map_columns(headers: Sequence[Any], rows: Sequence[Any]) -> CsvMapping:
    columns = {name: detect_column(headers, COLUMN_ALIASES[name]) for name in NUMERIC_FIELDS}
    fields: Dict[str, FieldValue] = {}
    warnings: List[str] = []
    absent: List[str] = []

    for name in NUMERIC_FIELDS:
        column = columns[name]
        if column is None:
            # never summed against a column that is not there
            fields[name] = FieldValue.not_found()
            absent.append(name)
            continue
        result = sum_column(rows, headers, column, name)
        fields[name] = result.value
        warnings.extend(result.warnings)

    period: Optional[StatementPeriod] = None
    period_column = detect_column(headers, PERIOD_ALIASES)
    if period_column is not None:
        for row in rows:
            raw = _cell(row, headers, period_column)
            period = extract_period(str(raw), source="csv:column") if raw not in (None, "") else None
            if period is not None:
                break

    return CsvMapping(fields=fields, columns=columns, warnings=warnings, absent=absent, period=period)


def absent_column_warning(field_name: str) -> str:
    return f'No column found for "{FIELD_LABELS[field_name]}"; enter manually.'


def decode_text(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def read_csv_table(content: bytes) -> Tuple[List[str], List[Dict[str, str]]]:
    """Parse CSV bytes into (headers, rows) with every cell kept as text."""
    if not content or not content.strip():
        raise UnreadableDocumentError("CSV file appears to be empty or has no data rows.", code="ERROR_CSV_EMPTY")
    df: Optional[pd.DataFrame] = None
    for encoding in ("utf-8-sig", "latin-1"):
        try:
            df = pd.read_csv(
                BytesIO(content),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                encoding=encoding,
            )
            break
        except UnicodeDecodeError:
            continue
        except pd.errors.EmptyDataError as e:
            raise UnreadableDocumentError("CSV file appears to be empty or has no data rows.", code="ERROR_CSV_EMPTY") from e
        except pd.errors.ParserError as e:
            raise UnreadableDocumentError(f"CSV parse error: {e}", code="ERROR_CSV_PARSE") from e
    if df is None:
        raise UnreadableDocumentError("CSV file could not be decoded.", code="ERROR_CSV_PARSE")

    headers = [str(c).strip() for c in df.columns]
    df.columns = headers
    df = df[~(df == "").all(axis=1)]
    return headers, df.to_dict(orient="records")


def template_csv() -> str:
    return ",".join(TEMPLATE_HEADERS) + "\n"
