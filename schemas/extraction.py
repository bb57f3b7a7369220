from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


# Sources that resolve a field without any evidence from the document itself.
SOURCE_DEFAULT = "default"
SOURCE_CONTRACT = "contract"
NON_EVIDENCE_SOURCES = frozenset({SOURCE_DEFAULT, SOURCE_CONTRACT})


class _FrozenModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class FieldStatus(str, Enum):
    NOT_FOUND = "not_found"
    ZERO = "zero"
    VALUE = "value"


class FieldValue(_FrozenModel):
    """
    Tri-state numeric field.

    - NOT_FOUND: no evidence in the document (value is None)
    - ZERO: evidence found and the value is legitimately zero
    - VALUE: evidence found and the value is positive

    There is deliberately no implicit numeric conversion; callers that want a
    number for a NOT_FOUND field must ask for one with `as_number(default)`.
    """

    status: FieldStatus = FieldStatus.NOT_FOUND
    value: Optional[Decimal] = None
    source: Optional[str] = None

    @classmethod
    def not_found(cls) -> "FieldValue":
        return cls(status=FieldStatus.NOT_FOUND)

    @classmethod
    def zero(cls, source: str) -> "FieldValue":
        return cls(status=FieldStatus.ZERO, value=Decimal(0), source=source)

    @classmethod
    def of(cls, amount, source: str) -> "FieldValue":
        amount = Decimal(str(amount))
        if amount < 0:
            raise ValueError(f"field value cannot be negative: {amount}")
        if amount == 0:
            return cls.zero(source)
        return cls(status=FieldStatus.VALUE, value=amount, source=source)

    @property
    def found(self) -> bool:
        return self.status is not FieldStatus.NOT_FOUND

    @property
    def is_evidence(self) -> bool:
        return self.found and self.source not in NON_EVIDENCE_SOURCES

    def as_number(self, default: Optional[Decimal] = None) -> Optional[Decimal]:
        return self.value if self.found else default

    @field_serializer("value", when_used="json")
    def serialize_value(self, value: Optional[Decimal]):
        if value is None:
            return None
        return int(value) if value == value.to_integral_value() else float(value)


class StatementPeriod(_FrozenModel):
    year: int
    month_index: int = Field(ge=0, le=11)
    label: str
    start: Optional[date] = None
    end: Optional[date] = None
    source: Optional[str] = None

    @property
    def sort_key(self) -> tuple:
        return (self.year, self.month_index)


NUMERIC_FIELDS = (
    "total_sales_count",
    "total_sales_volume",
    "cnp_txn_count",
    "mastercard_txn_count",
    "visa_txn_count",
    "tc15_count",
    "tc40_count",
    "fraud_amount_usd",
)

FIELD_LABELS: Dict[str, str] = {
    "total_sales_count": "Sales Count",
    "total_sales_volume": "Gross Volume",
    "cnp_txn_count": "CNP Transaction Count",
    "mastercard_txn_count": "Mastercard Transaction Count",
    "visa_txn_count": "Visa Transaction Count",
    "tc15_count": "Chargeback Count",
    "tc40_count": "Fraud Count",
    "fraud_amount_usd": "Fraud Amount",
}


class CanonicalFields(_FrozenModel):
    total_sales_count: FieldValue = Field(default_factory=FieldValue.not_found)
    total_sales_volume: FieldValue = Field(default_factory=FieldValue.not_found)
    cnp_txn_count: FieldValue = Field(default_factory=FieldValue.not_found)
    mastercard_txn_count: FieldValue = Field(default_factory=FieldValue.not_found)
    visa_txn_count: FieldValue = Field(default_factory=FieldValue.not_found)
    tc15_count: FieldValue = Field(default_factory=FieldValue.not_found)
    tc40_count: FieldValue = Field(default_factory=FieldValue.not_found)
    fraud_amount_usd: FieldValue = Field(default_factory=FieldValue.not_found, alias="fraudAmountUSD")
    statement_period: Optional[StatementPeriod] = None

    def numeric_items(self) -> List[tuple]:
        return [(name, getattr(self, name)) for name in NUMERIC_FIELDS]

    def resolved_count(self) -> int:
        return sum(1 for _, fv in self.numeric_items() if fv.found)

    def evidence_count(self) -> int:
        return sum(1 for _, fv in self.numeric_items() if fv.is_evidence)

    def missing(self) -> List[str]:
        return [name for name, fv in self.numeric_items() if not fv.found]


class DetectedFormat(str, Enum):
    FISERV = "fiserv"
    TSYS = "tsys"
    UNKNOWN = "unknown"


class ExtractionOutcome(_FrozenModel):
    fields: CanonicalFields
    warnings: List[str] = Field(default_factory=list)
    detected_format: DetectedFormat = DetectedFormat.UNKNOWN
    inferred_format: Optional[DetectedFormat] = None
    requires_manual_entry: bool = False
    source: str = "pdf"
    page_count: Optional[int] = None
    line_count: int = 0


class UploadedStatement(_FrozenModel):
    filename: str
    content: bytes
    content_type: Optional[str] = None


class BatchEntry(_FrozenModel):
    filename: str
    period: Optional[StatementPeriod] = None
    fields: Optional[CanonicalFields] = None
    warnings: List[str] = Field(default_factory=list)
    parse_error: Optional[str] = None
    detected_format: Optional[DetectedFormat] = None
    requires_manual_entry: bool = False

    @property
    def ok(self) -> bool:
        return self.parse_error is None
