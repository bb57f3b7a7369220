from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from schemas.extraction import (
    FIELD_LABELS,
    SOURCE_CONTRACT,
    SOURCE_DEFAULT,
    CanonicalFields,
    DetectedFormat,
    ExtractionOutcome,
    FieldStatus,
    FieldValue,
    StatementPeriod,
)
from settings.config import settings
from statements.csv_mapper import absent_column_warning, decode_text, map_columns, read_csv_table
from statements.errors import UnreadableDocumentError, UnsupportedFileTypeError
from statements.fiserv_parser import FiservParser
from statements.format_detector import detect_format
from statements.json_logger import get_json_logger
from statements.keyword_extractor import KeywordResult, extract_keywords
from statements.pdf_pipeline import decode_pdf, pages_to_lines
from statements.statement_parsers import ParserRegistry, contract_zero_warning, scan_period
from statements.tsys_parser import TsysParser

CSV_EXTENSIONS = (".csv",)
CSV_MIME_TYPES = ("text/csv", "application/csv", "application/vnd.ms-excel")
PDF_EXTENSIONS = (".pdf",)
PDF_MIME_TYPES = ("application/pdf",)

GENERIC_PERIOD_LABELS = ("statement period", "processing period", "processing month", "reporting period", "period")

NO_TEXT_LAYER_WARNING = (
    "No text layer found in this PDF (it may be a scanned image); enter the statement figures manually."
)
INFERRED_FORMAT_WARNING = "Statement format not recognised; values inferred using the {name} layout; verify."
NO_LAYOUT_WARNING = "Statement format not recognised; values found by keyword search only; verify."
CNP_PROXY_WARNING = (
    "CNP count not found; using total Sales Count as proxy. "
    "Ratios may be overstated if the statement mixes card-present transactions."
)
CHARGEBACK_DEFAULT_WARNING = "Chargeback count not found; recorded as 0; verify against your statement."


def detect_file_kind(filename: Optional[str], content_type: Optional[str] = None) -> str:
    """Return "csv" or "pdf": extension first, then MIME type."""
    name = (filename or "").lower()
    if name.endswith(CSV_EXTENSIONS):
        return "csv"
    if name.endswith(PDF_EXTENSIONS):
        return "pdf"
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in CSV_MIME_TYPES:
        return "csv"
    if mime in PDF_MIME_TYPES:
        return "pdf"
    raise UnsupportedFileTypeError(
        f"Unsupported file type for {filename or 'upload'!r}; upload a CSV or PDF statement.",
    )


def _fill_from_keywords(
    values: Dict[str, FieldValue],
    keywords: KeywordResult,
    message: str,
    replace_non_evidence: bool = False,
) -> List[str]:
    """
    Fill NOT_FOUND fields from the keyword pass; returns the warnings raised.

    With `replace_non_evidence`, contract and default values also give way to
    labelled text, since they came from a layout that was only inferred.
    """
    warnings: List[str] = []
    for name, value in values.items():
        if value.is_evidence or (value.found and not replace_non_evidence):
            continue
        found = keywords.get(name)
        if found.found:
            values[name] = found
            warnings.append(message.format(label=FIELD_LABELS[name]))
    return warnings


def finalize(
    values: Dict[str, FieldValue],
    period: Optional[StatementPeriod],
    warnings: List[str],
    already_reported: Iterable[str] = (),
) -> Tuple[CanonicalFields, List[str], bool]:
    """
    Shared last step for every source: CNP proxy, chargeback default and
    missing-field warnings. Returns (fields, warnings, requires_manual_entry).
    """
    values = dict(values)
    warnings = list(warnings)

    total = values.get("total_sales_count", FieldValue.not_found())
    if not values["cnp_txn_count"].found and total.status is FieldStatus.VALUE:
        values["cnp_txn_count"] = FieldValue.of(total.value, "proxy:total_sales_count")
        warnings.append(CNP_PROXY_WARNING)

    if not values["tc15_count"].found:
        values["tc15_count"] = FieldValue.zero(SOURCE_DEFAULT)
        warnings.append(CHARGEBACK_DEFAULT_WARNING)

    reported: Set[str] = set(already_reported)
    for name, value in values.items():
        if not value.found and name not in reported:
            warnings.append(f'"{FIELD_LABELS[name]}" not detected; enter manually.')

    fields = CanonicalFields(statement_period=period, **values)
    return fields, warnings, fields.evidence_count() == 0


class StatementProcessor:
    """Runs one statement through the extraction pipeline."""

    def __init__(self, registry: Optional[ParserRegistry] = None, priority: Optional[Sequence[str]] = None) -> None:
        self.registry = registry or ParserRegistry([FiservParser(), TsysParser()])
        self.priority = priority
        self.logger = get_json_logger("statements.processor")

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------
    def extract_pdf(self, file_bytes: bytes, password: Optional[str] = None) -> ExtractionOutcome:
        decoded = decode_pdf(file_bytes, password=password)
        lines = pages_to_lines(decoded.pages, y_tolerance=settings.LINE_Y_TOLERANCE)

        if not lines:
            fields, warnings, _ = finalize(
                {name: FieldValue.not_found() for name in FIELD_LABELS},
                None,
                [NO_TEXT_LAYER_WARNING],
            )
            self.logger.info("pdf_no_text_layer", extra={"extra": {"pages": decoded.pages_count}})
            return ExtractionOutcome(
                fields=fields,
                warnings=warnings,
                requires_manual_entry=True,
                source="pdf",
                page_count=decoded.pages_count,
                line_count=0,
            )

        outcome = self.extract_lines(lines)
        return outcome.model_copy(update={"page_count": decoded.pages_count})

    def extract_lines(self, lines: Sequence[str]) -> ExtractionOutcome:
        """Everything after PDF decoding; lines are the reconstructed reading order."""
        lines = tuple(lines)
        detected = detect_format(lines, priority=self.priority)
        inferred: Optional[DetectedFormat] = None
        warnings: List[str] = []

        parser = self.registry.for_format(detected)
        if parser is not None:
            result = parser.extract(lines)
        else:
            result, _ = self.registry.race(lines, priority=self.priority)
            if result is not None:
                inferred = result.format
                warnings.append(INFERRED_FORMAT_WARNING.format(name=result.name))

        keywords = extract_keywords("\n".join(lines))
        if result is not None:
            values = dict(result.fields.numeric_items())
            period = result.fields.statement_period
            filled = _fill_from_keywords(
                values,
                keywords,
                "{label} not found in the " + result.name + " layout; taken from labelled text elsewhere in the statement. Verify.",
                replace_non_evidence=inferred is not None,
            )
            dialect_warnings = list(result.warnings)
            if not any(v.source == SOURCE_CONTRACT for v in values.values()):
                dialect_warnings = [w for w in dialect_warnings if w != contract_zero_warning(result.name)]
            warnings.extend(dialect_warnings)
            warnings.extend(filled)
        else:
            warnings.append(NO_LAYOUT_WARNING)
            values = {name: keywords.get(name) for name in FIELD_LABELS}
            period = None
        if period is None:
            period = scan_period(lines, GENERIC_PERIOD_LABELS, source="generic")

        fields, warnings, manual = finalize(values, period, warnings)
        self.logger.info(
            "statement_extracted",
            extra={"extra": {
                "source": "pdf",
                "format": detected.value,
                "inferred": inferred.value if inferred else None,
                "evidence": fields.evidence_count(),
                "warnings": len(warnings),
            }},
        )
        return ExtractionOutcome(
            fields=fields,
            warnings=warnings,
            detected_format=detected,
            inferred_format=inferred,
            requires_manual_entry=manual,
            source="pdf",
            line_count=len(lines),
        )

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------
    def extract_csv(
        self,
        file_bytes: bytes,
        headers: Optional[Sequence[Any]] = None,
        rows: Optional[Sequence[Any]] = None,
    ) -> ExtractionOutcome:
        if headers is None or rows is None:
            headers, rows = read_csv_table(file_bytes)
        if not headers or not rows:
            raise UnreadableDocumentError("CSV file appears to be empty or has no data rows.", code="ERROR_CSV_EMPTY")

        mapping = map_columns(headers, rows)
        values = dict(mapping.fields)
        warnings = list(mapping.warnings)

        raw_text = decode_text(file_bytes) if file_bytes else "\n".join(
            ",".join(str(c) for c in (row.values() if isinstance(row, dict) else row)) for row in rows
        )
        keywords = extract_keywords(raw_text)
        warnings.extend(_fill_from_keywords(
            values,
            keywords,
            "{label} column not found; value taken from labelled text in the file; verify.",
        ))

        # A column that is absent and stays unresolved gets one warning, not two
        absent_unresolved = [name for name in mapping.absent if not values[name].found and name != "tc15_count"]
        warnings.extend(absent_column_warning(name) for name in absent_unresolved)

        fields, warnings, manual = finalize(values, mapping.period, warnings, already_reported=absent_unresolved)
        self.logger.info(
            "statement_extracted",
            extra={"extra": {
                "source": "csv",
                "rows": len(rows),
                "columns": {k: v for k, v in mapping.columns.items() if v is not None},
                "evidence": fields.evidence_count(),
                "warnings": len(warnings),
            }},
        )
        return ExtractionOutcome(
            fields=fields,
            warnings=warnings,
            detected_format=DetectedFormat.UNKNOWN,
            requires_manual_entry=manual,
            source="csv",
            line_count=len(rows),
        )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def extract_statement(
        self,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
        password: Optional[str] = None,
    ) -> ExtractionOutcome:
        kind = detect_file_kind(filename, content_type)
        if kind == "csv":
            return self.extract_csv(content)
        return self.extract_pdf(content, password=password)


_default_processor: Optional[StatementProcessor] = None


def get_processor() -> StatementProcessor:
    global _default_processor
    if _default_processor is None:
        _default_processor = StatementProcessor()
    return _default_processor


def extract_pdf(file_bytes: bytes, password: Optional[str] = None) -> ExtractionOutcome:
    return get_processor().extract_pdf(file_bytes, password=password)


def extract_csv(
    file_bytes: bytes,
    headers: Optional[Sequence[Any]] = None,
    rows: Optional[Sequence[Any]] = None,
) -> ExtractionOutcome:
    return get_processor().extract_csv(file_bytes, headers=headers, rows=rows)


def extract_statement(filename: str, content: bytes, content_type: Optional[str] = None) -> ExtractionOutcome:
    return get_processor().extract_statement(filename, content, content_type)
