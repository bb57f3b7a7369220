"""
Token-level helpers shared by every extractor: numbers, currency amounts,
table-row splitting and statement-period recognition.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import PurePath
from typing import List, Optional, Tuple

from schemas.extraction import StatementPeriod

MONTH_ABBR = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
_MONTH_LOOKUP = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}
# Longest names first so "june" wins over "jun"
_MONTH_ALT = "|".join(sorted(_MONTH_LOOKUP, key=len, reverse=True))

_COUNT_TOKEN_RE = re.compile(r"^(?:\d{1,3}(?:,\d{3})+|\d+)$")
_NUMERIC_TOKEN_RE = re.compile(r"^\(?[-+]?\$?\(?[-+]?\d[\d,]*(?:\.\d+)?\)?%?$")
_CURRENCY_RE = re.compile(r"\(?-?\$\s?-?\d[\d,]*(?:\.\d+)?\)?|\(?-?\d[\d,]*\.\d+\)?")

_RANGE_SEP = r"\s*(?:-|–|—|to|through|thru)\s*"
_NUMERIC_RANGE_RE = re.compile(
    rf"(\d{{1,2}})/(\d{{1,2}})/(\d{{2,4}}){_RANGE_SEP}(\d{{1,2}})/(\d{{1,2}})/(\d{{2,4}})",
    re.IGNORECASE,
)
_ISO_RANGE_RE = re.compile(
    rf"(\d{{4}})-(\d{{1,2}})-(\d{{1,2}}){_RANGE_SEP}(\d{{4}})-(\d{{1,2}})-(\d{{1,2}})",
    re.IGNORECASE,
)
_WRITTEN_RANGE_RE = re.compile(
    rf"\b({_MONTH_ALT})\.?\s+(\d{{1,2}}),?\s+(\d{{4}}){_RANGE_SEP}({_MONTH_ALT})\.?\s+(\d{{1,2}}),?\s+(\d{{4}})",
    re.IGNORECASE,
)
_MONTH_YEAR_RE = re.compile(rf"\b({_MONTH_ALT})\.?[\s,\-]*(\d{{4}})\b", re.IGNORECASE)
_YEAR_MONTH_RE = re.compile(r"(?<![\d/])(\d{4})[-/](0?[1-9]|1[0-2])(?![\d/-])")
_MONTH_SLASH_YEAR_RE = re.compile(r"(?<![\d/])(0?[1-9]|1[0-2])/(\d{4})(?![\d/])")

_FILENAME_MONTH_YEAR_RE = re.compile(rf"(?<![a-z])({_MONTH_ALT})(?![a-z])[\s_\-.']*(\d{{4}}|\d{{2}})(?!\d)", re.IGNORECASE)
_FILENAME_YEAR_MONTH_NAME_RE = re.compile(rf"(?<!\d)(\d{{4}})[\s_\-.]*({_MONTH_ALT})(?![a-z])", re.IGNORECASE)
_FILENAME_YEAR_MONTH_RE = re.compile(r"(?<!\d)(20\d{2})[\s_\-.]?(0[1-9]|1[0-2])(?!\d)")
_FILENAME_MONTH_YEAR_NUM_RE = re.compile(r"(?<!\d)(0?[1-9]|1[0-2])[\s_\-.](20\d{2})(?!\d)")


# ----------------------------------------------------------------------------
# Numbers
# ----------------------------------------------------------------------------
def parse_number(text: Optional[str]) -> Optional[Decimal]:
    """Parse a single numeric token; `(1.00)` and `-1.00` are negative."""
    if text is None:
        return None
    s = str(text).strip()
    if not s:
        return None
    negative = ("(" in s and ")" in s) or bool(re.match(r"^\(?\$?\s?-", s))
    cleaned = re.sub(r"[$,\s()%+\-]", "", s)
    if not re.fullmatch(r"\d+(?:\.\d+)?", cleaned):
        return None
    try:
        value = Decimal(cleaned)
    except (InvalidOperation, ValueError):
        return None
    return -value if negative else value


def is_count_token(token: str) -> bool:
    return bool(_COUNT_TOKEN_RE.match(token.strip()))


def is_numeric_token(token: str) -> bool:
    return token not in {"$", "-"} and bool(_NUMERIC_TOKEN_RE.match(token.strip()))


def is_amount_token(token: str) -> bool:
    t = token.strip()
    if not is_numeric_token(t) or t.endswith("%"):
        return False
    return "$" in t or "." in t


def parse_int(text: Optional[str]) -> Optional[int]:
    """First whole-number token in a line; currency and decimals are not counts."""
    if not text:
        return None
    for raw in str(text).split():
        token = raw.strip(":;")
        if is_count_token(token):
            return int(token.replace(",", ""))
    return None


def parse_currency(text: Optional[str]) -> Optional[Decimal]:
    """First currency-shaped amount in a line (`$1,234.56`, `(12.00)`, `99.10`)."""
    if not text:
        return None
    m = _CURRENCY_RE.search(str(text))
    if not m:
        return None
    return parse_number(m.group(0))


def split_label_numbers(line: str) -> Tuple[str, List[str]]:
    """
    Peel trailing numeric tokens off a table row.

    "Visa 120 $6,000.00" -> ("Visa", ["120", "$6,000.00"])
    "MC MERIT 3 170 $9,110.44" -> ("MC MERIT 3", ["170", "$9,110.44"])

    Category names often end in a digit, so when a row carries an amount only
    the count right before the first amount is kept as a number.
    """
    tokens = line.split()
    idx = len(tokens)
    while idx > 0 and (is_numeric_token(tokens[idx - 1]) or tokens[idx - 1] == "$"):
        idx -= 1
    first_amount = next((i for i in range(idx, len(tokens)) if is_amount_token(tokens[i])), None)
    if first_amount is not None:
        while idx < first_amount - 1 and is_count_token(tokens[idx]) and is_count_token(tokens[idx + 1]):
            idx += 1
    numbers = [t for t in tokens[idx:] if t != "$"]
    return " ".join(tokens[:idx]), numbers


def row_count(line: str) -> Optional[int]:
    _, numbers = split_label_numbers(line)
    for token in numbers:
        if is_count_token(token):
            return int(token.replace(",", ""))
    return None


def row_amount(line: str) -> Optional[Decimal]:
    _, numbers = split_label_numbers(line)
    for token in numbers:
        if is_amount_token(token):
            return parse_number(token)
    return None


# ----------------------------------------------------------------------------
# Periods
# ----------------------------------------------------------------------------
def _year(raw: str) -> int:
    value = int(raw)
    return value + 2000 if value < 100 else value


def _month(raw: str) -> Optional[int]:
    return _MONTH_LOOKUP.get(raw.lower().rstrip("."))


def make_period(year: int, month: int, start: Optional[date] = None, end: Optional[date] = None, source: Optional[str] = None) -> StatementPeriod:
    return StatementPeriod(
        year=year,
        month_index=month - 1,
        label=f"{MONTH_ABBR[month - 1]} {year}",
        start=start,
        end=end,
        source=source,
    )


def _range_period(start: date, end: date, source: Optional[str]) -> Optional[StatementPeriod]:
    if end < start:
        return None
    return make_period(end.year, end.month, start=start, end=end, source=source)


def extract_period(line: Optional[str], source: Optional[str] = None) -> Optional[StatementPeriod]:
    """
    Recognise a statement period in a line of text.

    Date ranges take precedence over bare month labels; the statement month is
    the month of the range's end date.
    """
    if not line:
        return None
    text = str(line)

    m = _NUMERIC_RANGE_RE.search(text)
    if m:
        try:
            start = date(_year(m.group(3)), int(m.group(1)), int(m.group(2)))
            end = date(_year(m.group(6)), int(m.group(4)), int(m.group(5)))
            period = _range_period(start, end, source)
            if period is not None:
                return period
        except ValueError:
            pass

    m = _ISO_RANGE_RE.search(text)
    if m:
        try:
            start = date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
            end = date(int(m.group(4)), int(m.group(5)), int(m.group(6)))
            period = _range_period(start, end, source)
            if period is not None:
                return period
        except ValueError:
            pass

    m = _WRITTEN_RANGE_RE.search(text)
    if m:
        try:
            start = date(int(m.group(3)), _month(m.group(1)) or 0, int(m.group(2)))
            end = date(int(m.group(6)), _month(m.group(4)) or 0, int(m.group(5)))
            period = _range_period(start, end, source)
            if period is not None:
                return period
        except ValueError:
            pass

    m = _MONTH_YEAR_RE.search(text)
    if m:
        month = _month(m.group(1))
        if month:
            return make_period(int(m.group(2)), month, source=source)

    m = _YEAR_MONTH_RE.search(text)
    if m:
        return make_period(int(m.group(1)), int(m.group(2)), source=source)

    m = _MONTH_SLASH_YEAR_RE.search(text)
    if m:
        return make_period(int(m.group(2)), int(m.group(1)), source=source)
    return None


def period_from_filename(filename: Optional[str]) -> Optional[StatementPeriod]:
    if not filename:
        return None
    stem = PurePath(filename).stem

    m = _FILENAME_MONTH_YEAR_RE.search(stem)
    if m:
        month = _month(m.group(1))
        if month:
            return make_period(_year(m.group(2)), month, source="filename")
    m = _FILENAME_YEAR_MONTH_NAME_RE.search(stem)
    if m:
        month = _month(m.group(2))
        if month:
            return make_period(int(m.group(1)), month, source="filename")
    m = _FILENAME_YEAR_MONTH_RE.search(stem)
    if m:
        return make_period(int(m.group(1)), int(m.group(2)), source="filename")
    m = _FILENAME_MONTH_YEAR_NUM_RE.search(stem)
    if m:
        return make_period(int(m.group(2)), int(m.group(1)), source="filename")
    return None
