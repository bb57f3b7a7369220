from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from schemas.extraction import DetectedFormat
from settings.config import settings
from statements.json_logger import get_json_logger

logger = get_json_logger("statements.format_detector")

# Case-insensitive marker substrings per dialect. Markers always appear in the
# statement header, so only a bounded window of leading lines is inspected.
DIALECT_MARKERS: Dict[DetectedFormat, Tuple[str, ...]] = {
    DetectedFormat.FISERV: (
        "fiserv",
        "first data",
        "firstdata",
        "clover",
        "chargebacks/reversals",
    ),
    DetectedFormat.TSYS: (
        "tsys",
        "total system services",
        "global payments",
        "heartland payment",
    ),
}


def _priority(priority: Optional[Sequence[str]]) -> List[DetectedFormat]:
    ordered: List[DetectedFormat] = []
    for name in priority if priority is not None else settings.DIALECT_PRIORITY:
        try:
            fmt = DetectedFormat(str(name).strip().lower())
        except ValueError:
            continue
        if fmt is not DetectedFormat.UNKNOWN and fmt not in ordered:
            ordered.append(fmt)
    # dialects missing from the configured list keep their declaration order
    for fmt in DIALECT_MARKERS:
        if fmt not in ordered:
            ordered.append(fmt)
    return ordered


def matching_formats(lines: Sequence[str], window: Optional[int] = None) -> List[DetectedFormat]:
    size = window if window is not None else settings.HEADER_WINDOW_LINES
    header = "\n".join(lines[:size]).lower()
    return [fmt for fmt, markers in DIALECT_MARKERS.items() if any(m in header for m in markers)]


def detect_format(
    lines: Sequence[str],
    window: Optional[int] = None,
    priority: Optional[Sequence[str]] = None,
) -> DetectedFormat:
    """
    Classify the statement dialect from marker phrases in the header window.

    One match wins outright; several matches are resolved by the fixed
    priority list (not a vote); no match yields UNKNOWN.
    """
    matches = matching_formats(lines, window)
    if not matches:
        detected = DetectedFormat.UNKNOWN
    elif len(matches) == 1:
        detected = matches[0]
    else:
        detected = next(fmt for fmt in _priority(priority) if fmt in matches)
    logger.info("format_detected", extra={"extra": {"format": detected.value, "matches": [m.value for m in matches]}})
    return detected


def dialect_order(priority: Optional[Sequence[str]] = None) -> List[DetectedFormat]:
    return _priority(priority)
