from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple


@dataclass(frozen=True)
class TextRun:
    """A positioned piece of page text. PDF coordinate space: y grows upward."""

    x: float
    y: float
    text: str


def runs_to_rows(runs: Iterable[TextRun], y_tolerance: float = 3.0) -> List[List[TextRun]]:
    """
    Group runs into rough rows by baseline proximity.
    Rows are ordered top of page first; each row keeps its runs left-to-right.
    """
    visible = [r for r in runs if r.text and r.text.strip()]
    if not visible:
        return []
    runs_sorted = sorted(visible, key=lambda r: (-float(r.y), float(r.x)))
    rows: List[List[TextRun]] = []
    anchor_y = 0.0
    for run in runs_sorted:
        if not rows or abs(anchor_y - float(run.y)) > y_tolerance:
            rows.append([run])
            # the first run of a row is its representative baseline
            anchor_y = float(run.y)
        else:
            rows[-1].append(run)
    return [sorted(row, key=lambda r: float(r.x)) for row in rows]


def row_to_line(row: Sequence[TextRun]) -> str:
    return re.sub(r"\s+", " ", " ".join(r.text for r in row)).strip()


def runs_to_lines(runs: Iterable[TextRun], y_tolerance: float = 3.0) -> List[str]:
    return [line for line in (row_to_line(row) for row in runs_to_rows(runs, y_tolerance)) if line]


def pages_to_lines(pages: Iterable[Iterable[TextRun]], y_tolerance: float = 3.0) -> Tuple[str, ...]:
    """Reconstruct reading order per page and concatenate pages in order."""
    lines: List[str] = []
    for page_runs in pages:
        lines.extend(runs_to_lines(page_runs, y_tolerance))
    return tuple(lines)
