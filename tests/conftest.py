import os
import sys
from io import BytesIO
from typing import List, Sequence

import pytest


def pytest_sessionstart(session):
    # Ensure project root is on sys.path so `statements` and `schemas` resolve
    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


# --- Test utilities: minimal text PDFs ---
LINES_PER_PAGE = 50


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_text_pdf(lines: Sequence[str]) -> bytes:
    """Hand-assemble a PDF that draws each line with Helvetica, 14pt apart."""
    chunks = [list(lines[i:i + LINES_PER_PAGE]) for i in range(0, len(lines), LINES_PER_PAGE)] or [[]]
    page_count = len(chunks)
    font_id = 3 + 2 * page_count

    objects: List[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        (
            "<< /Type /Pages /Kids ["
            + " ".join(f"{3 + 2 * i} 0 R" for i in range(page_count))
            + f"] /Count {page_count} >>"
        ).encode("latin-1"),
    ]
    for i, chunk in enumerate(chunks):
        stream = "BT /F1 10 Tf\n"
        for j, line in enumerate(chunk):
            stream += f"1 0 0 1 50 {750 - 14 * j} Tm ({_escape(line)}) Tj\n"
        stream += "ET"
        data = stream.encode("latin-1")
        objects.append(
            (
                f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents {4 + 2 * i} 0 R "
                f"/Resources << /Font << /F1 {font_id} 0 R >> >> >>"
            ).encode("latin-1")
        )
        objects.append(f"<< /Length {len(data)} >>\nstream\n".encode("latin-1") + data + b"\nendstream")
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    out = BytesIO()
    out.write(b"%PDF-1.4\n")
    offsets = []
    for num, body in enumerate(objects, start=1):
        offsets.append(out.tell())
        out.write(f"{num} 0 obj\n".encode("latin-1") + body + b"\nendobj\n")
    xref_at = out.tell()
    out.write(f"xref\n0 {len(objects) + 1}\n".encode("latin-1"))
    out.write(b"0000000000 65535 f \n")
    for off in offsets:
        out.write(f"{off:010d} 00000 n \n".encode("latin-1"))
    out.write(f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n".encode("latin-1"))
    return out.getvalue()


@pytest.fixture
def make_pdf():
    return build_text_pdf


@pytest.fixture
def blank_pdf() -> bytes:
    from pypdf import PdfWriter

    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    out = BytesIO()
    writer.write(out)
    return out.getvalue()


# --- Sample statements ---
FISERV_LINES = [
    "FISERV MERCHANT SERVICES",
    "Clover Merchant Statement",
    "Statement Period 01/01/26 - 01/31/26",
    "Total Amount Submitted $52,310.44",
    "SUMMARY BY CARD TYPE",
    "Card Type Items Amount",
    "Visa 420 $31,200.00",
    "Mastercard 260 $15,110.44",
    "Discover 40 $6,000.00",
    "Total 720 $52,310.44",
    "CHARGEBACKS/REVERSALS",
    "No Chargebacks/Reversals for this statement period",
    "INTERCHANGE CHARGES",
    "VISA CPS RETAIL 300 $20,000.00",
    "VISA CNP 120 $11,200.00",
    "MC MERIT 3 CNP 90 $6,000.00",
    "MC MERIT RETAIL 170 $9,110.44",
    "FEES",
    "Monthly Service Fee $10.00",
]

TSYS_BODY = [
    "Processing Month: February 2026",
    "ACTIVITY SUMMARY",
    "Number of Sales 310 $18,450.00",
    "Gross Sales Volume $18,450.00",
    "Card Not Present Sales 95 $6,100.00",
    "Chargebacks 3 $210.00",
    "CARD TYPE BREAKDOWN",
    "Plan Items Amount",
    "VS Visa 180 $10,800.00",
    "MC Mastercard 130 $7,650.00",
    "INTERCHANGE QUALIFICATION DETAIL",
    "VS CPS RETAIL 150 $9,000.00",
    "FEES",
    "Statement Fee $7.95",
]

TSYS_LINES = ["TSYS Merchant Solutions"] + TSYS_BODY


@pytest.fixture
def fiserv_lines() -> List[str]:
    return list(FISERV_LINES)


@pytest.fixture
def tsys_lines() -> List[str]:
    return list(TSYS_LINES)


@pytest.fixture
def unmarked_tsys_lines() -> List[str]:
    return ["Merchant Statement"] + list(TSYS_BODY)
