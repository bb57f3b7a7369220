from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from typing import Dict, List, Optional, Tuple

import pdfplumber
from pypdf import PdfReader, PdfWriter

from settings.config import settings
from statements.errors import UnreadableDocumentError
from statements.json_logger import get_json_logger
from statements.pdf_pipeline.tokenization import TextRun


logger = get_json_logger("statements.pdf_pipeline")


@dataclass
class DecodedPdf:
    """
    Positioned text runs per page, prior to line reconstruction.

    - pages: one list of TextRun per decoded page, in page order
    - pages_count: number of pages in the document (may exceed len(pages))
    - metadata: light per-page layout info for logging/diagnostics
    """

    pages: List[List[TextRun]] = field(default_factory=list)
    pages_count: int = 0
    metadata: Dict[str, object] = field(default_factory=dict)

    @property
    def runs_count(self) -> int:
        return sum(len(p) for p in self.pages)


def _decrypt_if_needed(pdf_bytes: bytes, password: Optional[str]) -> Tuple[Optional[bytes], Optional[str]]:
    """
    Detect encrypted PDFs and decrypt them when possible.
    Owner-only protection (empty user password) is removed transparently.
    Returns (maybe_decrypted_bytes, error_code_if_any).
    """
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
    except Exception:
        return None, "ERROR_PDF_LOAD_FAILED"

    if not getattr(reader, "is_encrypted", False):
        return pdf_bytes, None

    try:
        # pypdf returns 0 (NOT_DECRYPTED) on failure
        decrypt_result = reader.decrypt(password or "")
    except Exception:
        return None, "ERROR_DECRYPTION_FAILED"
    if decrypt_result == 0:
        return None, "ERROR_PASSWORD_INCORRECT" if password else "ERROR_ENCRYPTED"

    try:
        writer = PdfWriter()
        for page in reader.pages:
            writer.add_page(page)
        out = BytesIO()
        writer.write(out)
        return out.getvalue(), None
    except Exception:
        return None, "ERROR_DECRYPTION_FAILED"


_ERROR_MESSAGES = {
    "ERROR_PDF_LOAD_FAILED": "PDF could not be read; the file may be corrupt or not a PDF.",
    "ERROR_ENCRYPTED": "PDF is password-protected; remove the password and upload again.",
    "ERROR_PASSWORD_INCORRECT": "The supplied PDF password is incorrect.",
    "ERROR_DECRYPTION_FAILED": "PDF is encrypted and could not be decrypted.",
}


def _page_runs(page) -> List[TextRun]:
    words = page.extract_words(x_tolerance=2, y_tolerance=2, keep_blank_chars=False) or []
    height = float(page.height)
    return [
        TextRun(x=float(w.get("x0", 0.0)), y=height - float(w.get("bottom", 0.0)), text=str(w.get("text", "")))
        for w in words
    ]


def decode_pdf(content: bytes, password: Optional[str] = None, max_pages: Optional[int] = None) -> DecodedPdf:
    """
    Decode PDF bytes into positioned text runs per page.

    Raises UnreadableDocumentError for corrupt, encrypted or oversized input.
    An image-only PDF decodes successfully with zero runs.
    """
    if not content:
        raise UnreadableDocumentError("Uploaded PDF is empty.", code="ERROR_PDF_LOAD_FAILED")
    if len(content) > settings.max_file_size_bytes:
        raise UnreadableDocumentError(
            f"PDF exceeds the {settings.MAX_FILE_SIZE_MB} MB limit.", code="ERROR_FILE_TOO_LARGE"
        )

    decrypted, error_code = _decrypt_if_needed(content, password)
    if error_code is not None:
        raise UnreadableDocumentError(_ERROR_MESSAGES.get(error_code, "PDF could not be read."), code=error_code)
    content = decrypted if decrypted is not None else content

    limit = max_pages if max_pages is not None else settings.MAX_PAGES
    result = DecodedPdf()
    try:
        with pdfplumber.open(BytesIO(content)) as pdf:
            result.pages_count = len(pdf.pages)
            if result.pages_count > limit:
                logger.warning("pdf_pages_exceed_limit", extra={"extra": {"pages": result.pages_count, "max_pages": limit}})
            pages_meta: List[Dict[str, object]] = []
            for page in pdf.pages[:limit]:
                runs = _page_runs(page)
                result.pages.append(runs)
                pages_meta.append({
                    "width": float(page.width),
                    "height": float(page.height),
                    "runs_count": len(runs),
                    "images_count": len(getattr(page, "images", []) or []),
                })
            result.metadata = {"pages": pages_meta}
    except UnreadableDocumentError:
        raise
    except Exception as exc:
        raise UnreadableDocumentError(_ERROR_MESSAGES["ERROR_PDF_LOAD_FAILED"], code="ERROR_PDF_LOAD_FAILED") from exc

    logger.info("pdf_decoded", extra={"extra": {"pages": result.pages_count, "runs": result.runs_count}})
    return result
