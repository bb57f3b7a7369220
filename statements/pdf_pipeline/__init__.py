from statements.pdf_pipeline.tokenization import TextRun, pages_to_lines, runs_to_lines
from statements.pdf_pipeline.orchestrator import DecodedPdf, decode_pdf

__all__ = [
    "TextRun",
    "pages_to_lines",
    "runs_to_lines",
    "DecodedPdf",
    "decode_pdf",
]
