from statements.batch import extract_batch
from statements.errors import StatementExtractionError, UnreadableDocumentError, UnsupportedFileTypeError
from statements.statement_processor import StatementProcessor, extract_csv, extract_pdf, extract_statement

__all__ = [
    "StatementExtractionError",
    "StatementProcessor",
    "UnreadableDocumentError",
    "UnsupportedFileTypeError",
    "extract_batch",
    "extract_csv",
    "extract_pdf",
    "extract_statement",
]
