from __future__ import annotations


class StatementExtractionError(Exception):
    """Base error for statements that cannot be processed at all."""

    code: str = "ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return self.message


class UnreadableDocumentError(StatementExtractionError):
    code = "ERROR_UNREADABLE"


class UnsupportedFileTypeError(StatementExtractionError):
    code = "ERROR_INVALID_TYPE"
