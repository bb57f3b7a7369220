from typing import List, Optional

from fastapi import File, HTTPException, UploadFile, status
from starlette.concurrency import run_in_threadpool

from schemas.extraction import BatchEntry, ExtractionOutcome, UploadedStatement
from settings.config import settings
from statements.batch import extract_batch
from statements.errors import StatementExtractionError
from statements.statement_processor import StatementProcessor, get_processor


class StatementService:
    def __init__(self, processor: Optional[StatementProcessor] = None):
        self.processor = processor or get_processor()

    async def _read(self, file: UploadFile) -> UploadedStatement:
        content = await file.read()
        return UploadedStatement(
            filename=file.filename or "upload",
            content=content,
            content_type=(file.content_type or "").lower() or None,
        )

    async def extract_statement(self, file: UploadFile = File(...)) -> ExtractionOutcome:
        if file is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

        upload = await self._read(file)
        if not upload.content:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
        if len(upload.content) > settings.max_file_size_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File exceeds the {settings.MAX_FILE_SIZE_MB} MB limit",
            )

        try:
            return await run_in_threadpool(
                self.processor.extract_statement, upload.filename, upload.content, upload.content_type
            )
        except StatementExtractionError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"code": e.code, "message": e.message})

    async def extract_batch(self, files: List[UploadFile]) -> List[BatchEntry]:
        uploads = [await self._read(f) for f in files]
        return await run_in_threadpool(extract_batch, uploads, None, None, self.processor)
