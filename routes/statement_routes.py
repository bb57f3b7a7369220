from typing import List

from fastapi import APIRouter, File, UploadFile

from schemas.extraction import BatchEntry, ExtractionOutcome
from statements.statement_service import StatementService

router = APIRouter(prefix="/statements", tags=["statements"])
statement_service = StatementService()


@router.post("/extract", response_model=ExtractionOutcome, response_model_by_alias=True)
async def extract_statement_route(file: UploadFile = File(...)) -> ExtractionOutcome:
    """Extract the canonical fields from one CSV or PDF statement."""
    return await statement_service.extract_statement(file)


@router.post("/batch", response_model=List[BatchEntry], response_model_by_alias=True)
async def extract_batch_route(files: List[UploadFile] = File(...)) -> List[BatchEntry]:
    """Extract every uploaded statement; failures are reported per file."""
    return await statement_service.extract_batch(files)
