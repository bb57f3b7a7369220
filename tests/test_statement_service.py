from io import BytesIO

import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from schemas.extraction import DetectedFormat
from statements.statement_service import StatementService


def _upload(name: str, content: bytes, content_type: str) -> UploadFile:
    return UploadFile(file=BytesIO(content), filename=name, headers=Headers({"content-type": content_type}))


@pytest.mark.asyncio
async def test_extract_pdf_upload(make_pdf, fiserv_lines):
    service = StatementService()
    outcome = await service.extract_statement(_upload("fiserv.pdf", make_pdf(fiserv_lines), "application/pdf"))
    assert outcome.detected_format is DetectedFormat.FISERV
    assert outcome.page_count == 1


@pytest.mark.asyncio
async def test_unreadable_upload_maps_to_400():
    service = StatementService()
    with pytest.raises(HTTPException) as exc:
        await service.extract_statement(_upload("broken.pdf", b"%PDF-broken", "application/pdf"))
    assert exc.value.status_code == 400
    assert exc.value.detail["code"].startswith("ERROR_")


@pytest.mark.asyncio
async def test_batch_never_raises():
    service = StatementService()
    entries = await service.extract_batch([
        _upload("a.txt", b"x", "text/plain"),
        _upload("b.csv", b"sales count\n3\n", "text/csv"),
    ])
    assert len(entries) == 2
    assert [e.ok for e in entries] == [False, True]
