from __future__ import annotations

import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence, Tuple

from schemas.extraction import BatchEntry, ExtractionOutcome, UploadedStatement
from settings.config import settings
from statements.json_logger import get_json_logger
from statements.numeric import period_from_filename
from statements.statement_processor import StatementProcessor, get_processor

logger = get_json_logger("statements.batch")

QUEUE_POLL_SECONDS = 0.05


def _entry_for(upload: UploadedStatement, outcome: ExtractionOutcome) -> BatchEntry:
    # an in-document period beats a guess from the filename
    period = outcome.fields.statement_period or period_from_filename(upload.filename)
    return BatchEntry(
        filename=upload.filename,
        period=period,
        fields=outcome.fields,
        warnings=list(outcome.warnings),
        detected_format=outcome.inferred_format or outcome.detected_format,
        requires_manual_entry=outcome.requires_manual_entry,
    )


def _failed_entry(upload: UploadedStatement, message: str) -> BatchEntry:
    return BatchEntry(
        filename=upload.filename,
        period=period_from_filename(upload.filename),
        parse_error=message,
    )


def sort_entries(entries: Sequence[BatchEntry]) -> List[BatchEntry]:
    """Chronological by (year, month); entries without a period last, in upload order."""
    dated: List[Tuple[Tuple[int, int], int, BatchEntry]] = []
    undated: List[BatchEntry] = []
    for idx, entry in enumerate(entries):
        if entry.period is None:
            undated.append(entry)
        else:
            dated.append((entry.period.sort_key, idx, entry))
    dated.sort(key=lambda item: (item[0], item[1]))
    return [entry for _, _, entry in dated] + undated


def extract_batch(
    files: Sequence[UploadedStatement],
    max_workers: Optional[int] = None,
    timeout: Optional[float] = None,
    processor: Optional[StatementProcessor] = None,
) -> List[BatchEntry]:
    """
    Run every file through the pipeline independently and return one entry per
    file, sorted by statement period. Never raises: decode errors, unsupported
    types and timeouts are recorded on the failing file's entry.

    Each file's timeout counts from when its extraction starts. A timed-out
    extraction cannot be interrupted and keeps its worker thread, so files still
    queued at that point move to a fresh pool instead of waiting behind it.
    """
    if not files:
        return []
    proc = processor or get_processor()
    workers = max(1, int(max_workers if max_workers is not None else settings.BATCH_MAX_WORKERS))
    wait_seconds = timeout if timeout is not None else settings.EXTRACTION_TIMEOUT_SECONDS

    entries: List[Optional[BatchEntry]] = [None] * len(files)
    started: Dict[int, float] = {}

    def run(idx: int) -> ExtractionOutcome:
        started[idx] = time.monotonic()
        upload = files[idx]
        return proc.extract_statement(upload.filename, upload.content, upload.content_type)

    pools = [ThreadPoolExecutor(max_workers=min(workers, len(files)))]
    try:
        pending: Dict[Future, int] = {pools[0].submit(run, idx): idx for idx in range(len(files))}
        while pending:
            deadlines = [started[idx] + wait_seconds for idx in pending.values() if idx in started]
            poll = max(0.0, min(deadlines) - time.monotonic()) if deadlines else QUEUE_POLL_SECONDS
            done, _ = wait(pending, timeout=poll, return_when=FIRST_COMPLETED)

            for fut in done:
                idx = pending.pop(fut)
                upload = files[idx]
                try:
                    entries[idx] = _entry_for(upload, fut.result())
                except Exception as exc:
                    logger.warning(
                        "batch_entry_failed",
                        extra={"extra": {"file": upload.filename, "error": str(exc), "code": getattr(exc, "code", None)}},
                    )
                    entries[idx] = _failed_entry(upload, str(exc) or exc.__class__.__name__)

            now = time.monotonic()
            expired = [
                fut for fut, idx in pending.items()
                if idx in started and now - started[idx] >= wait_seconds and not fut.done()
            ]
            if not expired:
                continue
            for fut in expired:
                idx = pending.pop(fut)
                logger.warning("batch_entry_timeout", extra={"extra": {"file": files[idx].filename, "timeout": wait_seconds}})
                entries[idx] = _failed_entry(files[idx], f"Extraction timed out after {wait_seconds:g} seconds.")

            queued = [fut for fut in pending if fut.cancel()]
            if queued:
                pool = ThreadPoolExecutor(max_workers=min(workers, len(queued)))
                pools.append(pool)
                for fut in queued:
                    idx = pending.pop(fut)
                    pending[pool.submit(run, idx)] = idx
    finally:
        # timed-out extractions are left to finish in the background
        for pool in pools:
            pool.shutdown(wait=False, cancel_futures=True)

    result = sort_entries([e for e in entries if e is not None])
    logger.info(
        "batch_completed",
        extra={"extra": {"files": len(files), "failed": sum(1 for e in result if not e.ok), "pools": len(pools)}},
    )
    return result
