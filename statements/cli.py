from __future__ import annotations

import argparse
import json
import os
from typing import Any, Dict, List

from schemas.extraction import ExtractionOutcome, UploadedStatement
from statements.batch import extract_batch
from statements.statement_processor import StatementProcessor


def _summary(path: str, outcome: ExtractionOutcome) -> Dict[str, Any]:
    fields = outcome.fields
    return {
        "file": path,
        "source": outcome.source,
        "format": outcome.detected_format.value,
        "inferred_format": outcome.inferred_format.value if outcome.inferred_format else None,
        "period": fields.statement_period.label if fields.statement_period else None,
        "fields": {
            name: (value.value if value.found else None)
            for name, value in fields.numeric_items()
        },
        "requires_manual_entry": outcome.requires_manual_entry,
        "warnings": outcome.warnings,
    }


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Extract risk fields from merchant statements and print a summary")
    parser.add_argument("paths", nargs="+", help="CSV or PDF statement paths")
    parser.add_argument("--batch", action="store_true", help="Process all files as one batch sorted by statement period")
    parser.add_argument("--password", default=None, help="Password for encrypted PDFs")
    args = parser.parse_args(argv)

    processor = StatementProcessor()

    uploads: List[UploadedStatement] = []
    for path in args.paths:
        if not os.path.exists(path):
            print(json.dumps({"file": path, "error": "not_found"}))
            continue
        with open(path, "rb") as f:
            content = f.read()
        if args.batch:
            uploads.append(UploadedStatement(filename=os.path.basename(path), content=content))
            continue
        try:
            if path.lower().endswith(".pdf"):
                outcome = processor.extract_pdf(content, password=args.password)
            else:
                outcome = processor.extract_statement(os.path.basename(path), content)
            print(json.dumps(_summary(path, outcome), default=str))
        except Exception as e:
            print(json.dumps({"file": path, "error": str(e)}))

    if args.batch and uploads:
        for entry in extract_batch(uploads, processor=processor):
            print(entry.model_dump_json(by_alias=True))


if __name__ == "__main__":
    main()
