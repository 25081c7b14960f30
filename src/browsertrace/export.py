"""Batch export of the SFT log to an Alpaca-style JSON array.

The export is a pure transform over already-persisted data: it reads
``sft_data.jsonl`` and writes ``<output_dir>/train.json`` containing
``[{"instruction", "input", "output"}, ...]``. A missing SFT log exports an
empty array.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from browsertrace.core.errors import StorageError
from browsertrace.core.settings import get_logger
from browsertrace.core.storage import TraceStore

logger = get_logger("browsertrace.export")

EXPORT_FILENAME = "train.json"


def alpaca_records(store: TraceStore) -> list[dict[str, Any]]:
    """Project every SFT example onto its instruction/input/output fields."""
    return [
        {"instruction": ex.instruction, "input": ex.input, "output": ex.output}
        for ex in store.iter_sft()
    ]


def export_alpaca(store: TraceStore, output_dir: Path) -> Path:
    """Write ``train.json`` under ``output_dir`` and return its path."""
    records = alpaca_records(store)
    path = output_dir / EXPORT_FILENAME
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(records, f, ensure_ascii=False, indent=2)
            f.write("\n")
    except OSError as exc:
        raise StorageError(f"Could not write export to {path}: {exc}") from exc

    logger.info("Exported %d examples to %s", len(records), path)
    return path


__all__ = ["EXPORT_FILENAME", "alpaca_records", "export_alpaca"]
