import json
import os
import re
from typing import Any, Dict, List, Optional

import pandas as pd

GRID_KEYS = ("grid", "puzzle", "quizzes", "sudoku")


def parse_grid(value: Any) -> List[int]:
    """
    Accepts a list of ints, a compact digit string ("004089570...", '.' for
    blank), or a whitespace/comma separated string (needed once values pass 9).
    """
    if isinstance(value, (list, tuple)):
        return [int(v) for v in value]
    if hasattr(value, "tolist"):
        return [int(v) for v in value.tolist()]
    text = str(value).strip()
    if re.search(r"[\s,;]", text):
        return [int(tok) for tok in re.split(r"[\s,;]+", text) if tok]
    return [0 if ch in ".0" else int(ch) for ch in text]


def load_grids(file_path: str) -> List[Dict[str, Any]]:
    """
    Reads raw grids from a file. Handles .parquet, .csv, .json, .jsonl and
    plain text (one grid per line, '#' starts a comment).
    Returns a list of {"id": ..., "grid": [...]} records.
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    stem = os.path.splitext(os.path.basename(file_path))[0]

    def _extract_grid(record: Dict[str, Any]) -> Optional[Any]:
        for key in GRID_KEYS:
            if key in record and record[key] is not None:
                return record[key]
        return None

    def _normalize_record(record: Any, index: int) -> Optional[Dict[str, Any]]:
        if isinstance(record, dict):
            raw = _extract_grid(record)
            if raw is None:
                return None
            pid = record.get("id")
            return {
                "id": str(pid) if pid is not None and pid != "" else f"{stem}-{index}",
                "grid": parse_grid(raw),
            }
        if isinstance(record, (list, str)):
            return {"id": f"{stem}-{index}", "grid": parse_grid(record)}
        return None

    def _collect(records: List[Any]) -> List[Dict[str, Any]]:
        data = []
        for i, r in enumerate(records):
            normalized = _normalize_record(r, i)
            if normalized is not None:
                data.append(normalized)
        return data

    # Case 1: tabular files
    if file_path.endswith(".parquet"):
        return _collect(pd.read_parquet(file_path).to_dict(orient="records"))
    if file_path.endswith(".csv"):
        df = pd.read_csv(file_path, dtype=str, keep_default_na=False)
        return _collect(df.to_dict(orient="records"))

    # Case 2: JSON File (array, object, or a single flat grid)
    if file_path.endswith(".json"):
        with open(file_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        if isinstance(payload, list) and payload and all(isinstance(v, int) for v in payload):
            return _collect([payload])
        if isinstance(payload, list):
            return _collect(payload)
        return _collect([payload])

    # Case 3: JSONL File
    if file_path.endswith(".jsonl"):
        records = []
        with open(file_path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    records.append(json.loads(line))
        return _collect(records)

    # Case 4: plain text
    lines = []
    with open(file_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.split("#", 1)[0].strip()
            if line:
                lines.append(line)
    return _collect(lines)
