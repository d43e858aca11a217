"""Aggregate accuracy table: one row per play, flat CSV."""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Sequence

import pandas as pd

from src.ner.models import AccuracyRecord

log = logging.getLogger(__name__)

NAME_DELIMITER = ", "

COLUMNS = [
    "play_id", "recognized_names", "accuracy", "genre",
    "recognized_count", "ground_truth_count", "matched_count",
    "status", "error", "city", "country",
]


def records_to_frame(records: Sequence[AccuracyRecord]) -> pd.DataFrame:
    """Flatten records into a DataFrame, keeping record order."""
    rows = []
    for r in records:
        rows.append({
            "play_id": r.play_id,
            "recognized_names": NAME_DELIMITER.join(r.recognized_names),
            "accuracy": r.accuracy,
            "genre": r.genre.value,
            "recognized_count": r.recognized_count,
            "ground_truth_count": r.ground_truth_count,
            "matched_count": r.matched_count,
            "status": r.status.value,
            "error": r.error or "",
            "city": r.city or "",
            "country": r.country or "",
        })
    return pd.DataFrame(rows, columns=COLUMNS)


def save_table(records: Sequence[AccuracyRecord], path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    records_to_frame(records).to_csv(path, index=False, encoding="utf-8")
    log.info("Wrote %d rows to %s", len(records), path)
    return path


def load_table(path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(path, keep_default_na=False, na_values={"accuracy": [""]})
    missing = [c for c in COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing columns {missing}")
    return df
