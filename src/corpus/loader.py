"""Corpus loading: CSV or JSONL tables of plays -> Play models."""
from __future__ import annotations
import logging
from pathlib import Path

import pandas as pd
from pydantic import ValidationError

from src.ner.errors import DataError
from src.ner.models import Play

log = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("title", "genre", "characters")
OPTIONAL_COLUMNS = ("city", "country")


def read_table(path: Path) -> pd.DataFrame:
    if path.suffix.lower() in (".jsonl", ".json"):
        return pd.read_json(path, lines=path.suffix.lower() == ".jsonl", dtype=False)
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def _cell(row: pd.Series, column: str) -> str:
    if column not in row.index:
        return ""
    val = row[column]
    if val is None or (isinstance(val, float) and pd.isna(val)):
        return ""
    return str(val)


def _play_text(row: pd.Series, base_dir: Path) -> str:
    text = _cell(row, "text")
    if text:
        return text
    rel = _cell(row, "text_path")
    if not rel:
        raise DataError(f"Play '{_cell(row, 'title')}' has neither 'text' nor 'text_path'")
    path = (base_dir / rel).resolve()
    if not path.exists():
        raise DataError(f"Text file not found for '{_cell(row, 'title')}': {path}")
    return path.read_text(encoding="utf-8")


def frame_to_plays(df: pd.DataFrame, base_dir: Path = Path(".")) -> list[Play]:
    """Build Play models from a corpus table, preserving row order."""
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DataError(f"Corpus is missing required columns: {missing}")
    if "text" not in df.columns and "text_path" not in df.columns:
        raise DataError("Corpus needs a 'text' or 'text_path' column")

    plays = []
    seen: set[str] = set()
    for idx, row in df.iterrows():
        title = _cell(row, "title").strip()
        if not title:
            raise DataError(f"Row {idx}: empty title")
        if title in seen:
            raise DataError(f"Row {idx}: duplicate play id {title!r}")
        seen.add(title)
        text, load_error = "", None
        try:
            text = _play_text(row, base_dir)
        except DataError as e:
            log.warning("Row %s: %s", idx, e)
            load_error = str(e)
        try:
            plays.append(Play(
                play_id=title,
                text=text,
                genre=_cell(row, "genre"),
                characters=_cell(row, "characters"),
                city=_cell(row, "city") or None,
                country=_cell(row, "country") or None,
                load_error=load_error,
            ))
        except ValidationError as e:
            raise DataError(f"Row {idx} ({title}): {e}") from e
    return plays


def load_corpus(path: str | Path) -> list[Play]:
    """Load the play corpus from a CSV or JSONL file.

    A row whose text cannot be read still yields a Play, carrying
    ``load_error``; it ends up as an invalid row of the results table.
    Table-level problems (missing columns, empty or duplicate titles) and
    unknown genres abort loading with a DataError.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Corpus not found: {path}")
    plays = frame_to_plays(read_table(path), base_dir=path.parent)
    log.info("Loaded %d plays from %s", len(plays), path)
    return plays
