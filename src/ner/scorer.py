"""Accuracy scoring of extracted names against ground-truth character lists."""
from __future__ import annotations
from typing import Iterable

from .errors import DataError, EmptyGroundTruthError
from .models import AccuracyRecord, Play

CHARACTER_DELIMITER = ", "


def parse_characters(raw: str) -> list[str]:
    """Split a ground-truth character list on ``", "``.

    Raises DataError for an empty list or a delimiter mismatch.
    """
    raw = (raw or "").strip()
    if not raw:
        raise DataError("ground-truth character list is empty")
    names = [part.strip() for part in raw.split(CHARACTER_DELIMITER)]
    for name in names:
        if not name:
            raise DataError(f"empty name in character list: {raw[:80]!r}")
        if "," in name or ";" in name:
            raise DataError(f"character list does not use {CHARACTER_DELIMITER!r} as delimiter: {name[:80]!r}")
    return names


def score_names(names: Iterable[str], ground_truth: Iterable[str]) -> tuple[set[str], float]:
    """Exact, case-sensitive match of names against the ground truth.

    Returns (matched, accuracy) with accuracy = |matched| / |ground truth|.
    """
    truth = set(ground_truth)
    if not truth:
        raise EmptyGroundTruthError("accuracy is undefined for an empty ground-truth set")
    matched = truth & set(names)
    return matched, len(matched) / len(truth)


def score_play(play: Play, names: Iterable[str]) -> AccuracyRecord:
    names = sorted(set(names))
    truth = parse_characters(play.characters)
    matched, accuracy = score_names(names, truth)
    return AccuracyRecord(
        play_id=play.play_id,
        genre=play.genre,
        recognized_names=names,
        recognized_count=len(names),
        ground_truth_count=len(set(truth)),
        matched_count=len(matched),
        accuracy=accuracy,
        city=play.city,
        country=play.country,
    )
