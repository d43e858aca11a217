"""Character cue normalization: rewrite all-caps speaker cues to title case."""
from __future__ import annotations
import re

# ---- Cue detection rules ----

# One or two runs of 2+ capitals on one line, e.g. "MACBETH" or "LADY MACBETH"
RE_CUE = re.compile(r"(?<![A-Za-z])[A-Z]{2,}(?:[ \t]+[A-Z]{2,})?(?![A-Za-z])")

STRUCTURAL_MARKERS = {"ACT", "SCENE"}

ROMAN_NUMERALS = {"I", "II", "III", "IV", "V", "VI", "VII", "VIII", "IX", "X"}


def is_structural(candidate: str) -> bool:
    """True for act/scene headings and bare Roman numerals."""
    tokens = candidate.split()
    if any(tok in STRUCTURAL_MARKERS for tok in tokens):
        return True
    return all(tok in ROMAN_NUMERALS for tok in tokens)


def find_cues(text: str) -> list[str]:
    """Return candidate character cues in discovery order, deduplicated."""
    seen: dict[str, None] = {}
    for m in RE_CUE.finditer(text or ""):
        candidate = m.group(0)
        if is_structural(candidate):
            continue
        seen.setdefault(candidate, None)
    return list(seen)


def _cue_pattern(candidate: str) -> re.Pattern:
    return re.compile(r"(?<![A-Za-z])" + re.escape(candidate) + r"(?![A-Za-z])")


def normalize_cues(text: str) -> str:
    """Rewrite every all-caps character cue in ``text`` to title case.

    Candidates are rewritten one after another in discovery order. A
    candidate that contains an earlier one (``LADY MACBETH`` after
    ``MACBETH``) may no longer match once the earlier rewrite has run and is
    then left partially capitalized. This is a known limitation.
    """
    if not text:
        return ""
    for candidate in find_cues(text):
        text = _cue_pattern(candidate).sub(candidate.title(), text)
    return text
