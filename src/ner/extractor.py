"""Name extraction from entity spans."""
from __future__ import annotations
import re
from typing import Iterable

from .models import EntityAnnotation

RE_WHITESPACE = re.compile(r"\s")


def entity_strings(text: str, annotations: Iterable) -> set[str]:
    """Slice the text covered by every entity annotation, deduplicated."""
    return {
        text[a.start:a.end]
        for a in annotations
        if isinstance(a, EntityAnnotation)
    }


def extract_names(text: str, annotations: Iterable) -> frozenset[str]:
    """Extract candidate character names from entity annotations.

    Every extracted string is also split on single whitespace characters and
    each fragment is added on its own, so "Lady Macbeth" contributes "Lady",
    "Macbeth" and "Lady Macbeth". This raises measured recall against the
    ground-truth character lists and is applied to all entities regardless
    of which language model found them.
    """
    names = entity_strings(text, annotations)
    fragments = set()
    for name in names:
        fragments.update(part for part in RE_WHITESPACE.split(name) if part)
    return frozenset(names | fragments)
