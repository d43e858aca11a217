"""Per-play persistence of annotator output (one JSONL file per play)."""
from __future__ import annotations
import hashlib
import logging
import re
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from .errors import ProcessingError
from .models import Annotation, annotation_adapter

log = logging.getLogger(__name__)

RE_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def play_slug(play_id: str) -> str:
    """Filesystem-safe name for a play id."""
    slug = RE_UNSAFE.sub("_", play_id.strip()).strip("_.")
    return slug or "play"


class AnnotationStore:
    """Directory of annotation files keyed by play id."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path_for(self, play_id: str) -> Path:
        # readable slug plus a digest of the exact id; distinct ids never share a file
        digest = hashlib.sha1(play_id.encode("utf-8")).hexdigest()[:8]
        return self.root / f"{play_slug(play_id)}-{digest}.jsonl"

    def exists(self, play_id: str) -> bool:
        return self.path_for(play_id).exists()

    def save(self, play_id: str, annotations: Sequence[Annotation]) -> Path:
        path = self.path_for(play_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".jsonl.tmp")
        with open(tmp, "w", encoding="utf-8") as out:
            for ann in annotations:
                out.write(ann.model_dump_json() + "\n")
        tmp.replace(path)
        log.debug("Saved %d annotations for %s -> %s", len(annotations), play_id, path)
        return path

    def load(self, play_id: str) -> list[Annotation]:
        path = self.path_for(play_id)
        if not path.exists():
            raise ProcessingError(f"No stored annotations for '{play_id}' at {path}")
        annotations = []
        with open(path, "r", encoding="utf-8") as f:
            for ln, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    annotations.append(annotation_adapter.validate_json(line))
                except ValidationError as e:
                    raise ProcessingError(f"{path}:{ln}: {e}") from e
        return annotations
