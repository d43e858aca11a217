"""Pydantic models for plays, annotations and accuracy records."""
from __future__ import annotations
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator


class Genre(str, Enum):
    COMEDY = "Comedy"
    TRAGEDY = "Tragedy"
    HISTORY = "History"

    @classmethod
    def parse(cls, value: str) -> "Genre":
        """Case-insensitive lookup; raises ValueError for unknown genres."""
        key = (value or "").strip().lower()
        for genre in cls:
            if genre.value.lower() == key:
                return genre
        raise ValueError(f"Unknown genre: {value!r}")


class Play(BaseModel):
    """A single play of the corpus. Read-only input."""
    model_config = {"frozen": True}

    play_id: str
    text: str
    genre: Genre
    characters: str
    city: Optional[str] = None
    country: Optional[str] = None
    # Set when the play text could not be read; the play is scored as invalid
    load_error: Optional[str] = None

    @field_validator("genre", mode="before")
    @classmethod
    def _parse_genre(cls, v):
        if isinstance(v, Genre):
            return v
        return Genre.parse(str(v))


class _Span(BaseModel):
    model_config = {"frozen": True}

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self):
        if self.end < self.start:
            raise ValueError(f"span end {self.end} precedes start {self.start}")
        return self


class SentenceAnnotation(_Span):
    kind: Literal["sentence"] = "sentence"


class WordAnnotation(_Span):
    kind: Literal["word"] = "word"


class EntityAnnotation(_Span):
    kind: Literal["entity"] = "entity"
    entity_type: str = "person"


# Offsets index the normalized play text; end is exclusive.
Annotation = Annotated[
    Union[SentenceAnnotation, WordAnnotation, EntityAnnotation],
    Field(discriminator="kind"),
]

annotation_adapter: TypeAdapter = TypeAdapter(Annotation)


class RecordStatus(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    FAILED = "failed"


class AccuracyRecord(BaseModel):
    """Per-play outcome of extraction and scoring."""
    play_id: str
    genre: Genre
    recognized_names: list[str] = []
    recognized_count: int = 0
    ground_truth_count: int = 0
    matched_count: int = 0
    accuracy: Optional[float] = None
    status: RecordStatus = RecordStatus.OK
    error: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None

    @property
    def rounded_accuracy(self) -> Optional[float]:
        if self.accuracy is None:
            return None
        return round(self.accuracy, 2)
