"""Annotator adapters: sentence/word segmentation and person-entity tagging.

Segmentation uses NLTK Punkt models. Entity tagging is pluggable:

    - "maxent"      -> NLTK POS tagger + maximum-entropy NE chunker
    - "huggingface" -> HuggingFace token-classification pipeline
"""
from __future__ import annotations
import logging
import re
from abc import ABC, abstractmethod
from typing import Iterable, Literal, Optional, Sequence

from pydantic import BaseModel

from .errors import ModelUnavailable
from .models import Annotation, EntityAnnotation, SentenceAnnotation, WordAnnotation

log = logging.getLogger(__name__)

PERSON = "person"

# Chunk / group labels that denote a person, per backend
MAXENT_PERSON_LABELS = {"PERSON"}
HF_PERSON_LABELS = {"PER", "B-PER", "I-PER", "PERSON"}

# NLTK resources needed by the maxent tagger (Punkt is checked per language)
MAXENT_RESOURCES = [
    "taggers/averaged_perceptron_tagger_eng/",
    "chunkers/maxent_ne_chunker_tab/english_ace_multiclass/",
    "corpora/words",
]

RE_WORD = re.compile(r"\w+|[^\w\s]+")


class LanguageModel(BaseModel):
    """Model settings for one requested language."""
    backend: Literal["maxent", "huggingface"] = "maxent"
    punkt: str = "english"
    model: Optional[str] = None
    device: int = -1
    confidence_threshold: float = 0.5


def _require_nltk(language: str, resources: Iterable[str]) -> None:
    import nltk
    for resource in resources:
        try:
            nltk.data.find(resource)
        except LookupError as e:
            raise ModelUnavailable(language, f"NLTK resource '{resource}' not installed") from e


class PunktSegmenter:
    """Sentence spans from NLTK Punkt, word spans from a regex tokenizer."""

    def __init__(self, language: str = "english"):
        _require_nltk(language, [f"tokenizers/punkt_tab/{language}/"])
        from nltk.tokenize.punkt import PunktTokenizer
        self.language = language
        self._punkt = PunktTokenizer(language)

    def sentences(self, text: str) -> list[SentenceAnnotation]:
        return [SentenceAnnotation(start=s, end=e) for s, e in self._punkt.span_tokenize(text)]

    def words(self, text: str, sentences: Sequence[SentenceAnnotation]) -> list[WordAnnotation]:
        words = []
        for sent in sentences:
            for m in RE_WORD.finditer(text, sent.start, sent.end):
                words.append(WordAnnotation(start=m.start(), end=m.end()))
        return words


class BaseAnnotator(ABC):
    """Abstract base for person-entity taggers."""

    @abstractmethod
    def tag(
        self,
        text: str,
        sentences: Sequence[SentenceAnnotation],
        words: Sequence[WordAnnotation],
    ) -> list[EntityAnnotation]:
        ...


def _words_in(sentence: SentenceAnnotation, words: Sequence[WordAnnotation]) -> list[WordAnnotation]:
    return [w for w in words if w.start >= sentence.start and w.end <= sentence.end]


class MaxentAnnotator(BaseAnnotator):
    """Person entities via NLTK's maximum-entropy named-entity chunker."""

    def __init__(self, language: str = "en"):
        _require_nltk(language, MAXENT_RESOURCES)
        log.info("Loading NLTK maxent NE chunker for '%s'", language)
        self.language = language

    def tag(self, text, sentences, words):
        import nltk
        entities = []
        for sent in sentences:
            sent_words = _words_in(sent, words)
            if not sent_words:
                continue
            tokens = [text[w.start:w.end] for w in sent_words]
            tree = nltk.ne_chunk(nltk.pos_tag(tokens, lang="eng"))
            idx = 0
            for node in tree:
                if isinstance(node, nltk.Tree):
                    size = len(node.leaves())
                    if node.label() in MAXENT_PERSON_LABELS:
                        entities.append(EntityAnnotation(
                            start=sent_words[idx].start,
                            end=sent_words[idx + size - 1].end,
                            entity_type=PERSON,
                        ))
                    idx += size
                else:
                    idx += 1
        return entities


class HuggingFaceAnnotator(BaseAnnotator):
    """Person entities via a HuggingFace token-classification pipeline."""

    def __init__(self, model_name: str, language: str = "", device: int = -1,
                 confidence_threshold: float = 0.5):
        from transformers import pipeline
        self.model_name = model_name
        self.language = language
        self.confidence_threshold = confidence_threshold
        log.info("Loading HuggingFace NER model: %s (device=%d)", model_name, device)
        try:
            self.pipe = pipeline(
                "ner",
                model=model_name,
                tokenizer=model_name,
                device=device,
                aggregation_strategy="simple",
            )
        except OSError as e:
            raise ModelUnavailable(language or model_name, str(e)) from e

    def tag(self, text, sentences, words):
        entities = []
        for sent in sentences:
            chunk = text[sent.start:sent.end]
            if not chunk.strip():
                continue
            for ent in self.pipe(chunk):
                if float(ent["score"]) < self.confidence_threshold:
                    continue
                if ent["entity_group"] not in HF_PERSON_LABELS:
                    continue
                entities.append(EntityAnnotation(
                    start=sent.start + int(ent["start"]),
                    end=sent.start + int(ent["end"]),
                    entity_type=PERSON,
                ))
        return entities


def load_tagger(language: str, cfg: LanguageModel) -> BaseAnnotator:
    """Instantiate the tagger configured for ``language``."""
    if cfg.backend == "huggingface":
        if not cfg.model:
            raise ModelUnavailable(language, "no HuggingFace model name configured")
        return HuggingFaceAnnotator(
            model_name=cfg.model,
            language=language,
            device=cfg.device,
            confidence_threshold=cfg.confidence_threshold,
        )
    return MaxentAnnotator(language)


class MultiLanguageAnnotator:
    """Segment with the primary language, then tag with every language.

    Entity spans from different languages are concatenated in language
    order; callers cannot tell which model produced a given span.
    """

    def __init__(self, segmenter: PunktSegmenter, taggers: dict[str, BaseAnnotator]):
        if not taggers:
            raise ValueError("at least one tagger is required")
        self.segmenter = segmenter
        self.taggers = taggers

    @property
    def languages(self) -> list[str]:
        return list(self.taggers)

    def annotate(self, text: str, languages: Optional[Sequence[str]] = None) -> list[Annotation]:
        languages = list(languages) if languages else self.languages
        for lang in languages:
            if lang not in self.taggers:
                raise ModelUnavailable(lang, "not loaded")

        sentences = self.segmenter.sentences(text)
        words = self.segmenter.words(text, sentences)
        annotations: list[Annotation] = [*sentences, *words]
        for lang in languages:
            found = self.taggers[lang].tag(text, sentences, words)
            log.debug("%s tagger found %d person spans", lang, len(found))
            annotations.extend(found)
        return annotations


def build_annotator(languages: Sequence[str], models: dict[str, LanguageModel]) -> MultiLanguageAnnotator:
    """Load a tagger per requested language.

    A language whose model is missing is logged and skipped. Raises
    ModelUnavailable when no requested language could be loaded.
    """
    if not languages:
        raise ModelUnavailable("", "no languages requested")

    taggers: dict[str, BaseAnnotator] = {}
    segmenter: Optional[PunktSegmenter] = None
    for lang in languages:
        cfg = models.get(lang)
        try:
            if cfg is None:
                raise ModelUnavailable(lang, "no model configured")
            tagger = load_tagger(lang, cfg)
            if segmenter is None:
                segmenter = PunktSegmenter(cfg.punkt)
        except ModelUnavailable as e:
            log.error("Skipping language: %s", e)
            continue
        taggers[lang] = tagger

    if not taggers or segmenter is None:
        raise ModelUnavailable(", ".join(languages), "none of the requested languages could be loaded")
    return MultiLanguageAnnotator(segmenter, taggers)
