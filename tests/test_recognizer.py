"""Tests for annotator adapters and backend selection."""
import pytest

from src.ner.errors import ConfigurationError, ModelUnavailable
from src.ner.models import EntityAnnotation, SentenceAnnotation, WordAnnotation
from src.ner import recognizer
from src.ner.recognizer import (
    BaseAnnotator,
    HuggingFaceAnnotator,
    LanguageModel,
    MultiLanguageAnnotator,
    build_annotator,
    load_tagger,
)
from tests.fakes import FakeSegmenter, FakeTagger, make_annotator


class TestMultiLanguageAnnotator:

    def test_phases_in_order(self):
        text = "Enter Hamlet. Horatio follows."
        anns = make_annotator("Hamlet", "Horatio").annotate(text)
        kinds = [a.kind for a in anns]
        assert kinds.index("entity") > max(i for i, k in enumerate(kinds) if k == "word")
        assert kinds.index("word") > max(i for i, k in enumerate(kinds) if k == "sentence")
        assert {text[a.start:a.end] for a in anns if a.kind == "entity"} == {"Hamlet", "Horatio"}

    def test_entities_concatenated_across_languages(self):
        annotator = make_annotator("Hamlet", es=FakeTagger(["Horacio"]))
        text = "Hamlet y Horacio."
        ents = [a for a in annotator.annotate(text) if isinstance(a, EntityAnnotation)]
        assert [text[e.start:e.end] for e in ents] == ["Hamlet", "Horacio"]
        assert annotator.languages == ["en", "es"]

    def test_subset_of_languages(self):
        annotator = make_annotator("Hamlet", es=FakeTagger(["Horacio"]))
        ents = [a for a in annotator.annotate("Hamlet y Horacio.", ["es"]) if a.kind == "entity"]
        assert len(ents) == 1

    def test_unloaded_language_raises(self):
        with pytest.raises(ModelUnavailable) as exc:
            make_annotator("Hamlet").annotate("Hamlet.", ["de"])
        assert exc.value.language == "de"
        assert isinstance(exc.value, ConfigurationError)

    def test_requires_a_tagger(self):
        with pytest.raises(ValueError):
            MultiLanguageAnnotator(FakeSegmenter(), {})

    def test_base_annotator_is_abstract(self):
        with pytest.raises(TypeError):
            BaseAnnotator()


class TestBuildAnnotator:

    def test_no_languages(self):
        with pytest.raises(ModelUnavailable):
            build_annotator([], {})

    def test_unconfigured_language_is_skipped(self, monkeypatch):
        monkeypatch.setattr(recognizer, "PunktSegmenter", lambda language: FakeSegmenter())
        monkeypatch.setattr(recognizer, "load_tagger", lambda lang, cfg: FakeTagger(["Hamlet"]))
        annotator = build_annotator(["en", "xx"], {"en": LanguageModel()})
        assert annotator.languages == ["en"]

    def test_all_languages_missing(self):
        with pytest.raises(ModelUnavailable):
            build_annotator(["xx", "yy"], {})

    def test_failed_model_load_is_skipped(self, monkeypatch):
        def fake_load(lang, cfg):
            if lang == "es":
                raise ModelUnavailable(lang, "download failed")
            return FakeTagger([])

        monkeypatch.setattr(recognizer, "PunktSegmenter", lambda language: FakeSegmenter())
        monkeypatch.setattr(recognizer, "load_tagger", fake_load)
        annotator = build_annotator(["es", "en"], {"es": LanguageModel(), "en": LanguageModel()})
        assert annotator.languages == ["en"]

    def test_huggingface_requires_model_name(self):
        with pytest.raises(ModelUnavailable):
            load_tagger("es", LanguageModel(backend="huggingface"))

    def test_language_model_defaults(self):
        cfg = LanguageModel()
        assert cfg.backend == "maxent"
        assert cfg.punkt == "english"


class TestHuggingFaceAnnotator:

    def _fake_pipeline(self, outputs):
        def factory(task, **kwargs):
            assert task == "ner"
            assert kwargs["aggregation_strategy"] == "simple"
            return lambda chunk: outputs.get(chunk, [])
        return factory

    def test_person_groups_with_sentence_offsets(self, monkeypatch):
        pytest.importorskip("transformers")
        text = "Hola. Romeo ama a Julieta en Verona."
        sentence = "Romeo ama a Julieta en Verona."
        outputs = {sentence: [
            {"entity_group": "PER", "score": 0.99, "word": "Romeo", "start": 0, "end": 5},
            {"entity_group": "PER", "score": 0.30, "word": "Julieta", "start": 12, "end": 19},
            {"entity_group": "LOC", "score": 0.99, "word": "Verona", "start": 23, "end": 29},
        ]}
        monkeypatch.setattr("transformers.pipeline", self._fake_pipeline(outputs))
        tagger = HuggingFaceAnnotator("fake/model", language="es", confidence_threshold=0.5)
        sentences = [SentenceAnnotation(start=0, end=5), SentenceAnnotation(start=6, end=len(text))]
        ents = tagger.tag(text, sentences, [])
        assert [text[e.start:e.end] for e in ents] == ["Romeo"]

    def test_missing_model_raises_unavailable(self, monkeypatch):
        pytest.importorskip("transformers")

        def factory(task, **kwargs):
            raise OSError("fake/model is not a valid model identifier")

        monkeypatch.setattr("transformers.pipeline", factory)
        with pytest.raises(ModelUnavailable):
            HuggingFaceAnnotator("fake/model", language="es")


class TestMaxentBackend:
    """Integration tests for the NLTK models (skipped unless installed)."""

    @pytest.fixture(scope="class")
    def annotator(self):
        try:
            return build_annotator(["en"], {"en": LanguageModel()})
        except ModelUnavailable as e:
            pytest.skip(str(e))

    def test_spans_are_consistent(self, annotator):
        text = "Hamlet spoke with Horatio in Denmark. Then Ophelia arrived."
        anns = annotator.annotate(text)
        sentences = [a for a in anns if isinstance(a, SentenceAnnotation)]
        words = [a for a in anns if isinstance(a, WordAnnotation)]
        assert len(sentences) == 2
        assert text[words[0].start:words[0].end] == "Hamlet"
        for a in anns:
            assert 0 <= a.start <= a.end <= len(text)

    def test_entities_are_people_within_words(self, annotator):
        text = "Then Mark Pedersen and Lady Macbeth met in Inverness."
        anns = annotator.annotate(text)
        word_bounds = {a.start for a in anns if a.kind == "word"} | {a.end for a in anns if a.kind == "word"}
        for e in (a for a in anns if a.kind == "entity"):
            assert e.entity_type == "person"
            assert e.start in word_bounds and e.end in word_bounds

    def test_empty_text(self, annotator):
        assert annotator.annotate("") == []
