"""Corpus aggregation: normalize, annotate, extract and score every play."""
from __future__ import annotations
import logging
from concurrent.futures import ProcessPoolExecutor, TimeoutError as FutureTimeout
from typing import Optional, Sequence

from tqdm import tqdm

from .errors import ConfigurationError, DataError, NERError, ProcessingError
from .extractor import extract_names
from .models import AccuracyRecord, Play, RecordStatus
from .normalizer import normalize_cues
from .recognizer import LanguageModel, MultiLanguageAnnotator, build_annotator
from .scorer import score_play
from .store import AnnotationStore

log = logging.getLogger(__name__)

# Global annotator (initialized once per worker process)
_annotator: MultiLanguageAnnotator | None = None


def _init_annotator(languages: list[str], models: dict[str, LanguageModel]):
    global _annotator
    try:
        _annotator = build_annotator(languages, models)
    except ConfigurationError as e:
        log.error("No annotator in worker, only stored annotations can be scored: %s", e)
        _annotator = None


def process_play(
    play: Play,
    annotator: Optional[MultiLanguageAnnotator],
    store: AnnotationStore,
    reuse_annotations: bool = True,
) -> AccuracyRecord:
    """Run the full pipeline for one play. Errors propagate to the caller."""
    if play.load_error:
        raise DataError(play.load_error)
    text = normalize_cues(play.text)

    if reuse_annotations and store.exists(play.play_id):
        log.debug("Reusing stored annotations for %s", play.play_id)
        annotations = store.load(play.play_id)
    elif annotator is None:
        raise ProcessingError(f"No stored annotations for '{play.play_id}' and no annotator")
    else:
        try:
            annotations = annotator.annotate(text)
        except NERError:
            raise
        except Exception as e:
            raise ProcessingError(f"Annotator failed on '{play.play_id}': {e}") from e
        store.save(play.play_id, annotations)

    names = extract_names(text, annotations)
    return score_play(play, names)


def _error_record(play: Play, status: RecordStatus, error: str) -> AccuracyRecord:
    return AccuracyRecord(
        play_id=play.play_id,
        genre=play.genre,
        status=status,
        error=error,
        city=play.city,
        country=play.country,
    )


def process_play_safe(
    play: Play,
    annotator: Optional[MultiLanguageAnnotator],
    store: AnnotationStore,
    reuse_annotations: bool = True,
) -> AccuracyRecord:
    """Like process_play, but per-play errors become the record's status."""
    try:
        return process_play(play, annotator, store, reuse_annotations)
    except DataError as e:
        log.warning("Invalid play %s: %s", play.play_id, e)
        return _error_record(play, RecordStatus.INVALID, str(e))
    except (ConfigurationError, ProcessingError) as e:
        log.error("Failed play %s: %s", play.play_id, e)
        return _error_record(play, RecordStatus.FAILED, str(e))
    except Exception as e:
        log.exception("Unexpected error on play %s", play.play_id)
        return _error_record(play, RecordStatus.FAILED, f"{type(e).__name__}: {e}")


def _process_play_worker(args):
    """Wrapper for multiprocessing."""
    play, store_root, reuse_annotations = args
    return process_play_safe(play, _annotator, AnnotationStore(store_root), reuse_annotations)


def process_corpus(
    plays: Sequence[Play],
    store: AnnotationStore,
    languages: Sequence[str] = ("en",),
    models: Optional[dict[str, LanguageModel]] = None,
    annotator: Optional[MultiLanguageAnnotator] = None,
    reuse_annotations: bool = True,
    workers: int = 1,
    timeout: Optional[float] = None,
    mp_context=None,
) -> list[AccuracyRecord]:
    """Process every play and return one record per play, in input order.

    Args:
        plays: corpus in canonical order
        store: where per-play annotator output is persisted
        languages: requested annotator languages
        models: per-language model settings (used when annotator is None)
        annotator: pre-built annotator; sequential mode only
        reuse_annotations: reload stored annotations instead of re-annotating
        workers: parallel play workers (each loads its own models)
        timeout: seconds to wait for a single play in parallel mode. A play
            that exceeds it is marked failed, and once every play has been
            collected the pool's workers are terminated instead of joined.
        mp_context: multiprocessing context for the worker pool
    """
    plays = list(plays)
    if not plays:
        log.warning("Empty corpus, nothing to process")
        return []

    models = models or {}
    log.info("Processing %d plays (languages=%s, workers=%d)", len(plays), list(languages), workers)

    if workers <= 1:
        if annotator is None:
            try:
                annotator = build_annotator(list(languages), models)
            except ConfigurationError as e:
                log.error("No annotator available, only stored annotations can be scored: %s", e)
        records = [
            process_play_safe(play, annotator, store, reuse_annotations)
            for play in tqdm(plays, desc="NER")
        ]
    else:
        if annotator is not None:
            raise ValueError("a pre-built annotator cannot be shared across worker processes")
        records = _process_parallel(plays, store, languages, models, reuse_annotations,
                                    workers, timeout, mp_context)

    _log_summary(records)
    return records


def _process_parallel(plays, store, languages, models, reuse_annotations, workers, timeout, mp_context):
    records = []
    timed_out = False
    pool = ProcessPoolExecutor(
        max_workers=workers,
        mp_context=mp_context,
        initializer=_init_annotator,
        initargs=(list(languages), models),
    )
    try:
        futures = [
            pool.submit(_process_play_worker, (play, str(store.root), reuse_annotations))
            for play in plays
        ]
        for play, fut in tqdm(zip(plays, futures), total=len(plays), desc="NER"):
            try:
                records.append(fut.result(timeout=timeout))
            except FutureTimeout:
                timed_out = True
                log.error("Play %s timed out after %ss", play.play_id, timeout)
                records.append(_error_record(play, RecordStatus.FAILED, f"timed out after {timeout}s"))
            except Exception as e:
                log.error("Worker failed on play %s: %s", play.play_id, e)
                records.append(_error_record(play, RecordStatus.FAILED, f"{type(e).__name__}: {e}"))
    finally:
        if timed_out:
            _terminate_pool(pool)
        else:
            pool.shutdown(wait=True)
    return records


def _terminate_pool(pool: ProcessPoolExecutor) -> None:
    """Shut down without waiting and kill workers still busy on a play."""
    # shutdown() drops the executor's process table
    processes = list((pool._processes or {}).values())
    pool.shutdown(wait=False, cancel_futures=True)
    for proc in processes:
        if proc.is_alive():
            log.warning("Terminating worker %s", proc.pid)
            proc.terminate()
    for proc in processes:
        proc.join(timeout=5)


def rescore_corpus(plays: Sequence[Play], store: AnnotationStore) -> list[AccuracyRecord]:
    """Score every play from stored annotations without running any model."""
    records = [process_play_safe(play, None, store, reuse_annotations=True) for play in plays]
    _log_summary(records)
    return records


def _log_summary(records: list[AccuracyRecord]) -> None:
    ok = [r for r in records if r.status == RecordStatus.OK]
    log.info(
        "NER complete: %d plays, %d ok, %d invalid, %d failed",
        len(records), len(ok),
        sum(r.status == RecordStatus.INVALID for r in records),
        sum(r.status == RecordStatus.FAILED for r in records),
    )
