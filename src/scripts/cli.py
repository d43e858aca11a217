"""Command-line entry point: run, score, stats."""
import argparse
import json
import logging
import sys
from pathlib import Path

from src.analysis.stats import accuracy_by, fit_genre_model, summarize_accuracy
from src.analysis.table import load_table, save_table
from src.config import load_settings
from src.corpus.loader import load_corpus
from src.ner.errors import NERError
from src.ner.process import process_corpus, rescore_corpus
from src.ner.store import AnnotationStore

log = logging.getLogger(__name__)


def _report(records) -> dict:
    return {
        "plays": len(records),
        "rows": [
            {"play_id": r.play_id, "genre": r.genre.value, "status": r.status.value,
             "accuracy": r.rounded_accuracy, "error": r.error}
            for r in records
        ],
    }


def cmd_run(args) -> int:
    settings = load_settings(
        args.config,
        corpus_path=args.corpus,
        annotations_dir=args.annotations_dir,
        output_table=args.output,
        languages=args.languages,
        workers=args.workers,
        timeout=args.timeout,
    )
    plays = load_corpus(settings.corpus_path)
    records = process_corpus(
        plays,
        AnnotationStore(settings.annotations_dir),
        languages=settings.languages,
        models=settings.models,
        reuse_annotations=settings.reuse_annotations and not args.force,
        workers=settings.workers,
        timeout=settings.timeout,
    )
    save_table(records, settings.output_table)
    print(json.dumps(_report(records), ensure_ascii=False, indent=2))
    return 0


def cmd_score(args) -> int:
    settings = load_settings(
        args.config,
        corpus_path=args.corpus,
        annotations_dir=args.annotations_dir,
        output_table=args.output,
    )
    plays = load_corpus(settings.corpus_path)
    records = rescore_corpus(plays, AnnotationStore(settings.annotations_dir))
    save_table(records, settings.output_table)
    print(json.dumps(_report(records), ensure_ascii=False, indent=2))
    return 0


def cmd_stats(args) -> int:
    settings = load_settings(args.config, output_table=args.table)
    df = load_table(settings.output_table)
    out = {
        "summary": summarize_accuracy(df).to_dict(),
        "by_" + args.group_by: accuracy_by(df, args.group_by).to_dict(orient="records"),
    }
    try:
        out["genre_model"] = fit_genre_model(df, baseline=args.baseline).to_dict()
    except ValueError as e:
        log.warning("Genre model not fitted: %s", e)
        out["genre_model"] = None
    print(json.dumps(out, ensure_ascii=False, indent=2, default=str))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Character NER accuracy over a corpus of plays.")
    parser.add_argument("--config", type=Path, default=None, help="YAML config (default configs/config.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # run
    p1 = subparsers.add_parser("run", help="Annotate, extract and score every play")
    p1.add_argument("--corpus", default=None)
    p1.add_argument("--annotations-dir", default=None)
    p1.add_argument("--output", default=None)
    p1.add_argument("--languages", nargs="+", default=None)
    p1.add_argument("--workers", type=int, default=None)
    p1.add_argument("--timeout", type=float, default=None, help="Seconds per play (parallel mode)")
    p1.add_argument("--force", action="store_true", help="Re-annotate even if stored annotations exist")
    p1.set_defaults(func=cmd_run)

    # score
    p2 = subparsers.add_parser("score", help="Rescore from stored annotations only")
    p2.add_argument("--corpus", default=None)
    p2.add_argument("--annotations-dir", default=None)
    p2.add_argument("--output", default=None)
    p2.set_defaults(func=cmd_score)

    # stats
    p3 = subparsers.add_parser("stats", help="Summary statistics and genre model")
    p3.add_argument("--table", default=None)
    p3.add_argument("--group-by", default="genre", choices=["genre", "city", "country"])
    p3.add_argument("--baseline", default=None, help="Baseline genre for the regression")
    p3.set_defaults(func=cmd_stats)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (NERError, FileNotFoundError) as e:
        log.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
