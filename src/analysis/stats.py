"""Descriptive and inferential statistics over the accuracy table."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field, asdict
from typing import Optional

import numpy as np
import pandas as pd
from sklearn.linear_model import LogisticRegression

log = logging.getLogger(__name__)

OK = "ok"


@dataclass
class AccuracySummary:
    count: int
    mean: Optional[float]
    variance: Optional[float]
    std: Optional[float]
    min: Optional[float]
    max: Optional[float]
    excluded: int
    excluded_by_status: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GenreModel:
    baseline: str
    intercept: float
    coefficients: dict[str, float]
    fitted_accuracy: dict[str, float]
    n_plays: int

    def to_dict(self) -> dict:
        return asdict(self)


def valid_rows(df: pd.DataFrame) -> pd.DataFrame:
    """Rows with status ok and a numeric accuracy."""
    mask = (df["status"] == OK) & pd.to_numeric(df["accuracy"], errors="coerce").notna()
    return df[mask]


def _opt(x) -> Optional[float]:
    return None if pd.isna(x) else float(x)


def summarize_accuracy(df: pd.DataFrame) -> AccuracySummary:
    """Mean/variance of accuracy over ok rows; reports excluded rows."""
    ok = valid_rows(df)
    acc = pd.to_numeric(ok["accuracy"])
    excluded = df.drop(ok.index)
    by_status = {str(k): int(v) for k, v in excluded["status"].value_counts().items()}
    if len(excluded):
        log.info("Excluding %d rows from accuracy statistics: %s", len(excluded), by_status)
    return AccuracySummary(
        count=int(len(acc)),
        mean=_opt(acc.mean()) if len(acc) else None,
        variance=_opt(acc.var()) if len(acc) > 1 else None,
        std=_opt(acc.std()) if len(acc) > 1 else None,
        min=_opt(acc.min()) if len(acc) else None,
        max=_opt(acc.max()) if len(acc) else None,
        excluded=int(len(excluded)),
        excluded_by_status=by_status,
    )


def accuracy_by(df: pd.DataFrame, column: str = "genre") -> pd.DataFrame:
    """Grouped accuracy statistics (count, mean, var, min, max) over ok rows."""
    if column not in df.columns:
        raise KeyError(f"Unknown grouping column: {column}")
    ok = valid_rows(df).assign(accuracy=lambda d: pd.to_numeric(d["accuracy"]))
    grouped = ok.groupby(column)["accuracy"].agg(["count", "mean", "var", "min", "max"])
    return grouped.reset_index()


def fit_genre_model(df: pd.DataFrame, baseline: Optional[str] = None) -> GenreModel:
    """Binomial logistic regression of matched characters on genre.

    Each play contributes matched_count successes and
    ground_truth_count - matched_count failures. Coefficients are log-odds
    relative to the baseline genre (alphabetically first when not given).
    """
    ok = valid_rows(df)
    if ok.empty:
        raise ValueError("No valid rows to fit a genre model")
    genres = sorted(ok["genre"].unique())
    if len(genres) < 2:
        raise ValueError("Genre model needs at least two genres")
    baseline = baseline or genres[0]
    if baseline not in genres:
        raise ValueError(f"Baseline genre {baseline!r} not present in data")
    others = [g for g in genres if g != baseline]

    matched = ok["matched_count"].astype(int).to_numpy()
    missed = ok["ground_truth_count"].astype(int).to_numpy() - matched
    X_play = np.array([[1.0 if g == other else 0.0 for other in others] for g in ok["genre"]])

    # Binomial counts as weighted Bernoulli rows
    X = np.vstack([X_play, X_play])
    y = np.concatenate([np.ones(len(ok)), np.zeros(len(ok))])
    w = np.concatenate([matched, missed]).astype(float)
    keep = w > 0
    if len(np.unique(y[keep])) < 2:
        raise ValueError("Genre model needs both matched and missed characters")

    # Large C: effectively unpenalized maximum likelihood
    model = LogisticRegression(C=1e6, max_iter=1000)
    model.fit(X[keep], y[keep], sample_weight=w[keep])

    intercept = float(model.intercept_[0])
    coefs = {g: float(c) for g, c in zip(others, model.coef_[0])}
    fitted = {baseline: float(1.0 / (1.0 + np.exp(-intercept)))}
    for g, c in coefs.items():
        fitted[g] = float(1.0 / (1.0 + np.exp(-(intercept + c))))
    return GenreModel(
        baseline=baseline,
        intercept=intercept,
        coefficients=coefs,
        fitted_accuracy=fitted,
        n_plays=int(len(ok)),
    )
