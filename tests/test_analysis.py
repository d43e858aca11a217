"""Tests for the aggregate table and statistics."""
import json

import pandas as pd
import pytest

from src.analysis.stats import accuracy_by, fit_genre_model, summarize_accuracy, valid_rows
from src.analysis.table import COLUMNS, load_table, records_to_frame, save_table
from src.ner.models import AccuracyRecord, RecordStatus


def _rec(play_id, genre, matched, truth, status=RecordStatus.OK, city=None):
    ok = status == RecordStatus.OK
    return AccuracyRecord(
        play_id=play_id,
        genre=genre,
        recognized_names=["Banquo", "Lady Macbeth"] if ok else [],
        recognized_count=2 if ok else 0,
        ground_truth_count=truth if ok else 0,
        matched_count=matched if ok else 0,
        accuracy=matched / truth if ok else None,
        status=status,
        error=None if ok else "boom",
        city=city,
    )


@pytest.fixture
def records():
    return [
        _rec("Macbeth", "Tragedy", 3, 4, city="Inverness"),
        _rec("Hamlet", "Tragedy", 5, 10, city="Elsinore"),
        _rec("Twelfth Night", "Comedy", 1, 4, city="Illyria"),
        _rec("As You Like It", "Comedy", 3, 4),
        _rec("Henry V", "History", 0, 0, status=RecordStatus.FAILED),
        _rec("Timon", "Tragedy", 0, 0, status=RecordStatus.INVALID),
    ]


class TestTable:

    def test_frame_columns_and_order(self, records):
        df = records_to_frame(records)
        assert list(df.columns) == COLUMNS
        assert df["play_id"].tolist() == [r.play_id for r in records]
        assert df.loc[0, "recognized_names"] == "Banquo, Lady Macbeth"
        assert df.loc[0, "accuracy"] == 0.75

    def test_failed_rows_visible(self, records):
        df = records_to_frame(records)
        assert len(df) == len(records)
        assert df.loc[4, "status"] == "failed"
        assert pd.isna(df.loc[4, "accuracy"])

    def test_save_load(self, tmp_path, records):
        path = save_table(records, tmp_path / "out" / "accuracy.csv")
        df = load_table(path)
        assert len(df) == 6
        assert df.loc[1, "accuracy"] == 0.5
        assert pd.isna(df.loc[5, "accuracy"])
        assert df.loc[5, "status"] == "invalid"

    def test_load_rejects_foreign_table(self, tmp_path):
        path = tmp_path / "x.csv"
        path.write_text("a,b\n1,2\n")
        with pytest.raises(ValueError):
            load_table(path)


class TestStats:

    def test_summary_excludes_bad_rows(self, records):
        s = summarize_accuracy(records_to_frame(records))
        assert s.count == 4
        assert s.excluded == 2
        assert s.excluded_by_status == {"failed": 1, "invalid": 1}
        assert s.mean == pytest.approx((0.75 + 0.5 + 0.25 + 0.75) / 4)
        assert s.min == 0.25 and s.max == 0.75
        assert s.variance == pytest.approx(pd.Series([0.75, 0.5, 0.25, 0.75]).var())

    def test_summary_all_failed(self):
        df = records_to_frame([_rec("Henry V", "History", 0, 0, status=RecordStatus.FAILED)])
        s = summarize_accuracy(df)
        assert s.count == 0 and s.mean is None and s.excluded == 1
        json.dumps(s.to_dict())

    def test_summary_from_saved_table(self, tmp_path, records):
        df = load_table(save_table(records, tmp_path / "t.csv"))
        assert len(valid_rows(df)) == 4

    def test_accuracy_by_genre(self, records):
        by = accuracy_by(records_to_frame(records), "genre").set_index("genre")
        assert set(by.index) == {"Comedy", "Tragedy"}
        assert by.loc["Comedy", "count"] == 2
        assert by.loc["Tragedy", "mean"] == pytest.approx(0.625)

    def test_accuracy_by_unknown_column(self, records):
        with pytest.raises(KeyError):
            accuracy_by(records_to_frame(records), "director")

    def test_genre_model_matches_pooled_rates(self, records):
        model = fit_genre_model(records_to_frame(records), baseline="Comedy")
        assert model.baseline == "Comedy"
        assert set(model.coefficients) == {"Tragedy"}
        # saturated model: fitted rate equals pooled matched / ground truth
        assert model.fitted_accuracy["Comedy"] == pytest.approx(4 / 8, abs=1e-3)
        assert model.fitted_accuracy["Tragedy"] == pytest.approx(8 / 14, abs=1e-3)
        assert model.coefficients["Tragedy"] > 0
        assert model.n_plays == 4

    def test_genre_model_needs_two_genres(self):
        df = records_to_frame([_rec("Macbeth", "Tragedy", 1, 2), _rec("Lear", "Tragedy", 1, 3)])
        with pytest.raises(ValueError):
            fit_genre_model(df)

    def test_genre_model_unknown_baseline(self, records):
        with pytest.raises(ValueError):
            fit_genre_model(records_to_frame(records), baseline="History")
