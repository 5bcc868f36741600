"""
Tests for the Prediction Exporter
"""

import numpy as np
import pandas as pd
import pytest

from loan_default.core.exceptions import DataValidationError
from loan_default.io.exporter import build_submission, export_predictions


@pytest.fixture
def scored_rows():
    return pd.DataFrame({"id": [101, 102, 103], "dti": [1.0, 2.0, 3.0]}, index=[7, 8, 9])


class TestBuildSubmission:
    """Test suite for build_submission."""

    def test_array_by_position(self, scored_rows):
        submission = build_submission(scored_rows, np.array([0.1, 0.5, 0.9]))

        assert list(submission.columns) == ["id", "P_default"]
        assert submission["id"].tolist() == [101, 102, 103]
        assert submission["P_default"].tolist() == [0.1, 0.5, 0.9]

    def test_series_by_index(self, scored_rows):
        probabilities = pd.Series([0.9, 0.1, 0.5], index=[9, 7, 8])

        submission = build_submission(scored_rows, probabilities)

        assert submission["P_default"].tolist() == [0.1, 0.5, 0.9]

    def test_custom_column_names(self, scored_rows):
        submission = build_submission(
            scored_rows, [0.2, 0.3, 0.4], probability_column="score"
        )

        assert list(submission.columns) == ["id", "score"]

    def test_duplicate_ids(self):
        rows = pd.DataFrame({"id": [1, 1, 2]})

        with pytest.raises(DataValidationError) as exc_info:
            build_submission(rows, [0.1, 0.2, 0.3])

        assert exc_info.value.rows == [1]

    def test_length_mismatch(self, scored_rows):
        with pytest.raises(DataValidationError):
            build_submission(scored_rows, np.array([0.1, 0.2]))

    def test_missing_series_entry(self, scored_rows):
        with pytest.raises(DataValidationError) as exc_info:
            build_submission(scored_rows, pd.Series([0.1, 0.2], index=[7, 8]))

        assert exc_info.value.rows == [103]

    @pytest.mark.parametrize("bad", [-0.01, 1.5, np.nan])
    def test_out_of_range(self, scored_rows, bad):
        with pytest.raises(DataValidationError):
            build_submission(scored_rows, np.array([0.1, bad, 0.3]))


class TestExportPredictions:
    """Test suite for export_predictions."""

    def test_writes_headed_csv(self, scored_rows, tmp_path):
        submission = build_submission(scored_rows, np.array([0.25, 0.5, 0.75]))

        path = export_predictions(submission, tmp_path / "nested" / "predictions.csv")

        lines = path.read_text().splitlines()
        assert lines[0] == "id,P_default"
        assert lines[1] == "101,0.25"
        assert len(lines) == 4
