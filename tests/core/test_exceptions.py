"""
Tests for Custom Exceptions

Tests exception attributes, inheritance, and chaining.
"""

import pytest

from loan_default.core.exceptions import (
    ArtifactError,
    ConfigurationError,
    DataReaderError,
    DataValidationError,
    EmptyColumn,
    EvaluationError,
    FeatureEngineeringError,
    FeatureSelectionError,
    MalformedDate,
    ModelTrainingError,
    ParseError,
    PipelineException,
    SchemaMismatch,
    UnknownCategory,
)


class TestPipelineException:
    """Test suite for base PipelineException."""

    def test_message(self):
        error = PipelineException("Test error message")

        assert "Test error message" in str(error)
        assert error.message == "Test error message"

    def test_details_and_cause(self):
        original = ValueError("Original error")
        error = PipelineException("Wrapper error", details={"count": 42}, cause=original)

        assert error.details == {"count": 42}
        assert error.cause is original
        assert "Caused by: Original error" in str(error)

    def test_to_dict(self):
        error = PipelineException("Boom", details={"k": "v"})
        d = error.to_dict()

        assert d["type"] == "PipelineException"
        assert d["message"] == "Boom"
        assert d["details"] == {"k": "v"}
        assert d["cause"] is None


class TestDataValidationErrors:
    """Test the data validation family."""

    def test_column_and_rows_in_message(self):
        error = ParseError("Bad value", column="int_rate", rows=[3, 7])

        assert error.column == "int_rate"
        assert error.rows == [3, 7]
        assert "Column: int_rate" in str(error)
        assert "Rows: 3, 7" in str(error)

    def test_rows_truncated_in_message(self):
        error = DataValidationError("Bad", rows=list(range(12)))

        assert "(+7 more)" in str(error)
        assert len(error.rows) == 12

    def test_schema_mismatch_sides(self):
        error = SchemaMismatch("Differ", train_only=["a"], test_only=["b", "c"])

        assert error.train_only == ["a"]
        assert error.test_only == ["b", "c"]

    def test_unknown_category_values(self):
        error = UnknownCategory("Unseen", column="grade", values=["Z"])

        assert error.values == ["Z"]

    @pytest.mark.parametrize("cls", [SchemaMismatch, ParseError, UnknownCategory])
    def test_inheritance(self, cls):
        assert issubclass(cls, DataValidationError)
        assert issubclass(cls, PipelineException)


class TestFeatureEngineeringErrors:
    """Test the feature engineering family."""

    def test_feature_name_in_message(self):
        error = EmptyColumn("No values", feature_name="annual_inc")

        assert "Feature: annual_inc" in str(error)

    def test_malformed_date_rows(self):
        error = MalformedDate("Too short", feature_name="issue_d", rows=[5])

        assert error.rows == [5]
        assert error.feature_name == "issue_d"

    @pytest.mark.parametrize("cls", [EmptyColumn, MalformedDate, FeatureSelectionError])
    def test_inheritance(self, cls):
        assert issubclass(cls, FeatureEngineeringError)


class TestOtherErrors:
    """Test the remaining exception types."""

    def test_model_training_error(self):
        error = ModelTrainingError("Failed", model_name="xgboost")

        assert error.model_name == "xgboost"
        assert "Model: xgboost" in str(error)

    def test_evaluation_error(self):
        error = EvaluationError("Too few rows", metric_name="roc_auc")

        assert error.metric_name == "roc_auc"

    def test_data_reader_error(self):
        error = DataReaderError("Input file not found", source="missing.csv")

        assert "Source: missing.csv" in str(error)

    def test_artifact_error(self):
        error = ArtifactError("Cannot load", artifact_path="/tmp/model.joblib")

        assert error.artifact_path == "/tmp/model.joblib"

    @pytest.mark.parametrize(
        "cls",
        [ConfigurationError, ModelTrainingError, EvaluationError, DataReaderError, ArtifactError],
    )
    def test_all_catchable_as_pipeline_exception(self, cls):
        with pytest.raises(PipelineException):
            raise cls("error")
