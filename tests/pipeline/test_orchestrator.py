"""
Tests for the Pipeline Orchestrator

Runs the full stage sequence on the small raw fixtures with fast model
settings.
"""

import json
import logging
from pathlib import Path

import pandas as pd
import pytest

from loan_default.config.schema import PipelineConfig
from loan_default.core.exceptions import DataReaderError, MalformedDate, ParseError
from loan_default.models.xgboost_model import XGBoostModel
from loan_default.pipeline.orchestrator import PipelineOrchestrator, PipelineResult
from loan_default.pipeline.base import StepResult


def _config(sample_config_dict, **sections):
    raw = dict(sample_config_dict)
    raw.update(sections)
    return PipelineConfig(**raw)


@pytest.fixture
def baseline_run(pipeline_config, raw_train, raw_test):
    orchestrator = PipelineOrchestrator(pipeline_config)
    result = orchestrator.run_frames(raw_train, raw_test)
    return orchestrator, result


# ===================================================================
# Successful runs
# ===================================================================

class TestSuccessfulRun:
    """Test a full run on in-memory tables."""

    def test_status_and_steps(self, baseline_run):
        _, result = baseline_run

        assert result.status == "success"
        assert [s.step_name for s in result.steps] == [
            "01_load", "02_normalize", "03_completeness", "04_impute",
            "06_features", "07_selection", "08_export",
        ]
        assert result.get_step("05_outliers") is None

    def test_predictions(self, baseline_run, pipeline_config):
        _, result = baseline_run

        predictions = result.predictions
        assert list(predictions.columns) == ["id", "P_default"]
        assert predictions["id"].tolist() == [101, 102, 103, 104]
        assert predictions["P_default"].between(0, 1).all()
        written = pd.read_csv(pipeline_config.output.predictions_path)
        pd.testing.assert_frame_equal(written, predictions)

    def test_selected_features(self, baseline_run):
        _, result = baseline_run

        assert len(result.selected_features) == 8
        for key in ["id", "origin", "default"]:
            assert key not in result.selected_features

    def test_dropped_column_never_reaches_models(self, baseline_run):
        orchestrator, result = baseline_run

        assert "mths_since_last_delinq" in result.get_step("03_completeness").dropped_columns
        encoder = orchestrator.submission_model.encoder
        assert "mths_since_last_delinq" not in encoder.feature_names_

    def test_cv_results(self, baseline_run):
        _, result = baseline_run

        assert set(result.cv_results) == {"random_forest", "xgboost"}
        assert all(len(cv.fold_aucs) == 3 for cv in result.cv_results.values())

    def test_run_directory(self, baseline_run):
        orchestrator, result = baseline_run
        run_dir = result.run_dir

        assert (run_dir / "models" / "xgboost.joblib").exists()
        assert (run_dir / "models" / "cv_auc.json").exists()
        assert (run_dir / "data" / "predictions.csv").exists()
        assert (run_dir / "config" / "pipeline_config.yaml").exists()
        assert (run_dir / "steps" / "03_completeness" / "results.parquet").exists()
        assert (run_dir / "reports" / "pipeline_report.xlsx").exists()

        metadata = json.loads((run_dir / "run_metadata.json").read_text())
        assert metadata["status"] == "success"
        assert "xgboost" in metadata["cv_auc"]

    def test_run_log_written(self, baseline_run):
        orchestrator, _ = baseline_run

        log_text = orchestrator.output_manager.log_path.read_text()
        assert "03_completeness" in log_text

    def test_components_kept(self, baseline_run):
        orchestrator, _ = baseline_run

        assert orchestrator.components["04_impute"].means_["annual_inc"] > 0
        assert orchestrator.submission_model.is_fitted

    def test_summary(self, baseline_run):
        _, result = baseline_run

        summary = result.summary()
        assert summary.startswith("Pipeline success")
        assert "CV AUC" in summary


class TestProfileVariants:
    """Test optional stages."""

    def test_outlier_stage(self, sample_config_dict, raw_train, raw_test):
        config = _config(
            sample_config_dict,
            outliers={"enabled": True, "columns": ["loan_amnt", "dti"]},
        )

        result = PipelineOrchestrator(config).run_frames(raw_train, raw_test)

        outliers = result.get_step("05_outliers")
        assert outliers is not None
        assert "is_outlier_dti" in outliers.output_columns
        assert "dti" in outliers.output_columns

    def test_selection_disabled(self, sample_config_dict, raw_train, raw_test):
        config = _config(sample_config_dict, selection={"enabled": False})

        result = PipelineOrchestrator(config).run_frames(raw_train, raw_test)

        assert result.get_step("07_selection") is None
        assert "credit_history_years" in result.selected_features
        assert "is_missing_annual_inc" in result.selected_features
        assert len(result.selected_features) > 8

    def test_evaluation_disabled(self, sample_config_dict, raw_train, raw_test):
        config = _config(
            sample_config_dict,
            evaluation={"enabled": False},
            output={**sample_config_dict["output"], "generate_excel": False},
        )

        result = PipelineOrchestrator(config).run_frames(raw_train, raw_test)

        assert result.cv_results == {}
        assert not (result.run_dir / "reports" / "pipeline_report.xlsx").exists()
        assert len(result.predictions) == 4


# ===================================================================
# Failures
# ===================================================================

class TestFailedRun:
    """Test that failures propagate and leave no predictions."""

    def test_parse_error_propagates(self, pipeline_config, raw_train, raw_test):
        raw_train.loc[2, "int_rate"] = "abc%"
        orchestrator = PipelineOrchestrator(pipeline_config)

        with pytest.raises(ParseError) as exc_info:
            orchestrator.run_frames(raw_train, raw_test)

        assert exc_info.value.rows == [3]
        assert orchestrator.output_manager.status == "failed"
        metadata = json.loads(
            (orchestrator.output_manager.run_dir / "run_metadata.json").read_text()
        )
        assert metadata["status"] == "failed"

    def test_no_predictions_on_failure(self, pipeline_config, raw_train, raw_test):
        raw_test["issue_d"] = ["Jun-16", "Aug-2017", "Jan-2015", "Nov-2016"]

        with pytest.raises(MalformedDate):
            PipelineOrchestrator(pipeline_config).run_frames(raw_train, raw_test)

        assert not Path(pipeline_config.output.predictions_path).exists()

    def test_missing_input_file(self, pipeline_config):
        orchestrator = PipelineOrchestrator(pipeline_config)

        with pytest.raises(DataReaderError):
            orchestrator.run()

        assert orchestrator.output_manager.status == "failed"

    def test_root_level_restored(self, pipeline_config, raw_train, raw_test):
        root = logging.getLogger()
        before = root.level
        handlers = list(root.handlers)

        PipelineOrchestrator(pipeline_config).run_frames(raw_train, raw_test)

        assert root.level == before
        assert root.handlers == handlers


# ===================================================================
# Model cache
# ===================================================================

class TestModelCache:
    """Test reuse of a cached submission model."""

    def test_cached_model_reused(self, sample_config_dict, raw_train, raw_test, monkeypatch):
        config = _config(
            sample_config_dict,
            output={**sample_config_dict["output"], "cache_models": True},
        )
        first = PipelineOrchestrator(config).run_frames(raw_train, raw_test)
        cache_file = f"{config.output.model_cache_dir}/test_xgboost.joblib"

        def fail_fit(self, table, target):
            raise AssertionError("submission model should come from the cache")

        monkeypatch.setattr(XGBoostModel, "fit", fail_fit)
        second = PipelineOrchestrator(config).run_frames(raw_train, raw_test)

        assert Path(cache_file).exists()
        pd.testing.assert_frame_equal(first.predictions, second.predictions)


class TestPipelineResult:
    """Test the PipelineResult container."""

    def test_get_step(self):
        step = StepResult("02_normalize", ["a"], ["a"])
        result = PipelineResult(steps=[step])

        assert result.get_step("02_normalize") is step
        assert result.get_step("99_missing") is None
        assert result.status == "pending"
