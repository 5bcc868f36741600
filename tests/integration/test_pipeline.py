"""
Integration Tests for End-to-End Pipeline

Runs the command-line entry point on synthetic train/test files and
checks the written predictions and run artifacts.
"""

import json
import logging

import pandas as pd
import pytest
import yaml

from loan_default.config.loader import load_profile
from loan_default.pipeline.orchestrator import PipelineOrchestrator
from scripts.run_pipeline import main


@pytest.fixture(autouse=True)
def restore_root_logger():
    """main() reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def _run_dir(base_dir):
    runs = [p for p in base_dir.iterdir() if p.is_dir()]
    assert len(runs) == 1
    return runs[0]


@pytest.mark.integration
class TestCommandLine:
    """Test scripts/run_pipeline.py end to end."""

    def test_baseline_profile(self, sample_csvs, sample_loans, tmp_path):
        train_path, test_path = sample_csvs
        out = tmp_path / "out" / "predictions.csv"

        code = main([
            "--train", str(train_path),
            "--test", str(test_path),
            "--output", str(out),
            "--output-dir", str(tmp_path / "runs"),
        ])

        assert code == 0
        _, test = sample_loans
        predictions = pd.read_csv(out)
        assert list(predictions.columns) == ["id", "P_default"]
        assert predictions["id"].tolist() == test["id"].tolist()
        assert predictions["id"].is_unique
        assert predictions["P_default"].between(0, 1).all()

        run_dir = _run_dir(tmp_path / "runs")
        metadata = json.loads((run_dir / "run_metadata.json").read_text())
        assert metadata["profile"] == "baseline"
        assert len(metadata["selected_features"]) == 20
        assert metadata["cv_auc"]["xgboost"]["folds"] == 5

    def test_outlier_flagged_profile(self, sample_csvs, tmp_path):
        train_path, test_path = sample_csvs
        out = tmp_path / "flagged.csv"

        code = main([
            "--profile", "outlier_flagged",
            "--train", str(train_path),
            "--test", str(test_path),
            "--output", str(out),
            "--output-dir", str(tmp_path / "runs"),
        ])

        assert code == 0
        run_dir = _run_dir(tmp_path / "runs")
        metadata = json.loads((run_dir / "run_metadata.json").read_text())
        selected = metadata["selected_features"]
        assert {"int_rate", "grade", "dti"} <= set(selected)
        assert len(selected) <= 13
        assert "annual_inc" not in selected
        assert (run_dir / "steps" / "05_outliers" / "results.parquet").exists()
        assert len(pd.read_csv(out)) == 120

    def test_config_file_with_top_n_override(self, sample_config_dict, sample_csvs, tmp_path):
        config_path = tmp_path / "fast.yaml"
        config_path.write_text(yaml.safe_dump(sample_config_dict))

        code = main(["--config", str(config_path), "--top-n", "5"])

        assert code == 0
        predictions = pd.read_csv(sample_config_dict["output"]["predictions_path"])
        assert len(predictions) == 120
        metadata = json.loads((_run_dir(tmp_path / "runs") / "run_metadata.json").read_text())
        assert len(metadata["selected_features"]) == 5

    def test_missing_input_returns_error(self, tmp_path):
        code = main([
            "--train", str(tmp_path / "absent_train.csv"),
            "--test", str(tmp_path / "absent_test.csv"),
            "--output-dir", str(tmp_path / "runs"),
        ])

        assert code == 1

    def test_invalid_config_returns_error(self, tmp_path):
        config_path = tmp_path / "bad.yaml"
        config_path.write_text(yaml.safe_dump({"selection": {"top_n": 0}}))

        assert main(["--config", str(config_path)]) == 2


@pytest.mark.integration
class TestProfileRuns:
    """Test that both bundled profiles run on the same inputs."""

    def test_profiles_share_test_ids(self, sample_csvs, tmp_path):
        train_path, test_path = sample_csvs
        fast = {
            "model": {
                "random_forest_params": {"n_estimators": 30},
                "xgboost_params": {"n_estimators": 30, "max_depth": 3},
            },
            "evaluation": {"cv_folds": 3},
            "reproducibility": {"n_jobs": 1},
        }
        predictions = {}
        for name in ["baseline", "outlier_flagged"]:
            config = load_profile(
                name,
                cli_overrides={
                    "data.train_path": str(train_path),
                    "data.test_path": str(test_path),
                    "output.base_dir": str(tmp_path / name),
                    "output.predictions_path": str(tmp_path / f"{name}.csv"),
                },
                overrides=fast,
            )
            predictions[name] = PipelineOrchestrator(config).run().predictions

        assert (
            predictions["baseline"]["id"].tolist()
            == predictions["outlier_flagged"]["id"].tolist()
        )
