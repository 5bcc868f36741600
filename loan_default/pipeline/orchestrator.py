"""
Pipeline Orchestrator

Runs the stages in order on one working table, with timing, logging and
intermediate result saving:

    load -> normalize -> completeness split -> impute (+ re-join)
         -> outlier flags (optional) -> features -> selection
         -> model CV / fit -> export

Each stage's input table is released once its output exists.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging
import time

import pandas as pd

from loan_default.components.completeness_splitter import CompletenessSplitter
from loan_default.components.feature_engineer import FeatureEngineer
from loan_default.components.feature_selector import FeatureSelector
from loan_default.components.imputer import MeanImputer, merge_on_identifier
from loan_default.components.outlier_flagger import OutlierFlagger
from loan_default.components.type_normalizer import TypeNormalizer
from loan_default.config.schema import PipelineConfig
from loan_default.core.logger import PipelineLogger, attach_run_log, detach_run_log
from loan_default.data.loader import (
    STEP_NAME as LOAD_STEP,
    TEST,
    TRAIN,
    read_table,
    split_by_origin,
    union_sources,
)
from loan_default.evaluation.metrics import CVResult, cross_validated_auc, roc_points
from loan_default.io.exporter import STEP_NAME as EXPORT_STEP
from loan_default.io.exporter import build_submission, export_predictions
from loan_default.io.output_manager import OutputManager
from loan_default.models.base_model import ProbabilityModel
from loan_default.models.model_factory import ModelFactory
from loan_default.pipeline.base import BaseComponent, StepResult
from loan_default.reporting.excel_reporter import generate_report


logger = PipelineLogger(__name__)


@dataclass
class PipelineResult:
    """Aggregate result of a full pipeline run.

    Attributes:
        steps: Ordered list of StepResult from each stage.
        selected_features: Features fed to the models.
        cv_results: Cross-validation result per model.
        predictions: The exported id / probability table.
        predictions_path: Where the predictions were written.
        run_dir: Run output directory.
        total_duration: Total wall-clock time in seconds.
        status: 'success' or 'failed'.
    """

    steps: List[StepResult] = field(default_factory=list)
    selected_features: List[str] = field(default_factory=list)
    cv_results: Dict[str, CVResult] = field(default_factory=dict)
    predictions: Optional[pd.DataFrame] = None
    predictions_path: Optional[Path] = None
    run_dir: Optional[Path] = None
    total_duration: float = 0.0
    status: str = "pending"

    def get_step(self, step_name: str) -> Optional[StepResult]:
        for step in self.steps:
            if step.step_name == step_name:
                return step
        return None

    def summary(self) -> str:
        """Human-readable multi-line summary of the full run."""
        lines = [f"Pipeline {self.status} in {self.total_duration:.1f}s"]
        for step in self.steps:
            lines.append(f"  {step.summary()}")
        lines.append(f"  Selected features: {len(self.selected_features)}")
        for name, cv in self.cv_results.items():
            lines.append(f"  {name}: CV AUC {cv.mean_auc:.4f} (+/- {cv.std_auc:.4f})")
        if self.predictions is not None:
            lines.append(f"  Predictions: {len(self.predictions):,} rows -> {self.predictions_path}")
        return "\n".join(lines)


class PipelineOrchestrator:
    """Orchestrates one end-to-end run.

    Args:
        config: Frozen pipeline configuration.
        output_manager: OutputManager for the current run; one is created
            from the config if omitted.
    """

    def __init__(
        self,
        config: PipelineConfig,
        output_manager: Optional[OutputManager] = None,
    ):
        self._config = config
        self._output_manager = output_manager or OutputManager(config)
        self._results: List[StepResult] = []
        self._run_log: Optional[Tuple[logging.Handler, int]] = None
        self.components: Dict[str, BaseComponent] = {}
        self.submission_model: Optional[ProbabilityModel] = None

    @property
    def output_manager(self) -> OutputManager:
        return self._output_manager

    def _attach_run_log(self) -> None:
        self._run_log = attach_run_log(self._output_manager.log_path)

    def _detach_run_log(self) -> None:
        if self._run_log is not None:
            detach_run_log(*self._run_log)
            self._run_log = None

    def run(
        self,
        train_path: Optional[str] = None,
        test_path: Optional[str] = None,
    ) -> PipelineResult:
        """Read both input files and run every stage.

        Args:
            train_path: Optional override of config.data.train_path.
            test_path: Optional override of config.data.test_path.

        Returns:
            PipelineResult of the run.
        """
        self._attach_run_log()
        try:
            train = read_table(train_path or self._config.data.train_path)
            test = read_table(test_path or self._config.data.test_path)
        except Exception:
            logger.exception("PIPELINE | Failed reading inputs")
            self._finish("failed")
            self._detach_run_log()
            raise
        try:
            return self._run(train, test)
        finally:
            self._detach_run_log()

    def run_frames(self, train: pd.DataFrame, test: pd.DataFrame) -> PipelineResult:
        """Run every stage on in-memory train and test tables."""
        self._attach_run_log()
        try:
            return self._run(train, test)
        finally:
            self._detach_run_log()

    def _run(self, train: pd.DataFrame, test: pd.DataFrame) -> PipelineResult:
        cfg = self._config
        dc = cfg.data
        result = PipelineResult(run_dir=self._output_manager.run_dir)
        start_time = time.time()

        logger.set_context(run_id=self._output_manager.run_id, profile=cfg.profile)
        logger.table_stats("train", train)
        logger.table_stats("test", test)

        if cfg.reproducibility.save_config:
            self._output_manager.write_config(cfg)

        try:
            # 01 Load
            step_start = time.time()
            df = union_sources(train, test, dc)
            self._record(self._load_result(train, test, df, time.time() - step_start), result)
            del train, test

            # 02 Normalize
            normalizer = TypeNormalizer(cfg.normalization, dc)
            normalized = self._run_step(normalizer, df, result)
            del df

            # 03 Completeness split
            splitter = CompletenessSplitter(cfg.completeness, dc)
            kept = self._run_step(splitter, normalized, result)
            del normalized
            split = splitter.split(kept)
            del kept

            # 04 Impute, then re-join the two sub-tables
            imputer = MeanImputer(dc)
            imputed = self._run_step(imputer, split.imputable, result)
            merged = merge_on_identifier(split.complete, imputed, dc.id_column)
            del split, imputed

            # 05 Outlier flags
            if cfg.outliers.enabled:
                flagger = OutlierFlagger(cfg.outliers, dc)
                flagged = self._run_step(flagger, merged, result)
                del merged
            else:
                logger.info("STEP | 05_outliers disabled for this profile")
                flagged = merged

            # 06 Features
            engineer = FeatureEngineer(cfg.features, dc)
            engineered = self._run_step(engineer, flagged, result)
            del flagged

            # 07 Selection
            if cfg.selection.enabled:
                selector = FeatureSelector(cfg.selection, dc)
                ranker = ModelFactory.create(cfg.selection.ranker, cfg)
                selected = self._run_step(selector, engineered, result, ranker=ranker)
                del engineered
            else:
                logger.info("STEP | 07_selection disabled for this profile")
                selected = engineered

            train_df, test_df = split_by_origin(selected, dc.origin_column)
            del selected
            non_features = [dc.id_column, dc.target_column]
            X_train = train_df.drop(columns=non_features)
            y_train = train_df[dc.target_column]
            X_test = test_df.drop(columns=[c for c in non_features if c in test_df.columns])
            result.selected_features = list(X_train.columns)

            # Models
            probabilities = self._fit_models(X_train, y_train, X_test, result)
            del X_train, y_train, X_test

            # 08 Export
            step_start = time.time()
            submission = build_submission(
                test_df, probabilities, dc.id_column, cfg.output.probability_column
            )
            path = export_predictions(submission, cfg.output.predictions_path)
            self._output_manager.write_table("predictions", submission)
            self._record(
                StepResult(
                    step_name=EXPORT_STEP,
                    input_columns=list(test_df.columns),
                    output_columns=list(submission.columns),
                    metadata={"path": str(path), "rows": len(submission)},
                    duration_seconds=round(time.time() - step_start, 1),
                ),
                result,
            )
            result.predictions = submission
            result.predictions_path = path
            result.status = "success"

        except Exception:
            logger.exception("PIPELINE | Failed")
            result.status = "failed"
            result.total_duration = time.time() - start_time
            self._finish("failed", result)
            raise

        result.total_duration = time.time() - start_time
        logger.info(f"PIPELINE | {result.summary()}")
        self._finish("success", result)
        if cfg.output.generate_excel:
            self._write_report(result)
        return result

    def _run_step(
        self,
        component: BaseComponent,
        df: pd.DataFrame,
        result: PipelineResult,
        **kwargs: Any,
    ) -> pd.DataFrame:
        """Fit and apply one component, recording its StepResult."""
        logger.stage_start(component.step_name)
        step_start = time.time()
        out, step_result = component.fit_transform(df, **kwargs)
        step_result.duration_seconds = round(time.time() - step_start, 1)
        self.components[component.step_name] = component
        self._record(step_result, result)
        logger.stage_complete(component.step_name, step_result.duration_seconds)
        return out

    def _record(self, step_result: StepResult, result: PipelineResult) -> None:
        self._results.append(step_result)
        result.steps.append(step_result)
        logger.info(f"STEP | {step_result.summary()}")
        if self._config.output.save_step_results:
            self._output_manager.write_stage(step_result)

    def _load_result(
        self,
        train: pd.DataFrame,
        test: pd.DataFrame,
        union: pd.DataFrame,
        duration: float,
    ) -> StepResult:
        rows = [
            {"Source": TRAIN, "Rows": len(train), "Columns": len(train.columns)},
            {"Source": TEST, "Rows": len(test), "Columns": len(test.columns)},
            {"Source": "union", "Rows": len(union), "Columns": len(union.columns)},
        ]
        return StepResult(
            step_name=LOAD_STEP,
            input_columns=list(train.columns),
            output_columns=list(union.columns),
            results_df=pd.DataFrame(rows, columns=["Source", "Rows", "Columns"]),
            metadata={"train_rows": len(train), "test_rows": len(test)},
            duration_seconds=round(duration, 1),
        )

    def _fit_models(
        self,
        X_train: pd.DataFrame,
        y_train: pd.Series,
        X_test: pd.DataFrame,
        result: PipelineResult,
    ) -> pd.Series:
        """Cross-validate every configured model, then score the test rows."""
        cfg = self._config
        models = ModelFactory.create_all(cfg)

        if cfg.evaluation.enabled:
            for name, model in models.items():
                logger.stage_start(f"cv_{name}")
                cv = cross_validated_auc(
                    model, X_train, y_train,
                    n_folds=cfg.evaluation.cv_folds,
                    seed=cfg.reproducibility.global_seed,
                )
                result.cv_results[name] = cv
                logger.metric(f"{name}_cv_auc", f"{cv.mean_auc:.4f} (+/- {cv.std_auc:.4f})")
            self._output_manager.write_json(
                "cv_auc", [cv.summary() for cv in result.cv_results.values()]
            )

        name = cfg.model.submission_model
        model = models[name]
        cache_path = Path(cfg.output.model_cache_dir) / f"{cfg.profile}_{name}.joblib"
        if cfg.output.cache_models and cache_path.exists():
            logger.warning(f"MODEL | Using cached {name} model from {cache_path}")
            model.load(cache_path)
            probabilities = pd.Series(model.predict_proba(X_test), index=X_test.index)
        else:
            probabilities = model.fit_predict(X_train, y_train, X_test)
            if cfg.output.cache_models:
                model.save(cache_path)
        model.save(self._output_manager.model_path(name))
        self.submission_model = model
        return probabilities

    def _finish(self, status: str, result: Optional[PipelineResult] = None) -> None:
        self._output_manager.finish(status)
        if self._config.reproducibility.save_metadata:
            extra: Dict[str, Any] = {}
            if result is not None:
                extra = {
                    "steps": [s.summary() for s in result.steps],
                    "selected_features": result.selected_features,
                    "cv_auc": {n: cv.summary() for n, cv in result.cv_results.items()},
                }
            self._output_manager.write_metadata(extra)
        logger.clear_context()

    def _write_report(self, result: PipelineResult) -> None:
        cfg = self._config
        summary = {
            "Run ID": self._output_manager.run_id,
            "Profile": cfg.profile,
            "Status": result.status,
            "Duration (s)": round(result.total_duration, 1),
            "Fill-rate threshold": cfg.completeness.threshold_low,
            "Outlier flags": cfg.outliers.enabled,
            "Top N": cfg.selection.top_n,
            "Must keep": ", ".join(cfg.selection.must_keep) or "-",
            "Selected features": ", ".join(result.selected_features),
            "Submission model": cfg.model.submission_model,
            "Predictions": str(result.predictions_path),
        }
        for name, cv in result.cv_results.items():
            summary[f"CV AUC ({name})"] = f"{cv.mean_auc:.4f} +/- {cv.std_auc:.4f}"

        cv_df = None
        roc_df = None
        if result.cv_results:
            cv_df = pd.DataFrame([
                {
                    "Model": name,
                    **{f"Fold_{i}": round(a, 4) for i, a in enumerate(cv.fold_aucs, 1)},
                    "Mean_AUC": round(cv.mean_auc, 4),
                    "Std_AUC": round(cv.std_auc, 4),
                    "OOF_AUC": round(cv.oof_auc, 4),
                    "Gini": round(cv.gini, 4),
                }
                for name, cv in result.cv_results.items()
            ])
            cv = result.cv_results.get(cfg.model.submission_model)
            if cv is not None:
                roc_df = roc_points(cv.y_true, cv.oof_scores)

        generate_report(
            str(self._output_manager.report_path),
            summary,
            result.steps,
            cv_df=cv_df,
            roc_df=roc_df,
        )
