"""
Output Manager

One directory per pipeline run. Every file a run produces (config snapshot,
per-stage results, cross-validation scores, models, the workbook, the run
log and the predictions copy) lands under it:

    {base_dir}/{YYYYMMDD}_{HHMMSS}_{config hash}/
        config/  data/  models/  reports/  logs/
        steps/01_load/ ... steps/08_export/
        run_metadata.json
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
import hashlib
import importlib.metadata
import json
import logging
import platform
import subprocess
import sys

import pandas as pd
import yaml

from loan_default.config.schema import PipelineConfig
from loan_default.pipeline.base import StepResult


logger = logging.getLogger(__name__)

STEP_DIRS = [
    "01_load",
    "02_normalize",
    "03_completeness",
    "04_impute",
    "05_outliers",
    "06_features",
    "07_selection",
    "08_export",
]

RUN_SUBDIRS = ("config", "data", "models", "reports", "logs")

# Distributions whose versions are recorded with every run
TRACKED_PACKAGES = (
    "pandas",
    "numpy",
    "scikit-learn",
    "xgboost",
    "pydantic",
    "pyarrow",
    "joblib",
)

HASH_PREFIX_BYTES = 1 << 20


def _get_package_version(package: str) -> str:
    try:
        return importlib.metadata.version(package)
    except importlib.metadata.PackageNotFoundError:
        return "not installed"


def _git_commit() -> str:
    """Short commit of the working tree, suffixed '-dirty' with local edits."""
    try:
        proc = subprocess.run(
            ["git", "describe", "--always", "--dirty", "--abbrev=7"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return "no-git"
    if proc.returncode != 0:
        return "no-git"
    return proc.stdout.strip()


def _compute_input_hash(input_path: str) -> str:
    """MD5 over the first megabyte of a file; 'missing' if there is none."""
    path = Path(input_path)
    if not path.is_file():
        return "missing"
    with path.open("rb") as f:
        return hashlib.md5(f.read(HASH_PREFIX_BYTES)).hexdigest()


def environment_snapshot() -> Dict[str, Any]:
    """Interpreter, platform, library versions and source revision."""
    return {
        "git_commit": _git_commit(),
        "python_version": sys.version,
        "package_versions": {p: _get_package_version(p) for p in TRACKED_PACKAGES},
        "os_info": {
            "system": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
        },
    }


def _json_safe(metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only metadata entries that JSON can hold as-is."""
    plain = (str, int, float, bool, list, dict, type(None))
    return {k: v for k, v in metadata.items() if isinstance(v, plain)}


class OutputManager:
    """Owns the run directory of a single pipeline run.

    The run id combines the start time with six hex digits of the config
    hash, so two runs started in the same second with different settings
    still get separate directories.

    Args:
        config: The pipeline configuration.
        run_start: Start of the run; defaults to now.
    """

    def __init__(self, config: PipelineConfig, run_start: Optional[datetime] = None):
        self._config = config
        self._run_start = run_start or datetime.now()
        self._run_end: Optional[datetime] = None
        self._status = "running"

        digest = hashlib.md5(config.model_dump_json().encode()).hexdigest()
        self._run_id = f"{self._run_start:%Y%m%d_%H%M%S}_{digest[:6]}"
        self._run_dir = Path(config.output.base_dir) / self._run_id

        for name in RUN_SUBDIRS:
            (self._run_dir / name).mkdir(parents=True, exist_ok=True)
        for name in STEP_DIRS:
            self.stage_dir(name)

        logger.info(f"OUTPUT | Run directory: {self._run_dir}")

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def run_dir(self) -> Path:
        return self._run_dir

    @property
    def status(self) -> str:
        return self._status

    @property
    def log_path(self) -> Path:
        return self._run_dir / "logs" / "pipeline.log"

    @property
    def report_path(self) -> Path:
        return self._run_dir / "reports" / "pipeline_report.xlsx"

    def stage_dir(self, step_name: str) -> Path:
        """Directory of one stage, created if needed."""
        path = self._run_dir / "steps" / step_name
        path.mkdir(parents=True, exist_ok=True)
        return path

    def model_path(self, name: str) -> Path:
        return self._run_dir / "models" / f"{name}.joblib"

    def write_config(self, config: PipelineConfig) -> Path:
        """Dump the resolved configuration as YAML."""
        path = self._run_dir / "config" / "pipeline_config.yaml"
        with path.open("w") as f:
            yaml.safe_dump(
                config.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False
            )
        return path

    def write_stage(self, step_result: StepResult) -> Path:
        """Persist a stage's result table, column lists and metadata.

        The result table goes to results.parquet with object columns cast
        to text, since per-row details mix numbers and strings.
        """
        stage_dir = self.stage_dir(step_result.step_name)

        frame = step_result.results_df.copy()
        for col in frame.columns[frame.dtypes == object]:
            frame[col] = frame[col].astype(str)
        frame.to_parquet(stage_dir / "results.parquet", index=False)

        columns = {
            "input_columns": step_result.input_columns,
            "output_columns": step_result.output_columns,
            "dropped_columns": step_result.dropped_columns,
            "added_columns": step_result.added_columns,
        }
        self._dump_json(stage_dir / "columns.json", columns)

        metadata = _json_safe(step_result.metadata)
        if metadata:
            self._dump_json(stage_dir / "metadata.json", metadata)

        logger.debug(f"OUTPUT | {step_result.step_name} results saved to {stage_dir}")
        return stage_dir

    def write_table(self, name: str, df: pd.DataFrame, subdir: str = "data") -> Path:
        """Write a table as CSV under a run subdirectory."""
        path = self._run_dir / subdir / f"{name}.csv"
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=False)
        return path

    def write_json(self, name: str, obj: Any, subdir: str = "models") -> Path:
        path = self._run_dir / subdir / f"{name}.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        self._dump_json(path, obj)
        return path

    def finish(self, status: str = "success") -> None:
        """Record the final status ('success' or 'failed') and end time."""
        self._status = status
        self._run_end = datetime.now()

    def write_metadata(self, extra: Optional[Dict[str, Any]] = None) -> Path:
        """Write run_metadata.json.

        Holds the run id, profile, status, timing, the environment snapshot
        and a hash of each input file, followed by any extra entries.
        """
        end = self._run_end or datetime.now()
        metadata: Dict[str, Any] = {
            "run_id": self._run_id,
            "profile": self._config.profile,
            "status": self._status,
            "run_start": self._run_start.isoformat(),
            "run_end": end.isoformat(),
            "duration_seconds": round((end - self._run_start).total_seconds(), 2),
            "input_file_hashes": {
                "train": _compute_input_hash(self._config.data.train_path),
                "test": _compute_input_hash(self._config.data.test_path),
            },
        }
        metadata.update(environment_snapshot())
        metadata.update(extra or {})

        path = self._run_dir / "run_metadata.json"
        self._dump_json(path, metadata)
        logger.info(f"OUTPUT | Run metadata saved: {path}")
        return path

    @staticmethod
    def _dump_json(path: Path, obj: Any) -> None:
        with path.open("w") as f:
            json.dump(obj, f, indent=2, default=str)
