"""Run outputs: prediction export and the run directory manager."""

from loan_default.io.exporter import build_submission, export_predictions
from loan_default.io.output_manager import OutputManager, STEP_DIRS

__all__ = ["OutputManager", "STEP_DIRS", "build_submission", "export_predictions"]
