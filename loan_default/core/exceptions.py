"""
Pipeline Exceptions

Every error is fatal to a run: the orchestrator logs it, marks the run as
failed and re-raises. Subclasses carry the column, rows, feature or model
involved, and list them after the message when printed.
"""

from typing import Any, Dict, List, Optional, Tuple

ROWS_SHOWN = 5


def _format_rows(rows: List[Any]) -> str:
    shown = ", ".join(str(r) for r in rows[:ROWS_SHOWN])
    if len(rows) > ROWS_SHOWN:
        shown += f" (+{len(rows) - ROWS_SHOWN} more)"
    return shown


class PipelineException(Exception):
    """
    Base exception for all pipeline errors.

    Args:
        message: Error message
        details: Additional error details
        cause: Original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def _context(self) -> List[Tuple[str, Any]]:
        """(label, value) pairs appended to the message; empty values are skipped."""
        return []

    def __str__(self) -> str:
        parts = [self.message]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        parts.extend(f"{label}: {value}" for label, value in self._context() if value)
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form for logs and run metadata."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(PipelineException):
    """Unknown profile, unreadable config file, or an unregistered model name."""


class DataReaderError(PipelineException):
    """An input file is missing, empty, or not delimited text."""

    def __init__(self, message: str, source: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.source = source

    def _context(self):
        return [("Source", self.source)]


# ---------------------------------------------------------------------------
# Table contents
# ---------------------------------------------------------------------------

class DataValidationError(PipelineException):
    """
    A table does not have the shape or values a stage requires.

    ``rows`` holds identifiers (or index labels) of the offending rows;
    only the first few are printed.
    """

    def __init__(
        self,
        message: str,
        column: Optional[str] = None,
        rows: Optional[List[Any]] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.column = column
        self.rows = list(rows) if rows is not None else []

    def _context(self):
        return [("Column", self.column), ("Rows", _format_rows(self.rows))]


class SchemaMismatch(DataValidationError):
    """The train and test tables cannot be stacked into one union table."""

    def __init__(
        self,
        message: str,
        train_only: Optional[List[str]] = None,
        test_only: Optional[List[str]] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.train_only = list(train_only or [])
        self.test_only = list(test_only or [])


class ParseError(DataValidationError):
    """A cell could not be read as its declared type (percent, label, year)."""


class UnknownCategory(DataValidationError):
    """A categorical level seen at prediction time was not in the fitted vocabulary."""

    def __init__(self, message: str, values: Optional[List[Any]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.values = list(values or [])


# ---------------------------------------------------------------------------
# Derived columns
# ---------------------------------------------------------------------------

class FeatureEngineeringError(PipelineException):
    """A derived column could not be computed."""

    def __init__(self, message: str, feature_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.feature_name = feature_name

    def _context(self):
        return [("Feature", self.feature_name)]


class EmptyColumn(FeatureEngineeringError):
    """Mean imputation was asked for a column with no observed values."""


class MalformedDate(FeatureEngineeringError):
    """A present "<Mon>-<YYYY>" value is too short to split into month and year."""

    def __init__(self, message: str, rows: Optional[List[Any]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.rows = list(rows or [])

    def _context(self):
        return super()._context() + [("Rows", _format_rows(self.rows))]


class FeatureSelectionError(FeatureEngineeringError):
    """Empty importance ranking, or a must-keep feature absent from the table."""


# ---------------------------------------------------------------------------
# Models and artifacts
# ---------------------------------------------------------------------------

class ModelTrainingError(PipelineException):
    """A model could not be fit, e.g. on a single-class target."""

    def __init__(self, message: str, model_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.model_name = model_name

    def _context(self):
        return [("Model", self.model_name)]


class EvaluationError(PipelineException):
    """A metric is undefined, e.g. too few rows of a class for the folds requested."""

    def __init__(self, message: str, metric_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.metric_name = metric_name

    def _context(self):
        return [("Metric", self.metric_name)]


class ArtifactError(PipelineException):
    """A saved model could not be written, read, or did not match its model."""

    def __init__(self, message: str, artifact_path: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.artifact_path = artifact_path

    def _context(self):
        return [("Path", self.artifact_path)]
