"""
Loan Default Pipeline - Core Package

Shared infrastructure for the pipeline:
- Logging utilities
- Custom exceptions
"""

from loan_default.core.logger import get_logger, setup_logging, PipelineLogger
from loan_default.core.exceptions import (
    PipelineException,
    ConfigurationError,
    DataValidationError,
    SchemaMismatch,
    ParseError,
    UnknownCategory,
    FeatureEngineeringError,
    EmptyColumn,
    MalformedDate,
    FeatureSelectionError,
    ModelTrainingError,
    EvaluationError,
    DataReaderError,
    ArtifactError,
)

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "PipelineLogger",
    # Exceptions
    "PipelineException",
    "ConfigurationError",
    "DataValidationError",
    "SchemaMismatch",
    "ParseError",
    "UnknownCategory",
    "FeatureEngineeringError",
    "EmptyColumn",
    "MalformedDate",
    "FeatureSelectionError",
    "ModelTrainingError",
    "EvaluationError",
    "DataReaderError",
    "ArtifactError",
]
