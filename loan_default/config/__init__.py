"""
Config Module

Pydantic-based configuration for the loan default pipeline.
"""

from loan_default.config.schema import (
    PipelineConfig,
    DataConfig,
    NormalizationConfig,
    CompletenessConfig,
    OutlierConfig,
    FeatureConfig,
    SelectionConfig,
    ModelConfig,
    EvaluationConfig,
    OutputConfig,
    ReproducibilityConfig,
)
from loan_default.config.loader import (
    load_config,
    load_profile,
    list_profiles,
    save_config,
)

__all__ = [
    "PipelineConfig",
    "DataConfig",
    "NormalizationConfig",
    "CompletenessConfig",
    "OutlierConfig",
    "FeatureConfig",
    "SelectionConfig",
    "ModelConfig",
    "EvaluationConfig",
    "OutputConfig",
    "ReproducibilityConfig",
    "load_config",
    "load_profile",
    "list_profiles",
    "save_config",
]
