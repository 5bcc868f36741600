"""
Pydantic Configuration Schema

Defines all configuration models for the loan default pipeline.
Defaults reproduce the baseline profile; every threshold the stages use
lives here rather than in module-level constants.
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


ModelName = Literal["random_forest", "xgboost"]


class DataConfig(BaseModel):
    """Input sources and key columns."""

    model_config = {"frozen": True}

    train_path: str = "data/train.csv"
    test_path: str = "data/test.csv"
    id_column: str = "id"
    target_column: str = "default"
    origin_column: str = "origin"
    allow_partial_schema: bool = False


class NormalizationConfig(BaseModel):
    """Type coercion of raw columns."""

    model_config = {"frozen": True}

    unit_columns: Dict[str, str] = Field(
        default_factory=lambda: {"int_rate": "%", "revol_util": "%"}
    )
    categorical_columns: List[str] = Field(
        default_factory=lambda: [
            "term",
            "grade",
            "sub_grade",
            "emp_length",
            "home_ownership",
            "verification_status",
            "purpose",
            "addr_state",
            "initial_list_status",
            "application_type",
        ]
    )
    missing_category: Optional[str] = None


class CompletenessConfig(BaseModel):
    """Fill-rate partitioning of columns."""

    model_config = {"frozen": True}

    threshold_low: float = Field(default=0.75, ge=0.0, lt=1.0)


class OutlierConfig(BaseModel):
    """IQR outlier flagging.

    When ``columns`` is None the flagged columns are auto-derived: every
    numeric column with more than ``count_threshold`` outliers.
    """

    model_config = {"frozen": True}

    enabled: bool = False
    columns: Optional[List[str]] = None
    iqr_multiplier: float = Field(default=1.5, gt=0.0)
    count_threshold: int = Field(default=10000, ge=0)
    keep_raw_after_flagging: bool = True


class FeatureConfig(BaseModel):
    """Derived feature settings."""

    model_config = {"frozen": True}

    job_title_column: str = "emp_title"
    job_title_classes: Dict[str, List[str]] = Field(
        default_factory=lambda: {
            "executive": ["manager", "director", "ceo"],
            "specialist": ["engineer", "specialist"],
        }
    )
    job_title_default: str = "other"
    date_columns: List[str] = Field(
        default_factory=lambda: ["issue_d", "earliest_cr_line"]
    )
    tenure_source_column: str = "earliest_cr_line_year"
    tenure_column: str = "credit_history_years"
    reference_year: int = 2018
    zip_column: str = "zip_code"
    zip_prefix_length: int = Field(default=2, ge=1)
    scale_numeric: bool = False
    drop_source_columns: bool = True

    @field_validator("job_title_classes")
    @classmethod
    def keywords_lowercase(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        for label, keywords in v.items():
            if not keywords:
                raise ValueError(f"Job title class '{label}' has no keywords")
            if any(k != k.lower() for k in keywords):
                raise ValueError(
                    f"Job title keywords must be lower-case (class '{label}')"
                )
        return v


class SelectionConfig(BaseModel):
    """Importance-based top-N feature selection."""

    model_config = {"frozen": True}

    enabled: bool = True
    top_n: int = Field(default=20, ge=1)
    must_keep: List[str] = Field(default_factory=list)
    ranker: ModelName = "random_forest"


class ModelConfig(BaseModel):
    """Ensemble classifier configuration."""

    model_config = {"frozen": True}

    models: List[ModelName] = Field(
        default_factory=lambda: ["random_forest", "xgboost"]
    )
    submission_model: ModelName = "xgboost"
    random_forest_params: Dict[str, Any] = Field(
        default_factory=lambda: {
            "n_estimators": 300,
            "max_features": "sqrt",
            "min_samples_leaf": 5,
        }
    )
    xgboost_params: Dict[str, Any] = Field(
        default_factory=lambda: {
            "objective": "binary:logistic",
            "eval_metric": "auc",
            "max_depth": 4,
            "learning_rate": 0.05,
            "n_estimators": 300,
            "subsample": 0.8,
            "colsample_bytree": 0.8,
        }
    )

    @model_validator(mode="after")
    def submission_model_is_trained(self) -> "ModelConfig":
        if self.submission_model not in self.models:
            raise ValueError(
                f"submission_model '{self.submission_model}' must be one of "
                f"models {self.models}"
            )
        return self


class EvaluationConfig(BaseModel):
    """Cross-validated ROC AUC evaluation."""

    model_config = {"frozen": True}

    enabled: bool = True
    cv_folds: int = Field(default=5, ge=2)


class OutputConfig(BaseModel):
    """Output configuration."""

    model_config = {"frozen": True}

    base_dir: str = "outputs/loan_default"
    predictions_path: str = "outputs/predictions.csv"
    probability_column: str = "P_default"
    save_step_results: bool = True
    generate_excel: bool = True
    cache_models: bool = False
    model_cache_dir: str = "outputs/model_cache"


class ReproducibilityConfig(BaseModel):
    """Reproducibility and logging configuration."""

    model_config = {"frozen": True}

    global_seed: int = 42
    n_jobs: int = -1
    save_config: bool = True
    save_metadata: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class PipelineConfig(BaseModel):
    """Top-level pipeline configuration combining all sections."""

    model_config = {"frozen": True}

    profile: str = "baseline"
    data: DataConfig = Field(default_factory=DataConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    completeness: CompletenessConfig = Field(default_factory=CompletenessConfig)
    outliers: OutlierConfig = Field(default_factory=OutlierConfig)
    features: FeatureConfig = Field(default_factory=FeatureConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    reproducibility: ReproducibilityConfig = Field(default_factory=ReproducibilityConfig)

    @model_validator(mode="after")
    def key_columns_distinct(self) -> "PipelineConfig":
        keys = [
            self.data.id_column,
            self.data.target_column,
            self.data.origin_column,
        ]
        if len(set(keys)) != len(keys):
            raise ValueError(
                f"id, target and origin columns must be distinct, got {keys}"
            )
        return self
