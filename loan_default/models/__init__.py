"""Probability models, feature rankers and the one-hot encoder."""

from loan_default.models.base_model import (
    EnsembleModel,
    ImportanceRanker,
    ProbabilityModel,
    target_to_binary,
)
from loan_default.models.encoding import FeatureEncoder
from loan_default.models.model_factory import ModelFactory
from loan_default.models.random_forest import RandomForestModel, RandomForestRanker
from loan_default.models.xgboost_model import XGBoostModel

__all__ = [
    "EnsembleModel",
    "FeatureEncoder",
    "ImportanceRanker",
    "ModelFactory",
    "ProbabilityModel",
    "RandomForestModel",
    "RandomForestRanker",
    "XGBoostModel",
    "target_to_binary",
]
