"""
Pipeline Step Components

One component per table transformation stage. Each follows the
BaseComponent interface from loan_default.pipeline.base.
"""

from loan_default.components.type_normalizer import TypeNormalizer
from loan_default.components.completeness_splitter import (
    ColumnRole,
    CompletenessSplit,
    CompletenessSplitter,
)
from loan_default.components.imputer import MeanImputer, merge_on_identifier
from loan_default.components.outlier_flagger import OutlierFlagger
from loan_default.components.feature_engineer import FeatureEngineer
from loan_default.components.feature_selector import (
    FeatureSelector,
    build_ranking_table,
    select_top_features,
)

__all__ = [
    "TypeNormalizer",
    "ColumnRole",
    "CompletenessSplit",
    "CompletenessSplitter",
    "MeanImputer",
    "merge_on_identifier",
    "OutlierFlagger",
    "FeatureEngineer",
    "FeatureSelector",
    "build_ranking_table",
    "select_top_features",
]
