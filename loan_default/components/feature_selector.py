"""
Feature Selector Component

Ranks the engineered features of the labelled rows with an external
importance ranker and keeps the top N, plus a configurable must-keep list.
"""

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Tuple
import logging
import time

import pandas as pd

from loan_default.config.schema import DataConfig, SelectionConfig
from loan_default.core.exceptions import FeatureSelectionError
from loan_default.data.loader import TRAIN
from loan_default.pipeline.base import BaseComponent, StepResult

if TYPE_CHECKING:
    from loan_default.models.base_model import ImportanceRanker

logger = logging.getLogger(__name__)

STEP_NAME = "07_selection"


def build_ranking_table(
    df: pd.DataFrame,
    data_config: DataConfig,
) -> Tuple[pd.DataFrame, pd.Series]:
    """Labelled rows of the working table, split into features and target.

    Identifier and origin columns are removed; rows with a missing target
    (the test rows) are excluded.

    Returns:
        (feature table, target)
    """
    target_col = data_config.target_column
    if target_col not in df.columns:
        raise FeatureSelectionError(f"Target column '{target_col}' not in table")

    labelled = df[df[target_col].notna()]
    if data_config.origin_column in labelled.columns:
        labelled = labelled[labelled[data_config.origin_column] == TRAIN]

    drop = [
        c for c in (data_config.id_column, data_config.origin_column, target_col)
        if c in labelled.columns
    ]
    return labelled.drop(columns=drop), labelled[target_col]


def select_top_features(
    ranking: Sequence[Tuple[str, float]],
    top_n: int,
    must_keep: Iterable[str] = (),
    column_order: Optional[Sequence[str]] = None,
) -> List[str]:
    """Pick the top_n features by score, then add the must-keep ones.

    Ties in score are broken by position in ``column_order``; names not in
    ``column_order`` keep their position in ``ranking``.

    Raises:
        FeatureSelectionError: On an empty ranking or a must-keep name that
            is not an available feature.
    """
    if not ranking:
        raise FeatureSelectionError("Importance ranking is empty")

    available = list(column_order) if column_order is not None else [n for n, _ in ranking]
    position = {name: i for i, name in enumerate(available)}

    missing = [name for name in must_keep if name not in position]
    if missing:
        raise FeatureSelectionError(
            f"Must-keep features not present in the table: {missing}",
            details={"must_keep": list(must_keep)},
        )

    ordered = sorted(
        ranking, key=lambda pair: (-pair[1], position.get(pair[0], len(position)))
    )
    selected = [name for name, _ in ordered[:top_n]]
    for name in must_keep:
        if name not in selected:
            selected.append(name)
    return selected


class FeatureSelector(BaseComponent):
    """Keep the top-N ranked features (and the must-keep list).

    Args:
        config: SelectionConfig with top_n and must_keep.
        data_config: DataConfig with key column names.
    """

    step_name = STEP_NAME
    step_order = 7

    def __init__(self, config: SelectionConfig, data_config: DataConfig):
        super().__init__()
        self.top_n = config.top_n
        self.must_keep = list(config.must_keep)
        self.data_config = data_config
        self.ranking_: List[Tuple[str, float]] = []
        self.selected_features_: List[str] = []

    @property
    def key_columns(self) -> List[str]:
        dc = self.data_config
        return [dc.id_column, dc.origin_column, dc.target_column]

    def fit(
        self,
        df: pd.DataFrame,
        ranker: Optional["ImportanceRanker"] = None,
        **kwargs: Any,
    ) -> StepResult:
        """Rank the features of the labelled rows and select the top N.

        Args:
            df: Engineered union table.
            ranker: ImportanceRanker used to score the features.

        Returns:
            StepResult with rank, importance and selection reason per feature.
        """
        if ranker is None:
            raise FeatureSelectionError("An importance ranker is required")

        t0 = time.time()
        table, target = build_ranking_table(df, self.data_config)
        logger.info(
            f"{STEP_NAME} | Ranking {table.shape[1]} features on {len(table):,} labelled rows "
            f"with {type(ranker).__name__}"
        )

        self.ranking_ = list(ranker.rank_importance(table, target))
        self.selected_features_ = select_top_features(
            self.ranking_, self.top_n, self.must_keep, column_order=list(table.columns)
        )

        top = set(self.selected_features_[: self.top_n])
        selected = set(self.selected_features_)
        ordered = sorted(self.ranking_, key=lambda pair: -pair[1])
        rows: List[Dict[str, Any]] = []
        for rank, (name, score) in enumerate(ordered, start=1):
            if name in top:
                reason = f"Top {self.top_n}"
            elif name in selected:
                reason = "Must keep"
            else:
                reason = "Below top N"
            rows.append({
                "Rank": rank,
                "Feature": name,
                "Importance": round(float(score), 6),
                "Selected": name in selected,
                "Reason": reason,
            })

        self.is_fitted = True
        duration = time.time() - t0
        logger.info(
            f"{STEP_NAME} | Kept {len(self.selected_features_)} of {table.shape[1]} "
            f"features (top_n={self.top_n}, must_keep={len(self.must_keep)}) "
            f"in {duration:.1f}s"
        )

        return StepResult(
            step_name=self.step_name,
            input_columns=list(df.columns),
            output_columns=[c for c in self.key_columns if c in df.columns]
            + self.selected_features_,
            results_df=pd.DataFrame(
                rows, columns=["Rank", "Feature", "Importance", "Selected", "Reason"]
            ),
            metadata={
                "top_n": self.top_n,
                "must_keep": self.must_keep,
                "selected": list(self.selected_features_),
                "ranker": type(ranker).__name__,
            },
            duration_seconds=round(duration, 1),
        )

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Keep key columns, target and the selected features."""
        self._check_fitted()
        keys = [c for c in self.key_columns if c in df.columns]
        return df[keys + self.selected_features_]
