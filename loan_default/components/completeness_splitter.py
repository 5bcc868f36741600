"""
Completeness Splitter Component

Computes the fill rate of every feature column over the unioned table and
partitions columns into three buckets:
- complete:  fill_rate == 1            (bypass imputation)
- imputable: threshold_low < rate < 1  (mean-imputed downstream)
- dropped:   fill_rate <= threshold_low (excluded for the rest of the run)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Tuple
import logging
import time

import pandas as pd

from loan_default.config.schema import CompletenessConfig, DataConfig
from loan_default.pipeline.base import BaseComponent, StepResult

logger = logging.getLogger(__name__)

STEP_NAME = "03_completeness"


class ColumnRole(str, Enum):
    """Role of a column for the whole run."""

    IDENTIFIER = "identifier"
    TARGET = "target"
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    EXCLUDED = "excluded"


@dataclass
class CompletenessSplit:
    """Column-disjoint sub-tables produced by the splitter.

    Both tables carry the identifier so they can be re-joined.

    Attributes:
        complete: identifier + origin + fully populated columns + target.
        imputable: identifier + partially filled columns.
        fill_rates: Fill rate per feature column.
    """

    complete: pd.DataFrame
    imputable: pd.DataFrame
    fill_rates: pd.Series
    complete_columns: List[str] = field(default_factory=list)
    imputable_columns: List[str] = field(default_factory=list)
    dropped_columns: List[str] = field(default_factory=list)


def compute_fill_rates(df: pd.DataFrame, columns: Iterable[str]) -> pd.Series:
    """Fraction of rows with a present value, per column."""
    columns = list(columns)
    if len(df) == 0:
        return pd.Series(0.0, index=columns, dtype=float)
    return df[columns].notna().mean().astype(float)


def partition_by_fill_rate(
    fill_rates: pd.Series,
    threshold_low: float,
) -> Tuple[List[str], List[str], List[str]]:
    """Split column names into (complete, imputable, dropped), keeping order."""
    complete, imputable, dropped = [], [], []
    for col, rate in fill_rates.items():
        if rate >= 1.0:
            complete.append(col)
        elif rate > threshold_low:
            imputable.append(col)
        else:
            dropped.append(col)
    return complete, imputable, dropped


def classify_columns(
    df: pd.DataFrame,
    key_columns: Iterable[str],
    target_column: str,
    dropped: Iterable[str] = (),
) -> Dict[str, ColumnRole]:
    """Assign exactly one ColumnRole to every column of the table."""
    keys = set(key_columns)
    dropped = set(dropped)
    roles: Dict[str, ColumnRole] = {}
    for col in df.columns:
        if col in keys:
            roles[col] = ColumnRole.IDENTIFIER
        elif col == target_column:
            roles[col] = ColumnRole.TARGET
        elif col in dropped:
            roles[col] = ColumnRole.EXCLUDED
        elif pd.api.types.is_numeric_dtype(df[col]) and not isinstance(
            df[col].dtype, pd.CategoricalDtype
        ):
            roles[col] = ColumnRole.NUMERIC
        else:
            roles[col] = ColumnRole.CATEGORICAL
    return roles


class CompletenessSplitter(BaseComponent):
    """Partition feature columns by fill rate.

    Args:
        config: CompletenessConfig with threshold_low.
        data_config: DataConfig with identifier, origin and target names.
    """

    step_name = STEP_NAME
    step_order = 3

    def __init__(self, config: CompletenessConfig, data_config: DataConfig):
        super().__init__()
        self.threshold_low = config.threshold_low
        self.id_column = data_config.id_column
        self.origin_column = data_config.origin_column
        self.target_column = data_config.target_column
        self.fill_rates_ = pd.Series(dtype=float)
        self.complete_columns_: List[str] = []
        self.imputable_columns_: List[str] = []
        self.dropped_columns_: List[str] = []
        self.roles_: Dict[str, ColumnRole] = {}

    @property
    def key_columns(self) -> List[str]:
        return [self.id_column, self.origin_column]

    def _feature_columns(self, df: pd.DataFrame) -> List[str]:
        skip = set(self.key_columns + [self.target_column])
        return [c for c in df.columns if c not in skip]

    def fit(self, df: pd.DataFrame, **kwargs: Any) -> StepResult:
        """Compute fill rates and assign each column to a bucket.

        Args:
            df: Normalized unioned table.

        Returns:
            StepResult with per-column fill rate, bucket and role.
        """
        t0 = time.time()
        features = self._feature_columns(df)

        self.fill_rates_ = compute_fill_rates(df, features)
        (
            self.complete_columns_,
            self.imputable_columns_,
            self.dropped_columns_,
        ) = partition_by_fill_rate(self.fill_rates_, self.threshold_low)
        self.roles_ = classify_columns(
            df, self.key_columns, self.target_column, self.dropped_columns_
        )

        buckets = {c: "complete" for c in self.complete_columns_}
        buckets.update({c: "imputable" for c in self.imputable_columns_})
        buckets.update({c: "dropped" for c in self.dropped_columns_})

        rows = [
            {
                "Column": col,
                "Fill_Rate": round(float(self.fill_rates_[col]), 4),
                "Missing_Count": int(df[col].isna().sum()),
                "Bucket": buckets[col],
                "Role": self.roles_[col].value,
            }
            for col in features
        ]
        results_df = pd.DataFrame(
            rows, columns=["Column", "Fill_Rate", "Missing_Count", "Bucket", "Role"]
        ).sort_values("Fill_Rate", kind="stable")

        self.is_fitted = True
        duration = time.time() - t0

        logger.info(
            f"{STEP_NAME} | {len(self.complete_columns_)} complete, "
            f"{len(self.imputable_columns_)} imputable, "
            f"{len(self.dropped_columns_)} dropped "
            f"(threshold_low={self.threshold_low}) in {duration:.1f}s"
        )
        if self.dropped_columns_:
            logger.debug(f"{STEP_NAME} | Dropped: {self.dropped_columns_}")

        return StepResult(
            step_name=self.step_name,
            input_columns=list(df.columns),
            output_columns=[c for c in df.columns if c not in set(self.dropped_columns_)],
            results_df=results_df,
            metadata={
                "threshold_low": self.threshold_low,
                "complete": self.complete_columns_,
                "imputable": self.imputable_columns_,
                "dropped": self.dropped_columns_,
            },
            duration_seconds=round(duration, 1),
        )

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Drop the excluded columns."""
        self._check_fitted()
        return df.drop(columns=[c for c in self.dropped_columns_ if c in df.columns])

    def split(self, df: pd.DataFrame) -> CompletenessSplit:
        """Build the complete and imputable sub-tables.

        Args:
            df: Table with the columns seen at fit time.

        Returns:
            CompletenessSplit with the two identifier-keyed sub-tables.
        """
        self._check_fitted()
        complete_cols = (
            [self.id_column, self.origin_column]
            + self.complete_columns_
            + [self.target_column]
        )
        imputable_cols = [self.id_column] + self.imputable_columns_

        return CompletenessSplit(
            complete=df[[c for c in complete_cols if c in df.columns]].copy(),
            imputable=df[imputable_cols].copy(),
            fill_rates=self.fill_rates_.copy(),
            complete_columns=list(self.complete_columns_),
            imputable_columns=list(self.imputable_columns_),
            dropped_columns=list(self.dropped_columns_),
        )
