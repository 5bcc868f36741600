"""
Mean Imputer Component

Fills gaps in the partially populated numeric columns with the column mean
and records where values were missing in one boolean indicator per column.

Means are computed for every column in fit() before any value is written,
so the result does not depend on column or row order.
"""

from typing import Any, Dict, List
import logging
import time

import pandas as pd

from loan_default.config.schema import DataConfig
from loan_default.core.exceptions import DataValidationError, EmptyColumn
from loan_default.pipeline.base import BaseComponent, StepResult

logger = logging.getLogger(__name__)

STEP_NAME = "04_impute"

INDICATOR_PREFIX = "is_missing_"


def missing_indicator_name(column: str) -> str:
    """Name of the missingness indicator for a column."""
    return f"{INDICATOR_PREFIX}{column}"


def merge_on_identifier(
    left: pd.DataFrame,
    right: pd.DataFrame,
    id_column: str,
) -> pd.DataFrame:
    """Re-join two identifier-keyed sub-tables one-to-one.

    Row order follows ``left``.

    Raises:
        DataValidationError: If the identifier sets differ.
    """
    unmatched = set(left[id_column]).symmetric_difference(right[id_column])
    if unmatched:
        raise DataValidationError(
            "Sub-tables do not share the same identifiers",
            column=id_column,
            rows=sorted(unmatched),
        )
    return left.merge(right, on=id_column, how="left", validate="one_to_one")


class MeanImputer(BaseComponent):
    """Mean-impute numeric columns and emit missingness indicators.

    Non-numeric columns in the imputable table are passed through unfilled;
    their missingness becomes its own level when the model matrix is
    one-hot encoded.

    Args:
        data_config: DataConfig with the identifier column name.
    """

    step_name = STEP_NAME
    step_order = 4

    def __init__(self, data_config: DataConfig):
        super().__init__()
        self.id_column = data_config.id_column
        self.means_: Dict[str, float] = {}
        self.passthrough_columns_: List[str] = []

    @property
    def imputed_columns(self) -> List[str]:
        return list(self.means_)

    def fit(self, df: pd.DataFrame, **kwargs: Any) -> StepResult:
        """Compute the mean of the present values of every numeric column.

        Args:
            df: Imputable sub-table (identifier + partially filled columns).

        Returns:
            StepResult with per-column mean and missing count.

        Raises:
            EmptyColumn: If a numeric column has no present values.
        """
        t0 = time.time()
        columns = [c for c in df.columns if c != self.id_column]

        numeric = [
            c for c in columns
            if pd.api.types.is_numeric_dtype(df[c])
            and not isinstance(df[c].dtype, pd.CategoricalDtype)
        ]
        self.passthrough_columns_ = [c for c in columns if c not in set(numeric)]

        means: Dict[str, float] = {}
        rows = []
        for col in numeric:
            present = df[col].dropna()
            if present.empty:
                raise EmptyColumn(
                    "Cannot mean-impute a column with no present values",
                    feature_name=col,
                )
            means[col] = float(present.mean())
            rows.append({
                "Column": col,
                "Mean": means[col],
                "Missing_Count": int(df[col].isna().sum()),
                "Indicator": missing_indicator_name(col),
            })
        self.means_ = means

        if self.passthrough_columns_:
            logger.info(
                f"{STEP_NAME} | Non-numeric columns left unfilled: "
                f"{self.passthrough_columns_}"
            )

        self.is_fitted = True
        duration = time.time() - t0
        logger.info(
            f"{STEP_NAME} | Imputing {len(self.means_)} columns with their mean "
            f"in {duration:.1f}s"
        )

        return StepResult(
            step_name=self.step_name,
            input_columns=list(df.columns),
            output_columns=list(df.columns) + [missing_indicator_name(c) for c in self.means_],
            results_df=pd.DataFrame(
                rows, columns=["Column", "Mean", "Missing_Count", "Indicator"]
            ),
            metadata={"means": self.means_, "passthrough": self.passthrough_columns_},
            duration_seconds=round(duration, 1),
        )

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add indicators, then fill gaps with the fitted means."""
        self._check_fitted()
        columns = self.imputed_columns

        # Indicators are taken before any value is altered
        indicators = pd.DataFrame(
            {missing_indicator_name(c): df[c].isna().astype(bool) for c in columns},
            index=df.index,
        )
        out = df.copy()
        if columns:
            out[columns] = out[columns].astype(float).fillna(value=self.means_)
        return pd.concat([out, indicators], axis=1)
