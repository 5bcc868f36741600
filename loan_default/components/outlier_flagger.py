"""
Outlier Flagger Component

Flags values outside [Q1 - k*IQR, Q3 + k*IQR] with one boolean column per
checked field. Quartiles are taken over observed values only: cells that
the imputer filled (is_missing_<col> true) are neither used for the
quartiles nor flagged.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging
import time

import pandas as pd

from loan_default.components.imputer import missing_indicator_name
from loan_default.config.schema import DataConfig, OutlierConfig
from loan_default.pipeline.base import BaseComponent, StepResult

logger = logging.getLogger(__name__)

STEP_NAME = "05_outliers"

FLAG_PREFIX = "is_outlier_"


def outlier_flag_name(column: str) -> str:
    """Name of the outlier flag for a column."""
    return f"{FLAG_PREFIX}{column}"


def iqr_bounds(series: pd.Series, multiplier: float = 1.5) -> Tuple[float, float, float, float]:
    """Quartiles and outlier bounds of the present values.

    Returns:
        (q1, q3, lower, upper)
    """
    present = series.dropna()
    q1 = float(present.quantile(0.25))
    q3 = float(present.quantile(0.75))
    iqr = q3 - q1
    return q1, q3, q1 - multiplier * iqr, q3 + multiplier * iqr


def outlier_mask(series: pd.Series, lower: float, upper: float) -> pd.Series:
    """True where a present value lies outside [lower, upper]."""
    return (series.notna() & ((series < lower) | (series > upper))).astype(bool)


class OutlierFlagger(BaseComponent):
    """Emit is_outlier_<col> flags from IQR thresholds.

    Args:
        config: OutlierConfig with columns, multiplier, count threshold and
            the keep_raw_after_flagging policy.
        data_config: DataConfig with key column names.
    """

    step_name = STEP_NAME
    step_order = 5

    def __init__(self, config: OutlierConfig, data_config: DataConfig):
        super().__init__()
        self.columns = list(config.columns) if config.columns is not None else None
        self.multiplier = config.iqr_multiplier
        self.count_threshold = config.count_threshold
        self.keep_raw = config.keep_raw_after_flagging
        self.excluded = {
            data_config.id_column,
            data_config.origin_column,
            data_config.target_column,
        }
        self.thresholds_: Dict[str, Dict[str, float]] = {}

    def _observed(self, df: pd.DataFrame, col: str) -> pd.Series:
        """Column values with imputed cells masked out."""
        indicator = missing_indicator_name(col)
        if indicator in df.columns:
            return df[col].where(~df[indicator].astype(bool))
        return df[col]

    def _numeric_candidates(self, df: pd.DataFrame) -> List[str]:
        return [
            c for c in df.columns
            if c not in self.excluded
            and pd.api.types.is_numeric_dtype(df[c])
            and not pd.api.types.is_bool_dtype(df[c])
        ]

    def _resolve_columns(self, df: pd.DataFrame) -> Optional[List[str]]:
        """Configured columns present in the table, or None for auto mode."""
        if self.columns is None:
            return None
        present = [c for c in self.columns if c in df.columns]
        absent = [c for c in self.columns if c not in df.columns]
        if absent:
            logger.warning(f"{STEP_NAME} | Configured columns not in table, skipped: {absent}")
        return present

    def fit(self, df: pd.DataFrame, **kwargs: Any) -> StepResult:
        """Compute quartiles and bounds for the checked columns.

        In auto mode (no configured columns) every numeric column is
        checked and kept only if its outlier count exceeds count_threshold.

        Args:
            df: Merged, imputed table.

        Returns:
            StepResult with per-column quartiles, bounds and outlier counts.
        """
        t0 = time.time()
        configured = self._resolve_columns(df)
        candidates = configured if configured is not None else self._numeric_candidates(df)

        rows = []
        thresholds: Dict[str, Dict[str, float]] = {}
        for col in candidates:
            observed = self._observed(df, col)
            if observed.notna().sum() == 0:
                logger.warning(f"{STEP_NAME} | '{col}' has no observed values, skipped")
                continue

            q1, q3, lower, upper = iqr_bounds(observed, self.multiplier)
            n_outliers = int(outlier_mask(observed, lower, upper).sum())
            selected = configured is not None or n_outliers > self.count_threshold
            if selected:
                thresholds[col] = {"q1": q1, "q3": q3, "lower": lower, "upper": upper}

            rows.append({
                "Column": col,
                "Q1": q1,
                "Q3": q3,
                "IQR": q3 - q1,
                "Lower": lower,
                "Upper": upper,
                "Outlier_Count": n_outliers,
                "Status": "Flagged" if selected else "Below count threshold",
            })

        self.thresholds_ = thresholds
        self.is_fitted = True
        duration = time.time() - t0

        mode = "configured" if configured is not None else f"auto (>{self.count_threshold})"
        logger.info(
            f"{STEP_NAME} | Flagging {len(thresholds)} of {len(candidates)} "
            f"columns [{mode}] in {duration:.1f}s"
        )

        flags = [outlier_flag_name(c) for c in thresholds]
        dropped = set() if self.keep_raw else set(thresholds)
        return StepResult(
            step_name=self.step_name,
            input_columns=list(df.columns),
            output_columns=[c for c in df.columns if c not in dropped] + flags,
            results_df=pd.DataFrame(
                rows,
                columns=["Column", "Q1", "Q3", "IQR", "Lower", "Upper",
                         "Outlier_Count", "Status"],
            ),
            metadata={
                "iqr_multiplier": self.multiplier,
                "count_threshold": self.count_threshold,
                "keep_raw_after_flagging": self.keep_raw,
                "flagged": list(thresholds),
            },
            duration_seconds=round(duration, 1),
        )

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add one flag per checked column; optionally drop the raw value."""
        self._check_fitted()
        flags = pd.DataFrame(
            {
                outlier_flag_name(col): outlier_mask(
                    self._observed(df, col), bounds["lower"], bounds["upper"]
                )
                for col, bounds in self.thresholds_.items()
            },
            index=df.index,
        )
        out = df if self.keep_raw else df.drop(columns=list(self.thresholds_))
        return pd.concat([out, flags], axis=1)
