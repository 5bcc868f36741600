"""
Feature Encoding

Turns a working table (numeric, boolean and categorical columns) into the
all-numeric matrix the tree ensembles consume. Categorical columns are
one-hot encoded with an extra level for missing values; every encoded
column remembers the source feature it came from so importances can be
aggregated back.
"""

from typing import Dict, List, Optional, Set
import logging
import re

import pandas as pd

from loan_default.core.exceptions import DataValidationError, UnknownCategory


logger = logging.getLogger(__name__)

LEVEL_SEP = "="

# XGBoost rejects feature names containing these characters
_UNSAFE_CHARS = re.compile(r"[\[\]<]")


def _safe_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name)


class FeatureEncoder:
    """One-hot encoder with a fixed output layout.

    The layout (column names and order) is learned in fit(); transform()
    always returns exactly that layout, with all-zero indicators for
    levels absent from the transformed rows. A categorical column knows the
    levels of its fitted vocabulary (the category dtype's categories, or the
    observed values of a plain object column); any other present value is
    rejected with UnknownCategory.
    """

    def __init__(self) -> None:
        self.categorical_columns_: List[str] = []
        self.columns_: List[str] = []
        self.source_of_: Dict[str, str] = {}
        self.feature_names_: List[str] = []
        self.levels_: Dict[str, Set] = {}

    def _is_categorical(self, series: pd.Series) -> bool:
        return not (
            pd.api.types.is_numeric_dtype(series)
            and not isinstance(series.dtype, pd.CategoricalDtype)
        )

    @staticmethod
    def _vocabulary(series: pd.Series) -> Set:
        if isinstance(series.dtype, pd.CategoricalDtype):
            return set(series.cat.categories)
        return set(series.dropna().unique())

    def _check_levels(self, df: pd.DataFrame) -> None:
        for col in self.categorical_columns_:
            series = df[col]
            present = series.notna()
            unseen = present & ~series.astype(object).isin(self.levels_[col])
            if unseen.any():
                raise UnknownCategory(
                    "Levels not seen when the encoder was fitted",
                    column=col,
                    rows=series.index[unseen].tolist(),
                    values=sorted(series[unseen].astype(str).unique()),
                )

    def _encode(self, df: pd.DataFrame) -> pd.DataFrame:
        parts = []
        for col in df.columns:
            series = df[col]
            if col in self.categorical_columns_:
                dummies = pd.get_dummies(
                    series, prefix=col, prefix_sep=LEVEL_SEP, dummy_na=True, dtype=float
                )
                parts.append(dummies)
            else:
                parts.append(series.astype(float).to_frame(col))
        encoded = pd.concat(parts, axis=1) if parts else pd.DataFrame(index=df.index)
        encoded.columns = [_safe_name(str(c)) for c in encoded.columns]
        return encoded

    def fit(self, df: pd.DataFrame) -> "FeatureEncoder":
        """Learn the categorical columns and the encoded layout."""
        self.feature_names_ = list(df.columns)
        self.categorical_columns_ = [c for c in df.columns if self._is_categorical(df[c])]

        self.levels_ = {c: self._vocabulary(df[c]) for c in self.categorical_columns_}

        self.source_of_ = {}
        for col in df.columns:
            if col in self.categorical_columns_:
                levels = pd.get_dummies(
                    df[col], prefix=col, prefix_sep=LEVEL_SEP, dummy_na=True
                ).columns
                for level in levels:
                    self.source_of_[_safe_name(str(level))] = col
            else:
                self.source_of_[_safe_name(col)] = col
        self.columns_ = list(self.source_of_)

        logger.debug(
            "Encoder: %d features -> %d columns (%d categorical)",
            len(self.feature_names_), len(self.columns_), len(self.categorical_columns_),
        )
        return self

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Encode rows into the fitted layout."""
        missing = [c for c in self.feature_names_ if c not in df.columns]
        if missing:
            raise DataValidationError(
                f"Columns missing from table: {missing}",
                details={"missing": missing},
            )
        table = df[self.feature_names_]
        self._check_levels(table)
        encoded = self._encode(table)
        return encoded.reindex(columns=self.columns_, fill_value=0.0)

    def fit_transform(self, df: pd.DataFrame) -> pd.DataFrame:
        return self.fit(df).transform(df)

    def aggregate(self, values: pd.Series, order: Optional[List[str]] = None) -> pd.Series:
        """Sum per-encoded-column values back onto their source features."""
        grouped = values.groupby(lambda c: self.source_of_[c]).sum()
        return grouped.reindex(order or self.feature_names_, fill_value=0.0)
