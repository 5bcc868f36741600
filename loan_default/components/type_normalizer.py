"""
Type Normalizer Component

Coerces raw columns to their working types:
- numeric values written with a trailing unit symbol ("13.5%") to floats
- designated categorical columns to a pandas category whose vocabulary is
  exactly the set of values observed at fit time
- the 0/1 target to the named classes 'no_default' / 'default'
"""

from typing import Any, Dict, List, Optional
import logging
import time

import pandas as pd

from loan_default.config.schema import DataConfig, NormalizationConfig
from loan_default.core.exceptions import ParseError, UnknownCategory
from loan_default.pipeline.base import BaseComponent, StepResult

logger = logging.getLogger(__name__)

STEP_NAME = "02_normalize"

# Fixed on purpose: never inferred from the data
TARGET_LABELS = {0: "no_default", 1: "default"}
TARGET_CATEGORIES = [TARGET_LABELS[0], TARGET_LABELS[1]]


def parse_unit_column(
    series: pd.Series,
    symbol: str,
    ids: Optional[pd.Series] = None,
) -> pd.Series:
    """Strip a trailing unit symbol and parse the remainder as float.

    Args:
        series: Raw column (e.g. "13.56%").
        symbol: Unit symbol to strip (e.g. "%").
        ids: Row identifiers used in the error message.

    Returns:
        Float series; missing values stay missing.

    Raises:
        ParseError: If a present value has non-numeric residue.
    """
    if pd.api.types.is_numeric_dtype(series):
        return series.astype(float)

    present = series.notna()
    text = series.astype(str).str.strip().str.removesuffix(symbol).str.strip()
    parsed = pd.to_numeric(text.where(present), errors="coerce").astype(float)

    bad = present & parsed.isna()
    if bad.any():
        rows = (ids[bad] if ids is not None else series.index[bad]).tolist()
        raise ParseError(
            f"Non-numeric values after stripping '{symbol}'",
            column=series.name,
            rows=rows,
            details={"examples": series[bad].head(3).tolist()},
        )
    return parsed


def relabel_target(series: pd.Series, ids: Optional[pd.Series] = None) -> pd.Series:
    """Map the 0/1 target to the fixed named classes.

    Accepts integer, float and string encodings of 0/1 as well as values
    that already carry the class names. Missing labels stay missing.

    Raises:
        ParseError: If a present label is neither 0 nor 1.
    """
    series = series.astype(object)
    present = series.notna()
    already = series.isin(TARGET_CATEGORIES)
    codes = pd.to_numeric(series.where(~already), errors="coerce").astype(float)

    bad = present & ~already & ~codes.isin(list(TARGET_LABELS))
    if bad.any():
        rows = (ids[bad] if ids is not None else series.index[bad]).tolist()
        raise ParseError(
            "Target must be encoded as 0/1",
            column=series.name,
            rows=rows,
            details={"examples": series[bad].head(3).tolist()},
        )

    labels = pd.Series(None, index=series.index, dtype=object)
    for code, label in TARGET_LABELS.items():
        labels[codes == code] = label
    labels[already] = series[already]
    return pd.Series(
        pd.Categorical(labels, categories=TARGET_CATEGORIES),
        index=series.index,
        name=series.name,
    )


class TypeNormalizer(BaseComponent):
    """Coerce unit-suffixed numerics, categoricals and the target.

    Args:
        config: NormalizationConfig with unit and categorical columns.
        data_config: DataConfig with identifier and target column names.
    """

    step_name = STEP_NAME
    step_order = 2

    def __init__(self, config: NormalizationConfig, data_config: DataConfig):
        super().__init__()
        self.unit_columns = dict(config.unit_columns)
        self.categorical_columns = list(config.categorical_columns)
        self.missing_category = config.missing_category
        self.id_column = data_config.id_column
        self.target_column = data_config.target_column
        self.vocabularies_: Dict[str, List[str]] = {}

    def _categorical_values(self, series: pd.Series) -> pd.Series:
        """Present values as strings, with the missing marker applied."""
        values = series.astype(object)
        values = values.where(values.isna(), values.astype(str))
        if self.missing_category is not None:
            values = values.where(values.notna(), self.missing_category)
        return values

    def fit(self, df: pd.DataFrame, **kwargs: Any) -> StepResult:
        """Validate unit columns and target, and build category vocabularies.

        Args:
            df: Unioned raw table.

        Returns:
            StepResult with one row per coerced column.
        """
        t0 = time.time()
        ids = df.get(self.id_column)
        rows = []

        for col, symbol in self.unit_columns.items():
            if col not in df.columns:
                logger.debug(f"{STEP_NAME} | Unit column '{col}' not in table, skipped")
                continue
            parsed = parse_unit_column(df[col], symbol, ids)
            rows.append({
                "Column": col,
                "Action": "unit_parse",
                "Detail": symbol,
                "Missing": int(parsed.isna().sum()),
            })

        self.vocabularies_ = {}
        for col in self.categorical_columns:
            if col not in df.columns:
                logger.debug(f"{STEP_NAME} | Categorical column '{col}' not in table, skipped")
                continue
            values = self._categorical_values(df[col])
            vocabulary = sorted(values.dropna().unique().tolist())
            self.vocabularies_[col] = vocabulary
            rows.append({
                "Column": col,
                "Action": "categorical",
                "Detail": f"{len(vocabulary)} categories",
                "Missing": int(values.isna().sum()),
            })

        if self.target_column in df.columns:
            labels = relabel_target(df[self.target_column], ids)
            rows.append({
                "Column": self.target_column,
                "Action": "target",
                "Detail": ", ".join(f"{k}->{v}" for k, v in TARGET_LABELS.items()),
                "Missing": int(labels.isna().sum()),
            })

        self.is_fitted = True
        duration = time.time() - t0

        logger.info(
            f"{STEP_NAME} | {len(self.vocabularies_)} categorical, "
            f"{sum(r['Action'] == 'unit_parse' for r in rows)} unit columns "
            f"in {duration:.1f}s"
        )

        return StepResult(
            step_name=self.step_name,
            input_columns=list(df.columns),
            output_columns=list(df.columns),
            results_df=pd.DataFrame(rows, columns=["Column", "Action", "Detail", "Missing"]),
            metadata={
                "unit_columns": self.unit_columns,
                "vocabulary_sizes": {c: len(v) for c, v in self.vocabularies_.items()},
            },
            duration_seconds=round(duration, 1),
        )

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply the coercions with the fitted vocabularies.

        Raises:
            ParseError: On unparseable unit values or target labels.
            UnknownCategory: If a categorical value is outside its vocabulary.
        """
        self._check_fitted()
        out = df.copy()
        ids = out.get(self.id_column)

        for col, symbol in self.unit_columns.items():
            if col in out.columns:
                out[col] = parse_unit_column(out[col], symbol, ids)

        for col, vocabulary in self.vocabularies_.items():
            if col not in out.columns:
                continue
            values = self._categorical_values(out[col])
            unseen = values.notna() & ~values.isin(vocabulary)
            if unseen.any():
                raise UnknownCategory(
                    "Values outside the fitted vocabulary",
                    column=col,
                    rows=(ids[unseen] if ids is not None else out.index[unseen]).tolist(),
                    values=sorted(values[unseen].unique().tolist()),
                )
            out[col] = pd.Categorical(values, categories=vocabulary)

        if self.target_column in out.columns:
            out[self.target_column] = relabel_target(out[self.target_column], ids)

        return out
