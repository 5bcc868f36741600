"""
Feature Engineer Component

Deterministic per-row derivations:
- job-title keyword bucketing (executive / specialist / other)
- "<Mon>-<YYYY>" date strings split into <col>_month and <col>_year
- relationship length = reference_year - year of the configured field
- zip code truncated to its leading characters
Optionally standard-scales the continuous numeric features.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging
import re
import time

import pandas as pd
from sklearn.preprocessing import StandardScaler

from loan_default.config.schema import DataConfig, FeatureConfig
from loan_default.core.exceptions import MalformedDate, ParseError
from loan_default.pipeline.base import BaseComponent, StepResult

logger = logging.getLogger(__name__)

STEP_NAME = "06_features"

MONTH_SLICE = slice(0, 3)
YEAR_SLICE = slice(4, 8)
MIN_DATE_LENGTH = YEAR_SLICE.stop


def bucket_job_titles(
    titles: pd.Series,
    classes: Dict[str, List[str]],
    default: str = "other",
) -> pd.Series:
    """Map free-text job titles to coarse buckets.

    Classes are checked in order and the first class with a keyword
    contained in the lower-cased title wins. Missing or empty titles get
    the default bucket.
    """
    lowered = titles.astype(object).where(titles.notna(), "").astype(str).str.lower()
    buckets = pd.Series(default, index=titles.index, dtype=object)
    assigned = pd.Series(False, index=titles.index)

    for label, keywords in classes.items():
        pattern = "|".join(re.escape(k) for k in keywords)
        hit = lowered.str.contains(pattern, regex=True) & ~assigned
        buckets[hit] = label
        assigned |= hit

    return pd.Series(
        pd.Categorical(buckets, categories=list(classes) + [default]),
        index=titles.index,
        name=f"{titles.name}_bucket" if titles.name else None,
    )


def split_month_year(
    dates: pd.Series,
    ids: Optional[pd.Series] = None,
) -> Tuple[pd.Series, pd.Series]:
    """Split "<Mon>-<YYYY>" strings by fixed offsets.

    Missing values stay missing in both parts.

    Raises:
        MalformedDate: If a present value is shorter than the offsets.
    """
    present = dates.notna()
    text = dates.astype(str).str.strip()

    short = present & (text.str.len() < MIN_DATE_LENGTH)
    if short.any():
        raise MalformedDate(
            f"Expected '<Mon>-<YYYY>' (at least {MIN_DATE_LENGTH} characters)",
            feature_name=dates.name,
            rows=(ids[short] if ids is not None else dates.index[short]).tolist(),
            details={"examples": dates[short].head(3).tolist()},
        )

    month = text.str[MONTH_SLICE].where(present)
    year = text.str[YEAR_SLICE].where(present)
    return month, year


def relationship_length(
    years: pd.Series,
    reference_year: int,
    ids: Optional[pd.Series] = None,
) -> pd.Series:
    """Years between a parsed year field and the reference year.

    Raises:
        ParseError: If a present year is not numeric.
    """
    raw = years.astype(object)
    present = raw.notna()
    parsed = pd.to_numeric(raw.where(present), errors="coerce").astype(float)

    bad = present & parsed.isna()
    if bad.any():
        raise ParseError(
            "Year field is not numeric",
            column=years.name,
            rows=(ids[bad] if ids is not None else years.index[bad]).tolist(),
        )
    return reference_year - parsed


def truncate_zip(zips: pd.Series, length: int = 2) -> pd.Series:
    """Leading characters of a zip-style code, as a category."""
    prefix = zips.astype(str).str.strip().str[:length].where(zips.notna())
    return prefix.astype("category")


class FeatureEngineer(BaseComponent):
    """Derive categorical buckets, date parts and relationship length.

    Source columns that are absent from the table are skipped, so the
    same component works for profiles that dropped them earlier.

    Args:
        config: FeatureConfig with column names and constants.
        data_config: DataConfig with key column names.
    """

    step_name = STEP_NAME
    step_order = 6

    def __init__(self, config: FeatureConfig, data_config: DataConfig):
        super().__init__()
        self.config = config
        self.id_column = data_config.id_column
        self.excluded = {
            data_config.id_column,
            data_config.origin_column,
            data_config.target_column,
        }
        self.scaler_: Optional[StandardScaler] = None
        self.scaled_columns_: List[str] = []
        self.derived_: List[str] = []

    def _derive(self, df: pd.DataFrame) -> pd.DataFrame:
        cfg = self.config
        out = df.copy()
        ids = out.get(self.id_column)
        sources: List[str] = []
        derived: List[str] = []

        if cfg.job_title_column in out.columns:
            name = f"{cfg.job_title_column}_bucket"
            out[name] = bucket_job_titles(
                out[cfg.job_title_column], cfg.job_title_classes, cfg.job_title_default
            )
            sources.append(cfg.job_title_column)
            derived.append(name)

        for col in cfg.date_columns:
            if col not in out.columns:
                continue
            month, year = split_month_year(out[col], ids)
            out[f"{col}_month"] = month.astype("category")
            out[f"{col}_year"] = year.astype("category")
            sources.append(col)
            derived.extend([f"{col}_month", f"{col}_year"])

        if cfg.tenure_source_column in out.columns:
            out[cfg.tenure_column] = relationship_length(
                out[cfg.tenure_source_column], cfg.reference_year, ids
            )
            derived.append(cfg.tenure_column)

        if cfg.zip_column in out.columns:
            name = f"{cfg.zip_column}_prefix"
            out[name] = truncate_zip(out[cfg.zip_column], cfg.zip_prefix_length)
            sources.append(cfg.zip_column)
            derived.append(name)

        if cfg.drop_source_columns and sources:
            out = out.drop(columns=sources)

        self.derived_ = derived
        return out

    def _continuous_columns(self, df: pd.DataFrame) -> List[str]:
        return [
            c for c in df.columns
            if c not in self.excluded
            and pd.api.types.is_numeric_dtype(df[c])
            and not pd.api.types.is_bool_dtype(df[c])
            and not isinstance(df[c].dtype, pd.CategoricalDtype)
        ]

    def fit(self, df: pd.DataFrame, **kwargs: Any) -> StepResult:
        """Validate the derivations and fit the optional scaler.

        Args:
            df: Table after imputation (and outlier flagging, if enabled).

        Returns:
            StepResult listing the derived features.
        """
        t0 = time.time()
        engineered = self._derive(df)

        if self.config.scale_numeric:
            self.scaled_columns_ = self._continuous_columns(engineered)
            self.scaler_ = StandardScaler()
            self.scaler_.fit(engineered[self.scaled_columns_])
            logger.info(f"{STEP_NAME} | Scaling {len(self.scaled_columns_)} numeric columns")

        rows = []
        for col in self.derived_:
            series = engineered[col]
            if isinstance(series.dtype, pd.CategoricalDtype):
                kind, detail = "categorical", f"{len(series.cat.categories)} categories"
            else:
                kind, detail = "numeric", f"mean={series.mean():.3f}"
            rows.append({
                "Feature": col,
                "Type": kind,
                "Detail": detail,
                "Missing": int(series.isna().sum()),
            })

        self.is_fitted = True
        duration = time.time() - t0
        logger.info(
            f"{STEP_NAME} | Derived {len(self.derived_)} features in {duration:.1f}s"
        )

        return StepResult(
            step_name=self.step_name,
            input_columns=list(df.columns),
            output_columns=list(engineered.columns),
            results_df=pd.DataFrame(rows, columns=["Feature", "Type", "Detail", "Missing"]),
            metadata={
                "derived": list(self.derived_),
                "reference_year": self.config.reference_year,
                "scaled": list(self.scaled_columns_),
            },
            duration_seconds=round(duration, 1),
        )

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply the derivations (and the fitted scaler)."""
        self._check_fitted()
        out = self._derive(df)
        if self.scaler_ is not None and self.scaled_columns_:
            out[self.scaled_columns_] = self.scaler_.transform(out[self.scaled_columns_])
        return out
