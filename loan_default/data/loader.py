"""
Data Loader

Reads the raw train and test tables, tags each row with its origin and
unions them into one working table. split_by_origin() is the inverse.
"""

from pathlib import Path
from typing import Optional, Tuple
import logging

import pandas as pd

from loan_default.config.schema import DataConfig
from loan_default.core.exceptions import DataReaderError, SchemaMismatch


logger = logging.getLogger(__name__)

STEP_NAME = "01_load"

TRAIN = "train"
TEST = "test"


def read_table(path: str) -> pd.DataFrame:
    """Read a comma-separated UTF-8 file with a header row.

    Args:
        path: Path to the CSV file.

    Returns:
        Raw DataFrame.

    Raises:
        DataReaderError: If the file is missing, empty or unparseable.
    """
    p = Path(path)
    if not p.exists():
        raise DataReaderError("Input file not found", source=str(p))

    try:
        df = pd.read_csv(p, encoding="utf-8", low_memory=False)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise DataReaderError("Could not parse input file", source=str(p), cause=e)

    logger.info(f"{STEP_NAME} | Read {p.name}: {len(df):,} rows, {len(df.columns)} columns")
    return df


def _check_schema(
    train: pd.DataFrame,
    test: pd.DataFrame,
    config: DataConfig,
) -> None:
    """Validate that the two sources can be unioned."""
    id_col = config.id_column
    target = config.target_column

    for name, df in ((TRAIN, train), (TEST, test)):
        if id_col not in df.columns:
            raise SchemaMismatch(
                f"Identifier column '{id_col}' missing from {name} source",
                column=id_col,
            )
        if config.origin_column in df.columns:
            raise SchemaMismatch(
                f"Reserved origin column '{config.origin_column}' already present "
                f"in {name} source",
                column=config.origin_column,
            )

    if target not in train.columns:
        raise SchemaMismatch(
            f"Target column '{target}' missing from train source", column=target
        )

    train_cols = [c for c in train.columns if c not in (id_col, target)]
    test_cols = [c for c in test.columns if c not in (id_col, target)]
    train_only = [c for c in train_cols if c not in set(test_cols)]
    test_only = [c for c in test_cols if c not in set(train_cols)]

    if not set(train_cols) & set(test_cols):
        raise SchemaMismatch(
            "Train and test sources share no feature columns",
            train_only=train_only,
            test_only=test_only,
        )

    if train_only or test_only:
        if not config.allow_partial_schema:
            raise SchemaMismatch(
                f"Column sets differ ({len(train_only)} train-only, "
                f"{len(test_only)} test-only)",
                train_only=train_only,
                test_only=test_only,
            )
        logger.warning(
            f"{STEP_NAME} | Partial schema: train-only={train_only}, "
            f"test-only={test_only}; missing cells will be empty"
        )

    for name, df in ((TRAIN, train), (TEST, test)):
        dupes = df[id_col][df[id_col].duplicated()].unique().tolist()
        if dupes:
            raise SchemaMismatch(
                f"Duplicate identifiers in {name} source", column=id_col, rows=dupes
            )

    shared_ids = set(train[id_col]).intersection(test[id_col])
    if shared_ids:
        raise SchemaMismatch(
            "Identifiers present in both train and test sources",
            column=id_col,
            rows=sorted(shared_ids),
        )


def _align_target(df: pd.DataFrame, target: str, labelled: bool) -> pd.DataFrame:
    """Give the target the same nullable integer type in both sources.

    The test source either lacks the target or carries an integer stand-in;
    neither is a real label, so its target becomes missing.
    """
    df = df.copy()
    if not labelled:
        df[target] = pd.array([pd.NA] * len(df), dtype="Int64")
        return df

    numeric = pd.to_numeric(df[target], errors="coerce")
    # Non-numeric labels are left for the type normalizer to reject
    if numeric.notna().sum() == df[target].notna().sum():
        df[target] = numeric.astype("Int64")
    return df


def union_sources(
    train: pd.DataFrame,
    test: pd.DataFrame,
    config: DataConfig,
) -> pd.DataFrame:
    """Tag rows with their origin and union train and test.

    Args:
        train: Raw training table (with target).
        test: Raw test table (target absent or integer stand-in).
        config: DataConfig with column names and schema policy.

    Returns:
        Unioned table with an added origin column, train rows first.

    Raises:
        SchemaMismatch: If the sources cannot be reconciled.
    """
    _check_schema(train, test, config)

    target = config.target_column
    train = _align_target(train, target, labelled=True)
    test = _align_target(test, target, labelled=False)

    train[config.origin_column] = TRAIN
    test[config.origin_column] = TEST

    columns = list(train.columns) + [c for c in test.columns if c not in train.columns]
    combined = pd.concat([train, test], ignore_index=True, sort=False)[columns]

    logger.info(
        f"{STEP_NAME} | Union: {len(train):,} train + {len(test):,} test = "
        f"{len(combined):,} rows, {len(combined.columns)} columns"
    )
    return combined


def split_by_origin(
    df: pd.DataFrame,
    origin_column: str = "origin",
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Split a unioned table back into its train and test partitions.

    Args:
        df: Table carrying the origin column.
        origin_column: Name of the provenance column.

    Returns:
        (train, test) with the origin column removed and a fresh index.
    """
    if origin_column not in df.columns:
        raise SchemaMismatch(
            f"Origin column '{origin_column}' not found", column=origin_column
        )
    mask = df[origin_column] == TRAIN
    train = df[mask].drop(columns=[origin_column]).reset_index(drop=True)
    test = df[~mask].drop(columns=[origin_column]).reset_index(drop=True)
    return train, test


def load_sources(
    config: DataConfig,
    train_path: Optional[str] = None,
    test_path: Optional[str] = None,
) -> pd.DataFrame:
    """Read both input files and union them.

    Args:
        config: DataConfig; its paths are used unless overridden.
        train_path: Optional override of config.train_path.
        test_path: Optional override of config.test_path.

    Returns:
        Unioned working table.
    """
    train = read_table(train_path or config.train_path)
    test = read_table(test_path or config.test_path)
    return union_sources(train, test, config)
