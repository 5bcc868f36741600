"""
Prediction Exporter

Builds the two-column submission table (identifier, probability) for the
test rows and writes it as CSV.
"""

from pathlib import Path
from typing import Union
import logging

import numpy as np
import pandas as pd

from loan_default.core.exceptions import DataValidationError


logger = logging.getLogger(__name__)

STEP_NAME = "08_export"


def build_submission(
    test_table: pd.DataFrame,
    probabilities: Union[pd.Series, np.ndarray],
    id_column: str = "id",
    probability_column: str = "P_default",
) -> pd.DataFrame:
    """Pair every test identifier with its predicted probability.

    ``probabilities`` is matched to ``test_table`` by index when it is a
    Series, by position otherwise.

    Returns:
        DataFrame with columns [id_column, probability_column], one row per
        test identifier, in test-table order.

    Raises:
        DataValidationError: On duplicate identifiers, a length mismatch, or
            a probability that is missing or outside [0, 1].
    """
    ids = test_table[id_column]
    duplicated = ids[ids.duplicated()]
    if not duplicated.empty:
        raise DataValidationError(
            "Duplicate identifiers in the test table",
            column=id_column,
            rows=duplicated.tolist(),
        )

    if isinstance(probabilities, pd.Series):
        scores = probabilities.reindex(test_table.index)
    else:
        scores = pd.Series(np.asarray(probabilities, dtype=float))
        if len(scores) != len(test_table):
            raise DataValidationError(
                f"Got {len(scores)} probabilities for {len(test_table)} test rows",
                column=probability_column,
            )
        scores.index = test_table.index
    scores = scores.astype(float)

    invalid = scores.isna() | (scores < 0.0) | (scores > 1.0)
    if invalid.any():
        raise DataValidationError(
            "Probabilities must be present and within [0, 1]",
            column=probability_column,
            rows=ids[invalid].tolist(),
        )

    return pd.DataFrame({
        id_column: ids.to_numpy(),
        probability_column: scores.to_numpy(),
    })


def export_predictions(submission: pd.DataFrame, path: Union[str, Path]) -> Path:
    """Write the submission table as a headed, comma-separated file.

    Args:
        submission: Output of build_submission().
        path: Destination CSV path; parent directories are created.

    Returns:
        Path of the written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    submission.to_csv(path, index=False)
    logger.info(f"{STEP_NAME} | Wrote {len(submission):,} predictions to {path}")
    return path
