"""
Base Model

Abstract interfaces for the tree-ensemble classifiers:
- ImportanceRanker: scores every feature of a labelled table
- ProbabilityModel: fits on a labelled table and scores another one

Models take working tables (categoricals included) and one-hot encode them
internally, so callers never deal with the encoded matrix.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

import joblib
import numpy as np
import pandas as pd

from loan_default.components.type_normalizer import TARGET_LABELS
from loan_default.core.exceptions import ArtifactError, ModelTrainingError
from loan_default.models.encoding import FeatureEncoder

logger = logging.getLogger(__name__)

POSITIVE_LABEL = TARGET_LABELS[1]


def target_to_binary(target: pd.Series) -> np.ndarray:
    """Encode the named target as 1 for default, 0 otherwise.

    Raises:
        ModelTrainingError: If the target has missing values or one class.
    """
    if target.isna().any():
        raise ModelTrainingError(
            f"Target has {int(target.isna().sum())} missing labels",
            details={"column": target.name},
        )
    y = (target.astype(object) == POSITIVE_LABEL).astype(int).to_numpy()
    if len(np.unique(y)) < 2:
        raise ModelTrainingError(
            "Target has a single class; cannot fit a classifier",
            details={"n_rows": len(y), "class": int(y[0]) if len(y) else None},
        )
    return y


class ImportanceRanker(ABC):
    """Scores features by their importance for predicting the target."""

    @abstractmethod
    def rank_importance(
        self,
        table: pd.DataFrame,
        target: pd.Series,
    ) -> List[Tuple[str, float]]:
        """
        Score every column of ``table``.

        Args:
            table: Labelled feature table (no identifier or target columns)
            target: Named target aligned with ``table``

        Returns:
            (feature name, importance) pairs, most important first
        """


class ProbabilityModel(ABC):
    """
    Binary classifier producing P(default) for new rows.

    Subclasses only provide the underlying estimator; encoding, target
    handling, importances and persistence live here.
    """

    name = "base"

    def __init__(
        self,
        params: Optional[Dict[str, Any]] = None,
        seed: int = 42,
        n_jobs: int = -1,
    ):
        self.params = dict(params or {})
        self.seed = seed
        self.n_jobs = n_jobs
        self.estimator = None
        self.encoder: Optional[FeatureEncoder] = None
        self.feature_importances_: Optional[pd.Series] = None
        self.is_fitted = False

    @abstractmethod
    def build_estimator(self) -> Any:
        """Return a fresh, unfitted scikit-learn compatible classifier."""

    def fit(self, table: pd.DataFrame, target: pd.Series) -> "ProbabilityModel":
        """
        Fit on a labelled feature table.

        Args:
            table: Feature table (categoricals allowed)
            target: Named target aligned with ``table``

        Returns:
            Self
        """
        y = target_to_binary(target)
        self.encoder = FeatureEncoder().fit(table)
        X = self.encoder.transform(table)

        try:
            self.estimator = self.build_estimator()
            self.estimator.fit(X, y)
        except Exception as e:
            raise ModelTrainingError(
                f"{self.name} training failed: {e}",
                model_name=self.name,
                cause=e,
            )

        self.feature_importances_ = self.encoder.aggregate(
            pd.Series(self.estimator.feature_importances_, index=X.columns)
        )
        self.is_fitted = True
        logger.info(
            f"{self.name} | Fitted on {len(X):,} rows, "
            f"{X.shape[1]} encoded columns ({len(table.columns)} features)"
        )
        return self

    def predict_proba(self, table: pd.DataFrame) -> np.ndarray:
        """P(default) for every row of ``table``."""
        if not self.is_fitted:
            raise RuntimeError(f"{self.name} must be fitted before predict_proba()")
        X = self.encoder.transform(table)
        return self.estimator.predict_proba(X)[:, 1]

    def fit_predict(
        self,
        train: pd.DataFrame,
        target: pd.Series,
        score: pd.DataFrame,
    ) -> pd.Series:
        """
        Fit on the labelled rows and score the unlabelled ones.

        Returns:
            Probabilities indexed like ``score``
        """
        self.fit(train, target)
        return pd.Series(self.predict_proba(score), index=score.index, name=self.name)

    def save(self, path: Union[str, Path]) -> None:
        """Persist the fitted model with joblib."""
        artifact = {
            "name": self.name,
            "params": self.params,
            "seed": self.seed,
            "estimator": self.estimator,
            "encoder": self.encoder,
            "feature_importances": self.feature_importances_,
        }
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(artifact, path)
        logger.info(f"{self.name} | Model saved to {path}")

    def load(self, path: Union[str, Path]) -> "ProbabilityModel":
        """Restore a model saved with save()."""
        try:
            artifact = joblib.load(path)
        except Exception as e:
            # unpickling a damaged file can fail with almost any exception type
            raise ArtifactError(
                f"Cannot load model artifact: {e!r}", artifact_path=str(path), cause=e
            ) from e
        if not isinstance(artifact, dict) or artifact.get("name") != self.name:
            raise ArtifactError(
                f"Artifact is not a saved '{self.name}' model",
                artifact_path=str(path),
            )
        self.params = artifact["params"]
        self.seed = artifact["seed"]
        self.estimator = artifact["estimator"]
        self.encoder = artifact["encoder"]
        self.feature_importances_ = artifact["feature_importances"]
        self.is_fitted = True
        logger.info(f"{self.name} | Model loaded from {path}")
        return self


class EnsembleModel(ProbabilityModel, ImportanceRanker):
    """Tree ensemble that also ranks features by impurity importance."""

    def rank_importance(
        self,
        table: pd.DataFrame,
        target: pd.Series,
    ) -> List[Tuple[str, float]]:
        self.fit(table, target)
        ranked = self.feature_importances_.sort_values(ascending=False, kind="stable")
        return [(str(name), float(score)) for name, score in ranked.items()]
