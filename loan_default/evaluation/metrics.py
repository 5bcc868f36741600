"""
Evaluation Metrics

Stratified K-fold ROC AUC for the probability models, plus the ROC curve
of the out-of-fold scores for reporting.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List
import logging

import numpy as np
import pandas as pd
from sklearn.metrics import roc_auc_score, roc_curve
from sklearn.model_selection import StratifiedKFold

from loan_default.core.exceptions import EvaluationError
from loan_default.models.base_model import ProbabilityModel, target_to_binary
from loan_default.models.encoding import FeatureEncoder

logger = logging.getLogger(__name__)


@dataclass
class CVResult:
    """Cross-validation outcome for one model.

    Attributes:
        model_name: Name of the evaluated model.
        fold_aucs: ROC AUC of each held-out fold.
        y_true: Binary labels of the evaluated rows.
        oof_scores: Out-of-fold P(default) for every evaluated row.
    """

    model_name: str
    fold_aucs: List[float]
    y_true: np.ndarray = field(repr=False)
    oof_scores: np.ndarray = field(repr=False)

    @property
    def mean_auc(self) -> float:
        return float(np.mean(self.fold_aucs))

    @property
    def std_auc(self) -> float:
        return float(np.std(self.fold_aucs))

    @property
    def oof_auc(self) -> float:
        return float(roc_auc_score(self.y_true, self.oof_scores))

    @property
    def gini(self) -> float:
        """Gini = 2 * AUC - 1, on the out-of-fold scores."""
        return 2 * self.oof_auc - 1

    def summary(self) -> Dict[str, Any]:
        return {
            "model": self.model_name,
            "folds": len(self.fold_aucs),
            "fold_aucs": [round(a, 6) for a in self.fold_aucs],
            "mean_auc": round(self.mean_auc, 6),
            "std_auc": round(self.std_auc, 6),
            "oof_auc": round(self.oof_auc, 6),
            "gini": round(self.gini, 6),
        }


def cross_validated_auc(
    model: ProbabilityModel,
    X: pd.DataFrame,
    y: pd.Series,
    n_folds: int = 5,
    seed: int = 42,
) -> CVResult:
    """
    Stratified K-fold ROC AUC.

    A fresh estimator from ``model.build_estimator()`` is fitted on every
    training fold; the fitted state of ``model`` itself is not touched.

    Args:
        model: Probability model to evaluate
        X: Labelled feature table (categoricals allowed)
        y: Named target aligned with ``X``
        n_folds: Number of folds
        seed: Shuffle seed for the fold assignment

    Returns:
        CVResult with per-fold AUC and out-of-fold scores

    Raises:
        EvaluationError: If a class has fewer rows than folds.
    """
    y_bin = target_to_binary(y)
    counts = np.bincount(y_bin, minlength=2)
    if counts.min() < n_folds:
        raise EvaluationError(
            f"Need at least {n_folds} rows per class for {n_folds}-fold CV, "
            f"got {counts.tolist()}",
            metric_name="roc_auc",
        )

    matrix = FeatureEncoder().fit_transform(X)
    folds = StratifiedKFold(n_splits=n_folds, shuffle=True, random_state=seed)

    fold_aucs: List[float] = []
    oof = np.zeros(len(y_bin), dtype=float)
    for i, (train_idx, test_idx) in enumerate(folds.split(matrix, y_bin), start=1):
        estimator = model.build_estimator()
        estimator.fit(matrix.iloc[train_idx], y_bin[train_idx])
        scores = estimator.predict_proba(matrix.iloc[test_idx])[:, 1]
        oof[test_idx] = scores
        fold_aucs.append(float(roc_auc_score(y_bin[test_idx], scores)))
        logger.debug(f"{model.name} | Fold {i}/{n_folds} AUC={fold_aucs[-1]:.4f}")

    result = CVResult(model.name, fold_aucs, y_true=y_bin, oof_scores=oof)
    logger.info(
        f"{model.name} | {n_folds}-fold AUC {result.mean_auc:.4f} "
        f"(+/- {result.std_auc:.4f})"
    )
    return result


def roc_points(y_true: np.ndarray, y_score: np.ndarray) -> pd.DataFrame:
    """ROC curve as a DataFrame with FPR, TPR and Threshold columns."""
    fpr, tpr, thresholds = roc_curve(y_true, y_score)
    return pd.DataFrame({"FPR": fpr, "TPR": tpr, "Threshold": thresholds})
