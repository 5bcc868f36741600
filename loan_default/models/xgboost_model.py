"""
XGBoost Model

Gradient-boosted trees for the submission probabilities.
"""

from typing import Any, Dict

import xgboost as xgb

from loan_default.models.base_model import EnsembleModel


class XGBoostModel(EnsembleModel):
    """
    XGBoost classifier on the one-hot encoded table.

    Missing numeric values are handled natively by XGBoost.
    """

    name = "xgboost"

    def build_estimator(self) -> xgb.XGBClassifier:
        params: Dict[str, Any] = {
            "objective": "binary:logistic",
            "eval_metric": "auc",
            "random_state": self.seed,
            "n_jobs": self.n_jobs,
            "verbosity": 0,
        }
        params.update(self.params)
        return xgb.XGBClassifier(**params)
