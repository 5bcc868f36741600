"""
Random Forest Model

scikit-learn random forest used both as the default feature ranker and as
one of the probability models.
"""

from sklearn.ensemble import RandomForestClassifier

from loan_default.models.base_model import EnsembleModel


class RandomForestModel(EnsembleModel):
    """
    Random forest classifier on the one-hot encoded table.

    Importances are mean impurity decrease, summed over the one-hot
    columns of each source feature.
    """

    name = "random_forest"

    def build_estimator(self) -> RandomForestClassifier:
        params = {"n_estimators": 300, "random_state": self.seed, "n_jobs": self.n_jobs}
        params.update(self.params)
        return RandomForestClassifier(**params)


# Default ranker for feature selection
RandomForestRanker = RandomForestModel
