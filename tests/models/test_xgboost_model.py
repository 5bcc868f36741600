"""
Tests for the Ensemble Models

Tests fit, predict and importance ranking for the random forest and
XGBoost models on tables with categorical and missing values.
"""

import numpy as np
import pandas as pd
import pytest

from loan_default.core.exceptions import ModelTrainingError, UnknownCategory
from loan_default.models.base_model import ImportanceRanker
from loan_default.models.random_forest import RandomForestModel, RandomForestRanker
from loan_default.models.xgboost_model import XGBoostModel


@pytest.fixture
def loans_table():
    """300 labelled rows; x and grade drive the target, noise does not."""
    rng = np.random.default_rng(3)
    n = 300
    x = rng.normal(size=n)
    grade = rng.choice(["A", "B", "C"], size=n)
    logit = 2.0 * x + np.where(grade == "C", 1.0, 0.0)
    table = pd.DataFrame({
        "x": x,
        "noise": rng.normal(size=n),
        "grade": pd.Categorical(grade, categories=["A", "B", "C", "D"]),
    })
    table.loc[rng.random(n) < 0.1, "noise"] = np.nan
    target = pd.Series(
        np.where(logit + rng.normal(scale=0.5, size=n) > 0, "default", "no_default"),
        name="default",
    )
    return table, target


@pytest.fixture(params=["random_forest", "xgboost"])
def model(request):
    if request.param == "random_forest":
        return RandomForestModel(params={"n_estimators": 40}, seed=0, n_jobs=1)
    return XGBoostModel(params={"n_estimators": 40, "max_depth": 3}, seed=0, n_jobs=1)


class TestEnsembleModelFit:
    """Test suite shared by both ensembles."""

    def test_fit_returns_self(self, model, loans_table):
        table, target = loans_table

        assert model.fit(table, target) is model
        assert model.is_fitted is True

    def test_importances_per_source_feature(self, model, loans_table):
        table, target = loans_table
        model.fit(table, target)

        assert list(model.feature_importances_.index) == ["x", "noise", "grade"]
        assert (model.feature_importances_ >= 0).all()

    def test_predict_proba_range(self, model, loans_table):
        table, target = loans_table
        model.fit(table, target)

        proba = model.predict_proba(table)

        assert proba.shape == (len(table),)
        assert ((proba >= 0) & (proba <= 1)).all()

    def test_signal_feature_ranks_first(self, model, loans_table):
        table, target = loans_table

        ranking = model.rank_importance(table, target)

        assert [name for name, _ in ranking][0] == "x"
        scores = [score for _, score in ranking]
        assert scores == sorted(scores, reverse=True)
        assert isinstance(model, ImportanceRanker)

    def test_fit_predict_index(self, model, loans_table):
        table, target = loans_table
        score = table.iloc[:25].set_axis(range(1000, 1025))

        predictions = model.fit_predict(table, target, score)

        assert list(predictions.index) == list(range(1000, 1025))
        assert predictions.name == model.name

    def test_unseen_level_in_scored_rows(self, model, loans_table):
        table, target = loans_table
        model.fit(table, target)
        score = table.iloc[:3].copy()
        score["grade"] = pd.Categorical(["E", "E", None], categories=["A", "B", "C", "D", "E"])

        with pytest.raises(UnknownCategory) as exc_info:
            model.predict_proba(score)

        assert exc_info.value.column == "grade"
        assert exc_info.value.values == ["E"]
        assert exc_info.value.rows == [0, 1]

    def test_missing_level_in_scored_rows(self, model, loans_table):
        table, target = loans_table
        model.fit(table, target)
        score = table.iloc[:3].copy()
        score.loc[score.index[0], "grade"] = None

        assert len(model.predict_proba(score)) == 3


class TestEnsembleModelErrors:
    """Test suite for failure modes."""

    def test_predict_before_fit(self, loans_table):
        table, _ = loans_table

        with pytest.raises(RuntimeError):
            XGBoostModel().predict_proba(table)

    def test_single_class_target(self, loans_table):
        table, _ = loans_table
        target = pd.Series(["default"] * len(table))

        with pytest.raises(ModelTrainingError):
            RandomForestModel(n_jobs=1).fit(table, target)

    def test_estimator_failure_wrapped(self, loans_table):
        table, target = loans_table
        model = RandomForestModel(params={"n_estimators": 0}, n_jobs=1)

        with pytest.raises(ModelTrainingError) as exc_info:
            model.fit(table, target)

        assert exc_info.value.model_name == "random_forest"
        assert model.is_fitted is False


class TestEstimatorParams:
    """Test suite for estimator construction."""

    def test_random_forest_params(self):
        estimator = RandomForestModel(
            params={"n_estimators": 7, "min_samples_leaf": 3}, seed=11, n_jobs=2
        ).build_estimator()

        assert estimator.n_estimators == 7
        assert estimator.min_samples_leaf == 3
        assert estimator.random_state == 11
        assert estimator.n_jobs == 2

    def test_xgboost_params(self):
        estimator = XGBoostModel(params={"max_depth": 2}, seed=5, n_jobs=1).build_estimator()
        params = estimator.get_params()

        assert params["max_depth"] == 2
        assert params["random_state"] == 5
        assert params["objective"] == "binary:logistic"
        assert params["eval_metric"] == "auc"

    def test_default_ranker_is_random_forest(self):
        assert RandomForestRanker is RandomForestModel
