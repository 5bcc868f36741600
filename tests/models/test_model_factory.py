"""
Tests for Model Factory

Tests ModelFactory pattern for creating model instances.
"""

import pytest

from loan_default.core.exceptions import ConfigurationError
from loan_default.models.base_model import EnsembleModel
from loan_default.models.model_factory import ModelFactory
from loan_default.models.random_forest import RandomForestModel
from loan_default.models.xgboost_model import XGBoostModel


class TestModelFactoryCreate:
    """Test suite for ModelFactory.create method."""

    def test_create_random_forest(self, pipeline_config):
        model = ModelFactory.create("random_forest", pipeline_config)

        assert isinstance(model, RandomForestModel)
        assert model.params["n_estimators"] == 25
        assert model.seed == pipeline_config.reproducibility.global_seed
        assert model.n_jobs == 1

    def test_create_xgboost(self, pipeline_config):
        model = ModelFactory.create("xgboost", pipeline_config)

        assert isinstance(model, XGBoostModel)
        assert model.params["max_depth"] == 3

    def test_create_case_insensitive(self, pipeline_config):
        assert isinstance(ModelFactory.create("XGBoost", pipeline_config), XGBoostModel)

    def test_create_unknown_type_raises(self, pipeline_config):
        with pytest.raises(ConfigurationError) as excinfo:
            ModelFactory.create("unknown_model", pipeline_config)

        assert "Unknown model type" in str(excinfo.value)

    def test_create_all(self, pipeline_config):
        models = ModelFactory.create_all(pipeline_config)

        assert list(models) == ["random_forest", "xgboost"]
        assert all(not m.is_fitted for m in models.values())


class TestModelFactoryRegister:
    """Test suite for ModelFactory.register method."""

    def test_register_new_model(self, pipeline_config, monkeypatch):
        monkeypatch.setattr(ModelFactory, "_models", dict(ModelFactory._models))

        class ShallowForest(RandomForestModel):
            name = "shallow_forest"

        ModelFactory.register("shallow_forest", ShallowForest)

        assert "shallow_forest" in ModelFactory.available()
        assert isinstance(ModelFactory.create("shallow_forest", pipeline_config), ShallowForest)

    def test_register_rejects_non_models(self):
        with pytest.raises(TypeError):
            ModelFactory.register("bad", dict)

    def test_available(self):
        assert set(ModelFactory.available()) >= {"random_forest", "xgboost"}
        assert all(issubclass(c, EnsembleModel) for c in ModelFactory._models.values())
