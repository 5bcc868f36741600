"""
Model Factory

Registry of the available probability models.
"""

from typing import Dict, Type

from loan_default.config.schema import PipelineConfig
from loan_default.core.exceptions import ConfigurationError
from loan_default.models.base_model import EnsembleModel
from loan_default.models.random_forest import RandomForestModel
from loan_default.models.xgboost_model import XGBoostModel


class ModelFactory:
    """
    Factory for creating model instances from the pipeline configuration.
    """

    _models: Dict[str, Type[EnsembleModel]] = {
        "random_forest": RandomForestModel,
        "xgboost": XGBoostModel,
    }

    @classmethod
    def register(cls, name: str, model_class: Type[EnsembleModel]) -> None:
        """Register a new model type under ``name``."""
        if not issubclass(model_class, EnsembleModel):
            raise TypeError(f"{model_class} must be a subclass of EnsembleModel")
        cls._models[name] = model_class

    @classmethod
    def available(cls) -> list:
        return list(cls._models)

    @classmethod
    def create(cls, model_type: str, config: PipelineConfig) -> EnsembleModel:
        """
        Create a model with its configured parameters.

        Args:
            model_type: Registered model name ('random_forest', 'xgboost')
            config: Full pipeline configuration

        Returns:
            Unfitted model instance
        """
        model_type = model_type.lower()
        if model_type not in cls._models:
            raise ConfigurationError(
                f"Unknown model type: {model_type}. Available: {cls.available()}"
            )

        params = {
            "random_forest": config.model.random_forest_params,
            "xgboost": config.model.xgboost_params,
        }.get(model_type, {})
        return cls._models[model_type](
            params=params,
            seed=config.reproducibility.global_seed,
            n_jobs=config.reproducibility.n_jobs,
        )

    @classmethod
    def create_all(cls, config: PipelineConfig) -> Dict[str, EnsembleModel]:
        """Create every model listed in ``config.model.models``."""
        return {name: cls.create(name, config) for name in config.model.models}
