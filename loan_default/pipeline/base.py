"""
Pipeline Base Classes

Defines the contract (BaseComponent and StepResult) that all table
transformation stages follow.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import pandas as pd


@dataclass
class StepResult:
    """Result of a pipeline step.

    Attributes:
        step_name: Identifier for the step (e.g., '03_completeness').
        input_columns: Columns of the table passed into the step.
        output_columns: Columns of the table the step produces.
        results_df: Detailed per-column results DataFrame.
        metadata: Arbitrary extra data (thresholds used, statistics, etc.).
        duration_seconds: Wall-clock time the step took.
    """

    step_name: str
    input_columns: List[str]
    output_columns: List[str]
    results_df: pd.DataFrame = field(default_factory=pd.DataFrame)
    metadata: Dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def dropped_columns(self) -> List[str]:
        """Columns present in the input but not in the output."""
        kept = set(self.output_columns)
        return [c for c in self.input_columns if c not in kept]

    @property
    def added_columns(self) -> List[str]:
        """Columns created by the step."""
        seen = set(self.input_columns)
        return [c for c in self.output_columns if c not in seen]

    @property
    def n_input(self) -> int:
        return len(self.input_columns)

    @property
    def n_output(self) -> int:
        return len(self.output_columns)

    def summary(self) -> str:
        """Human-readable one-line summary."""
        return (
            f"{self.step_name}: {self.n_input} -> {self.n_output} columns "
            f"(+{len(self.added_columns)} added, -{len(self.dropped_columns)} dropped) "
            f"in {self.duration_seconds:.1f}s"
        )


class BaseComponent(ABC):
    """Base class for all pipeline step components.

    A component learns whatever statistics it needs in fit() (vocabularies,
    means, quartiles) and applies them in transform(), so the same fitted
    component can be replayed on new rows. The step_name and step_order
    attributes are used by the orchestrator for ordering and directory
    naming.
    """

    step_name: str = ""
    step_order: int = 0

    def __init__(self) -> None:
        self.is_fitted = False

    @abstractmethod
    def fit(self, df: pd.DataFrame, **kwargs: Any) -> StepResult:
        """Learn the step's statistics from a table.

        Args:
            df: Working table.
            **kwargs: Step-specific inputs (e.g., an importance ranker).

        Returns:
            StepResult with details of the fitting.
        """
        pass

    @abstractmethod
    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply the fitted step to a table and return a new table.

        Args:
            df: Table to transform. It is never modified in place.

        Returns:
            Transformed table.
        """
        pass

    def fit_transform(
        self, df: pd.DataFrame, **kwargs: Any
    ) -> Tuple[pd.DataFrame, StepResult]:
        """Convenience: fit + transform in one call.

        The result's output_columns are filled from the transformed table.
        """
        result = self.fit(df, **kwargs)
        out = self.transform(df)
        result.output_columns = list(out.columns)
        return out, result

    def _check_fitted(self) -> None:
        if not self.is_fitted:
            raise RuntimeError(f"{self.__class__.__name__} must be fitted before transform")
