"""Model evaluation."""

from loan_default.evaluation.metrics import CVResult, cross_validated_auc, roc_points

__all__ = ["CVResult", "cross_validated_auc", "roc_points"]
