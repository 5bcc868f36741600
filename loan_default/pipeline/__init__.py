"""
Pipeline Module

Base classes shared by every stage. The end-to-end runner lives in
loan_default.pipeline.orchestrator.
"""

from loan_default.pipeline.base import BaseComponent, StepResult

__all__ = [
    "BaseComponent",
    "StepResult",
]
