"""
Model collaborators for the backward search.

- SelectableModel: capability interface the search depends on.
- OLSFormulaModel / GLMFormulaModel: statsmodels-backed implementations.
- ModelFactory: builds the starting model from a formula, data and family.
- terms: formula and protected-scope algebra.
"""

from .base import CandidateRow, SelectableModel
from .statsmodels_models import GLMFormulaModel, OLSFormulaModel
from .model_factory import ModelFactory

__all__ = [
    'CandidateRow',
    'SelectableModel',
    'OLSFormulaModel',
    'GLMFormulaModel',
    'ModelFactory'
]
