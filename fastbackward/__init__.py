"""
fastbackward: backward elimination by AIC or BIC that skips refits a lower
bound proves cannot improve on the best model seen so far.
"""

from fastbackward.elimination import EliminationController, SelectionResult, fast_backward
from fastbackward.models import GLMFormulaModel, ModelFactory, OLSFormulaModel, SelectableModel
from fastbackward.utils.exceptions import (
    ConfigurationError,
    CriterionError,
    FastBackwardException,
    ModelFittingError,
    ObservationCountError,
    ScopeError,
)

__version__ = "0.1.0"

__all__ = [
    'fast_backward',
    'EliminationController',
    'SelectionResult',
    'SelectableModel',
    'OLSFormulaModel',
    'GLMFormulaModel',
    'ModelFactory',
    'FastBackwardException',
    'ConfigurationError',
    'CriterionError',
    'ObservationCountError',
    'ScopeError',
    'ModelFittingError',
]
