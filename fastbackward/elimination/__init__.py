"""
Bounded backward elimination.

Components:
- LowerBoundTable: per-term lower bounds on the reachable criterion.
- BoundedDropEvaluator: single-term deletions that skip provably worse removals.
- StoppingCriteria: step budget and improvement checks.
- EliminationController: the step loop producing a SelectionResult.
"""

from .lower_bounds import LowerBoundTable
from .drop_evaluator import BoundedDropEvaluator, DropEvaluation
from .stopping_criteria import StoppingCriteria
from .results import PathRecord, SelectionResult, StepDiagnostics
from .controller import EliminationController, fast_backward

__all__ = [
    'LowerBoundTable',
    'BoundedDropEvaluator',
    'DropEvaluation',
    'StoppingCriteria',
    'PathRecord',
    'SelectionResult',
    'StepDiagnostics',
    'EliminationController',
    'fast_backward'
]
