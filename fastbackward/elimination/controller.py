import logging
import math
from typing import Any, Callable, List, Optional

from fastbackward.config_manager import resolve_penalty
from fastbackward.elimination.drop_evaluator import BoundedDropEvaluator
from fastbackward.elimination.events import (
    CandidatesRanked,
    ModelRefit,
    SearchStarted,
    TermSkipped,
    TraceEvent,
    TraceSink,
)
from fastbackward.elimination.lower_bounds import LowerBoundTable
from fastbackward.elimination.results import (
    PathRecord,
    SelectionResult,
    StepDiagnostics,
    build_path_table,
    path_heading,
    rank_candidates,
    rearrange_keep,
    zero_df_change,
)
from fastbackward.elimination.stopping_criteria import StoppingCriteria
from fastbackward.models import terms
from fastbackward.models.base import SelectableModel
from fastbackward.utils import constants
from fastbackward.utils.exceptions import CriterionError, ObservationCountError

KeepFunction = Callable[[SelectableModel, float], Any]


class EliminationController:
    """
    Orchestrates bounded backward elimination by an information criterion.

    Each step refits only the removals whose lower bound can still beat the
    best criterion value; the accepted path is the one exhaustive backward
    elimination would take.
    """

    def __init__(self, config: dict, logger: logging.Logger, sink: Optional[TraceSink] = None):
        self.config = config
        self.logger = logger
        self.sink = sink

        # Configuration Shortcuts
        self.selection_config = config.get('selection', {})
        self.scale = float(self.selection_config.get('scale', constants.DEFAULT_SCALE))
        self.trace = int(self.selection_config.get('trace', constants.DEFAULT_TRACE))
        self.bounding = bool(self.selection_config.get('bounding', True))
        self.scope = self.selection_config.get('scope')

        self.stopping_criteria = StoppingCriteria(config, logger)
        self.evaluator = BoundedDropEvaluator(
            logger, emit=self._emit, show_progress=self.selection_config.get('show_progress', False)
        )

        # State Tracking
        self.lower_bounds: Optional[LowerBoundTable] = None
        self.diagnostics: List[StepDiagnostics] = []

    def run(self, model: SelectableModel, keep: Optional[KeepFunction] = None) -> SelectionResult:
        """
        Main execution loop.

        Args:
            model: Fitted starting model.
            keep: Optional function of (model, criterion) applied to the
                starting model and after every accepted step.

        Raises:
            CriterionError: The criterion is NaN or -inf for the starting model.
            ObservationCountError: A refit used a different number of rows.
        """
        protected = terms.parse_scope(self.scope)
        n = model.nobs
        k = resolve_penalty(self.selection_config, n)

        fit = model
        edf, best = fit.extract_criterion(self.scale, k)
        if math.isnan(best):
            raise CriterionError("AIC is not defined for this model, so the search cannot proceed")
        if best == -math.inf:
            raise CriterionError("AIC is -infinity for this model, so the search cannot proceed")

        criterion_name = fit.criterion_name(self.scale)
        self.logger.info(f"Starting backward elimination: {criterion_name}={best:.4f}, k={k:.4f}, n={n}")
        self._emit(SearchStarted(formula=fit.formula, criterion=best, criterion_name=criterion_name))

        records = [PathRecord(change="", deviance=fit.deviance, resid_df=n - edf, criterion=best)]
        kept = [keep(fit, best)] if keep is not None else None

        self.lower_bounds = LowerBoundTable(fit.terms)
        self.diagnostics = []
        dropped_df = None
        n_evaluated = 0
        n_skipped = 0
        iterations = 0

        while True:
            exhausted, stop_reason = self.stopping_criteria.budget_exhausted(iterations)
            if exhausted:
                break
            iterations += 1

            scope = terms.eligible_drop_terms(fit.term_variables, protected)
            if not self.bounding:
                self.lower_bounds = LowerBoundTable(fit.terms)
            elif dropped_df is not None:
                self.lower_bounds.tighten(dropped_df * k)

            eligible, pruned = self.lower_bounds.partition(scope.drop, best)
            for term in pruned:
                self.logger.debug(f"Not considering '{term}': bound {self.lower_bounds[term]:.4f} > best {best:.4f}")
                self._emit(TermSkipped(term=term, bound=self.lower_bounds[term], best=best,
                                       criterion_name=criterion_name))
            n_skipped += len(pruned)
            bounds_before = self.lower_bounds.snapshot()

            evaluation = None
            if eligible:
                evaluation = self.evaluator.evaluate(
                    fit, eligible, self.lower_bounds, best, scale=self.scale, k=k
                )
                n_evaluated += len(evaluation.evaluated)
                n_skipped += len(evaluation.skipped)

            self.diagnostics.append(StepDiagnostics(
                step=iterations,
                formula=fit.formula,
                best=best,
                bounds=bounds_before,
                pruned=tuple(pruned),
                evaluated=evaluation.evaluated if evaluation else (),
                skipped=evaluation.skipped if evaluation else (),
            ))

            if evaluation is None or evaluation.table is None:
                stop_reason = constants.STOP_ALL_PRUNED if scope.drop else constants.STOP_NO_DROPPABLE
                break
            table = evaluation.table

            change = zero_df_change(table)
            if change is None:
                for term in evaluation.evaluated:
                    self.lower_bounds.record(term, table.at[term, criterion_name])
                ranked = rank_candidates(table, criterion_name)
                self._emit(CandidatesRanked(table=ranked, criterion_name=criterion_name))
                if ranked.index[0] == constants.NO_CHANGE_LABEL:
                    stop_reason = constants.STOP_NO_CHANGE
                    break
                change = ranked.index[0]
            else:
                self.logger.info(f"Removing '{change}': its removal leaves the residual df unchanged")

            label = f"{constants.DROP_PREFIX}{change}"
            new_fit = fit.refit_without(change)
            if new_fit.nobs != n:
                raise ObservationCountError(
                    f"Number of rows in use has changed ({n} -> {new_fit.nobs}): remove missing values?"
                )
            new_edf, new_best = new_fit.extract_criterion(self.scale, k)

            rejected, reason = self.stopping_criteria.check_refit(new_best, best)
            self._emit(ModelRefit(change=label, formula=new_fit.formula, criterion=new_best,
                                  criterion_name=criterion_name, accepted=not rejected))
            if rejected:
                stop_reason = reason
                break

            dropped_df = float(table.at[change, "Df"])
            fit, edf, best = new_fit, new_edf, new_best
            records.append(PathRecord(change=label, deviance=fit.deviance, resid_df=n - edf, criterion=best))
            if keep is not None:
                kept.append(keep(fit, best))
            self.logger.info(f"Step {len(records) - 1}: {label} -> {criterion_name}={best:.4f}")

        self.logger.info(
            f"Backward elimination finished after {len(records) - 1} step(s): {stop_reason}. "
            f"Single-term fits: {n_evaluated} evaluated, {n_skipped} skipped."
        )

        return SelectionResult(
            model=fit,
            anova=build_path_table(records, criterion_name),
            heading=path_heading(model.formula, fit.formula),
            stop_reason=stop_reason,
            initial_formula=model.formula,
            n_evaluated=n_evaluated,
            n_skipped=n_skipped,
            keep=rearrange_keep(kept) if kept is not None else None,
            diagnostics=list(self.diagnostics),
        )

    def _emit(self, event: TraceEvent) -> None:
        if self.sink is not None and self.trace >= event.level:
            self.sink(event)


def fast_backward(model: SelectableModel,
                  scope=None,
                  scale: float = constants.DEFAULT_SCALE,
                  trace: int = constants.DEFAULT_TRACE,
                  keep: Optional[KeepFunction] = None,
                  steps: int = constants.DEFAULT_STEPS,
                  k: float = constants.DEFAULT_K,
                  sink: Optional[TraceSink] = None,
                  bounding: bool = True,
                  logger: Optional[logging.Logger] = None) -> SelectionResult:
    """
    Backward elimination by AIC (``k=2``) or BIC (``k=log(n)``), skipping
    refits that provably cannot improve on the best criterion value.

    Args:
        model: Fitted starting model.
        scope: Terms that must stay in the model (formula string or labels).
        scale: Scale for the criterion; a positive value scores linear models by Cp.
        trace: 0 is silent, 1 reports steps and candidate tables, 2 also
            reports every pruned term. Events go to ``sink``.
        keep: Optional function of (model, criterion) collected at every step.
        steps: Maximum number of steps.
        k: Penalty per degree of freedom.
        sink: Callable receiving trace events.
        bounding: False evaluates every candidate at every step.
        logger: Logger for progress messages.
    """
    config = {
        'selection': {
            'scope': scope,
            'scale': scale,
            'trace': trace,
            'steps': steps,
            'k': k,
            'bounding': bounding,
        }
    }
    controller = EliminationController(config, logger or logging.getLogger(__name__), sink=sink)
    return controller.run(model, keep=keep)
