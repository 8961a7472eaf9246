import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import pandas as pd
from tqdm import tqdm  # Progress indicators

from fastbackward.elimination.events import BestUpdated, TermSkipped, TraceEvent
from fastbackward.elimination.lower_bounds import LowerBoundTable
from fastbackward.elimination.results import build_candidate_table
from fastbackward.models.base import SelectableModel
from fastbackward.utils import constants


@dataclass(frozen=True, eq=False)
class DropEvaluation:
    table: Optional[pd.DataFrame]
    evaluated: Tuple[str, ...]
    skipped: Tuple[str, ...]
    best: float


class BoundedDropEvaluator:
    """
    Performs single-term deletions, skipping those a lower bound rules out.

    Logic:
    1. Order the candidate terms by ascending lower bound.
    2. For each term:
       a. If its bound exceeds best + tolerance, skip it without refitting.
       b. Otherwise refit without it and record the row.
       c. If the row's criterion is finite and below the running best, lower
          the running best at once; later terms are checked against it.

    Evaluating low-bound terms first is what lets an early improvement prune
    the expensive refits that follow.
    """

    def __init__(self, logger: logging.Logger, emit: Optional[Callable[[TraceEvent], None]] = None,
                 show_progress: bool = False):
        self.logger = logger
        self.emit = emit if emit is not None else (lambda event: None)
        self.show_progress = show_progress

    def evaluate(self,
                 model: SelectableModel,
                 candidates: List[str],
                 bounds: LowerBoundTable,
                 best: float,
                 scale: float = constants.DEFAULT_SCALE,
                 k: float = constants.DEFAULT_K,
                 tolerance: float = constants.BOUND_TOLERANCE) -> DropEvaluation:
        """
        Args:
            model: Current model.
            candidates: Terms eligible for removal this step.
            bounds: Lower bound per term.
            best: Best criterion value known so far.
            scale: Scale passed to the criterion extractor.
            k: Penalty per degree of freedom.
            tolerance: Slack allowed before a bound disqualifies a term.

        Returns:
            DropEvaluation with the candidate table (None when nothing was
            evaluated) and the running best after the last evaluation.
        """
        criterion_name = model.criterion_name(scale)
        order = bounds.order(candidates)
        baseline = None
        rows = []
        evaluated, skipped = [], []

        with tqdm(total=len(order), desc="Single-term deletions", unit="term",
                  disable=not self.show_progress, leave=False) as pbar:
            for term in order:
                bound = bounds[term]
                if bound <= best + tolerance:
                    if baseline is None:
                        baseline = model.baseline_row(scale, k)
                    row = model.drop_one(term, scale, k)
                    rows.append(row)
                    evaluated.append(term)
                    self.logger.debug(f"Dropping '{term}': df={row.df:g}, {criterion_name}={row.criterion:.4f}")

                    if math.isfinite(row.criterion) and row.criterion < best:
                        best = row.criterion
                        self.logger.debug(f"Best observed {criterion_name} updated to {best:.4f}")
                        self.emit(BestUpdated(best=best, criterion_name=criterion_name))
                else:
                    skipped.append(term)
                    self.logger.debug(f"Skipping '{term}': bound {bound:.4f} > best {best:.4f}")
                    self.emit(TermSkipped(term=term, bound=bound, best=best, criterion_name=criterion_name))
                pbar.update(1)

        table = build_candidate_table(baseline, rows, criterion_name) if rows else None
        return DropEvaluation(table=table, evaluated=tuple(evaluated), skipped=tuple(skipped), best=best)
