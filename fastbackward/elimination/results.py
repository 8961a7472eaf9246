"""
Bookkeeping shared by the backward search: candidate tables, the step path
and the final result object.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from fastbackward.models.base import CandidateRow, SelectableModel
from fastbackward.utils import constants


@dataclass(frozen=True)
class PathRecord:
    """One accepted step (the initial model has an empty change)."""
    change: str
    deviance: float
    resid_df: float
    criterion: float


@dataclass(frozen=True)
class StepDiagnostics:
    """What the search knew and did during one loop iteration."""
    step: int
    formula: str
    best: float
    bounds: Dict[str, float]
    pruned: Tuple[str, ...] = ()
    evaluated: Tuple[str, ...] = ()
    skipped: Tuple[str, ...] = ()


@dataclass
class SelectionResult:
    model: SelectableModel
    anova: pd.DataFrame
    heading: str
    stop_reason: str
    initial_formula: str = ""
    n_evaluated: int = 0
    n_skipped: int = 0
    keep: Any = None
    diagnostics: List[StepDiagnostics] = field(default_factory=list)

    @property
    def n_steps(self) -> int:
        return len(self.anova) - 1

    @property
    def formula(self) -> str:
        return self.model.formula


def build_candidate_table(baseline: CandidateRow, rows: Sequence[CandidateRow],
                          criterion_name: str) -> pd.DataFrame:
    """Candidate table indexed by term, with the "no change" row first."""
    records = [baseline, *rows]
    return pd.DataFrame(
        {
            "Df": [r.df for r in records],
            "Deviance": [r.deviance for r in records],
            "Resid. Df": [r.resid_df for r in records],
            criterion_name: [r.criterion for r in records],
        },
        index=pd.Index([r.term for r in records], name="term"),
    )


def zero_df_change(table: pd.DataFrame) -> Optional[str]:
    """Last term whose removal leaves the residual df unchanged, if any."""
    df = table["Df"]
    mask = (df.notna() & np.isclose(df.fillna(1.0), 0.0)).to_numpy()
    zero = table.index[mask]
    return zero[-1] if len(zero) else None


def rank_candidates(table: pd.DataFrame, criterion_name: str) -> pd.DataFrame:
    """
    Rows eligible for selection, best first.

    Removals with an undefined criterion or a zero df change are excluded; the
    "no change" row is always kept and wins ties.
    """
    is_baseline = table.index == constants.NO_CHANGE_LABEL
    usable = table[np.isfinite(table[criterion_name]) | is_baseline]
    usable = usable[(usable["Df"] != 0) | usable["Df"].isna()]
    return usable.sort_values(criterion_name, kind="mergesort")


def build_path_table(records: Sequence[PathRecord], criterion_name: str) -> pd.DataFrame:
    """Analysis-of-deviance table for the accepted steps."""
    deviance = np.array([r.deviance for r in records], dtype=float)
    resid_df = np.array([r.resid_df for r in records], dtype=float)
    return pd.DataFrame({
        "Step": [r.change for r in records],
        "Df": np.concatenate([[np.nan], np.diff(resid_df)]),
        "Deviance": np.concatenate([[np.nan], np.abs(np.diff(deviance))]),
        "Resid. Df": resid_df,
        "Resid. Dev": deviance,
        criterion_name: [r.criterion for r in records],
    })


def path_heading(initial_formula: str, final_formula: str) -> str:
    return (
        "Stepwise Model Path \nAnalysis of Deviance Table\n"
        f"\nInitial Model:\n{initial_formula}\n"
        f"\nFinal Model:\n{final_formula}\n"
    )


def rearrange_keep(values: Sequence[Any]) -> Any:
    """
    Collect ``keep`` outputs: one column per accepted step when every output
    is a mapping, otherwise the list of outputs in step order.
    """
    values = list(values)
    if values and all(isinstance(v, Mapping) for v in values):
        return pd.DataFrame({step: pd.Series(dict(v), dtype=object) for step, v in enumerate(values)})
    return values
