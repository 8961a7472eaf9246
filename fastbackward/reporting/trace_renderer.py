"""
Text rendering of trace events in the classic stepwise layout::

    Start:  AIC=12.34
    y ~ x1 + x2

            Df  Deviance  Resid. Df    AIC
    - x2     1     0.412         47  10.71
    <none>          ...
"""

import math
import sys
from typing import TextIO

import pandas as pd

from fastbackward.elimination.events import (
    BestUpdated,
    CandidatesRanked,
    ModelRefit,
    SearchStarted,
    TermSkipped,
    TraceEvent,
)
from fastbackward.utils import constants


def format_value(value: float) -> str:
    """Round to two decimals and print without trailing zeros."""
    if math.isnan(value):
        return "NA"
    if math.isinf(value):
        return "Inf" if value > 0 else "-Inf"
    return f"{value:.2f}".rstrip("0").rstrip(".")


def format_candidates(table: pd.DataFrame) -> str:
    labels = [
        term if term == constants.NO_CHANGE_LABEL else f"{constants.DROP_PREFIX}{term}"
        for term in table.index
    ]
    shown = table.copy()
    shown.index = pd.Index(labels)
    return shown.to_string(na_rep="", float_format=lambda v: f"{v:.4g}")


class TraceRenderer:
    """Trace sink writing human-readable progress to a text stream."""

    def __init__(self, stream: TextIO = None):
        self.stream = stream if stream is not None else sys.stdout

    def __call__(self, event: TraceEvent) -> None:
        self.stream.write(self.render(event))
        self.stream.flush()

    def render(self, event: TraceEvent) -> str:
        if isinstance(event, SearchStarted):
            return f"Start:  {event.criterion_name}={format_value(event.criterion)}\n{event.formula}\n\n"
        if isinstance(event, TermSkipped):
            return (
                f"Not considering {event.term} for removal because "
                f"LB({format_value(event.bound)}) > Best({format_value(event.best)})\n"
            )
        if isinstance(event, BestUpdated):
            return f"Updating the best observed {event.criterion_name} to be {format_value(event.best)}\n"
        if isinstance(event, CandidatesRanked):
            return format_candidates(event.table) + "\n"
        if isinstance(event, ModelRefit):
            return f"\nStep:  {event.criterion_name}={format_value(event.criterion)}\n{event.formula}\n\n"
        raise TypeError(f"Unknown trace event: {type(event).__name__}")
