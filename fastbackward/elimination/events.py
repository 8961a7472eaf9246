"""
Structured trace events emitted by the backward search.

Each event carries the minimum ``trace`` level at which it is forwarded to the
caller's sink. Rendering them as text is the job of
``fastbackward.reporting.trace_renderer``.
"""

from dataclasses import dataclass
from typing import Callable, ClassVar

import pandas as pd


@dataclass(frozen=True)
class TraceEvent:
    level: ClassVar[int] = 1


@dataclass(frozen=True)
class SearchStarted(TraceEvent):
    formula: str
    criterion: float
    criterion_name: str


@dataclass(frozen=True)
class TermSkipped(TraceEvent):
    level: ClassVar[int] = 2
    term: str
    bound: float
    best: float
    criterion_name: str


@dataclass(frozen=True)
class BestUpdated(TraceEvent):
    level: ClassVar[int] = 2
    best: float
    criterion_name: str


@dataclass(frozen=True, eq=False)
class CandidatesRanked(TraceEvent):
    table: pd.DataFrame
    criterion_name: str


@dataclass(frozen=True)
class ModelRefit(TraceEvent):
    """Emitted after every refit, including one that is then rejected."""
    change: str
    formula: str
    criterion: float
    criterion_name: str
    accepted: bool


TraceSink = Callable[[TraceEvent], None]
